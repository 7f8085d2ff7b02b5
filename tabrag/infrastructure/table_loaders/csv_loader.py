import csv
from pathlib import Path

from tabrag.core.models.document import TabularUpload


class CsvLoader:

    EXTENSIONS = {".csv", ".tsv"}

    def supports(self, file_path: Path) -> bool:
        return file_path.suffix.lower() in self.EXTENSIONS

    def load(self, file_path: Path, file_id: int) -> TabularUpload:
        delimiter = "\t" if file_path.suffix.lower() == ".tsv" else ","
        with open(file_path, "r", encoding="utf-8-sig", newline="") as f:
            reader = csv.DictReader(f, delimiter=delimiter)
            headers = [h.strip() for h in (reader.fieldnames or [])]
            rows = [
                {h.strip(): (v or "").strip() for h, v in row.items() if h is not None}
                for row in reader
            ]
        return TabularUpload(
            headers=headers,
            rows=rows,
            file_id=file_id,
            original_name=file_path.name,
        )
