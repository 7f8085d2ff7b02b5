from tabrag.core.errors import ErrorCode
from tabrag.core.models.document import TabularUpload
from tabrag.core.services.ingest_service import IngestService
from tests.conftest import PRODUCTS, make_upload


class TestColumnClassification:

    def test_numeric_and_text_columns(self, ingest_service):
        upload = make_upload()

        text_columns, number_columns = ingest_service.classify_columns(
            upload.headers, upload.rows
        )

        assert text_columns == ["nama_produk", "kategori"]
        assert number_columns == ["harga", "stok"]

    def test_ratio_boundary(self, ingest_service):
        # 4 of 5 numeric is exactly 80%
        assert ingest_service.detect_column_type(["1", "2", "3", "4", "n/a"]) == "number"
        assert ingest_service.detect_column_type(["1", "2", "3", "x", "y"]) == "text"

    def test_empty_values_are_ignored(self, ingest_service):
        assert ingest_service.detect_column_type(["", None, "10", "2.5"]) == "number"

    def test_all_empty_column_is_text(self, ingest_service):
        assert ingest_service.detect_column_type(["", None]) == "text"

    def test_only_first_sample_is_inspected(self, embedder, store):
        service = IngestService(embedder, store, sample_size=3)

        assert service.detect_column_type(["1", "2", "3", "a", "b", "c"]) == "number"


def test_embedding_text_uses_text_columns_only():
    row = {"nama_produk": "Laptop Asus", "kategori": "", "harga": "4000000"}

    text = IngestService.create_embedding_text(row, ["nama_produk", "kategori"])

    assert text == "nama_produk: Laptop Asus"


class TestEmbedUpload:

    def test_success(self, ingest_service, store):
        result = ingest_service.embed_upload(make_upload(file_id=7))

        assert result.success
        assert result.embedded_count == len(PRODUCTS)
        assert result.message == f"Berhasil embed {len(PRODUCTS)} baris data"
        assert result.text_columns == ["nama_produk", "kategori"]
        assert store.count() == len(PRODUCTS)
        assert "7_0" in store.records and f"7_{len(PRODUCTS) - 1}" in store.records

    def test_metadata(self, ingest_service, store):
        ingest_service.embed_upload(make_upload(file_id=7, name="stok.csv"))

        record = store.records["7_2"]
        assert record["text"] == "nama_produk: Laptop Acer Aspire. kategori: Elektronik"
        assert record["metadata"] == {
            "nama_produk": "Laptop Acer Aspire",
            "kategori": "Elektronik",
            "harga": 9000000,
            "stok": 5,
            "file_id": 7,
            "file_name": "stok.csv",
            "row_index": 2,
        }

    def test_empty_cells_are_dropped(self, ingest_service, store):
        upload = TabularUpload(
            headers=["nama", "harga"],
            rows=[{"nama": "Kopi", "harga": "1.5"}, {"nama": "Teh", "harga": ""}],
            file_id=1,
            original_name="menu.csv",
        )

        ingest_service.embed_upload(upload)

        assert store.records["1_0"]["metadata"]["harga"] == 1.5
        assert "harga" not in store.records["1_1"]["metadata"]

    def test_reembedding_replaces_previous_rows(self, ingest_service, store):
        ingest_service.embed_upload(make_upload(file_id=3))
        ingest_service.embed_upload(make_upload(file_id=3, products=PRODUCTS[:2]))

        assert store.count() == 2

    def test_other_files_are_untouched(self, ingest_service, store):
        ingest_service.embed_upload(make_upload(file_id=1))
        ingest_service.embed_upload(make_upload(file_id=2, products=PRODUCTS[:3]))

        assert store.count() == len(PRODUCTS) + 3

    def test_no_rows(self, ingest_service, store):
        result = ingest_service.embed_upload(make_upload(products=[]))

        assert not result.success
        assert result.error == ErrorCode.NO_DATA.value
        assert result.message == "File tidak memiliki data"
        assert not store.exists()

    def test_no_text_columns(self, ingest_service, store):
        upload = TabularUpload(
            headers=["harga", "stok"],
            rows=[{"harga": "1000", "stok": "3"}],
            file_id=1,
            original_name="angka.csv",
        )

        result = ingest_service.embed_upload(upload)

        assert not result.success
        assert result.error == ErrorCode.NO_TEXT_COLUMNS.value
        assert result.number_columns == ["harga", "stok"]
        assert not store.exists()

    def test_embedder_failure(self, ingest_service, embedder, monkeypatch):
        def broken(texts):
            raise RuntimeError("model missing")

        monkeypatch.setattr(embedder, "embed_documents", broken)

        result = ingest_service.embed_upload(make_upload())

        assert not result.success
        assert result.message == "Gagal melakukan embedding"
        assert result.error == "model missing"


class TestEmbedPath:

    def test_csv_file(self, ingest_service, store, tmp_path):
        path = tmp_path / "produk.csv"
        path.write_text(
            "nama_produk,harga\nLaptop Asus,4000000\nBeras Premium,75000\n", encoding="utf-8"
        )

        result = ingest_service.embed_path(path, 5)

        assert result.success
        assert result.embedded_count == 2
        assert store.records["5_1"]["metadata"]["file_name"] == "produk.csv"

    def test_missing_file(self, ingest_service, tmp_path):
        result = ingest_service.embed_path(tmp_path / "nope.csv", 5)

        assert not result.success
        assert result.error == ErrorCode.FILE_NOT_FOUND.value


class TestDeleteFileEmbeddings:

    def test_delete_then_search_finds_nothing(self, ingest_service, search_service, loaded_store):
        result = ingest_service.delete_file_embeddings(1)

        assert result.success
        assert result.deleted_count == len(PRODUCTS)
        assert result.message == f"Berhasil menghapus {len(PRODUCTS)} embeddings"

        response = search_service.search("laptop", file_id=1)
        assert response.success
        assert response.results == []

    def test_nothing_to_delete(self, ingest_service):
        result = ingest_service.delete_file_embeddings(42)

        assert result.success
        assert result.deleted_count == 0
        assert result.message == "Tidak ada data embedding"

    def test_store_failure(self, ingest_service, store, monkeypatch):
        def broken(where):
            raise RuntimeError("store offline")

        monkeypatch.setattr(store, "delete", broken)

        result = ingest_service.delete_file_embeddings(1)

        assert not result.success
        assert result.message == "store offline"
