"""Prompt service - grounding context and system prompt selection."""

from ..models.document import BOOKKEEPING_KEYS, SourceDocument
from ..models.query import (
    COMPARISON_OPERATORS,
    SORT_OPERATORS,
    ExtractedQuery,
    Operator,
    QueryIntent,
)

RAG_SYSTEM_PROMPT = """Kamu adalah asisten AI yang membantu menjawab pertanyaan berdasarkan DATA yang diberikan.

ATURAN PENTING:
1. Jawab HANYA berdasarkan data yang diberikan dalam context di bawah
2. Jika tidak ada informasi yang relevan dalam data, katakan "Maaf, saya tidak menemukan data yang relevan untuk pertanyaan ini."
3. JANGAN mengarang atau mengasumsikan informasi yang tidak ada dalam data
4. Jika diminta menghitung atau membandingkan, gunakan HANYA data yang tersedia
5. Jawab dengan bahasa Indonesia yang sopan, jelas, dan ringkas
6. Jika ada beberapa data yang relevan, sebutkan semuanya

DATA YANG TERSEDIA:
{context}

Berdasarkan data di atas, jawab pertanyaan pengguna dengan akurat."""

SUPERLATIVE_SYSTEM_PROMPT = """Kamu adalah asisten AI yang membantu menjawab pertanyaan berdasarkan DATA yang diberikan.

INSTRUKSI KHUSUS:
- User bertanya tentang item dengan nilai {operator} untuk {attribute}
- Data sudah diurutkan dari yang paling sesuai
- Jawab dengan menyebutkan item pertama sebagai jawaban utama
- Sebutkan juga beberapa alternatif jika ada

DATA YANG TERSEDIA (sudah diurutkan):
{context}

Jawab pertanyaan dengan menyebutkan item yang sesuai kriteria "{operator} {attribute}"."""

BUDGET_SYSTEM_PROMPT = """Kamu adalah asisten AI yang membantu menjawab pertanyaan berdasarkan DATA yang diberikan.

INSTRUKSI KHUSUS:
- User mencari produk dengan batasan harga {operator} {value}
- Data yang diberikan sudah difilter sesuai budget
- Tampilkan semua opsi yang tersedia dalam budget
- Sebutkan nama produk dan harganya
- Jika tidak ada data, katakan bahwa tidak ada produk yang sesuai budget

DATA YANG TERSEDIA (sudah difilter sesuai budget):
{context}

Jawab dengan menyebutkan produk yang sesuai budget user."""

NORMAL_SYSTEM_PROMPT = (
    "Kamu adalah asisten AI yang ramah dan membantu. "
    "Jawab dengan bahasa Indonesia yang sopan dan jelas."
)

_BOUND_TEXT = {
    Operator.LTE: "maksimal",
    Operator.LT: "kurang dari",
    Operator.GTE: "minimal",
    Operator.GT: "lebih dari",
    Operator.EQ: "tepat",
}


def format_budget_value(value: float) -> str:
    """Humanize a rupiah amount: 7000000 -> "7 juta", 500000 -> "500 ribu"."""
    if value >= 1_000_000:
        amount, unit = value / 1_000_000, "juta"
    elif value >= 1_000:
        amount, unit = value / 1_000, "ribu"
    else:
        return f"{value:g}"
    return f"{amount:g}".replace(".", ",") + f" {unit}"


def format_context(sources: list[SourceDocument]) -> str:
    """One ``[Data n] key: value, ...`` line per document."""
    lines = []
    for i, source in enumerate(sources, 1):
        fields = ", ".join(
            f"{key}: {value}"
            for key, value in source.metadata.items()
            if key not in BOOKKEEPING_KEYS
        )
        lines.append(f"[Data {i}] {fields}")
    return "\n".join(lines)


class PromptService:
    """Builds the grounding context and picks the system prompt."""

    def assemble(
        self, intent: ExtractedQuery, sources: list[SourceDocument]
    ) -> tuple[str, str]:
        """Return ``(context, system_prompt)`` for the generation call."""
        context = format_context(sources)
        return context, self.build_system_prompt(intent, context)

    def build_system_prompt(self, intent: ExtractedQuery, context: str) -> str:
        # Sorted/filtered framing only when the post-processor actually ran
        if (
            intent.intent == QueryIntent.SUPERLATIVE
            and intent.attribute
            and intent.operator in SORT_OPERATORS
        ):
            operator = "terendah" if intent.operator == Operator.MIN else "tertinggi"
            return (
                SUPERLATIVE_SYSTEM_PROMPT
                .replace("{operator}", operator)
                .replace("{attribute}", intent.attribute)
                .replace("{context}", context)
            )

        if (
            intent.intent == QueryIntent.BUDGET
            and intent.attribute
            and intent.operator in COMPARISON_OPERATORS
            and intent.value is not None
        ):
            bound = _BOUND_TEXT[intent.operator]
            return (
                BUDGET_SYSTEM_PROMPT
                .replace("{operator}", bound)
                .replace("{value}", format_budget_value(intent.value))
                .replace("{context}", context)
            )

        return RAG_SYSTEM_PROMPT.replace("{context}", context)

    @staticmethod
    def general_prompt() -> str:
        """Minimal prompt without grounding data."""
        return NORMAL_SYSTEM_PROMPT
