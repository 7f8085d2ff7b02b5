"""Intent service - rule-based intent detection with LLM fallback."""

import json
import logging
import re
from typing import Optional

from ..models.query import ExtractedQuery, ExtractionOutcome, Operator, QueryIntent
from ..protocols.llm import LLMProtocol

logger = logging.getLogger(__name__)

GENERAL_CHAT_PATTERNS = [
    re.compile(r"^(halo|hallo|hai|hello|hi|hey)( semua| kak| bot)?[\s!.,?]*$", re.IGNORECASE),
    re.compile(r"^selamat (pagi|siang|sore|malam)[\s!.,?]*$", re.IGNORECASE),
    re.compile(
        r"^(apa kabar|terima kasih|makasih|thanks|thank you)( banyak| ya)?[\s!.,?]*$",
        re.IGNORECASE,
    ),
    re.compile(r"^(siapa kamu|kamu siapa|ok|oke|sip)[\s!.,?]*$", re.IGNORECASE),
]

# Ordered: first match wins.
SUPERLATIVE_RULES = [
    (re.compile(r"\b(?:paling\s+murah|termurah)\b", re.IGNORECASE), "harga", Operator.MIN),
    (re.compile(r"\b(?:paling\s+mahal|termahal)\b", re.IGNORECASE), "harga", Operator.MAX),
    (re.compile(r"\b(?:paling\s+banyak|terbanyak)\b", re.IGNORECASE), "stok", Operator.MAX),
    (re.compile(r"\b(?:paling\s+sedikit|tersedikit)\b", re.IGNORECASE), "stok", Operator.MIN),
    (re.compile(r"\b(?:paling\s+rendah|terendah)\b", re.IGNORECASE), "harga", Operator.MIN),
    (re.compile(r"\b(?:paling\s+tinggi|tertinggi)\b", re.IGNORECASE), "harga", Operator.MAX),
]

AGGREGATION_RULES = [
    (re.compile(r"\b(?:total|seluruh)\b", re.IGNORECASE), Operator.SUM),
    (re.compile(r"\b(?:rata-rata|rata\s+rata|rerata)\b", re.IGNORECASE), Operator.AVG),
    (re.compile(r"\b(?:berapa\s+banyak|hitung)\b", re.IGNORECASE), Operator.COUNT),
]

ATTRIBUTE_KEYWORDS = {
    "harga": ("harga", "price", "biaya"),
    "stok": ("stok", "stock", "persediaan"),
}
DEFAULT_AGGREGATION_ATTRIBUTE = "stok"

LTE_KEYWORDS = (
    "bajet", "budget", "budjet", "anggaran", "maksimal", "maksimum", "maks", "max",
    "di bawah", "dibawah", "kurang dari", "tidak lebih dari", "tak lebih dari",
    "hingga", "sampai", "under", "below",
)
GTE_KEYWORDS = (
    "minimal", "minimum", "min", "di atas", "diatas", "lebih dari", "mulai dari",
    "above", "over",
)

UNIT_MULTIPLIERS = {
    "jt": 1_000_000,
    "juta": 1_000_000,
    "rb": 1_000,
    "ribu": 1_000,
    "k": 1_000,
}


def _keyword_alternation(keywords: tuple[str, ...]) -> str:
    # Longest first so "minimal" wins over "min".
    ordered = sorted(keywords, key=len, reverse=True)
    return "|".join(r"\s+".join(re.escape(part) for part in k.split()) for k in ordered)


BUDGET_PATTERN = re.compile(
    r"\b(?P<keyword>" + _keyword_alternation(LTE_KEYWORDS + GTE_KEYWORDS) + r")"
    r"\s*(?:(?:rp|idr)\.?\s*)?"
    r"(?P<number>\d{1,3}(?:[.,]\d{3})+(?!\d)|\d+(?:[.,]\d+)?)"
    r"\s*(?:(?P<unit>juta|jt|ribu|rb|k)(?:an)?)?\b",
    re.IGNORECASE,
)
_THOUSANDS_NUMBER = re.compile(r"\d{1,3}(?:[.,]\d{3})+")

SEARCH_KEYWORDS_PATTERN = re.compile(
    r"\b(?:produk|barang|cari|carikan|mencari|tampilkan|tunjukkan|lihat|daftar|ada|jual|list)\b",
    re.IGNORECASE,
)

_LEADING_INT = re.compile(r"^\s*(\d+)\b")

STOP_WORDS = frozenset({
    # determiners, pronouns, question words
    "yang", "apa", "apakah", "adakah", "ada", "ini", "itu", "dan", "atau", "dengan",
    "untuk", "dari", "pada", "saya", "aku", "kamu", "mau", "ingin", "tolong", "dong",
    "berapa", "mana", "bisa", "punya", "nya", "the", "and", "with", "for",
    # searching verbs
    "cari", "carikan", "mencari", "tampilkan", "tunjukkan", "lihat", "daftar", "list",
    "show", "beli", "jual", "rekomendasi", "rekomendasikan",
    # budget, aggregation and unit vocabulary
    "bajet", "budget", "budjet", "anggaran", "maksimal", "maksimum", "maks", "max",
    "minimal", "minimum", "min", "bawah", "dibawah", "atas", "diatas", "kurang",
    "lebih", "tidak", "tak", "hingga", "sampai", "mulai", "under", "below", "above",
    "over", "harga", "stok", "total", "seluruh", "hitung", "banyak", "juta", "ribu",
    "jutaan", "ribuan", "paling",
    # currency
    "rp", "idr", "rupiah",
    # generic nouns
    "produk", "barang", "data",
})

_PUNCTUATION = re.compile(r"[^\w\s]")

LLM_EXTRACTION_PROMPT = """Kamu adalah sistem klasifikasi intent untuk chatbot toko. Ekstrak informasi dari pertanyaan user.

KATEGORI INTENT:
- superlative_query: Pertanyaan dengan "ter-" atau "paling" (termurah, termahal, terbanyak, tersedikit)
- budget_query: Pertanyaan dengan batasan harga/budget (bajet 5juta, maksimal 10jt, kurang dari 3juta, di bawah 7juta, di atas 1juta)
- aggregation_query: Pertanyaan perhitungan (total, rata-rata, jumlah, berapa banyak)
- comparison_query: Membandingkan 2 atau lebih item
- filter_query: Mencari produk dengan kondisi tertentu selain harga
- simple_search: Mencari produk/informasi biasa
- general_chat: Percakapan umum, salam, terima kasih

ATURAN PENTING:
1. "entity" = HANYA nama produk atau kategori yang dicari (BUKAN kalimat lengkap!)
   - Contoh: "apakah ada laptop?" -> entity: "laptop"
2. "attribute" = kolom data: "harga", "stok", atau lainnya
3. "operator":
   - superlative: MIN (termurah/tersedikit) atau MAX (termahal/terbanyak)
   - budget_query: LTE (di bawah/kurang dari/maksimal) atau GTE (di atas/lebih dari/minimal)
   - aggregation_query: SUM, AVG, COUNT, MIN atau MAX
4. "value" = nilai budget dalam angka penuh (7000000 untuk 7juta, 500000 untuk 500ribu)
5. "limit" = jumlah yang diminta (default 5 untuk budget_query, 1 untuk superlative)

CONTOH:
- "mie instant termurah" -> {"intent":"superlative_query","entity":"mie instant","attribute":"harga","operator":"MIN","limit":1}
- "5 laptop termahal" -> {"intent":"superlative_query","entity":"laptop","attribute":"harga","operator":"MAX","limit":5}
- "laptop dengan bajet 7juta" -> {"intent":"budget_query","entity":"laptop","attribute":"harga","operator":"LTE","value":7000000,"limit":5}
- "HP di atas 5juta" -> {"intent":"budget_query","entity":"HP","attribute":"harga","operator":"GTE","value":5000000,"limit":5}
- "berapa total stok" -> {"intent":"aggregation_query","attribute":"stok","operator":"SUM"}
- "cari beras premium" -> {"intent":"simple_search","entity":"beras premium"}
- "halo" -> {"intent":"general_chat"}

Pertanyaan: "{query}"

Jawab HANYA dengan JSON valid dengan field intent, entity, attribute, operator, value, limit. Tanpa penjelasan atau markdown."""


def clean_entity(text: str) -> str:
    """Reduce a query fragment to its product noun phrase.

    Lower-cases, strips punctuation and drops stop words, tokens of
    two characters or fewer and pure numbers. Token order is kept, so
    applying it twice gives the same result.
    """
    tokens = _PUNCTUATION.sub(" ", text.lower()).split()
    kept = [
        t for t in tokens
        if t not in STOP_WORDS and len(t) > 2 and not t.isdigit()
    ]
    return " ".join(kept)


def parse_budget_number(raw: str) -> float:
    """Parse "5.000.000", "7", "1,5" or "2.5" into a float."""
    if _THOUSANDS_NUMBER.fullmatch(raw):
        return float(re.sub(r"[.,]", "", raw))
    return float(raw.replace(",", "."))


def _first_json_object(text: str) -> Optional[str]:
    """Return the first balanced ``{...}`` span, ignoring braces in strings."""
    start = text.find("{")
    if start < 0:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def _optional_text(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_number(value) -> Optional[float]:
    if isinstance(value, bool) or value in (None, ""):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number or None


def parse_extraction_response(content: str, raw_query: str) -> ExtractionOutcome:
    """Turn a model reply into an ExtractedQuery.

    Markdown fences and ``<think>`` blocks are stripped and the first
    balanced JSON object is parsed. Missing fields take defaults.
    """
    text = re.sub(r"<think>.*?</think>", "", content or "", flags=re.DOTALL)
    text = re.sub(r"```(?:json)?", "", text, flags=re.IGNORECASE)

    span = _first_json_object(text)
    if span is None:
        return ExtractionOutcome.failure("no JSON object in model reply")

    try:
        data = json.loads(span)
    except json.JSONDecodeError as e:
        return ExtractionOutcome.failure(f"invalid JSON: {e}")

    if not isinstance(data, dict):
        return ExtractionOutcome.failure("JSON reply is not an object")

    try:
        intent = QueryIntent(str(data.get("intent") or QueryIntent.SIMPLE_SEARCH.value))
    except ValueError:
        intent = QueryIntent.SIMPLE_SEARCH

    try:
        operator = Operator(str(data["operator"]).upper()) if data.get("operator") else None
    except ValueError:
        operator = None

    limit_number = _optional_number(data.get("limit"))
    # Limits below 1 count as missing
    limit = int(limit_number) if limit_number and limit_number >= 1 else None
    if not limit:
        limit = 5 if intent == QueryIntent.BUDGET else 1

    value = _optional_number(data.get("value"))
    if value is not None and value.is_integer():
        value = int(value)

    attribute = _optional_text(data.get("attribute"))
    if attribute is None and intent == QueryIntent.BUDGET:
        attribute = "harga"

    return ExtractionOutcome(
        query=ExtractedQuery(
            intent=intent,
            entity=_optional_text(data.get("entity")),
            attribute=attribute,
            operator=operator,
            value=value,
            limit=limit,
            confidence=0.9,
            raw_query=raw_query,
        )
    )


class IntentService:
    """Two-stage intent extraction: cheap rules first, LLM when unsure."""

    def __init__(
        self,
        llm: LLMProtocol,
        model: Optional[str] = None,
        temperature: float = 0.1,
        confidence_threshold: float = 0.8,
    ):
        """Initialize intent service.

        Args:
            llm: LLM client used for the fallback stage.
            model: Model for extraction (client default if None).
            temperature: Sampling temperature for extraction.
            confidence_threshold: Rule results at or above this skip the LLM.
        """
        self._llm = llm
        self._model = model
        self._temperature = temperature
        self._threshold = confidence_threshold

    def is_general_chat(self, query: str) -> bool:
        """Check if message is a greeting, thanks, or other small talk."""
        text = query.strip()
        return any(p.match(text) for p in GENERAL_CHAT_PATTERNS)

    async def extract(self, query: str) -> ExtractedQuery:
        """Extract intent from a user message. Never raises."""
        try:
            rule_result = self.detect_by_rules(query)
            if rule_result and rule_result.confidence >= self._threshold:
                logger.info(
                    f"[intent] Rule match: {rule_result.intent.value} "
                    f"(confidence={rule_result.confidence}) for '{query[:60]}'"
                )
                return rule_result

            outcome = await self._detect_by_llm(query)
            if outcome.ok:
                logger.info(
                    f"[intent] LLM result: {outcome.query.intent.value}, "
                    f"entity='{outcome.query.entity or 'none'}'"
                )
                return outcome.query

            logger.warning(f"[intent] LLM extraction failed: {outcome.error}")
        except Exception as e:
            logger.error(f"[intent] Extraction error: {e}")

        return ExtractedQuery.safe_default(query)

    def detect_by_rules(self, query: str) -> Optional[ExtractedQuery]:
        """Run the rule table in priority order."""
        if self.is_general_chat(query):
            return ExtractedQuery(
                intent=QueryIntent.GENERAL_CHAT, confidence=0.9, raw_query=query
            )

        for detector in (
            self._detect_superlative,
            self._detect_aggregation,
            self._detect_budget,
            self._detect_search,
        ):
            result = detector(query)
            if result is not None:
                return result
        return None

    def _detect_superlative(self, query: str) -> Optional[ExtractedQuery]:
        for pattern, attribute, operator in SUPERLATIVE_RULES:
            match = pattern.search(query)
            if not match:
                continue

            remainder = query[: match.start()] + " " + query[match.end() :]
            leading = _LEADING_INT.match(query)
            limit = int(leading.group(1)) if leading else 1

            return ExtractedQuery(
                intent=QueryIntent.SUPERLATIVE,
                entity=clean_entity(remainder) or None,
                attribute=attribute,
                operator=operator,
                limit=limit or 1,
                confidence=0.85,
                raw_query=query,
            )
        return None

    def _detect_aggregation(self, query: str) -> Optional[ExtractedQuery]:
        for pattern, operator in AGGREGATION_RULES:
            match = pattern.search(query)
            if not match:
                continue

            lowered = query.lower()
            attribute = DEFAULT_AGGREGATION_ATTRIBUTE
            for column, keywords in ATTRIBUTE_KEYWORDS.items():
                if any(re.search(rf"\b{k}\b", lowered) for k in keywords):
                    attribute = column
                    break

            remainder = query[: match.start()] + " " + query[match.end() :]
            return ExtractedQuery(
                intent=QueryIntent.AGGREGATION,
                entity=clean_entity(remainder) or None,
                attribute=attribute,
                operator=operator,
                confidence=0.8,
                raw_query=query,
            )
        return None

    def _detect_budget(self, query: str) -> Optional[ExtractedQuery]:
        match = BUDGET_PATTERN.search(query)
        if not match:
            return None

        keyword = " ".join(match.group("keyword").lower().split())
        operator = Operator.LTE if keyword in LTE_KEYWORDS else Operator.GTE

        unit = (match.group("unit") or "").lower()
        value = parse_budget_number(match.group("number")) * UNIT_MULTIPLIERS.get(unit, 1)
        if value.is_integer():
            value = int(value)

        remainder = query[: match.start()] + " " + query[match.end() :]
        return ExtractedQuery(
            intent=QueryIntent.BUDGET,
            entity=clean_entity(remainder) or None,
            attribute="harga",
            operator=operator,
            value=value,
            limit=5,
            confidence=0.85,
            raw_query=query,
        )

    def _detect_search(self, query: str) -> Optional[ExtractedQuery]:
        if not SEARCH_KEYWORDS_PATTERN.search(query):
            return None
        # Stays under the fast-path threshold so the LLM stage still runs.
        return ExtractedQuery(
            intent=QueryIntent.SIMPLE_SEARCH,
            entity=clean_entity(query) or None,
            confidence=0.6,
            raw_query=query,
        )

    async def _detect_by_llm(self, query: str) -> ExtractionOutcome:
        prompt = LLM_EXTRACTION_PROMPT.replace("{query}", query)
        try:
            content = await self._llm.complete(
                [{"role": "user", "content": prompt}],
                model=self._model,
                temperature=self._temperature,
            )
        except Exception as e:
            return ExtractionOutcome.failure(f"LLM call failed: {e}")

        logger.debug(f"[intent] LLM raw reply: {content[:200]}")
        return parse_extraction_response(content, query)
