import asyncio

import pytest

from tabrag.core.errors import LLMUnavailableError
from tabrag.core.models.document import SourceDocument
from tabrag.core.models.query import ExtractedQuery, Operator, QueryIntent
from tabrag.core.services.intent_service import (
    IntentService,
    clean_entity,
    parse_budget_number,
    parse_extraction_response,
)
from tabrag.core.strategies.post_processing import BudgetFilterStrategy, ResultPostProcessor
from tests.conftest import ScriptedLLM


def extract(service: IntentService, query: str) -> ExtractedQuery:
    return asyncio.run(service.extract(query))


class TestBudgetRules:

    def test_bajet_juta_without_space(self):
        llm = ScriptedLLM()
        result = extract(IntentService(llm), "laptop dengan bajet 7juta")

        assert result.intent == QueryIntent.BUDGET
        assert result.operator == Operator.LTE
        assert result.value == 7_000_000
        assert result.attribute == "harga"
        assert result.entity == "laptop"
        assert result.limit == 5
        assert llm.calls == []

    def test_di_atas_is_lower_bound(self):
        result = IntentService(ScriptedLLM()).detect_by_rules("laptop di atas 5 juta")

        assert result.intent == QueryIntent.BUDGET
        assert result.operator == Operator.GTE
        assert result.value == 5_000_000
        assert result.entity == "laptop"

    def test_rupiah_with_thousand_separators(self):
        result = IntentService(ScriptedLLM()).detect_by_rules("kulkas maksimal Rp 3.500.000")

        assert result.operator == Operator.LTE
        assert result.value == 3_500_000
        assert result.entity == "kulkas"

    def test_decimal_comma_with_unit(self):
        result = IntentService(ScriptedLLM()).detect_by_rules("sepatu budget 1,5 juta")

        assert result.value == 1_500_000
        assert isinstance(result.value, int)

    def test_an_suffix_on_units(self):
        service = IntentService(ScriptedLLM())

        juta = service.detect_by_rules("laptop budget 7 jutaan")
        ribu = service.detect_by_rules("kaos maksimal 50 ribuan")

        assert juta.value == 7_000_000
        assert juta.entity == "laptop"
        assert ribu.value == 50_000
        assert ribu.entity == "kaos"

    def test_short_units(self):
        service = IntentService(ScriptedLLM())

        assert service.detect_by_rules("hp maksimal 10jt").value == 10_000_000
        assert service.detect_by_rules("tas di bawah 500rb").value == 500_000


class TestSuperlativeRules:

    def test_leading_count_becomes_limit(self):
        result = IntentService(ScriptedLLM()).detect_by_rules("5 laptop termahal")

        assert result.intent == QueryIntent.SUPERLATIVE
        assert result.attribute == "harga"
        assert result.operator == Operator.MAX
        assert result.limit == 5
        assert result.entity == "laptop"

    def test_default_limit_is_one(self):
        result = IntentService(ScriptedLLM()).detect_by_rules("mie instant termurah")

        assert result.operator == Operator.MIN
        assert result.limit == 1
        assert result.entity == "mie instant"

    def test_paling_banyak_targets_stock(self):
        result = IntentService(ScriptedLLM()).detect_by_rules("beras paling banyak")

        assert result.attribute == "stok"
        assert result.operator == Operator.MAX

    def test_superlative_wins_over_budget(self):
        result = IntentService(ScriptedLLM()).detect_by_rules("laptop termurah budget 7 juta")

        assert result.intent == QueryIntent.SUPERLATIVE


class TestAggregationRules:

    def test_total_stock(self):
        result = IntentService(ScriptedLLM()).detect_by_rules("berapa total stok beras")

        assert result.intent == QueryIntent.AGGREGATION
        assert result.operator == Operator.SUM
        assert result.attribute == "stok"
        assert result.entity == "beras"

    def test_average_price(self):
        result = IntentService(ScriptedLLM()).detect_by_rules("rata-rata harga laptop")

        assert result.operator == Operator.AVG
        assert result.attribute == "harga"


class TestGeneralChat:

    @pytest.mark.parametrize(
        "message", ["halo", "Hai kak!", "selamat pagi", "Terima kasih!", "makasih ya"]
    )
    def test_small_talk(self, message):
        assert IntentService(ScriptedLLM()).is_general_chat(message)

    @pytest.mark.parametrize("message", ["halo, ada laptop?", "laptop termurah"])
    def test_questions_are_not_small_talk(self, message):
        assert not IntentService(ScriptedLLM()).is_general_chat(message)


class TestLLMFallback:

    def test_uses_llm_when_rules_are_silent(self):
        llm = ScriptedLLM(
            '<think>user wants to compare</think>```json\n'
            '{"intent": "comparison_query", "entity": "laptop asus"}\n```'
        )
        service = IntentService(llm, model="qwen2.5:3b", temperature=0.1)

        result = extract(service, "bandingkan laptop asus dan lenovo")

        assert result.intent == QueryIntent.COMPARISON
        assert result.entity == "laptop asus"
        assert result.confidence == 0.9
        assert result.limit == 1
        assert llm.calls[0]["model"] == "qwen2.5:3b"
        assert llm.calls[0]["temperature"] == 0.1
        assert "bandingkan laptop asus dan lenovo" in llm.calls[0]["messages"][0]["content"]

    def test_low_confidence_rule_defers_to_llm(self):
        llm = ScriptedLLM('{"intent": "simple_search", "entity": "beras premium"}')

        result = extract(IntentService(llm), "cari beras premium")

        assert len(llm.calls) == 1
        assert result.entity == "beras premium"

    def test_garbage_reply_gives_safe_default(self):
        result = extract(IntentService(ScriptedLLM("maaf saya tidak tahu")), "bandingkan dua hal")

        assert result.intent == QueryIntent.SIMPLE_SEARCH
        assert result.confidence == 0.5
        assert result.raw_query == "bandingkan dua hal"

    def test_llm_unavailable_gives_safe_default(self):
        llm = ScriptedLLM(LLMUnavailableError("connection refused"))

        result = extract(IntentService(llm), "bandingkan dua hal")

        assert result.intent == QueryIntent.SIMPLE_SEARCH
        assert result.confidence == 0.5


class TestParsing:

    @pytest.mark.parametrize("limit", [-3, 0, 0.5])
    def test_limit_below_one_uses_default(self, limit):
        reply = f'{{"intent":"simple_search","entity":"laptop","limit":{limit}}}'

        query = parse_extraction_response(reply, "laptop").query
        candidates = [
            SourceDocument(
                file_name="produk.csv", row_index=i, text="", relevance_score=0.5, metadata={}
            )
            for i in range(5)
        ]

        assert query.limit == 1
        assert len(ResultPostProcessor().apply(query, candidates)) == 1

    def test_budget_reply_without_attribute_targets_price(self):
        outcome = parse_extraction_response(
            '{"intent":"budget_query","operator":"LTE","value":7000000}', "q"
        )

        assert outcome.query.attribute == "harga"
        assert BudgetFilterStrategy().applies_to(outcome.query)

    def test_budget_reply_defaults_limit_to_five(self):
        outcome = parse_extraction_response(
            '{"intent":"budget_query","entity":"HP","operator":"lte","value":"5000000"}',
            "HP di bawah 5jt",
        )

        assert outcome.ok
        assert outcome.query.operator == Operator.LTE
        assert outcome.query.value == 5_000_000
        assert outcome.query.limit == 5

    def test_unknown_intent_falls_back_to_simple_search(self):
        outcome = parse_extraction_response('{"intent":"weird"}', "q")

        assert outcome.query.intent == QueryIntent.SIMPLE_SEARCH

    def test_braces_inside_strings(self):
        outcome = parse_extraction_response(
            'ok {"intent":"simple_search","entity":"kaos {xl}"} trailing }', "q"
        )

        assert outcome.query.entity == "kaos {xl}"

    def test_missing_json_is_a_failure(self):
        outcome = parse_extraction_response("no json here", "q")

        assert not outcome.ok
        assert outcome.error

    @pytest.mark.parametrize(
        "raw, expected",
        [("5.000.000", 5_000_000), ("7", 7), ("1,5", 1.5), ("2.5", 2.5), ("500,000", 500_000)],
    )
    def test_budget_numbers(self, raw, expected):
        assert parse_budget_number(raw) == expected


class TestCleanEntity:

    @pytest.mark.parametrize(
        "text", ["Tolong carikan laptop gaming yang murah dong!", "5 beras premium", "HP"]
    )
    def test_idempotent(self, text):
        once = clean_entity(text)
        assert clean_entity(once) == once

    def test_drops_stop_words_and_numbers(self):
        assert clean_entity("apakah ada 3 laptop gaming?") == "laptop gaming"

    def test_drops_approximate_amount_words(self):
        assert clean_entity("laptop jutaan dan kaos ribuan") == "laptop kaos"


def test_to_dict_drops_empty_fields():
    query = ExtractedQuery(
        intent=QueryIntent.SUPERLATIVE,
        confidence=0.85,
        raw_query="laptop termahal",
        entity="laptop",
        attribute="harga",
        operator=Operator.MAX,
        limit=1,
    )

    assert query.to_dict() == {
        "intent": "superlative_query",
        "entity": "laptop",
        "attribute": "harga",
        "operator": "MAX",
        "limit": 1,
        "confidence": 0.85,
        "rawQuery": "laptop termahal",
    }
