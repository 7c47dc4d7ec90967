"""
Tests for AI enrichment with a stubbed text generator
"""
import math
import re
import threading

import pytest

from catalog_extractor.ai_enhancer import (
    AI_CUSTOMS_TARIFF_NUMBER,
    AI_CUSTOMS_TARIFF_TEXT,
    AI_DESCRIPTION,
    AI_HAZARD_CLASSIFICATION,
    AI_KEYWORDS,
    AIEnhancer,
    parse_hazard,
    parse_tariff,
    set_custom_attribute,
)
from catalog_extractor.llm_client import LLMClient
from catalog_extractor.mapper import map_record
from catalog_extractor.schema import DEFAULT_MAPPING


class StubGenerator:
    """Answers by system prompt topic and records every call"""

    def __init__(self, fail_on=None):
        self.fail_on = fail_on
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, system, prompt):
        with self._lock:
            self.calls.append((system, prompt))
        if self.fail_on and self.fail_on in system:
            raise RuntimeError("rate limited")
        if "Zolltarifnummern" in system:
            return "85075000|Nickel-Metallhydrid-Akkumulatoren"
        if "Gefahrgutklassifizierung" in system:
            return "KEIN_GEFAHRGUT"
        if "Produktbeschreibungen" in system:
            return "Leistungsstarker NiMH Akku mit 2850 mAh."
        if "SEO-Experte" in system:
            return "akku, mignon, aa, nimh, ansmann, wiederaufladbar"
        return ""


class TestParsers:
    """Answer parsing"""

    def test_tariff(self):
        assert parse_tariff("85076000|Lithium-Ionen-Akkumulatoren") == {
            "number": "85076000", "text": "Lithium-Ionen-Akkumulatoren",
        }

    def test_tariff_without_text(self):
        assert parse_tariff("85076000") == {"number": "85076000", "text": "85076000"}

    def test_empty_tariff(self):
        assert parse_tariff("") is None
        assert parse_tariff("|nur Text") is None

    @pytest.mark.parametrize("answer,expected", [
        ("GEFAHRGUT", "Ja"),
        ("KEIN_GEFAHRGUT", "Nein"),
        ("UNKLAR", "Unbekannt"),
        ("", None),
    ])
    def test_hazard(self, answer, expected):
        assert parse_hazard(answer) == expected

    def test_set_custom_attribute_replaces(self):
        record = {"customAttributes": [{"key": "ai_keywords", "value": "alt", "type": "string"}]}
        set_custom_attribute(record, "ai_keywords", "neu")
        assert record["customAttributes"] == [{"key": "ai_keywords", "value": "neu", "type": "string"}]


class TestEnhancer:
    """Attribute generation per record"""

    def test_all_attributes(self, sample_record):
        results = AIEnhancer(StubGenerator(), batch_delay=0).enhance_record(sample_record)

        assert results[AI_CUSTOMS_TARIFF_NUMBER] == "85075000"
        assert results[AI_CUSTOMS_TARIFF_TEXT] == "Nickel-Metallhydrid-Akkumulatoren"
        assert results[AI_HAZARD_CLASSIFICATION] == "Nein"
        assert results[AI_DESCRIPTION] == "Leistungsstarker NiMH Akku mit 2850 mAh."
        assert results[AI_KEYWORDS].count(",") == 5
        keys = [a["key"] for a in sample_record.custom_attributes]
        assert AI_CUSTOMS_TARIFF_NUMBER in keys

    def test_prompt_contains_product_data(self, sample_record):
        generator = StubGenerator()
        AIEnhancer(generator, batch_delay=0).enhance_record(sample_record)

        _, prompt = generator.calls[0]
        assert "Akku Mignon AA" in prompt
        assert "1522-0045" in prompt

    def test_no_description_without_source_text(self):
        record = {"productName": "Akku", "articleNumber": "1522-0045"}
        generator = StubGenerator()
        results = AIEnhancer(generator, batch_delay=0).enhance_record(record)

        assert AI_DESCRIPTION not in results
        assert not any("Produktbeschreibungen" in system for system, _ in generator.calls)
        assert len(record["customAttributes"]) == 4

    def test_failing_call_is_skipped(self, sample_record):
        """Test one failing call leaves only its own attributes out"""
        results = AIEnhancer(StubGenerator(fail_on="Zolltarifnummern"), batch_delay=0).enhance_record(sample_record)

        assert AI_CUSTOMS_TARIFF_NUMBER not in results
        assert AI_CUSTOMS_TARIFF_TEXT not in results
        assert results[AI_HAZARD_CLASSIFICATION] == "Nein"

    def test_batches(self):
        records = [{"productName": f"Akku {i}", "articleNumber": str(i)} for i in range(7)]
        results = AIEnhancer(StubGenerator(), batch_size=3, batch_delay=0).enhance_records(records)

        assert len(results) == 7
        assert all(r[AI_CUSTOMS_TARIFF_NUMBER] == "85075000" for r in results)
        assert all(len(r["customAttributes"]) == 4 for r in records)

    def test_batch_pacing(self, monkeypatch):
        """Test batches run one after another with the delay only between them"""
        events = []
        lock = threading.Lock()

        def generate(system, prompt):
            article = int(re.search(r"Artikelnummer: (\d+)", prompt).group(1))
            with lock:
                events.append(("call", article))
            return "85075000|Akkus"

        def record_sleep(seconds):
            with lock:
                events.append(("sleep", seconds))

        monkeypatch.setattr("catalog_extractor.ai_enhancer.time.sleep", record_sleep)
        records = [{"productName": f"Akku {i}", "articleNumber": str(i)} for i in range(7)]
        AIEnhancer(generate, batch_size=3, batch_delay=0.5).enhance_records(records)

        sleeps = [e for e in events if e[0] == "sleep"]
        assert sleeps == [("sleep", 0.5)] * (math.ceil(7 / 3) - 1)
        assert events[-1][0] == "call"

        batch = 0
        for kind, value in events:
            if kind == "sleep":
                batch += 1
            else:
                assert value // 3 == batch
        assert {value for kind, value in events if kind == "call"} == set(range(7))

    def test_mapping_after_enrichment(self, sample_record):
        AIEnhancer(StubGenerator(), batch_delay=0).enhance_records([sample_record])
        row = map_record(sample_record, DEFAULT_MAPPING)

        assert row["v_customs_tariff_number"] == "85075000"
        assert row["v_customs_tariff_text"] == "Nickel-Metallhydrid-Akkumulatoren"


class FakeCompletions:
    def __init__(self, content):
        self.content = content
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        message = type("Message", (), {"content": self.content})()
        choice = type("Choice", (), {"message": message})()
        return type("Response", (), {"choices": [choice]})()


class TestLLMClient:
    """OpenAI client wrapper"""

    def test_requires_api_key(self, monkeypatch):
        monkeypatch.setattr("catalog_extractor.llm_client.OPENAI_API_KEY", None)
        with pytest.raises(ValueError):
            LLMClient()

    def _client(self, content):
        client = LLMClient(api_key="sk-test")
        completions = FakeCompletions(content)
        client.client = type("Client", (), {"chat": type("Chat", (), {"completions": completions})()})()
        return client, completions

    def test_generate(self):
        client, completions = self._client("  85075000|Akkus \n")

        assert client.generate("system", "prompt") == "85075000|Akkus"
        assert completions.kwargs["messages"][0] == {"role": "system", "content": "system"}
        assert completions.kwargs["model"] == client.model

    def test_empty_completion(self):
        client, _ = self._client(None)
        assert client("system", "prompt") == ""
