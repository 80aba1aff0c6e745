"""
Tests for services/intent_extractor.py
Intent Extractor - search-term parsing and degradation to "no lookup".
"""
import asyncio

import pytest

from conftest import FakeModel
from services.intent_extractor import IntentExtractor, parse_search_terms, strip_code_fences
from services.prompts import EXTRACTION_SYSTEM, build_extraction_user_message


class TestParseSearchTerms:
    """Tagged parse result: ok + terms, or malformed."""

    @pytest.mark.parametrize("raw, terms", [
        ('["warranty"]', ["warranty"]),
        ('["unit conversion", "length"]', ["unit conversion", "length"]),
        ("[]", []),
        ('["x", 5]', ["x"]),
        ('[" padded ", "", "   "]', ["padded"]),
        ('```json\n["battery life"]\n```', ["battery life"]),
        ('```\n[]\n```', []),
    ])
    def test_accepted(self, raw, terms):
        result = parse_search_terms(raw)
        assert result.ok is True
        assert result.terms == terms

    @pytest.mark.parametrize("raw", [
        "",
        None,
        "not json",
        '{"terms": ["x"]}',
        '"warranty"',
        "42",
        "[unterminated",
    ])
    def test_malformed(self, raw):
        result = parse_search_terms(raw)
        assert result.ok is False
        assert result.terms == []

    def test_strip_code_fences_leaves_plain_text(self):
        assert strip_code_fences('  ["a"]  ') == '["a"]'


class TestPrompt:
    """Extraction user message layout."""

    def test_with_description(self):
        msg = build_extraction_user_message("Tip Calc", "Splits bills", "How do I split?")
        assert msg == (
            "Product name: Tip Calc\n"
            "Product description: Splits bills\n"
            "User message: How do I split?\n"
            "Output a JSON array of search terms (or [] if not about this product):"
        )

    def test_without_description(self):
        msg = build_extraction_user_message("Tip Calc", None, "hi")
        assert "Product description" not in msg
        assert msg.startswith("Product name: Tip Calc\nUser message: hi")


class TestIntentExtractor:
    """extract() never raises; failures mean no search terms."""

    async def test_returns_terms(self):
        model = FakeModel(generate_replies=['["warranty"]'])
        terms = await IntentExtractor(model).extract("Widget", None, "What is the warranty policy?")

        assert terms == ["warranty"]
        assert model.generate_calls[0]["system_instruction"] == EXTRACTION_SYSTEM
        assert "User message: What is the warranty policy?" in model.generate_calls[0]["prompt"]

    async def test_empty_array_means_skip(self):
        model = FakeModel(generate_replies=["[]"])
        assert await IntentExtractor(model).extract("Widget", None, "hello!") == []

    async def test_malformed_reply_degrades(self):
        model = FakeModel(generate_replies=["Sure! Here are some terms: warranty"])
        assert await IntentExtractor(model).extract("Widget", None, "warranty?") == []

    async def test_model_error_degrades(self):
        model = FakeModel(generate_replies=[RuntimeError("upstream down")])
        assert await IntentExtractor(model).extract("Widget", None, "warranty?") == []

    async def test_timeout_degrades(self):
        class SlowModel(FakeModel):
            async def generate(self, prompt, system_instruction=None):
                await asyncio.sleep(5)
                return '["late"]'

        extractor = IntentExtractor(SlowModel(), timeout=0.01)
        assert await extractor.extract("Widget", None, "warranty?") == []
