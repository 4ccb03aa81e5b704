"""
Tests for the Gemini agents

A fake model stands in for google.generativeai; no network calls.
"""

import asyncio
import json
import pytest
from decimal import Decimal
from types import SimpleNamespace

from google.api_core import exceptions as google_exceptions

from src.agents import (
    InsightAgent,
    SmartAddAgent,
    UpstreamError,
    extract_json_object,
    heuristic_parse,
)
from src.config import GeminiSettings
from src.models.subscription import BillingCycle, InsightReport, ParseFailure, PartialDraft


class FakeModel:
    """Returns queued responses; exceptions in the queue are raised."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts = []

    async def generate_content_async(self, prompt):
        self.prompts.append(prompt)
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return SimpleNamespace(text=item)


class SlowModel:
    async def generate_content_async(self, prompt):
        await asyncio.sleep(5)
        return SimpleNamespace(text="{}")


@pytest.fixture
def settings():
    return GeminiSettings(api_key="test-key", timeout_seconds=0.5)


class TestExtractJson:
    """Tests for pulling JSON out of model text."""

    def test_plain_json(self):
        """Test a bare JSON object."""
        assert extract_json_object('{"a": 1}') == {"a": 1}

    def test_markdown_fence(self):
        """Test a fenced JSON block."""
        text = 'Sure!\n```json\n{"name": "Netflix"}\n```\nAnything else?'
        assert extract_json_object(text) == {"name": "Netflix"}

    def test_surrounding_chatter(self):
        """Test JSON embedded in prose."""
        assert extract_json_object('Here: {"x": [1, 2]} done') == {"x": [1, 2]}

    @pytest.mark.parametrize("text", ["", "no json here", "{broken", "[1, 2]"])
    def test_unusable_text(self, text):
        """Test that non-objects return None."""
        assert extract_json_object(text) is None


class TestInsightAgent:
    """Tests for InsightAgent."""

    @pytest.mark.asyncio
    async def test_valid_response(self, settings, netflix_and_dropbox):
        """Test a well-formed insight response."""
        model = FakeModel(json.dumps({
            "summary": "You spend most on entertainment.",
            "savingsOpportunities": ["Drop Netflix", "Share Dropbox", "Go annual"],
        }))
        agent = InsightAgent(settings, model=model)

        report = await agent.get_insights(netflix_and_dropbox)

        assert isinstance(report, InsightReport)
        assert report.summary == "You spend most on entertainment."
        assert len(report.savings_opportunities) == 3
        assert report.total_projected == Decimal("311.88")

    @pytest.mark.asyncio
    async def test_prompt_lists_subscriptions_and_total(self, settings, netflix_and_dropbox):
        """Test that the prompt carries the real data."""
        model = FakeModel('{"summary": "ok", "savingsOpportunities": []}')
        await InsightAgent(settings, model=model).get_insights(netflix_and_dropbox)

        prompt = model.prompts[0]
        assert "- Netflix: $15.99/monthly (Category: Entertainment)" in prompt
        assert "Monthly Total: $25.99" in prompt

    @pytest.mark.asyncio
    async def test_model_total_is_ignored(self, settings, netflix_and_dropbox):
        """Test that the projected total is always computed locally."""
        model = FakeModel('{"summary": "ok", "savingsOpportunities": [], "totalProjected": 99999}')
        report = await InsightAgent(settings, model=model).get_insights(netflix_and_dropbox)
        assert report.total_projected == Decimal("311.88")

    @pytest.mark.asyncio
    async def test_extra_tips_are_truncated(self, settings, netflix_and_dropbox):
        """Test that only three tips are kept."""
        model = FakeModel(json.dumps({"summary": "ok", "savingsOpportunities": ["1", "2", "3", "4", "5"]}))
        report = await InsightAgent(settings, model=model).get_insights(netflix_and_dropbox)
        assert report.savings_opportunities == ["1", "2", "3"]

    @pytest.mark.asyncio
    async def test_non_json_is_parse_failure(self, settings, netflix_and_dropbox):
        """Test that prose responses are tagged failures."""
        model = FakeModel("I think you should cancel things.")
        result = await InsightAgent(settings, model=model).get_insights(netflix_and_dropbox)
        assert isinstance(result, ParseFailure)
        assert result.raw_text == "I think you should cancel things."

    @pytest.mark.asyncio
    async def test_wrong_shape_is_parse_failure(self, settings, netflix_and_dropbox):
        """Test schema validation of the JSON object."""
        model = FakeModel('{"summary": 42, "savingsOpportunities": "save money"}')
        result = await InsightAgent(settings, model=model).get_insights(netflix_and_dropbox)
        assert isinstance(result, ParseFailure)

    @pytest.mark.asyncio
    async def test_api_error_is_upstream_error(self, settings, netflix_and_dropbox):
        """Test that non-transient API errors are not retried."""
        model = FakeModel(google_exceptions.PermissionDenied("bad key"))
        with pytest.raises(UpstreamError):
            await InsightAgent(settings, model=model).get_insights(netflix_and_dropbox)
        assert len(model.prompts) == 1

    @pytest.mark.asyncio
    async def test_unexpected_client_error_is_upstream_error(self, settings, netflix_and_dropbox):
        """Test that errors outside google.api_core are wrapped, not leaked."""
        model = FakeModel(RuntimeError("blocked prompt"))
        with pytest.raises(UpstreamError) as exc_info:
            await InsightAgent(settings, model=model).get_insights(netflix_and_dropbox)
        assert "RuntimeError" in str(exc_info.value)
        assert len(model.prompts) == 1

    @pytest.mark.asyncio
    async def test_transient_error_is_retried(self, settings, netflix_and_dropbox):
        """Test that a transient failure is retried."""
        model = FakeModel(
            google_exceptions.ServiceUnavailable("busy"),
            '{"summary": "ok", "savingsOpportunities": ["a"]}',
        )
        report = await InsightAgent(settings, model=model).get_insights(netflix_and_dropbox)
        assert isinstance(report, InsightReport)
        assert len(model.prompts) == 2

    @pytest.mark.asyncio
    async def test_timeout_is_upstream_error(self, settings, netflix_and_dropbox):
        """Test that a slow model is cut off."""
        with pytest.raises(UpstreamError):
            await InsightAgent(settings, model=SlowModel()).get_insights(netflix_and_dropbox)


class TestSmartAddAgent:
    """Tests for SmartAddAgent."""

    @pytest.mark.asyncio
    async def test_parses_json_draft(self, settings):
        """Test a well-formed smart add response."""
        model = FakeModel(
            '{"name": "Netflix", "amount": 15.99, "billingDate": 5, "cycle": "MONTHLY", "category": "Entertainment"}'
        )
        result = await SmartAddAgent(settings, model=model).parse_free_text("Netflix 15.99 on the 5th")

        assert isinstance(result, PartialDraft)
        assert result.name == "Netflix"
        assert result.billing_date == 5
        assert "Netflix 15.99 on the 5th" in model.prompts[0]

    @pytest.mark.asyncio
    async def test_garbage_is_parse_failure(self, settings):
        """Test non-JSON output."""
        model = FakeModel("Sorry, I can't help with that.")
        result = await SmartAddAgent(settings, model=model).parse_free_text("???")
        assert isinstance(result, ParseFailure)

    @pytest.mark.asyncio
    async def test_blocked_response_is_upstream_error(self, settings):
        """Test that a missing response text is an upstream problem."""
        model = FakeModel(ValueError("response was blocked"))
        with pytest.raises(UpstreamError):
            await SmartAddAgent(settings, model=model).parse_free_text("Netflix 15.99")


class TestHeuristicParse:
    """Tests for the local fallback parser."""

    def test_name_amount_and_ordinal_day(self):
        """Test the common 'name price on the Nth' shape."""
        result = heuristic_parse("Netflix 15.99 on the 5th")
        assert result.name == "Netflix"
        assert result.amount == "15.99"
        assert result.billing_date == 5
        assert result.cycle == BillingCycle.MONTHLY.value

    def test_yearly_keyword(self):
        """Test that yearly words switch the cycle."""
        result = heuristic_parse("Dropbox $120 yearly on the 10th")
        assert result.name == "Dropbox"
        assert result.amount == "120"
        assert result.cycle == BillingCycle.YEARLY.value
        assert result.billing_date == 10

    def test_multi_word_name_and_currency(self):
        """Test names with spaces before a currency sign."""
        result = heuristic_parse("ChatGPT Plus $20 on the 20th")
        assert result.name == "ChatGPT Plus"
        assert result.amount == "20"
        assert result.billing_date == 20

    def test_no_day(self):
        """Test that the day is left unset when absent."""
        result = heuristic_parse("Spotify 9.99")
        assert result.billing_date is None

    @pytest.mark.parametrize("text,name,amount", [
        ("1Password 2.99 on the 3rd", "1Password", "2.99"),
        ("7digital 5 monthly", "7digital", "5"),
        ("365Scores 3.50", "365Scores", "3.50"),
    ])
    def test_names_starting_with_digits(self, text, name, amount):
        """Test that digits inside a name are not taken as the price."""
        result = heuristic_parse(text)
        assert result.name == name
        assert result.amount == amount

    @pytest.mark.parametrize("text", ["", "   ", "just some words", "15.99"])
    def test_unparseable(self, text):
        """Test that text without both a name and a price yields None."""
        assert heuristic_parse(text) is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
