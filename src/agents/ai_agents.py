"""
AI Agents for SubTrack

DESIGN DECISION: Gemini is treated as an opaque text service. Every
response goes through the same boundary:
1. Extract the JSON object from the response text
2. Validate it against a Pydantic schema
3. Return a tagged result: the model, or ParseFailure

CRITICAL BOUNDARIES:

1. INSIGHT AGENT:
   - CAN: Write a short summary and savings tips
   - CANNOT: Decide the projected total (computed locally from the data)

2. SMART-ADD AGENT:
   - CAN: Propose a PartialDraft from free text
   - CANNOT: Persist anything; the draft MUST pass the normalizer

The LLM is a TRANSLATOR, not an ORACLE.
Transport failures and timeouts raise UpstreamError; callers own the fallback.
"""

import asyncio
import json
import re
from typing import Any, Optional, Sequence, Union

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from pydantic import BaseModel, Field, ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.analytics.aggregation import monthly_total, yearly_projection
from src.config import GeminiSettings, get_settings
from src.models.subscription import (
    BillingCycle,
    InsightReport,
    ParseFailure,
    PartialDraft,
    Subscription,
)

# Worth another attempt; anything else fails fast
TRANSIENT_ERRORS = (
    google_exceptions.ServiceUnavailable,
    google_exceptions.ResourceExhausted,
    google_exceptions.InternalServerError,
    google_exceptions.DeadlineExceeded,
)

_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


class UpstreamError(Exception):
    """AI service unreachable, timed out, or refused to answer."""
    pass


class InsightPayload(BaseModel):
    """Shape we accept from the insights prompt."""

    summary: str = Field(min_length=1)
    savingsOpportunities: list[str] = Field(default_factory=list)


def extract_json_object(text: str) -> Optional[dict[str, Any]]:
    """
    Pull the first JSON object out of a model response.

    Tolerates markdown code fences and chatter around the object.
    Returns None when no object can be decoded.
    """
    if not text:
        return None

    fenced = _FENCE.search(text)
    if fenced:
        text = fenced.group(1)

    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        return None

    try:
        data = json.loads(text[start:end])
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


class GeminiAgent:
    """
    Shared plumbing for the Gemini-backed agents.

    `model` can be injected (anything with an async
    `generate_content_async(prompt)` returning an object with `.text`).
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Any = None,
    ):
        self._settings = settings or get_settings().gemini
        self._model = model if model is not None else self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    @retry(
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    async def _call_model(self, prompt: str) -> str:
        response = await asyncio.wait_for(
            self._model.generate_content_async(prompt),
            timeout=self._settings.timeout_seconds,
        )
        return response.text

    async def _generate(self, prompt: str) -> str:
        """Run the prompt, translating every transport problem to UpstreamError."""
        try:
            return (await self._call_model(prompt)).strip()
        except asyncio.TimeoutError as e:
            raise UpstreamError(
                f"Gemini did not answer within {self._settings.timeout_seconds:g}s"
            ) from e
        except google_exceptions.GoogleAPIError as e:
            raise UpstreamError(f"Gemini API error: {e}") from e
        except ValueError as e:
            # Raised by response.text when the candidate was blocked
            raise UpstreamError(f"Gemini returned no text: {e}") from e
        except Exception as e:
            # Blocked prompts, missing credentials and transport errors outside google.api_core
            raise UpstreamError(f"Gemini call failed: {type(e).__name__}: {e}") from e


class InsightAgent(GeminiAgent):
    """
    Produces a spending summary and savings tips.

    BOUNDARIES:
    - Only sees the subscriptions it is given
    - total_projected is ALWAYS monthly_total * 12, never the model's number
    """

    @staticmethod
    def build_prompt(subscriptions: Sequence[Subscription]) -> str:
        lines = "\n".join(
            f"- {s.name}: ${s.amount}/{s.cycle.value.lower()} (Category: {s.category})"
            for s in subscriptions
        )
        total = monthly_total(subscriptions)

        return f"""You are a financial advisor analyzing subscription spending. Provide insights for the following subscriptions:

{lines}

Monthly Total: ${total:.2f}

Provide:
1. A brief summary (1-2 sentences) about their subscription spending
2. 3 specific savings opportunities

Format your response as JSON with keys: "summary" (string) and "savingsOpportunities" (array of 3 strings)
Only respond with valid JSON, no markdown formatting."""

    async def get_insights(
        self,
        subscriptions: Sequence[Subscription],
    ) -> Union[InsightReport, ParseFailure]:
        """
        Ask Gemini for insights on the given subscriptions.

        Returns:
            InsightReport with at most three tips, or ParseFailure
            when the response does not match the expected schema

        Raises:
            UpstreamError: If the service cannot be reached
        """
        text = await self._generate(self.build_prompt(subscriptions))

        data = extract_json_object(text)
        if data is None:
            return ParseFailure(reason="Response was not a JSON object", raw_text=text)

        try:
            payload = InsightPayload.model_validate(data)
        except ValidationError as e:
            return ParseFailure(
                reason=f"Response did not match the insight schema: {e.error_count()} error(s)",
                raw_text=text,
            )

        tips = [tip.strip() for tip in payload.savingsOpportunities if tip.strip()]
        return InsightReport(
            summary=payload.summary.strip(),
            savings_opportunities=tips[:3],
            total_projected=yearly_projection(subscriptions),
        )


class SmartAddAgent(GeminiAgent):
    """
    Converts free text like "Netflix 15.99 on the 5th" into a PartialDraft.

    The draft is PROPOSED data. It still has to pass the normalizer.
    """

    @staticmethod
    def build_prompt(text: str) -> str:
        return f"""Parse this subscription input: "{text}"

Extract and return as JSON:
{{
  "name": "service name",
  "amount": number (price),
  "billingDate": number (day of month, 1-31, or null to use 1),
  "cycle": "MONTHLY" or "YEARLY",
  "category": "category name"
}}

Only return valid JSON, nothing else."""

    async def parse_free_text(self, text: str) -> Union[PartialDraft, ParseFailure]:
        """
        Raises:
            UpstreamError: If the service cannot be reached
        """
        response = await self._generate(self.build_prompt(text))

        data = extract_json_object(response)
        if data is None:
            return ParseFailure(reason="Response was not a JSON object", raw_text=response)

        try:
            return PartialDraft.model_validate(data)
        except ValidationError as e:
            return ParseFailure(
                reason=f"Response did not match the draft schema: {e.error_count()} error(s)",
                raw_text=response,
            )


# =============================================================================
# LOCAL FALLBACK
# =============================================================================

# A number standing on its own; "1Password" or "365days" are part of a name
_HEURISTIC_AMOUNT = re.compile(
    r"[$€£]?\s*(?<![\w.])(\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d+(?:\.\d{1,2})?)"
    r"(?!\w|\.\d)(?!\s*(?:st|nd|rd|th)\b)"
)
_HEURISTIC_DAY = re.compile(
    r"\b(?:on\s+(?:the\s+)?)?(\d{1,2})(?:st|nd|rd|th)\b",
    re.IGNORECASE,
)
_HEURISTIC_DAY_WORDED = re.compile(r"\b(?:day|on the|on)\s+(\d{1,2})\b", re.IGNORECASE)
_YEARLY_WORDS = re.compile(r"\byear|\bannual|/yr\b", re.IGNORECASE)
_NAME_STOP = re.compile(
    r"[$€£]|(?<!\w)\d+(?:[.,]\d+)*(?:st|nd|rd|th)?(?!\w)|"
    r"\b(?:on|every|per|a|at|for|billed|monthly|yearly|annual)\b", re.IGNORECASE)


def heuristic_parse(text: str) -> Optional[PartialDraft]:
    """
    Deterministic best-effort parse used when Gemini is unavailable.

    Recognizes a leading service name, the first price-looking number,
    an ordinal day ("5th", "on the 12th") and yearly keywords.
    Returns None when no name or amount can be found.
    """
    raw = (text or "").strip()
    if not raw:
        return None

    day = None
    day_match = _HEURISTIC_DAY.search(raw) or _HEURISTIC_DAY_WORDED.search(raw)
    if day_match:
        day = int(day_match.group(1))
        # Do not mistake the day for the price
        remainder = raw[:day_match.start()] + raw[day_match.end():]
    else:
        remainder = raw

    amount_match = _HEURISTIC_AMOUNT.search(remainder)
    if not amount_match:
        return None

    stop = _NAME_STOP.search(raw)
    name = raw[:stop.start()] if stop else raw
    name = name.strip(" -:,")
    if not name:
        return None

    cycle = BillingCycle.YEARLY if _YEARLY_WORDS.search(raw) else BillingCycle.MONTHLY

    return PartialDraft(
        name=name,
        amount=amount_match.group(1),
        billing_date=day,
        cycle=cycle.value,
    )
