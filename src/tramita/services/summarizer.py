"""Free-text case summaries produced by a generative model.

Summaries are advisory: a failed or unconfigured summarizer yields a
placeholder text and never blocks the workflow.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

import httpx

from tramita import config
from tramita.domain.entities import Case
from tramita.domain.sla import case_urgency

logger = logging.getLogger(__name__)

PLACEHOLDER_NO_SUMMARIZER = "Summary unavailable: no summarizer configured."
PLACEHOLDER_FAILURE = "Summary unavailable: the summarizer did not respond. Check the case manually in SEI."

PROMPT_TEMPLATE = (
    "You are an expert in public administration workflow efficiency.\n"
    "Analyse SEI process {sei_number} - \"{object}\".\n"
    "Current location: {current_unit}.\n"
    "History: {movement_count} movements.\n"
    "SLA: {sla}.\n"
    "Write a short executive summary of the status, the likely bottleneck "
    "and one immediate recommendation for the manager."
)


class SummarizerError(Exception):
    """The summarizer could not produce a summary."""


class Summarizer(ABC):
    """Abstract interface for text summarization backends."""

    @abstractmethod
    async def summarize(self, prompt: str) -> str:
        """Return a summary for ``prompt``.

        Raises:
            SummarizerError: If no summary could be produced
        """
        pass


class GeminiSummarizer(Summarizer):
    """Summarizer backed by the Gemini ``generateContent`` REST endpoint."""

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
        base_url: str = config.GEMINI_ENDPOINT,
    ):
        """Initialize Gemini summarizer.

        Args:
            api_key: Gemini API key
            model: Model name, defaults to the configured one
            client: Shared HTTP client; a short-lived one is opened per call
                when omitted
            timeout: Request timeout in seconds for the short-lived client
            base_url: Models endpoint
        """
        self.api_key = api_key
        self.model = model or config.get_gemini_model()
        self.client = client
        self.timeout = timeout
        self.base_url = base_url

    @classmethod
    def from_config(cls) -> Optional["GeminiSummarizer"]:
        """Build a summarizer from the environment, or None without API key."""
        api_key = config.get_gemini_api_key()
        if not api_key:
            return None
        return cls(api_key=api_key, model=config.get_gemini_model())

    def _build_payload(self, prompt: str) -> dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": 0.3, "maxOutputTokens": 512},
        }

    def _extract_content(self, data: dict[str, Any]) -> str:
        candidates = data.get("candidates", [])
        if not candidates:
            block_reason = data.get("promptFeedback", {}).get("blockReason")
            if block_reason:
                logger.warning("Gemini prompt blocked: blockReason=%s", block_reason)
            return ""
        for part in candidates[0].get("content", {}).get("parts", []):
            text = part.get("text", "")
            if text:
                return text
        return ""

    async def _post(self, client: httpx.AsyncClient, prompt: str) -> dict[str, Any]:
        url = f"{self.base_url}/{self.model}:generateContent"
        response = await client.post(url, params={"key": self.api_key}, json=self._build_payload(prompt))
        response.raise_for_status()
        return response.json()

    async def summarize(self, prompt: str) -> str:
        try:
            if self.client is not None:
                data = await self._post(self.client, prompt)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    data = await self._post(client, prompt)
        except httpx.HTTPStatusError as e:
            raise SummarizerError(f"HTTP {e.response.status_code}: {e.response.text[:200]}") from e
        except httpx.HTTPError as e:
            raise SummarizerError(f"{type(e).__name__}: {e}") from e

        content = self._extract_content(data).strip()
        if not content:
            raise SummarizerError("Empty response from Gemini")
        return content


def build_prompt(case: Case, now: datetime) -> str:
    """Prompt describing a case for the summarizer."""
    result = case_urgency(case, now)
    if result is None:
        sla = "awaiting first movement"
    elif result.delay_days:
        sla = f"{result.urgency.value}, {result.delay_days} days late"
    else:
        sla = f"{result.urgency.value}, {result.days_remaining} days remaining"
    return PROMPT_TEMPLATE.format(
        sei_number=case.sei_number,
        object=case.object,
        current_unit=case.current_unit or "not yet moved",
        movement_count=len(case.movements),
        sla=sla,
    )


class CaseSummaryService:
    """Produces advisory summaries for cases."""

    def __init__(self, summarizer: Optional[Summarizer] = None):
        self.summarizer = summarizer

    async def summarize_case(self, case: Case, now: datetime) -> str:
        """Summarize a case, falling back to a placeholder text on any failure."""
        if self.summarizer is None:
            return PLACEHOLDER_NO_SUMMARIZER
        prompt = build_prompt(case, now)
        try:
            return await self.summarizer.summarize(prompt)
        except Exception as e:
            logger.warning("Summary of case %s failed: %s", case.id, e)
            return PLACEHOLDER_FAILURE
