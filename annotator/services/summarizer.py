"""
Document summarization with Google Gemini.

Summaries are optional: a missing API key, empty text or any API failure
yields an empty summary instead of failing the upload.
"""

import logging
from abc import ABC, abstractmethod

import google.generativeai as genai
from tenacity import retry, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

SUMMARY_MAX_RETRIES = 3

SUMMARY_PROMPT = """Please provide a concise summary of the following text. Focus on the main points and key information:

{text}

Please provide the summary in a clear, well-structured format."""


def _is_transient(retry_state) -> bool:
    error = retry_state.outcome.exception()
    if error is None:
        return False
    message = str(error).lower()
    return any(p in message for p in ["503", "504", "429", "rate limit", "overloaded", "resource exhausted"])


class Summarizer(ABC):
    """Produces a short summary of extracted document text."""

    @abstractmethod
    def summarize(self, text: str) -> str:
        """Return a summary, or an empty string when none is available."""


class NullSummarizer(Summarizer):
    """Used when no summarization backend is configured."""

    def summarize(self, text: str) -> str:
        return ""


class GeminiSummarizer(Summarizer):
    """Summarizes text with a Gemini model."""

    def __init__(self, api_key: str, model_name: str = "gemini-2.5-flash", max_chars: int = 10000):
        self._api_key = api_key
        self.model_name = model_name
        self.max_chars = max_chars
        self._model = None

    @property
    def model(self):
        """Get or create Gemini model instance."""
        if self._model is None:
            genai.configure(api_key=self._api_key)
            self._model = genai.GenerativeModel(self.model_name)
        return self._model

    def summarize(self, text: str) -> str:
        if not self._api_key:
            logger.warning("Gemini API key is not configured - skipping summary")
            return ""
        if not text:
            return ""

        prompt = SUMMARY_PROMPT.format(text=text[: self.max_chars])
        try:
            return self._generate(prompt)
        except Exception as e:
            logger.error(f"Error generating summary with Gemini: {e}")
            return ""

    @retry(
        stop=stop_after_attempt(SUMMARY_MAX_RETRIES),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        retry=_is_transient,
        reraise=True,
    )
    def _generate(self, prompt: str) -> str:
        response = self.model.generate_content(prompt)
        if response.candidates and response.candidates[0].content.parts:
            return response.candidates[0].content.parts[0].text
        return ""


def create_summarizer(settings) -> Summarizer:
    """Gemini when an API key is configured, otherwise a no-op summarizer."""
    if settings.gemini_api_key:
        return GeminiSummarizer(
            api_key=settings.gemini_api_key,
            model_name=settings.gemini_model,
            max_chars=settings.summary_max_chars,
        )
    logger.info("GEMINI_API_KEY not set - document summaries disabled")
    return NullSummarizer()
