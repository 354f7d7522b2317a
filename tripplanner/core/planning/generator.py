"""
Plan generation through Google Gemini.

One attempt per call, no retries and no shared state beyond the configured
client. Every provider-side failure surfaces as UpstreamUnavailable.
"""

import asyncio
import time
from typing import Optional, Protocol

import google.generativeai as genai
import structlog
from google.api_core import exceptions as google_exceptions

from tripplanner.core.errors import UpstreamUnavailable
from tripplanner.core.settings import Settings

logger = structlog.get_logger(__name__)


class PlanGenerator(Protocol):
    async def generate(self, prompt: str) -> str:
        ...


class GeminiPlanGenerator:
    """Sends the built prompt to a Gemini model and returns its raw text."""

    def __init__(self, api_key: str, model_name: str = "gemini-1.5-flash", timeout: float = 60.0):
        if not api_key:
            raise ValueError("A Gemini API key is required")
        genai.configure(api_key=api_key)
        self.model_name = model_name
        self.timeout = timeout
        self._model = genai.GenerativeModel(model_name)

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["GeminiPlanGenerator"]:
        """Build the generator, or return None when no credential is configured."""
        if not settings.generation_enabled:
            logger.error(
                "generation_disabled",
                reason="GEMINI_API_KEY is not set; trip generation will answer upstream_unavailable",
            )
            return None
        return cls(settings.GEMINI_API_KEY, settings.GEMINI_MODEL, settings.GENERATION_TIMEOUT_SECONDS)

    async def generate(self, prompt: str) -> str:
        start = time.time()
        try:
            response = await asyncio.wait_for(
                self._model.generate_content_async(prompt, request_options={"timeout": self.timeout}),
                timeout=self.timeout,
            )
            text = response.text
        except asyncio.TimeoutError:
            logger.error("generation_timeout", model=self.model_name, timeout_seconds=self.timeout)
            raise UpstreamUnavailable("The AI planner did not answer in time. Please try again later.")
        except google_exceptions.GoogleAPIError as e:
            logger.error("generation_failed", model=self.model_name, error=str(e), error_type=type(e).__name__)
            raise UpstreamUnavailable("The AI planner is unavailable right now. Please try again later.") from e
        except ValueError as e:
            # response.text raises ValueError when the candidate was blocked or empty
            logger.error("generation_empty", model=self.model_name, error=str(e))
            raise UpstreamUnavailable("The AI planner returned no usable answer. Please try again.") from e
        except Exception as e:
            logger.error("generation_failed", model=self.model_name, error=str(e),
                         error_type=type(e).__name__, exc_info=True)
            raise UpstreamUnavailable("The AI planner is unavailable right now. Please try again later.") from e

        logger.info("plan_generated", model=self.model_name, chars=len(text),
                    duration_seconds=round(time.time() - start, 2))
        return text
