from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Union

import structlog
from openai import AzureOpenAI, OpenAIError

from . import config
from .errors import GenerationFailed, NotConfigured
from .prompts import build_letter_messages, build_summary_messages

logger = structlog.get_logger(__name__)

SUMMARY_FAILED = "Failed to summarize clinical notes. Please try again later."
LETTER_FAILED = "Failed to generate referrer letter. Please try again later."
NOT_CONFIGURED = (
    "Azure OpenAI is not configured. Please set AZURE_OPENAI_ENDPOINT and "
    "AZURE_OPENAI_API_KEY."
)


class TextGenerationClient:
    """
    Thin wrapper over a chat-completion API for the two clinical text tasks:

        summary = client.summarize(note.content)
        letter = client.draft_letter(summary, "Dr. Jones", patient_name="Ann Lee")

    One request per call, no retries: failures surface as GenerationFailed
    and the caller decides what to do.
    """

    def __init__(self, openai_client: Any, deployment: str):
        self._client = openai_client
        self.deployment = deployment

    @classmethod
    def from_config(cls) -> "TextGenerationClient":
        client = AzureOpenAI(
            azure_endpoint=config.AZURE_OPENAI_ENDPOINT,
            api_key=config.AZURE_OPENAI_API_KEY,
            api_version=config.AZURE_OPENAI_API_VERSION,
            timeout=config.AZURE_OPENAI_TIMEOUT,
            max_retries=0,
        )
        return cls(client, config.AZURE_OPENAI_DEPLOYMENT)

    def _complete(self, messages: list[dict[str, str]]) -> str:
        """Single chat-completion call; returns the first choice's text unmodified."""
        resp = self._client.chat.completions.create(model=self.deployment, messages=messages)
        choices = getattr(resp, "choices", None) or []
        text = choices[0].message.content if choices else None
        if not text:
            raise GenerationFailed("The model returned an empty response.")
        return text

    def summarize(self, clinical_text: str) -> str:
        if not clinical_text or not clinical_text.strip():
            raise ValueError("Clinical notes cannot be empty.")

        logger.debug("summarize_request", deployment=self.deployment, note_length=len(clinical_text))
        start = time.perf_counter()
        try:
            summary = self._complete(build_summary_messages(clinical_text))
        except OpenAIError as e:
            logger.error("summarize_upstream_failed", error=str(e), status=getattr(e, "status_code", None))
            raise GenerationFailed(SUMMARY_FAILED) from e
        except GenerationFailed as e:
            logger.error("summarize_empty_response", error=e.message)
            raise GenerationFailed(SUMMARY_FAILED) from e

        logger.info("summarize_completed", duration_ms=round((time.perf_counter() - start) * 1000))
        return summary

    def draft_letter(
        self,
        soap_summary: str,
        referrer_name: str,
        referrer_address: str | None = None,
        patient_name: str | None = None,
    ) -> str:
        if not soap_summary or not soap_summary.strip():
            raise ValueError("SOAP summary cannot be empty.")
        if not referrer_name or not referrer_name.strip():
            raise ValueError("Referrer name cannot be empty.")

        logger.debug("letter_request", deployment=self.deployment, referrer=referrer_name)
        start = time.perf_counter()
        messages = build_letter_messages(soap_summary, referrer_name, referrer_address, patient_name)
        try:
            letter = self._complete(messages)
        except OpenAIError as e:
            logger.error("letter_upstream_failed", error=str(e), status=getattr(e, "status_code", None))
            raise GenerationFailed(LETTER_FAILED) from e
        except GenerationFailed as e:
            logger.error("letter_empty_response", error=e.message)
            raise GenerationFailed(LETTER_FAILED) from e

        logger.info("letter_completed", duration_ms=round((time.perf_counter() - start) * 1000))
        return letter


# =========================
# Availability (resolved once at startup)
# =========================
@dataclass(frozen=True)
class ConfiguredAI:
    client: TextGenerationClient


@dataclass(frozen=True)
class UnconfiguredAI:
    reason: str = NOT_CONFIGURED


AIBackend = Union[ConfiguredAI, UnconfiguredAI]


def build_ai_backend() -> AIBackend:
    if not config.AZURE_OPENAI_ENDPOINT or not config.AZURE_OPENAI_API_KEY:
        logger.warning("ai_not_configured", hint="set AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY")
        return UnconfiguredAI()

    client = TextGenerationClient.from_config()
    logger.info("ai_configured", deployment=client.deployment)
    return ConfiguredAI(client)


def require_client(backend: AIBackend) -> TextGenerationClient:
    if isinstance(backend, ConfiguredAI):
        return backend.client
    raise NotConfigured(backend.reason)
