"""
Text-generation client and prompt construction, without HTTP.
"""
import httpx
import openai
import pytest

from dentalai.ai_service import (
    ConfiguredAI,
    TextGenerationClient,
    UnconfiguredAI,
    build_ai_backend,
    require_client,
)
from dentalai.errors import GenerationFailed, NotConfigured
from dentalai.prompts import (
    LETTER_SYSTEM_PROMPT,
    SOAP_SYSTEM_PROMPT,
    build_letter_messages,
    build_summary_messages,
)


def test_summary_messages_embed_raw_text():
    system, user = build_summary_messages("raw clinical text")

    assert system == {"role": "system", "content": SOAP_SYSTEM_PROMPT}
    assert user["role"] == "user"
    assert user["content"].endswith("Clinical notes:\nraw clinical text")


def test_soap_prompt_demands_four_sections_and_not_documented_marker():
    for heading in ("- Subjective:", "- Objective:", "- Assessment:", "- Plan:"):
        assert heading in SOAP_SYSTEM_PROMPT
    assert "'Not documented.'" in SOAP_SYSTEM_PROMPT


def test_letter_messages_without_patient_name_use_placeholder():
    system, user = build_letter_messages("Assessment: pulpitis", "Dr. Jones")

    assert system["content"] == LETTER_SYSTEM_PROMPT
    assert "I am referring [Patient Name] for" in user["content"]
    assert "Patient Name:" not in user["content"]
    assert "Using this SOAP summary:\nAssessment: pulpitis" in user["content"]


def test_letter_prompt_closes_with_sincerely():
    assert "'Sincerely, [Your Name]'" in LETTER_SYSTEM_PROMPT


def test_summarize_returns_first_choice(fake_llm):
    fake_llm.reply = "  Subjective:\n\nPain.  "
    client = TextGenerationClient(fake_llm, deployment="gpt-4")

    assert client.summarize("some note") == "  Subjective:\n\nPain.  "
    assert fake_llm.calls[0]["model"] == "gpt-4"


def test_blank_input_is_rejected_before_any_call(fake_llm):
    client = TextGenerationClient(fake_llm, deployment="gpt-4")

    with pytest.raises(ValueError):
        client.summarize("  ")
    with pytest.raises(ValueError):
        client.draft_letter("summary", "")
    assert fake_llm.calls == []


def test_provider_error_becomes_generation_failed_without_retry(fake_llm):
    fake_llm.error = openai.APIConnectionError(request=httpx.Request("POST", "https://example.invalid"))
    client = TextGenerationClient(fake_llm, deployment="gpt-4")

    with pytest.raises(GenerationFailed) as excinfo:
        client.summarize("some note")

    assert "try again later" in excinfo.value.message
    assert len(fake_llm.calls) == 1


def test_empty_model_reply_is_a_failure(fake_llm):
    fake_llm.reply = ""
    client = TextGenerationClient(fake_llm, deployment="gpt-4")

    with pytest.raises(GenerationFailed):
        client.draft_letter("summary", "Dr. Jones")


def test_availability_variant():
    client = TextGenerationClient(object(), deployment="gpt-4")

    assert require_client(ConfiguredAI(client)) is client
    with pytest.raises(NotConfigured):
        require_client(UnconfiguredAI())


def test_blank_settings_build_unconfigured_backend():
    assert isinstance(build_ai_backend(), UnconfiguredAI)
