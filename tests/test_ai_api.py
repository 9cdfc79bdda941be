"""
AI endpoints: short-note guard, write-back onto notes, and error mapping.
"""
import httpx
import openai
import pytest

from dentalai.ai_service import LETTER_FAILED, SUMMARY_FAILED

LONG_NOTE = (
    "Pt c/o sharp pain UL6 on cold stimuli x3 days. O/E: caries UL6, cold test +ve, "
    "percussion -ve. Dx irreversible pulpitis UL6. Plan: RCT referral."
)


@pytest.fixture
def note(client, make_patient):
    p = make_patient("Ann", "Lee")
    return client.post(f"/api/patients/{p['id']}/notes", json={"content": LONG_NOTE}).json()


def _connection_error() -> openai.APIConnectionError:
    return openai.APIConnectionError(request=httpx.Request("POST", "https://example.openai.azure.com"))


class TestSummarize:
    def test_returns_model_text_unmodified(self, ai_client, fake_llm):
        resp = ai_client.post("/api/ai/summarize", json={"noteContent": LONG_NOTE})

        assert resp.status_code == 200
        summary = resp.json()["summary"]
        assert summary == fake_llm.reply
        for heading in ("Subjective:", "Objective:", "Assessment:", "Plan:"):
            assert heading in summary
        call = fake_llm.calls[0]
        assert call["model"] == "test-deployment"
        assert LONG_NOTE in call["messages"][1]["content"]

    def test_short_note_never_reaches_the_model(self, ai_client, fake_llm):
        resp = ai_client.post("/api/ai/summarize", json={"noteContent": "   toothache UL6   "})

        assert resp.status_code == 200
        assert resp.json()["summary"] == (
            "Insufficient detail to produce a SOAP summary. Original note: 'toothache UL6'"
        )
        assert fake_llm.calls == []

    def test_short_note_works_without_ai_configured(self, client):
        resp = client.post("/api/ai/summarize", json={"noteContent": "pain"})

        assert resp.status_code == 200
        assert "Original note: 'pain'" in resp.json()["summary"]

    def test_short_note_message_is_saved_on_note(self, ai_client, make_patient):
        p = make_patient()
        n = ai_client.post(f"/api/patients/{p['id']}/notes", json={"content": "brief"}).json()

        ai_client.post("/api/ai/summarize", json={"noteContent": "brief", "noteId": n["id"]})

        saved = ai_client.get(f"/api/notes/{n['id']}").json()
        assert saved["summary"].startswith("Insufficient detail")
        assert saved["content"] == "brief"

    def test_summary_is_written_onto_note(self, ai_client, fake_llm, note):
        resp = ai_client.post("/api/ai/summarize", json={"noteContent": LONG_NOTE, "noteId": note["id"]})

        assert resp.status_code == 200
        saved = ai_client.get(f"/api/notes/{note['id']}").json()
        assert saved["summary"] == fake_llm.reply
        assert saved["content"] == LONG_NOTE
        assert saved["updatedAt"] != note["updatedAt"]

    def test_missing_note_still_returns_summary(self, ai_client, fake_llm):
        resp = ai_client.post("/api/ai/summarize", json={"noteContent": LONG_NOTE, "noteId": 999})

        assert resp.status_code == 200
        assert resp.json()["summary"] == fake_llm.reply

    @pytest.mark.parametrize("payload", [{}, {"noteContent": ""}, {"noteContent": "   "}])
    def test_content_is_required(self, ai_client, payload):
        resp = ai_client.post("/api/ai/summarize", json=payload)

        assert resp.status_code == 400
        assert resp.json()["detail"] == "Note content is required."

    def test_unconfigured_provider_is_a_400(self, client):
        resp = client.post("/api/ai/summarize", json={"noteContent": LONG_NOTE})

        assert resp.status_code == 400
        assert "not configured" in resp.json()["error"]

    def test_upstream_failure_is_a_400_with_generic_message(self, ai_client, fake_llm):
        fake_llm.error = _connection_error()

        resp = ai_client.post("/api/ai/summarize", json={"noteContent": LONG_NOTE})

        assert resp.status_code == 400
        assert resp.json() == {"error": SUMMARY_FAILED}
        assert len(fake_llm.calls) == 1

    def test_unexpected_failure_is_a_500(self, ai_client, fake_llm):
        fake_llm.error = RuntimeError("boom")

        resp = ai_client.post("/api/ai/summarize", json={"noteContent": LONG_NOTE})

        assert resp.status_code == 500
        assert "boom" not in resp.text


class TestLetter:
    def test_letter_is_returned_and_saved(self, ai_client, fake_llm, note):
        fake_llm.reply = "Dear Dr. Jones,\n\nI am referring Ann Lee for RCT UL6.\n\nSincerely,"

        resp = ai_client.post(
            "/api/ai/letter",
            json={"soapSummary": "Assessment: pulpitis", "referrerName": "Dr. Jones", "noteId": note["id"]},
        )

        assert resp.status_code == 200
        assert resp.json()["letter"] == fake_llm.reply
        assert ai_client.get(f"/api/notes/{note['id']}").json()["letter"] == fake_llm.reply

    def test_patient_name_falls_back_to_note_owner(self, ai_client, fake_llm, note):
        ai_client.post(
            "/api/ai/letter",
            json={"soapSummary": "Assessment: pulpitis", "referrerName": "Dr. Jones", "noteId": note["id"]},
        )

        user_prompt = fake_llm.calls[0]["messages"][1]["content"]
        assert "Patient Name: Ann Lee" in user_prompt
        assert "[Patient Name]" not in user_prompt

    def test_explicit_patient_name_wins(self, ai_client, fake_llm, note):
        ai_client.post(
            "/api/ai/letter",
            json={
                "soapSummary": "Assessment: pulpitis",
                "referrerName": "Dr. Jones",
                "referrerAddress": "1 High St",
                "noteId": note["id"],
                "patientName": "A. Lee",
            },
        )

        user_prompt = fake_llm.calls[0]["messages"][1]["content"]
        assert "I am referring A. Lee for" in user_prompt
        assert "Dr. Jones\n1 High St" in user_prompt

    @pytest.mark.parametrize(
        "payload, message",
        [
            ({"referrerName": "Dr. Jones"}, "SOAP summary is required."),
            ({"soapSummary": "Assessment: pulpitis"}, "Referrer name is required."),
            ({"soapSummary": "Assessment: pulpitis", "referrerName": " "}, "Referrer name is required."),
        ],
    )
    def test_required_fields(self, ai_client, fake_llm, payload, message):
        resp = ai_client.post("/api/ai/letter", json=payload)

        assert resp.status_code == 400
        assert resp.json()["detail"] == message
        assert fake_llm.calls == []

    def test_upstream_failure(self, ai_client, fake_llm):
        fake_llm.error = _connection_error()

        resp = ai_client.post("/api/ai/letter", json={"soapSummary": "S", "referrerName": "Dr. Jones"})

        assert resp.status_code == 400
        assert resp.json() == {"error": LETTER_FAILED}

    def test_unconfigured_provider(self, client):
        resp = client.post("/api/ai/letter", json={"soapSummary": "S", "referrerName": "Dr. Jones"})

        assert resp.status_code == 400
        assert "not configured" in resp.json()["error"]
