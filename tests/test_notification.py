"""Email notification tests — document rendering and the Resend channel.

The Resend API is replaced with ``httpx.MockTransport``; PDF conversion is
replaced on the renderer instance so WeasyPrint is never loaded.
"""

import base64
import json
from datetime import datetime, timezone

import httpx
import pytest

from helpers import forms
from intake_forms.config import IntakeSettings
from intake_forms.models.codes import FormType
from intake_forms.notification import DocumentRenderer, ResendEmailNotifier, attachment_filename
from intake_forms.notification.renderer import display_value, long_date

SETTINGS = IntakeSettings(resend_api_key="re_test_key", admin_email="clinic@example.com")
FAKE_PDF = b"%PDF-1.7 fake"


class Recorder:
    """MockTransport handler that records payloads and replays responses."""

    def __init__(self, *responses: httpx.Response) -> None:
        self.responses = list(responses) or [httpx.Response(200, json={"id": "email-1"})]
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]

    @property
    def payloads(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests]


@pytest.fixture
def renderer(rules):
    renderer = DocumentRenderer(rules)
    renderer.render_pdf = lambda html: FAKE_PDF
    return renderer


def _notifier(renderer, handler, settings=SETTINGS) -> ResendEmailNotifier:
    return ResendEmailNotifier(settings, renderer, transport=httpx.MockTransport(handler))


# =====================================================================
# Formatting helpers
# =====================================================================


def test_long_date():
    assert long_date("2026-10-19") == "Monday, October 19, 2026"
    assert long_date("someday") == "someday"


def test_display_value():
    assert display_value("") == "Not provided"
    assert display_value(True) == "Yes"
    assert display_value(" x ") == "x"


@pytest.mark.parametrize("form_type, filename", [
    (FormType.PHQ9, "phq-9.pdf"),
    (FormType.PATIENT_DEMOGRAPHICS, "patient_demographics.pdf"),
    (FormType.PRE_CERT_MED_LIST, "pre-certification_medication_list.pdf"),
])
def test_attachment_filename(form_type, filename):
    assert attachment_filename(form_type) == filename


# =====================================================================
# Rendering
# =====================================================================


class TestRenderer:
    def test_assessment_document(self, renderer):
        data = {**forms.phq9(), "totalScore": 12, "severity": "Moderate", "maxScore": 27}
        html = renderer.render_document(
            FormType.PHQ9, data, submitted_at=datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc),
        )
        assert "Total Score: 12 / 27 (Moderate)" in html
        assert "Little interest or pleasure in doing things" in html
        assert "More than half the days" in html
        assert "Monday, October 19, 2026" in html

    def test_field_document_escapes_input(self, renderer):
        data = forms.medical_history()
        data["allergies"] = "<script>alert(1)</script>"
        html = renderer.render_document(FormType.MEDICAL_HISTORY, data)
        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "ANXIETY, HEADACHE" in html

    def test_medication_document(self, renderer):
        html = renderer.render_document(FormType.PRE_CERT_MED_LIST, forms.pre_cert_med_list())
        assert "Sertraline (Zoloft)" in html
        assert "50 mg" in html
        assert "Duloxetine (Cymbalta)" in html

    def test_summary_lists_selected_medications(self, renderer):
        html = renderer.render_summary(FormType.PRE_CERT_MED_LIST, forms.pre_cert_med_list())
        assert "Sertraline (Zoloft), Duloxetine (Cymbalta)" in html

    def test_summary_for_assessment(self, renderer):
        html = renderer.render_summary(FormType.BDI, {**forms.bdi(), "totalScore": 3, "severity": "Minimal"})
        assert "<strong>Total Score:</strong> 3" in html
        assert "<strong>Severity:</strong> Minimal" in html

    def test_contact_email(self, renderer):
        fields = forms.contact()
        fields["date"] = "2026-10-20"
        html = renderer.render_contact(fields, source="Home Screen")
        assert "Jordan Lee" in html
        assert "Tuesday, October 20, 2026" in html
        assert "Home Screen" in html


# =====================================================================
# Resend delivery
# =====================================================================


class TestResendNotifier:
    @pytest.mark.asyncio
    async def test_document_email_with_attachment(self, renderer):
        recorder = Recorder()
        result = await _notifier(renderer, recorder).send(FormType.PHQ9, forms.phq9())

        assert result.success and not result.fallback
        assert len(recorder.requests) == 1
        request = recorder.requests[0]
        assert request.headers["Authorization"] == "Bearer re_test_key"
        payload = recorder.payloads[0]
        assert payload["to"] == ["clinic@example.com"]
        assert payload["subject"] == "New PHQ-9 Submission"
        assert payload["from"] == '"TMS of Emerald Coast" <onboarding@resend.dev>'
        attachment = payload["attachments"][0]
        assert attachment["filename"] == "phq-9.pdf"
        assert base64.b64decode(attachment["content"]) == FAKE_PDF

    @pytest.mark.asyncio
    async def test_pdf_failure_sends_fallback(self, renderer):
        def broken_pdf(html):
            raise OSError("cairo not found")

        renderer.render_pdf = broken_pdf
        recorder = Recorder()
        result = await _notifier(renderer, recorder).send(FormType.BDI, forms.bdi())

        assert result.success
        assert result.fallback
        payload = recorder.payloads[0]
        assert payload["subject"] == "New BDI Submission (Fallback)"
        assert "attachments" not in payload

    @pytest.mark.asyncio
    async def test_fallback_failure_is_reported(self, renderer):
        recorder = Recorder(httpx.Response(422, json={"message": "Invalid `from` field"}))
        result = await _notifier(renderer, recorder).send(FormType.PHQ9, forms.phq9())

        assert not result.success
        assert result.fallback
        assert result.error == "Invalid `from` field"
        assert len(recorder.requests) == 2, "Document attempt plus fallback attempt"

    @pytest.mark.asyncio
    async def test_missing_api_key(self, renderer):
        recorder = Recorder()
        notifier = _notifier(renderer, recorder, settings=IntakeSettings())
        result = await notifier.send(FormType.PHQ9, forms.phq9())

        assert not result.success
        assert "RESEND_API_KEY" in result.error
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_contact_email_reply_to(self, renderer):
        recorder = Recorder()
        fields = forms.contact()
        fields["name"] = "Jo"
        result = await _notifier(renderer, recorder).send(FormType.CONTACT, fields)

        assert result.success
        payload = recorder.payloads[0]
        assert payload["subject"] == "New Message Submission from Jo"
        assert payload["reply_to"] == "jordan@example.com"
        assert "attachments" not in payload

    @pytest.mark.asyncio
    async def test_contact_transport_error(self, renderer):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        result = await _notifier(renderer, refuse).send(FormType.CONTACT, forms.contact())
        assert not result.success
        assert not result.fallback
        assert "Email request failed" in result.error
