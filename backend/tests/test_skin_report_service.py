"""Tests for the skin report workflow."""
from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager

import pytest

pytestmark = pytest.mark.anyio("asyncio")

from concierge.core.config import Settings
from concierge.schemas.report import AgingPreviewRequest, SkinReportRequest, SkinReportResponse
from concierge.services import skin_report
from concierge.services.mailer import EmailResult
from concierge.services.skin_report import (
    ReportConfigurationError,
    ReportServiceError,
    SkinReportService,
    is_weak_image_analysis,
    parse_letter,
)

LETTER = """FITZPATRICK_TYPE: III
FITZPATRICK_SUMMARY: Your skin shows a warm medium tone that tans gradually.

Dear Ana,

I loved the soft brown of your eyes in your photo.

May your skin always glow as bright as your smile. ~ Dr. Lazuk

INTERNAL_GREETING_OK: YES
INTERNAL_SELFIE_DETAIL_OK: YES
INTERNAL_COVERAGE: OK
"""

VISION = {
    "fitzpatrickType": 3,
    "skinType": "combination",
    "raw": {"eyeColor": "brown", "wearingGlasses": True},
    "analysis": {"skinFindings": "even glow", "complimentFeatures": "bright eyes"},
}


class _StubChatCompletions:
    def __init__(self, replies: list[str]) -> None:
        self._replies = list(replies)
        self.calls: list[dict] = []

    async def create(self, **kwargs: object):  # type: ignore[override]
        self.calls.append(kwargs)
        return _StubChatResponse(self._replies.pop(0))


class _StubChat:
    def __init__(self, replies: list[str]) -> None:
        self.completions = _StubChatCompletions(replies)


class _StubImages:
    def __init__(self, *, fail: bool = False) -> None:
        self._fail = fail
        self.prompts: list[str] = []

    async def generate(self, **kwargs: object):  # type: ignore[override]
        self.prompts.append(str(kwargs["prompt"]))
        if self._fail and len(self.prompts) == 2:
            raise RuntimeError("image backend down")
        return _StubImageResponse(f"https://img.fake/{len(self.prompts)}.png")


class _StubOpenAI:
    def __init__(self, replies: list[str], *, fail_images: bool = False) -> None:
        self.chat = _StubChat(replies)
        self.images = _StubImages(fail=fail_images)


class _StubChatResponse:
    class _Choice:
        class _Message:
            def __init__(self, content: str) -> None:
                self.content = content

        def __init__(self, content: str) -> None:
            self.message = self._Message(content)

    def __init__(self, content: str) -> None:
        self.choices = [self._Choice(content)]


class _StubImageResponse:
    class _Image:
        def __init__(self, url: str) -> None:
            self.url = url
            self.b64_json = None

    def __init__(self, url: str) -> None:
        self.data = [self._Image(url)]


class _RecordingMailer:
    def __init__(self, ok: bool = True) -> None:
        self._ok = ok
        self.sent: list[dict] = []

    async def send(self, **kwargs: object) -> EmailResult:
        self.sent.append(kwargs)
        return EmailResult(ok=self._ok, status_code=200 if self._ok else 500)


def _submission(**overrides: object) -> SkinReportRequest:
    values = {
        "firstName": "Ana",
        "email": "Ana@Example.com",
        "ageRange": "30-39",
        "primaryConcern": "fine lines",
        "photoDataUrl": "https://cdn.fake/selfie.jpg",
    }
    values.update(overrides)
    return SkinReportRequest.model_validate(values)


def _install(monkeypatch: pytest.MonkeyPatch, client: _StubOpenAI) -> None:
    @asynccontextmanager
    async def fake_client(_: Settings):
        yield client

    monkeypatch.setattr(skin_report, "async_openai_client", fake_client)


def _settings(**overrides: object) -> Settings:
    values = {"openai_api_key": "test", "openai_retry_backoff_seconds": 0}
    values.update(overrides)
    return Settings(_env_file=None, **values)


async def test_generate_report_enriches_with_vision(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _StubOpenAI([json.dumps(VISION), LETTER])
    _install(monkeypatch, client)
    mailer = _RecordingMailer()

    service = SkinReportService(_settings(), mailer=mailer)  # type: ignore[arg-type]
    result = await service.generate_report(_submission())

    assert isinstance(result, SkinReportResponse)
    assert result.enriched_with_vision
    assert result.fitzpatrick_type == "III"
    assert result.fitzpatrick_summary == "Your skin shows a warm medium tone that tans gradually."
    assert result.report.startswith("Dear Ana,")
    assert "INTERNAL_" not in result.report
    assert result.aging_preview_images.any()
    assert len(client.images.prompts) == 4

    letter_prompt = client.chat.completions.calls[1]["messages"][1]["content"]
    assert "glasses" in letter_prompt and "brown eyes" in letter_prompt

    assert [mail["to"] for mail in mailer.sent] == ["ana@example.com", "contact@skindoctor.ai"]
    visitor_html = str(mailer.sent[0]["html"])
    assert visitor_html.index("Future Story") < visitor_html.index("May your skin always glow")


async def test_strong_analysis_skips_vision(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _StubOpenAI([LETTER])
    _install(monkeypatch, client)

    service = SkinReportService(_settings(), mailer=_RecordingMailer())  # type: ignore[arg-type]
    result = await service.generate_report(_submission(imageAnalysis=VISION))

    assert not result.enriched_with_vision
    assert len(client.chat.completions.calls) == 1


async def test_letter_retried_until_markers_present(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _StubOpenAI(["Dear Ana, no markers here.", LETTER])
    _install(monkeypatch, client)

    service = SkinReportService(_settings(), mailer=_RecordingMailer())  # type: ignore[arg-type]
    result = await service.generate_report(_submission(imageAnalysis=VISION))

    temperatures = [call["temperature"] for call in client.chat.completions.calls]
    assert temperatures == [0.55, 0.4]
    assert result.fitzpatrick_type == "III"


async def test_image_failure_drops_all_previews(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _StubOpenAI([LETTER], fail_images=True)
    _install(monkeypatch, client)

    service = SkinReportService(_settings(), mailer=_RecordingMailer())  # type: ignore[arg-type]
    result = await service.generate_report(_submission(imageAnalysis=VISION))

    assert not result.aging_preview_images.any()
    assert result.report


class _SlowImages:
    """First call fails at once; the rest finish after a short delay."""

    def __init__(self) -> None:
        self.started = 0
        self.finished = 0

    async def generate(self, **kwargs: object):  # type: ignore[override]
        self.started += 1
        if self.started == 1:
            raise RuntimeError("image backend down")
        await asyncio.sleep(0.05)
        self.finished += 1
        return _StubImageResponse("https://img.fake/slow.png")


async def test_image_failure_waits_for_sibling_calls() -> None:
    client = _StubOpenAI([])
    client.images = _SlowImages()  # type: ignore[assignment]

    service = SkinReportService(_settings(), mailer=_RecordingMailer())  # type: ignore[arg-type]
    images = await service.generate_aging_images(
        client,  # type: ignore[arg-type]
        age_range="30-39",
        primary_concern="fine lines",
        fitzpatrick_type="III",
        request_id="req-1",
    )
    finished_at_return = client.images.finished
    await asyncio.sleep(0.1)

    assert not images.any()
    assert finished_at_return == 3
    assert client.images.finished == finished_at_return


async def test_email_failure_does_not_fail_report(monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, _StubOpenAI([LETTER]))

    service = SkinReportService(_settings(), mailer=_RecordingMailer(ok=False))  # type: ignore[arg-type]
    result = await service.generate_report(_submission(imageAnalysis=VISION))

    assert result.ok


async def test_generate_report_raises_when_missing_credentials(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _install(monkeypatch, _StubOpenAI([]))

    service = SkinReportService(_settings(openai_api_key=None), mailer=_RecordingMailer())  # type: ignore[arg-type]

    with pytest.raises(ReportConfigurationError):
        await service.generate_report(_submission())


async def test_letter_failure_raises_service_error(monkeypatch: pytest.MonkeyPatch) -> None:
    class _BrokenCompletions:
        async def create(self, **_: object):  # type: ignore[override]
            raise RuntimeError("upstream down")

    client = _StubOpenAI([])
    client.chat.completions = _BrokenCompletions()  # type: ignore[assignment]
    _install(monkeypatch, client)

    service = SkinReportService(
        _settings(openai_retry_attempts=1), mailer=_RecordingMailer()  # type: ignore[arg-type]
    )

    with pytest.raises(ReportServiceError):
        await service.generate_report(_submission(imageAnalysis=VISION))


async def test_generate_aging_preview_emails_visitor(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _StubOpenAI([])
    _install(monkeypatch, client)
    mailer = _RecordingMailer()

    service = SkinReportService(_settings(), mailer=mailer)  # type: ignore[arg-type]
    result = await service.generate_aging_preview(
        AgingPreviewRequest.model_validate(
            {
                "firstName": "Ana",
                "email": "ana@example.com",
                "photoDataUrl": "https://cdn.fake/selfie.jpg",
                "fitzpatrickType": "iv",
            }
        )
    )

    assert result.delivered
    assert result.images.with_care_20 == "https://img.fake/4.png"
    assert "Fitzpatrick type IV" in client.images.prompts[0]
    assert mailer.sent[0]["to"] == "ana@example.com"


def test_weak_analysis_detection() -> None:
    assert is_weak_image_analysis(None)
    assert is_weak_image_analysis({"analysis": {"texture": ""}})
    assert not is_weak_image_analysis({"analysis": {"texture": "smooth"}})


def test_parse_letter_without_header() -> None:
    parsed = parse_letter("Dear Ana,\n\nLovely.\nINTERNAL_COVERAGE: OK")

    assert parsed.fitzpatrick_type is None
    assert parsed.fitzpatrick_summary is None
    assert parsed.report == "Dear Ana,\n\nLovely."
