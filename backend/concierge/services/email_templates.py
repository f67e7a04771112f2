"""HTML bodies for report, aging preview and esthetics protocol emails."""
from __future__ import annotations

import json
import re
from html import escape
from typing import Iterable, Optional

from concierge.schemas.esthetics import CompleteRequest
from concierge.schemas.report import AgingPreviewImages
from concierge.services.prompts import CLOSING_LINE

_WRAPPER = (
    '<div style="font-family: system-ui, sans-serif; color: #111827; line-height: 1.5;">'
    '<div style="max-width: 680px; margin: 0 auto; padding: 20px 24px;">{body}</div></div>'
)

DEFAULT_NEXT_STEPS = (
    "Schedule a consultation so a provider can confirm the best treatment path for you.",
    "Complete the medical questionnaire we will send prior to your appointment (required).",
    "Bring up any additional concerns during your consultation; your plan can be refined in real time.",
)

_AGING_CAPTIONS = (
    ("no_change_10", "~10 years - minimal skincare changes"),
    ("no_change_20", "~20 years - minimal skincare changes"),
    ("with_care_10", "~10 years - with consistent care"),
    ("with_care_20", "~20 years - with consistent care"),
)


def text_to_paragraphs(text: str) -> str:
    parts = re.split(r"\n\s*\n", escape(text or ""))
    return "".join(
        f'<p style="margin: 0 0 12px 0; white-space: pre-wrap;">{part}</p>'
        for part in parts
        if part.strip()
    )


def split_for_aging_placement(report_text: str) -> tuple[str, str]:
    """Split a letter just above its closing signature line."""

    text = (report_text or "").strip()
    idx = text.rfind(CLOSING_LINE)
    if idx == -1:
        return text, ""
    return text[:idx].rstrip(), text[idx:].lstrip()


def aging_preview_block(images: Optional[AgingPreviewImages]) -> str:
    if images is None or not images.any():
        return ""
    tiles = []
    for field, caption in _AGING_CAPTIONS:
        url = getattr(images, field)
        if not url:
            continue
        tiles.append(
            f'<div><img src="{escape(url, quote=True)}" alt="{escape(caption)}" style="width: 100%;" />'
            f'<p style="font-size: 11px; margin: 6px 0 0;">{escape(caption)}</p></div>'
        )
    return (
        '<div style="margin: 18px 0; padding: 14px; border: 1px solid #E5E7EB;">'
        "<h2 style=\"font-size: 15px;\">Your Skin's Future Story - A Preview</h2>"
        '<p style="font-size: 12px;">These images are AI-generated visualizations for cosmetic '
        "education and entertainment only. They are not medical predictions.</p>"
        f'{"".join(tiles)}</div>'
    )


def letter_body(report_text: str, images: Optional[AgingPreviewImages]) -> str:
    before, closing = split_for_aging_placement(report_text)
    return text_to_paragraphs(before) + aging_preview_block(images) + text_to_paragraphs(closing)


def _fitzpatrick_block(fitzpatrick_type: Optional[str], summary: Optional[str]) -> str:
    if not (fitzpatrick_type or summary):
        return ""
    parts = ['<div style="border: 1px solid #FCD34D; padding: 12px 16px; margin-bottom: 16px;">']
    parts.append("<h2 style=\"font-size: 14px;\">Fitzpatrick Skin Type (Cosmetic Estimate)</h2>")
    if fitzpatrick_type:
        parts.append(f"<p><strong>Type {escape(fitzpatrick_type)}</strong></p>")
    if summary:
        parts.append(f"<p>{escape(summary)}</p>")
    parts.append(
        '<p style="font-size: 11px;">This is a visual, cosmetic estimate only and is not a medical diagnosis.</p></div>'
    )
    return "".join(parts)


def report_visitor_email(
    *,
    photo_url: str,
    fitzpatrick_type: Optional[str],
    fitzpatrick_summary: Optional[str],
    letter_html: str,
    clinic_email: str,
) -> str:
    body = (
        "<h1 style=\"font-size: 20px;\">Your Dr. Lazuk Virtual Skin Analysis</h1>"
        "<p>Thank you for trusting us with this cosmetic, education-only look at your skin. "
        "This is not medical advice.</p>"
        f'<img src="{escape(photo_url, quote=True)}" alt="Your uploaded skin photo" style="max-width: 240px;" />'
        f"{_fitzpatrick_block(fitzpatrick_type, fitzpatrick_summary)}"
        f"<div>{letter_html}</div>"
        "<hr />"
        "<p style=\"font-size: 12px;\">If you have any medical concerns, please see a qualified "
        "in-person professional.</p>"
        f'<p style="font-size: 12px;">With care,<br/>Dr. Lazuk Esthetics &amp; Dr. Lazuk Cosmetics<br/>'
        f'<a href="mailto:{escape(clinic_email, quote=True)}">{escape(clinic_email)}</a></p>'
    )
    return _WRAPPER.format(body=body)


def report_clinic_email(
    *,
    first_name: str,
    email: str,
    age_range: str,
    primary_concern: str,
    photo_url: str,
    fitzpatrick_type: Optional[str],
    fitzpatrick_summary: Optional[str],
    letter_html: str,
) -> str:
    rows = [
        ("First Name", first_name),
        ("Email", email),
        ("Age Range", age_range),
        ("Primary Concern", primary_concern or "Not specified"),
    ]
    if fitzpatrick_type:
        rows.append(("Fitzpatrick Estimate", f"Type {fitzpatrick_type}"))
    items = "".join(f"<li><strong>{escape(k)}:</strong> {escape(v)}</li>" for k, v in rows)
    summary = (
        f"<p><strong>Fitzpatrick Summary:</strong> {escape(fitzpatrick_summary)}</p>"
        if fitzpatrick_summary
        else ""
    )
    body = (
        "<h1 style=\"font-size: 18px;\">New Virtual Skin Analysis - Cosmetic Report</h1>"
        f"<ul>{items}</ul>{summary}"
        f'<img src="{escape(photo_url, quote=True)}" alt="Uploaded skin photo" style="max-width: 240px;" />'
        f"<div>{letter_html}</div>"
    )
    return _WRAPPER.format(body=body)


def aging_preview_email(first_name: str, images: AgingPreviewImages) -> str:
    body = (
        f"<p>Dear {escape(first_name)},</p>"
        "<p>Here are your AI-generated aging preview images. This is cosmetic education and "
        "entertainment only, not a medical diagnosis or prediction.</p>"
        f"{aging_preview_block(images)}"
        "<p style=\"font-size: 11px;\">If you have any questions, please reply to this email.</p>"
        "<p>~ Dr. Lazuk</p>"
    )
    return _WRAPPER.format(body=body)


# Esthetics concierge


def _line(label: str, value: Optional[str]) -> str:
    shown = value if value else "—"
    return f"<div><b>{escape(label)}:</b> {escape(shown)}</div>"


def _list(items: Iterable[str]) -> str:
    items = list(items)
    if not items:
        return "<div>—</div>"
    return "<ul>" + "".join(f"<li>{escape(item)}</li>" for item in items) + "</ul>"


def _blocks(items: Iterable[str]) -> str:
    items = list(items)
    if not items:
        return "<div>—</div>"
    return "".join(f'<div style="margin: 8px 0;">• {escape(item)}</div>' for item in items)


def _pre(text: str) -> str:
    return f'<pre style="white-space: pre-wrap; font-size: 12px;">{escape(text)}</pre>'


def esthetics_client_email(payload: CompleteRequest) -> str:
    summary = payload.protocol_summary
    title = summary.title or "Your Curated Esthetics Protocol"
    narrative = summary.narrative or (
        "Based on what you shared, this protocol was designed specifically for you to support "
        "your goals while prioritizing long-term skin and body health."
    )
    next_steps = payload.next_steps or list(DEFAULT_NEXT_STEPS)
    deferred = (
        f"<h3>Questions we'll address in consultation</h3>{_list(payload.deferred_questions)}"
        if payload.deferred_questions
        else ""
    )
    body = (
        f"<h2>{escape(title)}</h2>"
        f"<p>Hi {escape(payload.user.first_name or 'there')},<br/>{escape(narrative)}</p>"
        f"<h3>Your Focus</h3>{_list(payload.goals)}"
        f"<h3>Key Constraints (what we respected)</h3>{_blocks(payload.constraints)}"
        f"<h3>Recommended Treatment Path (consultation-first)</h3>{_blocks(summary.recommended_path)}"
        f"<h3>Next steps</h3>{_list(next_steps)}"
        f"{deferred}"
        '<p style="font-size: 13px;">Pricing note: final pricing depends on the treatment path '
        "confirmed during consultation.</p>"
        '<p style="font-size: 12px;">Disclaimer: This concierge provides informational protocol '
        "suggestions and is not medical advice.</p>"
    )
    return _WRAPPER.format(body=body)


def esthetics_provider_email(payload: CompleteRequest) -> str:
    user = payload.user
    title = payload.protocol_summary.title or "New Esthetics Protocol"
    body = (
        f"<h2>{escape(title)}</h2>"
        "<h3>Client</h3>"
        f"{_line('Name', f'{user.first_name} {user.last_name}'.strip())}"
        f"{_line('Email', user.email)}"
        f"{_line('Phone', user.phone)}"
        f"<h3>Goals</h3>{_list(payload.goals)}"
        f"<h3>Constraints</h3>{_blocks(payload.constraints)}"
        "<h3>Protocol Summary</h3>"
        f"{_line('Confidence', payload.confidence.level)}"
        f"{_line('Confidence notes', payload.confidence.notes)}"
        f"<div><b>Recommended Path:</b>{_blocks(payload.protocol_summary.recommended_path)}</div>"
        f"<h3>Deferred questions (address in consult)</h3>{_list(payload.deferred_questions)}"
        f"<h3>Transcript</h3>{_pre(payload.transcript or '—')}"
        f"<h3>System Flags</h3>{_pre(json.dumps(payload.flags, indent=2, default=str))}"
    )
    return _WRAPPER.format(body=body)
