"""Schemas for the virtual skin analysis workflow."""
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import Field, model_validator

from concierge.schemas.common import CamelModel, EmailText, RequiredText


class SkinReportRequest(CamelModel):
    first_name: RequiredText = Field(..., description="Visitor first name used in the greeting")
    email: EmailText
    age_range: RequiredText
    primary_concern: RequiredText
    visitor_question: Optional[str] = None
    photo_data_url: RequiredText = Field(
        ..., description="Selfie as a data URL or a public image URL"
    )
    image_analysis: Optional[Dict[str, Any]] = Field(
        default=None, description="Client-side analysis; re-run with vision when weak"
    )


class AgingPreviewImages(CamelModel):
    no_change_10: Optional[str] = None
    no_change_20: Optional[str] = None
    with_care_10: Optional[str] = None
    with_care_20: Optional[str] = None

    def any(self) -> bool:
        return any(
            (self.no_change_10, self.no_change_20, self.with_care_10, self.with_care_20)
        )


class SkinReportResponse(CamelModel):
    ok: bool = True
    report: str
    fitzpatrick_type: Optional[str] = None
    fitzpatrick_summary: Optional[str] = None
    aging_preview_images: AgingPreviewImages = Field(default_factory=AgingPreviewImages)
    enriched_with_vision: bool = False


class AgingPreviewRequest(CamelModel):
    first_name: RequiredText
    email: EmailText
    selfie_public_url: Optional[str] = None
    photo_data_url: Optional[str] = None
    age_range: Optional[str] = None
    primary_concern: Optional[str] = None
    fitzpatrick_type: Optional[str] = None

    @model_validator(mode="after")
    def _require_selfie(self) -> "AgingPreviewRequest":
        if not (self.selfie_public_url or self.photo_data_url):
            raise ValueError("selfiePublicUrl or photoDataUrl is required")
        return self


class AgingPreviewResponse(CamelModel):
    ok: bool = True
    delivered: bool
    images: AgingPreviewImages


class EligibilityRequest(CamelModel):
    email: EmailText


class EligibilityResponse(CamelModel):
    can_generate: bool
    next_available_date: Optional[str] = None
    message: Optional[str] = None


class RecordAnalysisResponse(CamelModel):
    success: bool = True
