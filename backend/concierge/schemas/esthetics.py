"""Schemas for the esthetics concierge flow."""
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import Field

from concierge.schemas.common import CamelModel, EmailText, RequiredText, StringList


class StartSessionRequest(CamelModel):
    first_name: RequiredText
    last_name: RequiredText
    email: EmailText


class SessionGeoFlags(CamelModel):
    distance_miles: Optional[float] = None
    radius_miles: Optional[float] = None


class SessionRateFlags(CamelModel):
    remaining: int


class SessionFlags(CamelModel):
    address: str
    geo: SessionGeoFlags
    rate_limit: SessionRateFlags


class StartSessionResponse(CamelModel):
    ok: bool = True
    flags: SessionFlags


class EstheticsUser(CamelModel):
    first_name: RequiredText
    last_name: RequiredText
    email: EmailText
    phone: Optional[str] = None


class ProtocolSummary(CamelModel):
    title: Optional[str] = None
    narrative: Optional[str] = None
    recommended_path: StringList = Field(default_factory=list)


class Confidence(CamelModel):
    level: Optional[str] = None
    notes: Optional[str] = None


class CompleteRequest(CamelModel):
    user: EstheticsUser
    goals: StringList = Field(default_factory=list)
    constraints: StringList = Field(default_factory=list)
    deferred_questions: StringList = Field(default_factory=list)
    protocol_summary: ProtocolSummary = Field(default_factory=ProtocolSummary)
    confidence: Confidence = Field(default_factory=Confidence)
    transcript: str = ""
    flags: Dict[str, Any] = Field(default_factory=dict)
    next_steps: Optional[StringList] = None


class DeliveryFlags(CamelModel):
    provider: bool
    client: bool


class CompleteResponse(CamelModel):
    ok: bool = True
    sent: DeliveryFlags
