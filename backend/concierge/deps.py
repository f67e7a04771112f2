"""FastAPI dependency helpers."""
from __future__ import annotations

from pathlib import Path

from fastapi import Depends, FastAPI, Request

from concierge.core.config import Settings, get_settings
from concierge.services.access_gate import AccessGate
from concierge.services.ask import AskService
from concierge.services.audit import AuditLogger
from concierge.services.cooldown import ReportCooldownStore
from concierge.services.country_gate import CountryGate
from concierge.services.esthetics import EstheticsProtocolService
from concierge.services.geo import GeoResolver, IpapiGeoResolver
from concierge.services.mailer import ResendMailer
from concierge.services.rate_limit import FixedWindowCounter
from concierge.services.skin_report import SkinReportService


def get_audit_logger(app: FastAPI, settings: Settings) -> AuditLogger | None:
    """Return the audit logger owned by ``app``, or ``None`` when auditing is disabled.

    Loggers are scoped to one application and rebuilt when the configured path changes.
    """

    path = settings.audit_log_store_path
    if not path:
        return None
    current: AuditLogger | None = getattr(app.state, "audit_logger", None)
    if current is None or current.path != Path(path):
        current = AuditLogger(path)
        app.state.audit_logger = current
    return current


def get_rate_counter(request: Request) -> FixedWindowCounter:
    """Return the counter owned by the running application."""

    return request.app.state.rate_counter


def get_report_cooldown(request: Request) -> ReportCooldownStore:
    return request.app.state.report_cooldown


def get_geo_resolver(settings: Settings = Depends(get_settings)) -> GeoResolver:
    return IpapiGeoResolver(settings)


def get_access_gate(
    counter: FixedWindowCounter = Depends(get_rate_counter),
    resolver: GeoResolver = Depends(get_geo_resolver),
) -> AccessGate:
    return AccessGate(counter, resolver)


def get_country_gate(
    settings: Settings = Depends(get_settings),
    resolver: GeoResolver = Depends(get_geo_resolver),
) -> CountryGate:
    return CountryGate(resolver, settings.allowed_country_code)


def get_mailer(settings: Settings = Depends(get_settings)) -> ResendMailer:
    return ResendMailer(settings)


def get_skin_report_service(
    settings: Settings = Depends(get_settings),
    mailer: ResendMailer = Depends(get_mailer),
) -> SkinReportService:
    """Provide a report service instance per request."""

    return SkinReportService(settings, mailer=mailer)


def get_ask_service(
    settings: Settings = Depends(get_settings),
    reports: SkinReportService = Depends(get_skin_report_service),
) -> AskService:
    return AskService(settings, reports=reports)


def get_esthetics_service(
    settings: Settings = Depends(get_settings),
    mailer: ResendMailer = Depends(get_mailer),
) -> EstheticsProtocolService:
    return EstheticsProtocolService(settings, mailer=mailer)
