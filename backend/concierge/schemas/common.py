"""Shared schema helpers: camelCase wire format and identity field validation."""
from __future__ import annotations

from typing import Annotated, Any, List

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accept both camelCase (browser clients) and snake_case field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


def require_text(value: Any) -> str:
    text = str(value or "").strip()
    if not text:
        raise ValueError("must not be empty")
    return text


def normalize_email(value: Any) -> str:
    email = str(value or "").strip().lower()
    if "@" not in email:
        raise ValueError("must be a valid email address")
    return email


def string_list(value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ValueError("must be a list")
    return [str(item) for item in value]


RequiredText = Annotated[str, BeforeValidator(require_text)]
EmailText = Annotated[str, BeforeValidator(normalize_email)]
StringList = Annotated[List[str], BeforeValidator(string_list)]
