from __future__ import annotations

import re

from ..core.constants import PROFILE_PROPERTIES
from ..core.exceptions import ValidationError

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_MONTH_RE = re.compile(r"^\d{4}-\d{2}$")


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_profile_property(name: str) -> str:
    if name not in PROFILE_PROPERTIES:
        raise ValidationError(f"Unknown profile property: {name!r}")
    return name


def require_date_string(value: str, field_name: str) -> str:
    if not value or not _DATE_RE.match(value):
        raise ValidationError(f"{field_name} must be YYYY-MM-DD")
    return value


def require_month_string(value: str, field_name: str) -> str:
    if not value or not _MONTH_RE.match(value) or not 1 <= int(value[5:7]) <= 12:
        raise ValidationError(f"{field_name} must be YYYY-MM")
    return value
