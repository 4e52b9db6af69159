"""Shared types for the activity feed pipeline.

Filter → SourceResult[] → ActivityRecord[] → ActivityPage, all scoped to a
single request.
"""

import datetime
from dataclasses import dataclass, field

from pydantic import BaseModel, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError

from casefeed.config import settings
from casefeed.core.exceptions import SourceUnavailableError, ValidationError, field_errors

BASE_TYPES = ("consultation", "assessment", "customization", "rental", "schedule")
SCHEDULE_KINDS = ("consultation", "assessment", "rental", "customization", "other")
SCHEDULE_PREFIX = "schedule_"

ACTIVITY_TYPES = ("all",) + BASE_TYPES + tuple(f"{SCHEDULE_PREFIX}{k}" for k in SCHEDULE_KINDS)


def text_matches(text: str | None, query: str) -> bool:
    """Case-insensitive substring match with full Unicode case folding."""
    return query.casefold() in (text or "").casefold()


def base_type(activity_type: str) -> str:
    """Collapse ``schedule_<kind>`` into ``schedule``; other types are their own base."""
    if activity_type.startswith(SCHEDULE_PREFIX):
        return "schedule"
    return activity_type


@dataclass(frozen=True)
class Actor:
    """Verified caller identity, as supplied by the auth layer."""

    id: str
    role: str | None = None
    name: str = ""


@dataclass(frozen=True)
class ActivityRecord:
    """One normalized entry of the unified feed."""

    id: str
    type: str
    title: str
    date: datetime.date
    subject_id: str | None = None
    subject_name: str | None = None
    metadata: dict = field(default_factory=dict)
    created_at: datetime.datetime | None = None

    @property
    def base_type(self) -> str:
        return base_type(self.type)


@dataclass
class SourceResult:
    """Outcome of one provider call: its records, or the error that replaced them."""

    kind: str
    records: list[ActivityRecord] = field(default_factory=list)
    error: SourceUnavailableError | None = None
    truncated: bool = False  # more matches existed than the row cap allowed

    @property
    def ok(self) -> bool:
        return self.error is None


class ActivityFilter(BaseModel):
    """Immutable request filter shared by every source provider."""

    model_config = {"frozen": True}

    query: str = ""
    activity_type: str = "all"
    start_date: datetime.date | None = None
    end_date: datetime.date | None = None
    actor_id: str | None = None
    subject_id: str | None = None
    page: int = 1
    limit: int = settings.casefeed_default_page_size

    @field_validator("query", mode="before")
    @classmethod
    def _strip_query(cls, v):
        if v is None:
            return ""
        return v.strip() if isinstance(v, str) else v

    @field_validator("actor_id", "subject_id", "start_date", "end_date", mode="before")
    @classmethod
    def _blank_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("activity_type", mode="before")
    @classmethod
    def _check_activity_type(cls, v):
        if v is None:
            return "all"
        if not isinstance(v, str) or v.strip() not in ACTIVITY_TYPES:
            raise ValueError(f"Must be one of: {', '.join(ACTIVITY_TYPES)}.")
        return v.strip()

    @field_validator("end_date")
    @classmethod
    def _check_range(cls, v, info: ValidationInfo):
        start = info.data.get("start_date")
        if v is not None and start is not None and start > v:
            raise ValueError("end_date must not be before start_date.")
        return v

    @field_validator("page")
    @classmethod
    def _check_page(cls, v):
        if v < 1:
            raise ValueError("page must be 1 or greater.")
        return v

    @field_validator("limit")
    @classmethod
    def _check_limit(cls, v):
        if v < 1 or v > settings.casefeed_max_page_size:
            raise ValueError(f"limit must be between 1 and {settings.casefeed_max_page_size}.")
        return v

    @property
    def schedule_kind(self) -> str | None:
        """Schedule kind selected by a ``schedule_<kind>`` activity type, if any."""
        if self.activity_type.startswith(SCHEDULE_PREFIX):
            return self.activity_type[len(SCHEDULE_PREFIX):]
        return None

    @classmethod
    def build(cls, **raw) -> "ActivityFilter":
        """Construct from raw request values, raising ``ValidationError`` with per-field detail."""
        values = {k: v for k, v in raw.items() if v is not None}
        try:
            return cls(**values)
        except PydanticValidationError as exc:
            raise ValidationError("Invalid activity filter.", fields=field_errors(exc.errors())) from exc
