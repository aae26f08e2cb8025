# clubsync/models/domain/sync_records.py
"""
Validated shapes of the records each sync task reconciles.

Fetch clients hand over plain dicts. A dict that fails validation here is a
per-record problem: the task skips it and keeps going.
"""

from datetime import date

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

from clubsync.models.domain.status_domain import ContactStatus, PipelineStage
from clubsync.rules.interval_math import is_valid_time, to_minutes
from clubsync.rules.normalizer import default_normalizer, normalize_status_token


class SyncRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True, frozen=True)

    external_id: str = Field(min_length=1, validation_alias=AliasChoices("external_id", "id"))

    @field_validator("external_id", mode="before")
    @classmethod
    def _coerce_external_id(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    def payload(self) -> dict:
        """JSON-safe form persisted by the store and used for change detection."""
        return self.model_dump(mode="json")


def _check_time(value: str | None) -> str | None:
    if value is None or value == "":
        return None
    if not is_valid_time(value):
        raise ValueError(f"invalid time of day: {value!r}")
    return value.strip()


class _TimedRecord(SyncRecord):
    start_time: str | None = None
    end_time: str | None = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _validate_time(cls, value):
        return _check_time(value)


class CalendarEventRecord(_TimedRecord):
    title: str = Field(min_length=1)
    event_date: date
    location: str | None = None
    description: str | None = None
    all_day: bool = False


class WellnessClassRecord(_TimedRecord):
    title: str = Field(min_length=1)
    class_date: date
    instructor: str | None = None
    category: str | None = None
    capacity: int | None = Field(default=None, ge=0)


class TourRecord(_TimedRecord):
    guest_name: str | None = None
    guest_email: str | None = None
    tour_date: date
    status: str = "scheduled"


class ClosureRecord(_TimedRecord):
    title: str = Field(min_length=1)
    start_date: date
    end_date: date
    affected_areas: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("closure ends before it starts")
        return self


class ConferenceBookingRecord(_TimedRecord):
    resource_id: str = Field(min_length=1)
    booking_date: date
    member_email: str | None = None
    title: str | None = None
    status: str = "confirmed"

    @field_validator("resource_id", mode="before")
    @classmethod
    def _coerce_resource_id(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @model_validator(mode="after")
    def _check_interval(self):
        if self.start_time is None or self.end_time is None:
            raise ValueError("conference booking needs start and end times")
        if to_minutes(self.start_time) == to_minutes(self.end_time):
            raise ValueError("conference booking has zero length")
        return self


class MemberRecord(SyncRecord):
    """
    A CRM roster entry. The tier is normalized on validation; pass a custom
    normalizer with ``context={"normalizer": ...}``.
    """

    email: str = Field(min_length=3)
    first_name: str | None = None
    last_name: str | None = None
    tier: str = Field(default="", validate_default=True)
    membership_status: str | None = None
    pipeline_stage: PipelineStage | None = None
    contact_status: ContactStatus | None = None

    @field_validator("email", mode="before")
    @classmethod
    def _lowercase_email(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("tier", mode="before")
    @classmethod
    def _normalize_tier(cls, value, info: ValidationInfo):
        normalizer = (info.context or {}).get("normalizer", default_normalizer)
        return normalizer.normalize_name(value)

    @field_validator("membership_status", mode="before")
    @classmethod
    def _clean_status(cls, value):
        return normalize_status_token(value)
