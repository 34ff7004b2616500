"""Typed shapes for records read from the store.

Rows arrive as untyped field maps written by the web client (camelCase) or by
SQL tooling (snake_case). They are validated here, at the boundary, and never
travel further as raw dicts. Fields that are present but malformed fall back
to ``None``; rows without an identity are rejected.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Annotated, Any, Iterable, List, Optional, Type, TypeVar

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, model_validator

from app.common.utils import as_number, parse_date, parse_datetime

logger = logging.getLogger("features.records")

COMPLETED_STATUSES = frozenset({"approved", "submitted", "pending"})


def _to_id(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _to_label(value: Any) -> str:
    return "" if value is None else str(value)


RecordId = Annotated[str, BeforeValidator(_to_id)]
OptionalId = Annotated[Optional[str], BeforeValidator(_to_id)]
OptionalText = Annotated[Optional[str], BeforeValidator(_to_text)]
Label = Annotated[str, BeforeValidator(_to_label)]
Timestamp = Annotated[Optional[datetime], BeforeValidator(parse_datetime)]
Day = Annotated[Optional[date], BeforeValidator(parse_date)]
Score = Annotated[Optional[float], BeforeValidator(as_number)]


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class StoreRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: RecordId


class Student(StoreRecord):
    name: Label = Field(default="", validation_alias=_alias("name", "displayName", "full_name", "fullName"))
    class_id: OptionalId = Field(default=None, validation_alias=_alias("classId", "class_id"))
    parent_id: OptionalId = Field(default=None, validation_alias=_alias("parentId", "parent_id"))

    @model_validator(mode="after")
    def _default_name(self) -> "Student":
        if not self.name:
            self.name = self.id
        return self


class Assignment(StoreRecord):
    class_id: OptionalId = Field(default=None, validation_alias=_alias("classId", "class_id"))
    status: OptionalText = None
    due_date: Timestamp = Field(default=None, validation_alias=_alias("dueDate", "due_date"))
    category: OptionalText = Field(default=None, validation_alias=_alias("category", "subject"))

    @property
    def is_active(self) -> bool:
        return self.status == "active"


class Submission(StoreRecord):
    assignment_id: OptionalId = Field(default=None, validation_alias=_alias("assignmentId", "assignment_id"))
    student_id: OptionalId = Field(default=None, validation_alias=_alias("studentId", "student_id"))
    student_name: OptionalText = Field(default=None, validation_alias=_alias("studentName", "student_name"))
    class_id: OptionalId = Field(default=None, validation_alias=_alias("classId", "class_id"))
    status: OptionalText = None
    subject: OptionalText = None
    score: Score = None
    submitted_at: Timestamp = Field(default=None, validation_alias=_alias("submittedAt", "submitted_at"))
    updated_at: Timestamp = Field(default=None, validation_alias=_alias("updatedAt", "updated_at"))
    created_at: Timestamp = Field(default=None, validation_alias=_alias("createdAt", "created_at"))

    @property
    def counts_as_completed(self) -> bool:
        return self.status in COMPLETED_STATUSES

    @property
    def is_scored(self) -> bool:
        return self.score is not None

    @property
    def timestamp(self) -> Optional[datetime]:
        return self.submitted_at or self.updated_at or self.created_at


class StudyTimeEntry(StoreRecord):
    student_id: OptionalId = Field(default=None, validation_alias=_alias("studentId", "student_id"))
    minutes: Score = Field(default=None, validation_alias=_alias("minutes", "totalMinutes", "total_minutes"))
    day: Day = Field(default=None, validation_alias=_alias("date", "day"))


class LeaderboardSource(StoreRecord):
    display_name: Label = Field(
        default="",
        validation_alias=_alias("familyName", "family_name", "displayName", "display_name", "name"),
    )
    total_points: Score = Field(default=None, validation_alias=_alias("totalPoints", "total_points"))
    badges: List[Any] = Field(default_factory=list)
    last_activity: Timestamp = Field(default=None, validation_alias=_alias("lastActivity", "last_activity"))

    @model_validator(mode="before")
    @classmethod
    def _badges_list(cls, data: Any) -> Any:
        if isinstance(data, dict) and not isinstance(data.get("badges"), (list, tuple)):
            data = {**data, "badges": []}
        return data

    @model_validator(mode="after")
    def _default_name(self) -> "LeaderboardSource":
        if not self.display_name:
            self.display_name = self.id
        return self


M = TypeVar("M", bound=StoreRecord)


def parse_records(model: Type[M], rows: Iterable[dict], kind: str) -> List[M]:
    """Validate raw rows into ``model``; malformed rows are logged and skipped."""
    parsed: List[M] = []
    for row in rows:
        try:
            parsed.append(model.model_validate(row))
        except ValidationError as exc:
            logger.warning(
                "malformed_%s_record id=%s errors=%d",
                kind,
                row.get("id") if isinstance(row, dict) else None,
                exc.error_count(),
            )
    return parsed
