from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _as_str(v: Any) -> Any:
    # The backend keys some records by integer row ids; the client treats every id as text.
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(int(v))
    if v is None:
        return ""
    return v


class Job(BaseModel):
    """
    A named command the backend can execute on request.
    An empty id means "not yet created"; the backend assigns ids on create.
    """

    id: str = ""
    cmd: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return _as_str(v)

    @property
    def persisted(self) -> bool:
        return bool(self.id)


class LogEntry(BaseModel):
    """
    Record of a past job execution. List views carry metadata only; `body` is
    fetched on demand by the detail view.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default="", alias="Id")
    job: Optional[str] = Field(default=None, alias="Name")
    user: Optional[str] = Field(default=None, alias="User")
    start: Optional[datetime] = Field(default=None, alias="Start")
    end: Optional[datetime] = Field(default=None, alias="End")
    status: Optional[int] = Field(default=None, alias="Status")
    body: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return _as_str(v)

    @field_validator("start", "end", mode="after")
    @classmethod
    def zero_time_is_unset(cls, v: Optional[datetime]) -> Optional[datetime]:
        # Unfinished runs are reported with the zero timestamp (year 1).
        if v is not None and v.year <= 1:
            return None
        return v

    @property
    def finished(self) -> bool:
        return self.end is not None


class PageCursors(BaseModel):
    previous_page: Optional[int] = None
    next_page: Optional[int] = None
    length: Optional[int] = None

    @property
    def paged(self) -> bool:
        return self.previous_page is not None or self.next_page is not None


class LogPage(BaseModel):
    """A window over the log list, newest first."""

    model_config = ConfigDict(populate_by_name=True)

    entries: List[LogEntry] = Field(default_factory=list, alias="Entries")
    length: int = Field(default=0, alias="Length")
    page: Optional[int] = None

    @field_validator("entries", mode="before")
    @classmethod
    def null_entries(cls, v: Any) -> Any:
        return [] if v is None else v

    def cursors(self) -> PageCursors:
        if self.page is None:
            return PageCursors(length=self.length)
        prev = self.page - 1
        return PageCursors(
            previous_page=prev if prev > 0 else None,
            next_page=self.page + 1 if self.entries else None,
            length=self.length,
        )


class FieldError(BaseModel):
    """Backend validation error keyed to one input field of the job form."""

    target: str
    error: str


class MutationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    msg: str = ""
    validation_error: List[FieldError] = Field(default_factory=list, alias="validationError")

    @field_validator("validation_error", mode="before")
    @classmethod
    def null_errors(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("msg", mode="before")
    @classmethod
    def null_msg(cls, v: Any) -> Any:
        return "" if v is None else v
