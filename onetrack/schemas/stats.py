# onetrack/schemas/stats.py
from datetime import date

from pydantic import ConfigDict
from sqlmodel import SQLModel

from onetrack.schemas.job_request import JobStatus


class RequestStats(SQLModel):
    """
    Dashboard cards. active = pending + in_progress.
    """
    model_config = ConfigDict(extra="forbid")

    pending: int
    in_progress: int
    completed: int
    active: int


class StatusSegment(SQLModel):
    """
    One slice of the status donut. offset is the cumulative ratio of the
    preceding slices.
    """
    model_config = ConfigDict(extra="forbid")

    key: JobStatus
    label: str
    value: int
    ratio: float
    offset: float


class DailyCount(SQLModel):
    """
    Requests created on a given day.
    """
    model_config = ConfigDict(extra="forbid")

    date: date
    count: int


class RequestReport(SQLModel):
    """
    Full payload for the reports page.
    """
    model_config = ConfigDict(extra="forbid")

    total: int
    status_counts: dict[str, int]
    completion_rate: int
    segments: list[StatusSegment]
    last_7_days: list[DailyCount]
    weekly_total: int
