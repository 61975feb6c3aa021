# onetrack/services/stats_service.py
import csv
import io
import uuid
from datetime import date, datetime, timedelta, timezone

from sqlmodel import Session

from onetrack.repositories.stats_repo import StatsRepository
from onetrack.schemas.stats import (
    DailyCount,
    RequestReport,
    RequestStats,
    StatusSegment,
)
from onetrack.services.request_service import STAFF_ROLES, STATUS_LABELS, normalize_status

STATUS_ORDER = ("pending", "in_progress", "completed")

SEGMENT_LABELS = {
    "pending": "Pending",
    "in_progress": "In Progress",
    "completed": "Completed",
}

CSV_HEADERS = ["ID", "Title", "Status", "Customer", "Phone", "Location", "Created At"]


def creator_scope(role: str, user_id: uuid.UUID) -> uuid.UUID | None:
    """Staff see every job; anyone else only the jobs they created."""
    return None if role in STAFF_ROLES else user_id


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back naive; they were stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class StatsService:
    """
    Aggregates for dashboards and the reports page.

    Every call re-queries; realtime listeners simply call these again.
    """

    def __init__(self, repo: StatsRepository):
        self.repo = repo

    def _status_counts(
        self,
        session: Session,
        created_by: uuid.UUID | None = None,
    ) -> tuple[dict[str, int], int]:
        counts = {key: 0 for key in STATUS_ORDER}
        statuses = self.repo.status_rows(session, created_by)
        for raw in statuses:
            counts[normalize_status(raw)] += 1
        return counts, len(statuses)

    def get_request_stats(
        self,
        session: Session,
        created_by: uuid.UUID | None = None,
    ) -> RequestStats:
        counts, _ = self._status_counts(session, created_by)
        return RequestStats(
            pending=counts["pending"],
            in_progress=counts["in_progress"],
            completed=counts["completed"],
            active=counts["pending"] + counts["in_progress"],
        )

    def get_report(self, session: Session, today: date | None = None) -> RequestReport:
        if today is None:
            today = datetime.now(timezone.utc).date()

        counts, total = self._status_counts(session)
        completion_rate = round(counts["completed"] / total * 100) if total else 0

        segments: list[StatusSegment] = []
        offset = 0.0
        divisor = total or 1
        for key in STATUS_ORDER:
            ratio = counts[key] / divisor
            segments.append(
                StatusSegment(
                    key=key,
                    label=SEGMENT_LABELS[key],
                    value=counts[key],
                    ratio=ratio,
                    offset=offset,
                )
            )
            offset += ratio

        # Last 7 days, oldest first, including today
        days = [today - timedelta(days=i) for i in range(6, -1, -1)]
        per_day = {day: 0 for day in days}
        since = datetime.combine(days[0], datetime.min.time(), tzinfo=timezone.utc)
        for created_at in self.repo.created_since(session, since):
            day = _as_utc(created_at).date()
            if day in per_day:
                per_day[day] += 1

        last_7_days = [DailyCount(date=day, count=per_day[day]) for day in days]

        return RequestReport(
            total=total,
            status_counts=counts,
            completion_rate=completion_rate,
            segments=segments,
            last_7_days=last_7_days,
            weekly_total=sum(item.count for item in last_7_days),
        )

    def export_csv(self, session: Session) -> str:
        """
        Every job as CSV. All cells are quoted; quotes are doubled.
        """
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(CSV_HEADERS)
        for job in self.repo.all_requests(session):
            writer.writerow(
                [
                    job.id,
                    job.title or "",
                    STATUS_LABELS[normalize_status(job.status)],
                    job.customer_name or "",
                    job.customer_phone or "",
                    job.location or "",
                    job.created_at.isoformat() if job.created_at else "",
                ]
            )
        return buffer.getvalue()
