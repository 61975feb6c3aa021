# onetrack/routers/reports.py
from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlmodel import Session

from onetrack.core.auth import CurrentUser, get_current_user, require_admin
from onetrack.database import get_session
from onetrack.repositories.stats_repo import StatsRepository
from onetrack.schemas.stats import RequestReport, RequestStats
from onetrack.services.stats_service import StatsService, creator_scope

router = APIRouter(tags=["Reports"])

repo = StatsRepository()
service = StatsService(repo)


@router.get("/stats/requests", response_model=RequestStats)
def request_stats(
    session: Session = Depends(get_session),
    user: CurrentUser = Depends(get_current_user),
):
    """
    Dashboard counters.

    - active = pending + in_progress
    - customers only count the jobs they created
    """
    return service.get_request_stats(session, creator_scope(user.role, user.id))


@router.get(
    "/reports/requests",
    response_model=RequestReport,
    dependencies=[Depends(require_admin)],
)
def request_report(session: Session = Depends(get_session)):
    """
    Reports page payload (admin only): status totals, completion rate,
    donut segments and the last 7 days.
    """
    return service.get_report(session)


@router.get(
    "/reports/requests.csv",
    dependencies=[Depends(require_admin)],
)
def export_requests_csv(session: Session = Depends(get_session)):
    """Download every job as CSV (admin only)."""
    return Response(
        content=service.export_csv(session),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="requests-report.csv"'},
    )
