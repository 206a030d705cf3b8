from fastapi import APIRouter, Depends, Header, Query

from resumate.analytics import db as analytics_db
from resumate.core.security import check_api_key

router = APIRouter()


def _auth(x_api_key: str | None = Header(default=None, alias="X-API-Key")):
    check_api_key(x_api_key)


@router.get("/analytics/summary")
def summary(_: None = Depends(_auth)):
    return analytics_db.get_summary()


@router.get("/analytics/runs")
def latest_runs(
    limit: int = Query(default=20, ge=1, le=200),
    _: None = Depends(_auth),
):
    return analytics_db.get_latest_runs(limit=limit)
