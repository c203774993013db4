import logging
from datetime import date

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import func, insert, select

from personal_site.deps import get_store, get_today
from personal_site.months import current_month_key, month_bounds
from personal_site.store import RecordStore, visitors

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/visitors")


class VisitorPayload(BaseModel):
    ip: str | None = None
    city: str | None = None
    region: str | None = None
    country: str | None = None
    org: str | None = None
    timestamp: str | None = None
    loc: str | None = None


@router.post("")
def log_visitor(
    payload: VisitorPayload,
    store: RecordStore = Depends(get_store),
    today: date = Depends(get_today),
) -> dict:
    with store.begin() as conn:
        conn.execute(insert(visitors).values(**payload.model_dump(), date=today))
    logger.info(
        "New visitor: %s, %s, %s | IP: %s",
        payload.city,
        payload.region,
        payload.country,
        payload.ip,
    )
    return {"message": "Visitor logged"}


@router.get("/stats")
def visitor_stats(
    store: RecordStore = Depends(get_store),
    today: date = Depends(get_today),
) -> dict:
    month_start, month_end = month_bounds(current_month_key(today))
    with store.begin() as conn:
        monthly_users = conn.execute(
            select(func.count())
            .select_from(visitors)
            .where(visitors.c.date >= month_start, visitors.c.date <= month_end)
        ).scalar_one()
        today_users = conn.execute(
            select(func.count()).select_from(visitors).where(visitors.c.date == today)
        ).scalar_one()
        country_rows = conn.execute(
            select(visitors.c.country, visitors.c.city, func.count().label("count"))
            .group_by(visitors.c.country, visitors.c.city)
        ).mappings().all()
        location_rows = conn.execute(
            select(
                visitors.c.city,
                visitors.c.country,
                visitors.c.loc,
                visitors.c.org,
                func.count().label("count"),
            )
            .where(visitors.c.loc.is_not(None))
            .group_by(visitors.c.city, visitors.c.country, visitors.c.loc, visitors.c.org)
        ).mappings().all()

    return {
        "monthlyUsers": monthly_users,
        "todayUsers": today_users,
        "countries": {
            f"{row['country']} - {row['city']}": int(row["count"]) for row in country_rows
        },
        "locations": [
            {
                "city": row["city"],
                "country": row["country"],
                "loc": row["loc"],
                "org": row["org"],
                "count": int(row["count"]),
            }
            for row in location_rows
        ],
    }
