from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from parkops.api.deps import current_park, park_scope
from parkops.db.session import get_db
from parkops.schemas.ops import BookingStats, DashboardOverview, audit_out
from parkops.services.audit_service import list_audit_logs
from parkops.services.booking_service import expire_stale_holds
from parkops.services.query_service import booking_stats, dashboard_overview

router = APIRouter(tags=["ops"])


@router.get("/ops/stats", response_model=BookingStats)
def stats(park_id: str = Depends(current_park), db: Session = Depends(get_db)):
    return booking_stats(db, park_id)


@router.get("/ops/dashboard", response_model=DashboardOverview)
def dashboard(days: int = 7, park_id: str = Depends(current_park), db: Session = Depends(get_db)):
    return dashboard_overview(db, park_id, days=days)


@router.get("/ops/audit-logs")
def audit_logs(entityType: str = "", entityId: str = "", limit: int = 200,
               park_id: str | None = Depends(park_scope), db: Session = Depends(get_db)):
    rows = list_audit_logs(db, park_id, entity_type=entityType, entity_id=entityId, limit=limit)
    return {"success": True, "data": [audit_out(a) for a in rows]}


@router.post("/ops/expire-holds")
def expire_holds_now(db: Session = Depends(get_db)):
    expired = expire_stale_holds(db)
    db.commit()
    return {"success": True, "data": {"expired": len(expired)}}
