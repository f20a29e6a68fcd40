import json
from typing import Any, Dict, List, Optional
from pydantic import BaseModel
from parkops.core.timeutils import iso
from parkops.models.audit_log import AuditLog


class DashboardSeriesPoint(BaseModel):
    date: str
    value: int


class TopRoute(BaseModel):
    routeId: str
    destination: Optional[str] = None
    bookings: int
    revenue: int


class DashboardOverview(BaseModel):
    date: str
    tripsToday: int
    bookingsToday: int
    revenueToday: int
    activeRoutes: int
    totalDrivers: int
    activeDrivers: int
    bookingsByDay: List[DashboardSeriesPoint]
    revenueByDay: List[DashboardSeriesPoint]
    topRoutes: List[TopRoute]


class BookingStats(BaseModel):
    total: int
    reserved: int
    confirmed: int
    expired: int
    cancelled: int
    completed: int
    todayRevenue: int


class AuditLogOut(BaseModel):
    id: str
    parkId: Optional[str] = None
    actor: str
    action: str
    entityType: str
    entityId: str
    details: Dict[str, Any]
    createdAt: Optional[str] = None


def audit_out(a: AuditLog) -> AuditLogOut:
    return AuditLogOut(
        id=a.id, parkId=a.park_id, actor=a.actor, action=a.action, entityType=a.entity_type,
        entityId=a.entity_id, details=json.loads(a.details_json or "{}"), createdAt=iso(a.created_at),
    )
