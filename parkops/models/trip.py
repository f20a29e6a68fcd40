from sqlalchemy import String, Integer, DateTime, Float, Text
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from parkops.db.session import Base

class Trip(Base):
    __tablename__ = "trips"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    park_id: Mapped[str] = mapped_column(String(80), index=True)
    route_id: Mapped[str] = mapped_column(String(36), index=True)

    date_str: Mapped[str] = mapped_column(String(10), index=True)  # YYYY-MM-DD, park-local
    unit_time: Mapped[str] = mapped_column(String(5))               # HH:MM departure, park-local
    duration_minutes: Mapped[int] = mapped_column(Integer, default=180)

    vehicle_id: Mapped[str] = mapped_column(String(36), index=True)
    driver_id: Mapped[str] = mapped_column(String(36), index=True, nullable=True)

    seat_count: Mapped[int] = mapped_column(Integer)
    price: Mapped[int] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(String(20), default="draft")  # draft, published, live, completed, cancelled
    confirmed_bookings_count: Mapped[int] = mapped_column(Integer, default=0)

    max_parcels_per_vehicle: Mapped[int] = mapped_column(Integer, default=10)
    max_parcel_weight_kg: Mapped[float] = mapped_column(Float, nullable=True)

    payout_status: Mapped[str] = mapped_column(String(20), default="NotScheduled")  # NotScheduled, Scheduled, Paid

    recurrence_group_id: Mapped[str] = mapped_column(String(36), index=True, nullable=True)
    recurrence_json: Mapped[str] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
