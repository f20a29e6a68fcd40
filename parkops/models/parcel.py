from sqlalchemy import String, Integer, DateTime, Float
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from parkops.db.session import Base

class Parcel(Base):
    __tablename__ = "parcels"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    park_id: Mapped[str] = mapped_column(String(80), index=True)
    description: Mapped[str] = mapped_column(String(255), default="")
    weight_kg: Mapped[float] = mapped_column(Float, default=0)
    destination_route_id: Mapped[str] = mapped_column(String(36), nullable=True)
    sender_name: Mapped[str] = mapped_column(String(120), default="")
    sender_phone: Mapped[str] = mapped_column(String(30), default="")
    receiver_name: Mapped[str] = mapped_column(String(120), default="")
    receiver_phone: Mapped[str] = mapped_column(String(30), default="")
    fee: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String(20), default="unassigned")  # unassigned, assigned, in-transit, delivered
    assigned_trip_id: Mapped[str] = mapped_column(String(36), index=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
