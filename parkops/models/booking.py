from sqlalchemy import String, Integer, DateTime, Boolean, Text
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from parkops.db.session import Base

class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    booking_ref: Mapped[str] = mapped_column(String(20), unique=True, index=True)
    trip_id: Mapped[str] = mapped_column(String(36), index=True)

    passenger_name: Mapped[str] = mapped_column(String(120))
    passenger_phone: Mapped[str] = mapped_column(String(30))
    passenger_email: Mapped[str] = mapped_column(String(120), nullable=True)
    nok_name: Mapped[str] = mapped_column(String(120))
    nok_phone: Mapped[str] = mapped_column(String(30))
    nok_address: Mapped[str] = mapped_column(String(255))

    seat_number: Mapped[int] = mapped_column(Integer, nullable=True)
    amount_paid: Mapped[int] = mapped_column(Integer, default=0)

    status: Mapped[str] = mapped_column(String(20), default="RESERVED")  # RESERVED, CONFIRMED, EXPIRED, CANCELLED, COMPLETED
    # UI mirrors of status
    payment_status: Mapped[str] = mapped_column(String(20), default="pending")  # pending, confirmed, refunded
    booking_status: Mapped[str] = mapped_column(String(20), default="pending")  # pending, confirmed, cancelled, refunded

    hold_token: Mapped[str] = mapped_column(String(64), nullable=True)
    hold_expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)

    checked_in: Mapped[bool] = mapped_column(Boolean, default=False)
    checked_in_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)

    payment_reference: Mapped[str] = mapped_column(String(80), nullable=True)
    cancellation_reason: Mapped[str] = mapped_column(String(255), nullable=True)
    confirmed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)
    details_json: Mapped[str] = mapped_column(Text, default="{}")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
