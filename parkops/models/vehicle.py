from sqlalchemy import String, Integer, Float
from sqlalchemy.orm import Mapped, mapped_column
from parkops.db.session import Base

class Vehicle(Base):
    __tablename__ = "vehicles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    park_id: Mapped[str] = mapped_column(String(80), index=True)
    name: Mapped[str] = mapped_column(String(120))  # e.g. Toyota Hiace
    plate_number: Mapped[str] = mapped_column(String(20), nullable=True)
    seat_count: Mapped[int] = mapped_column(Integer)
    max_parcels_per_vehicle: Mapped[int] = mapped_column(Integer, default=10)
    max_parcel_weight_kg: Mapped[float] = mapped_column(Float, nullable=True)
