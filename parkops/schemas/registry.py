from typing import Optional
from pydantic import BaseModel
from parkops.core.timeutils import iso
from parkops.models.driver import Driver
from parkops.models.parcel import Parcel
from parkops.models.route import Route
from parkops.models.vehicle import Vehicle
from parkops.schemas.base import CamelIn


class RouteIn(CamelIn):
    park_id: Optional[str] = None
    destination: str
    destination_park: Optional[str] = None
    base_price: Optional[int] = None
    vehicle_capacity: Optional[int] = None
    is_active: bool = True


class RoutePatch(CamelIn):
    destination: Optional[str] = None
    destination_park: Optional[str] = None
    base_price: Optional[int] = None
    vehicle_capacity: Optional[int] = None
    is_active: Optional[bool] = None


class RouteOut(BaseModel):
    id: str
    parkId: str
    destination: str
    destinationPark: Optional[str] = None
    basePrice: int
    vehicleCapacity: int
    isActive: bool
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


def route_out(r: Route) -> RouteOut:
    return RouteOut(
        id=r.id, parkId=r.park_id, destination=r.destination, destinationPark=r.destination_park,
        basePrice=r.base_price, vehicleCapacity=r.vehicle_capacity, isActive=r.is_active,
        createdAt=iso(r.created_at), updatedAt=iso(r.updated_at),
    )


class DriverIn(CamelIn):
    park_id: Optional[str] = None
    name: str = ""
    phone: str = ""
    license_number: str = ""
    license_expiry: Optional[str] = None
    qualified_route: str = ""
    vehicle_plate_number: Optional[str] = None
    address: Optional[str] = None
    rating: Optional[float] = None
    is_active: bool = True


class DriverPatch(CamelIn):
    name: Optional[str] = None
    phone: Optional[str] = None
    license_number: Optional[str] = None
    license_expiry: Optional[str] = None
    qualified_route: Optional[str] = None
    vehicle_plate_number: Optional[str] = None
    address: Optional[str] = None
    rating: Optional[float] = None
    is_active: Optional[bool] = None


class DriverOut(BaseModel):
    id: str
    parkId: str
    name: str
    phone: str
    licenseNumber: str
    licenseExpiry: Optional[str] = None
    qualifiedRoute: str = ""
    vehiclePlateNumber: Optional[str] = None
    address: Optional[str] = None
    rating: Optional[float] = None
    isActive: bool = True
    createdAt: Optional[str] = None


def driver_out(d: Driver) -> DriverOut:
    return DriverOut(
        id=d.id, parkId=d.park_id, name=d.name, phone=d.phone, licenseNumber=d.license_number,
        licenseExpiry=d.license_expiry, qualifiedRoute=d.qualified_route or "",
        vehiclePlateNumber=d.vehicle_plate_number, address=d.address, rating=d.rating,
        isActive=d.is_active, createdAt=iso(d.created_at),
    )


class ParcelIn(CamelIn):
    description: str = ""
    weight_kg: float = 0
    destination_route_id: Optional[str] = None
    sender_name: str = ""
    sender_phone: str = ""
    receiver_name: str = ""
    receiver_phone: str = ""
    fee: int = 0


class ParcelOut(BaseModel):
    id: str
    parkId: str
    description: str
    weightKg: float
    destinationRouteId: Optional[str] = None
    senderName: str
    senderPhone: str
    receiverName: str
    receiverPhone: str
    fee: int
    status: str
    assignedTripId: Optional[str] = None
    createdAt: Optional[str] = None


def parcel_out(p: Parcel) -> ParcelOut:
    return ParcelOut(
        id=p.id, parkId=p.park_id, description=p.description, weightKg=p.weight_kg,
        destinationRouteId=p.destination_route_id, senderName=p.sender_name, senderPhone=p.sender_phone,
        receiverName=p.receiver_name, receiverPhone=p.receiver_phone, fee=p.fee, status=p.status,
        assignedTripId=p.assigned_trip_id, createdAt=iso(p.created_at),
    )


class VehicleIn(CamelIn):
    name: str
    seat_count: int
    plate_number: Optional[str] = None
    max_parcels_per_vehicle: int = 10
    max_parcel_weight_kg: Optional[float] = None


class VehicleOut(BaseModel):
    id: str
    parkId: str
    name: str
    plateNumber: Optional[str] = None
    seatCount: int
    maxParcelsPerVehicle: int
    maxParcelWeightKg: Optional[float] = None


def vehicle_out(v: Vehicle) -> VehicleOut:
    return VehicleOut(
        id=v.id, parkId=v.park_id, name=v.name, plateNumber=v.plate_number, seatCount=v.seat_count,
        maxParcelsPerVehicle=v.max_parcels_per_vehicle, maxParcelWeightKg=v.max_parcel_weight_kg,
    )
