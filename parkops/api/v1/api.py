from fastapi import APIRouter
from parkops.api.v1.routes.trips import router as trips_router
from parkops.api.v1.routes.parks import router as parks_router
from parkops.api.v1.routes.bookings import router as bookings_router
from parkops.api.v1.routes.bus_routes import router as bus_routes_router
from parkops.api.v1.routes.drivers import router as drivers_router
from parkops.api.v1.routes.ops import router as ops_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(trips_router)
api_router.include_router(parks_router)
api_router.include_router(bookings_router)
api_router.include_router(bus_routes_router)
api_router.include_router(drivers_router)
api_router.include_router(ops_router)
