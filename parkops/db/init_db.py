from parkops.db.session import Base

# Import all models so they are registered in Base.metadata
from parkops.models.park import Park  # noqa: F401
from parkops.models.route import Route  # noqa: F401
from parkops.models.vehicle import Vehicle  # noqa: F401
from parkops.models.driver import Driver  # noqa: F401
from parkops.models.trip import Trip  # noqa: F401
from parkops.models.booking import Booking  # noqa: F401
from parkops.models.parcel import Parcel  # noqa: F401
from parkops.models.adjustment import Adjustment  # noqa: F401
from parkops.models.audit_log import AuditLog  # noqa: F401


def create_tables(engine) -> None:
    Base.metadata.create_all(engine)
