"""Error taxonomy shared by the services and the HTTP layer.

Every error is a ``ValueError`` so callers that only care about "the request
was rejected" can keep catching ``ValueError``. The HTTP layer uses ``kind``
to pick a status code and renders the remaining attributes into the failure
envelope.
"""


class ParkOpsError(ValueError):
    kind = "error"
    status_code = 400

    def __init__(self, message: str, *, error_type: str | None = None, **context):
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.context = context

    def to_dict(self) -> dict:
        out = {"success": False, "error": self.message, "errorType": self.error_type or self.kind.upper()}
        out.update({k: v for k, v in self.context.items() if v is not None})
        return out


class ValidationError(ParkOpsError):
    kind = "validation"
    status_code = 400


class NotFoundError(ParkOpsError):
    kind = "not_found"
    status_code = 404


class StateError(ParkOpsError):
    """Operation not allowed in the entity's current state."""
    kind = "state"
    status_code = 400


class ConflictError(ParkOpsError):
    kind = "conflict"
    status_code = 409

    def __init__(self, message: str, *, conflict_type: str, conflict_trip_id: str | None = None,
                 reason: str | None = None, **context):
        super().__init__(message, error_type=conflict_type, conflictType=conflict_type,
                         conflictTripId=conflict_trip_id, reason=reason, **context)
        self.conflict_type = conflict_type
        self.conflict_trip_id = conflict_trip_id
        self.reason = reason


SLOT_TAKEN = "SLOT_TAKEN"
DRIVER_CONFLICT = "DRIVER_CONFLICT"
VEHICLE_CONFLICT = "VEHICLE_CONFLICT"
PARCEL_CAPACITY_EXCEEDED = "PARCEL_CAPACITY_EXCEEDED"
DUPLICATE_LICENSE = "DUPLICATE_LICENSE"

HOLD_EXPIRED = "HOLD_EXPIRED"
INVALID_TRANSITION = "INVALID_TRANSITION"

# check-in failure reasons
INVALID_BOOKING = "INVALID_BOOKING"
DUPLICATE_CHECKIN = "DUPLICATE_CHECKIN"
CANCELLED_BOOKING = "CANCELLED_BOOKING"
PAYMENT_PENDING = "PAYMENT_PENDING"
WRONG_DATE = "WRONG_DATE"
