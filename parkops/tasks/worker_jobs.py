import logging
from datetime import datetime
from parkops.db.session import Store, get_store
from parkops.services.booking_service import expire_stale_holds

log = logging.getLogger(__name__)


def expire_holds(store: Store | None = None, now: datetime | None = None) -> dict:
    """Mark every lapsed RESERVED hold as EXPIRED. Run periodically via Celery beat."""
    store = store or get_store()
    with store.session() as db:
        expired = expire_stale_holds(db, now=now)
        db.commit()
    if expired:
        log.info("hold sweep expired %d booking(s)", len(expired))
    return {"expired": len(expired)}
