from fastapi import Depends, Header, HTTPException, Query
from sqlalchemy.orm import Session
from parkops.db.session import get_db
from parkops.services.fleet_service import get_park

# Identity comes from the upstream gateway and is trusted as-is.

def park_scope(
    x_park_id: str | None = Header(default=None),
    park_id: str | None = Query(default=None, alias="parkId"),
) -> str | None:
    return park_id or x_park_id

def get_actor(x_actor_id: str | None = Header(default=None)) -> str:
    return x_actor_id or "system"

def require_park(*candidates: str | None) -> str:
    for c in candidates:
        if c:
            return c
    raise HTTPException(status_code=400, detail="parkId is required")

def current_park(park_id: str | None = Depends(park_scope), db: Session = Depends(get_db)) -> str:
    pid = require_park(park_id)
    get_park(db, pid)
    return pid
