import json
import uuid
from sqlalchemy.orm import Session
from parkops.models.audit_log import AuditLog


def log_audit(db: Session, park_id: str | None, actor: str | None, action: str, entity_type: str, entity_id: str,
              details: dict | None = None):
    db.add(AuditLog(
        id=str(uuid.uuid4()),
        park_id=park_id,
        actor=actor or "system",
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details_json=json.dumps(details or {}, ensure_ascii=False, default=str),
    ))


def list_audit_logs(db: Session, park_id: str | None = None, entity_type: str = "", entity_id: str = "",
                    limit: int = 200) -> list[AuditLog]:
    q = db.query(AuditLog)
    if park_id:
        q = q.filter(AuditLog.park_id == park_id)
    if entity_type:
        q = q.filter(AuditLog.entity_type == entity_type)
    if entity_id:
        q = q.filter(AuditLog.entity_id == entity_id)
    return q.order_by(AuditLog.created_at.desc()).limit(min(max(limit, 1), 1000)).all()
