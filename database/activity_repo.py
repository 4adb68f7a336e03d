# database/activity_repo.py
from typing import Any, Dict, List, Optional

from sqlalchemy import select

from database.db import get_session
from database.models import ActivityLog


def _serialize_log(record: ActivityLog) -> Dict[str, Any]:
    return {
        "id": record.id,
        "user_id": record.user_id,
        "user_email": record.user_email or "",
        "action_type": record.action_type,
        "description": record.description or "",
        "metadata": record.extra or {},
        "created_at": record.created_at.isoformat() if record.created_at else None,
    }


def insert_log(user_id: Optional[str], user_email: Optional[str], action_type: str,
               description: str, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    with get_session() as db:
        record = ActivityLog(
            user_id=user_id,
            user_email=user_email,
            action_type=action_type,
            description=description,
            extra=metadata or {},
        )
        db.add(record)
        db.flush()
        return _serialize_log(record)


def list_logs(action_type: Optional[str] = None, user_id: Optional[str] = None,
              offset: int = 0, limit: int = 50) -> List[Dict[str, Any]]:
    with get_session() as db:
        stmt = select(ActivityLog)
        if action_type:
            stmt = stmt.where(ActivityLog.action_type == action_type)
        if user_id:
            stmt = stmt.where(ActivityLog.user_id == user_id)
        stmt = stmt.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()).offset(offset).limit(limit)
        return [_serialize_log(r) for r in db.execute(stmt).scalars().all()]
