# database/live_hub_repo.py
from typing import Any, Dict, List, Optional

from sqlalchemy import select

from database.db import get_session
from database.models import LiveHubContent


def _serialize_entry(record: LiveHubContent) -> Dict[str, Any]:
    return {
        "id": record.id,
        "category": record.category,
        "data": dict(record.data or {}),
        "created_by": record.created_by,
        "created_at": record.created_at.isoformat() if record.created_at else None,
    }


def insert_entry(category: str, data: Dict[str, Any], created_by: Optional[str]) -> Dict[str, Any]:
    with get_session() as db:
        record = LiveHubContent(category=category, data=data, created_by=created_by)
        db.add(record)
        db.flush()
        db.refresh(record)
        return _serialize_entry(record)


def get_entry(entry_id: int) -> Optional[Dict[str, Any]]:
    with get_session() as db:
        record = db.get(LiveHubContent, entry_id)
        return _serialize_entry(record) if record else None


def list_entries(category: Optional[str] = None) -> List[Dict[str, Any]]:
    with get_session() as db:
        stmt = select(LiveHubContent)
        if category:
            stmt = stmt.where(LiveHubContent.category == category)
        stmt = stmt.order_by(LiveHubContent.created_at.desc(), LiveHubContent.id.desc())
        return [_serialize_entry(r) for r in db.execute(stmt).scalars().all()]


def delete_entry(entry_id: int) -> bool:
    with get_session() as db:
        record = db.get(LiveHubContent, entry_id)
        if not record:
            return False
        db.delete(record)
        return True
