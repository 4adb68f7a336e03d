# database/feedback_repo.py
from typing import Any, Dict, List, Optional

from sqlalchemy import select

from database.db import get_session, now_utc
from database.models import Feedback
from schemas.common import coerce_image_list, pick_text


def _serialize_feedback(record: Feedback) -> Dict[str, Any]:
    """原始行（含作者引用），展示层再决定是否打码。"""
    product = None
    if record.product is not None:
        product = {
            "id": record.product.id,
            "sku": record.product.sku,
            "name": pick_text(record.product.name, "CN"),
            "main_image": record.product.main_image or "",
        }
    author = None
    if record.author is not None:
        author = {"id": record.author.id, "username": record.author.username or "", "email": record.author.email}
    return {
        "id": record.id,
        "user_id": record.user_id,
        "author": author,
        "country": record.country or "",
        "category": record.category,
        "content": record.content,
        "images": coerce_image_list(record.images),
        "product_id": record.product_id,
        "product": product,
        "is_anonymous": bool(record.is_anonymous),
        "reply": record.reply or "",
        "logistics_info": record.logistics_info or "",
        "created_at": record.created_at.isoformat() if record.created_at else None,
        "replied_at": record.replied_at.isoformat() if record.replied_at else None,
    }


def insert_feedback(user_id: str, country: str, category: str, content: str, images: List[str],
                    product_id: Optional[int], is_anonymous: bool) -> Dict[str, Any]:
    with get_session() as db:
        record = Feedback(
            user_id=user_id,
            country=country,
            category=category,
            content=content,
            images=list(images or []),
            product_id=product_id,
            is_anonymous=is_anonymous,
        )
        db.add(record)
        db.flush()
        db.refresh(record)
        return _serialize_feedback(record)


def get_feedback(feedback_id: int) -> Optional[Dict[str, Any]]:
    with get_session() as db:
        record = db.get(Feedback, feedback_id)
        return _serialize_feedback(record) if record else None


def list_feedback(country: Optional[str] = None, category: Optional[str] = None,
                  processed: Optional[bool] = None, offset: int = 0, limit: int = 100) -> List[Dict[str, Any]]:
    with get_session() as db:
        stmt = select(Feedback)
        if country:
            stmt = stmt.where(Feedback.country == country)
        if category:
            stmt = stmt.where(Feedback.category == category)
        if processed is True:
            stmt = stmt.where(Feedback.reply.is_not(None), Feedback.reply != "")
        elif processed is False:
            stmt = stmt.where((Feedback.reply.is_(None)) | (Feedback.reply == ""))
        stmt = stmt.order_by(Feedback.created_at.desc(), Feedback.id.desc()).offset(offset).limit(limit)
        return [_serialize_feedback(r) for r in db.execute(stmt).unique().scalars().all()]


def update_reply(feedback_id: int, reply: Optional[str], logistics_info: Optional[str]) -> Optional[Dict[str, Any]]:
    """reply 总是覆盖；logistics_info 只有传了才覆盖。"""
    with get_session() as db:
        record = db.get(Feedback, feedback_id)
        if not record:
            return None
        record.reply = reply or ""
        if logistics_info:
            record.logistics_info = logistics_info
        record.replied_at = now_utc()
        db.flush()
        db.refresh(record)
        return _serialize_feedback(record)
