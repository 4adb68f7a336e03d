# database/schedules_repo.py
# 店铺 + 排班格子读写
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import select, and_
from sqlalchemy.exc import IntegrityError

from database.db import get_session, now_utc
from database.models import ScheduleEntry, Shop


def _serialize_shop(record: Shop) -> Dict[str, Any]:
    return {
        "id": record.id,
        "name": record.name,
        "country": record.country,
        "created_at": record.created_at.isoformat() if record.created_at else None,
    }


def _serialize_entry(record: ScheduleEntry) -> Dict[str, Any]:
    return {
        "id": record.id,
        "shop_id": record.shop_id,
        "shop_name": record.shop_name or "",
        "country": record.country or "",
        "date": record.date.isoformat(),
        "hour_slot": record.hour_slot,
        "anchor_id": record.anchor_id,
        "anchor_name": record.anchor_name or "",
        "fans_added": record.fans_added,
        "mood": record.mood or "",
        "updated_at": record.updated_at.isoformat() if record.updated_at else None,
    }


# ---------------------------------------------------------------------- #
# shops
# ---------------------------------------------------------------------- #
def create_shop(name: str, country: str) -> Dict[str, Any]:
    with get_session() as db:
        record = Shop(name=name, country=country)
        db.add(record)
        db.flush()
        db.refresh(record)
        return _serialize_shop(record)


def list_shops(country: Optional[str] = None) -> List[Dict[str, Any]]:
    with get_session() as db:
        stmt = select(Shop)
        if country:
            stmt = stmt.where(Shop.country == country)
        stmt = stmt.order_by(Shop.created_at.asc())
        return [_serialize_shop(r) for r in db.execute(stmt).scalars().all()]


def get_shop(shop_id: str) -> Optional[Dict[str, Any]]:
    with get_session() as db:
        record = db.get(Shop, shop_id)
        return _serialize_shop(record) if record else None


def delete_shop(shop_id: str) -> bool:
    """排班随店铺一起删除（ORM cascade / 外键 ON DELETE CASCADE）。"""
    with get_session() as db:
        record = db.get(Shop, shop_id)
        if not record:
            return False
        db.delete(record)
        return True


# ---------------------------------------------------------------------- #
# schedule cells
# ---------------------------------------------------------------------- #
def _cell_stmt(shop_id: str, day: date, hour: int):
    return select(ScheduleEntry).where(
        and_(ScheduleEntry.shop_id == shop_id, ScheduleEntry.date == day, ScheduleEntry.hour_slot == hour)
    )


def get_entry(shop_id: str, day: date, hour: int) -> Optional[Dict[str, Any]]:
    with get_session() as db:
        record = db.execute(_cell_stmt(shop_id, day, hour)).scalar_one_or_none()
        return _serialize_entry(record) if record else None


def list_entries(shop_id: str, start: date, end: date) -> List[Dict[str, Any]]:
    """[start, end] 闭区间"""
    with get_session() as db:
        stmt = (
            select(ScheduleEntry)
            .where(and_(ScheduleEntry.shop_id == shop_id, ScheduleEntry.date >= start, ScheduleEntry.date <= end))
            .order_by(ScheduleEntry.date.asc(), ScheduleEntry.hour_slot.asc())
        )
        return [_serialize_entry(r) for r in db.execute(stmt).scalars().all()]


def _apply_assignment(db, shop: Shop, day: date, hour: int, anchor_id: str, anchor_name: str) -> ScheduleEntry:
    record = db.execute(_cell_stmt(shop.id, day, hour)).scalar_one_or_none()
    if record is None:
        record = ScheduleEntry(shop_id=shop.id, date=day, hour_slot=hour)
        db.add(record)
    elif record.anchor_id != anchor_id:
        # 换人之后旧的汇报数据不再属于新主播
        record.fans_added = None
        record.mood = None
    record.country = shop.country
    record.shop_name = shop.name
    record.anchor_id = anchor_id
    record.anchor_name = anchor_name
    record.updated_at = now_utc()
    db.flush()
    return record


def upsert_assignment(shop_id: str, day: date, hour: int, anchor_id: str, anchor_name: str) -> Optional[Dict[str, Any]]:
    """按 (shop, date, hour) upsert；并发插入撞唯一键时按更新重试一次（后写为准）。"""
    for attempt in range(2):
        try:
            with get_session() as db:
                shop = db.get(Shop, shop_id)
                if shop is None:
                    return None
                record = _apply_assignment(db, shop, day, hour, anchor_id, anchor_name)
                db.refresh(record)
                return _serialize_entry(record)
        except IntegrityError:
            if attempt:
                raise
    return None


def delete_entry(shop_id: str, day: date, hour: int) -> bool:
    with get_session() as db:
        record = db.execute(_cell_stmt(shop_id, day, hour)).scalar_one_or_none()
        if record is None:
            return False
        db.delete(record)
        return True


def update_report(shop_id: str, day: date, hour: int, fans_added: int, mood: Optional[str]) -> Optional[Dict[str, Any]]:
    with get_session() as db:
        record = db.execute(_cell_stmt(shop_id, day, hour)).scalar_one_or_none()
        if record is None:
            return None
        record.fans_added = fans_added
        record.mood = mood
        record.updated_at = now_utc()
        db.flush()
        db.refresh(record)
        return _serialize_entry(record)
