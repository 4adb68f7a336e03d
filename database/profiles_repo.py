# database/profiles_repo.py
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func

from database.db import get_session, now_utc
from database.models import Profile

PROFILE_MUTABLE_FIELDS = {"username", "country"}


def _serialize_profile(record: Profile) -> Dict[str, Any]:
    return {
        "id": record.id,
        "email": record.email,
        "username": record.username or "",
        "role": record.role,
        "country": record.country or "",
        "last_login": record.last_login.isoformat() if record.last_login else None,
        "last_ip": record.last_ip or "",
        "created_at": record.created_at.isoformat() if record.created_at else None,
    }


def create_profile(email: str, hashed_password: str, username: str, country: Optional[str],
                   role: str = "creator") -> Optional[Dict[str, Any]]:
    """邮箱已存在返回 None。"""
    with get_session() as db:
        exists = db.execute(
            select(Profile.id).where(func.lower(Profile.email) == email.lower())
        ).scalar_one_or_none()
        if exists is not None:
            return None
        record = Profile(
            email=email.lower(),
            hashed_password=hashed_password,
            username=username,
            country=country,
            role=role,
        )
        db.add(record)
        db.flush()
        db.refresh(record)
        return _serialize_profile(record)


def get_profile(profile_id: str) -> Optional[Dict[str, Any]]:
    with get_session() as db:
        record = db.get(Profile, profile_id)
        return _serialize_profile(record) if record else None


def get_credentials(email: str) -> Optional[Dict[str, Any]]:
    """登录校验用，带 hashed_password。"""
    with get_session() as db:
        record = db.execute(
            select(Profile).where(func.lower(Profile.email) == email.lower())
        ).scalar_one_or_none()
        if not record:
            return None
        data = _serialize_profile(record)
        data["hashed_password"] = record.hashed_password
        return data


def record_login(profile_id: str, ip: Optional[str]) -> Optional[Dict[str, Any]]:
    with get_session() as db:
        record = db.get(Profile, profile_id)
        if not record:
            return None
        record.last_login = now_utc()
        record.last_ip = ip
        db.flush()
        db.refresh(record)
        return _serialize_profile(record)


def update_profile(profile_id: str, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    data = {k: v for k, v in payload.items() if k in PROFILE_MUTABLE_FIELDS and v is not None}
    with get_session() as db:
        record = db.get(Profile, profile_id)
        if not record:
            return None
        for key, value in data.items():
            setattr(record, key, value)
        db.flush()
        db.refresh(record)
        return _serialize_profile(record)


def set_role(profile_id: str, role: str) -> Optional[Dict[str, Any]]:
    with get_session() as db:
        record = db.get(Profile, profile_id)
        if not record:
            return None
        record.role = role
        db.flush()
        db.refresh(record)
        return _serialize_profile(record)


def list_profiles(role: Optional[str] = None, country: Optional[str] = None) -> List[Dict[str, Any]]:
    with get_session() as db:
        stmt = select(Profile)
        if role:
            stmt = stmt.where(Profile.role == role)
        if country:
            stmt = stmt.where(Profile.country == country)
        stmt = stmt.order_by(Profile.username.asc())
        return [_serialize_profile(r) for r in db.execute(stmt).scalars().all()]
