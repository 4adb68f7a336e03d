# database/products_repo.py
# 商品目录读写（列表页 / 详情 / 导入 upsert / 图片维护）
from typing import Optional, Dict, Any, List

from sqlalchemy import select, func

from database.db import get_session, now_utc
from database.models import Product
from schemas.common import coerce_image_list, coerce_translation_set, pick_text

TRANSLATED_FIELDS = ("name", "size", "features")
PRODUCT_MUTABLE_FIELDS = {"name", "size", "features", "main_image", "pattern_images"}


def _serialize_product(record: Product, lang: Optional[str] = None) -> Dict[str, Any]:
    data = {
        "id": record.id,
        "sku": record.sku,
        "name": coerce_translation_set(record.name),
        "size": coerce_translation_set(record.size),
        "features": coerce_translation_set(record.features),
        "main_image": record.main_image or "",
        "pattern_images": coerce_image_list(record.pattern_images),
        "created_at": record.created_at.isoformat() if record.created_at else None,
        "updated_at": record.updated_at.isoformat() if record.updated_at else None,
    }
    if lang:
        # 当前语言的展示文本（缺失时回退 CN -> EN -> 任意非空）
        data["display"] = {field: pick_text(data[field], lang) for field in TRANSLATED_FIELDS}
    return data


def list_products(
    keyword: Optional[str] = None,  # SKU 或当前语言名称模糊搜
    lang: Optional[str] = "CN",
    offset: int = 0,
    limit: int = 50,
) -> Dict[str, Any]:
    with get_session() as db:
        if keyword and keyword.strip():
            # 名称是 JSON 多语言字段，按当前语言在内存里过滤
            needle = keyword.strip().lower()
            rows = db.execute(select(Product).order_by(Product.created_at.desc())).scalars().all()
            matched = [
                r for r in rows
                if needle in r.sku.lower() or needle in pick_text(r.name, lang).lower()
            ]
            total = len(matched)
            page = matched[offset:offset + limit]
        else:
            total = db.execute(select(func.count()).select_from(Product)).scalar() or 0
            page = db.execute(
                select(Product).order_by(Product.created_at.desc()).offset(offset).limit(limit)
            ).scalars().all()
        return {"items": [_serialize_product(r, lang) for r in page], "total": total}


def get_product(product_id: int, lang: Optional[str] = None) -> Optional[Dict[str, Any]]:
    with get_session() as db:
        record = db.get(Product, product_id)
        if not record:
            return None
        return _serialize_product(record, lang)


def get_product_by_sku(sku: str, lang: Optional[str] = None) -> Optional[Dict[str, Any]]:
    with get_session() as db:
        record = db.execute(select(Product).where(Product.sku == sku)).scalar_one_or_none()
        if not record:
            return None
        return _serialize_product(record, lang)


def get_products_by_ids(product_ids: List[int]) -> List[Dict[str, Any]]:
    if not product_ids:
        return []
    with get_session() as db:
        rows = db.execute(select(Product).where(Product.id.in_(product_ids))).scalars().all()
        by_id = {r.id: _serialize_product(r) for r in rows}
        return [by_id[pid] for pid in product_ids if pid in by_id]


def create_product(sku: str, name: Any, size: Any, features: Any, main_image: str = "",
                   pattern_images: Optional[List[str]] = None) -> Optional[Dict[str, Any]]:
    """返回 None 表示 SKU 已存在。"""
    with get_session() as db:
        exists = db.execute(select(Product.id).where(Product.sku == sku)).scalar_one_or_none()
        if exists is not None:
            return None
        record = Product(
            sku=sku,
            name=coerce_translation_set(name),
            size=coerce_translation_set(size),
            features=coerce_translation_set(features),
            main_image=main_image or "",
            pattern_images=coerce_image_list(pattern_images),
        )
        db.add(record)
        db.flush()
        db.refresh(record)
        return _serialize_product(record)


def upsert_product_translations(sku: str, name: Dict[str, str], size: Dict[str, str],
                                features: Dict[str, str]) -> Dict[str, Any]:
    """按 SKU upsert 三个多语言字段；已有的主图 / 图案图保持不动。"""
    with get_session() as db:
        record = db.execute(select(Product).where(Product.sku == sku)).scalar_one_or_none()
        if record is None:
            record = Product(sku=sku, main_image="", pattern_images=[])
            db.add(record)
        record.name = coerce_translation_set(name)
        record.size = coerce_translation_set(size)
        record.features = coerce_translation_set(features)
        record.updated_at = now_utc()
        db.flush()
        db.refresh(record)
        return _serialize_product(record)


def update_product(sku: str, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    data = {k: v for k, v in payload.items() if k in PRODUCT_MUTABLE_FIELDS and v is not None}
    with get_session() as db:
        record = db.execute(select(Product).where(Product.sku == sku)).scalar_one_or_none()
        if not record:
            return None
        for key, value in data.items():
            if key in TRANSLATED_FIELDS:
                # 局部更新：只覆盖传入的语言
                merged = coerce_translation_set(getattr(record, key))
                merged.update({k: v for k, v in coerce_translation_set(value).items() if v})
                value = merged
            elif key == "pattern_images":
                value = coerce_image_list(value)
            setattr(record, key, value)
        record.updated_at = now_utc()
        db.flush()
        db.refresh(record)
        return _serialize_product(record)


def set_main_image(sku: str, url: str) -> Optional[Dict[str, Any]]:
    with get_session() as db:
        record = db.execute(select(Product).where(Product.sku == sku)).scalar_one_or_none()
        if not record:
            return None
        record.main_image = url or ""
        record.updated_at = now_utc()
        db.flush()
        db.refresh(record)
        return _serialize_product(record)


def set_pattern_images(sku: str, urls: List[str]) -> Optional[Dict[str, Any]]:
    with get_session() as db:
        record = db.execute(select(Product).where(Product.sku == sku)).scalar_one_or_none()
        if not record:
            return None
        # 整体替换，JSON 列原地修改不会被 ORM 感知
        record.pattern_images = list(urls)
        record.updated_at = now_utc()
        db.flush()
        db.refresh(record)
        return _serialize_product(record)


def delete_product(sku: str) -> bool:
    with get_session() as db:
        record = db.execute(select(Product).where(Product.sku == sku)).scalar_one_or_none()
        if not record:
            return False
        db.delete(record)
        return True
