"""
直播中心：政策 / 活动 / 教程 / 公告。
发布时按分类校验 payload 并补齐快照（店铺名、产品名和主图），读取时再校验一遍，
脏数据在列表里跳过、单条读取直接报错。
"""
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from core.exceptions import ResourceNotFoundError, ValidationFailedError
from core.logger import get_logger
from database import live_hub_repo, products_repo, schedules_repo
from schemas.common import pick_text
from schemas.live_hub import HUB_CATEGORIES, HubEntryCreate, hub_payload_adapter
from services.access_policy import AccessPolicy, get_access_policy
from services.deep_translator import DeepTranslator, get_deep_translator

logger = get_logger(__name__)

DEFAULT_PRODUCT_NAME = "产品"


def _blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, dict):
        return not any((v or "").strip() for v in value.values() if isinstance(v, str))
    return not str(value).strip()


def parse_entry(row: Dict[str, Any]) -> Dict[str, Any]:
    """库里的一行 -> 校验后的展示结构；不合法抛 ValidationError"""
    payload = hub_payload_adapter.validate_python({**row["data"], "category": row["category"]})
    return {
        "id": row["id"],
        "category": row["category"],
        "created_by": row["created_by"],
        "created_at": row["created_at"],
        **payload.model_dump(exclude={"category"}),
    }


class LiveHubService:
    def __init__(self, policy: Optional[AccessPolicy] = None, translator: Optional[DeepTranslator] = None):
        self._policy = policy
        self._translator = translator

    @property
    def policy(self) -> AccessPolicy:
        return self._policy or get_access_policy()

    @property
    def translator(self) -> DeepTranslator:
        return self._translator or get_deep_translator()

    async def publish(self, actor: Dict[str, Any], entry: HubEntryCreate) -> Dict[str, Any]:
        self.policy.require_admin(actor)
        data = await self._build_payload(actor, entry)
        try:
            payload = hub_payload_adapter.validate_python(data)
        except ValidationError as exc:
            errors = exc.errors(include_url=False, include_context=False)
            raise ValidationFailedError("内容格式不正确", extra={"errors": errors})

        row = await run_in_threadpool(
            live_hub_repo.insert_entry,
            entry.category,
            payload.model_dump(mode="json", exclude={"category"}),
            actor.get("id"),
        )
        logger.info("Live hub entry published", entry_id=row["id"], category=entry.category)
        return parse_entry(row)

    async def _build_payload(self, actor: Dict[str, Any], entry: HubEntryCreate) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "category": entry.category,
            "date": date.today().isoformat(),
            "author": actor.get("username") or "Admin",
            "content": entry.content or "",
        }

        if entry.category == "tutorial":
            if _blank(entry.project_name):
                raise ValidationFailedError("项目名称必填")
            project_name = entry.project_name.strip()
            step_images = [img for img in entry.step_images if img]
            lines = [line.strip() for line in (entry.steps_text or "").splitlines() if line.strip()]
            # 第 i 行文字配第 i 张图，多出来的图单独成步
            steps = [
                {"text": lines[i] if i < len(lines) else "", "image": step_images[i] if i < len(step_images) else ""}
                for i in range(max(len(lines), len(step_images)))
            ]
            data.update({
                "steps": steps,
                "project_name": project_name,
                "title": project_name,
                "steps_text": entry.steps_text or "",
                "content": entry.steps_text or "",
                "step_images": step_images,
                "notes": entry.notes or "",
            })
            return data

        if _blank(entry.title):
            raise ValidationFailedError("标题必填")
        data["title"] = entry.title

        if entry.category == "activity":
            if _blank(entry.target_country) or _blank(entry.target_shop_id):
                raise ValidationFailedError("请选择国家和店铺")
            shop = await run_in_threadpool(schedules_repo.get_shop, entry.target_shop_id)
            if shop is None:
                raise ResourceNotFoundError("Shop")
            products = await run_in_threadpool(products_repo.get_products_by_ids, entry.product_ids)
            data.update({
                "target_country": entry.target_country.strip().upper(),
                "target_shop_id": shop["id"],
                "target_shop_name": shop["name"],
                "activity_code": entry.activity_code or "",
                "coupon_count": entry.coupon_count,
                "start_time": entry.start_time or "",
                "end_time": entry.end_time or "",
                "products": [
                    {
                        "id": p["id"],
                        "sku": p["sku"],
                        "name": pick_text(p["name"], "CN") or DEFAULT_PRODUCT_NAME,
                        "image": p.get("main_image") or "",
                    }
                    for p in products
                ],
            })
        return data

    async def list_entries(self, category: Optional[str] = None, lang: Optional[str] = None) -> List[Dict[str, Any]]:
        if category and category not in HUB_CATEGORIES:
            raise ValidationFailedError(f"未知的分类: {category}")
        rows = await run_in_threadpool(live_hub_repo.list_entries, category)
        items = []
        for row in rows:
            try:
                items.append(parse_entry(row))
            except ValidationError:
                logger.warning("Skipping malformed live hub entry", entry_id=row["id"], category=row["category"])
        if lang:
            items = await self.translator.translate_deep(items, lang)
        return items

    async def get_entry(self, entry_id: int, lang: Optional[str] = None) -> Dict[str, Any]:
        row = await run_in_threadpool(live_hub_repo.get_entry, entry_id)
        if row is None:
            raise ResourceNotFoundError("Live hub entry")
        try:
            item = parse_entry(row)
        except ValidationError as exc:
            logger.warning("Malformed live hub entry", entry_id=entry_id)
            errors = exc.errors(include_url=False, include_context=False)
            raise ValidationFailedError("内容格式不正确", extra={"errors": errors})
        if lang:
            item = await self.translator.translate_deep(item, lang)
        return item

    async def delete_entry(self, actor: Dict[str, Any], entry_id: int) -> None:
        self.policy.require_admin(actor)
        deleted = await run_in_threadpool(live_hub_repo.delete_entry, entry_id)
        if not deleted:
            raise ResourceNotFoundError("Live hub entry")


def get_live_hub_service() -> LiveHubService:
    return LiveHubService()
