"""
意见反馈：提交（先校验后写入）、按国家/分类浏览、管理员回复
"""
from typing import Any, Dict, List, Optional

from starlette.concurrency import run_in_threadpool

from core.exceptions import ResourceNotFoundError, ValidationFailedError
from core.logger import get_logger
from database import feedback_repo, products_repo
from schemas.feedback import FEEDBACK_CATEGORIES
from services import activity_log
from services.access_policy import AccessPolicy, get_access_policy
from services.deep_translator import DeepTranslator, get_deep_translator
from services.page_bundles import ANONYMOUS_DISPLAY_NAME

logger = get_logger(__name__)


def present_feedback(row: Dict[str, Any]) -> Dict[str, Any]:
    """
    展示视图：匿名反馈只显示占位名，不暴露作者引用。
    作者引用仍保存在库里（仅展示层打码）。
    """
    author = row.get("author") or {}
    if row["is_anonymous"]:
        author_name = ANONYMOUS_DISPLAY_NAME
        user_id = None
    else:
        author_name = author.get("username") or author.get("email") or ""
        user_id = row["user_id"]
    return {
        "id": row["id"],
        "user_id": user_id,
        "author_name": author_name,
        "country": row["country"],
        "category": row["category"],
        "content": row["content"],
        "images": row["images"],
        "product": row["product"],
        "is_anonymous": row["is_anonymous"],
        "reply": row["reply"],
        "logistics_info": row["logistics_info"],
        "processed": bool(row["reply"]),
        "created_at": row["created_at"],
        "replied_at": row["replied_at"],
    }


class FeedbackService:
    def __init__(self, policy: Optional[AccessPolicy] = None, translator: Optional[DeepTranslator] = None):
        self._policy = policy
        self._translator = translator

    @property
    def policy(self) -> AccessPolicy:
        return self._policy or get_access_policy()

    @property
    def translator(self) -> DeepTranslator:
        return self._translator or get_deep_translator()

    async def create_feedback(self, actor: Dict[str, Any], country: str, category: str, content: str,
                              images: Optional[List[str]] = None, product_id: Optional[int] = None,
                              is_anonymous: bool = False) -> Dict[str, Any]:
        self.policy.require_user(actor)
        content = (content or "").strip()
        images = [img for img in (images or []) if img]
        country = (country or "").strip().upper()

        if category not in FEEDBACK_CATEGORIES:
            raise ValidationFailedError(f"未知的反馈分类: {category}")
        if not content:
            raise ValidationFailedError("请输入内容")
        if category == "sample" and not product_id and not images:
            raise ValidationFailedError("申请样品请至少选择一个产品或上传图片")
        if not country:
            raise ValidationFailedError("country 不能为空")
        if product_id is not None:
            product = await run_in_threadpool(products_repo.get_product, product_id)
            if product is None:
                raise ResourceNotFoundError("Product")

        row = await run_in_threadpool(
            feedback_repo.insert_feedback, actor["id"], country, category, content, images, product_id, is_anonymous
        )
        logger.info("Feedback created", feedback_id=row["id"], category=category, country=country)
        return present_feedback(row)

    async def list_feedback(self, country: Optional[str] = None, category: Optional[str] = "all",
                            processed: Optional[bool] = None, lang: Optional[str] = None,
                            offset: int = 0, limit: int = 100) -> List[Dict[str, Any]]:
        category_filter = None if not category or category == "all" else category
        if category_filter and category_filter not in FEEDBACK_CATEGORIES:
            raise ValidationFailedError(f"未知的反馈分类: {category}")
        rows = await run_in_threadpool(
            feedback_repo.list_feedback, (country or "").upper() or None, category_filter, processed, offset, limit
        )
        items = [present_feedback(row) for row in rows]
        if lang:
            items = await self.translator.translate_deep(items, lang)
        return items

    async def get_feedback(self, feedback_id: int) -> Dict[str, Any]:
        row = await run_in_threadpool(feedback_repo.get_feedback, feedback_id)
        if row is None:
            raise ResourceNotFoundError("Feedback")
        return present_feedback(row)

    async def reply(self, actor: Dict[str, Any], feedback_id: int, reply: Optional[str],
                    logistics_info: Optional[str]) -> Dict[str, Any]:
        self.policy.require_admin(actor)
        reply = (reply or "").strip()
        logistics_info = (logistics_info or "").strip()
        if not reply and not logistics_info:
            raise ValidationFailedError("回复内容和物流单号至少填写一项")
        row = await run_in_threadpool(feedback_repo.update_reply, feedback_id, reply, logistics_info)
        if row is None:
            raise ResourceNotFoundError("Feedback")
        await activity_log.log_activity(
            actor, activity_log.FEEDBACK_REPLY, f"回复反馈 #{feedback_id}",
            {"feedback_id": feedback_id, "logistics": bool(logistics_info)},
        )
        return present_feedback(row)


def get_feedback_service() -> FeedbackService:
    return FeedbackService()
