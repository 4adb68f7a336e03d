"""
操作日志：登录、排班、导入等关键动作留痕。写日志失败不影响主流程。
"""
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from core.logger import get_logger
from database import activity_repo

logger = get_logger(__name__)

LOGIN = "LOGIN"
LOGOUT = "LOGOUT"
SIGN_UP = "SIGN_UP"
ELEVATE = "ELEVATE"
SCHEDULE_ASSIGN = "SCHEDULE_ASSIGN"
SCHEDULE_UNASSIGN = "SCHEDULE_UNASSIGN"
FANS_REPORT = "FANS_REPORT"
PRODUCT_IMPORT = "PRODUCT_IMPORT"
FEEDBACK_REPLY = "FEEDBACK_REPLY"


async def log_activity(actor: Optional[Dict[str, Any]], action_type: str, description: str,
                       metadata: Optional[Dict[str, Any]] = None) -> None:
    actor = actor or {}
    try:
        await run_in_threadpool(
            activity_repo.insert_log,
            user_id=actor.get("id"),
            user_email=actor.get("email"),
            action_type=action_type,
            description=description,
            metadata=metadata,
        )
    except SQLAlchemyError:
        logger.error("Failed to write activity log", action_type=action_type, exc_info=True)
