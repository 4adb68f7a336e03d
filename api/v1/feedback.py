"""
意见反馈API
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from starlette.concurrency import run_in_threadpool

from api.deps import get_current_user, require_admin
from core.response import APIResponse, success_response
from schemas.feedback import FeedbackCreate, FeedbackReply
from services.feedback_service import FeedbackService, get_feedback_service
from services.object_store import FEEDBACK_IMAGES_BUCKET, LocalObjectStore, get_object_store

router = APIRouter(prefix="/feedback", tags=["Feedback"])


@router.post("", response_model=APIResponse[dict], summary="提交反馈")
async def create_feedback(
        payload: FeedbackCreate,
        current_user: Dict[str, Any] = Depends(get_current_user),
        service: FeedbackService = Depends(get_feedback_service),
):
    row = await service.create_feedback(
        current_user,
        country=payload.country,
        category=payload.category,
        content=payload.content,
        images=payload.images,
        product_id=payload.product_id,
        is_anonymous=payload.is_anonymous,
    )
    return success_response(row, message="提交成功")


@router.post("/images", response_model=APIResponse[dict], summary="上传反馈图片")
async def upload_feedback_image(
        file: UploadFile = File(...),
        current_user: Dict[str, Any] = Depends(get_current_user),
        store: LocalObjectStore = Depends(get_object_store),
):
    data = await file.read()
    url = await run_in_threadpool(store.upload, FEEDBACK_IMAGES_BUCKET, file.filename or "", data, "fb")
    return success_response({"url": url})


@router.get("", response_model=APIResponse[List[dict]], summary="反馈列表")
async def list_feedback(
        country: Optional[str] = Query(default=None),
        category: str = Query(default="all", description="all / sample / live_issue / after_sales / other"),
        processed: Optional[bool] = Query(default=None, description="是否已回复"),
        lang: Optional[str] = Query(default=None, description="按此语言翻译内容"),
        page_num: int = Query(default=1, ge=1, alias="pageNum"),
        page_size: int = Query(default=50, ge=1, le=200, alias="pageSize"),
        current_user: Dict[str, Any] = Depends(get_current_user),
        service: FeedbackService = Depends(get_feedback_service),
):
    items = await service.list_feedback(
        country=country, category=category, processed=processed, lang=lang,
        offset=(page_num - 1) * page_size, limit=page_size,
    )
    return success_response(items)


@router.get("/{feedback_id}", response_model=APIResponse[dict], summary="反馈详情")
async def get_feedback(
        feedback_id: int,
        current_user: Dict[str, Any] = Depends(get_current_user),
        service: FeedbackService = Depends(get_feedback_service),
):
    return success_response(await service.get_feedback(feedback_id))


@router.post("/{feedback_id}/reply", response_model=APIResponse[dict], summary="官方回复")
async def reply_feedback(
        feedback_id: int,
        payload: FeedbackReply,
        admin: Dict[str, Any] = Depends(require_admin),
        service: FeedbackService = Depends(get_feedback_service),
):
    row = await service.reply(admin, feedback_id, payload.reply, payload.logistics_info)
    return success_response(row, message="回复成功")
