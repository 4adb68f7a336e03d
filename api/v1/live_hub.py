"""
直播中心API：政策 / 活动 / 教程 / 公告
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from starlette.concurrency import run_in_threadpool

from api.deps import get_current_user, require_admin
from core.response import APIResponse, success_response
from schemas.live_hub import HubEntryCreate
from services.live_hub_service import LiveHubService, get_live_hub_service
from services.object_store import HUB_IMAGES_BUCKET, LocalObjectStore, get_object_store

router = APIRouter(prefix="/live-hub", tags=["Live Hub"])


@router.get("", response_model=APIResponse[List[dict]], summary="按分类获取内容")
async def list_entries(
        category: Optional[str] = Query(default=None, description="policy / activity / tutorial / notice"),
        lang: Optional[str] = Query(default=None),
        current_user: Dict[str, Any] = Depends(get_current_user),
        service: LiveHubService = Depends(get_live_hub_service),
):
    return success_response(await service.list_entries(category, lang))


@router.get("/{entry_id}", response_model=APIResponse[dict], summary="内容详情")
async def get_entry(
        entry_id: int,
        lang: Optional[str] = Query(default=None),
        current_user: Dict[str, Any] = Depends(get_current_user),
        service: LiveHubService = Depends(get_live_hub_service),
):
    return success_response(await service.get_entry(entry_id, lang))


@router.post("", response_model=APIResponse[dict], summary="发布内容")
async def publish_entry(
        payload: HubEntryCreate,
        admin: Dict[str, Any] = Depends(require_admin),
        service: LiveHubService = Depends(get_live_hub_service),
):
    return success_response(await service.publish(admin, payload), message="发布成功")


@router.post("/images", response_model=APIResponse[dict], summary="上传教程步骤图")
async def upload_hub_image(
        file: UploadFile = File(...),
        admin: Dict[str, Any] = Depends(require_admin),
        store: LocalObjectStore = Depends(get_object_store),
):
    data = await file.read()
    url = await run_in_threadpool(store.upload, HUB_IMAGES_BUCKET, file.filename or "", data, "hub")
    return success_response({"url": url})


@router.delete("/{entry_id}", response_model=APIResponse[None], summary="删除内容")
async def delete_entry(
        entry_id: int,
        admin: Dict[str, Any] = Depends(require_admin),
        service: LiveHubService = Depends(get_live_hub_service),
):
    await service.delete_entry(admin, entry_id)
    return success_response(message="删除成功")
