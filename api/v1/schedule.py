"""
直播排班API：店铺、周视图、分配、汇报、导出，以及 WebSocket 实时推送
"""
import asyncio
from datetime import date
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from fastapi.responses import StreamingResponse

from api.deps import get_current_user, get_websocket_user, require_admin
from core.exceptions import ResourceNotFoundError
from core.logger import get_logger
from core.response import APIResponse, success_response
from schemas.schedule import AssignRequest, ReportRequest, ShopCreate
from services.change_feed import ChangeEvent
from services.schedule_service import ScheduleService, get_schedule_service

router = APIRouter(prefix="/schedule", tags=["Schedule"])
logger = get_logger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("/shops", response_model=APIResponse[List[dict]], summary="店铺列表")
async def list_shops(
        country: Optional[str] = Query(default=None, description="VN/TH/MY/PH"),
        current_user: Dict[str, Any] = Depends(get_current_user),
        service: ScheduleService = Depends(get_schedule_service),
):
    return success_response(await service.list_shops(country))


@router.post("/shops", response_model=APIResponse[dict], summary="新建店铺")
async def create_shop(
        payload: ShopCreate,
        admin: Dict[str, Any] = Depends(require_admin),
        service: ScheduleService = Depends(get_schedule_service),
):
    return success_response(await service.create_shop(admin, payload.name, payload.country), message="创建成功")


@router.delete("/shops/{shop_id}", response_model=APIResponse[None], summary="删除店铺（连同排班）")
async def delete_shop(
        shop_id: str,
        admin: Dict[str, Any] = Depends(require_admin),
        service: ScheduleService = Depends(get_schedule_service),
):
    await service.delete_shop(admin, shop_id)
    return success_response(message="删除成功")


@router.get("/shops/{shop_id}/week", response_model=APIResponse[dict], summary="周排班表")
async def get_week(
        shop_id: str,
        week_start: Optional[date] = Query(default=None, description="周内任意一天，默认本周"),
        current_user: Dict[str, Any] = Depends(get_current_user),
        service: ScheduleService = Depends(get_schedule_service),
):
    return success_response(await service.get_week(shop_id, week_start or date.today()))


@router.put("/shops/{shop_id}/slots", response_model=APIResponse[Optional[dict]], summary="安排 / 取消主播")
async def assign_slot(
        shop_id: str,
        payload: AssignRequest,
        admin: Dict[str, Any] = Depends(require_admin),
        service: ScheduleService = Depends(get_schedule_service),
):
    cell = await service.assign(admin, shop_id, payload.date, payload.hour, payload.creator_id)
    return success_response(cell, message="已安排" if cell else "已取消")


@router.post("/shops/{shop_id}/report", response_model=APIResponse[dict], summary="主播汇报涨粉")
async def report_slot(
        shop_id: str,
        payload: ReportRequest,
        current_user: Dict[str, Any] = Depends(get_current_user),
        service: ScheduleService = Depends(get_schedule_service),
):
    cell = await service.report(
        current_user, shop_id, payload.date, payload.hour, payload.follower_delta, payload.note
    )
    return success_response(cell, message="汇报成功")


@router.get("/shops/{shop_id}/export", summary="导出周排班 Excel")
async def export_week(
        shop_id: str,
        week_start: Optional[date] = Query(default=None),
        current_user: Dict[str, Any] = Depends(get_current_user),
        service: ScheduleService = Depends(get_schedule_service),
):
    result = await service.export_week(shop_id, week_start or date.today())
    disposition = f"attachment; filename*=UTF-8''{quote(result['filename'])}"
    return StreamingResponse(
        iter([result["content"]]),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": disposition},
    )


@router.websocket("/shops/{shop_id}/ws")
async def schedule_updates(websocket: WebSocket, shop_id: str):
    """
    订阅某店铺的排班变更。每次变更都推送当前可见周的完整表格；
    客户端发送 {"week_start": "YYYY-MM-DD"} 切换可见周。
    """
    user = await get_websocket_user(websocket)
    if user is None:
        await websocket.close(code=4001, reason="Invalid or missing token")
        return

    service = get_schedule_service()
    await websocket.accept()
    visible = {"anchor": date.today()}

    async def push_week(event_type: str) -> None:
        try:
            grid = await service.get_week(shop_id, visible["anchor"])
        except ResourceNotFoundError:
            await websocket.send_json({"type": "shop_deleted", "shop_id": shop_id})
            return
        await websocket.send_json({"type": "week", "event": event_type, "data": grid})

    # 所有发送都走这一个队列，同一连接上只有一个协程在写
    outbox: "asyncio.Queue[Union[str, Dict[str, Any]]]" = asyncio.Queue()

    async def sender() -> None:
        while True:
            item = await outbox.get()
            if isinstance(item, dict):
                await websocket.send_json(item)
            else:
                await push_week(item)

    async def on_change(event: ChangeEvent) -> None:
        outbox.put_nowait(event.event_type)

    sender_task = asyncio.create_task(sender())
    subscription = service.subscribe_to_shop(shop_id, on_change)
    try:
        outbox.put_nowait("SNAPSHOT")
        while True:
            message = await websocket.receive_json()
            requested = message.get("week_start") if isinstance(message, dict) else None
            if not requested:
                continue
            try:
                visible["anchor"] = date.fromisoformat(requested)
            except ValueError:
                outbox.put_nowait({"type": "error", "msg": f"invalid week_start: {requested}"})
                continue
            outbox.put_nowait("SNAPSHOT")
    except WebSocketDisconnect:
        logger.info("Schedule websocket disconnected", shop_id=shop_id, user_id=user["id"])
    finally:
        subscription.unsubscribe()
        sender_task.cancel()
