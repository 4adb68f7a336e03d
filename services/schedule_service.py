"""
直播排班：店铺管理、格子分配 / 取消、主播汇报、周视图、实时推送、导出
"""
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from starlette.concurrency import run_in_threadpool

from core.exceptions import PermissionDeniedError, ResourceNotFoundError, ValidationFailedError
from core.logger import get_logger
from database import profiles_repo, schedules_repo
from services import activity_log
from services.access_policy import AccessPolicy, get_access_policy
from services.change_feed import DELETE, INSERT, UPDATE, ChangeCallback, ChangeEvent, ChangeFeed, Subscription, \
    get_change_feed
from services.schedule_export import export_filename, render_week_workbook

logger = get_logger(__name__)

COUNTRIES: List[str] = ["VN", "TH", "MY", "PH"]
HOURS: List[int] = list(range(24))
DAYS_PER_WEEK = 7


def week_start(anchor: date) -> date:
    """所在周的周一"""
    return anchor - timedelta(days=anchor.weekday())


def shift_week(anchor: date, weeks: int = 1) -> date:
    return anchor + timedelta(days=DAYS_PER_WEEK * weeks)


def week_days(start: date) -> List[date]:
    return [start + timedelta(days=i) for i in range(DAYS_PER_WEEK)]


def format_delta(fans_added: Optional[int]) -> str:
    if fans_added is None:
        return ""
    return f"{fans_added:+d}"


def _check_hour(hour: int) -> None:
    if not isinstance(hour, int) or hour < 0 or hour > 23:
        raise ValidationFailedError(f"hour must be within 0-23, got {hour}")


def _present_cell(entry: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": entry["id"],
        "date": entry["date"],
        "hour_slot": entry["hour_slot"],
        "anchor_id": entry["anchor_id"],
        "anchor_name": entry["anchor_name"],
        "fans_added": entry["fans_added"],
        "display_delta": format_delta(entry["fans_added"]),
        "mood": entry["mood"],
        "status": "reported" if entry["fans_added"] is not None else "assigned",
    }


class ScheduleService:
    def __init__(self, feed: Optional[ChangeFeed] = None, policy: Optional[AccessPolicy] = None):
        self.feed = feed or get_change_feed()
        self._policy = policy

    @property
    def policy(self) -> AccessPolicy:
        return self._policy or get_access_policy()

    # ------------------------------------------------------------------ #
    # shops
    # ------------------------------------------------------------------ #
    async def create_shop(self, actor: Dict[str, Any], name: str, country: str) -> Dict[str, Any]:
        self.policy.require_admin(actor)
        name = (name or "").strip()
        country = (country or "").strip().upper()
        if not name:
            raise ValidationFailedError("店铺名称不能为空")
        if country not in COUNTRIES:
            raise ValidationFailedError(f"country must be one of {', '.join(COUNTRIES)}")
        shop = await run_in_threadpool(schedules_repo.create_shop, name, country)
        logger.info("Shop created", shop_id=shop["id"], country=country)
        return shop

    async def list_shops(self, country: Optional[str] = None) -> List[Dict[str, Any]]:
        return await run_in_threadpool(schedules_repo.list_shops, (country or "").upper() or None)

    async def delete_shop(self, actor: Dict[str, Any], shop_id: str) -> None:
        self.policy.require_admin(actor)
        deleted = await run_in_threadpool(schedules_repo.delete_shop, shop_id)
        if not deleted:
            raise ResourceNotFoundError("Shop")
        await self.feed.publish(ChangeEvent(shop_id=shop_id, event_type=DELETE, record={"shop_deleted": True}))

    async def _require_shop(self, shop_id: str) -> Dict[str, Any]:
        shop = await run_in_threadpool(schedules_repo.get_shop, shop_id)
        if shop is None:
            raise ResourceNotFoundError("Shop")
        return shop

    # ------------------------------------------------------------------ #
    # cells
    # ------------------------------------------------------------------ #
    async def assign(self, actor: Dict[str, Any], shop_id: str, day: date, hour: int,
                     creator_id: Optional[str]) -> Optional[Dict[str, Any]]:
        """creator_id 为空 = 取消该格子的安排（删行）。返回格子，取消时返回 None。"""
        self.policy.require_admin(actor)
        _check_hour(hour)
        await self._require_shop(shop_id)

        if not creator_id:
            removed = await run_in_threadpool(schedules_repo.delete_entry, shop_id, day, hour)
            if removed:
                await self.feed.publish(ChangeEvent(
                    shop_id=shop_id, event_type=DELETE, record={"date": day.isoformat(), "hour_slot": hour}
                ))
                await activity_log.log_activity(
                    actor, activity_log.SCHEDULE_UNASSIGN, f"取消排班 {day.isoformat()} {hour:02d}:00",
                    {"shop_id": shop_id, "date": day.isoformat(), "hour": hour},
                )
            return None

        creator = await run_in_threadpool(profiles_repo.get_profile, creator_id)
        if creator is None:
            raise ResourceNotFoundError("Creator")
        existed = await run_in_threadpool(schedules_repo.get_entry, shop_id, day, hour)
        display_name = creator["username"] or creator["email"]
        entry = await run_in_threadpool(
            schedules_repo.upsert_assignment, shop_id, day, hour, creator["id"], display_name
        )
        if entry is None:
            raise ResourceNotFoundError("Shop")
        await self.feed.publish(ChangeEvent(
            shop_id=shop_id, event_type=UPDATE if existed else INSERT, record=entry
        ))
        await activity_log.log_activity(
            actor, activity_log.SCHEDULE_ASSIGN,
            f"安排 {display_name} 于 {day.isoformat()} {hour:02d}:00",
            {"shop_id": shop_id, "date": day.isoformat(), "hour": hour, "anchor_id": creator["id"]},
        )
        return _present_cell(entry)

    async def report(self, actor: Dict[str, Any], shop_id: str, day: date, hour: int,
                     follower_delta: int, note: Optional[str]) -> Dict[str, Any]:
        """只有被分配到该格子的主播本人可以汇报。"""
        self.policy.require_user(actor)
        _check_hour(hour)
        entry = await run_in_threadpool(schedules_repo.get_entry, shop_id, day, hour)
        if entry is None:
            raise ResourceNotFoundError("Schedule slot")
        if entry["anchor_id"] != actor.get("id"):
            raise PermissionDeniedError("只能汇报自己负责的时段")

        updated = await run_in_threadpool(
            schedules_repo.update_report, shop_id, day, hour, int(follower_delta), note
        )
        if updated is None:
            raise ResourceNotFoundError("Schedule slot")
        await self.feed.publish(ChangeEvent(shop_id=shop_id, event_type=UPDATE, record=updated))
        await activity_log.log_activity(
            actor, activity_log.FANS_REPORT, f"汇报涨粉 {format_delta(int(follower_delta))}",
            {"shop_id": shop_id, "date": day.isoformat(), "hour": hour},
        )
        return _present_cell(updated)

    # ------------------------------------------------------------------ #
    # read side
    # ------------------------------------------------------------------ #
    async def get_week(self, shop_id: str, anchor: date) -> Dict[str, Any]:
        shop = await self._require_shop(shop_id)
        start = week_start(anchor)
        days = week_days(start)
        entries = await run_in_threadpool(schedules_repo.list_entries, shop_id, days[0], days[-1])
        by_key = {(e["date"], e["hour_slot"]): _present_cell(e) for e in entries}
        rows = [
            {"hour": hour, "slots": [by_key.get((d.isoformat(), hour)) for d in days]}
            for hour in HOURS
        ]
        return {
            "shop": shop,
            "week_start": start.isoformat(),
            "week_end": days[-1].isoformat(),
            "prev_week": shift_week(start, -1).isoformat(),
            "next_week": shift_week(start, 1).isoformat(),
            "days": [d.isoformat() for d in days],
            "rows": rows,
        }

    def subscribe_to_shop(self, shop_id: str, on_change: ChangeCallback) -> Subscription:
        return self.feed.subscribe(shop_id, on_change)

    async def export_week(self, shop_id: str, anchor: date) -> Dict[str, Any]:
        grid = await self.get_week(shop_id, anchor)
        content = await run_in_threadpool(render_week_workbook, grid)
        return {
            "filename": export_filename(grid["shop"]["name"], date.fromisoformat(grid["week_start"])),
            "content": content,
        }


def get_schedule_service() -> ScheduleService:
    return ScheduleService()
