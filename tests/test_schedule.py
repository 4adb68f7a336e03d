import io
import asyncio
from datetime import date

import pytest
from conftest import bearer
from openpyxl import load_workbook

from core.exceptions import PermissionDeniedError, ResourceNotFoundError, ValidationFailedError
from database import schedules_repo
from services.change_feed import INSERT, ChangeEvent, ChangeFeed
from services.schedule_export import SHEET_NAME, day_header, hour_label
from services.schedule_service import ScheduleService, format_delta, shift_week, week_start

MONDAY = date(2024, 5, 6)
WEDNESDAY = date(2024, 5, 8)


@pytest.fixture
def feed():
    return ChangeFeed()


@pytest.fixture
def service(feed):
    return ScheduleService(feed=feed)


@pytest.fixture
async def shop(service, admin):
    return await service.create_shop(admin, "Hanoi Flagship", "vn")


def test_week_helpers():
    assert week_start(WEDNESDAY) == MONDAY
    assert week_start(MONDAY) == MONDAY
    assert shift_week(MONDAY, -1) == date(2024, 4, 29)
    assert shift_week(MONDAY, 52) == date(2025, 5, 5)
    assert format_delta(37) == "+37"
    assert format_delta(-5) == "-5"
    assert format_delta(0) == "+0"
    assert format_delta(None) == ""


async def test_cell_lifecycle(service, shop, admin, creator):
    cell = await service.assign(admin, shop["id"], WEDNESDAY, 20, creator["id"])
    assert cell["status"] == "assigned"
    assert cell["anchor_name"] == "Linh"

    reported = await service.report(creator, shop["id"], WEDNESDAY, 20, 37, "状态很好")
    assert reported["status"] == "reported"
    assert reported["display_delta"] == "+37"
    assert reported["mood"] == "状态很好"

    assert await service.assign(admin, shop["id"], WEDNESDAY, 20, None) is None
    assert schedules_repo.get_entry(shop["id"], WEDNESDAY, 20) is None


async def test_reassign_keeps_one_row_and_clears_report(service, shop, admin, creator, other_creator):
    await service.assign(admin, shop["id"], WEDNESDAY, 9, creator["id"])
    await service.report(creator, shop["id"], WEDNESDAY, 9, 12, None)
    cell = await service.assign(admin, shop["id"], WEDNESDAY, 9, other_creator["id"])
    assert cell["anchor_id"] == other_creator["id"]
    assert cell["fans_added"] is None
    entries = schedules_repo.list_entries(shop["id"], WEDNESDAY, WEDNESDAY)
    assert len(entries) == 1


async def test_only_assigned_creator_may_report(service, shop, admin, creator, other_creator):
    await service.assign(admin, shop["id"], WEDNESDAY, 10, creator["id"])
    with pytest.raises(PermissionDeniedError):
        await service.report(other_creator, shop["id"], WEDNESDAY, 10, 5, None)
    with pytest.raises(ResourceNotFoundError):
        await service.report(creator, shop["id"], WEDNESDAY, 11, 5, None)


async def test_assign_guards(service, shop, admin, creator):
    with pytest.raises(PermissionDeniedError):
        await service.assign(creator, shop["id"], WEDNESDAY, 10, creator["id"])
    with pytest.raises(ValidationFailedError):
        await service.assign(admin, shop["id"], WEDNESDAY, 24, creator["id"])
    with pytest.raises(ResourceNotFoundError):
        await service.assign(admin, "missing-shop", WEDNESDAY, 10, creator["id"])
    with pytest.raises(ValidationFailedError):
        await service.create_shop(admin, "Seoul", "KR")


async def test_week_grid(service, shop, admin, creator):
    await service.assign(admin, shop["id"], WEDNESDAY, 20, creator["id"])
    await service.report(creator, shop["id"], WEDNESDAY, 20, -5, None)
    grid = await service.get_week(shop["id"], WEDNESDAY)

    assert grid["week_start"] == "2024-05-06"
    assert grid["week_end"] == "2024-05-12"
    assert grid["prev_week"] == "2024-04-29"
    assert len(grid["rows"]) == 24
    assert all(len(row["slots"]) == 7 for row in grid["rows"])
    cell = grid["rows"][20]["slots"][2]
    assert cell["display_delta"] == "-5"
    assert grid["rows"][20]["slots"][0] is None


async def test_changes_are_published_per_shop(service, feed, shop, admin, creator):
    other = await service.create_shop(admin, "Bangkok", "TH")
    received, elsewhere = [], []

    async def on_change(event):
        received.append(event.event_type)

    async def on_other(event):
        elsewhere.append(event)

    subscription = service.subscribe_to_shop(shop["id"], on_change)
    other_subscription = service.subscribe_to_shop(other["id"], on_other)

    await service.assign(admin, shop["id"], WEDNESDAY, 8, creator["id"])
    await service.assign(admin, shop["id"], WEDNESDAY, 8, creator["id"])
    await service.report(creator, shop["id"], WEDNESDAY, 8, 3, None)
    await service.assign(admin, shop["id"], WEDNESDAY, 8, None)
    await feed.wait_idle()
    assert received == ["INSERT", "UPDATE", "UPDATE", "DELETE"]
    assert elsewhere == []

    subscription.unsubscribe()
    await service.assign(admin, shop["id"], WEDNESDAY, 9, creator["id"])
    await feed.wait_idle()
    assert len(received) == 4
    assert feed.subscriber_count(shop["id"]) == 0
    other_subscription.unsubscribe()


async def test_failing_subscriber_is_dropped(feed, service, shop, admin, creator):
    async def broken(event):
        raise RuntimeError("socket closed")

    service.subscribe_to_shop(shop["id"], broken)
    await service.assign(admin, shop["id"], WEDNESDAY, 8, creator["id"])
    await feed.wait_idle()
    assert feed.subscriber_count(shop["id"]) == 0


async def test_stalled_subscriber_does_not_hold_up_writes(service, feed, shop, admin, creator):
    release = asyncio.Event()
    seen = []

    async def stalled(event):
        await release.wait()
        seen.append(event.event_type)

    subscription = service.subscribe_to_shop(shop["id"], stalled)
    cell = await asyncio.wait_for(service.assign(admin, shop["id"], WEDNESDAY, 8, creator["id"]), timeout=1)
    assert cell["anchor_name"] == "Linh"
    assert seen == []

    release.set()
    await feed.wait_idle()
    assert seen == ["INSERT"]
    subscription.unsubscribe()


async def test_subscriber_that_falls_behind_is_dropped():
    feed = ChangeFeed(max_pending=1)
    release = asyncio.Event()

    async def stalled(event):
        await release.wait()

    feed.subscribe("shop-1", stalled)
    await feed.publish(ChangeEvent(shop_id="shop-1", event_type=INSERT))
    await asyncio.sleep(0)
    # first event is in delivery, second fills the queue, third overflows
    await feed.publish(ChangeEvent(shop_id="shop-1", event_type=INSERT))
    assert feed.subscriber_count("shop-1") == 1
    await feed.publish(ChangeEvent(shop_id="shop-1", event_type=INSERT))
    assert feed.subscriber_count("shop-1") == 0
    release.set()


async def test_export_workbook(service, shop, admin, creator):
    await service.assign(admin, shop["id"], WEDNESDAY, 20, creator["id"])
    await service.report(creator, shop["id"], WEDNESDAY, 20, 37, None)
    await service.assign(admin, shop["id"], MONDAY, 0, creator["id"])

    result = await service.export_week(shop["id"], WEDNESDAY)
    assert result["filename"] == "schedule_HanoiFlagship_20240506.xlsx"

    sheet = load_workbook(io.BytesIO(result["content"]))[SHEET_NAME]
    header = [c.value for c in sheet[1]]
    assert header[0] == "Time Slot"
    assert header[1] == day_header(MONDAY) == "05-06 (Mon)"
    assert sheet.cell(row=2, column=1).value == hour_label(0) == "00:00-01:00"
    assert sheet.cell(row=2, column=2).value == "Linh"
    assert sheet.cell(row=22, column=4).value == "Linh (+37)"
    assert sheet.cell(row=3, column=2).value == "-"
    assert hour_label(23) == "23:00-00:00"


async def test_deleting_shop_cascades(service, shop, admin, creator):
    await service.assign(admin, shop["id"], WEDNESDAY, 8, creator["id"])
    await service.delete_shop(admin, shop["id"])
    assert schedules_repo.get_shop(shop["id"]) is None
    assert schedules_repo.list_entries(shop["id"], MONDAY, shift_week(MONDAY)) == []


def test_http_flow(client, admin, creator, other_creator):
    shop = client.post("/api/v1/schedule/shops", headers=bearer(admin),
                       json={"name": "KL Live", "country": "MY"}).json()["data"]
    slot = {"date": "2024-05-08", "hour": 21, "creator_id": creator["id"]}

    assert client.put(f"/api/v1/schedule/shops/{shop['id']}/slots", headers=bearer(creator),
                      json=slot).status_code == 403
    assert client.put(f"/api/v1/schedule/shops/{shop['id']}/slots", headers=bearer(admin),
                      json=slot).status_code == 200
    assert client.put(f"/api/v1/schedule/shops/{shop['id']}/slots", headers=bearer(admin),
                      json={**slot, "hour": 24}).status_code == 422

    report = {"date": "2024-05-08", "hour": 21, "follower_delta": 15, "note": "ok"}
    assert client.post(f"/api/v1/schedule/shops/{shop['id']}/report", headers=bearer(other_creator),
                       json=report).status_code == 403
    reported = client.post(f"/api/v1/schedule/shops/{shop['id']}/report", headers=bearer(creator), json=report)
    assert reported.json()["data"]["display_delta"] == "+15"

    export = client.get(f"/api/v1/schedule/shops/{shop['id']}/export", headers=bearer(creator),
                        params={"week_start": "2024-05-08"})
    assert export.status_code == 200
    assert export.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")
    assert "schedule_KLLive_20240506.xlsx" in export.headers["content-disposition"]


def test_websocket_pushes_full_week(client, admin, creator):
    shop = client.post("/api/v1/schedule/shops", headers=bearer(admin),
                       json={"name": "Manila", "country": "PH"}).json()["data"]
    token = bearer(creator)["Authorization"].split()[1]

    with client.websocket_connect(f"/api/v1/schedule/shops/{shop['id']}/ws?token={token}") as ws:
        snapshot = ws.receive_json()
        assert snapshot["type"] == "week"
        assert snapshot["event"] == "SNAPSHOT"

        ws.send_json({"week_start": "2024-05-08"})
        moved = ws.receive_json()
        assert moved["data"]["week_start"] == "2024-05-06"

        client.put(f"/api/v1/schedule/shops/{shop['id']}/slots", headers=bearer(admin),
                   json={"date": "2024-05-07", "hour": 3, "creator_id": creator["id"]})
        pushed = ws.receive_json()
        assert pushed["event"] == "INSERT"
        assert pushed["data"]["rows"][3]["slots"][1]["anchor_name"] == "Linh"


def test_websocket_rejects_anonymous(client):
    from starlette.websockets import WebSocketDisconnect

    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/api/v1/schedule/shops/x/ws") as ws:
            ws.receive_json()
