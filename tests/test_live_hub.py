import pytest
from conftest import bearer
from pydantic import ValidationError

from core.exceptions import PermissionDeniedError, ResourceNotFoundError, ValidationFailedError
from database import live_hub_repo, products_repo
from schemas.live_hub import ActivityPayload, HubEntryCreate, TutorialPayload, hub_payload_adapter
from services.live_hub_service import LiveHubService
from services.schedule_service import ScheduleService


@pytest.fixture
def service():
    return LiveHubService()


def test_union_dispatches_on_category():
    tutorial = hub_payload_adapter.validate_python({"category": "tutorial", "project_name": "开播设置"})
    assert isinstance(tutorial, TutorialPayload)

    with pytest.raises(ValidationError):
        hub_payload_adapter.validate_python({"category": "activity", "title": "大促"})
    with pytest.raises(ValidationError):
        hub_payload_adapter.validate_python({"category": "policy", "title": "  "})
    with pytest.raises(ValidationError):
        hub_payload_adapter.validate_python({"category": "rumor", "title": "x"})


async def test_activity_snapshots_shop_and_products(service, admin):
    shop = await ScheduleService().create_shop(admin, "Hanoi Flagship", "VN")
    bed = products_repo.create_product("BED-001", {"CN": "星空床帘"}, "", "", main_image="/storage/bed.png")
    bare = products_repo.create_product("X-1", {}, "", "")

    entry = await service.publish(admin, HubEntryCreate(
        category="activity", title="618 大促", target_country="vn", target_shop_id=shop["id"],
        coupon_count=50, product_ids=[bed["id"], bare["id"], 999],
    ))
    assert entry["target_shop_name"] == "Hanoi Flagship"
    assert entry["target_country"] == "VN"
    assert entry["products"] == [
        {"id": bed["id"], "sku": "BED-001", "name": "星空床帘", "image": "/storage/bed.png"},
        {"id": bare["id"], "sku": "X-1", "name": "产品", "image": ""},
    ]

    # snapshot does not follow later product edits
    products_repo.update_product("BED-001", {"name": {"CN": "新名字"}})
    assert (await service.get_entry(entry["id"]))["products"][0]["name"] == "星空床帘"


async def test_publish_validation_messages(service, admin):
    with pytest.raises(ValidationFailedError) as exc_info:
        await service.publish(admin, HubEntryCreate(category="tutorial", title="忽略"))
    assert exc_info.value.message == "项目名称必填"

    with pytest.raises(ValidationFailedError) as exc_info:
        await service.publish(admin, HubEntryCreate(category="notice"))
    assert exc_info.value.message == "标题必填"

    with pytest.raises(ValidationFailedError) as exc_info:
        await service.publish(admin, HubEntryCreate(category="activity", title="大促", target_country="VN"))
    assert exc_info.value.message == "请选择国家和店铺"
    assert live_hub_repo.list_entries() == []


async def test_tutorial_title_follows_project_name(service, admin):
    entry = await service.publish(admin, HubEntryCreate(
        category="tutorial", project_name=" 开播设置 ", steps_text="1. 打开后台\n2. 选择商品",
        step_images=["/storage/hub-images/s1.png", ""],
    ))
    assert entry["title"] == "开播设置"
    assert entry["content"] == entry["steps_text"]
    assert entry["step_images"] == ["/storage/hub-images/s1.png"]
    assert entry["author"] == "Admin"
    assert entry["steps"] == [
        {"text": "1. 打开后台", "image": "/storage/hub-images/s1.png"},
        {"text": "2. 选择商品", "image": ""},
    ]


async def test_malformed_rows_skipped_on_list_and_rejected_on_get(service, admin):
    good = await service.publish(admin, HubEntryCreate(category="policy", title="新规", content="内容"))
    broken = live_hub_repo.insert_entry("activity", {"title": "缺店铺"}, admin["id"])

    listed = await service.list_entries()
    assert [e["id"] for e in listed] == [good["id"]]
    with pytest.raises(ValidationFailedError):
        await service.get_entry(broken["id"])
    with pytest.raises(ResourceNotFoundError):
        await service.get_entry(12345)


async def test_writes_are_admin_only(service, admin, creator):
    with pytest.raises(PermissionDeniedError):
        await service.publish(creator, HubEntryCreate(category="notice", title="x"))
    entry = await service.publish(admin, HubEntryCreate(category="notice", title="停播通知"))
    with pytest.raises(PermissionDeniedError):
        await service.delete_entry(creator, entry["id"])
    await service.delete_entry(admin, entry["id"])
    assert await service.list_entries("notice") == []


def test_http_live_hub(client, admin, creator):
    created = client.post("/api/v1/live-hub", headers=bearer(admin),
                          json={"category": "policy", "title": {"CN": "直播规范"}, "content": "禁止外链"})
    assert created.status_code == 200
    assert client.post("/api/v1/live-hub", headers=bearer(creator),
                       json={"category": "policy", "title": "x"}).status_code == 403

    listed = client.get("/api/v1/live-hub", headers=bearer(creator), params={"category": "policy"})
    assert listed.json()["data"][0]["title"] == {"CN": "直播规范"}
    assert client.get("/api/v1/live-hub", headers=bearer(creator),
                      params={"category": "memes"}).status_code == 422


def test_activity_payload_requires_shop():
    with pytest.raises(ValidationError):
        ActivityPayload(title="大促", target_country="VN", target_shop_id="")
