import pytest
from conftest import FakeGateway, bearer

from core.exceptions import PermissionDeniedError, ResourceNotFoundError, ValidationFailedError
from database import feedback_repo, products_repo
from services.deep_translator import DeepTranslator
from services.feedback_service import FeedbackService
from services.page_bundles import ANONYMOUS_DISPLAY_NAME


@pytest.fixture
def service():
    return FeedbackService(translator=DeepTranslator(gateway=FakeGateway()))


async def test_sample_request_needs_product_or_image(service, creator):
    with pytest.raises(ValidationFailedError) as exc_info:
        await service.create_feedback(creator, "VN", "sample", "想要样品")
    assert exc_info.value.message == "申请样品请至少选择一个产品或上传图片"
    assert feedback_repo.list_feedback() == []

    with_image = await service.create_feedback(creator, "VN", "sample", "想要样品", images=["/storage/x.png"])
    assert with_image["images"] == ["/storage/x.png"]


async def test_sample_request_with_product_carries_summary(service, creator):
    product = products_repo.create_product("BED-001", {"CN": "星空床帘", "EN": "Curtain"}, "", "",
                                           main_image="/storage/bed.png")
    row = await service.create_feedback(creator, "vn", "sample", "想要样品", product_id=product["id"])
    assert row["country"] == "VN"
    assert row["product"] == {"id": product["id"], "sku": "BED-001", "name": "星空床帘",
                              "main_image": "/storage/bed.png"}


async def test_content_is_required_and_product_must_exist(service, creator):
    with pytest.raises(ValidationFailedError):
        await service.create_feedback(creator, "VN", "live_issue", "   ")
    with pytest.raises(ResourceNotFoundError):
        await service.create_feedback(creator, "VN", "after_sales", "坏了", product_id=999)
    with pytest.raises(ValidationFailedError):
        await service.create_feedback(creator, "VN", "gossip", "hello")
    assert feedback_repo.list_feedback() == []


async def test_anonymous_author_is_masked_but_stored(service, creator):
    row = await service.create_feedback(creator, "TH", "other", "建议", is_anonymous=True)
    assert row["author_name"] == ANONYMOUS_DISPLAY_NAME
    assert row["user_id"] is None

    listed = await service.list_feedback(country="TH")
    assert listed[0]["author_name"] == ANONYMOUS_DISPLAY_NAME
    assert feedback_repo.get_feedback(row["id"])["user_id"] == creator["id"]

    named = await service.create_feedback(creator, "TH", "other", "署名建议")
    assert named["author_name"] == "Linh"


async def test_reply_rules(service, creator, admin):
    row = await service.create_feedback(creator, "MY", "live_issue", "卡顿")
    assert row["processed"] is False

    with pytest.raises(PermissionDeniedError):
        await service.reply(creator, row["id"], "自己回复", None)
    with pytest.raises(ValidationFailedError):
        await service.reply(admin, row["id"], " ", "")

    shipped = await service.reply(admin, row["id"], None, "SPX123")
    assert shipped["logistics_info"] == "SPX123"
    assert shipped["processed"] is False

    answered = await service.reply(admin, row["id"], "已处理", None)
    assert answered["processed"] is True
    assert answered["logistics_info"] == "SPX123"
    assert answered["replied_at"] is not None


async def test_list_filters(service, creator, admin):
    first = await service.create_feedback(creator, "VN", "live_issue", "问题一")
    await service.create_feedback(creator, "VN", "other", "问题二")
    await service.create_feedback(creator, "PH", "live_issue", "问题三")
    await service.reply(admin, first["id"], "好的", None)

    assert len(await service.list_feedback(country="VN", category="all")) == 2
    assert [r["content"] for r in await service.list_feedback(country="VN", category="live_issue")] == ["问题一"]
    assert [r["content"] for r in await service.list_feedback(processed=False, category="live_issue")] == ["问题三"]
    translated = await service.list_feedback(country="PH", lang="en")
    assert translated[0]["content"] == "[en]问题三"
    assert translated[0]["country"] == "PH"


def test_http_feedback_flow(client, creator, admin):
    upload = client.post("/api/v1/feedback/images", headers=bearer(creator),
                         files={"file": ("shot.jpg", b"\xff\xd8", "image/jpeg")})
    url = upload.json()["data"]["url"]
    assert url.startswith("/storage/feedback-images/fb_")

    missing = client.post("/api/v1/feedback", headers=bearer(creator),
                          json={"country": "VN", "category": "sample", "content": "样品"})
    assert missing.status_code == 422
    assert missing.json()["msg"] == "申请样品请至少选择一个产品或上传图片"

    created = client.post("/api/v1/feedback", headers=bearer(creator),
                          json={"country": "VN", "category": "sample", "content": "样品", "images": [url],
                                "is_anonymous": True})
    feedback_id = created.json()["data"]["id"]

    assert client.post(f"/api/v1/feedback/{feedback_id}/reply", headers=bearer(creator),
                       json={"reply": "x"}).status_code == 403
    replied = client.post(f"/api/v1/feedback/{feedback_id}/reply", headers=bearer(admin), json={"reply": "已寄出"})
    assert replied.json()["data"]["processed"] is True

    listed = client.get("/api/v1/feedback", headers=bearer(admin), params={"processed": True}).json()["data"]
    assert listed[0]["author_name"] == ANONYMOUS_DISPLAY_NAME
