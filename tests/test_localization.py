from conftest import FakeGateway
from starlette.responses import Response

from services.deep_translator import DeepTranslator, set_deep_translator
from services.localization import LocalizationState, Localizer, resolve_language, select_language

BUNDLE = {"hero": {"title": "高效直播运营", "cta": "立即登录"}, "href": "/login"}


def test_resolve_language_priority():
    assert resolve_language("vi", "th") == "vi"
    assert resolve_language(None, "th") == "th"
    assert resolve_language("klingon", "th") == "th"
    assert resolve_language(None, None) == "zh"
    assert resolve_language("VN", None) == "vi"


async def test_default_language_is_ready_without_calls():
    gateway = FakeGateway()
    localizer = Localizer(BUNDLE, translator=DeepTranslator(gateway=gateway), default_lang="zh")
    snapshot = localizer.resolve(None, None)
    assert snapshot.is_loading is False
    assert snapshot.active_lang == "zh"
    assert snapshot.content is BUNDLE
    assert gateway.calls == []


async def test_other_language_shows_default_until_translated():
    gateway = FakeGateway()
    localizer = Localizer(BUNDLE, translator=DeepTranslator(gateway=gateway), default_lang="zh")

    pending = localizer.resolve("en", None)
    assert pending.is_loading is True
    assert pending.content is BUNDLE
    assert localizer.state is LocalizationState.TRANSLATING

    ready = await localizer.wait()
    assert ready.is_loading is False
    assert ready.content["hero"]["title"] == "[en]高效直播运营"
    assert ready.content["href"] == "/login"
    assert ready.as_dict()["activeLang"] == "en"


async def test_translated_bundles_are_memoized_per_language():
    gateway = FakeGateway()
    localizer = Localizer(BUNDLE, translator=DeepTranslator(gateway=gateway, cache=None), default_lang="zh")
    await localizer.localize("th")
    calls = len(gateway.calls)
    again = localizer.resolve("th")
    assert again.is_loading is False
    assert len(gateway.calls) == calls


async def test_new_resolve_supersedes_pending_translation():
    gateway = FakeGateway()
    localizer = Localizer(BUNDLE, translator=DeepTranslator(gateway=gateway), default_lang="zh")
    localizer.resolve("th")
    result = await localizer.localize("vi")
    assert result.active_lang == "vi"
    assert result.content["hero"]["cta"] == "[vi]立即登录"
    localizer.close()


def test_select_language_sets_cookie_and_rewrites_url():
    response = Response()
    url = select_language("VN", "/dashboard?tab=schedule&lang=en", response)
    assert url == "/dashboard?tab=schedule&lang=vi"
    cookie = response.headers["set-cookie"]
    assert "NEXT_LOCALE=vi" in cookie
    assert "Max-Age=31536000" in cookie


def test_page_endpoint_localizes_by_cookie(client):
    set_deep_translator(DeepTranslator(gateway=FakeGateway()))
    client.cookies.set("NEXT_LOCALE", "en")
    body = client.get("/api/v1/i18n/pages/home").json()
    assert body["code"] == 200
    assert body["data"]["activeLang"] == "en"
    assert body["data"]["isLoading"] is False


def test_home_in_default_language(client):
    body = client.get("/").json()
    assert body["data"]["activeLang"] == "zh"


def test_unknown_page_is_404(client):
    response = client.get("/api/v1/i18n/pages/nowhere")
    assert response.status_code == 404


def test_select_language_endpoint(client):
    response = client.post("/api/v1/i18n/select-language", params={"lang": "th", "current_url": "/?x=1"})
    assert response.json()["data"]["url"] == "/?x=1&lang=th"
    assert response.cookies.get("NEXT_LOCALE") == "th"
