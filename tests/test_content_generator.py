import json

import httpx
import pytest
from conftest import bearer

from core.exceptions import GenerationError
from services.content_generator import ContentGenerator, GeminiClient, ProductBrief, build_prompt, market_config, \
    set_content_generator

BASE = "https://gemini.test/v1beta"
BRIEF = ProductBrief(name="星空床帘", size="1.2m", features="遮光 99%", pattern_name="银河")


def _generator(handler, api_key="k-test", discover=True) -> ContentGenerator:
    client = GeminiClient(api_key=api_key, base_url=BASE, discover_models=discover,
                          transport=httpx.MockTransport(handler))
    return ContentGenerator(client)


def _ok(text):
    return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})


def test_unknown_market_falls_back_to_us():
    assert market_config("BR") == market_config("US")
    assert market_config("vn")["platform"] == "TikTok Vietnam"


def test_prompt_blocks_are_mutually_exclusive():
    video = build_prompt(BRIEF, "VN", "short_video")
    script = build_prompt(BRIEF, "VN", "live_script")
    assert "短视频营销文案要求" in video and "直播带货脚本要求" not in video
    assert "直播带货脚本要求" in script and "短视频营销文案要求" not in script
    assert "银河" in video and "越南语" in video


async def test_generate_discovers_models_and_returns_text():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path))
        if request.method == "GET":
            return httpx.Response(200, json={"models": [{"name": "models/gemini-pro"},
                                                        {"name": "models/gemini-1.5-flash-latest"}]})
        body = json.loads(request.content)
        assert "星空床帘" in body["contents"][0]["parts"][0]["text"]
        return _ok("🔥 床帘文案")

    generator = _generator(handler)
    assert await generator.generate(BRIEF, "VN", "short_video") == "🔥 床帘文案"
    assert seen[-1] == ("POST", "/v1beta/models/gemini-1.5-flash-latest:generateContent")
    await generator.aclose()


async def test_model_lookup_failure_uses_default_model():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(403)
        assert request.url.path.endswith("/models/gemini-1.5-flash:generateContent")
        return _ok("ok")

    generator = _generator(handler)
    assert await generator.generate(BRIEF, "US", "live_script") == "ok"
    await generator.aclose()


async def test_upstream_error_carries_status():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"error": "quota"})

    generator = _generator(handler, discover=False)
    with pytest.raises(GenerationError) as exc_info:
        await generator.generate(BRIEF, "TH", "short_video")
    assert exc_info.value.upstream_status == 429
    assert exc_info.value.code == 429
    assert "429" in exc_info.value.message


async def test_missing_api_key_and_empty_output():
    with pytest.raises(GenerationError) as exc_info:
        await _generator(lambda r: _ok("x"), api_key="").generate(BRIEF, "CN", "short_video")
    assert exc_info.value.code == 500

    generator = _generator(lambda r: httpx.Response(200, json={"candidates": []}), discover=False)
    with pytest.raises(GenerationError) as exc_info:
        await generator.generate(BRIEF, "CN", "short_video")
    assert exc_info.value.code == 502


async def test_batch_translate_strips_fences():
    payload = '```json\n{"EN": "Curtain", "VN": "Rèm", "TH": "ม่าน", "MS": "Langsir"}\n```'
    generator = _generator(lambda r: _ok(payload), discover=False)
    result = await generator.batch_translate("床帘")
    assert result == {"ZH": "床帘", "EN": "Curtain", "VN": "Rèm", "TH": "ม่าน", "MS": "Langsir"}


async def test_batch_translate_rejects_malformed_output():
    generator = _generator(lambda r: _ok("sorry, I cannot"), discover=False)
    with pytest.raises(GenerationError):
        await generator.batch_translate("床帘")


def test_generate_endpoint_by_sku(client, creator, admin):
    headers = bearer(admin)
    created = client.post("/api/v1/products", headers=headers, json={
        "sku": "BED-001",
        "name": {"CN": "星空床帘", "EN": "Starry curtain"},
        "size": {"CN": "1.2m"},
        "features": {"CN": "遮光"},
        "auto_translate": False,
    })
    assert created.status_code == 200

    prompts = []

    def handler(request: httpx.Request) -> httpx.Response:
        prompts.append(json.loads(request.content)["contents"][0]["parts"][0]["text"])
        return _ok("script")

    set_content_generator(_generator(handler, discover=False))
    response = client.post("/api/v1/ai/generate", headers=bearer(creator),
                           json={"sku": "BED-001", "target_market": "my", "content_type": "live_script"})
    assert response.status_code == 200
    assert response.json()["data"] == {"text": "script", "target_market": "MY"}
    assert "星空床帘" in prompts[0] and "遮光" in prompts[0]


def test_generate_endpoint_surfaces_upstream_status(client, creator):
    set_content_generator(_generator(lambda r: httpx.Response(503), discover=False))
    response = client.post("/api/v1/ai/generate", headers=bearer(creator), json={"name": "床帘"})
    assert response.status_code == 503
    body = response.json()
    assert body["data"]["upstream_status"] == 503


def test_generate_endpoint_requires_product(client, creator):
    response = client.post("/api/v1/ai/generate", headers=bearer(creator), json={"target_market": "VN"})
    assert response.status_code == 422
