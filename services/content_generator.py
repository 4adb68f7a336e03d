"""
AI 文案生成：短视频文案 / 直播脚本（Gemini generateContent）
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from core.config import get_settings
from core.exceptions import GenerationError
from core.logger import get_logger

logger = get_logger(__name__)

CONTENT_TYPES = ("short_video", "live_script")
PREFERRED_MODELS: List[str] = ["gemini-1.5-flash", "gemini-pro"]

# 每个市场的语言 / 平台 / 风格
MARKET_CONFIG: Dict[str, Dict[str, str]] = {
    "CN": {
        "lang": "中文",
        "platform": "抖音/小红书",
        "style": "种草感强，强调'宿舍神器'、'提升幸福感'。语气亲切，像闺蜜安利。",
    },
    "VN": {
        "lang": "越南语",
        "platform": "TikTok Vietnam",
        "style": "极其热情，强调'Biến hình phòng ngủ'(卧室大变身)、'Siêu rẻ'(超便宜)。多用 Emoji🔥😍。",
    },
    "MY": {
        "lang": "马来语(口语化)",
        "platform": "TikTok Malaysia",
        "style": "强调'Bilik aesthetic'(氛围感房间)、'Privasi'(隐私)。语气真诚推荐。",
    },
    "TH": {
        "lang": "泰语",
        "platform": "TikTok Thailand",
        "style": "强调'Narak'(可爱)、'Sabai'(舒适)。语气温柔，多用 Emoji✨。",
    },
    "US": {
        "lang": "英语",
        "platform": "TikTok US/Instagram",
        "style": "强调'Room Makeover'(房间改造)、'Dorm Essentials'(宿舍必备)。语气自信、简短有力。",
    },
    "KR": {
        "lang": "韩语",
        "platform": "Instagram/TikTok KR",
        "style": "强调'感性'(Vibe)、'极简风'、'自取向狙击'。语气精致、感性。",
    },
}
DEFAULT_MARKET = "US"


@dataclass
class ProductBrief:
    name: str
    size: str = ""
    features: str = ""
    pattern_name: Optional[str] = None


def market_config(target_market: Optional[str]) -> Dict[str, str]:
    return MARKET_CONFIG.get((target_market or "").upper(), MARKET_CONFIG[DEFAULT_MARKET])


def _short_video_block(config: Dict[str, str]) -> str:
    return f"""
【短视频营销文案要求（非拍摄脚本）】：
1. **角色**：你是一位热衷于分享好物的 {config['platform']} 博主，正在向粉丝强烈安利这款产品。
2. **核心目标**：写一段**直接发布在视频下方的文案（Caption）**，目的是激发购买欲。不要写镜头指导、不要写画面描述！
3. **内容策略**：
   - **痛点/场景切入**：例如"受够了宿舍没有隐私？"或"想低成本改造卧室？"
   - **产品植入**：自然引出产品，强调它如何解决问题。
   - **情感升华**：描述使用后的美好感觉。
   - **热卖话术**：加入"爆款"、"手慢无"、"提升生活质量神器"等营销词汇。
4. **格式要求**：
   - 总字数控制在 100 字以内。
   - 分 3-4 行显示，每行加一个 Emoji。
   - **必须**在文案最后一行附带 5 个该国家当下最热门的相关 Hashtags。
"""


def _live_script_block(pattern_name: Optional[str]) -> str:
    focus = f"花型“{pattern_name}”" if pattern_name else "产品"
    return f"""
【直播带货脚本要求】：
1. **互动感**：模拟真实直播间，包含主播动作指导（如 [拿起产品展示面料]）和话术。
2. **结构**：
   - **开场 (30s)**：话术要炸，留住划过的人（"停一下！今天这个价格..."）。
   - **产品介绍 (1min)**：结合{focus}展示细节。
   - **逼单 (30s)**：强调库存少、限时优惠。
3. **语言**：口语化，不要书面语。
"""


def build_prompt(product: ProductBrief, target_market: str, content_type: str) -> str:
    config = market_config(target_market)
    if content_type == "short_video":
        requirements = _short_video_block(config)
    else:
        requirements = _live_script_block(product.pattern_name)

    pattern_line = (
        f"- 重点推荐花型：{product.pattern_name} (请在文案中着重描述该花型的视觉美感)\n"
        if product.pattern_name else ""
    )
    return (
        "\n请为以下产品创作内容：\n\n"
        "【产品信息】：\n"
        f"- 品名：{product.name}\n"
        f"- 尺寸：{product.size}\n"
        f"- 核心卖点：{product.features}\n"
        f"{pattern_line}\n"
        f"【输出语言】：{config['lang']}\n"
        f"【目标受众】：{config['style']}\n"
        f"{requirements}\n"
        "请直接输出最终内容，不要包含任何解释性文字。\n"
    )


def build_batch_translate_prompt(text: str) -> str:
    return (
        "You are a professional ecommerce translator.\n"
        "Translate the following Chinese text into English (EN), Vietnamese (VN), Thai (TH), Malay (MS).\n\n"
        "Rules:\n"
        "1. Keep the style natural for live streaming.\n"
        "2. Output only valid JSON.\n"
        "3. Use the keys: EN, VN, TH, MS.\n\n"
        f'Text to translate: "{text}"\n'
    )


_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


class GeminiClient:
    """Thin async client for the generateContent endpoint."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        default_model: str = "gemini-1.5-flash",
        discover_models: bool = True,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.default_model = default_model
        self.discover_models = discover_models
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls, transport: Optional[httpx.AsyncBaseTransport] = None) -> "GeminiClient":
        settings = get_settings()
        return cls(
            api_key=settings.GEMINI__API_KEY,
            base_url=settings.GEMINI__BASE_URL,
            default_model=settings.GEMINI__DEFAULT_MODEL,
            discover_models=settings.GEMINI__DISCOVER_MODELS,
            timeout=settings.GEMINI__TIMEOUT_SECONDS,
            transport=transport,
        )

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def select_model(self) -> str:
        """Look up the model list; silently fall back to the default model on any failure."""
        if not self.discover_models:
            return self.default_model
        client = await self._ensure_client()
        try:
            response = await client.get(f"{self.base_url}/models", params={"key": self.api_key})
            if response.status_code != 200:
                return self.default_model
            models = response.json().get("models") or []
        except (httpx.HTTPError, ValueError, AttributeError):
            return self.default_model
        names = [str(m.get("name", "")) for m in models if isinstance(m, dict)]
        for preferred in PREFERRED_MODELS:
            for name in names:
                if preferred in name:
                    return name.replace("models/", "")
        return self.default_model

    async def generate_text(self, prompt: str) -> str:
        if not self.api_key:
            raise GenerationError("服务器配置错误：未配置 API Key", upstream_status=500)

        model = await self.select_model()
        client = await self._ensure_client()
        url = f"{self.base_url}/models/{model}:generateContent"
        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        try:
            response = await client.post(url, params={"key": self.api_key}, json=payload)
        except httpx.HTTPError as exc:
            logger.error("Generation request failed", model=model, exc_info=True)
            raise GenerationError(f"Generation backend unreachable: {exc}") from exc

        if response.status_code >= 400:
            logger.warning("Generation backend error", model=model, status=response.status_code, body=response.text[:500])
            raise GenerationError(f"Google API Error: {response.status_code}", upstream_status=response.status_code)

        try:
            data = response.json()
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError):
            text = None
        if not text:
            raise GenerationError("生成失败", upstream_status=response.status_code)
        logger.info("Content generated", model=model, chars=len(text))
        return text


class ContentGenerator:
    def __init__(self, client: Optional[GeminiClient] = None):
        self._client = client

    @property
    def client(self) -> GeminiClient:
        if self._client is None:
            self._client = GeminiClient.from_settings()
        return self._client

    async def generate(self, product: ProductBrief, target_market: str, content_type: str) -> str:
        if content_type not in CONTENT_TYPES:
            raise GenerationError(f"Unsupported content type: {content_type}", upstream_status=400)
        prompt = build_prompt(product, target_market, content_type)
        return await self.client.generate_text(prompt)

    async def batch_translate(self, text: str) -> Dict[str, Any]:
        """ZH text -> {ZH, EN, VN, TH, MS} via the generative backend."""
        raw = await self.client.generate_text(build_batch_translate_prompt(text))
        cleaned = _FENCE_RE.sub("", raw).strip()
        try:
            translations = json.loads(cleaned)
        except ValueError as exc:
            raise GenerationError("Generation backend returned malformed JSON") from exc
        if not isinstance(translations, dict):
            raise GenerationError("Generation backend returned malformed JSON")
        return {"ZH": text, **translations}

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()


_GENERATOR: Optional[ContentGenerator] = None


def get_content_generator() -> ContentGenerator:
    global _GENERATOR
    if _GENERATOR is None:
        _GENERATOR = ContentGenerator()
    return _GENERATOR


def set_content_generator(generator: Optional[ContentGenerator]) -> None:
    global _GENERATOR
    _GENERATOR = generator
