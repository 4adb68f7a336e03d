"""
Translation gateway.

One contract, ``translate(text, target_lang) -> str``, in front of two
interchangeable HTTP backends. Any failure degrades to returning the input text;
callers never see an exception from here.
"""
from __future__ import annotations

import asyncio
import re
from typing import Dict, Optional

import httpx

from core.config import get_settings
from core.logger import get_logger
from schemas.common import DISPLAY_TO_ISO, LANG_KEYS, empty_translation_set, normalize_lang

logger = get_logger(__name__)

_CJK_RE = re.compile(r"[\u4e00-\u9fff]")
_PLAIN_ENGLISH_RE = re.compile(r"^[a-zA-Z0-9\s,.\-]+$")
# keep \n, drop the rest of the C0 range and DEL
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x09\x0b-\x1f\x7f]")


def clean_text(text) -> str:
    return _CONTROL_CHARS_RE.sub("", str(text or "").strip())


def detect_source_lang(text: str) -> str:
    return "zh" if _CJK_RE.search(text or "") else "en"


def resolve_target(target_lang: str) -> Optional[str]:
    """Accepts ISO codes ('vi') and display keys ('VN'); PH maps to English."""
    if not target_lang:
        return None
    upper = target_lang.strip().upper()
    if upper in DISPLAY_TO_ISO:
        return DISPLAY_TO_ISO[upper]
    return normalize_lang(target_lang)


class TranslationBackend:
    """A remote machine-translation endpoint. ``request`` returns None on any failure."""

    name = "backend"

    def __init__(self, url: str):
        self.url = url

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    async def request(self, client: httpx.AsyncClient, text: str, source: str, target: str) -> Optional[str]:
        raise NotImplementedError


class SelfHostedEngineBackend(TranslationBackend):
    """JSON in / JSON out engine: {text, source_lang, target_lang} -> {translated_text}."""

    name = "engine"

    async def request(self, client: httpx.AsyncClient, text: str, source: str, target: str) -> Optional[str]:
        payload = {"text": text, "source_lang": source, "target_lang": target}
        response = await client.post(self.url, json=payload)
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            return None
        result = data.get("translated_text") or data.get("data")
        if not result:
            translations = data.get("translations") or []
            if translations and isinstance(translations[0], dict):
                result = translations[0].get("text")
        if not result or not isinstance(result, str):
            return None
        # the engine reports some failures as a 200 whose body text is an error string
        if "Error" in result:
            return None
        return result


class ScriptEngineBackend(TranslationBackend):
    """Form-encoded script endpoint: text/target/source -> {text | result | translatedText}."""

    name = "script"

    async def request(self, client: httpx.AsyncClient, text: str, source: str, target: str) -> Optional[str]:
        form = {
            "text": text,
            "target": target,
            "source": "zh-CN" if source == "zh" else source,
        }
        response = await client.post(self.url, data=form, follow_redirects=True)
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            return None
        result = data.get("text") or data.get("result") or data.get("translatedText")
        return result if isinstance(result, str) and result else None


class TranslationGateway:
    """
    Single entry point for machine translation.

    ``translate`` uses the configured primary backend; ``smart_translate`` is the
    catalog importer's fan-out to every display language.
    """

    def __init__(
        self,
        engine_url: str = "",
        script_url: str = "",
        primary: str = "engine",
        timeout: float = 8.0,
        call_delay: float = 0.1,
        fallback_delay: float = 0.2,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.engine = SelfHostedEngineBackend(engine_url)
        self.script = ScriptEngineBackend(script_url)
        self.primary = self.engine if primary == "engine" else self.script
        self.timeout = timeout
        self.call_delay = call_delay
        self.fallback_delay = fallback_delay
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls, transport: Optional[httpx.AsyncBaseTransport] = None) -> "TranslationGateway":
        settings = get_settings()
        return cls(
            engine_url=settings.TRANSLATION__ENGINE_URL,
            script_url=settings.TRANSLATION__SCRIPT_URL,
            primary=settings.TRANSLATION__PRIMARY_BACKEND,
            timeout=settings.TRANSLATION__TIMEOUT_SECONDS,
            call_delay=settings.TRANSLATION__CALL_DELAY_MS / 1000,
            fallback_delay=settings.TRANSLATION__FALLBACK_DELAY_MS / 1000,
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

    async def _call(self, backend: TranslationBackend, text: str, source: str, target: str) -> Optional[str]:
        if not backend.enabled:
            return None
        client = await self._ensure_client()
        try:
            return await backend.request(client, text, source, target)
        except (httpx.HTTPError, ValueError) as exc:
            # ValueError covers undecodable JSON bodies
            logger.warning(
                "Translation backend failed",
                backend=backend.name,
                target=target,
                error=f"{type(exc).__name__}: {exc}",
            )
            return None

    async def translate(self, text: str, target_lang: str) -> str:
        """Best-effort translation; the original text comes back on any failure."""
        if not isinstance(text, str):
            return text
        cleaned = clean_text(text)
        target = resolve_target(target_lang)
        if not cleaned or target is None:
            return text
        source = detect_source_lang(cleaned)
        if source == target:
            return text
        result = await self._call(self.primary, cleaned, source, target)
        return result if result else text

    async def smart_translate(self, text: str) -> Dict[str, str]:
        """
        中文原文 -> {CN, EN, VN, TH, PH, MY}

        EN: engine first, script as fallback (skipped for text that is already plain English).
        VN/TH/MY: one script call each, spaced out by ``call_delay``.
        PH: copied from EN. Missing results are stored as "".
        """
        source_text = clean_text(text)
        if not source_text:
            return empty_translation_set()

        en = source_text
        if not _PLAIN_ENGLISH_RE.match(source_text):
            en = await self._call(self.engine, source_text, "zh", "en")
            if not en:
                await asyncio.sleep(self.fallback_delay)
                en = await self._call(self.script, source_text, "zh", "en")

        source = detect_source_lang(source_text)
        vn = await self._call(self.script, source_text, source, "vi")
        await asyncio.sleep(self.call_delay)
        th = await self._call(self.script, source_text, source, "th")
        await asyncio.sleep(self.call_delay)
        my = await self._call(self.script, source_text, source, "ms")

        result = {
            "CN": source_text,
            "EN": en or source_text,
            "VN": vn or "",
            "TH": th or "",
            "PH": en or source_text,
            "MY": my or "",
        }
        return {key: result[key] for key in LANG_KEYS}


_GATEWAY: Optional[TranslationGateway] = None


def get_translation_gateway() -> TranslationGateway:
    global _GATEWAY
    if _GATEWAY is None:
        _GATEWAY = TranslationGateway.from_settings()
    return _GATEWAY


def set_translation_gateway(gateway: Optional[TranslationGateway]) -> None:
    """Swaps the process-wide gateway (tests inject one backed by httpx.MockTransport)."""
    global _GATEWAY
    _GATEWAY = gateway


async def close_translation_gateway() -> None:
    global _GATEWAY
    if _GATEWAY is not None:
        await _GATEWAY.aclose()
        _GATEWAY = None


async def translate(text: str, target_lang: str) -> str:
    return await get_translation_gateway().translate(text, target_lang)
