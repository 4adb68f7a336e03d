"""
Deep object translator: walks a JSON-like content tree and translates the
human-readable string leaves, leaving keys, identifiers and structure untouched.
"""
from __future__ import annotations

import asyncio
import re
from typing import Any, Dict, Optional, Tuple

from core.config import get_settings
from core.logger import get_logger
from schemas.common import normalize_lang
from services.translation_gateway import TranslationGateway, get_translation_gateway, resolve_target

logger = get_logger(__name__)

MIN_TEXT_LENGTH = 2

# keys (or key tokens) whose values are identifiers / machine values, never prose
EXCLUDED_KEY_TOKENS = frozenset({
    "id", "ids", "uuid", "sku", "image", "images", "img", "url", "urls", "link", "links", "href",
    "src", "code", "category", "date", "time", "timestamp", "at", "author", "color", "colour",
    "icon", "email", "slug", "lang", "locale", "key", "country", "username", "anchor", "logistics",
})

_KEY_SPLIT_RE = re.compile(r"[_\-\s.]+|(?<=[a-z0-9])(?=[A-Z])")


def is_excluded_key(key: Optional[str]) -> bool:
    if not key:
        return False
    tokens = [token.lower() for token in _KEY_SPLIT_RE.split(str(key)) if token]
    return any(token in EXCLUDED_KEY_TOKENS for token in tokens)


def _is_translatable_text(text: str) -> bool:
    stripped = text.strip()
    if len(stripped) < MIN_TEXT_LENGTH:
        return False
    # "4+", "120%", "2023" carry nothing to translate
    return any(ch.isalpha() for ch in stripped)


class TranslationCache:
    """Process-wide (text, lang) -> translation map with oldest-first eviction."""

    def __init__(self, max_entries: int = 4096):
        self.max_entries = max_entries
        self._entries: Dict[Tuple[str, str], str] = {}

    def get(self, text: str, lang: str) -> Optional[str]:
        return self._entries.get((text, lang))

    def put(self, text: str, lang: str, translated: str) -> None:
        if self.max_entries <= 0:
            return
        key = (text, lang)
        self._entries.pop(key, None)
        while len(self._entries) >= self.max_entries:
            self._entries.pop(next(iter(self._entries)))
        self._entries[key] = translated

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class DeepTranslator:
    def __init__(
        self,
        gateway: Optional[TranslationGateway] = None,
        default_lang: str = "zh",
        max_depth: int = 32,
        max_concurrency: int = 8,
        cache: Optional[TranslationCache] = None,
    ) -> None:
        self._gateway = gateway
        self.default_lang = default_lang
        self.max_depth = max_depth
        self.max_concurrency = max(1, max_concurrency)
        self.cache = cache if cache is not None else TranslationCache()

    @property
    def gateway(self) -> TranslationGateway:
        return self._gateway or get_translation_gateway()

    async def translate_deep(self, value: Any, target_lang: str) -> Any:
        """
        Returns a structurally identical copy of ``value`` with prose strings translated.
        Failed leaves keep their original text.
        """
        target = normalize_lang(target_lang) or resolve_target(target_lang)
        if target is None or target == normalize_lang(self.default_lang):
            return value
        semaphore = asyncio.Semaphore(self.max_concurrency)
        return await self._walk(value, target, None, 0, semaphore)

    async def _walk(self, value: Any, target: str, key: Optional[str], depth: int, semaphore: asyncio.Semaphore) -> Any:
        if depth > self.max_depth:
            logger.warning("Content tree deeper than limit; subtree left untranslated", max_depth=self.max_depth)
            return value

        if isinstance(value, str):
            if is_excluded_key(key) or not _is_translatable_text(value):
                return value
            return await self._translate_text(value, target, semaphore)

        if isinstance(value, dict):
            keys = list(value.keys())
            results = await asyncio.gather(
                *(self._walk(value[k], target, k, depth + 1, semaphore) for k in keys)
            )
            return dict(zip(keys, results))

        if isinstance(value, (list, tuple)):
            # list items inherit the parent key, so ["a.png", "b.png"] under "images" stays put
            results = await asyncio.gather(
                *(self._walk(item, target, key, depth + 1, semaphore) for item in value)
            )
            return type(value)(results) if isinstance(value, tuple) else list(results)

        return value

    async def _translate_text(self, text: str, target: str, semaphore: asyncio.Semaphore) -> str:
        cached = self.cache.get(text, target)
        if cached is not None:
            return cached
        async with semaphore:
            translated = await self.gateway.translate(text, target)
        if translated and translated != text:
            self.cache.put(text, target, translated)
        return translated


_DEEP_TRANSLATOR: Optional[DeepTranslator] = None


def get_deep_translator() -> DeepTranslator:
    global _DEEP_TRANSLATOR
    if _DEEP_TRANSLATOR is None:
        settings = get_settings()
        _DEEP_TRANSLATOR = DeepTranslator(
            default_lang=settings.I18N__DEFAULT_LANG,
            max_depth=settings.I18N__MAX_DEPTH,
            max_concurrency=settings.I18N__MAX_CONCURRENCY,
            cache=TranslationCache(settings.I18N__CACHE_SIZE),
        )
    return _DEEP_TRANSLATOR


def set_deep_translator(translator: Optional[DeepTranslator]) -> None:
    global _DEEP_TRANSLATOR
    _DEEP_TRANSLATOR = translator


async def translate_deep(value: Any, target_lang: str) -> Any:
    return await get_deep_translator().translate_deep(value, target_lang)
