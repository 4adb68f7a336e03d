"""
Per-request localization of default-language content bundles.

Language priority: explicit ``lang`` request parameter > persisted cookie > default.
The default language is served as-is without touching the translation backends.
"""
from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from starlette.responses import Response

from core.config import get_settings
from core.logger import get_logger
from schemas.common import normalize_lang
from services.deep_translator import DeepTranslator, get_deep_translator

logger = get_logger(__name__)

LANG_COOKIE_MAX_AGE = 365 * 24 * 3600


class LocalizationState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    RESOLVING_LANGUAGE = "resolving_language"
    TRANSLATING = "translating"
    READY = "ready"


@dataclass
class LocalizedContent:
    content: Any
    active_lang: str
    is_loading: bool

    def as_dict(self) -> Dict[str, Any]:
        return {"content": self.content, "activeLang": self.active_lang, "isLoading": self.is_loading}


def resolve_language(query_lang: Optional[str], cookie_lang: Optional[str], default_lang: Optional[str] = None) -> str:
    default = normalize_lang(default_lang) or normalize_lang(get_settings().I18N__DEFAULT_LANG) or "zh"
    for candidate in (query_lang, cookie_lang):
        lang = normalize_lang(candidate)
        if lang:
            return lang
    return default


class Localizer:
    """
    uninitialized -> resolving_language -> ready                 (default language)
    uninitialized -> resolving_language -> translating -> ready  (anything else)

    A new ``resolve`` cancels an in-flight translation. Finished bundles are
    memoized per language for the lifetime of the instance.
    """

    def __init__(
        self,
        default_content: Any,
        translator: Optional[DeepTranslator] = None,
        default_lang: Optional[str] = None,
    ) -> None:
        self.default_content = default_content
        self._translator = translator
        self.default_lang = normalize_lang(default_lang) or normalize_lang(get_settings().I18N__DEFAULT_LANG) or "zh"
        self.state = LocalizationState.UNINITIALIZED
        self.active_lang = self.default_lang
        self._content = default_content
        self._memo: Dict[str, Any] = {}
        self._task: Optional[asyncio.Task] = None

    @property
    def translator(self) -> DeepTranslator:
        return self._translator or get_deep_translator()

    def snapshot(self) -> LocalizedContent:
        return LocalizedContent(
            content=self._content,
            active_lang=self.active_lang,
            is_loading=self.state is not LocalizationState.READY,
        )

    def resolve(self, query_lang: Optional[str] = None, cookie_lang: Optional[str] = None) -> LocalizedContent:
        """Picks the active language and, if needed, starts translating in the background."""
        self._cancel_pending()
        self.state = LocalizationState.RESOLVING_LANGUAGE
        lang = resolve_language(query_lang, cookie_lang, self.default_lang)
        self.active_lang = lang

        if lang == self.default_lang:
            self._content = self.default_content
            self.state = LocalizationState.READY
        elif lang in self._memo:
            self._content = self._memo[lang]
            self.state = LocalizationState.READY
        else:
            # keep showing the default bundle until the translation settles
            self._content = self.default_content
            self.state = LocalizationState.TRANSLATING
            self._task = asyncio.create_task(self.translator.translate_deep(self.default_content, lang))
        return self.snapshot()

    async def wait(self) -> LocalizedContent:
        task = self._task
        if task is None:
            return self.snapshot()
        lang = self.active_lang
        try:
            translated = await task
        except asyncio.CancelledError:
            if self._task is task:
                raise
            # superseded by a newer resolve()
            return self.snapshot()
        except Exception:
            logger.error("Bundle translation failed; serving default content", lang=lang, exc_info=True)
            translated = self.default_content
        else:
            self._memo[lang] = translated
        if self._task is task:
            self._task = None
            self._content = translated
            self.state = LocalizationState.READY
        return self.snapshot()

    async def localize(self, query_lang: Optional[str] = None, cookie_lang: Optional[str] = None) -> LocalizedContent:
        self.resolve(query_lang, cookie_lang)
        return await self.wait()

    def close(self) -> None:
        self._cancel_pending()

    def _cancel_pending(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None


def select_language(lang: str, current_url: str, response: Optional[Response] = None) -> str:
    """
    Persists the choice in the language cookie and returns ``current_url`` with
    its ``lang`` query parameter replaced.
    """
    settings = get_settings()
    normalized = normalize_lang(lang) or normalize_lang(settings.I18N__DEFAULT_LANG) or "zh"
    if response is not None:
        response.set_cookie(
            settings.I18N__COOKIE_NAME,
            normalized,
            max_age=LANG_COOKIE_MAX_AGE,
            path="/",
            samesite="lax",
        )
    parts = urlsplit(current_url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != "lang"]
    query.append(("lang", normalized))
    return urlunsplit((parts.scheme, parts.netloc, parts.path or "/", urlencode(query), parts.fragment))
