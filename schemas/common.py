"""
通用数据模型：语言代码与多语言文本集合
"""
import json
from typing import Any, Dict, List, Mapping, Optional

# 展示用的国家/语言 key（商品多语言字段就用这几个）
LANG_KEYS: List[str] = ["CN", "EN", "VN", "TH", "PH", "MY"]

# 展示 key -> ISO 语言码；PH 站点直接用英文
DISPLAY_TO_ISO: Dict[str, str] = {
    "CN": "zh",
    "EN": "en",
    "VN": "vi",
    "TH": "th",
    "PH": "en",
    "MY": "ms",
}

ISO_TO_DISPLAY: Dict[str, str] = {
    "zh": "CN",
    "en": "EN",
    "vi": "VN",
    "th": "TH",
    "ms": "MY",
}

SUPPORTED_LANGS: List[str] = list(ISO_TO_DISPLAY)

_ALIASES: Dict[str, str] = {
    "cn": "zh",
    "zh-cn": "zh",
    "zh_cn": "zh",
    "zh-hans": "zh",
    "vn": "vi",
    "my": "ms",
    "ph": "en",
    # 菲律宾站用英文
    "tl": "en",
    "fil": "en",
    "us": "en",
}


def normalize_lang(code: Optional[str]) -> Optional[str]:
    """Maps ISO codes, display keys and common aliases onto a supported ISO code."""
    if not code:
        return None
    value = code.strip().lower()
    value = _ALIASES.get(value, value)
    return value if value in ISO_TO_DISPLAY else None


def to_display_key(code: Optional[str]) -> str:
    """'vi' / 'VN' -> 'VN'; PH stays PH; unknown codes fall back to CN."""
    if code and code.strip().upper() in LANG_KEYS:
        return code.strip().upper()
    if code and code.strip().lower() in ("tl", "fil"):
        return "PH"
    iso = normalize_lang(code)
    return ISO_TO_DISPLAY.get(iso, "CN")


def empty_translation_set() -> Dict[str, str]:
    return {key: "" for key in LANG_KEYS}


def coerce_translation_set(value: Any) -> Dict[str, str]:
    """
    把任意输入整理成完整的 {CN, EN, VN, TH, PH, MY}。
    纯字符串视为中文原文；缺失的 key 补空串。
    """
    result = empty_translation_set()
    if value is None:
        return result
    if isinstance(value, str):
        result["CN"] = value
        return result
    if isinstance(value, Mapping):
        for key, text in value.items():
            key = str(key)
            if key.upper() not in LANG_KEYS and normalize_lang(key) is None:
                continue
            if text is not None:
                result[to_display_key(key)] = str(text)
    return result


def pick_text(value: Any, lang: Optional[str] = "CN") -> str:
    """Requested language, then CN, then EN, then any non-empty entry, else ""."""
    tset = coerce_translation_set(value)
    for key in (to_display_key(lang), "CN", "EN"):
        if tset.get(key):
            return tset[key]
    for key in LANG_KEYS:
        if tset[key]:
            return tset[key]
    return ""


def coerce_image_list(value: Any) -> List[str]:
    """
    pattern_images 历史数据有三种形态：真正的 list、JSON 字符串、单个 URL 字符串。
    """
    if value is None:
        return []
    if isinstance(value, list):
        return [str(item) for item in value if item]
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return []
        if raw.startswith("["):
            try:
                parsed = json.loads(raw)
            except ValueError:
                return [raw]
            if isinstance(parsed, list):
                return [str(item) for item in parsed if item]
        return [raw]
    return []
