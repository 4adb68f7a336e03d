"""
多语言页面文案API
"""
from typing import Optional

from fastapi import APIRouter, Query, Request, Response

from core.config import get_settings
from core.exceptions import ResourceNotFoundError
from core.response import APIResponse, success_response
from services.localization import Localizer, select_language
from services.page_bundles import PAGE_BUNDLES

router = APIRouter(prefix="/i18n", tags=["I18n"])


async def localize_page(page: str, request: Request, lang: Optional[str] = None) -> dict:
    bundle = PAGE_BUNDLES.get(page)
    if bundle is None:
        raise ResourceNotFoundError(f"Page {page}")
    cookie_lang = request.cookies.get(get_settings().I18N__COOKIE_NAME)
    result = await Localizer(bundle).localize(lang, cookie_lang)
    return result.as_dict()


@router.get("/pages", response_model=APIResponse[list], summary="可用页面")
async def list_pages():
    return success_response(sorted(PAGE_BUNDLES))


@router.get("/pages/{page}", response_model=APIResponse[dict], summary="获取页面文案")
async def get_page(
        page: str,
        request: Request,
        lang: Optional[str] = Query(default=None, description="zh / en / vi / th / ms"),
):
    return success_response(await localize_page(page, request, lang))


@router.post("/select-language", response_model=APIResponse[dict], summary="切换语言")
async def choose_language(
        response: Response,
        lang: str = Query(..., description="zh / en / vi / th / ms"),
        current_url: str = Query(default="/", description="当前页面地址"),
):
    """写入语言 cookie，返回带新 lang 参数的地址"""
    url = select_language(lang, current_url, response)
    return success_response({"url": url})
