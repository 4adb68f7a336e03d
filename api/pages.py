"""
页面入口：首页文案 + 受路由守卫保护的页面壳
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse

from api.deps import get_current_user, get_optional_user
from api.v1.i18n import localize_page
from core.response import APIResponse, success_response
from services.access_policy import AccessPolicy, get_access_policy

router = APIRouter(tags=["Pages"])


@router.get("/", response_model=APIResponse[dict], summary="首页")
async def home(request: Request, lang: Optional[str] = Query(default=None)):
    return success_response(await localize_page("home", request, lang))


@router.get("/login", response_model=APIResponse[dict], summary="登录页")
async def login_page(request: Request, lang: Optional[str] = Query(default=None)):
    return success_response(await localize_page("login", request, lang))


@router.get("/dashboard", response_model=APIResponse[dict], summary="主播工作台")
async def dashboard_page(
        request: Request,
        lang: Optional[str] = Query(default=None),
        user: Optional[Dict[str, Any]] = Depends(get_optional_user),
        policy: AccessPolicy = Depends(get_access_policy),
):
    page = await localize_page("dashboard", request, lang)
    page["user"] = {**user, "is_admin": policy.is_admin(user)} if user else None
    return success_response(page)


@router.get("/admin", response_model=APIResponse[dict], summary="管理后台")
async def admin_page(
        request: Request,
        lang: Optional[str] = Query(default=None),
        user: Dict[str, Any] = Depends(get_current_user),
        policy: AccessPolicy = Depends(get_access_policy),
):
    if not policy.is_admin(user):
        # 已登录但不是管理员：回到工作台
        return RedirectResponse(url="/dashboard", status_code=302)
    page = await localize_page("dashboard", request, lang)
    page["user"] = {**user, "is_admin": True}
    return success_response(page)
