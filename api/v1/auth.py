"""
认证相关API
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request, Response

from api.deps import get_current_user, get_optional_user
from core.config import get_settings
from core.response import APIResponse, success_response
from schemas.auth import ElevateRequest, ProfileResponse, ProfileUpdate, SignInRequest, SignUpRequest, TokenData
from services.auth_service import AuthService, get_auth_service

router = APIRouter(prefix="/auth", tags=["Auth"])


def _set_session_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        key=settings.AUTH__COOKIE_NAME,
        value=token,
        max_age=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        samesite="lax",
        secure=not settings.DEBUG,
    )


@router.post("/signup", response_model=APIResponse[ProfileResponse], summary="注册")
async def sign_up(
        payload: SignUpRequest,
        auth_service: AuthService = Depends(get_auth_service),
):
    profile = await auth_service.sign_up(
        email=payload.email,
        password=payload.password,
        username=payload.username,
        country=payload.country,
        admin_code=payload.admin_code,
    )
    return success_response(profile, message="注册成功")


@router.post("/login", response_model=APIResponse[TokenData], summary="用户登录")
async def sign_in(
        payload: SignInRequest,
        request: Request,
        response: Response,
        auth_service: AuthService = Depends(get_auth_service),
):
    """
    登录获取 Token，同时写入 HTTP-only 会话 cookie
    """
    client_ip = request.client.host if request.client else None
    result = await auth_service.sign_in(payload.email, payload.password, client_ip)
    _set_session_cookie(response, result["access_token"])
    return success_response(result, message="登录成功")


@router.post("/logout", response_model=APIResponse[None], summary="退出登录")
async def sign_out(
        response: Response,
        user: Optional[Dict[str, Any]] = Depends(get_optional_user),
        auth_service: AuthService = Depends(get_auth_service),
):
    await auth_service.sign_out(user)
    response.delete_cookie(get_settings().AUTH__COOKIE_NAME)
    return success_response(message="已退出")


@router.get("/me", response_model=APIResponse[ProfileResponse], summary="获取当前用户信息")
async def get_me(
        user: Dict[str, Any] = Depends(get_current_user),
        auth_service: AuthService = Depends(get_auth_service),
):
    return success_response(auth_service.present(user))


@router.patch("/me", response_model=APIResponse[ProfileResponse], summary="修改个人资料")
async def update_me(
        payload: ProfileUpdate,
        user: Dict[str, Any] = Depends(get_current_user),
        auth_service: AuthService = Depends(get_auth_service),
):
    profile = await auth_service.update_profile(user, payload.username, payload.country)
    return success_response(profile)


@router.post("/elevate", response_model=APIResponse[ProfileResponse], summary="邀请码升级为管理员")
async def elevate(
        payload: ElevateRequest,
        user: Dict[str, Any] = Depends(get_current_user),
        auth_service: AuthService = Depends(get_auth_service),
):
    profile = await auth_service.elevate(user, payload.code)
    return success_response(profile, message="已升级为管理员")


@router.get("/creators", response_model=APIResponse[List[ProfileResponse]], summary="主播列表(仅管理员)")
async def list_creators(
        country: Optional[str] = None,
        user: Dict[str, Any] = Depends(get_current_user),
        auth_service: AuthService = Depends(get_auth_service),
):
    return success_response(await auth_service.list_creators(user, country))
