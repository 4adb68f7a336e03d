"""
依赖注入 - 用于路由的依赖项
"""
from typing import Any, Dict, Optional

from fastapi import Depends, Request, WebSocket
from fastapi.security import OAuth2PasswordBearer

from core.config import get_settings
from core.exceptions import AuthenticationError
from services.access_policy import AccessPolicy, get_access_policy
from services.auth_service import AuthService, get_auth_service

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


def token_from_request(request: Request, bearer: Optional[str] = None) -> Optional[str]:
    """Authorization: Bearer 优先，其次会话 cookie"""
    return bearer or request.cookies.get(get_settings().AUTH__COOKIE_NAME)


async def get_optional_user(
        request: Request,
        bearer: Optional[str] = Depends(oauth2_scheme),
        auth_service: AuthService = Depends(get_auth_service),
) -> Optional[Dict[str, Any]]:
    return await auth_service.resolve_token(token_from_request(request, bearer))


async def get_current_user(user: Optional[Dict[str, Any]] = Depends(get_optional_user)) -> Dict[str, Any]:
    """获取当前登录用户"""
    if user is None:
        raise AuthenticationError("无法验证凭据")
    return user


async def require_admin(
        user: Dict[str, Any] = Depends(get_current_user),
        policy: AccessPolicy = Depends(get_access_policy),
) -> Dict[str, Any]:
    return policy.require_admin(user)


async def get_websocket_user(websocket: WebSocket) -> Optional[Dict[str, Any]]:
    """WebSocket 握手没有 Authorization 头时，从 ?token= 或 cookie 里取"""
    token = websocket.query_params.get("token") or websocket.cookies.get(get_settings().AUTH__COOKIE_NAME)
    return await get_auth_service().resolve_token(token)
