"""
页面路由守卫
"""
from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from core.config import get_settings
from core.logger import get_logger
from core.security import decode_access_token

logger = get_logger(__name__)

PROTECTED_PREFIXES = ("/dashboard", "/admin")
LOGIN_PATH = "/login"
HOME_AFTER_LOGIN = "/dashboard"


def _is_protected(path: str) -> bool:
    return any(path == prefix or path.startswith(prefix + "/") for prefix in PROTECTED_PREFIXES)


class AuthMiddleware(BaseHTTPMiddleware):
    """
    1. 未登录访问 /dashboard、/admin -> 302 到 /login
    2. 已登录访问 /login -> 302 到 /dashboard
    3. 带 code 参数的请求（邮件登录回调）直接放行
    API 路由的鉴权由各路由的 Depends 处理，这里只管页面跳转。
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint):
        path = request.url.path
        if "code" in request.query_params or not (_is_protected(path) or path == LOGIN_PATH):
            return await call_next(request)

        token = request.cookies.get(get_settings().AUTH__COOKIE_NAME)
        if not token:
            auth_header = request.headers.get("Authorization", "")
            if auth_header.lower().startswith("bearer "):
                token = auth_header[7:].strip()
        signed_in = bool(token) and decode_access_token(token) is not None

        if _is_protected(path) and not signed_in:
            logger.info("Redirecting anonymous request to login", path=path)
            return RedirectResponse(url=LOGIN_PATH, status_code=302)
        if path == LOGIN_PATH and signed_in:
            return RedirectResponse(url=HOME_AFTER_LOGIN, status_code=302)
        return await call_next(request)
