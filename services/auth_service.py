"""
认证服务：注册（邀请码决定角色）、登录、登出、提权、个人资料
"""
import hmac
from typing import Any, Dict, List, Optional

from starlette.concurrency import run_in_threadpool

from core.config import get_settings
from core.exceptions import AuthenticationError, ConflictError, PermissionDeniedError, ResourceNotFoundError, \
    ValidationFailedError
from core.logger import get_logger
from core.security import create_access_token, decode_access_token, get_password_hash, verify_password
from database import profiles_repo
from services import activity_log
from services.access_policy import ROLE_ADMIN, ROLE_CREATOR, AccessPolicy, get_access_policy

logger = get_logger(__name__)


def _code_matches(code: Optional[str], expected: str) -> bool:
    # 未配置邀请码时任何输入都不通过
    if not code or not expected:
        return False
    return hmac.compare_digest(code.strip(), expected)


class AuthService:
    """认证服务"""

    def __init__(self, policy: Optional[AccessPolicy] = None):
        self._policy = policy

    @property
    def policy(self) -> AccessPolicy:
        return self._policy or get_access_policy()

    def present(self, profile: Dict[str, Any]) -> Dict[str, Any]:
        data = {k: v for k, v in profile.items() if k != "hashed_password"}
        data["is_admin"] = self.policy.is_admin(profile)
        return data

    async def sign_up(self, email: str, password: str, username: str, country: Optional[str] = None,
                      admin_code: Optional[str] = None) -> Dict[str, Any]:
        role = ROLE_ADMIN if _code_matches(admin_code, get_settings().AUTH__ADMIN_INVITE_CODE) else ROLE_CREATOR
        if admin_code and role != ROLE_ADMIN:
            raise ValidationFailedError("管理员邀请码错误")
        country = (country or "").strip().upper() or None
        hashed = await run_in_threadpool(get_password_hash, password)
        profile = await run_in_threadpool(
            profiles_repo.create_profile, email, hashed, username.strip(), country, role
        )
        if profile is None:
            raise ConflictError("该邮箱已注册")
        logger.info("Profile created", profile_id=profile["id"], role=role)
        await activity_log.log_activity(profile, activity_log.SIGN_UP, f"注册账号 {profile['email']}", {"role": role})
        return self.present(profile)

    async def sign_in(self, email: str, password: str, ip: Optional[str] = None) -> Dict[str, Any]:
        credentials = await run_in_threadpool(profiles_repo.get_credentials, email)
        if credentials is None or not await run_in_threadpool(
                verify_password, password, credentials["hashed_password"]):
            raise AuthenticationError("邮箱或密码错误")
        profile = await run_in_threadpool(profiles_repo.record_login, credentials["id"], ip)
        await activity_log.log_activity(profile, activity_log.LOGIN, "登录", {"ip": ip})
        token = create_access_token(data={"sub": profile["id"], "email": profile["email"]})
        return {"access_token": token, "token_type": "bearer", "user": self.present(profile)}

    async def sign_out(self, user: Optional[Dict[str, Any]]) -> None:
        if user:
            await activity_log.log_activity(user, activity_log.LOGOUT, "退出登录")

    async def resolve_token(self, token: Optional[str]) -> Optional[Dict[str, Any]]:
        """token -> profile；无效、过期或用户不存在都返回 None"""
        if not token:
            return None
        payload = decode_access_token(token)
        if not payload or not payload.get("sub"):
            return None
        return await run_in_threadpool(profiles_repo.get_profile, payload["sub"])

    async def elevate(self, user: Dict[str, Any], code: str) -> Dict[str, Any]:
        self.policy.require_user(user)
        if not _code_matches(code, get_settings().AUTH__ADMIN_INVITE_CODE):
            raise PermissionDeniedError("邀请码错误")
        profile = await run_in_threadpool(profiles_repo.set_role, user["id"], ROLE_ADMIN)
        if profile is None:
            raise ResourceNotFoundError("Profile")
        await activity_log.log_activity(profile, activity_log.ELEVATE, "升级为管理员")
        logger.info("Profile elevated", profile_id=profile["id"])
        return self.present(profile)

    async def update_profile(self, user: Dict[str, Any], username: Optional[str],
                             country: Optional[str]) -> Dict[str, Any]:
        self.policy.require_user(user)
        payload = {
            "username": username.strip() if username else None,
            "country": country.strip().upper() if country else None,
        }
        profile = await run_in_threadpool(profiles_repo.update_profile, user["id"], payload)
        if profile is None:
            raise ResourceNotFoundError("Profile")
        return self.present(profile)

    async def list_creators(self, user: Dict[str, Any], country: Optional[str] = None) -> List[Dict[str, Any]]:
        """排班选人用，仅管理员"""
        self.policy.require_admin(user)
        rows = await run_in_threadpool(profiles_repo.list_profiles, ROLE_CREATOR, (country or "").upper() or None)
        return [self.present(row) for row in rows]


def get_auth_service() -> AuthService:
    return AuthService()
