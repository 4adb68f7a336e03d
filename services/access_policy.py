"""
唯一的管理员判定：role == admin，或邮箱在配置的管理员名单里。
"""
from typing import Any, Dict, Iterable, Optional

from core.config import get_settings
from core.exceptions import AuthenticationError, PermissionDeniedError

ROLE_ADMIN = "admin"
ROLE_CREATOR = "creator"


class AccessPolicy:
    def __init__(self, admin_emails: Iterable[str] = ()):
        self.admin_emails = {email.strip().lower() for email in admin_emails if email}

    def is_admin(self, user: Optional[Dict[str, Any]]) -> bool:
        if not user:
            return False
        if user.get("role") == ROLE_ADMIN:
            return True
        return (user.get("email") or "").lower() in self.admin_emails

    def require_user(self, user: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        if not user:
            raise AuthenticationError()
        return user

    def require_admin(self, user: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        self.require_user(user)
        if not self.is_admin(user):
            raise PermissionDeniedError("Admin privileges required")
        return user


def get_access_policy() -> AccessPolicy:
    return AccessPolicy(get_settings().admin_emails)
