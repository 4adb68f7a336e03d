"""
认证相关数据模型
"""
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class SignUpRequest(BaseModel):
    """注册请求"""
    email: EmailStr
    password: str = Field(..., min_length=6)
    username: str = Field(..., min_length=1, max_length=64)
    country: Optional[str] = Field(None, description="VN/TH/MY/PH")
    admin_code: Optional[str] = Field(None, description="管理员邀请码")


class SignInRequest(BaseModel):
    """登录请求"""
    email: EmailStr
    password: str


class ElevateRequest(BaseModel):
    code: str = Field(..., min_length=1)


class ProfileUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=1, max_length=64)
    country: Optional[str] = None


class ProfileResponse(BaseModel):
    """用户响应"""
    id: str
    email: str
    username: str = ""
    role: str
    country: str = ""
    is_admin: bool = False
    last_login: Optional[str] = None
    created_at: Optional[str] = None


class TokenData(BaseModel):
    """Token数据"""
    access_token: str
    token_type: str = "bearer"
    user: ProfileResponse
