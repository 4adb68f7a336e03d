"""排班相关 schemas"""
from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


class ShopCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    country: str = Field(..., description="VN/TH/MY/PH")


class AssignRequest(BaseModel):
    date: date
    hour: int = Field(..., ge=0, le=23)
    creator_id: Optional[str] = Field(None, description="为空表示取消安排")


class ReportRequest(BaseModel):
    date: date
    hour: int = Field(..., ge=0, le=23)
    follower_delta: int = Field(..., description="本时段涨粉数，可为负")
    note: Optional[str] = Field(None, max_length=500, description="直播心情/备注")
