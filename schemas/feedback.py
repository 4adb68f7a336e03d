"""反馈相关 schemas"""
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

FeedbackCategory = Literal["sample", "live_issue", "after_sales", "other"]
FEEDBACK_CATEGORIES = ("sample", "live_issue", "after_sales", "other")


class FeedbackCreate(BaseModel):
    country: str = Field(..., description="国家 VN/TH/MY/PH")
    category: FeedbackCategory = "live_issue"
    content: str = Field("", description="详细描述")
    images: List[str] = Field(default_factory=list)
    product_id: Optional[int] = None
    is_anonymous: bool = False


class FeedbackReply(BaseModel):
    reply: Optional[str] = Field(None, description="官方回复")
    logistics_info: Optional[str] = Field(None, description="物流单号")
