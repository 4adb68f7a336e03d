"""AI 文案生成 schemas"""
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

ContentType = Literal["short_video", "live_script"]


class GenerateRequest(BaseModel):
    """直接传产品字段，或只传 sku 由服务端从商品库取中文字段"""
    sku: Optional[str] = None
    name: Optional[str] = None
    size: Optional[str] = ""
    features: Optional[str] = ""
    pattern_name: Optional[str] = None
    target_market: str = "US"
    content_type: ContentType = "short_video"

    @model_validator(mode="after")
    def require_product(self):
        if not self.sku and not (self.name or "").strip():
            raise ValueError("sku 和 name 至少提供一个")
        return self


class BatchTranslateRequest(BaseModel):
    text: str = Field(..., min_length=1)
