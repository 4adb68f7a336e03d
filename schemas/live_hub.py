"""
直播中心内容：按 category 区分的 tagged union，写入和读取时都做校验
"""
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, TypeAdapter, field_validator

LocalizedText = Union[str, Dict[str, str]]
HUB_CATEGORIES = ("policy", "activity", "tutorial", "notice")


def _not_blank(value: LocalizedText) -> LocalizedText:
    if isinstance(value, str):
        if not value.strip():
            raise ValueError("must not be empty")
    elif not any((v or "").strip() for v in value.values()):
        raise ValueError("must not be empty")
    return value


RequiredText = Annotated[LocalizedText, AfterValidator(_not_blank)]


class _HubPayloadBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    date: str = ""
    author: str = "Admin"


class PolicyPayload(_HubPayloadBase):
    category: Literal["policy"] = "policy"
    title: RequiredText
    content: LocalizedText = ""


class NoticePayload(_HubPayloadBase):
    category: Literal["notice"] = "notice"
    title: RequiredText
    content: LocalizedText = ""


class ActivityProduct(BaseModel):
    id: int
    sku: str
    name: str = ""
    image: str = ""


class ActivityPayload(_HubPayloadBase):
    category: Literal["activity"] = "activity"
    title: RequiredText
    content: LocalizedText = ""
    target_country: str = Field(..., min_length=1)
    target_shop_id: str = Field(..., min_length=1)
    target_shop_name: str = ""
    activity_code: str = ""
    coupon_count: int = Field(0, ge=0)
    start_time: str = ""
    end_time: str = ""
    products: List[ActivityProduct] = Field(default_factory=list)


class TutorialStep(BaseModel):
    text: str = ""
    image: str = ""


class TutorialPayload(_HubPayloadBase):
    category: Literal["tutorial"] = "tutorial"
    project_name: str = Field(..., min_length=1)
    title: LocalizedText = ""
    content: LocalizedText = ""
    steps_text: str = ""
    step_images: List[str] = Field(default_factory=list)
    steps: List[TutorialStep] = Field(default_factory=list)
    notes: str = ""

    @field_validator("project_name")
    @classmethod
    def project_name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v.strip()


HubPayload = Annotated[
    Union[PolicyPayload, NoticePayload, ActivityPayload, TutorialPayload],
    Field(discriminator="category"),
]

hub_payload_adapter: TypeAdapter = TypeAdapter(HubPayload)


class HubEntryCreate(BaseModel):
    """
    管理员发布入参。activity 只需传店铺 id 和产品 id，
    店铺名和产品快照由服务端在发布时补齐。
    """
    category: Literal["policy", "activity", "tutorial", "notice"]
    title: Optional[LocalizedText] = None
    content: Optional[LocalizedText] = None
    # activity
    target_country: Optional[str] = None
    target_shop_id: Optional[str] = None
    activity_code: Optional[str] = None
    coupon_count: int = 0
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    product_ids: List[int] = Field(default_factory=list)
    # tutorial
    project_name: Optional[str] = None
    steps_text: Optional[str] = None
    step_images: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
