"""Product 相关 schemas"""
from __future__ import annotations

from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field

TranslationInput = Union[str, Dict[str, str]]


class ProductCreate(BaseModel):
    sku: str = Field(..., min_length=1, description="SKU（唯一）")
    name: TranslationInput = Field(..., description="名称：中文字符串或 {CN, EN, ...}")
    size: TranslationInput = Field("", description="尺寸")
    features: TranslationInput = Field("", description="卖点")
    main_image: Optional[str] = Field("", description="主图 URL")
    pattern_images: List[str] = Field(default_factory=list, description="图案图片 URL 列表")
    auto_translate: bool = Field(True, description="传入中文字符串时自动翻译成各语言")


class ProductUpdate(BaseModel):
    name: Optional[Dict[str, str]] = None
    size: Optional[Dict[str, str]] = None
    features: Optional[Dict[str, str]] = None
    main_image: Optional[str] = None
    pattern_images: Optional[List[str]] = None


class ImageDetachRequest(BaseModel):
    primary: bool = Field(False, description="清空主图")
    index: Optional[int] = Field(None, ge=0, description="按下标移除图案图")
    image_url: Optional[str] = Field(None, description="按 URL 移除图案图")


class ImportFailure(BaseModel):
    sku: str
    error: str


class ImportReport(BaseModel):
    message: str = "导入完成"
    total: int = 0
    succeeded: int = 0
    skus: List[str] = Field(default_factory=list)
    failed: List[ImportFailure] = Field(default_factory=list)
