"""
AI 文案生成API
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends

from api.deps import get_current_user
from core.response import APIResponse, success_response
from schemas.ai import BatchTranslateRequest, GenerateRequest
from schemas.common import pick_text
from services.catalog_service import CatalogService, get_catalog_service
from services.content_generator import ContentGenerator, ProductBrief, get_content_generator

router = APIRouter(prefix="/ai", tags=["AI"])


@router.post("/generate", response_model=APIResponse[dict], summary="生成短视频文案 / 直播脚本")
async def generate_content(
        payload: GenerateRequest,
        current_user: Dict[str, Any] = Depends(get_current_user),
        generator: ContentGenerator = Depends(get_content_generator),
        catalog: CatalogService = Depends(get_catalog_service),
):
    """
    传 sku 时从商品库取中文名称 / 尺寸 / 卖点（缺失按语言回退），
    显式传入的字段优先。
    """
    if payload.sku:
        product = await catalog.get_product(payload.sku)
        brief = ProductBrief(
            name=payload.name or pick_text(product["name"], "CN"),
            size=payload.size or pick_text(product["size"], "CN"),
            features=payload.features or pick_text(product["features"], "CN"),
            pattern_name=payload.pattern_name,
        )
    else:
        brief = ProductBrief(
            name=payload.name,
            size=payload.size or "",
            features=payload.features or "",
            pattern_name=payload.pattern_name,
        )
    text = await generator.generate(brief, payload.target_market, payload.content_type)
    return success_response({"text": text, "target_market": payload.target_market.upper()})


@router.post("/batch-translate", response_model=APIResponse[dict], summary="中文一键翻译成多语言")
async def batch_translate(
        payload: BatchTranslateRequest,
        current_user: Dict[str, Any] = Depends(get_current_user),
        generator: ContentGenerator = Depends(get_content_generator),
):
    return success_response(await generator.batch_translate(payload.text))
