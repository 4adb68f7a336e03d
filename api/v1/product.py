"""
商品目录API
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from api.deps import get_current_user, require_admin
from core.exceptions import ValidationFailedError
from core.response import APIResponse, success_response
from schemas.common import to_display_key
from schemas.product import ImageDetachRequest, ImportReport, ProductCreate, ProductUpdate
from services.catalog_service import CatalogService, get_catalog_service

router = APIRouter(prefix="/products", tags=["Products"])

SPREADSHEET_EXTS = (".xlsx", ".xls")


@router.get("", response_model=APIResponse[dict], summary="查询商品列表")
async def list_products(
        keyword: Optional[str] = Query(default=None, description="SKU 或名称模糊搜索"),
        lang: Optional[str] = Query(default="zh", description="展示语言"),
        page_num: int = Query(default=1, ge=1, alias="pageNum"),
        page_size: int = Query(default=20, ge=1, le=100, alias="pageSize"),
        current_user: Dict[str, Any] = Depends(get_current_user),
        catalog: CatalogService = Depends(get_catalog_service),
):
    offset = (page_num - 1) * page_size
    result = await catalog.list_products(keyword, to_display_key(lang), offset, page_size)
    return success_response(result)


@router.get("/{sku}", response_model=APIResponse[dict], summary="获取单个商品")
async def get_product(
        sku: str,
        lang: Optional[str] = Query(default=None),
        current_user: Dict[str, Any] = Depends(get_current_user),
        catalog: CatalogService = Depends(get_catalog_service),
):
    product = await catalog.get_product(sku, to_display_key(lang) if lang else None)
    return success_response(product)


@router.post("", response_model=APIResponse[dict], summary="新建商品")
async def create_product(
        payload: ProductCreate,
        admin: Dict[str, Any] = Depends(require_admin),
        catalog: CatalogService = Depends(get_catalog_service),
):
    product = await catalog.create_product(
        sku=payload.sku,
        name=payload.name,
        size=payload.size,
        features=payload.features,
        main_image=payload.main_image or "",
        pattern_images=payload.pattern_images,
        auto_translate=payload.auto_translate,
    )
    return success_response(product, message="创建成功")


@router.put("/{sku}", response_model=APIResponse[dict], summary="更新商品信息")
async def update_product(
        sku: str,
        payload: ProductUpdate,
        admin: Dict[str, Any] = Depends(require_admin),
        catalog: CatalogService = Depends(get_catalog_service),
):
    product = await catalog.update_product(sku, payload.model_dump(exclude_unset=True))
    return success_response(product)


@router.delete("/{sku}", response_model=APIResponse[None], summary="删除商品")
async def delete_product(
        sku: str,
        admin: Dict[str, Any] = Depends(require_admin),
        catalog: CatalogService = Depends(get_catalog_service),
):
    await catalog.delete_product(sku)
    return success_response(message="删除成功")


@router.post("/import", response_model=APIResponse[ImportReport], summary="Excel 批量导入商品")
async def import_products(
        file: UploadFile = File(...),
        admin: Dict[str, Any] = Depends(require_admin),
        catalog: CatalogService = Depends(get_catalog_service),
):
    """
    上传 Excel：按 SKU 合并多行，自动翻译名称/尺寸/卖点后写入。
    返回逐条的成功 / 失败报告。
    """
    if not (file.filename or "").lower().endswith(SPREADSHEET_EXTS):
        raise ValidationFailedError("仅支持 .xlsx / .xls 文件")
    data = await file.read()
    report = await catalog.import_spreadsheet_file(data, actor=admin)
    return success_response(report, message=report.message)


@router.post("/{sku}/images", response_model=APIResponse[dict], summary="上传商品图片")
async def upload_image(
        sku: str,
        file: UploadFile = File(...),
        is_primary: bool = Form(False),
        admin: Dict[str, Any] = Depends(require_admin),
        catalog: CatalogService = Depends(get_catalog_service),
):
    data = await file.read()
    product = await catalog.attach_image(sku, file.filename or "", data, is_primary)
    return success_response(product)


@router.post("/{sku}/images/detach", response_model=APIResponse[dict], summary="移除商品图片")
async def detach_image(
        sku: str,
        payload: ImageDetachRequest,
        admin: Dict[str, Any] = Depends(require_admin),
        catalog: CatalogService = Depends(get_catalog_service),
):
    product = await catalog.detach_image(sku, image_url=payload.image_url, index=payload.index,
                                         primary=payload.primary)
    return success_response(product)
