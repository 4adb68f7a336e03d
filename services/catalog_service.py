"""
商品目录服务：Excel 批量导入（翻译 + upsert）、图片维护、增删改查
"""
import asyncio
from typing import Any, Dict, List, Optional

from starlette.concurrency import run_in_threadpool

from core.config import get_settings
from core.exceptions import ConflictError, ResourceNotFoundError, ValidationFailedError
from core.logger import get_logger
from database import products_repo
from database.ingest_product_excel import ProductDraft, group_rows_by_sku, read_product_excel
from schemas.common import coerce_image_list
from schemas.product import ImportFailure, ImportReport
from services import activity_log
from services.object_store import PRODUCT_IMAGES_BUCKET, LocalObjectStore, get_object_store
from services.translation_gateway import TranslationGateway, get_translation_gateway

logger = get_logger(__name__)


class CatalogService:
    def __init__(
        self,
        gateway: Optional[TranslationGateway] = None,
        store: Optional[LocalObjectStore] = None,
        import_delay: Optional[float] = None,
    ) -> None:
        self._gateway = gateway
        self._store = store
        self._import_delay = import_delay

    @property
    def gateway(self) -> TranslationGateway:
        return self._gateway or get_translation_gateway()

    @property
    def store(self) -> LocalObjectStore:
        if self._store is None:
            self._store = get_object_store()
        return self._store

    @property
    def import_delay(self) -> float:
        if self._import_delay is None:
            return get_settings().CATALOG__IMPORT_DELAY_MS / 1000
        return self._import_delay

    # ------------------------------------------------------------------ #
    # 批量导入
    # ------------------------------------------------------------------ #
    async def import_spreadsheet_file(self, data: bytes, actor: Optional[Dict[str, Any]] = None) -> ImportReport:
        try:
            rows = await run_in_threadpool(read_product_excel, data)
        except ValueError as exc:
            raise ValidationFailedError(str(exc)) from exc
        return await self.import_from_spreadsheet(rows, actor=actor)

    async def import_from_spreadsheet(self, rows: List[Dict[str, str]],
                                      actor: Optional[Dict[str, Any]] = None) -> ImportReport:
        """
        按 SKU 分组合并后逐组导入：三个字段各翻译一次，再按 SKU upsert。
        单组失败只记入报告，不中断后续分组。
        """
        drafts = group_rows_by_sku(rows)
        report = ImportReport(total=len(drafts))

        for index, draft in enumerate(drafts):
            if index:
                await asyncio.sleep(self.import_delay)
            try:
                await self._import_one(draft)
            except Exception as exc:
                logger.error("Product import failed", sku=draft.sku, exc_info=True)
                report.failed.append(ImportFailure(sku=draft.sku, error=str(exc) or type(exc).__name__))
                continue
            report.succeeded += 1
            report.skus.append(draft.sku)
            logger.info("Product imported", sku=draft.sku, progress=f"{index + 1}/{len(drafts)}")

        if report.failed:
            report.message = f"导入完成（{report.succeeded} 成功，{len(report.failed)} 失败）"
        await activity_log.log_activity(
            actor,
            activity_log.PRODUCT_IMPORT,
            report.message,
            {"total": report.total, "succeeded": report.succeeded, "failed": [f.sku for f in report.failed]},
        )
        return report

    async def _import_one(self, draft: ProductDraft) -> Dict[str, Any]:
        name, size, features = await asyncio.gather(
            self.gateway.smart_translate(draft.name),
            self.gateway.smart_translate(draft.size),
            self.gateway.smart_translate(draft.features),
        )
        return await run_in_threadpool(
            products_repo.upsert_product_translations, draft.sku, name, size, features
        )

    # ------------------------------------------------------------------ #
    # 图片
    # ------------------------------------------------------------------ #
    async def attach_image(self, sku: str, filename: str, data: bytes, is_primary: bool) -> Dict[str, Any]:
        product = await run_in_threadpool(products_repo.get_product_by_sku, sku)
        if product is None:
            raise ResourceNotFoundError(f"Product {sku}")
        url = await run_in_threadpool(self.store.upload, PRODUCT_IMAGES_BUCKET, filename, data)
        if is_primary:
            updated = await run_in_threadpool(products_repo.set_main_image, sku, url)
        else:
            images = coerce_image_list(product["pattern_images"]) + [url]
            updated = await run_in_threadpool(products_repo.set_pattern_images, sku, images)
        if updated is None:
            raise ResourceNotFoundError(f"Product {sku}")
        return updated

    async def detach_image(self, sku: str, image_url: Optional[str] = None, index: Optional[int] = None,
                           primary: bool = False) -> Dict[str, Any]:
        """只解除引用，存储里的文件不删。"""
        product = await run_in_threadpool(products_repo.get_product_by_sku, sku)
        if product is None:
            raise ResourceNotFoundError(f"Product {sku}")
        if primary:
            return await run_in_threadpool(products_repo.set_main_image, sku, "")

        images = coerce_image_list(product["pattern_images"])
        if index is not None:
            if index < 0 or index >= len(images):
                raise ValidationFailedError(f"图片下标越界: {index}")
            images.pop(index)
        elif image_url:
            if image_url not in images:
                raise ResourceNotFoundError("Pattern image")
            images.remove(image_url)
        else:
            raise ValidationFailedError("需要指定 primary、index 或 image_url")
        return await run_in_threadpool(products_repo.set_pattern_images, sku, images)

    # ------------------------------------------------------------------ #
    # CRUD
    # ------------------------------------------------------------------ #
    async def create_product(self, sku: str, name: Any, size: Any, features: Any, main_image: str = "",
                             pattern_images: Optional[List[str]] = None,
                             auto_translate: bool = True) -> Dict[str, Any]:
        sku = sku.strip()
        if not sku:
            raise ValidationFailedError("SKU 不能为空")
        if auto_translate:
            name, size, features = await asyncio.gather(
                *(self._maybe_translate(value) for value in (name, size, features))
            )
        created = await run_in_threadpool(
            products_repo.create_product, sku, name, size, features, main_image or "", pattern_images
        )
        if created is None:
            raise ConflictError(f"SKU {sku} already exists")
        return created

    async def _maybe_translate(self, value: Any) -> Any:
        if isinstance(value, str):
            return await self.gateway.smart_translate(value)
        return value

    async def list_products(self, keyword: Optional[str], lang: str, offset: int, limit: int) -> Dict[str, Any]:
        return await run_in_threadpool(products_repo.list_products, keyword, lang, offset, limit)

    async def get_product(self, sku: str, lang: Optional[str] = None) -> Dict[str, Any]:
        product = await run_in_threadpool(products_repo.get_product_by_sku, sku, lang)
        if product is None:
            raise ResourceNotFoundError(f"Product {sku}")
        return product

    async def update_product(self, sku: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        updated = await run_in_threadpool(products_repo.update_product, sku, payload)
        if updated is None:
            raise ResourceNotFoundError(f"Product {sku}")
        return updated

    async def delete_product(self, sku: str) -> None:
        deleted = await run_in_threadpool(products_repo.delete_product, sku)
        if not deleted:
            raise ResourceNotFoundError(f"Product {sku}")


def get_catalog_service() -> CatalogService:
    return CatalogService()
