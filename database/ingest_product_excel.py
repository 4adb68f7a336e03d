# database/ingest_product_excel.py
"""
解析运营上传的商品 Excel，并按 SKU 合并成待导入的商品。
用法：
    rows = read_product_excel(path_or_bytes)
    groups = group_rows_by_sku(rows)
    -> [ProductDraft(sku, name, size, features), ...]
"""
import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Union

import pandas as pd

from core.logger import get_logger

logger = get_logger(__name__)

# 映射：Excel列名 -> 字段名（中英文表头都认）
DEFAULT_COLUMN_MAP: Dict[str, str] = {
    "SKU": "sku",
    "sku": "sku",
    "Sku": "sku",
    "货号": "sku",
    "Name": "name",
    "name": "name",
    "商品名称": "name",
    "名称": "name",
    "Size": "size",
    "size": "size",
    "尺寸": "size",
    "规格": "size",
    "Features": "features",
    "features": "features",
    "特点": "features",
    "卖点": "features",
}

REQUIRED_FIELDS: List[str] = ["sku"]
FIELDS: List[str] = ["sku", "name", "size", "features"]
SIZE_SEPARATOR = " / "


@dataclass
class ProductDraft:
    sku: str
    name: str = ""
    size: str = ""
    features: str = ""
    row_count: int = 0
    sizes: List[str] = field(default_factory=list)


def read_product_excel(source: Union[str, Path, bytes]) -> List[Dict[str, str]]:
    """
    读取第一个 sheet，返回 list[dict]（只保留 sku/name/size/features 四列）。
    """
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)
    df = pd.read_excel(source, dtype=str)  # 统一读成字符串，避免类型歧义
    df.columns = [str(col).strip() for col in df.columns]
    rename_map = {src: dest for src, dest in DEFAULT_COLUMN_MAP.items() if src in df.columns}
    df = df.rename(columns=rename_map)
    # 同一字段多个同义表头时只保留第一个
    df = df.loc[:, ~df.columns.duplicated()]
    missing_required = [col for col in REQUIRED_FIELDS if col not in df.columns]
    if missing_required:
        raise ValueError(f"缺少必填列: {', '.join(missing_required)}")
    for col in FIELDS:
        if col not in df.columns:
            df[col] = ""
    df = df[FIELDS].fillna("")
    records = []
    for record in df.to_dict(orient="records"):
        records.append({key: str(value).strip() for key, value in record.items()})
    logger.info("Product excel parsed", rows=len(records))
    return records


def group_rows_by_sku(rows: List[Dict[str, str]]) -> List[ProductDraft]:
    """
    同一 SKU 多行合并：
    - name: 第一个非空
    - features: 最长的那条
    - size: 去重后按出现顺序用 " / " 拼接
    空 SKU 的行直接丢弃。输出顺序 = SKU 首次出现的顺序。
    """
    groups: Dict[str, ProductDraft] = {}
    for row in rows:
        sku = str(row.get("sku") or "").strip()
        if not sku:
            continue
        draft = groups.setdefault(sku, ProductDraft(sku=sku))
        draft.row_count += 1

        name = str(row.get("name") or "").strip()
        if name and not draft.name:
            draft.name = name

        features = str(row.get("features") or "").strip()
        if len(features) > len(draft.features):
            draft.features = features

        size = str(row.get("size") or "").strip()
        if size and size not in draft.sizes:
            draft.sizes.append(size)

    for draft in groups.values():
        draft.size = SIZE_SEPARATOR.join(draft.sizes)
    return list(groups.values())
