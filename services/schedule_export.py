"""
排班周表导出 Excel：一行一个小时，一列一天
"""
import io
from datetime import date
from typing import Any, Dict, List

import pandas as pd
from openpyxl.styles import Alignment, Font

SHEET_NAME = "Schedule"
TIME_SLOT_HEADER = "Time Slot"
UNASSIGNED_CELL = "-"


def day_header(day: date) -> str:
    """05-01 (Wed)"""
    return f"{day:%m-%d} ({day:%a})"


def hour_label(hour: int) -> str:
    return f"{hour:02d}:00-{(hour + 1) % 24:02d}:00"


def cell_text(cell: Dict[str, Any]) -> str:
    if not cell:
        return UNASSIGNED_CELL
    name = cell.get("anchor_name") or UNASSIGNED_CELL
    delta = cell.get("display_delta")
    return f"{name} ({delta})" if delta else name


def build_week_frame(grid: Dict[str, Any]) -> pd.DataFrame:
    days: List[date] = [date.fromisoformat(d) for d in grid["days"]]
    records = []
    for row in grid["rows"]:
        record = {TIME_SLOT_HEADER: hour_label(row["hour"])}
        for day, cell in zip(days, row["slots"]):
            record[day_header(day)] = cell_text(cell)
        records.append(record)
    columns = [TIME_SLOT_HEADER] + [day_header(d) for d in days]
    return pd.DataFrame(records, columns=columns)


def render_week_workbook(grid: Dict[str, Any]) -> bytes:
    df = build_week_frame(grid)
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=SHEET_NAME, index=False)
        ws = writer.sheets[SHEET_NAME]
        ws.column_dimensions["A"].width = 14
        for col_idx in range(2, len(df.columns) + 1):
            ws.column_dimensions[ws.cell(row=1, column=col_idx).column_letter].width = 20
        for cell in ws[1]:
            cell.font = Font(bold=True)
            cell.alignment = Alignment(horizontal="center")
        for row in ws.iter_rows(min_row=2):
            for cell in row:
                cell.alignment = Alignment(wrap_text=True, vertical="top")
    return buffer.getvalue()


def export_filename(shop_name: str, week_start: date) -> str:
    safe = "".join(ch for ch in (shop_name or "shop") if ch.isalnum() or ch in "-_") or "shop"
    return f"schedule_{safe}_{week_start:%Y%m%d}.xlsx"
