from __future__ import annotations
from typing import List, Dict, Any
from io import BytesIO
from datetime import datetime

from openpyxl import Workbook
from openpyxl.utils import get_column_letter
from openpyxl.styles import Font, Alignment


def rows_to_xlsx_bytes(rows: List[Dict[str, Any]], sheet_name: str = "Students") -> bytes:
    """
    rows: list of dict, keys of the first row become the header
    """
    wb = Workbook()
    ws = wb.active
    # excel sheet titles: max 31 chars, no []:*?/\
    ws.title = "".join(ch for ch in sheet_name if ch not in '[]:*?/\\')[:31] or "Sheet"

    if not rows:
        ws.append(["No data"])
        buf = BytesIO()
        wb.save(buf)
        return buf.getvalue()

    headers = list(rows[0].keys())
    ws.append(headers)

    bold = Font(bold=True)
    for col_idx in range(1, len(headers) + 1):
        cell = ws.cell(row=1, column=col_idx)
        cell.font = bold
        cell.alignment = Alignment(horizontal="center", vertical="center")

    for r in rows:
        ws.append([r.get(h) for h in headers])

    # column width follows the longest value
    for col_idx, h in enumerate(headers, start=1):
        widest = max(
            [len(str(h))]
            + [len(str(c.value)) for c in ws[get_column_letter(col_idx)][1:] if c.value is not None]
        )
        ws.column_dimensions[get_column_letter(col_idx)].width = min(widest + 2, 60)

    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


def make_filename(prefix: str = "roster") -> str:
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"{prefix}_{ts}.xlsx"
