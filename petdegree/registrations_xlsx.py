from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from openpyxl import Workbook, load_workbook
from openpyxl.worksheet.worksheet import Worksheet

from .models import AnimalRecord, RegistrationAssignment

HEADERS = ["AnimalId", "Name", "BirthDate", "Generation", "Sequence", "Code"]


def _get_or_create_sheet(wb: Workbook, sheet_name: str) -> Worksheet:
    if sheet_name in wb.sheetnames:
        return wb[sheet_name]
    return wb.create_sheet(title=sheet_name)


def _read_headers(ws: Worksheet) -> list[str]:
    out = ["" if c.value is None else str(c.value) for c in ws[1]]
    while out and out[-1] == "":
        out.pop()
    return out


def _ensure_headers(ws: Worksheet) -> list[str]:
    """
    Write HEADERS on an empty sheet; append any missing ones otherwise.
    """
    existing = _read_headers(ws)
    missing = [h for h in HEADERS if h not in existing]
    headers = existing + missing
    for col_idx, h in enumerate(headers, start=1):
        ws.cell(row=1, column=col_idx, value=h)
    return headers


def _cell_id(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def _rows_by_animal_id(ws: Worksheet, id_col: int) -> Dict[str, list[int]]:
    rows: Dict[str, list[int]] = {}
    for r in range(2, ws.max_row + 1):
        aid = _cell_id(ws.cell(row=r, column=id_col).value)
        if aid is not None:
            rows.setdefault(aid, []).append(r)
    return rows


def upsert_registration_rows(
    *,
    xlsx_path: Path,
    sheet_name: str,
    assignments: Dict[str, RegistrationAssignment],
    records: Iterable[AnimalRecord],
) -> int:
    """
    UPSERT one row per assigned animal, keyed by AnimalId.

    Behavior:
      - If file doesn't exist: create with headers (and drop the default
        empty "Sheet").
      - Existing row for an animal: overwrite it, delete extra duplicates.
      - No row yet: append.
      - Rows are written in generation, sequence order.

    Returns the number of rows written.
    """
    xlsx_path = Path(xlsx_path)
    is_new = not xlsx_path.exists()

    wb = Workbook() if is_new else load_workbook(xlsx_path)
    ws = _get_or_create_sheet(wb, sheet_name)

    if is_new and "Sheet" in wb.sheetnames and sheet_name != "Sheet":
        wb.remove(wb["Sheet"])

    headers = _ensure_headers(ws)
    header_to_col = {h: i + 1 for i, h in enumerate(headers)}

    by_id = {r.id: r for r in records}
    ordered = sorted(assignments.values(), key=lambda a: (a.generation, a.sequence_in_generation))

    # Collapse duplicates first (bottom to top to preserve indices)
    existing = _rows_by_animal_id(ws, header_to_col["AnimalId"])
    extras = sorted((r for rows in existing.values() for r in rows[1:]), reverse=True)
    for r in extras:
        ws.delete_rows(r, 1)
    if extras:
        existing = _rows_by_animal_id(ws, header_to_col["AnimalId"])

    next_row = ws.max_row + 1
    written = 0

    for a in ordered:
        rec = by_id.get(a.animal_id)
        row_data: Dict[str, Any] = {
            "AnimalId": a.animal_id,
            "Name": rec.name if rec else "",
            "BirthDate": rec.birth_date.isoformat() if rec and rec.birth_date else "",
            "Generation": a.generation,
            "Sequence": a.sequence_in_generation,
            "Code": a.code,
        }

        rows = existing.get(a.animal_id)
        if rows:
            target_row = rows[0]
        else:
            target_row = next_row
            next_row += 1

        for h, v in row_data.items():
            ws.cell(row=target_row, column=header_to_col[h], value=v)
        written += 1

    wb.save(xlsx_path)
    return written
