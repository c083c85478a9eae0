from __future__ import annotations

from datetime import date
from pathlib import Path

from openpyxl import load_workbook

from petdegree.lineage_registrar import assign_registration_codes
from petdegree.models import AnimalRecord
from petdegree.registrations_xlsx import upsert_registration_rows


def _read_rows(path: Path, sheet: str) -> list[dict[str, object]]:
    wb = load_workbook(path)
    ws = wb[sheet]
    headers = [c.value for c in ws[1]]
    out = []
    for r in range(2, ws.max_row + 1):
        out.append({headers[i]: ws.cell(row=r, column=i + 1).value for i in range(len(headers))})
    return out


def _records() -> list[AnimalRecord]:
    return [
        AnimalRecord(id="R", name="Boonping"),
        AnimalRecord(id="a", name="Alpha", father_id="R", birth_date=date(2020, 1, 1)),
        AnimalRecord(id="b", name="Beta", father_id="R", birth_date=date(2021, 1, 1)),
    ]


def test_creates_workbook_with_ordered_rows(tmp_path: Path) -> None:
    xlsx = tmp_path / "registrations.xlsx"
    records = _records()

    written = upsert_registration_rows(
        xlsx_path=xlsx,
        sheet_name="Registrations",
        assignments=assign_registration_codes("R", records, "BOONPING"),
        records=records,
    )

    assert written == 3
    wb = load_workbook(xlsx)
    assert wb.sheetnames == ["Registrations"]

    rows = _read_rows(xlsx, "Registrations")
    assert [r["AnimalId"] for r in rows] == ["R", "a", "b"]
    assert rows[1]["Code"] == "TRD-BOONPING-01-001"
    assert rows[1]["BirthDate"] == "2020-01-01"
    assert rows[2]["Sequence"] == 2


def test_upsert_overwrites_instead_of_appending(tmp_path: Path) -> None:
    xlsx = tmp_path / "registrations.xlsx"
    records = _records()

    for lineage in ("OLD", "NEW"):
        upsert_registration_rows(
            xlsx_path=xlsx,
            sheet_name="Registrations",
            assignments=assign_registration_codes("R", records, lineage),
            records=records,
        )

    rows = _read_rows(xlsx, "Registrations")
    assert len(rows) == 3
    assert rows[0]["Code"] == "TRD-NEW-00-001"


def test_upsert_collapses_duplicate_rows(tmp_path: Path) -> None:
    xlsx = tmp_path / "registrations.xlsx"
    records = _records()
    assignments = assign_registration_codes("R", records, "L")

    upsert_registration_rows(xlsx_path=xlsx, sheet_name="S", assignments=assignments, records=records)

    # Simulate a hand-edited duplicate row for "a"
    wb = load_workbook(xlsx)
    ws = wb["S"]
    ws.append(["a", "Alpha copy", "", 9, 9, "STALE"])
    wb.save(xlsx)

    upsert_registration_rows(xlsx_path=xlsx, sheet_name="S", assignments=assignments, records=records)

    rows = _read_rows(xlsx, "S")
    assert [r["AnimalId"] for r in rows] == ["R", "a", "b"]
    assert rows[1]["Code"] == "TRD-L-01-001"
