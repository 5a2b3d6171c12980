"""Tests du module I/O (extraction CSV / Excel)."""

import io
from pathlib import Path

import pandas as pd
import pytest

from alchimiste.io_excel import ExtractError, extract_table, read_table_file, save_xlsx


def _xlsx_bytes(df: pd.DataFrame) -> bytes:
    buf = io.BytesIO()
    df.to_excel(buf, index=False, engine="openpyxl")
    return buf.getvalue()


def test_extract_csv_basic() -> None:
    data = b"ClientID,ClientName\nC001,Acme\nC002,Globex\n"
    table = extract_table(data, "csv")
    assert table.headers == ["ClientID", "ClientName"]
    assert table.rows == [
        {"ClientID": "C001", "ClientName": "Acme"},
        {"ClientID": "C002", "ClientName": "Globex"},
    ]


def test_extract_csv_trims_and_skips_blank_lines() -> None:
    data = b"  Client ID  ; Name \n\n C001 ; Acme \n;\n"
    table = extract_table(data, ".CSV")
    assert table.headers == ["Client ID", "Name"]
    assert table.rows == [{"Client ID": "C001", "Name": "Acme"}]


def test_extract_csv_quoted_lists() -> None:
    data = b'TaskID,RequiredSkills\nT001,"python, sql"\n'
    table = extract_table(data, "csv")
    assert table.rows[0]["RequiredSkills"] == "python, sql"


def test_extract_csv_blank_header_named() -> None:
    data = b"ClientID,,GroupTag\nC001,x,A\n"
    table = extract_table(data, "csv")
    assert table.headers == ["ClientID", "column_2", "GroupTag"]
    assert table.rows[0]["column_2"] == "x"


def test_extract_csv_latin1() -> None:
    data = "WorkerName\nÉlodie\n".encode("latin-1")
    table = extract_table(data, "csv")
    assert table.rows[0]["WorkerName"] == "Élodie"


def test_extract_csv_utf8_bom() -> None:
    data = "\ufeffTaskID\nT001\n".encode("utf-8")
    table = extract_table(data, "csv")
    assert table.headers == ["TaskID"]


def test_extract_csv_malformed_lines_skipped() -> None:
    data = b"a,b\n1,2\n3,4,5\n"
    table = extract_table(data, "csv")
    assert table.rows == [{"a": "1", "b": "2"}]


def test_extract_xlsx_cells_as_strings() -> None:
    df = pd.DataFrame({"WorkerID": ["W001"], "MaxLoadPerPhase": [3], "Skills": ["python"]})
    table = extract_table(_xlsx_bytes(df), "xlsx", name="workers.xlsx")
    assert table.headers == ["WorkerID", "MaxLoadPerPhase", "Skills"]
    assert table.rows == [{"WorkerID": "W001", "MaxLoadPerPhase": "3", "Skills": "python"}]


def test_extract_xlsx_first_sheet_only(tmp_path: Path) -> None:
    path = tmp_path / "multi.xlsx"
    with pd.ExcelWriter(path, engine="openpyxl") as w:
        pd.DataFrame({"TaskID": ["T001"]}).to_excel(w, sheet_name="Tasks", index=False)
        pd.DataFrame({"Other": ["x"]}).to_excel(w, sheet_name="Autre", index=False)
    table = read_table_file(path)
    assert table.headers == ["TaskID"]


def test_extract_empty_buffer() -> None:
    with pytest.raises(ExtractError, match="vide"):
        extract_table(b"", "csv", name="clients.csv")


def test_extract_unsupported_extension() -> None:
    with pytest.raises(ExtractError, match="non supporté"):
        extract_table(b"a,b\n1,2\n", "txt")


def test_extract_too_large() -> None:
    with pytest.raises(ExtractError, match="trop volumineux"):
        extract_table(b"a,b\n1,2\n", "csv", max_size=4)


def test_extract_sheet_without_rows() -> None:
    data = _xlsx_bytes(pd.DataFrame())
    with pytest.raises(ExtractError, match="Aucune"):
        extract_table(data, "xlsx")


def test_extract_corrupt_workbook() -> None:
    with pytest.raises(ExtractError, match="Impossible de lire"):
        extract_table(b"ceci n'est pas un classeur", "xlsx", name="faux.xlsx")


def test_save_xlsx(tmp_path: Path) -> None:
    path = tmp_path / "out.xlsx"
    save_xlsx(path, {"Sheet1": pd.DataFrame({"a": [1]}), "Sheet2": pd.DataFrame({"b": [2]})})
    xl = pd.ExcelFile(path, engine="openpyxl")
    assert "Sheet1" in xl.sheet_names
    assert "Sheet2" in xl.sheet_names
    xl.close()
