"""Lectura/escritura de productos en CSV y hojas de cálculo (pandas)."""
from __future__ import annotations

from dataclasses import dataclass
import io
import os
from typing import Dict, Iterable, List, Optional

import pandas as pd

from ..models.product import MAX_QUANTITY

EXPORT_COLUMNS = ["name", "category", "quantity", "storageArea", "imageUrl"]
REQUIRED = ("name", "category", "quantity", "storageArea")
IMPORT_EXTENSIONS = (".csv", ".xlsx", ".xls")

MEDIA_TYPES = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}

# encabezado normalizado -> campo
_HEADER_MAP = {
    "name": "name",
    "productname": "name",
    "category": "category",
    "quantity": "quantity",
    "qty": "quantity",
    "storagearea": "storageArea",
    "storage": "storageArea",
    "imageurl": "imageUrl",
    "image": "imageUrl",
}


class UnsupportedFileError(ValueError):
    pass


@dataclass
class ImportRow:
    row: int
    data: Optional[Dict[str, object]] = None
    error: Optional[str] = None


def _normalize_header(h) -> str:
    return "".join(ch for ch in str(h).lower() if ch.isalnum())


def read_frame(filename: str, content: bytes) -> pd.DataFrame:
    ext = os.path.splitext(filename or "")[1].lower()
    if ext not in IMPORT_EXTENSIONS:
        raise UnsupportedFileError("Unsupported file format. Please upload a CSV or Excel file")
    buf = io.BytesIO(content)
    if ext == ".csv":
        df = pd.read_csv(buf, dtype=str, keep_default_na=False)
    else:
        df = pd.read_excel(buf, dtype=str, keep_default_na=False)
    df = df.rename(columns=lambda c: _HEADER_MAP.get(_normalize_header(c), str(c)))
    # dos encabezados para el mismo campo: vale el primero
    return df.loc[:, ~df.columns.duplicated()]


def _parse_quantity(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        pass
    # "4.0" o "1e3" desde hojas de cálculo
    value = float(raw)
    if not value.is_integer():
        raise ValueError(raw)
    return int(value)


def parse_product_rows(filename: str, content: bytes) -> List[ImportRow]:
    """
    Convierte el archivo en filas validadas. La fila 1 es el encabezado, por
    eso la primera fila de datos se reporta como "Row 2".
    """
    df = read_frame(filename, content)
    rows: List[ImportRow] = []
    for index, raw in enumerate(df.to_dict(orient="records")):
        n = index + 2
        rec = {k: ("" if pd.isna(v) else str(v).strip()) for k, v in raw.items() if k in EXPORT_COLUMNS}
        if not any(rec.values()):
            continue  # fila vacía
        missing = [f for f in REQUIRED if not rec.get(f)]
        if missing:
            rows.append(ImportRow(n, error=f"Row {n}: Missing required field(s): {', '.join(missing)}"))
            continue
        try:
            qty = _parse_quantity(rec["quantity"])
        except ValueError:
            rows.append(ImportRow(n, error=f"Row {n}: Quantity must be a whole number"))
            continue
        if abs(qty) > MAX_QUANTITY:
            rows.append(ImportRow(n, error=f"Row {n}: Quantity is out of range"))
            continue
        rows.append(
            ImportRow(
                n,
                data={
                    "name": rec["name"],
                    "category": rec["category"],
                    "quantity": qty,
                    "storageArea": rec["storageArea"],
                    "imageUrl": rec.get("imageUrl") or None,
                },
            )
        )
    return rows


def write_products(records: Iterable[dict], fmt: str) -> bytes:
    df = pd.DataFrame(list(records), columns=EXPORT_COLUMNS)
    if fmt == "csv":
        return df.to_csv(index=False).encode("utf-8")
    if fmt == "xlsx":
        output = io.BytesIO()
        with pd.ExcelWriter(output, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name="Products")
        return output.getvalue()
    raise UnsupportedFileError("Invalid export format. Use csv or xlsx")
