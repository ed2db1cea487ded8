# armazem/adapters/xlsx_loader.py
"""
Loaders de planilhas XLSX de ITENS (carga de UCPs) e PRODUTOS.

Essas funções:
- leem planilhas XLSX usando pandas;
- normalizam cabeçalhos (acentos, variações, sinônimos);
- retornam listas de dicionários com as chaves esperadas pelas operações.

Observações:
- A quantidade é preservada como texto (`quantity_raw`); quem importa decide
  se é unidade base ou embalagem (ver ``parsers.parse_quantidade_raw``).
- Datas são normalizadas para ISO (YYYY-MM-DD) quando possível.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
import pandas as pd
import re
from datetime import datetime

from armazem.adapters.parsers import parse_dimensoes, parse_flags


# ---------------------------
# utilitários de normalização
# ---------------------------

def _slug(s: str) -> str:
    """Normaliza cabeçalhos: minúsculas, sem acentos, sem não-alfanumérico."""
    if s is None:
        return ""
    s = str(s).strip().lower()
    acentos = dict(zip("áàâãäéèêëíìîïóòôõöúùûüç", "aaaaaeeeeiiiiooooouuuuc"))
    s = "".join(acentos.get(ch, ch) for ch in s)
    s = re.sub(r"[^a-z0-9]+", " ", s)
    return re.sub(r"\s+", " ", s).strip()


def _safe_get(row, key):
    """Lê um valor da linha tratando NA como None e strings vazias como None."""
    val = row.get(key)
    if val is None or pd.isna(val):
        return None
    s = str(val).strip()
    return s or None


def _to_date_iso(val: Any) -> Optional[str]:
    """Converte valor para data ISO (YYYY-MM-DD) se possível."""
    if val is None:
        return None
    if isinstance(val, pd.Timestamp):
        return val.date().isoformat()
    s = str(val).strip()
    if not s:
        return None
    for fmt in ("%Y-%m-%d", "%Y-%m-%d %H:%M:%S", "%d/%m/%Y", "%d-%m-%Y", "%d/%m/%y"):
        try:
            return datetime.strptime(s, fmt).date().isoformat()
        except ValueError:
            continue
    d = pd.to_datetime(s, dayfirst=True, errors="coerce")
    if pd.isna(d):
        return None
    return d.date().isoformat()


def _to_float(val: Any) -> Optional[float]:
    if val is None:
        return None
    try:
        return float(str(val).replace(",", "."))
    except ValueError:
        return None


ALIASES = {
    # UCP
    "ucp": "ucp_code",
    "codigo ucp": "ucp_code",
    "cod ucp": "ucp_code",
    "unidade de carga": "ucp_code",

    # produto
    "sku": "sku",
    "codigo": "sku",
    "cod": "sku",
    "codigo produto": "sku",
    "produto": "name",
    "nome": "name",
    "descricao": "name",
    "categoria": "category",

    # quantidade
    "quantidade": "quantity_raw",
    "qtde": "quantity_raw",
    "qtd": "quantity_raw",

    "lote": "lot",
    "validade": "expiry_date",
    "data validade": "expiry_date",
    "data de validade": "expiry_date",
    "codigo interno": "internal_code",
    "cod interno": "internal_code",

    # cadastro físico
    "peso": "unit_weight",
    "peso unitario": "unit_weight",
    "peso kg": "unit_weight",
    "dimensoes": "dimensions_raw",
    "dimensoes cm": "dimensions_raw",
    "medidas": "dimensions_raw",
    "manuseio": "handling_flags",
    "flags": "handling_flags",
    "restricoes": "handling_flags",
}


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Renomeia colunas com base em sinônimos/variações."""
    new_cols = {}
    for col in df.columns:
        key = _slug(col)
        new_cols[col] = ALIASES.get(key, key.replace(" ", "_"))
    return df.rename(columns=new_cols)


def _read(path: str) -> pd.DataFrame:
    df = pd.read_excel(path, dtype="string")
    return _normalize_columns(df)


# ---------------------------
# loaders públicos (XLSX)
# ---------------------------

def load_itens_from_xlsx(path: str) -> List[Dict[str, Any]]:
    """Lê XLSX de itens a carregar em UCPs.

    Campos de saída:
      - ucp_code, sku: str | None
      - quantity_raw: str | None (ex.: "120" ou "3 CX")
      - lot, internal_code: str | None
      - expiry_date: ISO date | None
    """
    df = _read(path)
    out: List[Dict[str, Any]] = []
    for _, row in df.iterrows():
        rec = {
            "ucp_code": (_safe_get(row, "ucp_code") or "").upper() or None,
            "sku": _safe_get(row, "sku"),
            "quantity_raw": _safe_get(row, "quantity_raw"),
            "lot": _safe_get(row, "lot"),
            "expiry_date": _to_date_iso(_safe_get(row, "expiry_date")),
            "internal_code": _safe_get(row, "internal_code"),
        }
        if not any(rec.values()):
            continue
        out.append(rec)
    return out


def load_produtos_from_xlsx(path: str) -> List[Dict[str, Any]]:
    """Lê XLSX de cadastro de produtos (peso, dimensões "CxLxA", flags de manuseio)."""
    df = _read(path)
    out: List[Dict[str, Any]] = []
    for _, row in df.iterrows():
        sku = _safe_get(row, "sku")
        if not sku:
            continue
        dims = parse_dimensoes(_safe_get(row, "dimensions_raw"))
        out.append({
            "sku": sku,
            "name": _safe_get(row, "name"),
            "category": _safe_get(row, "category"),
            "unit_weight": _to_float(_safe_get(row, "unit_weight")) or 0.0,
            "length": dims[0] if dims else None,
            "width": dims[1] if dims else None,
            "height": dims[2] if dims else None,
            "handling_flags": parse_flags(_safe_get(row, "handling_flags")),
        })
    return out
