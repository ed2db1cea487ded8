"""
Utilidades de parsing para quantidades e dimensões.

Quantidades aparecem nas planilhas como "<valor> <embalagem> - <descrição>"
(ex.: "3 CX - Caixa com 12"); dimensões como "LxWxH" em centímetros
(ex.: "120x100x15" ou "40 x 25,5 x 10").
"""

from __future__ import annotations

import re
from typing import Optional, Tuple

_NUM_RE = re.compile(r"[-+]?\d+(?:[.,]\d+)?")
_DIM_RE = re.compile(
    r"^\s*(\d+(?:[.,]\d+)?)\s*[xX×*]\s*(\d+(?:[.,]\d+)?)\s*[xX×*]\s*(\d+(?:[.,]\d+)?)\s*(?:cm)?\s*$"
)


def _to_float(s: str) -> float:
    return float(s.replace(",", "."))


def parse_quantidade_raw(txt: str) -> Tuple[Optional[float], Optional[str], Optional[str]]:
    """Interpreta uma string de quantidade com embalagem.

    Exemplos:
        "3 CX - Caixa"   → (3.0, "CX", "Caixa")
        "120"            → (120.0, None, None)
        "2,5 kg"         → (2.5, "KG", None)

    Returns:
        (numero, embalagem, descricao); o que não puder ser determinado vem None.
    """
    if txt is None:
        return None, None, None
    s = str(txt).strip()
    if not s:
        return None, None, None
    head, desc = (s.split(" - ", 1) + [""])[:2]
    head = head.strip()
    desc = desc.strip() or None
    parts = head.split()
    num = None
    unidade = None
    if parts:
        m = _NUM_RE.fullmatch(parts[0]) or _NUM_RE.match(parts[0])
        if m:
            num = _to_float(m.group(0))
    if len(parts) >= 2:
        unidade = parts[1].strip().upper() or None
    return num, unidade, desc


def parse_dimensoes(txt: str) -> Optional[Tuple[float, float, float]]:
    """Interpreta "CxLxA" em centímetros. Retorna None se vazio ou inválido."""
    if txt is None:
        return None
    m = _DIM_RE.match(str(txt))
    if not m:
        return None
    dims = tuple(_to_float(g) for g in m.groups())
    if any(d <= 0 for d in dims):
        return None
    return dims


def parse_flags(txt: Optional[str]) -> frozenset:
    """"refrigerated, food" → frozenset({"refrigerated", "food"})."""
    if not txt:
        return frozenset()
    return frozenset(p.strip().lower() for p in re.split(r"[,;|]", str(txt)) if p.strip())
