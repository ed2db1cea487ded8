# armazem/usecases/cadastros.py
"""
UC: cadastros de apoio (produtos, pallets, posições).

O núcleo trata esses registros como imutáveis; aqui eles apenas são
inseridos (manualmente ou via planilha de produtos).
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from armazem.adapters.xlsx_loader import load_produtos_from_xlsx
from armazem.config import DB_PATH
from armazem.domain.errors import ConflictError, ValidationError
from armazem.domain.models import Pallet, Position, Product
from armazem.infra.logger import log_database_operation, log_file_operation, log_transaction
from armazem.infra.migrations import ensure_schema
from armazem.infra.repositories import PalletRepo, PositionRepo, ProductRepo


def _positive(value: Any, field_name: str) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} deve ser numérico", details={field_name: value})
    if v <= 0:
        raise ValidationError(f"{field_name} deve ser maior que zero", details={field_name: value})
    return v


def register_product(data: Dict[str, Any], db_path: str = DB_PATH) -> Product:
    ensure_schema(db_path)
    repo = ProductRepo(db_path)
    sku = str(data.get("sku") or "").strip()
    if not sku:
        raise ValidationError("sku é obrigatório")
    if repo.get_by_sku(sku) is not None:
        raise ConflictError(f"SKU já cadastrado: {sku}", code="SKU_TAKEN")
    row = dict(data, sku=sku)
    weight = data.get("unit_weight")
    if weight is not None:
        try:
            row["unit_weight"] = float(weight)
        except (TypeError, ValueError):
            raise ValidationError("unit_weight deve ser numérico", details={"unit_weight": weight})
        if row["unit_weight"] < 0:
            raise ValidationError("unit_weight não pode ser negativo")
    new_id = repo.insert(row)
    log_database_operation("products", "INSERT", 1, sku=sku)
    return repo.get(new_id)


def register_pallet(data: Dict[str, Any], db_path: str = DB_PATH) -> Pallet:
    ensure_schema(db_path)
    repo = PalletRepo(db_path)
    code = str(data.get("code") or "").strip().upper()
    if not code:
        raise ValidationError("code é obrigatório")
    if repo.get_by_code(code) is not None:
        raise ConflictError(f"Pallet já cadastrado: {code}", code="PALLET_CODE_TAKEN")
    row = {
        "code": code,
        "type": data.get("type"),
        "width": _positive(data.get("width"), "width"),
        "length": _positive(data.get("length"), "length"),
        "max_height": _positive(data.get("max_height"), "max_height"),
        "max_weight": _positive(data.get("max_weight"), "max_weight"),
        "status": data.get("status") or "disponivel",
    }
    new_id = repo.insert(row)
    log_database_operation("pallets", "INSERT", 1, code=code)
    return repo.get(new_id)


def register_position(code: str, db_path: str = DB_PATH) -> Position:
    ensure_schema(db_path)
    repo = PositionRepo(db_path)
    code = (code or "").strip().upper()
    if not code:
        raise ValidationError("code é obrigatório")
    if repo.get_by_code(code) is not None:
        raise ConflictError(f"Posição já cadastrada: {code}", code="POSITION_CODE_TAKEN")
    new_id = repo.insert(code)
    log_database_operation("positions", "INSERT", 1, code=code)
    return repo.get(new_id)


def run_importar_produtos(path: str, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Lê um XLSX de produtos e cadastra os SKUs ainda inexistentes."""
    ensure_schema(db_path)
    rows: List[Dict[str, Any]] = load_produtos_from_xlsx(path)
    log_file_operation("import", path, rows_processed=len(rows))

    repo = ProductRepo(db_path)
    inseridos = 0
    ignorados: List[Optional[str]] = []
    for row in rows:
        if repo.get_by_sku(row["sku"]) is not None:
            ignorados.append(row["sku"])
            continue
        repo.insert(row)
        inseridos += 1

    result = {"arquivo": path, "inseridos": inseridos, "ignorados": ignorados}
    log_transaction("importar_produtos", {"file": path, "rows_count": len(rows)}, result=result)
    return result
