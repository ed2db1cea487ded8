# armazem/usecases/importar_itens.py
"""
UC: carga de itens em UCPs a partir de planilha (XLSX).

Cada linha informa UCP (código), SKU e quantidade. A quantidade pode vir em
unidades base ("120") ou em uma embalagem do produto ("3 CX"): a embalagem
é procurada por nome ou código de barras e a quantidade base é resolvida
pela hierarquia no momento da inserção.

Linhas são independentes: uma falha não impede as demais e é devolvida no
resultado com o número da linha.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List

from armazem.adapters.parsers import parse_quantidade_raw
from armazem.adapters.xlsx_loader import load_itens_from_xlsx
from armazem.config import DB_PATH
from armazem.domain.errors import ArmazemError, NotFoundError, ValidationError
from armazem.infra.logger import log_file_operation, log_system_event, log_transaction, print_system
from armazem.usecases.operacoes import montar_componentes

BASE_UNIT_LABELS = {"UN", "UND", "UNID", "UNIDADE", "UNIDADES", "PC", "PCS"}


def _row_to_item_data(row: Dict[str, Any], product_id: int, hierarchy) -> Dict[str, Any]:
    num, unidade, _ = parse_quantidade_raw(row.get("quantity_raw"))
    if num is None:
        raise ValidationError("Quantidade ausente ou inválida", details={"quantity_raw": row.get("quantity_raw")})
    if num != int(num):
        raise ValidationError("Quantidade deve ser inteira", details={"quantity_raw": row.get("quantity_raw")})

    data = {
        "product_id": product_id,
        "lot": row.get("lot"),
        "expiry_date": row.get("expiry_date"),
        "internal_code": row.get("internal_code"),
    }
    if unidade is None or unidade in BASE_UNIT_LABELS:
        data["quantity"] = int(num)
        return data

    pkg = hierarchy.packagings.find_by_name(product_id, unidade) or hierarchy.packagings.get_by_barcode(unidade)
    if pkg is None or pkg.product_id != product_id:
        raise NotFoundError("embalagem", unidade)
    data["packaging_type_id"] = pkg.id
    data["packaging_quantity"] = int(num)
    return data


def bulk_add_items(rows: Iterable[Dict[str, Any]], performed_by: str, db_path: str = DB_PATH) -> Dict[str, Any]:
    c = montar_componentes(db_path)
    inserted = 0
    errors: List[Dict[str, Any]] = []
    for idx, row in enumerate(rows, start=1):
        try:
            ucp = c.lifecycle.get_by_code(str(row.get("ucp_code") or ""))
            product = c.hierarchy.products.get_by_sku(str(row.get("sku") or ""))
            if product is None:
                raise NotFoundError("produto", row.get("sku"))
            c.lifecycle.add_item(ucp.id, _row_to_item_data(row, product.id, c.hierarchy), performed_by)
            inserted += 1
        except ArmazemError as e:
            errors.append({"linha": idx, "code": e.code, "message": e.message})
    return {"inseridos": inserted, "erros": errors}


def run_importar_itens(path: str, performed_by: str, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Lê um XLSX de itens e adiciona cada linha à UCP indicada."""
    log_system_event("importar_itens_start", {"file_path": path})
    rows = load_itens_from_xlsx(path)
    log_file_operation("import", path, rows_processed=len(rows))

    result = bulk_add_items(rows, performed_by, db_path=db_path)
    result["arquivo"] = path
    log_transaction(
        "importar_itens",
        {"file": path, "rows_count": len(rows)},
        result={"inseridos": result["inseridos"], "erros": len(result["erros"])},
    )
    print_system(f">> {result['inseridos']} itens inseridos, {len(result['erros'])} erros")
    return result
