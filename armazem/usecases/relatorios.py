# armazem/usecases/relatorios.py
"""
Relatórios operacionais:
- itens a vencer (janela de dias)
- UCPs ativas vazias
- painel (contagens gerais)
- rastreio de lote
- ocupação por UCP

Todos devolvem (colunas, linhas, mensagem) para exibição tabular.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Dict, List, Optional

from armazem.config import DB_PATH, DEFAULTS
from armazem.infra.logger import log_database_operation, log_system_event, system_logger
from armazem.infra.migrations import ensure_schema
from armazem.infra.repositories import ParamsRepo, UcpItemRepo, UcpRepo


def _prepare(db_path: str) -> None:
    ensure_schema(db_path)


# ----------------------
# 1) Itens a vencer
# ----------------------

def relatorio_itens_a_vencer(
    janela_dias: Optional[int] = None, detalhar_por_lote: bool = True, db_path: str = DB_PATH
) -> tuple[list[str], list[list], str | None]:
    """
    Itens ativos com validade até hoje + janela_dias (padrão: parâmetro
    ``near_expiry_days``). Inclui itens já vencidos.
    Se detalhar_por_lote=False, agrega por SKU somando as quantidades.
    """
    _prepare(db_path)
    if janela_dias is None:
        janela_dias = ParamsRepo(db_path).get_int("near_expiry_days", DEFAULTS.near_expiry_days)

    limite = date.today() + timedelta(days=int(janela_dias))
    system_logger.info(f"REPORT_VENCIMENTOS: limite {limite.isoformat()}, detalhe={detalhar_por_lote}")

    rows = UcpItemRepo(db_path).near_expiry(limite.isoformat())
    log_database_operation("ucp_items", "SELECT_VENCIMENTOS", len(rows))

    if detalhar_por_lote:
        columns = ["UCP", "SKU", "Produto", "Lote", "Validade", "Quantidade"]
        data_rows = [
            [r["ucp_code"], r["sku"], r.get("name") or "", r.get("lot") or "", r["expiry_date"], r["quantity"]]
            for r in rows
        ]
        msg = None if data_rows else "Nenhum item a vencer encontrado."
        return columns, data_rows, msg

    agg: Dict[str, Dict] = {}
    for r in rows:
        it = agg.setdefault(r["sku"], {"sku": r["sku"], "quantidade": 0, "primeira_validade": r["expiry_date"]})
        it["quantidade"] += int(r["quantity"])
        if r["expiry_date"] < it["primeira_validade"]:
            it["primeira_validade"] = r["expiry_date"]

    out = sorted(agg.values(), key=lambda x: x["primeira_validade"])
    log_system_event("relatorio_itens_a_vencer_success", {"skus": len(out), "itens": len(rows)})
    columns = ["SKU", "Quantidade", "Primeira Validade"]
    data_rows = [[r["sku"], r["quantidade"], r["primeira_validade"]] for r in out]
    msg = None if data_rows else "Nenhum item a vencer encontrado."
    return columns, data_rows, msg


# ----------------------
# 2) UCPs vazias
# ----------------------

def relatorio_ucps_vazias(db_path: str = DB_PATH) -> tuple[list[str], list[list], str | None]:
    """UCPs ativas sem itens ativos (candidatas a desmontagem)."""
    _prepare(db_path)
    ucps = UcpRepo(db_path).find(status="active", empty=True)
    log_database_operation("ucps", "SELECT_VAZIAS", len(ucps))
    columns = ["Código", "Pallet", "Posição", "Criada em", "Criada por"]
    rows = [[u.code, u.pallet_id or "", u.position_id or "", u.created_at, u.created_by] for u in ucps]
    return columns, rows, (None if rows else "Nenhuma UCP vazia.")


# ----------------------
# 3) Painel
# ----------------------

def relatorio_dashboard(db_path: str = DB_PATH) -> tuple[list[str], list[list], str | None]:
    _prepare(db_path)
    stats = UcpRepo(db_path).stats()
    labels = {
        "total_ucps": "UCPs (total)",
        "active_ucps": "UCPs ativas",
        "archived_ucps": "UCPs arquivadas",
        "active_items": "Itens ativos",
        "distinct_products": "Produtos distintos",
        "total_base_units": "Unidades base em estoque",
    }
    rows = [[labels[k], stats[k]] for k in labels]
    return ["Indicador", "Valor"], rows, None


# ----------------------
# 4) Rastreio de lote
# ----------------------

def relatorio_lote(lote: str, db_path: str = DB_PATH) -> tuple[list[str], list[list], str | None]:
    """Onde está (e onde esteve) um lote: itens ativos primeiro."""
    _prepare(db_path)
    rows = UcpItemRepo(db_path).by_lot(lote.strip())
    log_database_operation("ucp_items", "SELECT_LOTE", len(rows), lote=lote)
    columns = ["Item", "UCP", "Status UCP", "SKU", "Validade", "Quantidade", "Ativo"]
    data_rows: List[list] = [
        [
            r["id"],
            r["ucp_code"],
            r["status"],
            r["sku"],
            r.get("expiry_date") or "",
            r["quantity"],
            "sim" if r["is_active"] else "não",
        ]
        for r in rows
    ]
    return columns, data_rows, (None if data_rows else f"Lote {lote} não encontrado.")


# ----------------------
# 5) Ocupação das UCPs
# ----------------------

def relatorio_ocupacao(status: Optional[str] = "active", db_path: str = DB_PATH) -> tuple[list[str], list[list], str | None]:
    """Itens ativos e quantidade total por UCP, mais cheias primeiro."""
    _prepare(db_path)
    rows = UcpRepo(db_path).occupancy(status=status)
    log_database_operation("vw_ucp_ocupacao", "SELECT", len(rows), status=status)
    columns = ["Código", "Status", "Pallet", "Posição", "Itens", "Quantidade"]
    data_rows = [
        [r["code"], r["status"], r["pallet_id"] or "", r["position_id"] or "", r["active_items"], r["total_quantity"]]
        for r in rows
    ]
    return columns, data_rows, (None if data_rows else "Nenhuma UCP encontrada.")
