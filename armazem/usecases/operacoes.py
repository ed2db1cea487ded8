# armazem/usecases/operacoes.py
"""
Operações expostas aos chamadores (CLI, API, importadores).

Cada função recebe dados simples (dicts, ids, números) e devolve as
dataclasses do domínio ou levanta um erro tipado de
``armazem.domain.errors``. Erros do sqlite3 nunca chegam até aqui: a camada
de infraestrutura os converte em ``StorageError``.

Fluxo comum:
1) Garante o schema (só migra se ``PRAGMA user_version`` estiver atrás).
2) Monta os componentes com seus repositórios.
3) Executa a operação e registra sucesso/falha no log de transações.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, TypeVar

from armazem.config import DB_PATH
from armazem.domain.errors import ArmazemError, ValidationError
from armazem.domain.models import (
    CompositionConstraints,
    CompositionLine,
    CompositionRequest,
    CompositionResult,
    HierarchyNode,
    OptimizationResult,
    PackagingStock,
    PackagingType,
    PickingPlan,
    StockSummary,
    TransferResult,
    Ucp,
    UcpHistory,
    UcpItem,
)
from armazem.infra.logger import log_transaction
from armazem.infra.migrations import ensure_schema
from armazem.infra.repositories import (
    HistoryRepo,
    PackagingRepo,
    PalletRepo,
    ParamsRepo,
    PositionRepo,
    ProductRepo,
    TransferRepo,
    UcpItemRepo,
    UcpRepo,
)
from armazem.usecases.composition import CompositionOptimizer, CompositionValidator
from armazem.usecases.packaging_hierarchy import PackagingHierarchy
from armazem.usecases.picking_planner import PickingPlanner
from armazem.usecases.stock_consolidator import StockConsolidator
from armazem.usecases.ucp_lifecycle import UcpLifecycle
from armazem.usecases.ucp_transfer import UcpTransferCoordinator

T = TypeVar("T")


@dataclass
class Componentes:
    hierarchy: PackagingHierarchy
    consolidator: StockConsolidator
    planner: PickingPlanner
    validator: CompositionValidator
    optimizer: CompositionOptimizer
    lifecycle: UcpLifecycle
    transfers: UcpTransferCoordinator


def montar_componentes(db_path: str = DB_PATH) -> Componentes:
    """Garante o schema (sem DDL quando já em dia) e monta os componentes."""
    ensure_schema(db_path)

    params = ParamsRepo(db_path)
    products = ProductRepo(db_path)
    pallets = PalletRepo(db_path)
    positions = PositionRepo(db_path)
    packagings = PackagingRepo(db_path)
    ucps = UcpRepo(db_path)
    items = UcpItemRepo(db_path)
    history = HistoryRepo(db_path)

    hierarchy = PackagingHierarchy(products, packagings)
    consolidator = StockConsolidator(products, items, ucps, hierarchy)
    validator = CompositionValidator(products, packagings, pallets, params)
    return Componentes(
        hierarchy=hierarchy,
        consolidator=consolidator,
        planner=PickingPlanner(hierarchy, consolidator),
        validator=validator,
        optimizer=CompositionOptimizer(validator),
        lifecycle=UcpLifecycle(ucps, items, history, pallets, positions, products, packagings, params),
        transfers=UcpTransferCoordinator(ucps, items, history, TransferRepo(db_path)),
    )


def _run(operation: str, data: Dict[str, Any], fn: Callable[[], T]) -> T:
    try:
        result = fn()
    except ArmazemError as e:
        log_transaction(operation, data, error=f"{e.code}: {e.message}")
        raise
    log_transaction(operation, data, result=getattr(result, "id", None) or type(result).__name__)
    return result


def _opt_int(value: Any, field_name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError(f"{field_name} deve ser inteiro", details={field_name: value})
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} deve ser inteiro", details={field_name: value})


def _req_int(value: Any, field_name: str) -> int:
    v = _opt_int(value, field_name)
    if v is None:
        raise ValidationError(f"{field_name} é obrigatório")
    return v


def _opt_float(value: Any, field_name: str) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} deve ser numérico", details={field_name: value})


def _opt_positive_float(value: Any, field_name: str) -> Optional[float]:
    v = _opt_float(value, field_name)
    if v is not None and v <= 0:
        raise ValidationError(f"{field_name} deve ser maior que zero", details={field_name: value})
    return v


def composition_request_from_dict(data: Dict[str, Any]) -> CompositionRequest:
    """Converte ``{"pallet_id", "lines": [...], "max_weight"...}`` em CompositionRequest."""
    lines = data.get("lines") or []
    if not isinstance(lines, (list, tuple)):
        raise ValidationError("lines deve ser uma lista")
    return CompositionRequest(
        lines=tuple(
            CompositionLine(
                product_id=_req_int(ln.get("product_id"), "product_id"),
                quantity=_req_int(ln.get("quantity"), "quantity"),
                packaging_type_id=_opt_int(ln.get("packaging_type_id"), "packaging_type_id"),
            )
            for ln in lines
        ),
        pallet_id=_req_int(data.get("pallet_id"), "pallet_id"),
        constraints=CompositionConstraints(
            max_weight=_opt_positive_float(data.get("max_weight"), "max_weight"),
            max_volume=_opt_positive_float(data.get("max_volume"), "max_volume"),
            max_height=_opt_positive_float(data.get("max_height"), "max_height"),
        ),
    )


# ----------------------
# UCPs
# ----------------------

def create_ucp(data: Dict[str, Any], db_path: str = DB_PATH) -> Ucp:
    c = montar_componentes(db_path)
    payload = dict(data)
    payload["pallet_id"] = _opt_int(data.get("pallet_id"), "pallet_id")
    payload["position_id"] = _opt_int(data.get("position_id"), "position_id")
    return _run("create_ucp", data, lambda: c.lifecycle.create(payload))


def move_ucp(ucp_id: int, position_id: int, performed_by: str, reason: Optional[str] = None,
             db_path: str = DB_PATH) -> Ucp:
    c = montar_componentes(db_path)
    data = {"ucp_id": ucp_id, "position_id": position_id, "performed_by": performed_by, "reason": reason}
    return _run("move_ucp", data, lambda: c.lifecycle.move(
        _req_int(ucp_id, "ucp_id"), _req_int(position_id, "position_id"), performed_by, reason))


def dismantle_ucp(ucp_id: int, performed_by: str, reason: Optional[str] = None, db_path: str = DB_PATH) -> Ucp:
    c = montar_componentes(db_path)
    data = {"ucp_id": ucp_id, "performed_by": performed_by, "reason": reason}
    return _run("dismantle_ucp", data, lambda: c.lifecycle.dismantle(_req_int(ucp_id, "ucp_id"), performed_by, reason))


def reactivate_ucp(ucp_id: int, performed_by: str, pallet_id: Optional[int] = None,
                   position_id: Optional[int] = None, db_path: str = DB_PATH) -> Ucp:
    c = montar_componentes(db_path)
    data = {"ucp_id": ucp_id, "performed_by": performed_by, "pallet_id": pallet_id, "position_id": position_id}
    return _run("reactivate_ucp", data, lambda: c.lifecycle.reactivate(
        _req_int(ucp_id, "ucp_id"),
        performed_by,
        pallet_id=_opt_int(pallet_id, "pallet_id"),
        position_id=_opt_int(position_id, "position_id"),
    ))


def add_item(ucp_id: int, data: Dict[str, Any], performed_by: str, db_path: str = DB_PATH) -> UcpItem:
    c = montar_componentes(db_path)
    return _run("add_item", dict(data, ucp_id=ucp_id), lambda: c.lifecycle.add_item(
        _req_int(ucp_id, "ucp_id"), data, performed_by))


def remove_item(item_id: int, performed_by: str, reason: Optional[str] = None, db_path: str = DB_PATH) -> UcpItem:
    c = montar_componentes(db_path)
    data = {"item_id": item_id, "performed_by": performed_by, "reason": reason}
    return _run("remove_item", data, lambda: c.lifecycle.remove_item(_req_int(item_id, "item_id"), performed_by, reason))


def transfer_item(source_item_id: int, target_ucp_id: int, quantity: int, performed_by: str,
                  reason: Optional[str] = None, db_path: str = DB_PATH) -> TransferResult:
    c = montar_componentes(db_path)
    data = {
        "source_item_id": source_item_id,
        "target_ucp_id": target_ucp_id,
        "quantity": quantity,
        "performed_by": performed_by,
        "reason": reason,
    }
    return _run("transfer_item", data, lambda: c.transfers.transfer(
        _req_int(source_item_id, "source_item_id"),
        _req_int(target_ucp_id, "target_ucp_id"),
        _req_int(quantity, "quantity"),
        performed_by,
        reason,
    ))


def ucp_history(ucp_id: int, since: Optional[str] = None, until: Optional[str] = None,
                db_path: str = DB_PATH) -> List[UcpHistory]:
    c = montar_componentes(db_path)
    return c.lifecycle.history_of(_req_int(ucp_id, "ucp_id"), since=since, until=until)


# ----------------------
# Embalagens e estoque
# ----------------------

def add_packaging_type(data: Dict[str, Any], db_path: str = DB_PATH) -> PackagingType:
    c = montar_componentes(db_path)
    return _run("add_packaging_type", data, lambda: c.hierarchy.add_packaging_type(data))


def remove_packaging_type(packaging_id: int, db_path: str = DB_PATH) -> PackagingType:
    c = montar_componentes(db_path)
    return _run("remove_packaging_type", {"id": packaging_id},
                lambda: c.hierarchy.remove_packaging_type(_req_int(packaging_id, "packaging_id")))


def packaging_tree(product_id: int, db_path: str = DB_PATH) -> List[HierarchyNode]:
    c = montar_componentes(db_path)
    return c.hierarchy.build_hierarchy(_req_int(product_id, "product_id"))


def consolidate_stock(product_id: int, db_path: str = DB_PATH) -> StockSummary:
    c = montar_componentes(db_path)
    return c.consolidator.consolidate(_req_int(product_id, "product_id"))


def stock_by_packaging(product_id: int, db_path: str = DB_PATH) -> List[PackagingStock]:
    c = montar_componentes(db_path)
    return c.consolidator.stock_by_packaging(_req_int(product_id, "product_id"))


def resolve_picking_plan(product_id: int, requested_base_units: int, db_path: str = DB_PATH) -> PickingPlan:
    c = montar_componentes(db_path)
    return c.planner.get_optimized_picking_plan(_req_int(product_id, "product_id"), requested_base_units)


# ----------------------
# Composição
# ----------------------

def validate_composition(data: Dict[str, Any], db_path: str = DB_PATH) -> CompositionResult:
    c = montar_componentes(db_path)
    return c.validator.validate(composition_request_from_dict(data))


def optimize_composition(data: Dict[str, Any], db_path: str = DB_PATH) -> OptimizationResult:
    c = montar_componentes(db_path)
    return c.optimizer.optimize(composition_request_from_dict(data))
