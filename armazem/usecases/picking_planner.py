# armazem/usecases/picking_planner.py
"""
Caso de uso: plano de separação otimizado.

Decompõe a quantidade pedida nas maiores embalagens ativas do produto,
terminando na unidade base. O plano não verifica estoque por embalagem;
``can_fulfill`` compara o pedido com o total consolidado.
"""

from __future__ import annotations

from armazem.domain.errors import ValidationError
from armazem.domain.models import PickingPlan
from armazem.domain.picking import decompose, picking_order
from armazem.usecases.packaging_hierarchy import PackagingHierarchy
from armazem.usecases.stock_consolidator import StockConsolidator


class PickingPlanner:
    def __init__(self, hierarchy: PackagingHierarchy, consolidator: StockConsolidator):
        self.hierarchy = hierarchy
        self.consolidator = consolidator

    def get_optimized_picking_plan(self, product_id: int, requested_base_units: int) -> PickingPlan:
        try:
            requested = int(requested_base_units)
        except (TypeError, ValueError):
            raise ValidationError("Quantidade solicitada inválida", details={"requested": requested_base_units})
        if isinstance(requested_base_units, float) and not requested_base_units.is_integer():
            raise ValidationError("Quantidade solicitada deve ser inteira", details={"requested": requested_base_units})
        if requested <= 0:
            raise ValidationError(
                "Quantidade solicitada deve ser inteiro positivo",
                details={"requested": requested_base_units},
            )

        summary = self.consolidator.consolidate(product_id)
        self.hierarchy.get_base_unit(product_id)
        ordered = picking_order(self.hierarchy.list_active(product_id))
        plan, remaining = decompose(requested, ordered)

        return PickingPlan(
            product_id=product_id,
            requested_base_units=requested,
            plan=plan,
            remaining=remaining,
            total_planned=sum(line.base_units for line in plan),
            can_fulfill=requested <= summary.total_base_units,
        )
