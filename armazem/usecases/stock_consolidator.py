# armazem/usecases/stock_consolidator.py
"""
Caso de uso: consolidação de estoque por produto.

Soma os itens ativos de todas as UCPs e projeta o total em cada nível de
embalagem. Cada linha da projeção é um "e se" independente: não há
reserva, a soma das linhas não representa estoque físico.
"""

from __future__ import annotations

from typing import List

from armazem.domain.errors import NotFoundError
from armazem.domain.models import PackagingStock, StockSummary
from armazem.infra.repositories import ProductRepo, UcpItemRepo, UcpRepo
from armazem.usecases.packaging_hierarchy import PackagingHierarchy


class StockConsolidator:
    def __init__(self, products: ProductRepo, items: UcpItemRepo, ucps: UcpRepo, hierarchy: PackagingHierarchy):
        self.products = products
        self.items = items
        self.ucps = ucps
        self.hierarchy = hierarchy

    def consolidate(self, product_id: int) -> StockSummary:
        if self.products.get(product_id) is None:
            raise NotFoundError("produto", product_id)
        agg = self.items.consolidate(product_id)
        return StockSummary(
            product_id=product_id,
            total_base_units=agg["total_base_units"],
            locations_count=agg["locations_count"],
            items_count=agg["items_count"],
        )

    def stock_by_packaging(self, product_id: int) -> List[PackagingStock]:
        total = self.consolidate(product_id).total_base_units
        out: List[PackagingStock] = []
        for pkg in self.hierarchy.list_active(product_id):
            q = pkg.base_unit_quantity
            out.append(PackagingStock(
                packaging_type=pkg,
                available_packages=total // q,
                remaining_base_units=total % q,
            ))
        return out

    def has_active_items(self, ucp_id: int) -> bool:
        return self.ucps.has_active_items(ucp_id)
