"""
Decomposição gulosa de uma quantidade em unidades base nas maiores
embalagens disponíveis.

É uma conversão de unidades, não uma alocação contra lotes físicos: amarrar
o plano a itens/lotes específicos é uma etapa posterior de atendimento.
"""

from __future__ import annotations

from typing import Iterable, List, Tuple

from armazem.domain.models import PackagingType, PickingLine


def picking_order(packagings: Iterable[PackagingType]) -> List[PackagingType]:
    """Embalagens não-raiz por quantidade decrescente, com a unidade base por último."""
    base = [p for p in packagings if p.is_base_unit]
    others = [p for p in packagings if not p.is_base_unit]
    others.sort(key=lambda p: (-p.base_unit_quantity, p.id))
    return others + base[:1]


def decompose(requested_base_units: int, ordered: List[PackagingType]) -> Tuple[List[PickingLine], int]:
    """Aplica o algoritmo guloso e devolve (linhas do plano, restante).

    Com a unidade base (quantidade 1) no fim da lista o restante é sempre zero.
    """
    plan: List[PickingLine] = []
    remaining = int(requested_base_units)
    for pkg in ordered:
        if remaining <= 0:
            break
        count = remaining // pkg.base_unit_quantity
        if count > 0:
            base_units = count * pkg.base_unit_quantity
            plan.append(PickingLine(packaging_type=pkg, count=count, base_units=base_units))
            remaining -= base_units
    return plan, remaining
