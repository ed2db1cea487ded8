"""
Regras puras da hierarquia de embalagens.

A unidade base (``base_unit_quantity == 1``) é a raiz da árvore de cada
produto. Cada embalagem filha é composta por um número inteiro de
embalagens do pai, portanto sua quantidade em unidades base é um múltiplo
estrito da quantidade do pai (e, por transitividade, de todos os
ancestrais). É essa divisibilidade ao longo das arestas que garante a
decomposição gulosa exata usada no plano de separação.

As funções deste módulo não tocam no banco: recebem registros já lidos e
devolvem valores ou levantam ``ValidationError``.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from armazem.domain.errors import ValidationError
from armazem.domain.models import HierarchyNode, PackagingType


def resolve_base_units(packaging: PackagingType, packaging_quantity: int) -> int:
    """Converte uma quantidade de embalagens para unidades base.

    Linear em ``packaging_quantity``: dobrar a quantidade dobra o resultado.
    """
    return int(packaging_quantity) * int(packaging.base_unit_quantity)


def convert_from_base_units(base_units: int, packaging: PackagingType) -> float:
    """Quantas embalagens ``packaging`` cabem em ``base_units`` (pode ser fracionário)."""
    return base_units / packaging.base_unit_quantity


def conversion_factor(from_packaging: PackagingType, to_packaging: PackagingType) -> float:
    """Fator para converter 1 ``from_packaging`` em ``to_packaging``."""
    if from_packaging.product_id != to_packaging.product_id:
        raise ValidationError(
            "Embalagens de produtos diferentes não são conversíveis",
            details={"from": from_packaging.id, "to": to_packaging.id},
        )
    return from_packaging.base_unit_quantity / to_packaging.base_unit_quantity


def parse_base_unit_quantity(value) -> int:
    """Valida e normaliza ``base_unit_quantity`` (inteiro >= 1)."""
    try:
        num = float(value)
    except (TypeError, ValueError):
        raise ValidationError("base_unit_quantity deve ser numérico", details={"value": value})
    if num <= 0:
        raise ValidationError("base_unit_quantity deve ser maior que zero", details={"value": value})
    if num != int(num):
        raise ValidationError("base_unit_quantity deve ser inteiro", details={"value": value})
    return int(num)


def check_new_packaging(
    base_unit_quantity: int,
    is_base_unit: bool,
    product_id: int,
    parent: Optional[PackagingType],
) -> int:
    """Valida a posição de uma nova embalagem na árvore e devolve o nível derivado.

    Regras:
        - A unidade base tem quantidade 1 e não tem pai (é a raiz, nível 1).
        - Qualquer outra embalagem precisa de um pai do mesmo produto.
        - A quantidade da filha é múltiplo estrito da quantidade do pai.
    """
    if is_base_unit:
        if base_unit_quantity != 1:
            raise ValidationError("A unidade base deve ter base_unit_quantity = 1")
        if parent is not None:
            raise ValidationError("A unidade base é a raiz da hierarquia e não pode ter pai")
        return 1

    if parent is None:
        raise ValidationError("Embalagens que não são a unidade base precisam de uma embalagem pai")
    if parent.product_id != product_id:
        raise ValidationError(
            "A embalagem pai pertence a outro produto",
            details={"parent_product_id": parent.product_id, "product_id": product_id},
        )
    if not parent.is_active:
        raise ValidationError("A embalagem pai está inativa", details={"parent_id": parent.id})
    if base_unit_quantity <= parent.base_unit_quantity or base_unit_quantity % parent.base_unit_quantity:
        raise ValidationError(
            "base_unit_quantity deve ser múltiplo estrito da embalagem pai",
            details={"base_unit_quantity": base_unit_quantity, "parent_quantity": parent.base_unit_quantity},
        )
    return parent.level + 1


def build_arena(packagings: Iterable[PackagingType]) -> List[HierarchyNode]:
    """Monta a arena de nós (filhos por id) ordenada por nível, raiz primeiro."""
    ordered = sorted(packagings, key=lambda p: (p.level, p.id))
    nodes: Dict[int, HierarchyNode] = {p.id: HierarchyNode(packaging=p) for p in ordered}
    for p in ordered:
        if p.parent_packaging_id is not None and p.parent_packaging_id in nodes:
            nodes[p.parent_packaging_id].children.append(p.id)
    return [nodes[p.id] for p in ordered]
