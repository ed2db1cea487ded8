"""
Fórmulas de capacidade de composição de pallet.

Modelo simplificado: cada linha ocupa sua própria região da base do pallet,
empilhando camadas de unidades lado a lado. A altura total é a maior altura
entre as linhas (não a soma). Um resultado inválido é um valor, não uma
exceção.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from itertools import combinations
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from armazem.domain.models import (
    CompositionLine,
    CompositionMetrics,
    CompositionResult,
    Dimensions,
    LineBreakdown,
    PackagingType,
    Pallet,
    Product,
    Violation,
)

DIMENSIONS = ("weight", "volume", "height")


@dataclass
class ResolvedLine:
    """Linha da requisição já ligada ao produto e (opcional) à embalagem."""
    line: CompositionLine
    product: Product
    packaging: Optional[PackagingType] = None


def capacity_limits(pallet: Pallet, max_weight=None, max_volume=None, max_height=None) -> Dict[str, float]:
    """Limites do pallet; cada override não-nulo substitui o valor cadastrado."""
    return {
        "weight": float(max_weight) if max_weight is not None else float(pallet.max_weight),
        "volume": float(max_volume) if max_volume is not None else pallet.max_volume_m3,
        "height": float(max_height) if max_height is not None else float(pallet.max_height),
    }


def handled_unit(product: Product, packaging: Optional[PackagingType]) -> Tuple[float, Optional[Dimensions]]:
    """(peso unitário, dimensões) da unidade manuseada na linha.

    Se a linha cita uma embalagem com dimensões, a unidade é a embalagem
    inteira; caso contrário é a unidade base do produto.
    """
    if packaging is not None and packaging.dimensions is not None:
        return product.unit_weight * packaging.base_unit_quantity, packaging.dimensions
    return product.unit_weight, product.dimensions


def line_breakdown(resolved: ResolvedLine, pallet_footprint: float) -> Tuple[LineBreakdown, bool]:
    """Calcula peso/volume/camadas/altura de uma linha.

    Retorna também se a base da unidade cabe no pallet.
    """
    qty = int(resolved.line.quantity)
    unit_weight, dims = handled_unit(resolved.product, resolved.packaging)
    fits_base = True
    if dims is None:
        dims = Dimensions(0.0, 0.0, 0.0)

    footprint = dims.footprint_cm2
    if footprint <= 0:
        per_layer = qty
    else:
        per_layer = int(pallet_footprint // footprint)
        if per_layer < 1:
            fits_base = False
            per_layer = 1
    per_layer = max(per_layer, 1)
    layers = math.ceil(qty / per_layer) if qty > 0 else 0

    return LineBreakdown(
        product_id=resolved.product.id,
        packaging_type_id=resolved.line.packaging_type_id,
        quantity=qty,
        weight=unit_weight * qty,
        volume=dims.volume_m3 * qty,
        per_layer=per_layer,
        layers=layers,
        height=layers * dims.height,
    ), fits_base


def incompatible_pairs(
    products: Iterable[Product], conflicting_flags: Sequence[frozenset]
) -> List[Tuple[Product, Product, frozenset]]:
    """Pares de produtos distintos cujas flags de manuseio conflitam."""
    uniq: Dict[int, Product] = {}
    for p in products:
        uniq.setdefault(p.id, p)
    out = []
    for a, b in combinations(uniq.values(), 2):
        for pair in conflicting_flags:
            x, y = tuple(pair)
            if (x in a.handling_flags and y in b.handling_flags) or (y in a.handling_flags and x in b.handling_flags):
                out.append((a, b, pair))
                break
    return out


def _utilization(total: float, limit: float) -> float:
    if limit <= 0:
        return 0.0 if total <= 0 else math.inf
    return total / limit


def evaluate(
    resolved: Sequence[ResolvedLine],
    pallet: Pallet,
    limits: Dict[str, float],
    conflicting_flags: Sequence[frozenset] = (),
    warning_threshold: float = 0.9,
    low_efficiency_threshold: float = 0.6,
) -> CompositionResult:
    """Avalia uma composição contra os limites informados."""
    violations: List[Violation] = []
    warnings: List[str] = []
    breakdowns: List[LineBreakdown] = []

    for r in resolved:
        b, fits_base = line_breakdown(r, pallet.footprint_cm2)
        breakdowns.append(b)
        if not fits_base:
            violations.append(Violation(
                type="volume",
                severity="error",
                message=f"Base da unidade do produto {r.product.sku} excede a base do pallet {pallet.code}",
                affected_products=[r.product.id],
            ))

    total_weight = sum(b.weight for b in breakdowns)
    total_volume = sum(b.volume for b in breakdowns)
    total_height = max((b.height for b in breakdowns), default=0.0)

    for a, b, pair in incompatible_pairs((r.product for r in resolved), conflicting_flags):
        violations.append(Violation(
            type="compatibility",
            severity="error",
            message=f"Produtos incompatíveis ({' x '.join(sorted(pair))}): {a.sku} e {b.sku}",
            affected_products=[a.id, b.id],
        ))

    totals = {"weight": total_weight, "volume": total_volume, "height": total_height}
    utilization = {d: _utilization(totals[d], limits[d]) for d in DIMENSIONS}
    all_products = sorted({r.product.id for r in resolved})

    messages = {
        "weight": ("Peso total ({:.2f}kg) excede limite do pallet ({:.2f}kg)",
                   "Peso total ({:.2f}kg) próximo do limite do pallet ({:.2f}kg)"),
        "volume": ("Volume total ({:.3f}m³) excede capacidade do pallet ({:.3f}m³)",
                   "Volume total ({:.3f}m³) próximo da capacidade do pallet ({:.3f}m³)"),
        "height": ("Altura total ({:.1f}cm) excede limite do pallet ({:.1f}cm)",
                   "Altura total ({:.1f}cm) próxima do limite do pallet ({:.1f}cm)"),
    }
    for dim in DIMENSIONS:
        util = utilization[dim]
        if util > 1:
            severity, template = "error", messages[dim][0]
        elif util > warning_threshold:
            severity, template = "warning", messages[dim][1]
        else:
            continue
        violations.append(Violation(
            type=dim,
            severity=severity,
            message=template.format(totals[dim], limits[dim]),
            affected_products=list(all_products),
        ))

    efficiency = sum(min(utilization[d], 1.0) for d in DIMENSIONS) / len(DIMENSIONS)
    if breakdowns and efficiency < low_efficiency_threshold:
        warnings.append(f"Baixa eficiência de empacotamento ({efficiency * 100:.1f}%)")

    return CompositionResult(
        is_valid=not any(v.severity == "error" for v in violations),
        metrics=CompositionMetrics(
            total_weight=round(total_weight, 6),
            total_volume=round(total_volume, 6),
            total_height=round(total_height, 6),
            efficiency=efficiency,
        ),
        violations=violations,
        warnings=warnings,
        limits=dict(limits),
        utilization=utilization,
        lines=breakdowns,
    )


def within_capacity(result: CompositionResult) -> bool:
    """Nenhuma dimensão acima de 100% e nenhuma unidade maior que a base do pallet."""
    if any(u > 1.0 for u in result.utilization.values()):
        return False
    return not any(v.severity == "error" and v.type in DIMENSIONS for v in result.violations)


def worst_dimension(result: CompositionResult) -> Tuple[str, float]:
    dim = max(DIMENSIONS, key=lambda d: result.utilization.get(d, 0.0))
    return dim, result.utilization.get(dim, 0.0)


def worst_line_index(result: CompositionResult, dimension: str) -> int:
    """Índice da linha que mais contribui na dimensão dada."""
    return max(range(len(result.lines)), key=lambda i: getattr(result.lines[i], dimension))


def reduced_quantity(quantity: int, utilization: float) -> int:
    """Nova quantidade após redução proporcional (sempre estritamente menor, mínimo 1)."""
    if utilization <= 1 or quantity <= 1:
        return max(1, quantity - 1)
    return max(1, min(quantity - 1, int(math.floor(quantity / utilization))))


def score(result: CompositionResult, target: float) -> float:
    return abs(result.metrics.efficiency - target)
