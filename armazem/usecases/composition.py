# armazem/usecases/composition.py
"""
Caso de uso: validação e otimização de composição de pallet.

``CompositionValidator.validate`` avalia uma requisição contra a capacidade
do pallet (peso, volume, altura) e a compatibilidade entre produtos.

``CompositionOptimizer.optimize`` gera alternativas a partir de três
estratégias:
    (a) trocar a embalagem de uma linha pela mais compacta do produto que
        comporte exatamente as mesmas unidades base;
    (b) reduzir proporcionalmente a linha que mais pesa na dimensão crítica
        (e, como segunda candidata, todas as linhas);
    (c) usar um pallet de maior capacidade.
Candidatas inválidas (alguma dimensão acima de 100% ou produtos
incompatíveis no mesmo pallet) são descartadas; as demais
são ordenadas pela distância entre a eficiência prevista e o alvo.
"""

from __future__ import annotations

import math
from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple

from armazem.config import DEFAULTS
from armazem.domain import composition as calc
from armazem.domain.errors import NotFoundError, ValidationError
from armazem.domain.models import (
    CompositionAlternative,
    CompositionConstraints,
    CompositionLine,
    CompositionRequest,
    CompositionResult,
    OptimizationResult,
    PackagingType,
    Pallet,
)
from armazem.infra.repositories import PackagingRepo, PalletRepo, ParamsRepo, ProductRepo


def _pick_params(params_repo: ParamsRepo) -> Dict[str, float]:
    """Carrega parâmetros de composição, com fallback para DEFAULTS."""
    return {
        "target_efficiency": params_repo.get_float("target_efficiency", DEFAULTS.target_efficiency),
        "warning_threshold": params_repo.get_float("warning_threshold", DEFAULTS.warning_threshold),
        "low_efficiency_threshold": params_repo.get_float(
            "low_efficiency_threshold", DEFAULTS.low_efficiency_threshold
        ),
        "max_alternatives": params_repo.get_int("max_alternatives", DEFAULTS.max_alternatives),
    }


class CompositionValidator:
    def __init__(
        self,
        products: ProductRepo,
        packagings: PackagingRepo,
        pallets: PalletRepo,
        params: ParamsRepo,
    ):
        self.products = products
        self.packagings = packagings
        self.pallets = pallets
        self.params = params

    def get_pallet(self, pallet_id: int) -> Pallet:
        pallet = self.pallets.get(pallet_id)
        if pallet is None:
            raise NotFoundError("pallet", pallet_id)
        return pallet

    def resolve(self, request: CompositionRequest) -> List[calc.ResolvedLine]:
        if not request.lines:
            raise ValidationError("Composição sem linhas", code="EMPTY_COMPOSITION")
        for name in ("max_weight", "max_volume", "max_height"):
            limit = getattr(request.constraints, name)
            if limit is not None and limit <= 0:
                raise ValidationError(f"{name} deve ser maior que zero", details={name: limit})
        out: List[calc.ResolvedLine] = []
        for line in request.lines:
            qty = line.quantity
            if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
                raise ValidationError(
                    "Quantidade da linha deve ser inteiro positivo",
                    details={"product_id": line.product_id, "quantity": line.quantity},
                )
            product = self.products.get(line.product_id)
            if product is None:
                raise NotFoundError("produto", line.product_id)
            packaging = None
            if line.packaging_type_id is not None:
                packaging = self.packagings.get(line.packaging_type_id)
                if packaging is None or not packaging.is_active:
                    raise NotFoundError("embalagem", line.packaging_type_id)
                if packaging.product_id != product.id:
                    raise ValidationError(
                        "Embalagem não pertence ao produto da linha",
                        details={"product_id": product.id, "packaging_type_id": packaging.id},
                    )
            out.append(calc.ResolvedLine(line=line, product=product, packaging=packaging))
        return out

    def validate(self, request: CompositionRequest) -> CompositionResult:
        pallet = self.get_pallet(request.pallet_id)
        resolved = self.resolve(request)
        return self.evaluate(resolved, pallet, request.constraints)

    def evaluate(
        self,
        resolved: Sequence[calc.ResolvedLine],
        pallet: Pallet,
        constraints: CompositionConstraints,
        params: Optional[Dict[str, float]] = None,
    ) -> CompositionResult:
        p = params or _pick_params(self.params)
        limits = calc.capacity_limits(
            pallet,
            max_weight=constraints.max_weight,
            max_volume=constraints.max_volume,
            max_height=constraints.max_height,
        )
        return calc.evaluate(
            resolved,
            pallet,
            limits,
            conflicting_flags=DEFAULTS.conflicting_flags,
            warning_threshold=p["warning_threshold"],
            low_efficiency_threshold=p["low_efficiency_threshold"],
        )


class CompositionOptimizer:
    def __init__(self, validator: CompositionValidator):
        self.validator = validator

    # ---------- estratégias ----------

    def _with_lines(self, resolved: Sequence[calc.ResolvedLine], request: CompositionRequest,
                    changes: Dict[int, Tuple[int, Optional[PackagingType]]]) -> Tuple[CompositionRequest, List[calc.ResolvedLine]]:
        new_resolved: List[calc.ResolvedLine] = []
        for idx, r in enumerate(resolved):
            if idx in changes:
                qty, pkg = changes[idx]
                line = CompositionLine(product_id=r.product.id, quantity=qty,
                                       packaging_type_id=pkg.id if pkg else None)
                new_resolved.append(calc.ResolvedLine(line=line, product=r.product, packaging=pkg))
            else:
                new_resolved.append(r)
        new_request = replace(request, lines=tuple(r.line for r in new_resolved))
        return new_request, new_resolved

    def _packaging_candidates(self, request, resolved, pallet, params) -> List[CompositionAlternative]:
        out: List[CompositionAlternative] = []
        for idx, r in enumerate(resolved):
            current_q = r.packaging.base_unit_quantity if r.packaging else 1
            base_units = r.line.quantity * current_q
            _, cur_dims = calc.handled_unit(r.product, r.packaging)
            cur_q_for_dims = current_q if (r.packaging and r.packaging.dimensions) else 1
            cur_density = cur_dims.volume_m3 / cur_q_for_dims if cur_dims else math.inf

            best = None
            for pkg in self.validator.packagings.list_by_product(r.product.id):
                if pkg.dimensions is None or base_units % pkg.base_unit_quantity:
                    continue
                if r.packaging is not None and pkg.id == r.packaging.id:
                    continue
                density = pkg.dimensions.volume_m3 / pkg.base_unit_quantity
                if density > cur_density:
                    continue
                if best is None or density < best[0] or (density == best[0] and pkg.base_unit_quantity > best[1].base_unit_quantity):
                    best = (density, pkg)
            if best is None:
                continue

            pkg = best[1]
            new_qty = base_units // pkg.base_unit_quantity
            new_request, new_resolved = self._with_lines(resolved, request, {idx: (new_qty, pkg)})
            result = self.validator.evaluate(new_resolved, pallet, request.constraints, params)
            out.append(CompositionAlternative(
                strategy="packaging",
                rationale=f"Produto {r.product.sku}: usar {new_qty} x '{pkg.name}' ({pkg.base_unit_quantity} un.)",
                request=new_request,
                result=result,
                score=0.0,
            ))
        return out

    def _reduce_line_candidate(self, request, resolved, pallet, result, params) -> Optional[CompositionAlternative]:
        current = list(resolved)
        cur_request = request
        changed: Dict[int, int] = {}
        while not calc.within_capacity(result):
            dim, util = calc.worst_dimension(result)
            if util <= 1:
                return None
            idx = calc.worst_line_index(result, dim)
            qty = current[idx].line.quantity
            if qty <= 1:
                return None
            new_qty = calc.reduced_quantity(qty, util)
            cur_request, current = self._with_lines(current, cur_request, {idx: (new_qty, current[idx].packaging)})
            result = self.validator.evaluate(current, pallet, request.constraints, params)
            changed[idx] = new_qty
        if not changed:
            return None
        parts = [
            f"{current[i].product.sku}: {resolved[i].line.quantity} -> {q}" for i, q in sorted(changed.items())
        ]
        return CompositionAlternative(
            strategy="reduce_line",
            rationale="Reduzir linha crítica (" + "; ".join(parts) + ")",
            request=cur_request,
            result=result,
            score=0.0,
        )

    def _reduce_all_candidate(self, request, resolved, pallet, result, params) -> Optional[CompositionAlternative]:
        current = list(resolved)
        cur_request = request
        first_factor = None
        while not calc.within_capacity(result):
            _, util = calc.worst_dimension(result)
            if util <= 1:
                return None
            factor = 1.0 / util
            first_factor = first_factor or factor
            changes = {}
            for idx, r in enumerate(current):
                q = r.line.quantity
                new_q = max(1, min(q - 1, int(math.floor(q * factor)))) if q > 1 else 1
                if new_q != q:
                    changes[idx] = (new_q, r.packaging)
            if not changes:
                return None
            cur_request, current = self._with_lines(current, cur_request, changes)
            result = self.validator.evaluate(current, pallet, request.constraints, params)
        if first_factor is None:
            return None
        return CompositionAlternative(
            strategy="reduce_all",
            rationale=f"Reduzir todas as linhas proporcionalmente (~{first_factor * 100:.0f}% das quantidades)",
            request=cur_request,
            result=result,
            score=0.0,
        )

    def _pallet_candidates(self, request, resolved, pallet, params) -> List[CompositionAlternative]:
        out: List[CompositionAlternative] = []
        for other in self.validator.pallets.list_all():
            if other.id == pallet.id:
                continue
            if other.max_weight < pallet.max_weight or other.max_volume_m3 < pallet.max_volume_m3:
                continue
            if other.max_weight == pallet.max_weight and other.max_volume_m3 == pallet.max_volume_m3:
                continue
            new_request = replace(request, pallet_id=other.id, constraints=CompositionConstraints())
            result = self.validator.evaluate(resolved, other, new_request.constraints, params)
            out.append(CompositionAlternative(
                strategy="pallet",
                rationale=(
                    f"Usar pallet {other.code} ({other.max_weight:.0f}kg, {other.max_volume_m3:.2f}m³) "
                    f"no lugar de {pallet.code}"
                ),
                request=new_request,
                result=result,
                score=0.0,
            ))
        return out

    # ---------- API ----------

    def optimize(self, request: CompositionRequest) -> OptimizationResult:
        params = _pick_params(self.validator.params)
        pallet = self.validator.get_pallet(request.pallet_id)
        resolved = self.validator.resolve(request)
        original = self.validator.evaluate(resolved, pallet, request.constraints, params)

        candidates: List[CompositionAlternative] = []
        candidates.extend(self._packaging_candidates(request, resolved, pallet, params))
        for build in (self._reduce_line_candidate, self._reduce_all_candidate):
            alt = build(request, resolved, pallet, original, params)
            if alt is not None:
                candidates.append(alt)
        candidates.extend(self._pallet_candidates(request, resolved, pallet, params))

        target = params["target_efficiency"]
        seen = set()
        ranked: List[CompositionAlternative] = []
        for alt in candidates:
            if not alt.result.is_valid or alt.request in seen:
                continue
            seen.add(alt.request)
            ranked.append(replace(alt, score=calc.score(alt.result, target)))
        ranked.sort(key=lambda a: a.score)

        return OptimizationResult(original=original, alternatives=ranked[: int(params["max_alternatives"])])
