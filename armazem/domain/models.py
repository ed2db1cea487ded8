# armazem/domain/models.py
"""
Modelos (dataclasses) do domínio.

Observação importante:
- Os repositórios aceitam dicionários na entrada e devolvem estas
  dataclasses na saída.
- A hierarquia de embalagens é guardada como uma arena indexada por id:
  pai e filhos são referenciados por id, nunca por objeto.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple


class UcpStatus:
    ACTIVE = "active"
    ARCHIVED = "archived"

    ALL = (ACTIVE, ARCHIVED)


class HistoryAction:
    CREATED = "CREATED"
    MOVED = "MOVED"
    DISMANTLED = "DISMANTLED"
    REACTIVATED = "REACTIVATED"
    TRANSFER_IN = "TRANSFER_IN"
    TRANSFER_OUT = "TRANSFER_OUT"
    ITEM_ADDED = "ITEM_ADDED"
    ITEM_REMOVED = "ITEM_REMOVED"

    ALL = (CREATED, MOVED, DISMANTLED, REACTIVATED, TRANSFER_IN, TRANSFER_OUT, ITEM_ADDED, ITEM_REMOVED)


@dataclass(frozen=True)
class Dimensions:
    """Dimensões em centímetros."""
    length: float
    width: float
    height: float

    @property
    def footprint_cm2(self) -> float:
        return self.length * self.width

    @property
    def volume_m3(self) -> float:
        return self.length * self.width * self.height / 1_000_000


@dataclass
class Product:
    """Cadastro de produto (imutável para o núcleo)."""
    id: int
    sku: str
    name: Optional[str] = None
    unit_weight: float = 0.0                     # kg
    dimensions: Optional[Dimensions] = None
    category: Optional[str] = None
    handling_flags: FrozenSet[str] = frozenset()


@dataclass
class Pallet:
    id: int
    code: str
    type: Optional[str]
    width: float                                 # cm
    length: float                                # cm
    max_height: float                            # cm (altura máxima de carga)
    max_weight: float                            # kg
    status: str = "disponivel"

    @property
    def footprint_cm2(self) -> float:
        return self.width * self.length

    @property
    def max_volume_m3(self) -> float:
        return self.width * self.length * self.max_height / 1_000_000


@dataclass
class Position:
    id: int
    code: str


@dataclass
class PackagingType:
    id: int
    product_id: int
    name: str
    base_unit_quantity: int
    is_base_unit: bool = False
    parent_packaging_id: Optional[int] = None
    level: int = 1
    barcode: Optional[str] = None
    dimensions: Optional[Dimensions] = None
    is_active: bool = True


@dataclass
class HierarchyNode:
    """Nó da arena de embalagens: filhos referenciados por id."""
    packaging: PackagingType
    children: List[int] = field(default_factory=list)


@dataclass
class Ucp:
    id: int
    code: str
    pallet_id: Optional[int]
    position_id: Optional[int]
    status: str
    observations: Optional[str]
    created_by: str
    created_at: str
    updated_at: str
    version: int = 0

    def snapshot(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "pallet_id": self.pallet_id,
            "position_id": self.position_id,
            "status": self.status,
        }


@dataclass
class UcpItem:
    id: int
    ucp_id: int
    product_id: int
    quantity: int                                # unidades base
    lot: Optional[str] = None
    expiry_date: Optional[str] = None            # ISO YYYY-MM-DD
    internal_code: Optional[str] = None
    packaging_type_id: Optional[int] = None      # proveniência apenas
    packaging_quantity: Optional[float] = None
    is_active: bool = True
    added_by: Optional[str] = None
    added_at: Optional[str] = None
    removed_by: Optional[str] = None
    removed_at: Optional[str] = None
    removal_reason: Optional[str] = None
    version: int = 0


@dataclass
class UcpHistory:
    id: int
    ucp_id: int
    action: str
    description: str
    old_value: Optional[Dict[str, Any]]
    new_value: Optional[Dict[str, Any]]
    performed_by: str
    timestamp: str
    item_id: Optional[int] = None
    transfer_id: Optional[str] = None


@dataclass
class UcpWithItems:
    ucp: Ucp
    items: List[UcpItem]

    @property
    def total_items(self) -> int:
        return sum(1 for i in self.items if i.is_active)

    @property
    def total_quantity(self) -> int:
        return sum(i.quantity for i in self.items if i.is_active)


@dataclass
class TransferResult:
    transfer_id: str
    transfer_type: str                           # 'partial' | 'complete'
    source_ucp_id: int
    target_ucp_id: int
    source_item_id: int
    target_item_id: int
    quantity: int


# -------------------------
# Estoque e separação
# -------------------------

@dataclass
class StockSummary:
    product_id: int
    total_base_units: int
    locations_count: int
    items_count: int


@dataclass
class PackagingStock:
    packaging_type: PackagingType
    available_packages: int
    remaining_base_units: int


@dataclass
class PickingLine:
    packaging_type: PackagingType
    count: int
    base_units: int


@dataclass
class PickingPlan:
    product_id: int
    requested_base_units: int
    plan: List[PickingLine]
    remaining: int
    total_planned: int
    can_fulfill: bool


# -------------------------
# Composição
# -------------------------

@dataclass(frozen=True)
class CompositionLine:
    product_id: int
    quantity: int
    packaging_type_id: Optional[int] = None


@dataclass(frozen=True)
class CompositionConstraints:
    max_weight: Optional[float] = None
    max_volume: Optional[float] = None
    max_height: Optional[float] = None


@dataclass(frozen=True)
class CompositionRequest:
    lines: Tuple[CompositionLine, ...]
    pallet_id: int
    constraints: CompositionConstraints = CompositionConstraints()


@dataclass
class Violation:
    type: str                                    # weight | volume | height | compatibility
    severity: str                                # error | warning
    message: str
    affected_products: List[int] = field(default_factory=list)


@dataclass
class CompositionMetrics:
    total_weight: float
    total_volume: float
    total_height: float
    efficiency: float


@dataclass
class LineBreakdown:
    product_id: int
    packaging_type_id: Optional[int]
    quantity: int
    weight: float
    volume: float
    per_layer: int
    layers: int
    height: float


@dataclass
class CompositionResult:
    is_valid: bool
    metrics: CompositionMetrics
    violations: List[Violation]
    warnings: List[str]
    limits: Dict[str, float] = field(default_factory=dict)
    utilization: Dict[str, float] = field(default_factory=dict)
    lines: List[LineBreakdown] = field(default_factory=list)


@dataclass
class CompositionAlternative:
    strategy: str                                # packaging | reduce_line | reduce_all | pallet
    rationale: str
    request: CompositionRequest
    result: CompositionResult
    score: float                                 # |eficiência - alvo|


@dataclass
class OptimizationResult:
    original: CompositionResult
    alternatives: List[CompositionAlternative]
