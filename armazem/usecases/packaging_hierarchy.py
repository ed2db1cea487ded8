# armazem/usecases/packaging_hierarchy.py
"""
Caso de uso: hierarquia de embalagens por produto.

- cadastro de embalagem com validação de posição na árvore
- remoção lógica (is_active = 0)
- montagem da árvore (arena por id, raiz primeiro)
- conversões entre embalagens e unidade base
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from armazem.domain import packaging as rules
from armazem.domain.errors import ConflictError, NotFoundError, ValidationError
from armazem.domain.models import HierarchyNode, PackagingType
from armazem.infra.db import transaction
from armazem.infra.logger import log_database_operation
from armazem.infra.repositories import PackagingRepo, ProductRepo


def _normalize_str(x: Any) -> Optional[str]:
    if x is None:
        return None
    s = str(x).strip()
    return s or None


class PackagingHierarchy:
    def __init__(self, products: ProductRepo, packagings: PackagingRepo):
        self.products = products
        self.packagings = packagings

    # ---------- leitura ----------

    def get(self, packaging_id: int) -> PackagingType:
        pkg = self.packagings.get(packaging_id)
        if pkg is None:
            raise NotFoundError("embalagem", packaging_id)
        return pkg

    def get_by_barcode(self, barcode: str) -> PackagingType:
        pkg = self.packagings.get_by_barcode(barcode.strip())
        if pkg is None:
            raise NotFoundError("embalagem", barcode)
        return pkg

    def get_base_unit(self, product_id: int) -> PackagingType:
        pkg = self.packagings.get_base_unit(product_id)
        if pkg is None:
            raise NotFoundError("unidade base", product_id, code="BASE_UNIT_NOT_FOUND")
        return pkg

    def list_active(self, product_id: int) -> List[PackagingType]:
        return self.packagings.list_by_product(product_id, active_only=True)

    def build_hierarchy(self, product_id: int) -> List[HierarchyNode]:
        if self.products.get(product_id) is None:
            raise NotFoundError("produto", product_id)
        return rules.build_arena(self.list_active(product_id))

    # ---------- conversões ----------

    def resolve_base_units(self, packaging_type_id: int, packaging_quantity: int) -> int:
        return rules.resolve_base_units(self.get(packaging_type_id), packaging_quantity)

    def convert_from_base_units(self, base_units: int, packaging_type_id: int) -> float:
        return rules.convert_from_base_units(base_units, self.get(packaging_type_id))

    def conversion_factor(self, from_id: int, to_id: int) -> float:
        return rules.conversion_factor(self.get(from_id), self.get(to_id))

    # ---------- escrita ----------

    def add_packaging_type(self, data: Dict[str, Any]) -> PackagingType:
        """
        Cadastra uma embalagem.

        Campos: product_id, name, base_unit_quantity, is_base_unit,
        parent_packaging_id, barcode, length/width/height (opcionais).
        O nível é sempre derivado do pai.
        """
        name = _normalize_str(data.get("name"))
        if not name:
            raise ValidationError("Nome da embalagem é obrigatório")
        try:
            product_id = int(data["product_id"])
        except (KeyError, TypeError, ValueError):
            raise ValidationError("product_id inválido", details={"product_id": data.get("product_id")})
        qty = rules.parse_base_unit_quantity(data.get("base_unit_quantity"))
        is_base = bool(data.get("is_base_unit"))
        barcode = _normalize_str(data.get("barcode"))
        parent_id = data.get("parent_packaging_id")

        dims = [data.get(k) for k in ("length", "width", "height")]
        if any(d is not None for d in dims):
            if not all(d is not None and float(d) > 0 for d in dims):
                raise ValidationError("Dimensões da embalagem devem ser todas positivas", details={"dimensions": dims})

        with transaction(self.packagings.db_path) as conn:
            if self.products.get(product_id, conn=conn) is None:
                raise NotFoundError("produto", product_id)

            parent = None
            if parent_id is not None:
                parent = self.packagings.get(int(parent_id), conn=conn)
                if parent is None:
                    raise NotFoundError("embalagem", parent_id)

            level = rules.check_new_packaging(qty, is_base, product_id, parent)

            if self.packagings.find_by_name(product_id, name, conn=conn) is not None:
                raise ConflictError(
                    f"Já existe embalagem '{name}' para o produto",
                    code="PACKAGING_NAME_TAKEN",
                    details={"product_id": product_id, "name": name},
                )
            if barcode and self.packagings.get_by_barcode(barcode, conn=conn) is not None:
                raise ConflictError(
                    f"Código de barras já utilizado: {barcode}",
                    code="BARCODE_TAKEN",
                    details={"barcode": barcode},
                )
            if is_base and self.packagings.get_base_unit(product_id, conn=conn) is not None:
                raise ConflictError(
                    "Produto já possui unidade base",
                    code="BASE_UNIT_EXISTS",
                    details={"product_id": product_id},
                )

            new_id = self.packagings.insert(
                {
                    "product_id": product_id,
                    "name": name,
                    "barcode": barcode,
                    "base_unit_quantity": qty,
                    "is_base_unit": is_base,
                    "parent_packaging_id": parent.id if parent else None,
                    "level": level,
                    "length": dims[0],
                    "width": dims[1],
                    "height": dims[2],
                },
                conn=conn,
            )
            created = self.packagings.get(new_id, conn=conn)

        log_database_operation("packaging_types", "INSERT", 1, id=new_id, product_id=product_id, level=level)
        return created

    def remove_packaging_type(self, packaging_id: int) -> PackagingType:
        with transaction(self.packagings.db_path) as conn:
            pkg = self.packagings.get(packaging_id, conn=conn)
            if pkg is None or not pkg.is_active:
                raise NotFoundError("embalagem", packaging_id)
            if pkg.is_base_unit:
                raise ConflictError("A unidade base não pode ser removida", code="BASE_UNIT_REQUIRED")
            if self.packagings.has_active_children(packaging_id, conn=conn):
                raise ConflictError(
                    "Embalagem possui embalagens filhas ativas",
                    code="PACKAGING_HAS_CHILDREN",
                    details={"id": packaging_id},
                )
            if self.packagings.is_referenced_by_active_items(packaging_id, conn=conn):
                raise ConflictError(
                    "Embalagem referenciada por itens ativos",
                    code="PACKAGING_IN_USE",
                    details={"id": packaging_id},
                )
            self.packagings.deactivate(packaging_id, conn=conn)
            removed = self.packagings.get(packaging_id, conn=conn)

        log_database_operation("packaging_types", "DEACTIVATE", 1, id=packaging_id)
        return removed
