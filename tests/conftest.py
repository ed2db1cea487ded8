import pytest

from armazem.infra.migrations import apply_migrations
from armazem.usecases.cadastros import register_pallet, register_position, register_product
from armazem.usecases.operacoes import montar_componentes


class Seed:
    """Atalhos de cadastro para os testes."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self.c = montar_componentes(db_path)

    def product(self, sku, weight=1.0, dims=None, flags=()):
        data = {"sku": sku, "name": f"Produto {sku}", "unit_weight": weight, "handling_flags": set(flags)}
        if dims:
            data.update(length=dims[0], width=dims[1], height=dims[2])
        return register_product(data, db_path=self.db_path)

    def pallet(self, code, width=100, length=100, max_height=120, max_weight=500):
        return register_pallet(
            {"code": code, "width": width, "length": length, "max_height": max_height, "max_weight": max_weight},
            db_path=self.db_path,
        )

    def position(self, code):
        return register_position(code, db_path=self.db_path)

    def packaging(self, product_id, name, qty, parent=None, base=False, barcode=None, dims=None):
        data = {
            "product_id": product_id,
            "name": name,
            "base_unit_quantity": qty,
            "is_base_unit": base,
            "parent_packaging_id": parent.id if parent else None,
            "barcode": barcode,
        }
        if dims:
            data.update(length=dims[0], width=dims[1], height=dims[2])
        return self.c.hierarchy.add_packaging_type(data)

    def tree(self, product_id):
        """UN (1) -> CX (12) -> FD (144)."""
        un = self.packaging(product_id, "UN", 1, base=True, barcode=f"789{product_id}001")
        cx = self.packaging(product_id, "CX", 12, parent=un, barcode=f"789{product_id}012")
        fd = self.packaging(product_id, "FD", 144, parent=cx, barcode=f"789{product_id}144")
        return un, cx, fd

    def ucp(self, pallet=None, position=None, user="joao"):
        return self.c.lifecycle.create({
            "pallet_id": pallet.id if pallet else None,
            "position_id": position.id if position else None,
            "created_by": user,
        })

    def item(self, ucp, product, quantity, lot=None, expiry=None, user="joao"):
        return self.c.lifecycle.add_item(
            ucp.id,
            {"product_id": product.id, "quantity": quantity, "lot": lot, "expiry_date": expiry},
            user,
        )


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "armazem_test.sqlite")
    apply_migrations(path)
    return path


@pytest.fixture
def seed(db_path):
    return Seed(db_path)
