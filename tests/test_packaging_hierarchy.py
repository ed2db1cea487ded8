import pytest

from armazem.domain.errors import ConflictError, NotFoundError, ValidationError


def test_tree_levels_derived_from_parent(seed):
    p = seed.product("P-EMB")
    un, cx, fd = seed.tree(p.id)

    assert (un.level, cx.level, fd.level) == (1, 2, 3)
    assert un.parent_packaging_id is None
    assert fd.parent_packaging_id == cx.id

    nodes = seed.c.hierarchy.build_hierarchy(p.id)
    assert [n.packaging.id for n in nodes] == [un.id, cx.id, fd.id]
    assert nodes[0].children == [cx.id]
    assert nodes[1].children == [fd.id]
    assert nodes[2].children == []


def test_conversions(seed):
    p = seed.product("P-CONV")
    un, cx, fd = seed.tree(p.id)
    h = seed.c.hierarchy

    assert h.resolve_base_units(fd.id, 2) == 288
    assert h.resolve_base_units(cx.id, 0) == 0
    assert h.convert_from_base_units(30, cx.id) == pytest.approx(2.5)
    assert h.conversion_factor(fd.id, cx.id) == pytest.approx(12.0)
    assert h.conversion_factor(un.id, cx.id) == pytest.approx(1 / 12)

    outro = seed.product("P-OUTRO")
    un2 = seed.packaging(outro.id, "UN", 1, base=True)
    with pytest.raises(ValidationError):
        h.conversion_factor(un.id, un2.id)


@pytest.mark.parametrize("qty", [18, 12, 6])
def test_child_must_be_strict_multiple_of_parent(seed, qty):
    p = seed.product(f"P-MULT-{qty}")
    un = seed.packaging(p.id, "UN", 1, base=True)
    cx = seed.packaging(p.id, "CX", 12, parent=un)
    with pytest.raises(ValidationError):
        seed.packaging(p.id, "FD", qty, parent=cx)


def test_base_unit_rules(seed):
    p = seed.product("P-BASE")
    with pytest.raises(ValidationError):
        seed.packaging(p.id, "UN", 2, base=True)
    with pytest.raises(ValidationError):
        seed.packaging(p.id, "CX", 12)  # sem pai

    seed.packaging(p.id, "UN", 1, base=True)
    with pytest.raises(ConflictError) as exc:
        seed.packaging(p.id, "UNIDADE", 1, base=True)
    assert exc.value.code == "BASE_UNIT_EXISTS"


def test_invalid_quantity_and_dimensions(seed):
    p = seed.product("P-INV")
    un = seed.packaging(p.id, "UN", 1, base=True)
    with pytest.raises(ValidationError):
        seed.packaging(p.id, "CX", 12.5, parent=un)
    with pytest.raises(ValidationError):
        seed.packaging(p.id, "CX", 0, parent=un)
    with pytest.raises(ValidationError):
        seed.packaging(p.id, "CX", 12, parent=un, dims=(30, 20, 0))


def test_parent_from_other_product_rejected(seed):
    a = seed.product("P-A")
    b = seed.product("P-B")
    un_a = seed.packaging(a.id, "UN", 1, base=True)
    seed.packaging(b.id, "UN", 1, base=True)
    with pytest.raises(ValidationError):
        seed.packaging(b.id, "CX", 12, parent=un_a)


def test_duplicate_barcode_and_name(seed):
    p = seed.product("P-DUP")
    un, cx, _ = seed.tree(p.id)
    with pytest.raises(ConflictError) as exc:
        seed.packaging(p.id, "DP", 24, parent=cx, barcode=cx.barcode)
    assert exc.value.code == "BARCODE_TAKEN"
    with pytest.raises(ConflictError) as exc:
        seed.packaging(p.id, "cx", 24, parent=un)
    assert exc.value.code == "PACKAGING_NAME_TAKEN"


def test_lookup_by_barcode(seed):
    p = seed.product("P-BAR")
    _, cx, _ = seed.tree(p.id)
    found = seed.c.hierarchy.get_by_barcode(cx.barcode)
    assert found.id == cx.id
    with pytest.raises(NotFoundError):
        seed.c.hierarchy.get_by_barcode("000000")


def test_remove_packaging_rules(seed):
    p = seed.product("P-REM")
    un, cx, fd = seed.tree(p.id)
    h = seed.c.hierarchy

    with pytest.raises(ConflictError) as exc:
        h.remove_packaging_type(un.id)
    assert exc.value.code == "BASE_UNIT_REQUIRED"

    with pytest.raises(ConflictError) as exc:
        h.remove_packaging_type(cx.id)
    assert exc.value.code == "PACKAGING_HAS_CHILDREN"

    removed = h.remove_packaging_type(fd.id)
    assert removed.is_active is False
    assert [n.packaging.id for n in h.build_hierarchy(p.id)] == [un.id, cx.id]

    # soft delete: continua legível por id
    assert h.get(fd.id).is_active is False
    with pytest.raises(NotFoundError):
        h.remove_packaging_type(fd.id)


def test_packaging_in_use_cannot_be_removed(seed):
    p = seed.product("P-USO")
    _, cx, fd = seed.tree(p.id)
    h = seed.c.hierarchy
    h.remove_packaging_type(fd.id)
    ucp = seed.ucp()
    seed.c.lifecycle.add_item(ucp.id, {"product_id": p.id, "packaging_type_id": cx.id, "packaging_quantity": 2}, "joao")

    with pytest.raises(ConflictError) as exc:
        h.remove_packaging_type(cx.id)
    assert exc.value.code == "PACKAGING_IN_USE"


def test_base_unit_lookup(seed):
    p = seed.product("P-SEM-BASE")
    with pytest.raises(NotFoundError) as exc:
        seed.c.hierarchy.get_base_unit(p.id)
    assert exc.value.code == "BASE_UNIT_NOT_FOUND"


@pytest.mark.parametrize("q", [0, 1, 2, 3, 7, 12, 25, 144])
def test_resolve_base_units_is_linear_at_every_level(seed, q):
    p = seed.product(f"P-LIN-{q}")
    h = seed.c.hierarchy
    for pkg in seed.tree(p.id):
        assert h.resolve_base_units(pkg.id, q) == q * pkg.base_unit_quantity
        assert h.resolve_base_units(pkg.id, 2 * q) == 2 * h.resolve_base_units(pkg.id, q)
