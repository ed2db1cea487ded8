import pytest

from armazem.domain.errors import ConflictError, NotFoundError, ValidationError
from armazem.domain.models import HistoryAction, UcpStatus
from armazem.infra.repositories import ParamsRepo


def test_create_generates_sequential_codes(seed):
    a = seed.ucp()
    b = seed.ucp()
    assert (a.code, b.code) == ("UCP000001", "UCP000002")
    assert a.status == UcpStatus.ACTIVE

    hist = seed.c.lifecycle.history_of(a.id)
    assert [h.action for h in hist] == [HistoryAction.CREATED]
    assert hist[0].new_value["code"] == "UCP000001"
    assert hist[0].performed_by == "joao"


def test_create_with_custom_prefix(seed, db_path):
    ParamsRepo(db_path).set_many([("ucp_code_prefix", "PLT")])
    assert seed.ucp().code == "PLT000001"


def test_create_with_supplied_code(seed):
    ucp = seed.c.lifecycle.create({"code": "ucp000123", "created_by": "maria"})
    assert ucp.code == "UCP000123"
    assert seed.c.lifecycle.get_by_code("UCP000123").id == ucp.id

    with pytest.raises(ConflictError) as exc:
        seed.c.lifecycle.create({"code": "UCP000123", "created_by": "maria"})
    assert exc.value.code == "UCP_CODE_TAKEN"

    with pytest.raises(ValidationError):
        seed.c.lifecycle.create({"code": "X-1", "created_by": "maria"})


def test_create_requires_actor(seed):
    with pytest.raises(ValidationError):
        seed.c.lifecycle.create({"created_by": "  "})


def test_pallet_exclusive_among_active_ucps(seed):
    pallet = seed.pallet("PAL-EXC")
    first = seed.ucp(pallet=pallet)
    with pytest.raises(ConflictError) as exc:
        seed.ucp(pallet=pallet)
    assert exc.value.code == "PALLET_IN_USE"

    seed.c.lifecycle.dismantle(first.id, "joao", "fim de turno")
    second = seed.ucp(pallet=pallet)
    assert second.pallet_id == pallet.id


def test_create_with_unknown_references(seed):
    with pytest.raises(NotFoundError):
        seed.c.lifecycle.create({"pallet_id": 999, "created_by": "joao"})
    with pytest.raises(NotFoundError):
        seed.c.lifecycle.create({"position_id": 999, "created_by": "joao"})


def test_move_records_history(seed):
    a1 = seed.position("A-01")
    b2 = seed.position("B-02")
    ucp = seed.ucp(position=a1)

    moved = seed.c.lifecycle.move(ucp.id, b2.id, "maria", "reorganização")
    assert moved.position_id == b2.id
    assert moved.version == ucp.version + 1

    last = seed.c.lifecycle.history_of(ucp.id)[-1]
    assert last.action == HistoryAction.MOVED
    assert last.description == "UCP movida de A-01 para B-02. Motivo: reorganização"
    assert last.old_value["position_id"] == a1.id
    assert last.new_value["position_id"] == b2.id


def test_move_archived_ucp_fails(seed):
    pos = seed.position("C-03")
    ucp = seed.ucp()
    seed.c.lifecycle.dismantle(ucp.id, "joao")
    with pytest.raises(ConflictError) as exc:
        seed.c.lifecycle.move(ucp.id, pos.id, "joao")
    assert exc.value.code == "UCP_NOT_ACTIVE"


def test_dismantle_requires_empty_ucp(seed):
    p = seed.product("P-DESM")
    pallet = seed.pallet("PAL-DESM")
    ucp = seed.ucp(pallet=pallet, position=seed.position("D-04"))
    item = seed.item(ucp, p, 10)

    with pytest.raises(ConflictError) as exc:
        seed.c.lifecycle.dismantle(ucp.id, "joao")
    assert exc.value.code == "UCP_HAS_ITEMS"

    seed.c.lifecycle.remove_item(item.id, "joao", "consumo")
    archived = seed.c.lifecycle.dismantle(ucp.id, "joao", "vazia")
    assert archived.status == UcpStatus.ARCHIVED
    assert archived.pallet_id is None
    assert archived.position_id is None

    actions = [h.action for h in seed.c.lifecycle.history_of(ucp.id)]
    assert actions == [
        HistoryAction.CREATED,
        HistoryAction.ITEM_ADDED,
        HistoryAction.ITEM_REMOVED,
        HistoryAction.DISMANTLED,
    ]


def test_reactivate(seed):
    pallet = seed.pallet("PAL-REAT")
    ucp = seed.ucp(pallet=pallet)
    seed.c.lifecycle.dismantle(ucp.id, "joao")

    with pytest.raises(ConflictError) as exc:
        seed.c.lifecycle.reactivate(seed.ucp().id, "joao")
    assert exc.value.code == "UCP_NOT_ARCHIVED"

    other = seed.ucp(pallet=pallet)
    with pytest.raises(ConflictError) as exc:
        seed.c.lifecycle.reactivate(ucp.id, "joao", pallet_id=pallet.id)
    assert exc.value.code == "PALLET_IN_USE"

    seed.c.lifecycle.dismantle(other.id, "joao")
    back = seed.c.lifecycle.reactivate(ucp.id, "joao", pallet_id=pallet.id)
    assert back.status == UcpStatus.ACTIVE
    assert back.pallet_id == pallet.id
    assert seed.c.lifecycle.history_of(ucp.id)[-1].action == HistoryAction.REACTIVATED


def test_add_item_by_packaging(seed):
    p = seed.product("P-ADD")
    _, cx, _ = seed.tree(p.id)
    ucp = seed.ucp()

    item = seed.c.lifecycle.add_item(
        ucp.id,
        {"product_id": p.id, "packaging_type_id": cx.id, "packaging_quantity": 3, "lot": "L9", "expiry_date": "2030-01-31"},
        "joao",
    )
    assert item.quantity == 36
    assert item.packaging_type_id == cx.id
    assert item.lot == "L9"

    full = seed.c.lifecycle.get_with_items(ucp.id)
    assert full.total_items == 1
    assert full.total_quantity == 36


@pytest.mark.parametrize("quantity", [0, -3, None, "dez"])
def test_add_item_rejects_bad_quantity(seed, quantity):
    p = seed.product("P-QTD")
    ucp = seed.ucp()
    with pytest.raises(ValidationError):
        seed.c.lifecycle.add_item(ucp.id, {"product_id": p.id, "quantity": quantity}, "joao")


def test_add_item_to_archived_ucp(seed):
    p = seed.product("P-ARQ")
    ucp = seed.ucp()
    seed.c.lifecycle.dismantle(ucp.id, "joao")
    with pytest.raises(ConflictError):
        seed.item(ucp, p, 5)


def test_remove_item_is_soft_delete(seed):
    p = seed.product("P-SOFT")
    ucp = seed.ucp()
    item = seed.item(ucp, p, 7)
    removed = seed.c.lifecycle.remove_item(item.id, "maria", "avaria")

    assert removed.is_active is False
    assert removed.removed_by == "maria"
    assert removed.removal_reason == "avaria"
    assert seed.c.lifecycle.get_with_items(ucp.id).items == []
    with pytest.raises(NotFoundError):
        seed.c.lifecycle.remove_item(item.id, "maria")


def test_list_and_find_empty(seed):
    p = seed.product("P-LIST")
    cheia = seed.ucp()
    vazia = seed.ucp()
    arquivada = seed.ucp()
    seed.item(cheia, p, 1)
    seed.c.lifecycle.dismantle(arquivada.id, "joao")

    assert [u.id for u in seed.c.lifecycle.find_empty()] == [vazia.id]
    assert [u.id for u in seed.c.lifecycle.list(status="archived")] == [arquivada.id]
    with pytest.raises(ValidationError):
        seed.c.lifecycle.list(status="perdida")
