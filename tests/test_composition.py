import sqlite3

import pytest

from armazem.domain.errors import NotFoundError, ValidationError
from armazem.domain.models import CompositionConstraints, CompositionLine, CompositionRequest
from armazem.infra.repositories import ParamsRepo
from armazem.usecases.operacoes import composition_request_from_dict


def _req(pallet, lines, **limits):
    return composition_request_from_dict({"pallet_id": pallet.id, "lines": lines, **limits})


@pytest.fixture
def carga(seed):
    """Pallet 100x100 (120cm, 500kg) e caixa de 4kg com 40x25x10cm."""
    pallet = seed.pallet("PBR-1", width=100, length=100, max_height=120, max_weight=500)
    caixa = seed.product("CX-4KG", weight=4.0, dims=(40, 25, 10))
    return pallet, caixa


def test_valid_composition_metrics(seed, carga):
    pallet, caixa = carga
    res = seed.c.validator.validate(_req(pallet, [{"product_id": caixa.id, "quantity": 100}], max_height=180))

    assert res.is_valid is True
    assert res.violations == []
    assert res.warnings == []
    assert res.metrics.total_weight == pytest.approx(400.0)
    assert res.metrics.total_volume == pytest.approx(1.0)
    assert res.metrics.total_height == pytest.approx(100.0)
    assert res.metrics.efficiency == pytest.approx((0.8 + 1.0 / 1.2 + 100 / 180) / 3, abs=1e-4)
    assert res.metrics.efficiency == pytest.approx(0.730, abs=1e-3)
    assert res.lines[0].per_layer == 10
    assert res.lines[0].layers == 10


def test_weight_over_limit_is_error(seed, carga):
    pallet, caixa = carga
    res = seed.c.validator.validate(_req(pallet, [{"product_id": caixa.id, "quantity": 150}], max_height=180))

    assert res.is_valid is False
    weight = [v for v in res.violations if v.type == "weight"]
    assert len(weight) == 1
    assert weight[0].severity == "error"
    assert "600.00kg" in weight[0].message and "500.00kg" in weight[0].message
    assert weight[0].affected_products == [caixa.id]


def test_near_limit_is_warning_only(seed, carga):
    pallet, caixa = carga
    # 115 caixas = 460kg (92%)
    res = seed.c.validator.validate(
        _req(pallet, [{"product_id": caixa.id, "quantity": 115}], max_height=180, max_volume=2.0)
    )
    assert res.is_valid is True
    assert [(v.type, v.severity) for v in res.violations] == [("weight", "warning")]


def test_overrides_replace_pallet_limits(seed, carga):
    pallet, caixa = carga
    res = seed.c.validator.validate(
        _req(pallet, [{"product_id": caixa.id, "quantity": 10}], max_weight=1000, max_volume=2.0, max_height=50)
    )
    assert res.limits == {"weight": 1000.0, "volume": 2.0, "height": 50.0}


def test_incompatible_products(seed):
    pallet = seed.pallet("PBR-2")
    frio = seed.product("FRIO", weight=1, dims=(20, 20, 20), flags={"refrigerated"})
    seco = seed.product("SECO", weight=1, dims=(20, 20, 20), flags={"ambient"})
    res = seed.c.validator.validate(_req(pallet, [
        {"product_id": frio.id, "quantity": 5},
        {"product_id": seco.id, "quantity": 5},
    ]))
    assert res.is_valid is False
    compat = [v for v in res.violations if v.type == "compatibility"]
    assert len(compat) == 1
    assert sorted(compat[0].affected_products) == sorted([frio.id, seco.id])


def test_unit_larger_than_pallet_base(seed):
    pallet = seed.pallet("PBR-3")
    grande = seed.product("GRANDE", weight=1, dims=(150, 150, 10))
    res = seed.c.validator.validate(_req(pallet, [{"product_id": grande.id, "quantity": 1}]))
    assert res.is_valid is False
    assert any(v.type == "volume" and v.severity == "error" for v in res.violations)


def test_low_efficiency_warning(seed, carga):
    pallet, caixa = carga
    res = seed.c.validator.validate(_req(pallet, [{"product_id": caixa.id, "quantity": 5}]))
    assert res.is_valid is True
    assert len(res.warnings) == 1
    assert res.warnings[0].startswith("Baixa eficiência de empacotamento")


def test_packaging_with_dimensions_is_handled_unit(seed):
    pallet = seed.pallet("PBR-4")
    p = seed.product("GARRAFA", weight=0.5, dims=(10, 10, 10))
    un = seed.packaging(p.id, "UN", 1, base=True)
    cx = seed.packaging(p.id, "CX", 12, parent=un, dims=(30, 20, 15))

    res = seed.c.validator.validate(_req(pallet, [{"product_id": p.id, "quantity": 2, "packaging_type_id": cx.id}]))
    assert res.metrics.total_weight == pytest.approx(12.0)
    assert res.metrics.total_volume == pytest.approx(2 * 0.009)
    assert res.metrics.total_height == pytest.approx(15.0)


def test_invalid_requests(seed, carga):
    pallet, caixa = carga
    v = seed.c.validator
    with pytest.raises(ValidationError) as exc:
        v.validate(_req(pallet, []))
    assert exc.value.code == "EMPTY_COMPOSITION"
    with pytest.raises(ValidationError):
        v.validate(_req(pallet, [{"product_id": caixa.id, "quantity": 0}]))
    with pytest.raises(ValidationError):
        _req(pallet, [{"product_id": caixa.id, "quantity": 2.5}])
    with pytest.raises(NotFoundError):
        v.validate(_req(pallet, [{"product_id": 999, "quantity": 1}]))
    with pytest.raises(NotFoundError):
        v.validate(composition_request_from_dict({"pallet_id": 999, "lines": [{"product_id": caixa.id, "quantity": 1}]}))


def test_optimize_overloaded_composition(seed, carga):
    pallet, caixa = carga
    seed.pallet("PBR-GG", width=120, length=100, max_height=150, max_weight=1000)
    req = _req(pallet, [{"product_id": caixa.id, "quantity": 150}], max_height=180)

    out = seed.c.optimizer.optimize(req)

    assert out.original.is_valid is False
    assert 0 < len(out.alternatives) <= 5
    scores = [a.score for a in out.alternatives]
    assert scores == sorted(scores)
    for alt in out.alternatives:
        assert all(u <= 1.0 for u in alt.result.utilization.values())
        assert alt.score == pytest.approx(abs(alt.result.metrics.efficiency - 0.85))

    strategies = {a.strategy for a in out.alternatives}
    assert "pallet" in strategies
    assert "reduce_line" in strategies

    reduced = next(a for a in out.alternatives if a.strategy == "reduce_line")
    assert reduced.request.lines[0].quantity < 150
    bigger = next(a for a in out.alternatives if a.strategy == "pallet")
    assert bigger.request.constraints.max_height is None
    assert bigger.request.lines == req.lines


def test_optimize_suggests_compact_packaging(seed):
    pallet = seed.pallet("PBR-5")
    p = seed.product("GARRAFA-2", weight=0.5, dims=(10, 10, 10))
    un = seed.packaging(p.id, "UN", 1, base=True)
    cx = seed.packaging(p.id, "CX", 12, parent=un, dims=(30, 20, 15))

    out = seed.c.optimizer.optimize(_req(pallet, [{"product_id": p.id, "quantity": 144}]))

    pkg = [a for a in out.alternatives if a.strategy == "packaging"]
    assert len(pkg) == 1
    line = pkg[0].request.lines[0]
    assert (line.packaging_type_id, line.quantity) == (cx.id, 12)


def test_optimize_respects_max_alternatives(seed, carga):
    pallet, caixa = carga
    for i in range(4):
        seed.pallet(f"PBR-X{i}", width=120, length=100, max_height=150 + i * 10, max_weight=1000 + i)
    ParamsRepo(seed.db_path).set_many([("max_alternatives", "2")])

    out = seed.c.optimizer.optimize(_req(pallet, [{"product_id": caixa.id, "quantity": 150}], max_height=180))
    assert len(out.alternatives) == 2


@pytest.mark.parametrize("valor", [0, -10])
@pytest.mark.parametrize("campo", ["max_weight", "max_volume", "max_height"])
def test_non_positive_overrides_are_rejected(seed, carga, campo, valor):
    pallet, caixa = carga
    with pytest.raises(ValidationError):
        _req(pallet, [{"product_id": caixa.id, "quantity": 10}], **{campo: valor})

    req = CompositionRequest(
        lines=(CompositionLine(product_id=caixa.id, quantity=10),),
        pallet_id=pallet.id,
        constraints=CompositionConstraints(**{campo: valor}),
    )
    with pytest.raises(ValidationError):
        seed.c.validator.validate(req)


def _dump(db_path):
    conn = sqlite3.connect(db_path)
    try:
        return list(conn.iterdump())
    finally:
        conn.close()


def test_validate_is_idempotent_and_read_only(seed, carga):
    pallet, caixa = carga
    req = _req(pallet, [{"product_id": caixa.id, "quantity": 150}], max_height=180)
    antes = _dump(seed.db_path)

    first = seed.c.validator.validate(req)
    second = seed.c.validator.validate(req)
    seed.c.optimizer.optimize(req)

    assert first == second
    assert _dump(seed.db_path) == antes


def test_optimize_discards_incompatible_alternatives(seed):
    pallet = seed.pallet("PBR-6")
    seed.pallet("PBR-GG2", width=120, length=100, max_height=200, max_weight=1000)
    frio = seed.product("FRIO-4KG", weight=4.0, dims=(40, 25, 10), flags={"refrigerated"})
    seco = seed.product("SECO-4KG", weight=4.0, dims=(40, 25, 10), flags={"ambient"})

    out = seed.c.optimizer.optimize(_req(pallet, [
        {"product_id": frio.id, "quantity": 80},
        {"product_id": seco.id, "quantity": 80},
    ]))

    assert out.original.is_valid is False
    assert {v.type for v in out.original.violations if v.severity == "error"} >= {"weight", "compatibility"}
    assert out.alternatives == []


def test_optimize_alternatives_are_always_valid(seed, carga):
    pallet, caixa = carga
    seed.pallet("PBR-GG3", width=120, length=100, max_height=150, max_weight=1000)
    out = seed.c.optimizer.optimize(_req(pallet, [{"product_id": caixa.id, "quantity": 150}], max_height=180))
    assert out.alternatives
    assert all(a.result.is_valid for a in out.alternatives)
