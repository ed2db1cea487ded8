from datetime import date, timedelta

from armazem.infra.repositories import ParamsRepo
from armazem.usecases.relatorios import (
    relatorio_dashboard,
    relatorio_itens_a_vencer,
    relatorio_lote,
    relatorio_ocupacao,
    relatorio_ucps_vazias,
)


def _iso(days):
    return (date.today() + timedelta(days=days)).isoformat()


def _seed_validades(seed):
    a = seed.product("SKU-A")
    b = seed.product("SKU-B")
    u1 = seed.ucp()
    u2 = seed.ucp()
    seed.item(u1, a, 10, lot="LA1", expiry=_iso(-2))    # vencido
    seed.item(u1, a, 5, lot="LA2", expiry=_iso(10))
    seed.item(u2, b, 7, lot="LB1", expiry=_iso(20))
    seed.item(u2, b, 3, lot="LB2", expiry=_iso(90))
    seed.item(u2, b, 4, lot="LB3")                      # sem validade
    return a, b, u1, u2


def test_itens_a_vencer_detalhado(db_path, seed):
    _seed_validades(seed)
    cols, rows, msg = relatorio_itens_a_vencer(janela_dias=30, db_path=db_path)
    assert cols[0] == "UCP"
    assert msg is None
    assert [r[3] for r in rows] == ["LA1", "LA2", "LB1"]


def test_itens_a_vencer_agregado_por_sku(db_path, seed):
    _seed_validades(seed)
    cols, rows, _ = relatorio_itens_a_vencer(janela_dias=30, detalhar_por_lote=False, db_path=db_path)
    assert cols == ["SKU", "Quantidade", "Primeira Validade"]
    assert rows == [["SKU-A", 15, _iso(-2)], ["SKU-B", 7, _iso(20)]]


def test_itens_a_vencer_usa_parametro(db_path, seed):
    _seed_validades(seed)
    ParamsRepo(db_path).set_many([("near_expiry_days", "100")])
    _, rows, _ = relatorio_itens_a_vencer(db_path=db_path)
    assert len(rows) == 4


def test_itens_a_vencer_vazio(db_path):
    _, rows, msg = relatorio_itens_a_vencer(janela_dias=30, db_path=db_path)
    assert rows == []
    assert msg == "Nenhum item a vencer encontrado."


def test_ucps_vazias_e_painel(db_path, seed):
    _, _, u1, u2 = _seed_validades(seed)
    vazia = seed.ucp()
    arquivada = seed.ucp()
    seed.c.lifecycle.dismantle(arquivada.id, "joao")

    _, rows, msg = relatorio_ucps_vazias(db_path=db_path)
    assert [r[0] for r in rows] == [vazia.code]

    _, rows, _ = relatorio_dashboard(db_path=db_path)
    painel = dict((r[0], r[1]) for r in rows)
    assert painel["UCPs (total)"] == 4
    assert painel["UCPs ativas"] == 3
    assert painel["UCPs arquivadas"] == 1
    assert painel["Itens ativos"] == 5
    assert painel["Produtos distintos"] == 2
    assert painel["Unidades base em estoque"] == 29


def test_rastreio_de_lote(db_path, seed):
    _, _, u1, u2 = _seed_validades(seed)
    item = seed.c.lifecycle.get_with_items(u1.id).items[0]
    seed.c.transfers.transfer(item.id, u2.id, 4, "joao")

    _, rows, _ = relatorio_lote("LA1", db_path=db_path)
    assert sorted((r[1], r[5]) for r in rows) == sorted([(u1.code, 6), (u2.code, 4)])

    _, rows, msg = relatorio_lote("NAO-EXISTE", db_path=db_path)
    assert rows == [] and msg == "Lote NAO-EXISTE não encontrado."


def test_ocupacao(db_path, seed):
    _, _, u1, u2 = _seed_validades(seed)
    vazia = seed.ucp()

    cols, rows, _ = relatorio_ocupacao(db_path=db_path)
    assert cols[-2:] == ["Itens", "Quantidade"]
    assert [(r[0], r[4], r[5]) for r in rows] == [
        (u1.code, 2, 15),
        (u2.code, 3, 14),
        (vazia.code, 0, 0),
    ]
