"""
Testes dos loaders XLSX e das cargas de produtos/itens a partir de planilha.
"""

import pandas as pd
import pytest

from armazem.adapters.xlsx_loader import _normalize_columns, load_itens_from_xlsx, load_produtos_from_xlsx
from armazem.usecases.cadastros import run_importar_produtos
from armazem.usecases.importar_itens import run_importar_itens


def _write_xlsx(path, data):
    pd.DataFrame(data).to_excel(path, index=False)
    return str(path)


def test_normalize_columns_aliases():
    df = pd.DataFrame({
        "Código UCP": ["UCP000001"],
        "Código": ["SKU-1"],
        "Qtde": ["3 CX"],
        "Data de Validade": ["31/12/2026"],
        "Dimensões (cm)": ["40x25x10"],
    })
    cols = list(_normalize_columns(df).columns)
    assert cols == ["ucp_code", "sku", "quantity_raw", "expiry_date", "dimensions_raw"]


def test_load_itens_from_xlsx(tmp_path):
    path = _write_xlsx(tmp_path / "itens.xlsx", {
        "UCP": ["ucp000001", None],
        "SKU": ["SKU-1", None],
        "Quantidade": ["3 CX - Caixa", None],
        "Lote": ["L1", None],
        "Validade": ["31/12/2026", None],
    })
    rows = load_itens_from_xlsx(path)
    assert rows == [{
        "ucp_code": "UCP000001",
        "sku": "SKU-1",
        "quantity_raw": "3 CX - Caixa",
        "lot": "L1",
        "expiry_date": "2026-12-31",
        "internal_code": None,
    }]


def test_load_produtos_from_xlsx(tmp_path):
    path = _write_xlsx(tmp_path / "produtos.xlsx", {
        "SKU": ["SKU-1", "SKU-2"],
        "Descrição": ["Caixa de parafusos", "Iogurte"],
        "Peso (kg)": ["4,0", "0.2"],
        "Dimensões": ["40x25x10", ""],
        "Manuseio": ["", "refrigerated, food"],
    })
    rows = load_produtos_from_xlsx(path)
    assert [r["sku"] for r in rows] == ["SKU-1", "SKU-2"]
    assert rows[0]["unit_weight"] == pytest.approx(4.0)
    assert (rows[0]["length"], rows[0]["width"], rows[0]["height"]) == (40.0, 25.0, 10.0)
    assert rows[1]["length"] is None
    assert rows[1]["handling_flags"] == frozenset({"refrigerated", "food"})


def test_run_importar_produtos_skips_existing(tmp_path, db_path, seed):
    seed.product("SKU-1")
    path = _write_xlsx(tmp_path / "produtos.xlsx", {"SKU": ["SKU-1", "SKU-9"], "Nome": ["A", "B"]})
    info = run_importar_produtos(path, db_path=db_path)
    assert info["inseridos"] == 1
    assert info["ignorados"] == ["SKU-1"]


def test_run_importar_itens(tmp_path, db_path, seed):
    p = seed.product("SKU-1")
    seed.tree(p.id)
    ucp = seed.ucp()

    path = _write_xlsx(tmp_path / "itens.xlsx", {
        "UCP": [ucp.code, ucp.code, ucp.code, ucp.code, "UCP999999"],
        "SKU": ["SKU-1", "SKU-1", "SKU-X", "SKU-1", "SKU-1"],
        "Quantidade": ["3 CX - Caixa", "120", "5", "2 PALETE", "1"],
        "Lote": ["L1", "L2", "L3", "L4", "L5"],
        "Validade": ["2026-12-31", "", "", "", ""],
    })
    info = run_importar_itens(path, "joao", db_path=db_path)

    assert info["inseridos"] == 2
    assert [(e["linha"], e["code"]) for e in info["erros"]] == [
        (3, "PRODUTO_NOT_FOUND"),
        (4, "EMBALAGEM_NOT_FOUND"),
        (5, "UCP_NOT_FOUND"),
    ]
    items = seed.c.lifecycle.get_with_items(ucp.id).items
    assert sorted(i.quantity for i in items) == [36, 120]
    by_lot = {i.lot: i for i in items}
    assert by_lot["L1"].expiry_date == "2026-12-31"
    assert by_lot["L1"].packaging_quantity == 3
