import json
from pathlib import Path
from typer.testing import CliRunner

from armazem.adapters.cli import app

runner = CliRunner()


def _db(tmp_path: Path) -> str:
    db_path = str(tmp_path / "armazem_test.sqlite")
    result = runner.invoke(app, ["migrate", "--db", db_path])
    assert result.exit_code == 0, result.output
    return db_path


def test_cli_migrate_and_params_show(tmp_path: Path):
    db_path = _db(tmp_path)
    # params show (JSON com defaults se nada foi setado)
    result = runner.invoke(app, ["params", "show", "--json", "--db", db_path])
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["target_efficiency"] == "0.85"
    assert data["ucp_code_prefix"] == "UCP"
    assert "near_expiry_days" in data


def test_cli_params_set_and_get(tmp_path: Path):
    db_path = _db(tmp_path)
    result = runner.invoke(
        app,
        [
            "params", "set",
            "--db", db_path,
            "--target-efficiency", "0.8",
            "--max-alternatives", "3",
            "--ucp-code-prefix", "plt",
        ],
    )
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["params", "get", "target_efficiency", "--db", db_path])
    assert result.exit_code == 0
    assert result.stdout.strip() == "0.8"

    result = runner.invoke(app, ["params", "get", "ucp_code_prefix", "--db", db_path])
    assert result.stdout.strip() == "PLT"

    result = runner.invoke(app, ["params", "set", "--db", db_path])
    assert result.exit_code == 1


def test_cli_cadastro_ucp_e_composicao(tmp_path: Path):
    db_path = _db(tmp_path)

    result = runner.invoke(app, ["cadastro", "produto", "CX-4KG", "--peso", "4", "--dim", "40x25x10", "--db", db_path])
    assert result.exit_code == 0, result.output
    result = runner.invoke(
        app,
        ["cadastro", "pallet", "PBR-1", "--largura", "100", "--comprimento", "100",
         "--altura-max", "120", "--peso-max", "500", "--db", db_path],
    )
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["ucp", "criar", "-u", "joao", "--pallet", "1", "--db", db_path])
    assert result.exit_code == 0, result.output
    assert "UCP000001" in result.stdout

    result = runner.invoke(
        app,
        ["composicao", "validar", "1", "-l", "1:100", "--altura-max", "180", "--json", "--db", db_path],
    )
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["is_valid"] is True
    assert abs(data["metrics"]["efficiency"] - 0.7296) < 1e-3

    result = runner.invoke(app, ["composicao", "otimizar", "1", "-l", "1:150", "--altura-max", "180", "--db", db_path])
    assert result.exit_code == 0, result.output
    assert "Alternativas" in result.stdout


def test_cli_item_e_transferencia(tmp_path: Path):
    db_path = _db(tmp_path)
    runner.invoke(app, ["cadastro", "produto", "SKU-1", "--db", db_path])
    runner.invoke(app, ["embalagem", "adicionar", "1", "UN", "--qtd", "1", "--base", "--db", db_path])
    result = runner.invoke(app, ["embalagem", "adicionar", "1", "CX", "--qtd", "12", "--pai", "1", "--db", db_path])
    assert result.exit_code == 0, result.output

    for _ in range(2):
        assert runner.invoke(app, ["ucp", "criar", "-u", "joao", "--db", db_path]).exit_code == 0

    result = runner.invoke(
        app, ["item", "adicionar", "1", "1", "-u", "joao", "--embalagem", "2", "--qtd-embalagem", "4", "--db", db_path]
    )
    assert result.exit_code == 0, result.output
    assert "48 un." in result.stdout

    result = runner.invoke(app, ["item", "transferir", "1", "2", "30", "-u", "joao", "--db", db_path])
    assert result.exit_code == 0, result.output
    assert "partial" in result.stdout

    result = runner.invoke(app, ["estoque", "separacao", "1", "30", "--db", db_path])
    assert result.exit_code == 0, result.output
    assert "CX" in result.stdout


def test_cli_erros_saem_com_codigo_1(tmp_path: Path):
    db_path = _db(tmp_path)
    result = runner.invoke(app, ["ucp", "mover", "99", "1", "-u", "joao", "--db", db_path])
    assert result.exit_code == 1
    assert "UCP_NOT_FOUND" in result.stdout

    result = runner.invoke(app, ["composicao", "validar", "1", "-l", "abc", "--db", db_path])
    assert result.exit_code == 1
