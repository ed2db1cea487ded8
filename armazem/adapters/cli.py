# armazem/adapters/cli.py
"""
CLI do núcleo de armazém (Typer).

Comandos principais:
- migrate                      -> aplica migrações e cria views
- logs                         -> últimas linhas de um log
- params set/get/show          -> gerencia parâmetros globais
- cadastro produto/pallet/...  -> cadastros de apoio
- ucp criar/mover/desmontar/reativar/mostrar/historico/listar
- item adicionar/remover/transferir/importar
- embalagem adicionar/remover/arvore/barcode
- estoque consolidar/por-embalagem/separacao
- composicao validar/otimizar
- rel vencimentos/vazias/painel/lote/ocupacao
"""

from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from armazem.adapters.parsers import parse_dimensoes, parse_flags
from armazem.config import DB_PATH, DEFAULTS
from armazem.domain.errors import ArmazemError, ValidationError
from armazem.domain.models import CompositionResult, Ucp
from armazem.infra.logger import get_log_summary
from armazem.infra.migrations import apply_migrations, ensure_schema
from armazem.infra.repositories import ParamsRepo
from armazem.usecases import operacoes as ops
from armazem.usecases.cadastros import (
    register_pallet,
    register_position,
    register_product,
    run_importar_produtos,
)
from armazem.usecases.importar_itens import run_importar_itens
from armazem.usecases.relatorios import (
    relatorio_dashboard,
    relatorio_itens_a_vencer,
    relatorio_lote,
    relatorio_ocupacao,
    relatorio_ucps_vazias,
)


app = typer.Typer(help="Armazém — UCPs, embalagens e composição de pallets")
console = Console()

DB_OPT = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")
USER_OPT = typer.Option(..., "--usuario", "-u", help="Responsável pela operação")


# -----------------------
# util
# -----------------------

def _to_jsonable(obj: Any) -> Any:
    if is_dataclass(obj):
        return asdict(obj)
    if isinstance(obj, list):
        return [_to_jsonable(o) for o in obj]
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    return obj


def _print_json(obj) -> None:
    typer.echo(json.dumps(_to_jsonable(obj), ensure_ascii=False, indent=2, default=list))


def _fail(e: ArmazemError) -> None:
    console.print(Panel(f"[bold]{e.code}[/bold]\n{e.message}", title="Erro", border_style="red"))
    raise typer.Exit(code=1)


def _display_rows(columns: List[str], rows: List[list], msg: Optional[str], title: str) -> None:
    if not rows:
        console.print(Panel(msg or "Nenhum dado encontrado", title=title, border_style="yellow"))
        return
    table = Table(title=title, box=box.ROUNDED)
    for col in columns:
        justify = "right" if col.lower() in ("quantidade", "valor", "item") else "left"
        table.add_column(col, justify=justify)
    for r in rows:
        table.add_row(*[str(v) for v in r])
    console.print(table)


def _display_ucp(ucp: Ucp, title: str) -> None:
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Campo")
    table.add_column("Valor")
    for key in ("id", "code", "status", "pallet_id", "position_id", "observations", "created_by", "updated_at"):
        val = getattr(ucp, key)
        table.add_row(key, "" if val is None else str(val))
    console.print(table)


def _display_composition(res: CompositionResult, title: str) -> None:
    style = "green" if res.is_valid else "red"
    m = res.metrics
    body = [
        f"Válida: [bold {style}]{'sim' if res.is_valid else 'não'}[/]",
        f"Peso: {m.total_weight:.2f} / {res.limits.get('weight', 0):.2f} kg",
        f"Volume: {m.total_volume:.3f} / {res.limits.get('volume', 0):.3f} m³",
        f"Altura: {m.total_height:.1f} / {res.limits.get('height', 0):.1f} cm",
        f"Eficiência: {m.efficiency * 100:.1f}%",
    ]
    console.print(Panel("\n".join(body), title=title, border_style=style))
    if res.violations:
        t = Table(title="Violações", box=box.ROUNDED)
        t.add_column("Tipo")
        t.add_column("Severidade")
        t.add_column("Mensagem")
        for v in res.violations:
            color = "red" if v.severity == "error" else "yellow"
            t.add_row(v.type, f"[{color}]{v.severity}[/]", v.message)
        console.print(t)
    for w in res.warnings:
        console.print(f"[yellow]! {w}[/]")


def _parse_linha(txt: str) -> Dict[str, Any]:
    """"produto:quantidade[:embalagem]" -> dict de linha de composição."""
    parts = [p.strip() for p in txt.split(":")]
    if len(parts) not in (2, 3) or not all(parts):
        raise ValidationError(f"Linha inválida: {txt!r} (use produto:quantidade[:embalagem])")
    line = {"product_id": parts[0], "quantity": parts[1]}
    if len(parts) == 3:
        line["packaging_type_id"] = parts[2]
    return line


# -----------------------
# comandos de infra
# -----------------------

@app.command("migrate")
def cmd_migrate(db_path: str = DB_OPT):
    """Aplica migrações pendentes (tabelas, views e índices)."""
    apply_migrations(db_path)
    typer.echo(f">> Migrações aplicadas e views criadas em: {db_path}")


@app.command("logs")
def cmd_logs(
    tipo: str = typer.Option("transactions", "--tipo", help="transactions | ucps | transferencias | database | system"),
    linhas: int = typer.Option(50, "--linhas"),
):
    """Mostra as últimas linhas de um log."""
    typer.echo(get_log_summary(tipo, linhas))


params_app = typer.Typer(help="Gerenciar parâmetros globais (composição, códigos, relatórios).")
app.add_typer(params_app, name="params")

PARAM_KEYS = (
    "ucp_code_prefix",
    "target_efficiency",
    "warning_threshold",
    "low_efficiency_threshold",
    "max_alternatives",
    "near_expiry_days",
)


@params_app.command("set")
def cmd_params_set(
    ucp_code_prefix: Optional[str] = typer.Option(None, help="Prefixo dos códigos de UCP (ex.: UCP)"),
    target_efficiency: Optional[float] = typer.Option(None, help="Alvo de eficiência (ex.: 0.85)"),
    warning_threshold: Optional[float] = typer.Option(None, help="Utilização que gera alerta (ex.: 0.9)"),
    low_efficiency_threshold: Optional[float] = typer.Option(None, help="Eficiência considerada baixa (ex.: 0.6)"),
    max_alternatives: Optional[int] = typer.Option(None, help="Máximo de alternativas na otimização"),
    near_expiry_days: Optional[int] = typer.Option(None, help="Janela padrão do relatório de vencimentos"),
    db_path: str = DB_OPT,
):
    """Define parâmetros globais (apenas os informados são alterados)."""
    ensure_schema(db_path)
    values = {
        "ucp_code_prefix": ucp_code_prefix.upper() if ucp_code_prefix else None,
        "target_efficiency": target_efficiency,
        "warning_threshold": warning_threshold,
        "low_efficiency_threshold": low_efficiency_threshold,
        "max_alternatives": max_alternatives,
        "near_expiry_days": near_expiry_days,
    }
    items = [(k, str(v)) for k, v in values.items() if v is not None]
    if not items:
        typer.echo("Nada a alterar. Informe pelo menos um parâmetro.")
        raise typer.Exit(code=1)
    ParamsRepo(db_path).set_many(items)
    typer.echo(">> Parâmetros atualizados.")


@params_app.command("get")
def cmd_params_get(
    chave: str = typer.Argument(..., help="Ex.: target_efficiency | warning_threshold"),
    db_path: str = DB_OPT,
):
    """Mostra um parâmetro específico."""
    ensure_schema(db_path)
    val = ParamsRepo(db_path).get(chave)
    typer.echo("(None)" if val is None else val)


@params_app.command("show")
def cmd_params_show(
    as_json: bool = typer.Option(False, "--json", help="Saída em JSON"),
    db_path: str = DB_OPT,
):
    """Exibe os parâmetros efetivos (com fallback para defaults)."""
    ensure_schema(db_path)
    repo = ParamsRepo(db_path)
    effective = {k: repo.get(k, str(getattr(DEFAULTS, k))) for k in PARAM_KEYS}
    if as_json:
        _print_json(effective)
        return
    table = Table(title="Parâmetros do Sistema")
    table.add_column("Parâmetro")
    table.add_column("Valor Atual")
    table.add_column("Valor Padrão")
    for k in PARAM_KEYS:
        table.add_row(k, effective[k], str(getattr(DEFAULTS, k)))
    console.print(table)
    console.print(f"[dim]Banco de dados: {db_path}[/dim]")


# -----------------------
# cadastros
# -----------------------

cad_app = typer.Typer(help="Cadastros de apoio: produtos, pallets e posições")
app.add_typer(cad_app, name="cadastro")


@cad_app.command("produto")
def cmd_cad_produto(
    sku: str = typer.Argument(...),
    nome: Optional[str] = typer.Option(None, "--nome"),
    peso: float = typer.Option(0.0, "--peso", help="Peso unitário em kg"),
    dimensoes: Optional[str] = typer.Option(None, "--dim", help="CxLxA em cm (ex.: 40x25x10)"),
    categoria: Optional[str] = typer.Option(None, "--categoria"),
    flags: Optional[str] = typer.Option(None, "--flags", help="Flags de manuseio (ex.: refrigerated,food)"),
    db_path: str = DB_OPT,
):
    """Cadastra um produto."""
    dims = parse_dimensoes(dimensoes) if dimensoes else None
    if dimensoes and dims is None:
        _fail(ValidationError(f"Dimensões inválidas: {dimensoes}"))
    try:
        p = register_product({
            "sku": sku,
            "name": nome,
            "unit_weight": peso,
            "length": dims[0] if dims else None,
            "width": dims[1] if dims else None,
            "height": dims[2] if dims else None,
            "category": categoria,
            "handling_flags": parse_flags(flags),
        }, db_path=db_path)
    except ArmazemError as e:
        _fail(e)
    typer.echo(f">> Produto {p.sku} cadastrado (id={p.id}).")


@cad_app.command("pallet")
def cmd_cad_pallet(
    code: str = typer.Argument(...),
    largura: float = typer.Option(..., "--largura", help="cm"),
    comprimento: float = typer.Option(..., "--comprimento", help="cm"),
    altura_max: float = typer.Option(..., "--altura-max", help="cm"),
    peso_max: float = typer.Option(..., "--peso-max", help="kg"),
    tipo: Optional[str] = typer.Option(None, "--tipo"),
    db_path: str = DB_OPT,
):
    """Cadastra um pallet físico."""
    try:
        p = register_pallet({
            "code": code,
            "type": tipo,
            "width": largura,
            "length": comprimento,
            "max_height": altura_max,
            "max_weight": peso_max,
        }, db_path=db_path)
    except ArmazemError as e:
        _fail(e)
    typer.echo(f">> Pallet {p.code} cadastrado (id={p.id}).")


@cad_app.command("posicao")
def cmd_cad_posicao(code: str = typer.Argument(...), db_path: str = DB_OPT):
    """Cadastra uma posição de armazenagem."""
    try:
        p = register_position(code, db_path=db_path)
    except ArmazemError as e:
        _fail(e)
    typer.echo(f">> Posição {p.code} cadastrada (id={p.id}).")


@cad_app.command("importar-produtos")
def cmd_cad_importar(path: str = typer.Argument(..., help="XLSX de produtos"), db_path: str = DB_OPT):
    """Cadastra produtos a partir de um XLSX."""
    info = run_importar_produtos(path, db_path=db_path)
    console.print(Panel(
        f"Inseridos: {info['inseridos']}\nIgnorados (já existentes): {len(info['ignorados'])}",
        title="Importação de Produtos",
    ))


# -----------------------
# UCPs
# -----------------------

ucp_app = typer.Typer(help="Ciclo de vida das UCPs")
app.add_typer(ucp_app, name="ucp")


@ucp_app.command("criar")
def cmd_ucp_criar(
    usuario: str = USER_OPT,
    code: Optional[str] = typer.Option(None, "--codigo", help="Código (gerado se omitido)"),
    pallet_id: Optional[int] = typer.Option(None, "--pallet"),
    position_id: Optional[int] = typer.Option(None, "--posicao"),
    observacoes: Optional[str] = typer.Option(None, "--obs"),
    db_path: str = DB_OPT,
):
    """Cria uma UCP ativa."""
    try:
        ucp = ops.create_ucp({
            "code": code,
            "pallet_id": pallet_id,
            "position_id": position_id,
            "observations": observacoes,
            "created_by": usuario,
        }, db_path=db_path)
    except ArmazemError as e:
        _fail(e)
    _display_ucp(ucp, "UCP Criada")


@ucp_app.command("mover")
def cmd_ucp_mover(
    ucp_id: int = typer.Argument(...),
    position_id: int = typer.Argument(...),
    usuario: str = USER_OPT,
    motivo: Optional[str] = typer.Option(None, "--motivo"),
    db_path: str = DB_OPT,
):
    """Move a UCP para outra posição."""
    try:
        ucp = ops.move_ucp(ucp_id, position_id, usuario, motivo, db_path=db_path)
    except ArmazemError as e:
        _fail(e)
    _display_ucp(ucp, "UCP Movida")


@ucp_app.command("desmontar")
def cmd_ucp_desmontar(
    ucp_id: int = typer.Argument(...),
    usuario: str = USER_OPT,
    motivo: Optional[str] = typer.Option(None, "--motivo"),
    db_path: str = DB_OPT,
):
    """Arquiva uma UCP vazia e libera pallet e posição."""
    try:
        ucp = ops.dismantle_ucp(ucp_id, usuario, motivo, db_path=db_path)
    except ArmazemError as e:
        _fail(e)
    _display_ucp(ucp, "UCP Desmontada")


@ucp_app.command("reativar")
def cmd_ucp_reativar(
    ucp_id: int = typer.Argument(...),
    usuario: str = USER_OPT,
    pallet_id: Optional[int] = typer.Option(None, "--pallet"),
    position_id: Optional[int] = typer.Option(None, "--posicao"),
    db_path: str = DB_OPT,
):
    """Reativa uma UCP arquivada (opcionalmente em um pallet/posição)."""
    try:
        ucp = ops.reactivate_ucp(ucp_id, usuario, pallet_id=pallet_id, position_id=position_id, db_path=db_path)
    except ArmazemError as e:
        _fail(e)
    _display_ucp(ucp, "UCP Reativada")


@ucp_app.command("mostrar")
def cmd_ucp_mostrar(code: str = typer.Argument(..., help="Código da UCP"), db_path: str = DB_OPT):
    """Mostra a UCP e seus itens ativos."""
    try:
        c = ops.montar_componentes(db_path)
        ucp = c.lifecycle.get_by_code(code)
        full = c.lifecycle.get_with_items(ucp.id)
    except ArmazemError as e:
        _fail(e)
    _display_ucp(full.ucp, f"UCP {full.ucp.code}")
    _display_rows(
        ["Item", "Produto", "Quantidade", "Lote", "Validade"],
        [[i.id, i.product_id, i.quantity, i.lot or "", i.expiry_date or ""] for i in full.items],
        "UCP sem itens ativos.",
        f"Itens ({full.total_items} / {full.total_quantity} un.)",
    )


@ucp_app.command("historico")
def cmd_ucp_historico(
    ucp_id: int = typer.Argument(...),
    desde: Optional[str] = typer.Option(None, "--desde", help="ISO (YYYY-MM-DD)"),
    ate: Optional[str] = typer.Option(None, "--ate", help="ISO (YYYY-MM-DD)"),
    db_path: str = DB_OPT,
):
    """Histórico de eventos da UCP."""
    try:
        hist = ops.ucp_history(ucp_id, since=desde, until=ate, db_path=db_path)
    except ArmazemError as e:
        _fail(e)
    _display_rows(
        ["Quando", "Ação", "Descrição", "Por"],
        [[h.timestamp, h.action, h.description, h.performed_by] for h in hist],
        "Sem eventos.",
        f"Histórico da UCP {ucp_id}",
    )


@ucp_app.command("listar")
def cmd_ucp_listar(
    status: Optional[str] = typer.Option(None, "--status", help="active | archived"),
    vazias: bool = typer.Option(False, "--vazias", help="Somente UCPs sem itens ativos"),
    db_path: str = DB_OPT,
):
    """Lista UCPs com filtros."""
    try:
        c = ops.montar_componentes(db_path)
        ucps = c.lifecycle.list(status=status, empty=True if vazias else None)
    except ArmazemError as e:
        _fail(e)
    _display_rows(
        ["Código", "Status", "Pallet", "Posição"],
        [[u.code, u.status, u.pallet_id or "", u.position_id or ""] for u in ucps],
        "Nenhuma UCP encontrada.",
        "UCPs",
    )


# -----------------------
# itens
# -----------------------

item_app = typer.Typer(help="Itens de UCP: adicionar, remover, transferir, importar")
app.add_typer(item_app, name="item")


@item_app.command("adicionar")
def cmd_item_adicionar(
    ucp_id: int = typer.Argument(...),
    product_id: int = typer.Argument(...),
    usuario: str = USER_OPT,
    quantidade: Optional[int] = typer.Option(None, "--qtd", help="Quantidade em unidades base"),
    embalagem: Optional[int] = typer.Option(None, "--embalagem", help="Id da embalagem"),
    qtd_embalagem: Optional[int] = typer.Option(None, "--qtd-embalagem", help="Quantidade de embalagens"),
    lote: Optional[str] = typer.Option(None, "--lote"),
    validade: Optional[str] = typer.Option(None, "--validade", help="YYYY-MM-DD"),
    db_path: str = DB_OPT,
):
    """Adiciona um item a uma UCP ativa."""
    try:
        item = ops.add_item(ucp_id, {
            "product_id": product_id,
            "quantity": quantidade,
            "packaging_type_id": embalagem,
            "packaging_quantity": qtd_embalagem,
            "lot": lote,
            "expiry_date": validade,
        }, usuario, db_path=db_path)
    except ArmazemError as e:
        _fail(e)
    typer.echo(f">> Item {item.id} adicionado: {item.quantity} un.")


@item_app.command("remover")
def cmd_item_remover(
    item_id: int = typer.Argument(...),
    usuario: str = USER_OPT,
    motivo: Optional[str] = typer.Option(None, "--motivo"),
    db_path: str = DB_OPT,
):
    """Remove (desativa) um item."""
    try:
        ops.remove_item(item_id, usuario, motivo, db_path=db_path)
    except ArmazemError as e:
        _fail(e)
    typer.echo(f">> Item {item_id} removido.")


@item_app.command("transferir")
def cmd_item_transferir(
    item_id: int = typer.Argument(...),
    target_ucp_id: int = typer.Argument(...),
    quantidade: int = typer.Argument(...),
    usuario: str = USER_OPT,
    motivo: Optional[str] = typer.Option(None, "--motivo"),
    db_path: str = DB_OPT,
):
    """Transfere (total ou parcialmente) um item para outra UCP."""
    try:
        res = ops.transfer_item(item_id, target_ucp_id, quantidade, usuario, motivo, db_path=db_path)
    except ArmazemError as e:
        _fail(e)
    console.print(Panel(
        f"Tipo: {res.transfer_type}\nQuantidade: {res.quantity}\n"
        f"Item origem: {res.source_item_id}\nItem destino: {res.target_item_id}",
        title=f"Transferência {res.transfer_id}",
        border_style="green",
    ))


@item_app.command("importar")
def cmd_item_importar(
    path: str = typer.Argument(..., help="XLSX com UCP, SKU, quantidade, lote, validade"),
    usuario: str = USER_OPT,
    db_path: str = DB_OPT,
):
    """Carrega itens em UCPs a partir de um XLSX."""
    info = run_importar_itens(path, usuario, db_path=db_path)
    console.print(Panel(
        f"Inseridos: {info['inseridos']}\nErros: {len(info['erros'])}",
        title="Importação de Itens",
    ))
    if info["erros"]:
        _display_rows(
            ["Linha", "Código", "Erro"],
            [[e["linha"], e["code"], e["message"]] for e in info["erros"]],
            None,
            "Erros Encontrados",
        )


# -----------------------
# embalagens
# -----------------------

emb_app = typer.Typer(help="Hierarquia de embalagens")
app.add_typer(emb_app, name="embalagem")


@emb_app.command("adicionar")
def cmd_emb_adicionar(
    product_id: int = typer.Argument(...),
    nome: str = typer.Argument(...),
    quantidade: int = typer.Option(..., "--qtd", help="Unidades base por embalagem"),
    base: bool = typer.Option(False, "--base", help="É a unidade base"),
    pai: Optional[int] = typer.Option(None, "--pai", help="Id da embalagem pai"),
    barcode: Optional[str] = typer.Option(None, "--barcode"),
    dimensoes: Optional[str] = typer.Option(None, "--dim", help="CxLxA em cm"),
    db_path: str = DB_OPT,
):
    """Cadastra uma embalagem na hierarquia do produto."""
    dims = parse_dimensoes(dimensoes) if dimensoes else None
    if dimensoes and dims is None:
        _fail(ValidationError(f"Dimensões inválidas: {dimensoes}"))
    try:
        pkg = ops.add_packaging_type({
            "product_id": product_id,
            "name": nome,
            "base_unit_quantity": quantidade,
            "is_base_unit": base,
            "parent_packaging_id": pai,
            "barcode": barcode,
            "length": dims[0] if dims else None,
            "width": dims[1] if dims else None,
            "height": dims[2] if dims else None,
        }, db_path=db_path)
    except ArmazemError as e:
        _fail(e)
    typer.echo(f">> Embalagem {pkg.name} (id={pkg.id}, nível {pkg.level}) cadastrada.")


@emb_app.command("remover")
def cmd_emb_remover(packaging_id: int = typer.Argument(...), db_path: str = DB_OPT):
    """Desativa uma embalagem."""
    try:
        ops.remove_packaging_type(packaging_id, db_path=db_path)
    except ArmazemError as e:
        _fail(e)
    typer.echo(f">> Embalagem {packaging_id} removida.")


@emb_app.command("arvore")
def cmd_emb_arvore(product_id: int = typer.Argument(...), db_path: str = DB_OPT):
    """Mostra a hierarquia de embalagens do produto."""
    try:
        nodes = ops.packaging_tree(product_id, db_path=db_path)
    except ArmazemError as e:
        _fail(e)
    _display_rows(
        ["Id", "Nível", "Nome", "Unid. base", "Pai", "Filhos"],
        [
            [n.packaging.id, n.packaging.level, n.packaging.name, n.packaging.base_unit_quantity,
             n.packaging.parent_packaging_id or "", ",".join(str(c) for c in n.children)]
            for n in nodes
        ],
        "Produto sem embalagens.",
        f"Embalagens do produto {product_id}",
    )


@emb_app.command("barcode")
def cmd_emb_barcode(barcode: str = typer.Argument(...), db_path: str = DB_OPT):
    """Localiza uma embalagem pelo código de barras."""
    try:
        pkg = ops.montar_componentes(db_path).hierarchy.get_by_barcode(barcode)
    except ArmazemError as e:
        _fail(e)
    _print_json(pkg)


# -----------------------
# estoque
# -----------------------

est_app = typer.Typer(help="Estoque consolidado e separação")
app.add_typer(est_app, name="estoque")


@est_app.command("consolidar")
def cmd_est_consolidar(product_id: int = typer.Argument(...), db_path: str = DB_OPT):
    """Total em unidades base, itens e locais de um produto."""
    try:
        s = ops.consolidate_stock(product_id, db_path=db_path)
    except ArmazemError as e:
        _fail(e)
    _display_rows(
        ["Indicador", "Valor"],
        [["Unidades base", s.total_base_units], ["Itens ativos", s.items_count], ["Locais", s.locations_count]],
        None,
        f"Estoque do produto {product_id}",
    )


@est_app.command("por-embalagem")
def cmd_est_por_embalagem(product_id: int = typer.Argument(...), db_path: str = DB_OPT):
    """Projeção do estoque em cada nível de embalagem."""
    try:
        rows = ops.stock_by_packaging(product_id, db_path=db_path)
    except ArmazemError as e:
        _fail(e)
    _display_rows(
        ["Embalagem", "Unid. base", "Embalagens", "Sobra (un.)"],
        [[r.packaging_type.name, r.packaging_type.base_unit_quantity, r.available_packages, r.remaining_base_units]
         for r in rows],
        "Produto sem embalagens ativas.",
        f"Estoque por embalagem (produto {product_id})",
    )


@est_app.command("separacao")
def cmd_est_separacao(
    product_id: int = typer.Argument(...),
    quantidade: int = typer.Argument(..., help="Unidades base solicitadas"),
    db_path: str = DB_OPT,
):
    """Plano de separação nas maiores embalagens."""
    try:
        plan = ops.resolve_picking_plan(product_id, quantidade, db_path=db_path)
    except ArmazemError as e:
        _fail(e)
    _display_rows(
        ["Embalagem", "Quantidade", "Unid. base"],
        [[ln.packaging_type.name, ln.count, ln.base_units] for ln in plan.plan],
        None,
        f"Plano de separação ({plan.total_planned} un.)",
    )
    if not plan.can_fulfill:
        console.print("[bold red]Estoque insuficiente para atender o pedido.[/]")


# -----------------------
# composição
# -----------------------

comp_app = typer.Typer(help="Validação e otimização de composição de pallet")
app.add_typer(comp_app, name="composicao")


def _composition_data(pallet_id, linhas, peso_max, volume_max, altura_max) -> Dict[str, Any]:
    return {
        "pallet_id": pallet_id,
        "lines": [_parse_linha(ln) for ln in linhas],
        "max_weight": peso_max,
        "max_volume": volume_max,
        "max_height": altura_max,
    }


@comp_app.command("validar")
def cmd_comp_validar(
    pallet_id: int = typer.Argument(...),
    linhas: List[str] = typer.Option(..., "--linha", "-l", help="produto:quantidade[:embalagem]"),
    peso_max: Optional[float] = typer.Option(None, "--peso-max"),
    volume_max: Optional[float] = typer.Option(None, "--volume-max"),
    altura_max: Optional[float] = typer.Option(None, "--altura-max"),
    as_json: bool = typer.Option(False, "--json"),
    db_path: str = DB_OPT,
):
    """Valida uma composição contra a capacidade do pallet."""
    try:
        res = ops.validate_composition(
            _composition_data(pallet_id, linhas, peso_max, volume_max, altura_max), db_path=db_path
        )
    except ArmazemError as e:
        _fail(e)
    if as_json:
        _print_json(res)
    else:
        _display_composition(res, f"Composição no pallet {pallet_id}")


@comp_app.command("otimizar")
def cmd_comp_otimizar(
    pallet_id: int = typer.Argument(...),
    linhas: List[str] = typer.Option(..., "--linha", "-l", help="produto:quantidade[:embalagem]"),
    peso_max: Optional[float] = typer.Option(None, "--peso-max"),
    volume_max: Optional[float] = typer.Option(None, "--volume-max"),
    altura_max: Optional[float] = typer.Option(None, "--altura-max"),
    db_path: str = DB_OPT,
):
    """Sugere alternativas de composição ordenadas pela eficiência-alvo."""
    try:
        opt = ops.optimize_composition(
            _composition_data(pallet_id, linhas, peso_max, volume_max, altura_max), db_path=db_path
        )
    except ArmazemError as e:
        _fail(e)
    _display_composition(opt.original, "Composição original")
    _display_rows(
        ["#", "Estratégia", "Eficiência", "Justificativa"],
        [[i, a.strategy, f"{a.result.metrics.efficiency * 100:.1f}%", a.rationale]
         for i, a in enumerate(opt.alternatives, start=1)],
        "Nenhuma alternativa dentro da capacidade.",
        "Alternativas",
    )


# -----------------------
# relatórios
# -----------------------

rel_app = typer.Typer(help="Relatórios operacionais")
app.add_typer(rel_app, name="rel")


@rel_app.command("vencimentos")
def rel_vencimentos(
    janela_dias: Optional[int] = typer.Option(None, help="Dias até o vencimento (padrão: parâmetro)"),
    detalhar_por_lote: bool = typer.Option(True, help="True=detalhe por item; False=agregado por SKU"),
    db_path: str = DB_OPT,
):
    """Itens próximos ao vencimento (ou vencidos)."""
    cols, rows, msg = relatorio_itens_a_vencer(janela_dias=janela_dias, detalhar_por_lote=detalhar_por_lote, db_path=db_path)
    _display_rows(cols, rows, msg, "Itens a Vencer")


@rel_app.command("vazias")
def rel_vazias(db_path: str = DB_OPT):
    """UCPs ativas sem itens."""
    _display_rows(*relatorio_ucps_vazias(db_path=db_path), "UCPs Vazias")


@rel_app.command("painel")
def rel_painel(db_path: str = DB_OPT):
    """Contagens gerais."""
    _display_rows(*relatorio_dashboard(db_path=db_path), "Painel")


@rel_app.command("lote")
def rel_lote(lote: str = typer.Argument(...), db_path: str = DB_OPT):
    """Rastreia um lote pelas UCPs."""
    _display_rows(*relatorio_lote(lote, db_path=db_path), f"Lote {lote}")


@rel_app.command("ocupacao")
def rel_ocupacao(
    status: Optional[str] = typer.Option("active", "--status", help="active | archived"),
    db_path: str = DB_OPT,
):
    """Itens e quantidade por UCP."""
    _display_rows(*relatorio_ocupacao(status=status, db_path=db_path), "Ocupação das UCPs")


# Entry point opcional:
def main():
    app()


if __name__ == "__main__":
    main()
