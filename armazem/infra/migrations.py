# armazem/infra/migrations.py
"""
Migrações de schema usando PRAGMA user_version.

V1: tabelas base (cadastros, UCPs, itens, histórico, transferências)
V2: colunas de controle de concorrência (version) e vínculo histórico → item
V3: views e índices de consulta (ver ``views.py``)

Tudo roda dentro de uma única transação ``BEGIN IMMEDIATE``: dois processos
migrando ao mesmo tempo se serializam e o segundo encontra o banco já em dia.
"""

from __future__ import annotations

from typing import List
from .db import connect, transaction
from .views import apply_views

SCHEMA_VERSION = 3


SCHEMA_V1: List[str] = [
    # Parâmetros K/V
    """
    CREATE TABLE IF NOT EXISTS params (
        chave TEXT PRIMARY KEY,
        valor TEXT
    );
    """,
    # Sequências nomeadas (código de UCP)
    """
    CREATE TABLE IF NOT EXISTS sequences (
        name TEXT PRIMARY KEY,
        value INTEGER NOT NULL DEFAULT 0
    );
    """,
    # Cadastro de produtos
    """
    CREATE TABLE IF NOT EXISTS products (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        sku TEXT NOT NULL UNIQUE,
        name TEXT,
        unit_weight REAL NOT NULL DEFAULT 0,   -- kg
        length REAL,                           -- cm
        width REAL,
        height REAL,
        category TEXT,
        handling_flags TEXT                    -- lista separada por vírgula
    );
    """,
    # Pallets físicos
    """
    CREATE TABLE IF NOT EXISTS pallets (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        code TEXT NOT NULL UNIQUE,
        type TEXT,
        width REAL NOT NULL,                   -- cm
        length REAL NOT NULL,                  -- cm
        max_height REAL NOT NULL,              -- cm
        max_weight REAL NOT NULL,              -- kg
        status TEXT NOT NULL DEFAULT 'disponivel'
    );
    """,
    # Posições de armazenagem
    """
    CREATE TABLE IF NOT EXISTS positions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        code TEXT NOT NULL UNIQUE
    );
    """,
    # Hierarquia de embalagens (arena por produto)
    """
    CREATE TABLE IF NOT EXISTS packaging_types (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        product_id INTEGER NOT NULL,
        name TEXT NOT NULL,
        barcode TEXT,
        base_unit_quantity INTEGER NOT NULL CHECK (base_unit_quantity >= 1),
        is_base_unit INTEGER NOT NULL DEFAULT 0,
        parent_packaging_id INTEGER,
        level INTEGER NOT NULL DEFAULT 1,
        length REAL,
        width REAL,
        height REAL,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL DEFAULT (datetime('now')),
        FOREIGN KEY (product_id) REFERENCES products(id),
        FOREIGN KEY (parent_packaging_id) REFERENCES packaging_types(id)
    );
    """,
    # Unidades de carga paletizada
    """
    CREATE TABLE IF NOT EXISTS ucps (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        code TEXT NOT NULL UNIQUE,
        pallet_id INTEGER,
        position_id INTEGER,
        status TEXT NOT NULL DEFAULT 'active' CHECK (status IN ('active', 'archived')),
        observations TEXT,
        created_by TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY (pallet_id) REFERENCES pallets(id),
        FOREIGN KEY (position_id) REFERENCES positions(id)
    );
    """,
    # Itens de UCP (nunca apagados fisicamente)
    """
    CREATE TABLE IF NOT EXISTS ucp_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        ucp_id INTEGER NOT NULL,
        product_id INTEGER NOT NULL,
        quantity INTEGER NOT NULL CHECK (quantity >= 0),
        lot TEXT,
        expiry_date TEXT,
        internal_code TEXT,
        packaging_type_id INTEGER,
        packaging_quantity REAL,
        is_active INTEGER NOT NULL DEFAULT 1,
        added_by TEXT,
        added_at TEXT,
        removed_by TEXT,
        removed_at TEXT,
        removal_reason TEXT,
        FOREIGN KEY (ucp_id) REFERENCES ucps(id),
        FOREIGN KEY (product_id) REFERENCES products(id),
        FOREIGN KEY (packaging_type_id) REFERENCES packaging_types(id)
    );
    """,
    # Histórico (append-only)
    """
    CREATE TABLE IF NOT EXISTS ucp_history (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        ucp_id INTEGER NOT NULL,
        action TEXT NOT NULL,
        description TEXT NOT NULL,
        old_value TEXT,                        -- JSON
        new_value TEXT,                        -- JSON
        performed_by TEXT NOT NULL,
        timestamp TEXT NOT NULL,
        transfer_id TEXT,
        FOREIGN KEY (ucp_id) REFERENCES ucps(id)
    );
    """,
    # Livro de transferências entre UCPs
    """
    CREATE TABLE IF NOT EXISTS item_transfers (
        id TEXT PRIMARY KEY,
        source_ucp_id INTEGER NOT NULL,
        target_ucp_id INTEGER NOT NULL,
        source_item_id INTEGER NOT NULL,
        target_item_id INTEGER NOT NULL,
        product_id INTEGER NOT NULL,
        quantity INTEGER NOT NULL,
        lot TEXT,
        reason TEXT,
        transfer_type TEXT NOT NULL CHECK (transfer_type IN ('partial', 'complete')),
        performed_by TEXT NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (source_ucp_id) REFERENCES ucps(id),
        FOREIGN KEY (target_ucp_id) REFERENCES ucps(id)
    );
    """,
    # Garantias de unicidade parciais
    """
    CREATE UNIQUE INDEX IF NOT EXISTS ux_ucps_active_pallet
        ON ucps(pallet_id) WHERE status = 'active' AND pallet_id IS NOT NULL;
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS ux_packaging_barcode
        ON packaging_types(barcode) WHERE is_active = 1 AND barcode IS NOT NULL;
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS ux_packaging_base_unit
        ON packaging_types(product_id) WHERE is_active = 1 AND is_base_unit = 1;
    """,
]


def _ensure_column(conn, table: str, column: str, ddl: str) -> None:
    """Adiciona coluna se não existir."""
    cur = conn.execute(f"PRAGMA table_info({table});")
    cols = [r[1] for r in cur.fetchall()]  # r[1] é o nome da coluna
    if column not in cols:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {ddl};")


def _apply_v1(conn) -> None:
    for sql in SCHEMA_V1:
        conn.execute(sql)


def _apply_v2(conn) -> None:
    # contadores de versão para escrita condicionada (otimista)
    _ensure_column(conn, "ucps", "version", "version INTEGER NOT NULL DEFAULT 0")
    _ensure_column(conn, "ucp_items", "version", "version INTEGER NOT NULL DEFAULT 0")
    # histórico de eventos de item aponta para o item
    _ensure_column(conn, "ucp_history", "item_id", "item_id INTEGER")


def _apply_v3(conn) -> None:
    apply_views(conn)


def schema_version(db_path: str) -> int:
    with connect(db_path) as conn:
        return conn.execute("PRAGMA user_version;").fetchone()[0] or 0


def apply_migrations(db_path: str) -> None:
    """Aplica migrações incrementais de acordo com PRAGMA user_version."""
    with transaction(db_path) as conn:
        ver = conn.execute("PRAGMA user_version;").fetchone()[0] or 0

        if ver < 1:
            _apply_v1(conn)
            conn.execute("PRAGMA user_version = 1;")
            ver = 1

        if ver < 2:
            _apply_v2(conn)
            conn.execute("PRAGMA user_version = 2;")
            ver = 2

        if ver < 3:
            _apply_v3(conn)
            conn.execute("PRAGMA user_version = 3;")
            ver = 3


def ensure_schema(db_path: str) -> None:
    """
    Garante o schema antes de montar componentes.

    Banco já em dia custa só a leitura de ``PRAGMA user_version``: nenhum DDL,
    nenhum lock de escrita.
    """
    if schema_version(db_path) < SCHEMA_VERSION:
        apply_migrations(db_path)
