import sqlite3

from armazem.infra.migrations import SCHEMA_VERSION, apply_migrations, ensure_schema, schema_version


def _objects(db_path, kind):
    conn = sqlite3.connect(db_path)
    try:
        return {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type = ?", (kind,))}
    finally:
        conn.close()


def test_ensure_schema_creates_tables_and_views(tmp_path):
    db_path = str(tmp_path / "novo.sqlite")
    ensure_schema(db_path)

    assert schema_version(db_path) == SCHEMA_VERSION
    assert {"ucps", "ucp_items", "packaging_types", "item_transfers"} <= _objects(db_path, "table")
    assert _objects(db_path, "view") == {"vw_estoque_produto", "vw_ucp_ocupacao"}


def test_migrations_are_idempotent(tmp_path):
    db_path = str(tmp_path / "idem.sqlite")
    apply_migrations(db_path)
    apply_migrations(db_path)
    ensure_schema(db_path)

    assert schema_version(db_path) == SCHEMA_VERSION
    assert len(_objects(db_path, "view")) == 2


def test_upgrade_from_v2_adds_views(tmp_path):
    db_path = str(tmp_path / "v2.sqlite")
    apply_migrations(db_path)
    conn = sqlite3.connect(db_path)
    conn.execute("DROP VIEW vw_estoque_produto")
    conn.execute("DROP VIEW vw_ucp_ocupacao")
    conn.execute("PRAGMA user_version = 2")
    conn.commit()
    conn.close()

    ensure_schema(db_path)
    assert schema_version(db_path) == SCHEMA_VERSION
    assert _objects(db_path, "view") == {"vw_estoque_produto", "vw_ucp_ocupacao"}
