# armazem/infra/db.py
"""
Utilidades de conexão SQLite.

- ``connect``: leitura/escrita simples (commit ao sair, rollback em exceção).
- ``transaction``: mutação de várias linhas em uma única transação
  ``BEGIN IMMEDIATE`` (serializa escritores no arquivo).

Erros do sqlite3 nunca atravessam estas funções: viram ``StorageError``.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Iterator, Optional

from armazem.config import DEFAULTS
from armazem.domain.errors import StorageError


def _open(db_path: str, isolation_level: Optional[str] = "") -> sqlite3.Connection:
    try:
        conn = sqlite3.connect(db_path, timeout=DEFAULTS.busy_timeout_s, isolation_level=isolation_level)
    except sqlite3.Error as e:
        raise StorageError(f"Falha ao abrir banco: {e}", details={"db_path": db_path}) from e
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


@contextmanager
def connect(db_path: str) -> Iterator[sqlite3.Connection]:
    """
    Context manager para abrir conexão SQLite com:
    - foreign_keys ON
    - row_factory = sqlite3.Row
    - commit ao sair (rollback em caso de exceção)
    """
    conn = _open(db_path)
    try:
        yield conn
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        raise StorageError(str(e)) from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def transaction(db_path: str) -> Iterator[sqlite3.Connection]:
    """
    Abre uma transação explícita ``BEGIN IMMEDIATE``.

    O lock de escrita é obtido na entrada; um segundo escritor espera até
    ``busy_timeout_s`` e então falha com ``StorageError``. Tudo dentro do
    bloco é confirmado junto ou desfeito junto.
    """
    conn = _open(db_path, isolation_level=None)
    try:
        try:
            conn.execute("BEGIN IMMEDIATE;")
        except sqlite3.Error as e:
            raise StorageError(f"Não foi possível obter lock de escrita: {e}") from e
        try:
            yield conn
            conn.execute("COMMIT;")
        except sqlite3.Error as e:
            conn.execute("ROLLBACK;")
            raise StorageError(str(e)) from e
        except BaseException:
            conn.execute("ROLLBACK;")
            raise
    finally:
        conn.close()


@contextmanager
def use_conn(db_path: str, conn: Optional[sqlite3.Connection] = None) -> Iterator[sqlite3.Connection]:
    """Reaproveita ``conn`` quando informada; senão abre uma conexão própria."""
    if conn is not None:
        try:
            yield conn
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e
        return
    with connect(db_path) as own:
        yield own
