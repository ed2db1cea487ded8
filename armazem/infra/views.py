# armazem/infra/views.py
"""
Criação de views auxiliares para consultas frequentes.

Views criadas:
- vw_estoque_produto: consolida itens ativos por produto (total, itens, locais).
- vw_ucp_ocupacao:    ocupação de cada UCP (itens ativos e quantidade).

Obs.:
- As views assumem que as migrações V1→V2 já foram aplicadas.
- Um conjunto de índices úteis também é criado, caso não existam.
- Nada aqui é removido/recriado: as views entram no schema uma única vez
  (migração V3) e leitores concorrentes nunca veem o schema mudar.
"""

from __future__ import annotations

from typing import List


VIEWS: List[str] = [
    # Estoque consolidado (por produto)
    # locais = pares distintos (pallet, posição) das UCPs donas
    """
    CREATE VIEW IF NOT EXISTS vw_estoque_produto AS
    SELECT
        i.product_id,
        COALESCE(SUM(i.quantity), 0) AS total_base_units,
        COUNT(*)                     AS items_count,
        (
            SELECT COUNT(*) FROM (
                SELECT DISTINCT u2.pallet_id, u2.position_id
                FROM ucp_items i2
                JOIN ucps u2 ON u2.id = i2.ucp_id
                WHERE i2.is_active = 1 AND i2.product_id = i.product_id
            )
        )                            AS locations_count
    FROM ucp_items i
    WHERE i.is_active = 1
    GROUP BY i.product_id;
    """,
    # Ocupação por UCP
    """
    CREATE VIEW IF NOT EXISTS vw_ucp_ocupacao AS
    SELECT
        u.id,
        u.code,
        u.status,
        u.pallet_id,
        u.position_id,
        COUNT(i.id)                  AS active_items,
        COALESCE(SUM(i.quantity), 0) AS total_quantity
    FROM ucps u
    LEFT JOIN ucp_items i ON i.ucp_id = u.id AND i.is_active = 1
    GROUP BY u.id;
    """,
]

INDEXES: List[str] = [
    "CREATE INDEX IF NOT EXISTS idx_items_ucp       ON ucp_items(ucp_id, is_active);",
    "CREATE INDEX IF NOT EXISTS idx_items_product   ON ucp_items(product_id, is_active);",
    "CREATE INDEX IF NOT EXISTS idx_items_lot       ON ucp_items(lot);",
    "CREATE INDEX IF NOT EXISTS idx_items_expiry    ON ucp_items(expiry_date);",
    "CREATE INDEX IF NOT EXISTS idx_history_ucp     ON ucp_history(ucp_id, timestamp);",
    "CREATE INDEX IF NOT EXISTS idx_history_xfer    ON ucp_history(transfer_id);",
    "CREATE INDEX IF NOT EXISTS idx_packaging_prod  ON packaging_types(product_id, is_active);",
    "CREATE INDEX IF NOT EXISTS idx_ucps_status     ON ucps(status);",
]


def apply_views(conn) -> None:
    """Cria views e índices na conexão/transação informada."""
    for sql in VIEWS + INDEXES:
        conn.execute(sql)
