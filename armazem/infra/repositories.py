# armazem/infra/repositories.py
"""
Repositórios (DAO) para acesso e manipulação de dados no SQLite.

Classes:
- ParamsRepo
- ProductRepo
- PalletRepo
- PositionRepo
- PackagingRepo
- UcpRepo
- UcpItemRepo
- HistoryRepo
- TransferRepo

Todo método aceita ``conn`` opcional: quando informado, a operação participa
da transação aberta pelo chamador (ver ``infra.db.transaction``); caso
contrário abre sua própria conexão.

Escritas condicionadas (``expected_version``) devolvem o número de linhas
afetadas; zero significa que o registro mudou desde a leitura.
"""

from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from armazem.domain.models import (
    Dimensions,
    PackagingType,
    Pallet,
    Position,
    Product,
    Ucp,
    UcpHistory,
    UcpItem,
    UcpStatus,
)
from .db import transaction, use_conn


# -------------------------
# Helpers
# -------------------------

def _as_dict(row: Any) -> Dict[str, Any]:
    if isinstance(row, dict):
        return dict(row)
    if is_dataclass(row):
        return asdict(row)
    raise TypeError("row must be dict or dataclass")


def now_iso() -> str:
    return datetime.now().isoformat(timespec="microseconds")


def _dims(r) -> Optional[Dimensions]:
    if r["length"] is None or r["width"] is None or r["height"] is None:
        return None
    return Dimensions(float(r["length"]), float(r["width"]), float(r["height"]))


def _flags(raw: Optional[str]) -> frozenset:
    if not raw:
        return frozenset()
    return frozenset(f.strip().lower() for f in str(raw).split(",") if f.strip())


def _json_or_none(value: Optional[Dict[str, Any]]) -> Optional[str]:
    return json.dumps(value, ensure_ascii=False, sort_keys=True) if value is not None else None


def _row_to_product(r) -> Product:
    return Product(
        id=r["id"],
        sku=r["sku"],
        name=r["name"],
        unit_weight=float(r["unit_weight"] or 0.0),
        dimensions=_dims(r),
        category=r["category"],
        handling_flags=_flags(r["handling_flags"]),
    )


def _row_to_pallet(r) -> Pallet:
    return Pallet(
        id=r["id"],
        code=r["code"],
        type=r["type"],
        width=float(r["width"]),
        length=float(r["length"]),
        max_height=float(r["max_height"]),
        max_weight=float(r["max_weight"]),
        status=r["status"],
    )


def _row_to_packaging(r) -> PackagingType:
    return PackagingType(
        id=r["id"],
        product_id=r["product_id"],
        name=r["name"],
        base_unit_quantity=int(r["base_unit_quantity"]),
        is_base_unit=bool(r["is_base_unit"]),
        parent_packaging_id=r["parent_packaging_id"],
        level=int(r["level"]),
        barcode=r["barcode"],
        dimensions=_dims(r),
        is_active=bool(r["is_active"]),
    )


def _row_to_ucp(r) -> Ucp:
    return Ucp(
        id=r["id"],
        code=r["code"],
        pallet_id=r["pallet_id"],
        position_id=r["position_id"],
        status=r["status"],
        observations=r["observations"],
        created_by=r["created_by"],
        created_at=r["created_at"],
        updated_at=r["updated_at"],
        version=int(r["version"]),
    )


def _row_to_item(r) -> UcpItem:
    return UcpItem(
        id=r["id"],
        ucp_id=r["ucp_id"],
        product_id=r["product_id"],
        quantity=int(r["quantity"]),
        lot=r["lot"],
        expiry_date=r["expiry_date"],
        internal_code=r["internal_code"],
        packaging_type_id=r["packaging_type_id"],
        packaging_quantity=r["packaging_quantity"],
        is_active=bool(r["is_active"]),
        added_by=r["added_by"],
        added_at=r["added_at"],
        removed_by=r["removed_by"],
        removed_at=r["removed_at"],
        removal_reason=r["removal_reason"],
        version=int(r["version"]),
    )


def _row_to_history(r) -> UcpHistory:
    return UcpHistory(
        id=r["id"],
        ucp_id=r["ucp_id"],
        action=r["action"],
        description=r["description"],
        old_value=json.loads(r["old_value"]) if r["old_value"] else None,
        new_value=json.loads(r["new_value"]) if r["new_value"] else None,
        performed_by=r["performed_by"],
        timestamp=r["timestamp"],
        item_id=r["item_id"],
        transfer_id=r["transfer_id"],
    )


# -------------------------
# Params
# -------------------------

class ParamsRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def set_many(self, items: Iterable[Tuple[str, str]]) -> None:
        with use_conn(self.db_path) as c:
            c.executemany(
                """
                INSERT INTO params (chave, valor)
                VALUES (?, ?)
                ON CONFLICT(chave) DO UPDATE SET valor=excluded.valor
                """,
                [(k, str(v)) for k, v in items],
            )

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        with use_conn(self.db_path) as c:
            row = c.execute("SELECT valor FROM params WHERE chave = ?", (key,)).fetchone()
            return row[0] if row else default

    def get_float(self, key: str, default: float) -> float:
        v = self.get(key, None)
        if v is None:
            return default
        try:
            return float(v)
        except ValueError:
            return default

    def get_int(self, key: str, default: int) -> int:
        v = self.get(key, None)
        if v is None:
            return default
        try:
            return int(float(v))
        except ValueError:
            return default

    def get_all(self) -> Dict[str, str]:
        with use_conn(self.db_path) as c:
            return {r["chave"]: r["valor"] for r in c.execute("SELECT chave, valor FROM params ORDER BY chave")}


# -------------------------
# Cadastros (produto, pallet, posição)
# -------------------------

class ProductRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(self, row: Dict[str, Any], conn=None) -> int:
        r = _as_dict(row)
        flags = r.get("handling_flags") or ()
        if not isinstance(flags, str):
            flags = ",".join(sorted(flags))
        dims = r.get("dimensions")
        if isinstance(dims, Dimensions):
            r.update(length=dims.length, width=dims.width, height=dims.height)
        payload = {
            "sku": r["sku"],
            "name": r.get("name"),
            "unit_weight": float(r.get("unit_weight") or 0.0),
            "length": r.get("length"),
            "width": r.get("width"),
            "height": r.get("height"),
            "category": r.get("category"),
            "handling_flags": flags or None,
        }
        with use_conn(self.db_path, conn) as c:
            cur = c.execute(
                """
                INSERT INTO products (sku, name, unit_weight, length, width, height, category, handling_flags)
                VALUES (:sku, :name, :unit_weight, :length, :width, :height, :category, :handling_flags)
                """,
                payload,
            )
            return cur.lastrowid

    def get(self, product_id: int, conn=None) -> Optional[Product]:
        with use_conn(self.db_path, conn) as c:
            r = c.execute("SELECT * FROM products WHERE id = ?", (product_id,)).fetchone()
            return _row_to_product(r) if r else None

    def get_by_sku(self, sku: str, conn=None) -> Optional[Product]:
        with use_conn(self.db_path, conn) as c:
            r = c.execute("SELECT * FROM products WHERE sku = ?", (sku,)).fetchone()
            return _row_to_product(r) if r else None

    def get_all(self) -> List[Product]:
        with use_conn(self.db_path) as c:
            return [_row_to_product(r) for r in c.execute("SELECT * FROM products ORDER BY sku")]


class PalletRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(self, row: Dict[str, Any], conn=None) -> int:
        r = _as_dict(row)
        r.setdefault("type", None)
        r.setdefault("status", "disponivel")
        with use_conn(self.db_path, conn) as c:
            cur = c.execute(
                """
                INSERT INTO pallets (code, type, width, length, max_height, max_weight, status)
                VALUES (:code, :type, :width, :length, :max_height, :max_weight, :status)
                """,
                r,
            )
            return cur.lastrowid

    def get(self, pallet_id: int, conn=None) -> Optional[Pallet]:
        with use_conn(self.db_path, conn) as c:
            r = c.execute("SELECT * FROM pallets WHERE id = ?", (pallet_id,)).fetchone()
            return _row_to_pallet(r) if r else None

    def get_by_code(self, code: str, conn=None) -> Optional[Pallet]:
        with use_conn(self.db_path, conn) as c:
            r = c.execute("SELECT * FROM pallets WHERE code = ?", (code,)).fetchone()
            return _row_to_pallet(r) if r else None

    def list_all(self, exclude_status: Iterable[str] = ("defeituoso",)) -> List[Pallet]:
        excl = list(exclude_status)
        sql = "SELECT * FROM pallets"
        if excl:
            sql += f" WHERE status NOT IN ({','.join('?' * len(excl))})"
        with use_conn(self.db_path) as c:
            return [_row_to_pallet(r) for r in c.execute(sql + " ORDER BY id", excl)]


class PositionRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(self, code: str, conn=None) -> int:
        with use_conn(self.db_path, conn) as c:
            return c.execute("INSERT INTO positions (code) VALUES (?)", (code,)).lastrowid

    def get(self, position_id: int, conn=None) -> Optional[Position]:
        with use_conn(self.db_path, conn) as c:
            r = c.execute("SELECT id, code FROM positions WHERE id = ?", (position_id,)).fetchone()
            return Position(id=r["id"], code=r["code"]) if r else None

    def get_by_code(self, code: str, conn=None) -> Optional[Position]:
        with use_conn(self.db_path, conn) as c:
            r = c.execute("SELECT id, code FROM positions WHERE code = ?", (code,)).fetchone()
            return Position(id=r["id"], code=r["code"]) if r else None


# -------------------------
# Embalagens
# -------------------------

class PackagingRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(self, row: Dict[str, Any], conn=None) -> int:
        r = _as_dict(row)
        payload = {
            "product_id": r["product_id"],
            "name": r["name"],
            "barcode": r.get("barcode"),
            "base_unit_quantity": int(r["base_unit_quantity"]),
            "is_base_unit": 1 if r.get("is_base_unit") else 0,
            "parent_packaging_id": r.get("parent_packaging_id"),
            "level": int(r.get("level") or 1),
            "length": r.get("length"),
            "width": r.get("width"),
            "height": r.get("height"),
        }
        with use_conn(self.db_path, conn) as c:
            cur = c.execute(
                """
                INSERT INTO packaging_types
                    (product_id, name, barcode, base_unit_quantity, is_base_unit,
                     parent_packaging_id, level, length, width, height)
                VALUES
                    (:product_id, :name, :barcode, :base_unit_quantity, :is_base_unit,
                     :parent_packaging_id, :level, :length, :width, :height)
                """,
                payload,
            )
            return cur.lastrowid

    def get(self, packaging_id: int, conn=None) -> Optional[PackagingType]:
        with use_conn(self.db_path, conn) as c:
            r = c.execute("SELECT * FROM packaging_types WHERE id = ?", (packaging_id,)).fetchone()
            return _row_to_packaging(r) if r else None

    def get_by_barcode(self, barcode: str, conn=None) -> Optional[PackagingType]:
        with use_conn(self.db_path, conn) as c:
            r = c.execute(
                "SELECT * FROM packaging_types WHERE barcode = ? AND is_active = 1",
                (barcode,),
            ).fetchone()
            return _row_to_packaging(r) if r else None

    def get_base_unit(self, product_id: int, conn=None) -> Optional[PackagingType]:
        with use_conn(self.db_path, conn) as c:
            r = c.execute(
                "SELECT * FROM packaging_types WHERE product_id = ? AND is_base_unit = 1 AND is_active = 1",
                (product_id,),
            ).fetchone()
            return _row_to_packaging(r) if r else None

    def find_by_name(self, product_id: int, name: str, conn=None) -> Optional[PackagingType]:
        with use_conn(self.db_path, conn) as c:
            r = c.execute(
                """
                SELECT * FROM packaging_types
                WHERE product_id = ? AND lower(name) = lower(?) AND is_active = 1
                """,
                (product_id, name),
            ).fetchone()
            return _row_to_packaging(r) if r else None

    def list_by_product(self, product_id: int, active_only: bool = True, conn=None) -> List[PackagingType]:
        sql = "SELECT * FROM packaging_types WHERE product_id = ?"
        if active_only:
            sql += " AND is_active = 1"
        sql += " ORDER BY level, id"
        with use_conn(self.db_path, conn) as c:
            return [_row_to_packaging(r) for r in c.execute(sql, (product_id,))]

    def has_active_children(self, packaging_id: int, conn=None) -> bool:
        with use_conn(self.db_path, conn) as c:
            r = c.execute(
                "SELECT 1 FROM packaging_types WHERE parent_packaging_id = ? AND is_active = 1 LIMIT 1",
                (packaging_id,),
            ).fetchone()
            return r is not None

    def is_referenced_by_active_items(self, packaging_id: int, conn=None) -> bool:
        with use_conn(self.db_path, conn) as c:
            r = c.execute(
                "SELECT 1 FROM ucp_items WHERE packaging_type_id = ? AND is_active = 1 LIMIT 1",
                (packaging_id,),
            ).fetchone()
            return r is not None

    def deactivate(self, packaging_id: int, conn=None) -> int:
        with use_conn(self.db_path, conn) as c:
            return c.execute(
                "UPDATE packaging_types SET is_active = 0 WHERE id = ? AND is_active = 1",
                (packaging_id,),
            ).rowcount


# -------------------------
# UCPs
# -------------------------

class UcpRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def next_code(self, prefix: str, digits: int) -> str:
        """Aloca o próximo número da sequência em transação própria.

        Um create que falhe depois disso deixa um buraco na sequência.
        """
        with transaction(self.db_path) as c:
            c.execute(
                """
                INSERT INTO sequences (name, value) VALUES ('ucp_code', 1)
                ON CONFLICT(name) DO UPDATE SET value = value + 1
                """
            )
            value = c.execute("SELECT value FROM sequences WHERE name = 'ucp_code'").fetchone()[0]
        return f"{prefix}{int(value):0{digits}d}"

    def insert(self, row: Dict[str, Any], conn=None) -> int:
        r = _as_dict(row)
        ts = now_iso()
        payload = {
            "code": r["code"],
            "pallet_id": r.get("pallet_id"),
            "position_id": r.get("position_id"),
            "status": r.get("status") or UcpStatus.ACTIVE,
            "observations": r.get("observations"),
            "created_by": r["created_by"],
            "created_at": ts,
            "updated_at": ts,
        }
        with use_conn(self.db_path, conn) as c:
            cur = c.execute(
                """
                INSERT INTO ucps (code, pallet_id, position_id, status, observations, created_by, created_at, updated_at)
                VALUES (:code, :pallet_id, :position_id, :status, :observations, :created_by, :created_at, :updated_at)
                """,
                payload,
            )
            return cur.lastrowid

    def get(self, ucp_id: int, conn=None) -> Optional[Ucp]:
        with use_conn(self.db_path, conn) as c:
            r = c.execute("SELECT * FROM ucps WHERE id = ?", (ucp_id,)).fetchone()
            return _row_to_ucp(r) if r else None

    def get_by_code(self, code: str, conn=None) -> Optional[Ucp]:
        with use_conn(self.db_path, conn) as c:
            r = c.execute("SELECT * FROM ucps WHERE code = ?", (code.upper(),)).fetchone()
            return _row_to_ucp(r) if r else None

    def active_by_pallet(self, pallet_id: int, exclude_id: Optional[int] = None, conn=None) -> Optional[Ucp]:
        """UCP ativa que ocupa o pallet (ignorando ``exclude_id``)."""
        with use_conn(self.db_path, conn) as c:
            r = c.execute(
                "SELECT * FROM ucps WHERE pallet_id = ? AND status = ? AND id != COALESCE(?, -1)",
                (pallet_id, UcpStatus.ACTIVE, exclude_id),
            ).fetchone()
            return _row_to_ucp(r) if r else None

    def update_state(
        self,
        ucp_id: int,
        expected_version: int,
        conn=None,
        **fields: Any,
    ) -> int:
        """Atualiza campos (status, pallet_id, position_id, observations) se a versão bater."""
        allowed = {"status", "pallet_id", "position_id", "observations"}
        unknown = set(fields) - allowed
        if unknown:
            raise ValueError(f"campos não atualizáveis: {sorted(unknown)}")
        sets = ", ".join(f"{k} = :{k}" for k in fields)
        params = dict(fields, id=ucp_id, version=expected_version, updated_at=now_iso())
        with use_conn(self.db_path, conn) as c:
            return c.execute(
                f"""
                UPDATE ucps SET {sets}{', ' if sets else ''}updated_at = :updated_at, version = version + 1
                WHERE id = :id AND version = :version
                """,
                params,
            ).rowcount

    def has_active_items(self, ucp_id: int, conn=None) -> bool:
        with use_conn(self.db_path, conn) as c:
            r = c.execute(
                "SELECT 1 FROM ucp_items WHERE ucp_id = ? AND is_active = 1 AND quantity > 0 LIMIT 1",
                (ucp_id,),
            ).fetchone()
            return r is not None

    def find(
        self,
        status: Optional[str] = None,
        pallet_id: Optional[int] = None,
        position_id: Optional[int] = None,
        empty: Optional[bool] = None,
    ) -> List[Ucp]:
        where, params = [], []
        if status:
            where.append("u.status = ?")
            params.append(status)
        if pallet_id is not None:
            where.append("u.pallet_id = ?")
            params.append(pallet_id)
        if position_id is not None:
            where.append("u.position_id = ?")
            params.append(position_id)
        if empty is not None:
            op = "NOT EXISTS" if empty else "EXISTS"
            where.append(f"{op} (SELECT 1 FROM ucp_items i WHERE i.ucp_id = u.id AND i.is_active = 1)")
        sql = "SELECT u.* FROM ucps u"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY u.code"
        with use_conn(self.db_path) as c:
            return [_row_to_ucp(r) for r in c.execute(sql, params)]

    def occupancy(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        """Itens ativos e quantidade por UCP (via vw_ucp_ocupacao)."""
        sql = "SELECT * FROM vw_ucp_ocupacao"
        params: List[Any] = []
        if status:
            sql += " WHERE status = ?"
            params.append(status)
        with use_conn(self.db_path) as c:
            return [dict(r) for r in c.execute(sql + " ORDER BY total_quantity DESC, code", params)]

    def stats(self) -> Dict[str, int]:
        with use_conn(self.db_path) as c:
            r = c.execute(
                """
                SELECT
                    (SELECT COUNT(*) FROM ucps)                                       AS total_ucps,
                    (SELECT COUNT(*) FROM ucps WHERE status = 'active')              AS active_ucps,
                    (SELECT COUNT(*) FROM ucps WHERE status = 'archived')            AS archived_ucps,
                    (SELECT COUNT(*) FROM ucp_items WHERE is_active = 1)             AS active_items,
                    (SELECT COUNT(DISTINCT product_id) FROM ucp_items WHERE is_active = 1) AS distinct_products,
                    (SELECT COALESCE(SUM(quantity), 0) FROM ucp_items WHERE is_active = 1) AS total_base_units
                """
            ).fetchone()
            return {k: int(r[k]) for k in r.keys()}


# -------------------------
# Itens de UCP
# -------------------------

class UcpItemRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(self, row: Dict[str, Any], conn=None) -> int:
        r = _as_dict(row)
        payload = {
            "ucp_id": r["ucp_id"],
            "product_id": r["product_id"],
            "quantity": int(r["quantity"]),
            "lot": r.get("lot"),
            "expiry_date": r.get("expiry_date"),
            "internal_code": r.get("internal_code"),
            "packaging_type_id": r.get("packaging_type_id"),
            "packaging_quantity": r.get("packaging_quantity"),
            "added_by": r.get("added_by"),
            "added_at": r.get("added_at") or now_iso(),
        }
        with use_conn(self.db_path, conn) as c:
            cur = c.execute(
                """
                INSERT INTO ucp_items
                    (ucp_id, product_id, quantity, lot, expiry_date, internal_code,
                     packaging_type_id, packaging_quantity, added_by, added_at)
                VALUES
                    (:ucp_id, :product_id, :quantity, :lot, :expiry_date, :internal_code,
                     :packaging_type_id, :packaging_quantity, :added_by, :added_at)
                """,
                payload,
            )
            return cur.lastrowid

    def get(self, item_id: int, conn=None) -> Optional[UcpItem]:
        with use_conn(self.db_path, conn) as c:
            r = c.execute("SELECT * FROM ucp_items WHERE id = ?", (item_id,)).fetchone()
            return _row_to_item(r) if r else None

    def list_by_ucp(self, ucp_id: int, active_only: bool = True, conn=None) -> List[UcpItem]:
        sql = "SELECT * FROM ucp_items WHERE ucp_id = ?"
        if active_only:
            sql += " AND is_active = 1"
        with use_conn(self.db_path, conn) as c:
            return [_row_to_item(r) for r in c.execute(sql + " ORDER BY id", (ucp_id,))]

    def consolidate(self, product_id: int, conn=None) -> Dict[str, int]:
        """Total em unidades base, itens ativos e locais distintos (via vw_estoque_produto)."""
        with use_conn(self.db_path, conn) as c:
            r = c.execute(
                """
                SELECT total_base_units, items_count, locations_count
                FROM vw_estoque_produto
                WHERE product_id = ?
                """,
                (product_id,),
            ).fetchone()
            if r is None:
                return {"total_base_units": 0, "items_count": 0, "locations_count": 0}
            return {k: int(r[k]) for k in r.keys()}

    def near_expiry(self, until_iso: str) -> List[Dict[str, Any]]:
        """Itens ativos com validade até ``until_iso`` (inclusive), mais próximos primeiro."""
        with use_conn(self.db_path) as c:
            cur = c.execute(
                """
                SELECT i.id, u.code AS ucp_code, p.sku, p.name, i.lot, i.expiry_date, i.quantity
                FROM ucp_items i
                JOIN ucps u ON u.id = i.ucp_id
                JOIN products p ON p.id = i.product_id
                WHERE i.is_active = 1 AND i.expiry_date IS NOT NULL AND date(i.expiry_date) <= date(?)
                ORDER BY date(i.expiry_date), u.code
                """,
                (until_iso,),
            )
            return [dict(r) for r in cur.fetchall()]

    def by_lot(self, lot: str) -> List[Dict[str, Any]]:
        with use_conn(self.db_path) as c:
            cur = c.execute(
                """
                SELECT i.id, u.code AS ucp_code, u.status, p.sku, i.lot, i.expiry_date,
                       i.quantity, i.is_active
                FROM ucp_items i
                JOIN ucps u ON u.id = i.ucp_id
                JOIN products p ON p.id = i.product_id
                WHERE i.lot = ?
                ORDER BY i.is_active DESC, u.code, i.id
                """,
                (lot,),
            )
            return [dict(r) for r in cur.fetchall()]

    def decrement(self, item_id: int, amount: int, expected_version: int, expected_quantity: int, conn=None) -> int:
        with use_conn(self.db_path, conn) as c:
            return c.execute(
                """
                UPDATE ucp_items
                SET quantity = quantity - ?, version = version + 1
                WHERE id = ? AND version = ? AND quantity = ? AND is_active = 1 AND quantity > ?
                """,
                (amount, item_id, expected_version, expected_quantity, amount),
            ).rowcount

    def reassign(self, item_id: int, target_ucp_id: int, expected_version: int, expected_quantity: int, conn=None) -> int:
        with use_conn(self.db_path, conn) as c:
            return c.execute(
                """
                UPDATE ucp_items
                SET ucp_id = ?, version = version + 1
                WHERE id = ? AND version = ? AND quantity = ? AND is_active = 1
                """,
                (target_ucp_id, item_id, expected_version, expected_quantity),
            ).rowcount

    def deactivate(self, item_id: int, removed_by: str, reason: Optional[str], expected_version: int, conn=None) -> int:
        with use_conn(self.db_path, conn) as c:
            return c.execute(
                """
                UPDATE ucp_items
                SET is_active = 0, removed_by = ?, removed_at = ?, removal_reason = ?, version = version + 1
                WHERE id = ? AND version = ? AND is_active = 1
                """,
                (removed_by, now_iso(), reason, item_id, expected_version),
            ).rowcount


# -------------------------
# Histórico e transferências
# -------------------------

class HistoryRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(self, row: Dict[str, Any], conn=None) -> int:
        r = _as_dict(row)
        payload = {
            "ucp_id": r["ucp_id"],
            "action": r["action"],
            "description": r["description"],
            "old_value": _json_or_none(r.get("old_value")),
            "new_value": _json_or_none(r.get("new_value")),
            "performed_by": r["performed_by"],
            "timestamp": r.get("timestamp") or now_iso(),
            "item_id": r.get("item_id"),
            "transfer_id": r.get("transfer_id"),
        }
        with use_conn(self.db_path, conn) as c:
            cur = c.execute(
                """
                INSERT INTO ucp_history
                    (ucp_id, action, description, old_value, new_value, performed_by, timestamp, item_id, transfer_id)
                VALUES
                    (:ucp_id, :action, :description, :old_value, :new_value, :performed_by, :timestamp, :item_id, :transfer_id)
                """,
                payload,
            )
            return cur.lastrowid

    def list_by_ucp(self, ucp_id: int, since: Optional[str] = None, until: Optional[str] = None) -> List[UcpHistory]:
        sql = "SELECT * FROM ucp_history WHERE ucp_id = ?"
        params: List[Any] = [ucp_id]
        if since:
            sql += " AND timestamp >= ?"
            params.append(since)
        if until:
            sql += " AND timestamp <= ?"
            params.append(until)
        with use_conn(self.db_path) as c:
            return [_row_to_history(r) for r in c.execute(sql + " ORDER BY timestamp, id", params)]

    def list_by_transfer(self, transfer_id: str) -> List[UcpHistory]:
        with use_conn(self.db_path) as c:
            cur = c.execute("SELECT * FROM ucp_history WHERE transfer_id = ? ORDER BY id", (transfer_id,))
            return [_row_to_history(r) for r in cur]


class TransferRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(self, row: Dict[str, Any], conn=None) -> None:
        r = _as_dict(row)
        r.setdefault("lot", None)
        r.setdefault("reason", None)
        r.setdefault("created_at", now_iso())
        with use_conn(self.db_path, conn) as c:
            c.execute(
                """
                INSERT INTO item_transfers
                    (id, source_ucp_id, target_ucp_id, source_item_id, target_item_id, product_id,
                     quantity, lot, reason, transfer_type, performed_by, created_at)
                VALUES
                    (:id, :source_ucp_id, :target_ucp_id, :source_item_id, :target_item_id, :product_id,
                     :quantity, :lot, :reason, :transfer_type, :performed_by, :created_at)
                """,
                r,
            )

    def get(self, transfer_id: str) -> Optional[Dict[str, Any]]:
        with use_conn(self.db_path) as c:
            r = c.execute("SELECT * FROM item_transfers WHERE id = ?", (transfer_id,)).fetchone()
            return dict(r) if r else None

    def list_by_ucp(self, ucp_id: int) -> List[Dict[str, Any]]:
        with use_conn(self.db_path) as c:
            cur = c.execute(
                """
                SELECT * FROM item_transfers
                WHERE source_ucp_id = ? OR target_ucp_id = ?
                ORDER BY created_at, id
                """,
                (ucp_id, ucp_id),
            )
            return [dict(r) for r in cur.fetchall()]
