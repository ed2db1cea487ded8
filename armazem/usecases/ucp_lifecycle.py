# armazem/usecases/ucp_lifecycle.py
"""
Caso de uso: ciclo de vida da UCP.

Estados: active -> archived (desmontagem) -> active (reativação).
Toda mudança de estado grava uma linha de histórico na mesma transação.
Nenhuma UCP ou item é apagado fisicamente.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from armazem.config import DEFAULTS
from armazem.domain.errors import ConflictError, NotFoundError, ValidationError
from armazem.domain.models import HistoryAction, Ucp, UcpHistory, UcpItem, UcpStatus, UcpWithItems
from armazem.domain.packaging import resolve_base_units
from armazem.infra.db import transaction
from armazem.infra.logger import log_ucp
from armazem.infra.repositories import (
    HistoryRepo,
    PackagingRepo,
    PalletRepo,
    ParamsRepo,
    PositionRepo,
    ProductRepo,
    UcpItemRepo,
    UcpRepo,
)


def _normalize_str(x: Any) -> Optional[str]:
    if x is None:
        return None
    s = str(x).strip()
    return s or None


def _require_actor(performed_by: Optional[str]) -> str:
    actor = _normalize_str(performed_by)
    if not actor:
        raise ValidationError("performed_by é obrigatório")
    return actor


class UcpLifecycle:
    def __init__(
        self,
        ucps: UcpRepo,
        items: UcpItemRepo,
        history: HistoryRepo,
        pallets: PalletRepo,
        positions: PositionRepo,
        products: ProductRepo,
        packagings: PackagingRepo,
        params: ParamsRepo,
    ):
        self.ucps = ucps
        self.items = items
        self.history = history
        self.pallets = pallets
        self.positions = positions
        self.products = products
        self.packagings = packagings
        self.params = params

    @property
    def db_path(self) -> str:
        return self.ucps.db_path

    # ---------- helpers ----------

    def _code_format(self):
        prefix = self.params.get("ucp_code_prefix", DEFAULTS.ucp_code_prefix)
        digits = self.params.get_int("ucp_code_digits", DEFAULTS.ucp_code_digits)
        return prefix, digits

    def _check_pallet(self, pallet_id: int, conn, exclude_id: Optional[int] = None) -> None:
        if self.pallets.get(pallet_id, conn=conn) is None:
            raise NotFoundError("pallet", pallet_id)
        other = self.ucps.active_by_pallet(pallet_id, exclude_id=exclude_id, conn=conn)
        if other is not None:
            raise ConflictError(
                f"Pallet já está em uso pela UCP {other.code}",
                code="PALLET_IN_USE",
                details={"pallet_id": pallet_id, "ucp": other.code},
            )

    def _check_position(self, position_id: int, conn) -> None:
        if self.positions.get(position_id, conn=conn) is None:
            raise NotFoundError("posição", position_id, code="POSITION_NOT_FOUND")

    def _load(self, ucp_id: int, conn=None) -> Ucp:
        ucp = self.ucps.get(ucp_id, conn=conn)
        if ucp is None:
            raise NotFoundError("ucp", ucp_id)
        return ucp

    def _update(self, ucp: Ucp, conn, **fields) -> Ucp:
        if self.ucps.update_state(ucp.id, ucp.version, conn=conn, **fields) == 0:
            raise ConflictError(
                f"UCP {ucp.code} foi alterada por outra operação",
                code="STALE_UCP",
                details={"ucp_id": ucp.id, "version": ucp.version},
            )
        return self.ucps.get(ucp.id, conn=conn)

    # ---------- leitura ----------

    def get(self, ucp_id: int) -> Ucp:
        return self._load(ucp_id)

    def get_by_code(self, code: str) -> Ucp:
        ucp = self.ucps.get_by_code(code)
        if ucp is None:
            raise NotFoundError("ucp", code)
        return ucp

    def get_with_items(self, ucp_id: int) -> UcpWithItems:
        return UcpWithItems(ucp=self._load(ucp_id), items=self.items.list_by_ucp(ucp_id))

    def history_of(self, ucp_id: int, since: Optional[str] = None, until: Optional[str] = None) -> List[UcpHistory]:
        self._load(ucp_id)
        return self.history.list_by_ucp(ucp_id, since=since, until=until)

    def list(
        self,
        status: Optional[str] = None,
        pallet_id: Optional[int] = None,
        position_id: Optional[int] = None,
        empty: Optional[bool] = None,
    ) -> List[Ucp]:
        if status is not None and status not in UcpStatus.ALL:
            raise ValidationError(f"Status inválido: {status}", details={"allowed": list(UcpStatus.ALL)})
        return self.ucps.find(status=status, pallet_id=pallet_id, position_id=position_id, empty=empty)

    def find_empty(self) -> List[Ucp]:
        return self.ucps.find(status=UcpStatus.ACTIVE, empty=True)

    # ---------- transições ----------

    def create(self, data: Dict[str, Any]) -> Ucp:
        """
        Cria uma UCP ativa.

        Campos: code (opcional), pallet_id, position_id, observations, created_by.
        Sem código informado, gera ``<PREFIXO><sequência>``.
        """
        actor = _require_actor(data.get("created_by") or data.get("performed_by"))
        prefix, digits = self._code_format()
        code = _normalize_str(data.get("code"))
        if code:
            code = code.upper()
            if not re.fullmatch(rf"{re.escape(prefix)}\d{{{digits}}}", code):
                raise ValidationError(
                    f"Código de UCP inválido: {code}",
                    code="INVALID_UCP_CODE",
                    details={"expected": f"{prefix}{'9' * digits}"},
                )
        else:
            code = self.ucps.next_code(prefix, digits)

        pallet_id = data.get("pallet_id")
        position_id = data.get("position_id")
        observations = _normalize_str(data.get("observations"))

        with transaction(self.db_path) as conn:
            if self.ucps.get_by_code(code, conn=conn) is not None:
                raise ConflictError(f"Código de UCP já existe: {code}", code="UCP_CODE_TAKEN")
            if pallet_id is not None:
                self._check_pallet(pallet_id, conn)
            if position_id is not None:
                self._check_position(position_id, conn)

            ucp_id = self.ucps.insert(
                {
                    "code": code,
                    "pallet_id": pallet_id,
                    "position_id": position_id,
                    "observations": observations,
                    "created_by": actor,
                },
                conn=conn,
            )
            ucp = self.ucps.get(ucp_id, conn=conn)
            self.history.insert(
                {
                    "ucp_id": ucp_id,
                    "action": HistoryAction.CREATED,
                    "description": f"UCP {code} criada",
                    "new_value": ucp.snapshot(),
                    "performed_by": actor,
                },
                conn=conn,
            )

        log_ucp(HistoryAction.CREATED, code, actor, pallet_id=pallet_id, position_id=position_id)
        return ucp

    def move(self, ucp_id: int, position_id: int, performed_by: str, reason: Optional[str] = None) -> Ucp:
        actor = _require_actor(performed_by)
        with transaction(self.db_path) as conn:
            ucp = self._load(ucp_id, conn)
            if ucp.status != UcpStatus.ACTIVE:
                raise ConflictError(f"UCP {ucp.code} não está ativa", code="UCP_NOT_ACTIVE")
            self._check_position(position_id, conn)
            old = ucp.snapshot()
            old_pos = self.positions.get(ucp.position_id, conn=conn) if ucp.position_id else None
            new_pos = self.positions.get(position_id, conn=conn)
            updated = self._update(ucp, conn, position_id=position_id)
            desc = f"UCP movida de {old_pos.code if old_pos else '-'} para {new_pos.code}"
            if reason:
                desc += f". Motivo: {reason}"
            self.history.insert(
                {
                    "ucp_id": ucp.id,
                    "action": HistoryAction.MOVED,
                    "description": desc,
                    "old_value": old,
                    "new_value": updated.snapshot(),
                    "performed_by": actor,
                },
                conn=conn,
            )

        log_ucp(HistoryAction.MOVED, ucp.code, actor, position_id=position_id, reason=reason)
        return updated

    def dismantle(self, ucp_id: int, performed_by: str, reason: Optional[str] = None) -> Ucp:
        """Arquiva a UCP vazia e libera pallet e posição."""
        actor = _require_actor(performed_by)
        with transaction(self.db_path) as conn:
            ucp = self._load(ucp_id, conn)
            if ucp.status != UcpStatus.ACTIVE:
                raise ConflictError(f"UCP {ucp.code} não está ativa", code="UCP_NOT_ACTIVE")
            if self.ucps.has_active_items(ucp.id, conn=conn):
                raise ConflictError(
                    f"UCP {ucp.code} ainda possui itens ativos",
                    code="UCP_HAS_ITEMS",
                    details={"ucp_id": ucp.id},
                )
            old = ucp.snapshot()
            updated = self._update(ucp, conn, status=UcpStatus.ARCHIVED, pallet_id=None, position_id=None)
            desc = f"UCP {ucp.code} desmontada"
            if reason:
                desc += f". Motivo: {reason}"
            self.history.insert(
                {
                    "ucp_id": ucp.id,
                    "action": HistoryAction.DISMANTLED,
                    "description": desc,
                    "old_value": old,
                    "new_value": updated.snapshot(),
                    "performed_by": actor,
                },
                conn=conn,
            )

        log_ucp(HistoryAction.DISMANTLED, ucp.code, actor, reason=reason)
        return updated

    def reactivate(
        self,
        ucp_id: int,
        performed_by: str,
        pallet_id: Optional[int] = None,
        position_id: Optional[int] = None,
    ) -> Ucp:
        actor = _require_actor(performed_by)
        with transaction(self.db_path) as conn:
            ucp = self._load(ucp_id, conn)
            if ucp.status != UcpStatus.ARCHIVED:
                raise ConflictError(f"UCP {ucp.code} não está arquivada", code="UCP_NOT_ARCHIVED")
            if pallet_id is not None:
                self._check_pallet(pallet_id, conn, exclude_id=ucp.id)
            if position_id is not None:
                self._check_position(position_id, conn)
            old = ucp.snapshot()
            updated = self._update(
                ucp, conn, status=UcpStatus.ACTIVE, pallet_id=pallet_id, position_id=position_id
            )
            self.history.insert(
                {
                    "ucp_id": ucp.id,
                    "action": HistoryAction.REACTIVATED,
                    "description": f"UCP {ucp.code} reativada",
                    "old_value": old,
                    "new_value": updated.snapshot(),
                    "performed_by": actor,
                },
                conn=conn,
            )

        log_ucp(HistoryAction.REACTIVATED, ucp.code, actor, pallet_id=pallet_id)
        return updated

    # ---------- itens ----------

    def add_item(self, ucp_id: int, data: Dict[str, Any], performed_by: str) -> UcpItem:
        """
        Adiciona um item a uma UCP ativa.

        Quantidade em unidades base (``quantity``) ou em embalagens
        (``packaging_type_id`` + ``packaging_quantity``); no segundo caso a
        quantidade base é calculada uma única vez aqui.
        """
        actor = _require_actor(performed_by)
        try:
            product_id = int(data["product_id"])
        except (KeyError, TypeError, ValueError):
            raise ValidationError("product_id inválido", details={"product_id": data.get("product_id")})
        packaging_type_id = data.get("packaging_type_id")
        packaging_quantity = data.get("packaging_quantity")
        quantity = data.get("quantity")

        with transaction(self.db_path) as conn:
            ucp = self._load(ucp_id, conn)
            if ucp.status != UcpStatus.ACTIVE:
                raise ConflictError(f"UCP {ucp.code} não está ativa", code="UCP_NOT_ACTIVE")
            if self.products.get(product_id, conn=conn) is None:
                raise NotFoundError("produto", product_id)

            if packaging_type_id is not None:
                pkg = self.packagings.get(int(packaging_type_id), conn=conn)
                if pkg is None or not pkg.is_active:
                    raise NotFoundError("embalagem", packaging_type_id)
                if pkg.product_id != product_id:
                    raise ValidationError("Embalagem não pertence ao produto")
                if quantity is None:
                    if packaging_quantity is None:
                        raise ValidationError("Informe quantity ou packaging_quantity")
                    quantity = resolve_base_units(pkg, int(packaging_quantity))

            try:
                quantity = int(quantity)
            except (TypeError, ValueError):
                raise ValidationError("Quantidade inválida", details={"quantity": quantity})
            if quantity <= 0:
                raise ValidationError("Quantidade deve ser maior que zero", details={"quantity": quantity})

            item_id = self.items.insert(
                {
                    "ucp_id": ucp.id,
                    "product_id": product_id,
                    "quantity": quantity,
                    "lot": _normalize_str(data.get("lot")),
                    "expiry_date": _normalize_str(data.get("expiry_date")),
                    "internal_code": _normalize_str(data.get("internal_code")),
                    "packaging_type_id": packaging_type_id,
                    "packaging_quantity": packaging_quantity,
                    "added_by": actor,
                },
                conn=conn,
            )
            item = self.items.get(item_id, conn=conn)
            self.history.insert(
                {
                    "ucp_id": ucp.id,
                    "action": HistoryAction.ITEM_ADDED,
                    "description": f"Item adicionado: produto {product_id}, {quantity} un."
                                   + (f", lote {item.lot}" if item.lot else ""),
                    "new_value": {"item_id": item_id, "quantity": quantity, "lot": item.lot},
                    "performed_by": actor,
                    "item_id": item_id,
                },
                conn=conn,
            )

        log_ucp(HistoryAction.ITEM_ADDED, ucp.code, actor, item_id=item_id, quantity=quantity)
        return item

    def remove_item(self, item_id: int, performed_by: str, reason: Optional[str] = None) -> UcpItem:
        actor = _require_actor(performed_by)
        with transaction(self.db_path) as conn:
            item = self.items.get(item_id, conn=conn)
            if item is None or not item.is_active:
                raise NotFoundError("item", item_id)
            ucp = self._load(item.ucp_id, conn)
            if self.items.deactivate(item.id, actor, reason, expected_version=item.version, conn=conn) == 0:
                raise ConflictError("Item foi alterado por outra operação", code="STALE_ITEM")
            removed = self.items.get(item_id, conn=conn)
            desc = f"Item removido: produto {item.product_id}, {item.quantity} un."
            if reason:
                desc += f" Motivo: {reason}"
            self.history.insert(
                {
                    "ucp_id": ucp.id,
                    "action": HistoryAction.ITEM_REMOVED,
                    "description": desc,
                    "old_value": {"item_id": item.id, "quantity": item.quantity, "lot": item.lot},
                    "performed_by": actor,
                    "item_id": item.id,
                },
                conn=conn,
            )

        log_ucp(HistoryAction.ITEM_REMOVED, ucp.code, actor, item_id=item_id, reason=reason)
        return removed
