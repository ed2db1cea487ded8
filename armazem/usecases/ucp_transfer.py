# armazem/usecases/ucp_transfer.py
"""
Caso de uso: transferência de item entre UCPs.

- Total (quantidade == quantidade do item): o item muda de UCP e mantém o id.
- Parcial: o item de origem é decrementado e um clone (mesmo produto, lote,
  validade e código interno) é criado na UCP de destino.

Em ambos os casos são gravadas duas linhas de histórico (TRANSFER_OUT na
origem, TRANSFER_IN no destino) com o mesmo ``transfer_id`` e uma linha no
livro ``item_transfers``. Tudo acontece em uma única transação; a escrita é
condicionada à versão e à quantidade lidas no início, de modo que uma
leitura desatualizada falha com ``ConflictError`` sem alterar nada.
"""

from __future__ import annotations

import uuid
from typing import Optional

from armazem.domain.errors import ConflictError, NotFoundError, ValidationError
from armazem.domain.models import HistoryAction, TransferResult, UcpStatus
from armazem.infra.db import transaction
from armazem.infra.logger import log_transfer
from armazem.infra.repositories import HistoryRepo, TransferRepo, UcpItemRepo, UcpRepo


class UcpTransferCoordinator:
    def __init__(self, ucps: UcpRepo, items: UcpItemRepo, history: HistoryRepo, transfers: TransferRepo):
        self.ucps = ucps
        self.items = items
        self.history = history
        self.transfers = transfers

    def transfer(
        self,
        source_item_id: int,
        target_ucp_id: int,
        quantity: int,
        performed_by: str,
        reason: Optional[str] = None,
    ) -> TransferResult:
        actor = (performed_by or "").strip()
        if not actor:
            raise ValidationError("performed_by é obrigatório")
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise ValidationError("Quantidade deve ser inteira", details={"quantity": quantity})

        # leitura inicial (fora da transação)
        item = self.items.get(source_item_id)
        if item is None or not item.is_active:
            raise NotFoundError("item", source_item_id)
        source = self.ucps.get(item.ucp_id)
        target = self.ucps.get(target_ucp_id)
        if target is None:
            raise NotFoundError("ucp", target_ucp_id)

        if quantity < 1 or quantity > item.quantity:
            raise ValidationError(
                f"Quantidade deve estar entre 1 e {item.quantity}",
                code="INVALID_TRANSFER_QUANTITY",
                details={"quantity": quantity, "available": item.quantity},
            )
        if target.id == item.ucp_id:
            raise ValidationError("UCP de origem e destino são a mesma", code="SAME_UCP")
        if source.status != UcpStatus.ACTIVE:
            raise ConflictError(f"UCP de origem {source.code} não está ativa", code="UCP_NOT_ACTIVE")
        if target.status != UcpStatus.ACTIVE:
            raise ConflictError(f"UCP de destino {target.code} não está ativa", code="UCP_NOT_ACTIVE")

        transfer_id = str(uuid.uuid4())
        complete = quantity == item.quantity
        transfer_type = "complete" if complete else "partial"
        stale = ConflictError(
            "Item foi alterado por outra operação; releia e tente novamente",
            code="STALE_ITEM",
            details={"item_id": item.id, "version": item.version, "quantity": item.quantity},
        )

        with transaction(self.ucps.db_path) as conn:
            # o destino pode ter sido arquivado desde a leitura
            current_target = self.ucps.get(target.id, conn=conn)
            if current_target is None or current_target.status != UcpStatus.ACTIVE:
                raise ConflictError(f"UCP de destino {target.code} não está ativa", code="UCP_NOT_ACTIVE")

            if complete:
                if self.items.reassign(item.id, target.id, item.version, item.quantity, conn=conn) == 0:
                    raise stale
                target_item_id = item.id
            else:
                if self.items.decrement(item.id, quantity, item.version, item.quantity, conn=conn) == 0:
                    raise stale
                target_item_id = self.items.insert(
                    {
                        "ucp_id": target.id,
                        "product_id": item.product_id,
                        "quantity": quantity,
                        "lot": item.lot,
                        "expiry_date": item.expiry_date,
                        "internal_code": item.internal_code,
                        "packaging_type_id": item.packaging_type_id,
                        "packaging_quantity": None,
                        "added_by": actor,
                    },
                    conn=conn,
                )

            suffix = f". Motivo: {reason}" if reason else ""
            lot = f" (lote {item.lot})" if item.lot else ""
            self.history.insert(
                {
                    "ucp_id": source.id,
                    "action": HistoryAction.TRANSFER_OUT,
                    "description": f"Transferidas {quantity} un. do produto {item.product_id}{lot} para {target.code}{suffix}",
                    "old_value": {"item_id": item.id, "quantity": item.quantity},
                    "new_value": {"item_id": item.id, "quantity": item.quantity - quantity},
                    "performed_by": actor,
                    "item_id": item.id,
                    "transfer_id": transfer_id,
                },
                conn=conn,
            )
            self.history.insert(
                {
                    "ucp_id": target.id,
                    "action": HistoryAction.TRANSFER_IN,
                    "description": f"Recebidas {quantity} un. do produto {item.product_id}{lot} de {source.code}{suffix}",
                    "new_value": {"item_id": target_item_id, "quantity": quantity},
                    "performed_by": actor,
                    "item_id": target_item_id,
                    "transfer_id": transfer_id,
                },
                conn=conn,
            )
            self.transfers.insert(
                {
                    "id": transfer_id,
                    "source_ucp_id": source.id,
                    "target_ucp_id": target.id,
                    "source_item_id": item.id,
                    "target_item_id": target_item_id,
                    "product_id": item.product_id,
                    "quantity": quantity,
                    "lot": item.lot,
                    "reason": reason,
                    "transfer_type": transfer_type,
                    "performed_by": actor,
                },
                conn=conn,
            )

        log_transfer(transfer_id, source.code, target.code, quantity, type=transfer_type, item_id=item.id)
        return TransferResult(
            transfer_id=transfer_id,
            transfer_type=transfer_type,
            source_ucp_id=source.id,
            target_ucp_id=target.id,
            source_item_id=item.id,
            target_item_id=target_item_id,
            quantity=quantity,
        )
