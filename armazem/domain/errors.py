"""
Exceções tipadas do núcleo de armazém.

Nenhuma operação do núcleo deixa vazar erros do sqlite3: falhas de
armazenamento chegam ao chamador como ``StorageError``. Invalidez de uma
composição não é erro (é um resultado com ``is_valid=False``).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional


class ArmazemError(Exception):
    """Base de todos os erros do núcleo.

    Attributes:
        code: código estável do erro (ex.: ``"UCP_NOT_FOUND"``)
        message: mensagem legível
        details: contexto adicional
    """

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        self.timestamp = datetime.now().isoformat()
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp,
            }
        }


class ValidationError(ArmazemError):
    """Entrada malformada ou fora da faixa."""

    def __init__(self, message: str, code: str = "VALIDATION_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(code=code, message=message, details=details)


class NotFoundError(ArmazemError):
    """Registro referenciado não existe."""

    def __init__(self, resource: str, identifier: Any, code: Optional[str] = None):
        self.resource = resource
        self.identifier = identifier
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} não encontrado: {identifier}",
            details={"id": identifier},
        )


class ConflictError(ArmazemError):
    """Conflito com o estado atual (pallet ocupado, código duplicado, corrida perdida...)."""

    def __init__(self, message: str, code: str = "CONFLICT", details: Optional[Dict[str, Any]] = None):
        super().__init__(code=code, message=message, details=details)


class StorageError(ArmazemError):
    """Falha de I/O ou timeout do armazenamento; opaca para o núcleo."""

    def __init__(self, message: str, code: str = "STORAGE_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(code=code, message=message, details=details)
