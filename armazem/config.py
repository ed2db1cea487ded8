# armazem/config.py
"""
Configurações globais e valores padrão do núcleo de armazém (UCPs).
"""

import os
from dataclasses import dataclass, field
from typing import FrozenSet, Tuple


# Caminho padrão do banco de dados SQLite (pode ser sobrescrito por ARMAZEM_DB)
DB_PATH = os.environ.get("ARMAZEM_DB") or os.path.join(os.getcwd(), "armazem.db")


@dataclass
class DefaultConfig:
    """Valores padrão para parâmetros do sistema."""
    ucp_code_prefix: str = "UCP"
    ucp_code_digits: int = 6
    target_efficiency: float = 0.85      # alvo de eficiência para alternativas
    warning_threshold: float = 0.9       # utilização acima disso gera warning
    low_efficiency_threshold: float = 0.6
    max_alternatives: int = 5
    near_expiry_days: int = 30
    busy_timeout_s: float = 5.0          # espera por lock de escrita no SQLite
    # pares de flags de manuseio que não podem dividir o mesmo pallet
    conflicting_flags: Tuple[FrozenSet[str], ...] = field(
        default_factory=lambda: (
            frozenset({"refrigerated", "ambient"}),
            frozenset({"frozen", "ambient"}),
            frozenset({"hazardous", "general"}),
            frozenset({"hazardous", "food"}),
        )
    )


# Instância global dos valores padrão
DEFAULTS = DefaultConfig()
