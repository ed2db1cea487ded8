# armazem/infra/logger.py
"""
Sistema de logging das operações do armazém.

Configura loggers por assunto (operações, UCPs, transferências, banco e
sistema), cada um com seu arquivo. Os helpers ``log_*`` só escrevem quando
``ENABLE_LOGGING`` ou ``ENABLE_OUTPUT`` estão ligados (variáveis de ambiente
``ARMAZEM_LOGGING`` / ``ARMAZEM_OUTPUT``).
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional


def _env_flag(name: str) -> bool:
    return (os.environ.get(name) or "").strip().lower() in ("1", "true", "yes", "on")


# Flag global para habilitar/desabilitar logging
ENABLE_LOGGING = _env_flag("ARMAZEM_LOGGING")
# Flag global para habilitar/desabilitar prints/output
ENABLE_OUTPUT = _env_flag("ARMAZEM_OUTPUT")


def print_system(*args, **kwargs):
    """Print controlado pelo ENABLE_OUTPUT."""
    if ENABLE_OUTPUT:
        print(*args, **kwargs)


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logger(name: str, log_file: str, level: int = logging.INFO) -> logging.Logger:
    """
    Configura um logger específico com arquivo de saída.

    O arquivo só é criado na primeira mensagem (``delay=True``).

    Args:
        name: Nome do logger
        log_file: Caminho do arquivo de log
        level: Nível de logging

    Returns:
        Logger configurado
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    while logger.handlers:
        logger.removeHandler(logger.handlers[0])

    file_handler = logging.FileHandler(log_file, encoding='utf-8', delay=True)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(file_handler)

    return logger


# Diretório de logs (ARMAZEM_LOG_DIR ou pasta do pacote)
BASE_DIR = Path(__file__).parent.parent
LOGS_DIR = Path(os.environ.get("ARMAZEM_LOG_DIR") or (BASE_DIR / "logs"))

LOG_FILES = {
    "transactions": LOGS_DIR / "transactions.log",
    "ucps": LOGS_DIR / "ucps.log",
    "transferencias": LOGS_DIR / "transferencias.log",
    "database": LOGS_DIR / "database.log",
    "system": LOGS_DIR / "system.log",
}

transaction_logger = setup_logger('armazem.transactions', str(LOG_FILES["transactions"]))
ucp_logger = setup_logger('armazem.ucps', str(LOG_FILES["ucps"]))
transfer_logger = setup_logger('armazem.transferencias', str(LOG_FILES["transferencias"]))
database_logger = setup_logger('armazem.database', str(LOG_FILES["database"]))
system_logger = setup_logger('armazem.system', str(LOG_FILES["system"]))


def _enabled() -> bool:
    return ENABLE_LOGGING or ENABLE_OUTPUT


def log_transaction(operation: str, data: Dict[str, Any], result: Optional[Any] = None, error: Optional[str] = None) -> None:
    """
    Registra uma operação do núcleo (sucesso ou falha tipada).

    Args:
        operation: Nome da operação (create_ucp, transfer_item, ...)
        data: Dados de entrada
        result: Resultado resumido (opcional)
        error: Mensagem de erro (opcional)
    """
    if not _enabled():
        return
    if error:
        transaction_logger.error(f"TRANSACTION_FAILED: {operation} - {error} - Data: {data}")
    else:
        transaction_logger.info(f"TRANSACTION_SUCCESS: {operation} - Result: {result} - Data: {data}")


def log_ucp(action: str, ucp_code: str, performed_by: Optional[str] = None, **kwargs) -> None:
    """Log de eventos do ciclo de vida de uma UCP (CREATED, MOVED, ...)."""
    if not _enabled():
        return
    log_data = {"action": action, "ucp": ucp_code, "performed_by": performed_by, **kwargs}
    ucp_logger.info(f"UCP_{action.upper()}: {log_data}")


def log_transfer(transfer_id: str, source_ucp: str, target_ucp: str, quantity: int, **kwargs) -> None:
    """Log de transferência de item entre UCPs."""
    if not _enabled():
        return
    log_data = {
        "transfer_id": transfer_id,
        "source": source_ucp,
        "target": target_ucp,
        "quantity": quantity,
        **kwargs,
    }
    transfer_logger.info(f"TRANSFER: {log_data}")


def log_database_operation(table: str, operation: str, affected_rows: int = 0, **kwargs) -> None:
    if not _enabled():
        return
    log_data = {"table": table, "operation": operation, "affected_rows": affected_rows, **kwargs}
    database_logger.info(f"DB_{operation}: {log_data}")


def log_system_event(event: str, details: Dict[str, Any] = None, level: str = "info") -> None:
    """
    Log para eventos do sistema.

    Args:
        event: Descrição do evento
        details: Detalhes adicionais (opcional)
        level: Nível do log (info, warning, error)
    """
    if not _enabled():
        return
    log_data = {"event": event, "details": details or {}}
    log_method = getattr(system_logger, level.lower(), system_logger.info)
    log_method(f"SYSTEM_EVENT: {event} - {log_data}")


def log_file_operation(operation: str, file_path: str, rows_processed: int = 0, **kwargs) -> None:
    """Log de importação de planilhas."""
    if not _enabled():
        return
    log_data = {
        "operation": operation,
        "file_path": file_path,
        "rows_processed": rows_processed,
        "at": datetime.now().isoformat(),
        **kwargs,
    }
    system_logger.info(f"FILE_{operation.upper()}: {log_data}")


def get_log_summary(log_type: str = "transactions", lines: int = 100) -> str:
    """
    Obtém as últimas linhas de um log.

    Args:
        log_type: transactions, ucps, transferencias, database, system
        lines: Número de linhas a retornar
    """
    log_file = LOG_FILES.get(log_type)
    if not log_file or not log_file.exists():
        return f"Log {log_type} não encontrado."

    with open(log_file, 'r', encoding='utf-8') as f:
        all_lines = f.readlines()
    return ''.join(all_lines[-lines:])
