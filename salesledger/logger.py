# salesledger/logger.py
"""
Process-wide logging for the ledger, configured once from LOG_* env vars.
Stderr output is on by default; LOG_TO_FILE adds a rotating log file.
"""
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import List

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


def _file_handler(path: str) -> logging.Handler:
    log_dir = os.path.dirname(path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    return RotatingFileHandler(
        path,
        maxBytes=int(os.getenv("LOG_MAX_BYTES", str(2 * 1024 * 1024))),
        backupCount=int(os.getenv("LOG_BACKUPS", "3")),
        encoding="utf-8",
    )


def _ledger_handlers() -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if _env_flag("LOG_TO_STDERR", "true"):
        handlers.append(logging.StreamHandler(sys.stderr))
    if _env_flag("LOG_TO_FILE", "false"):
        log_file = os.getenv("LOG_FILE", "/data/sales_ledger.log")
        try:
            handlers.append(_file_handler(log_file))
        except OSError as e:
            # Ledger still works without its log file
            sys.stderr.write(f"Failed to open ledger log {log_file}: {e}\n")
    return handlers


def setup_logging():
    global _configured
    if _configured:
        return

    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)

    # Leave handlers installed by a host (e.g. pytest) alone
    if not root.handlers:
        formatter = logging.Formatter(LOG_FORMAT)
        for handler in _ledger_handlers():
            handler.setLevel(level)
            handler.setFormatter(formatter)
            root.addHandler(handler)

    _configured = True


def get_logger(name: str | None = None) -> logging.Logger:
    setup_logging()
    return logging.getLogger(name)
