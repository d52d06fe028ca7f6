import logging
from logging.handlers import RotatingFileHandler

from salesledger import logger as ledger_logger


def _bare_root(monkeypatch):
    # pytest attaches its capture handler at call time, so reset inside the test
    root = logging.getLogger()
    monkeypatch.setattr(root, "level", root.level)
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(ledger_logger, "_configured", False)
    return root


def test_log_to_file_adds_rotating_handler(monkeypatch, tmp_path):
    bare_root = _bare_root(monkeypatch)
    log_file = tmp_path / "logs" / "ledger.log"
    monkeypatch.setenv("LOG_TO_STDERR", "false")
    monkeypatch.setenv("LOG_TO_FILE", "true")
    monkeypatch.setenv("LOG_FILE", str(log_file))
    monkeypatch.setenv("LOG_MAX_BYTES", "1024")
    monkeypatch.setenv("LOG_BACKUPS", "2")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    ledger_logger.setup_logging()

    [handler] = bare_root.handlers
    assert isinstance(handler, RotatingFileHandler)
    assert handler.maxBytes == 1024 and handler.backupCount == 2
    assert bare_root.level == logging.DEBUG

    ledger_logger.get_logger("salesledger.test").info("written to file")
    handler.flush()
    handler.close()
    assert "written to file" in log_file.read_text(encoding="utf-8")


def test_default_is_stderr_only(monkeypatch):
    bare_root = _bare_root(monkeypatch)
    monkeypatch.delenv("LOG_TO_STDERR", raising=False)
    monkeypatch.delenv("LOG_TO_FILE", raising=False)

    ledger_logger.setup_logging()

    assert [type(h) for h in bare_root.handlers] == [logging.StreamHandler]


def test_unopenable_log_file_is_skipped(monkeypatch, tmp_path, capsys):
    bare_root = _bare_root(monkeypatch)
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x", encoding="utf-8")
    monkeypatch.setenv("LOG_TO_STDERR", "false")
    monkeypatch.setenv("LOG_TO_FILE", "true")
    monkeypatch.setenv("LOG_FILE", str(blocker / "ledger.log"))

    ledger_logger.setup_logging()

    assert bare_root.handlers == []
    assert "Failed to open ledger log" in capsys.readouterr().err


def test_setup_runs_once(monkeypatch):
    bare_root = _bare_root(monkeypatch)
    monkeypatch.setenv("LOG_TO_STDERR", "true")
    monkeypatch.setenv("LOG_TO_FILE", "false")
    ledger_logger.setup_logging()
    bare_root.handlers.clear()
    ledger_logger.setup_logging()
    assert bare_root.handlers == []
