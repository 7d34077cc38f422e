import logging
import logging.handlers

from server_monitor import log, settings


def test_configure_keeps_handlers_installed_by_host(monkeypatch):
    root = logging.getLogger()
    handler = logging.NullHandler()
    monkeypatch.setattr(root, "handlers", [handler])
    monkeypatch.setattr(root, "level", root.level)

    log.configure("", "debug")

    assert root.handlers == [handler]


def test_forced_configure_replaces_handlers(monkeypatch, tmp_path):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [logging.NullHandler()])
    monkeypatch.setattr(root, "level", root.level)

    log.configure(str(tmp_path), "warning", force=True)

    (handler,) = root.handlers
    try:
        assert isinstance(handler, logging.handlers.RotatingFileHandler)
        assert handler.baseFilename == str(tmp_path / settings.LOG_FILE_NAME)
        assert root.level == logging.WARNING
    finally:
        handler.close()


def test_unknown_level_falls_back_to_info(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(root, "level", root.level)

    log.configure("", "verbose", force=True)

    assert root.level == logging.INFO
    assert isinstance(root.handlers[0], logging.StreamHandler)
