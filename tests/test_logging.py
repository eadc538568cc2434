import logging

from leadintel.utils.logging import configure_logging, get_logger


def test_child_loggers_share_one_handler():
    repo_logger = get_logger("db.repo")
    root = logging.getLogger("leadintel")

    assert repo_logger.name == "leadintel.db.repo"
    assert get_logger() is root
    assert len(root.handlers) == 1
    get_logger("db.repo")
    assert len(root.handlers) == 1


def test_level_override(monkeypatch):
    root = logging.getLogger("leadintel")
    previous = root.level
    try:
        assert configure_logging("debug").level == logging.DEBUG
        monkeypatch.setenv("LOG_LEVEL", "warning")
        assert configure_logging().level == logging.WARNING
    finally:
        root.setLevel(previous)
