"""Tagged logging for the engine.

Every line carries a level and a component tag, e.g.
``[INFO][Engine] Input mode switched | mode=voice``.

Each tag logs through its own child of the ``synesthete`` logger, so one
component can be made chattier than the rest, e.g.
``set_log_level("DEBUG", component="Monitor")``.
"""

import logging
from typing import Any, Optional

ROOT_LOGGER = "synesthete"
LOG_FORMAT = "[%(levelname)s][%(tag)s] %(message)s"

_root = logging.getLogger(ROOT_LOGGER)


class _DefaultTag(logging.Filter):
    """Records logged without a tag are labelled with their logger's last name part."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "tag"):
            record.tag = record.name.rsplit(".", 1)[-1]
        return True


if not _root.handlers:
    _console = logging.StreamHandler()
    _console.setFormatter(logging.Formatter(LOG_FORMAT))
    _console.addFilter(_DefaultTag())
    _root.addHandler(_console)
    _root.setLevel(logging.INFO)


def _level(name: Optional[str]) -> int:
    level = logging.getLevelName((name or "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def _format_value(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.4g}"
    return str(value)


def component_logger(tag: str) -> logging.Logger:
    return _root.getChild(tag)


def log_event(level: str, tag: str, message: str, **fields: Any) -> None:
    """Log ``message`` under ``tag``, appending ``key=value`` fields when given."""
    if fields:
        message = f"{message} | " + " ".join(f"{k}={_format_value(v)}" for k, v in fields.items())
    component_logger(tag).log(_level(level), message, extra={"tag": tag})


def set_log_level(level: str, component: Optional[str] = None) -> None:
    """Set the log level (DEBUG/INFO/WARN/ERROR) for the engine, or for one component tag."""
    target = component_logger(component) if component else _root
    target.setLevel(_level(level))
