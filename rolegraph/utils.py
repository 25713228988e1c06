"""
Shared helpers.
"""
import logging

from rolegraph.core import config


_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_configured = False


def get_logger(name: str) -> logging.Logger:
    """
    Return a module logger under the configured root handler.

    Usage:
        log = get_logger(__name__)
        log.info("Role %s updated", role_id)
    """
    global _configured
    if not _configured:
        logging.basicConfig(format=_FORMAT)
        logging.getLogger("rolegraph").setLevel(config.LOG_LEVEL)
        _configured = True
    return logging.getLogger(name)


def escape_like(value: str, escape: str = "\\") -> str:
    """Escape LIKE wildcards so ``value`` matches literally."""
    return (
        value.replace(escape, escape * 2)
        .replace("%", escape + "%")
        .replace("_", escape + "_")
    )
