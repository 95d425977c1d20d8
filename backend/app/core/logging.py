import logging

import structlog


def resolve_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level_name: str) -> None:
    """Drop structlog events below `level_name` (INFO for unknown names)."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(resolve_level(level_name)),
    )
