"""
Structured logging setup using structlog directly.

Configured only when the plugin is enabled and the host project has not
configured structlog itself.
"""

import structlog


def setup_logging(log_format: str = "console") -> None:
    """
    Setup structured logging with structlog.

    Args:
        log_format: ``json`` for JSON lines, anything else for console output
    """
    if structlog.is_configured():
        return

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
