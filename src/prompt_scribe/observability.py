# observability.py
# Structured logging for prompt-scribe.
#
# Library modules only call get_logger(); setup_logging() is for entry
# points. Until it runs, structlog's default configuration applies.

import logging
import logging.handlers
import os
import sys

import structlog

LOG_FILE_NAME = "prompt-scribe.log"

# Marks the handlers setup_logging() owns so a second call replaces them.
_HANDLER_PREFIX = "prompt_scribe."


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "console",
    log_dir: str | None = None,
) -> None:
    """
    Configure structlog on top of the standard logging module.

    Records go to stderr, rendered as `log_format`. With `log_dir` set they
    are also written as JSON lines to a file there that rolls over daily.
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        console_renderer = structlog.processors.JSONRenderer()
    else:
        console_renderer = structlog.dev.ConsoleRenderer()

    console = logging.StreamHandler(sys.stderr)
    console.set_name(_HANDLER_PREFIX + "console")
    console.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                console_renderer,
            ],
            foreign_pre_chain=shared_processors,
        )
    )
    handlers: list[logging.Handler] = [console]

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        rolling = logging.handlers.TimedRotatingFileHandler(
            os.path.join(log_dir, LOG_FILE_NAME),
            when="midnight",
            encoding="utf-8",
        )
        rolling.set_name(_HANDLER_PREFIX + "file")
        rolling.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processors=[
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    structlog.processors.JSONRenderer(),
                ],
                foreign_pre_chain=shared_processors,
            )
        )
        handlers.append(rolling)

    root = logging.getLogger()
    for handler in list(root.handlers):
        if (handler.get_name() or "").startswith(_HANDLER_PREFIX):
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str):
    return structlog.get_logger(name)
