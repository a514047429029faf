import logging
import sys

import structlog


def setup_logging(level: "str", json: "bool" = False) -> "None":
    """
    routes oceanbill's structlog events to stderr, so a one-shot run can
    print its billing JSON on stdout and be piped straight into another
    tool. With json set every event is a single JSON line, the format
    serverless log collectors ingest; otherwise events are rendered for
    a terminal. Unknown level names fall back to info.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=numeric_level,
        force=True,
    )
    if json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
