"""structlog setup for the pair monitor.

All pairsignal modules log snake_case events through get_logger(). The
monitor wraps each refresh cycle in pair_context() so fetch retries, the
analysis debug events (trend_classified, decision_skipped) and the final
decision_ready line all carry the reference and comparison symbols.
ccxt's per-request DEBUG output is capped at WARNING.
"""

import logging
import os

import structlog


def setup_logging(log_level: str = "INFO") -> None:
    """Route structlog and stdlib logging through one root handler.

    LOG_FORMAT=json renders one JSON object per line; anything else uses the
    console renderer. Pair context bound with pair_context() is merged from
    contextvars, so it follows the monitor task across awaits.
    """
    log_format = os.environ.get("LOG_FORMAT", "console").lower()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # ccxt logs every HTTP round trip at DEBUG
    logging.getLogger("ccxt").setLevel(logging.WARNING)

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger with the given name."""
    return structlog.get_logger(name)


def pair_context(reference: str, comparison: str):
    """Bind the analyzed pair to every log line emitted inside the block.

    Usage:
        with pair_context("BTC/USDT", "ETH/USDT"):
            logger.info("cycle_started")  # carries reference= and comparison=
    """
    return structlog.contextvars.bound_contextvars(reference=reference, comparison=comparison)
