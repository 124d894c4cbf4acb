import logging
import sys

import structlog

from burrow.bus import MessageBus, SystemLog

_LEVELS = {"debug": 10, "info": 20, "warning": 30, "error": 40, "critical": 50}


class SystemLogForwarder:
    """Processor that mirrors log events at or above ``min_level`` onto the bus.

    Subscribers (the gateway, a CLI) see them as ``SystemLog`` events. The
    floor stays at ``error``: lag warnings from a subscriber would otherwise
    be pushed back into the buffer it is draining.
    """

    def __init__(self, min_level: str = "error"):
        self.min_level = _LEVELS[min_level]
        self.bus: MessageBus | None = None

    def attach(self, bus: MessageBus) -> None:
        self.bus = bus

    def detach(self, bus: MessageBus) -> None:
        if self.bus is bus:
            self.bus = None

    def __call__(self, logger, method_name: str, event_dict: dict) -> dict:
        bus = self.bus
        level = event_dict.get("level", method_name)
        if bus is not None and not bus.closed and _LEVELS.get(level, 0) >= self.min_level:
            bus.publish(SystemLog(level=level, message=str(event_dict.get("event", ""))))
        return event_dict


system_log = SystemLogForwarder()
renderer = structlog.dev.ConsoleRenderer(colors=True)

processors = [
    structlog.processors.add_log_level,
    system_log,
    structlog.processors.TimeStamper(fmt="%H:%M:%S"),
    renderer,
]


def configure_logging(level: str = "INFO"):
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level)),
        logger_factory=structlog.WriteLoggerFactory(file=sys.stderr),
    )
    for name in ("LiteLLM", "httpx", "aiosqlite"):
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None):
    return structlog.get_logger(name or "burrow")


formatter = {
    "()": structlog.stdlib.ProcessorFormatter,
    "processor": renderer,
    "foreign_pre_chain": processors[:-1],
}

UVICORN_LOG_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {"default": formatter, "access": formatter},
    "handlers": {
        "default": {"formatter": "default", "class": "logging.StreamHandler", "stream": "ext://sys.stderr"},
        "access": {"formatter": "access", "class": "logging.StreamHandler", "stream": "ext://sys.stderr"},
    },
    "loggers": {
        "uvicorn": {"handlers": ["default"], "level": "INFO", "propagate": False},
        "uvicorn.error": {"level": "INFO"},
        "uvicorn.access": {"handlers": ["access"], "level": "INFO", "propagate": False},
    },
}
