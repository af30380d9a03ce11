import asyncio
import os
from functools import wraps
from logging.config import dictConfig
from typing import Any, Callable

import click


def async_command(
    group: click.Group, **kws
) -> Callable[[Callable[..., Any]], click.Command]:
    def dec(f):
        @group.command(**kws)
        @wraps(f)
        def wrapper(*args, **kwargs):
            return asyncio.run(f(*args, **kwargs))

        return wrapper

    return dec


def setup_logging(level: str | None = None) -> None:
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "main": {"format": "%(asctime)s - %(name)s [%(levelname)s] %(message)s"}
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "main",
                },
            },
            "loggers": {
                "tictactoe_arena": {
                    "level": level.upper(),
                    "handlers": ["console"],
                    "propagate": False,
                },
                "__main__": {
                    "level": level.upper(),
                    "handlers": ["console"],
                    "propagate": False,
                },
            },
        }
    )


def readable_duration(seconds: float) -> str:
    hour = 3600
    minute = 60

    current = int(seconds)
    parts: list[str] = []
    for period, letter in [(hour, "h"), (minute, "m"), (1, "s")]:
        whole_values = current // period
        if whole_values < 1:
            continue
        current -= whole_values * period
        parts.append(f"{whole_values}{letter}")

    return "".join(parts) or "0s"
