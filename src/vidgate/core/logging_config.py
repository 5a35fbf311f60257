"""Central logging configuration.

`configure_logging` is called once by the composition root. It wires two
sinks on the root logger: stdout for DEBUG/INFO and stderr for WARNING and
above. Every record is stamped with the key of the job whose polling task
emitted it (``job_key_var``), so interleaved output from concurrent loops can
be told apart. Adapters and core code only emit; they never touch handlers.
"""

from __future__ import annotations

import contextvars
import logging
import sys
from typing import Optional

# Set by the polling engine at the top of each job task; "-" outside a task.
job_key_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "job_key", default="-"
)

DEFAULT_FORMAT = "[%(asctime)s] %(levelname)s %(name)s %(job_key)s: %(message)s"


def coerce_level(level: int | str | None) -> int:
    if level is None:
        return logging.INFO
    if isinstance(level, int):
        return level
    key = str(level).upper().strip()
    return logging.getLevelNamesMapping().get(key, logging.INFO)


class _JobKeyFilter(logging.Filter):
    """Inject the current job key from the contextvar into every record."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - simple
        record.job_key = job_key_var.get()
        return True


class _MaxLevelFilter(logging.Filter):
    def __init__(self, max_level: int):
        super().__init__()
        self.max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover
        return record.levelno <= self.max_level


class _MinLevelFilter(logging.Filter):
    def __init__(self, min_level: int):
        super().__init__()
        self.min_level = min_level

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover
        return record.levelno >= self.min_level


def configure_logging(
    level: int | str | None = None,
    fmt: Optional[str] = None,
    quiet_http_libraries: bool = True,
) -> None:
    """Configure the root logger with split stdout/stderr sinks.

    Calling it again replaces the handlers instead of stacking them.
    """
    numeric_level = coerce_level(level)
    fmt = fmt or DEFAULT_FORMAT

    root = logging.getLogger()
    root.setLevel(numeric_level)

    for h in list(root.handlers):
        root.removeHandler(h)

    formatter = logging.Formatter(fmt)
    key_filter = _JobKeyFilter()

    stdout_handler = logging.StreamHandler(stream=sys.stdout)
    stdout_handler.setLevel(logging.DEBUG)
    stdout_handler.addFilter(_MaxLevelFilter(logging.INFO))
    stdout_handler.addFilter(key_filter)
    stdout_handler.setFormatter(formatter)

    stderr_handler = logging.StreamHandler(stream=sys.stderr)
    stderr_handler.setLevel(logging.WARNING)
    stderr_handler.addFilter(_MinLevelFilter(logging.WARNING))
    stderr_handler.addFilter(key_filter)
    stderr_handler.setFormatter(formatter)

    root.addHandler(stdout_handler)
    root.addHandler(stderr_handler)

    if quiet_http_libraries:
        logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
        logging.getLogger("aiohttp.client").setLevel(logging.WARNING)

    logging.getLogger("vidgate").debug("Logging configured level=%s", numeric_level)
