import logging

from vidgate.core.interfaces.logging import LoggingPort
from vidgate.core.logging_config import coerce_level


class LoggingAdapter(LoggingPort):
    """Thin wrapper over a stdlib logger.

    Installs no handlers; sinks belong to `configure_logging`. The job key is
    stamped onto records by the root handlers' filter.
    """

    def __init__(self, name: str = "vidgate", log_level: int | str = logging.INFO):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(coerce_level(log_level))
        self.logger.propagate = True

    def set_level(self, log_level: int | str) -> None:
        self.logger.setLevel(coerce_level(log_level))

    def info(self, msg: str, *args):
        self.logger.info(msg, *args)

    def warning(self, msg: str, *args):
        self.logger.warning(msg, *args)

    def error(self, msg: str, *args):
        self.logger.error(msg, *args)

    def debug(self, msg: str, *args):
        self.logger.debug(msg, *args)
