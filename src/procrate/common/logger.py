# Useful: https://stackoverflow.com/a/43794480
import logging
import os
DEFAULT_FORMATTER = logging.Formatter(
    "%(levelname)s %(name)s %(asctime)s | %(filename)s:%(lineno)d | %(message)s"
)

LOGGER_NAME = "PROCRATE"
PROCRATE_LOGGER = logging.getLogger(LOGGER_NAME)
PROCRATE_LOGGER.setLevel(os.environ.get('PROCRATE_LOG_LEVEL', 'INFO'))

if not PROCRATE_LOGGER.handlers:
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(DEFAULT_FORMATTER)
    PROCRATE_LOGGER.addHandler(console_handler)

log = PROCRATE_LOGGER

def set_log_level(level) -> None:
    """ Accepts a logging constant or a name such as "DEBUG" """
    if isinstance(level, str):
        level = level.upper()
    log.setLevel(level)
