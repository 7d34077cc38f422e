import logging
import logging.handlers
import os

from server_monitor import config, settings

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"

LEVEL_MAPPING = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


def make_handler(log_dir):
    # The report goes to stdout, so logs default to stderr.
    if not log_dir:
        return logging.StreamHandler()
    return logging.handlers.RotatingFileHandler(
        filename=os.path.join(log_dir, settings.LOG_FILE_NAME),
        maxBytes=20000000,
        backupCount=5,
    )


def configure(log_dir, log_level, force=False):
    logging.basicConfig(
        format=LOG_FORMAT,
        level=LEVEL_MAPPING.get(log_level.lower(), logging.INFO),
        handlers=[make_handler(log_dir)],
        force=force,
    )


configure(config.config["log_dir"], config.config["log_level"])


def get_logger(name):
    return logging.getLogger(name)
