import logging
import sys

LOG_FORMAT = "[%(asctime)s] {%(filename)s:%(lineno)d} %(levelname)s - %(message)s"


def configure_logging(level=logging.INFO, stream=None):
    """
    Installs a single stream handler on the package logger.
    level: int or level name (e.g. "DEBUG")
    stream: defaults to sys.stdout
    """
    if isinstance(level, str):
        numeric = logging.getLevelName(level.upper())
        if not isinstance(numeric, int):
            raise ValueError(f"Unknown log level: {level}")
        level = numeric

    root = logging.getLogger("vicon_inertial_sim")
    for handler in list(root.handlers):
        root.removeHandler(handler)
    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(level)
    return root


def get_logger(name):
    return logging.getLogger(name)
