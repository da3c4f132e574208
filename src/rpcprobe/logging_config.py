import logging
import logging.config
import os
import sys
from pathlib import Path

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def build_logging_config(log_dir: Path, level: str = LOG_LEVEL) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)-6s %(name)8s:%(lineno)d %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "console": {
                "format": "%(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "console",
                "stream": sys.stdout,
            },
            "file": {
                "class": "logging.FileHandler",
                "formatter": "default",
                "filename": str(Path(log_dir) / "rpcprobe.log"),
                "mode": "a",
            },
        },
        "loggers": {
            "rpcprobe": {
                "level": level,
                "handlers": ["console", "file"],
                "propagate": False,  # Don't pass 'rpcprobe' logs up to the root logger
            },
            # One line per request is plenty
            "httpx": {
                "level": "WARNING",
                "handlers": ["console", "file"],
                "propagate": False,
            },
            "httpcore": {
                "level": "WARNING",
                "handlers": ["file"],
                "propagate": False,
            },
            "uvicorn.access": {
                "level": "WARNING",
                "handlers": ["console", "file"],
                "propagate": False,
            },
        },
        # Default for all other loggers
        "root": {
            "level": "WARNING",
            "handlers": ["console", "file"],
        },
    }


def setup_logging(log_dir: Path = Path("logs"), level: str = LOG_LEVEL):
    """ Apply the logging configuration. """
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_logging_config(log_dir, level))
    os.environ.setdefault("PYTHONUNBUFFERED", "1")
