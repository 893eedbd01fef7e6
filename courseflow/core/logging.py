import logging
import logging.config
from pathlib import Path
from courseflow.core.config import settings

ROTATE_BYTES = 10485760  # 10MB
APP_HANDLERS = ["console", "file", "error_file"]


def build_logging_config(log_dir: str, level: str = "INFO") -> dict:
    def rotating(filename: str, handler_level: str) -> dict:
        return {
            "class": "logging.handlers.RotatingFileHandler",
            "level": handler_level,
            "formatter": "detailed",
            "filename": f"{log_dir}/{filename}",
            "maxBytes": ROTATE_BYTES,
            "backupCount": 5,
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            },
            "detailed": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] %(message)s"
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "default",
                "stream": "ext://sys.stdout"
            },
            "file": rotating("app.log", level),
            "error_file": rotating("error.log", "ERROR"),
            # uploads, deletes and mode decisions, kept apart for auditing
            "storage_file": rotating("storage.log", "DEBUG"),
        },
        "root": {
            "level": level,
            "handlers": APP_HANDLERS
        },
        "loggers": {
            "courseflow": {
                "level": level,
                "handlers": APP_HANDLERS,
                "propagate": False
            },
            "courseflow.services.storage": {
                "level": "DEBUG",
                "handlers": APP_HANDLERS + ["storage_file"],
                "propagate": False
            },
            "courseflow.services.upload": {
                "level": "INFO",
                "handlers": APP_HANDLERS + ["storage_file"],
                "propagate": False
            },
            "uvicorn.access": {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False
            },
            "botocore": {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False
            }
        }
    }


def configure_logging():
    Path(settings.LOG_DIR).mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_logging_config(settings.LOG_DIR, settings.LOG_LEVEL.upper()))
