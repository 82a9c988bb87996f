"""
Logging configuration shared by webstack and the uvicorn listeners
"""

from typing import Any, Dict

ACCESS_LOGGER = "webstack.access"


def get_logging_config(level: str = "INFO") -> Dict[str, Any]:
    """Get logging configuration for webstack and uvicorn."""
    level = level.upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            },
            "access": {
                "format": "%(asctime)s - %(message)s"
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout"
            },
            "access": {
                "class": "logging.StreamHandler",
                "formatter": "access",
                "stream": "ext://sys.stdout"
            }
        },
        "loggers": {
            "uvicorn": {
                "handlers": ["default"],
                "level": "INFO",
                "propagate": False
            },
            "uvicorn.error": {
                "handlers": ["default"],
                "level": "INFO",
                "propagate": False
            },
            # Access lines come from the pipeline, not from uvicorn
            "uvicorn.access": {
                "handlers": [],
                "level": "WARNING",
                "propagate": False
            },
            ACCESS_LOGGER: {
                "handlers": ["access"],
                "level": level,
                "propagate": False
            },
            "webstack": {
                "handlers": ["default"],
                "level": level,
                "propagate": False
            }
        },
        "root": {
            "level": "INFO",
            "handlers": ["default"]
        }
    }
