"""Runtime configuration read from the environment.

A ``.env`` file in the working directory is loaded first when present;
variables already set in the environment win.
"""

import logging
import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_TENANT = "T-01"
DEFAULT_ACTOR = "admin"
DEFAULT_ROLE = "ADMIN"
DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_db_path() -> Optional[str]:
    return os.environ.get("TRAMITA_DB_PATH")


def get_tenant() -> str:
    return os.environ.get("TRAMITA_TENANT", DEFAULT_TENANT)


def get_actor() -> str:
    return os.environ.get("TRAMITA_ACTOR", DEFAULT_ACTOR)


def get_role() -> str:
    return os.environ.get("TRAMITA_ROLE", DEFAULT_ROLE)


def get_log_level() -> str:
    return os.environ.get("TRAMITA_LOG_LEVEL", DEFAULT_LOG_LEVEL)


def get_gemini_api_key() -> Optional[str]:
    return os.environ.get("GEMINI_API_KEY") or None


def get_gemini_model() -> str:
    return os.environ.get("GEMINI_MODEL", DEFAULT_GEMINI_MODEL)


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for command-line use."""
    level_name = (level or get_log_level()).upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.WARNING), format=LOG_FORMAT)
