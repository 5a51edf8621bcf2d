from .env import load_env_file
from .json_utils import atomic_write_json, read_json
from .logging import LOG_LEVELS, set_log_level, setup_logger

__all__ = [
    "LOG_LEVELS",
    "atomic_write_json",
    "load_env_file",
    "read_json",
    "set_log_level",
    "setup_logger",
]
