"""Utility functions for csvconv"""

import logging
import os
from pathlib import Path

import psutil


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Name of the output directory created next to the program
CONVERTED_DIR_NAME = 'converted'


def get_int_env(key: str) -> int:
    """Get integer value from environment variable, return 0 if not set or invalid."""
    val = os.getenv(key)
    if val is None:
        return 0
    try:
        return int(val)
    except ValueError:
        return 0


def get_float_env(key: str) -> float:
    """Get float value from environment variable, return 0.0 if not set or invalid."""
    val = os.getenv(key)
    if val is None:
        return 0.0
    try:
        return float(val)
    except ValueError:
        return 0.0


def get_str_env(key: str, default: str) -> str:
    """
    Get string from environment variable, return default if not set.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        String value or default
    """
    return os.getenv(key, default)


def get_log_level_name() -> str:
    """Log level name from CSVCONV_LOG_LEVEL, falling back to INFO for unknown names."""
    name = get_str_env('CSVCONV_LOG_LEVEL', 'INFO').upper()
    if not isinstance(logging.getLevelName(name), int):
        return 'INFO'
    return name


def setup_logging(level: str | None = None) -> None:
    """Configure root logging for the current process.

    Worker processes call this too: spawn and forkserver children start with
    an unconfigured root logger.

    Args:
        level: Level name (e.g. 'DEBUG'); defaults to CSVCONV_LOG_LEVEL or INFO
    """
    level_name = (level or get_log_level_name()).upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT, force=True)


def get_cpu_count() -> int:
    """Number of logical CPUs on the host, never less than 1."""
    return max(psutil.cpu_count(logical=True) or 1, 1)


def get_worker_count(requested: int | None = None) -> int:
    """Resolve the number of worker processes.

    Priority:
    1. Explicit value (CLI option)
    2. CSVCONV_WORKERS environment variable (if set and positive)
    3. Logical CPU count of the host

    Returns:
        Positive worker count
    """
    if requested is not None and requested > 0:
        return requested
    env_workers = get_int_env('CSVCONV_WORKERS')
    if env_workers > 0:
        return env_workers
    return get_cpu_count()


def get_stall_timeout(requested: float | None = None) -> float | None:
    """Resolve the per-worker stall timeout in seconds; None means disabled."""
    if requested is not None:
        return requested if requested > 0 else None
    env_timeout = get_float_env('CSVCONV_STALL_TIMEOUT')
    return env_timeout if env_timeout > 0 else None


def get_output_dir(requested: str | None = None) -> Path:
    """Resolve the directory converted JSON files are written to.

    Priority:
    1. Explicit value (CLI option)
    2. CSVCONV_OUTPUT_DIR environment variable (if set)
    3. 'converted' next to the program itself (the csvconv package directory)

    Returns:
        Path to the output directory (not created here)
    """
    if requested:
        return Path(requested)
    env_dir = os.environ.get('CSVCONV_OUTPUT_DIR')
    if env_dir:
        return Path(env_dir)
    return Path(__file__).resolve().parent / CONVERTED_DIR_NAME


def ensure_dir(path: Path) -> Path:
    """Create a directory (and parents) if missing; no-op if it already exists."""
    path.mkdir(parents=True, exist_ok=True)
    return path
