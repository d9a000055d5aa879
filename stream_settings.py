# stream_settings.py

import os
import logging

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1000            # 1KB chunks
DEFAULT_SAMPLE_SIZE = 30_000_000     # 30MB bandwidth sample
DEFAULT_FUDGE_FACTOR = 1.2
DEFAULT_OUT_PATH = "out.mkv"


def _env_number(name: str, default, cast=int, minimum=None):
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning(f"Ignoring {name}={raw!r}: not a number")
        return default
    if minimum is not None and value < minimum:
        logger.warning(f"Ignoring {name}={raw!r}: must be >= {minimum}")
        return default
    return value


def chunk_size():
    return _env_number("AUTOBUFFER_CHUNK_SIZE", DEFAULT_CHUNK_SIZE, int, minimum=1)


def sample_size():
    return _env_number("AUTOBUFFER_SAMPLE_SIZE", DEFAULT_SAMPLE_SIZE, int, minimum=1)


def fudge_factor():
    # Below 1.0 the estimate would undershoot the raw download time.
    return _env_number("AUTOBUFFER_FUDGE_FACTOR", DEFAULT_FUDGE_FACTOR, float, minimum=1.0)


def request_timeout():
    """Seconds for requests' connect/read timeout, or None to wait forever."""
    return _env_number("AUTOBUFFER_TIMEOUT", None, float, minimum=0.001)
