# duration_rules.py

import re

UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

# longest units first so "ms" is never read as "m" + "s"
_UNIT_RE = "|".join(sorted((re.escape(u) for u in UNIT_SECONDS), key=len, reverse=True))
_PART = re.compile(rf"(\d+(?:\.\d*)?|\.\d+)({_UNIT_RE})")
_BARE_NUMBER = re.compile(r"\d+(?:\.\d*)?|\.\d+")


def parse_duration(text: str) -> float:
    """
    Parse a playback duration such as "1h50m", "90s", "1.5h" or "2h3m4.5s"
    into seconds. A bare number counts as seconds.
    """
    if text is None:
        raise ValueError("duration is required")
    # units are case-sensitive, so "20M" is not 20 minutes
    s = str(text).strip().replace(" ", "")
    if not s:
        raise ValueError("duration is empty")
    if s.startswith("-"):
        raise ValueError(f"duration must be positive: {text!r}")
    if s.startswith("+"):
        s = s[1:]

    if _BARE_NUMBER.fullmatch(s):
        seconds = float(s)
    else:
        seconds = 0.0
        pos = 0
        for m in _PART.finditer(s):
            if m.start() != pos:
                break
            seconds += float(m.group(1)) * UNIT_SECONDS[m.group(2)]
            pos = m.end()
        if pos != len(s):
            raise ValueError(f"invalid duration: {text!r}")

    if seconds <= 0:
        raise ValueError(f"duration must be positive: {text!r}")
    return seconds


def format_duration(seconds: float) -> str:
    """Short human form used in log lines, e.g. 6600 -> "1h50m0s"."""
    seconds = max(0.0, float(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{int(hours)}h{int(minutes)}m{secs:.0f}s"
    if minutes:
        return f"{int(minutes)}m{secs:.0f}s"
    return f"{secs:.1f}s"
