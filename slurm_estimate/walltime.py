"""Parsing and formatting of wall-clock durations.

Durations show up in three shapes in benchmark logs: plain seconds, the
``[H:]MM:SS[.ff]`` form printed by ``/usr/bin/time`` and the
``[D-]HH:MM:SS`` form used by Slurm (``sacct`` ``Elapsed`` and ``sbatch
--time``).  Everything is normalised to seconds as a float.
"""

from __future__ import annotations

import math
import numbers
import re
from typing import List, Union

_DURATION_PATTERN = re.compile(r"^(?:(?P<days>\d+)-)?(?P<clock>\d+(?:\.\d+)?(?::\d+(?:\.\d+)?){0,2})$")

Duration = Union[str, int, float]


def parse_walltime(value: Duration) -> float:
    """Convert ``value`` into a number of seconds.

    Accepted forms::

        90          -> 90.0
        "1:30"      -> 90.0     (MM:SS)
        "0:45:00"   -> 2700.0   (H:MM:SS)
        "1-02:00:00"-> 93600.0  (D-HH:MM:SS)
        "2-12"      -> 216000.0 (D-HH, Slurm)
    """

    if isinstance(value, bool):
        raise TypeError("wall time must be a number or a duration string, not bool")
    if isinstance(value, numbers.Real):
        seconds = float(value)
        if not math.isfinite(seconds) or seconds < 0:
            raise ValueError(f"wall time must be a non-negative finite number, got {value!r}")
        return seconds
    if not isinstance(value, str):
        raise TypeError(f"Unsupported wall time type: {type(value)!r}")

    text = value.strip()
    match = _DURATION_PATTERN.match(text)
    if not match:
        raise ValueError(f"could not parse wall time {value!r}")

    parts: List[float] = [float(part) for part in match.group("clock").split(":")]
    days = match.group("days")
    if days is not None:
        # after a day prefix Slurm reads the fields as hours[:minutes[:seconds]]
        parts.extend([0.0] * (3 - len(parts)))
        hours, minutes, seconds = parts
        hours += int(days) * 24
    elif len(parts) == 3:
        hours, minutes, seconds = parts
    elif len(parts) == 2:
        hours, (minutes, seconds) = 0.0, parts
    else:
        hours, minutes, seconds = 0.0, 0.0, parts[0]

    if minutes >= 60 or (len(parts) > 1 and seconds >= 60):
        raise ValueError(f"minutes and seconds must be below 60 in {value!r}")
    return hours * 3600.0 + minutes * 60.0 + seconds


def format_walltime(seconds: float) -> str:
    """Render ``seconds`` in Slurm ``[D-]HH:MM:SS`` form, rounding up."""

    if not math.isfinite(seconds) or seconds < 0:
        raise ValueError(f"cannot format wall time {seconds!r}")
    # round() first so float noise such as 13500.000000002 does not add a second
    total = math.ceil(round(seconds, 6))
    days, remainder = divmod(total, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, secs = divmod(remainder, 60)
    clock = f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{days}-{clock}" if days else clock


def round_up_minutes(seconds: float) -> float:
    """Round a duration up to the next whole minute."""

    return math.ceil(round(seconds, 6) / 60.0) * 60.0
