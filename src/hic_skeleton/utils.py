import re
from logging import getLogger
from typing import Tuple

logger = getLogger(__name__)


def kmg_bases_to_int(value: str) -> int:
    try:
        result = int(value)
    except ValueError:
        result = None
    if result is not None:
        return result

    value_re = re.compile(r"(\d+(?:\.\d+)?)([KkMmGg])([bB])?$")
    m = value_re.match(value.strip())
    if not m:
        raise ValueError(f"Invalid string: {value}")

    exponent = {"k": 1e3, "m": 1e6, "g": 1e9}[m.group(2).lower()]
    result = float(m.group(1)) * exponent
    if abs(result - round(result)) > 1e-6:
        raise ValueError(f"{value} is not a whole number of bases")
    return int(round(result))


def parse_percentiles(value: str) -> Tuple[float, ...]:
    """Parse a comma-separated list of cumulative percentiles, eg. '20,40,50,100'"""
    try:
        return tuple(float(v) for v in value.split(",") if v.strip())
    except ValueError:
        raise ValueError(f"Invalid percentile list: {value}")
