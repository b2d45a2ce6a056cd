from __future__ import annotations

import logging
import math

from gpu_tap.errors import MalformedUnitString

logger = logging.getLogger(__name__)


def split_unit(text: str) -> tuple[float, str]:
    """Split a value like '16384 MiB' or '5 %' into its number and unit.

    The unit is everything after the first space. A number that does not
    parse, or is not finite, yields 0.0; a string without a space raises
    MalformedUnitString.
    """
    number, sep, unit = text.partition(" ")
    if not sep:
        raise MalformedUnitString(text)
    try:
        value = float(number)
    except ValueError:
        value = 0.0
    if not math.isfinite(value):
        value = 0.0
    return value, unit


def unit_value(text: str) -> float:
    try:
        value, _ = split_unit(text)
    except MalformedUnitString as e:
        logger.warning("%s; using 0", e)
        return e.value
    return value
