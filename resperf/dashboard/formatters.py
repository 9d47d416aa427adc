"""
Value formatting for dashboard graphs.

Display strings for energy, percentages, network transfer rates, memory and
storage volumes. Formatters never raise: None and non-numeric input give
PLACEHOLDER_VALUE (values) or PLACEHOLDER_UNIT (units).
"""

import math
from typing import Any, List, NamedTuple, Optional, Union

from ..core.device_rules import DeviceType, get_rule

PLACEHOLDER_VALUE = "-"
PLACEHOLDER_UNIT = ""

BINARY_BASE = 1024
BITS_PER_BYTE = 8

BYTE_UNITS: List[str] = ["B", "KiB", "MiB", "GiB", "TiB", "PiB", "EiB"]
NETWORK_UNITS: List[str] = ["bit/s", "Kibit/s", "Mibit/s", "Gibit/s", "Tibit/s", "Pibit/s"]


class UnitValue(NamedTuple):
    magnitude: float
    unit: str


def _to_number(value: Any) -> Optional[float]:
    """Finite float or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (ValueError, TypeError):
        return None
    return number if math.isfinite(number) else None


def _prefix_index(value: float, units: List[str]) -> int:
    """Largest binary prefix keeping the scaled magnitude >= 1."""
    index = 0
    magnitude = abs(value)
    while magnitude >= BINARY_BASE and index < len(units) - 1:
        magnitude /= BINARY_BASE
        index += 1
    return index


def _trim(value: float) -> str:
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def format_energy_value(value: Any) -> str:
    """Watt-hours without decimals: 0 -> '0 Wh'."""
    number = _to_number(value)
    if number is None:
        return PLACEHOLDER_VALUE
    return f"{round(number)} Wh"


def format_percent_value(value: Any) -> str:
    """Always two decimals: 0 -> '0.00 %'."""
    number = _to_number(value)
    if number is None:
        return PLACEHOLDER_VALUE
    return f"{number:.2f} %"


def format_network_transfer_value(bytes_per_second: Any) -> str:
    """
    Network transfer rate in bits per second with binary prefixes.

    Input is bytes/s and is multiplied by 8. Below 1024 bytes/s the bit count is
    shown without a prefix ('8184 bit/s' for 1023); from 1024 bytes/s on a binary
    prefix is used with two decimals ('8.00 Kibit/s' for 1024).
    """
    number = _to_number(bytes_per_second)
    if number is None:
        return PLACEHOLDER_VALUE
    bits = number * BITS_PER_BYTE
    if abs(number) < BINARY_BASE:
        return f"{_trim(bits)} {NETWORK_UNITS[0]}"
    index = max(_prefix_index(bits, NETWORK_UNITS), 1)
    return f"{bits / BINARY_BASE ** index:.2f} {NETWORK_UNITS[index]}"


def format_number_of_resources(value: Any) -> str:
    number = _to_number(value)
    if number is None:
        return PLACEHOLDER_VALUE
    return str(int(number)) if number.is_integer() else _trim(number)


def bytes_to_unit(value: Any) -> str:
    """
    Display unit for a byte count chosen by its magnitude.

    Examples:
        >>> bytes_to_unit(1024 ** 3)
        'GiB'
        >>> bytes_to_unit(1023)
        'B'
    """
    number = _to_number(value)
    if number is None:
        return PLACEHOLDER_UNIT
    return BYTE_UNITS[_prefix_index(number, BYTE_UNITS)]


def _volume_in_bytes(device_type: Union[str, DeviceType], value: Any) -> Optional[float]:
    """Convert an inventory volume (capacityMiB, driveCapacityBytes) to bytes."""
    number = _to_number(value)
    rule = get_rule(device_type)
    if number is None or rule is None or rule.volume_key is None:
        return None
    return number * rule.volume_scale


def type_to_unit(device_type: Union[str, DeviceType], value: Any) -> str:
    """Display unit for a device type's volume, e.g. ('memory', 1024) -> 'GiB'."""
    volume = _volume_in_bytes(device_type, value)
    if volume is None:
        return PLACEHOLDER_UNIT
    return bytes_to_unit(volume)


def format_unit_value(device_type: Union[str, DeviceType], value: Any, unit: str) -> str:
    """
    Volume of a device type expressed in `unit` with two decimals.

    Examples:
        >>> format_unit_value('storage', 36 * 1024 ** 4, 'TiB')
        '36.00'
        >>> format_unit_value('memory', 1024, 'GiB')
        '1.00'
    """
    volume = _volume_in_bytes(device_type, value)
    if volume is None or unit not in BYTE_UNITS:
        return PLACEHOLDER_VALUE
    return f"{volume / BINARY_BASE ** BYTE_UNITS.index(unit):.2f}"


def to_unit_value(device_type: Union[str, DeviceType], value: Any) -> Optional[UnitValue]:
    """Volume scaled to the unit picked for its own magnitude."""
    volume = _volume_in_bytes(device_type, value)
    if volume is None:
        return None
    unit = bytes_to_unit(volume)
    return UnitValue(magnitude=volume / BINARY_BASE ** BYTE_UNITS.index(unit), unit=unit)

