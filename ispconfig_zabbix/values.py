"""
Value formatting for Zabbix items

ISPConfig returns loosely typed fields ('y'/'n' flags, numbers as strings,
human readable sizes such as '1.5G'). These helpers coerce them into the
strings a Zabbix item expects.

Example:
    from ispconfig_zabbix.values import format_item_value, create_item_key

    format_item_value('y', 'boolean')        # '1'
    format_item_value('1.5M', 'bytes')       # '1572864'
    format_item_value('42.50', 'numeric')    # '42.5'
    create_item_key('ispconfig.website', 'status', ['123'])
    # 'ispconfig.website.status[123]'
"""

import json
import math
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, List, Optional, Sequence

VALUE_TYPES = ('string', 'numeric', 'boolean', 'timestamp', 'bytes')

TRUE_STRINGS = ('1', 'yes', 'y', 'true', 'on', 'active')

BYTE_UNITS = {
    'B': 1,
    'K': 1024,
    'M': 1024 ** 2,
    'G': 1024 ** 3,
    'T': 1024 ** 4,
}

_BYTES_RE = re.compile(r'^(\d+(\.\d+)?)\s*([BKMGT])?$', re.IGNORECASE)
_NUMERIC_RE = re.compile(r'^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$')
_LEADING_NUMBER_RE = re.compile(r'^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?')
_CONTROL_CHARS_RE = re.compile(r'[\x00-\x1f\x7f]')

_DATE_FORMATS = (
    '%Y-%m-%d %H:%M:%S',
    '%Y-%m-%d %H:%M',
    '%Y-%m-%d',
    '%d.%m.%Y %H:%M:%S',
    '%d.%m.%Y %H:%M',
    '%d.%m.%Y',
    '%Y/%m/%d %H:%M:%S',
    '%Y/%m/%d',
)


def is_numeric(value: Any) -> bool:
    """True for ints, floats and strings holding a complete number"""
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    return isinstance(value, str) and _NUMERIC_RE.match(value) is not None


def to_float(value: Any) -> float:
    """
    Convert a value to float the lenient way

    Strings are read up to the first character that cannot be part of a
    number ('12abc' -> 12.0); anything unparsable is 0.0.
    """
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    match = _LEADING_NUMBER_RE.match(str(value))
    return float(match.group(0)) if match else 0.0


def format_numeric(number: float) -> str:
    """Render a float as Zabbix expects it ('100', '42.5')"""
    if number != number or number in (float('inf'), float('-inf')):
        return str(number)
    if number.is_integer() and abs(number) < 1e15:
        return str(int(number))
    return '%.14G' % number


def parse_boolean(value: Any) -> bool:
    """True for native True, numbers > 0 and 1/yes/y/true/on/active (any case)"""
    if isinstance(value, bool):
        return value
    if is_numeric(value):
        return to_float(value) > 0
    return str(value).strip().lower() in TRUE_STRINGS


def parse_timestamp(value: Any) -> Optional[int]:
    """
    Convert an epoch number or a date/time string to epoch seconds

    Naive date/time strings are taken as UTC.

    Returns:
        Epoch seconds, or None if the value cannot be parsed
    """
    if is_numeric(value):
        number = to_float(value)
        return int(number) if math.isfinite(number) else None

    text = str(value).strip()
    if not text:
        return None

    parsed = None
    try:
        parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
    except ValueError:
        for fmt in _DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        try:
            parsed = parsedate_to_datetime(text)
        except (TypeError, ValueError, IndexError):
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


def format_timestamp(value: Any) -> str:
    """Epoch seconds as string, '0' when unparsable"""
    timestamp = parse_timestamp(value)
    return str(timestamp) if timestamp is not None else '0'


def parse_bytes(value: Any) -> int:
    """
    Convert a number or human readable size string into bytes

    Accepts plain numbers (interpreted as bytes) or strings with an optional
    B/K/M/G/T suffix (case-insensitive) and optional decimals, e.g. '1.5G'.

    Returns:
        Integer number of bytes, 0 if the value cannot be parsed
    """
    if is_numeric(value):
        number = to_float(value)
        return int(number) if math.isfinite(number) else 0

    match = _BYTES_RE.match(str(value).strip())
    if not match:
        return 0

    unit = (match.group(3) or 'B').upper()
    size = float(match.group(1)) * BYTE_UNITS[unit]
    return int(size) if math.isfinite(size) else 0


def sanitize_value(value: Any) -> str:
    """
    Sanitize a value for Zabbix

    None becomes '', booleans '1'/'0', lists and dicts compact JSON; anything
    else is stringified, stripped of control characters and trimmed.
    """
    if value is None:
        return ''
    if isinstance(value, bool):
        return '1' if value else '0'
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(value, separators=(',', ':'))
    if isinstance(value, float):
        return format_numeric(value)

    return _CONTROL_CHARS_RE.sub('', str(value)).strip()


def format_item_value(value: Any, value_type: str = 'string') -> str:
    """
    Format a raw field value for a Zabbix item

    Args:
        value: Raw value
        value_type: 'numeric', 'boolean', 'timestamp', 'bytes' or 'string'.
            Unknown types are treated as 'string'.

    Returns:
        Formatted value, '' for None regardless of type
    """
    if value is None:
        return ''

    if value_type == 'numeric':
        return format_numeric(to_float(value))
    if value_type == 'boolean':
        return '1' if parse_boolean(value) else '0'
    if value_type == 'timestamp':
        return format_timestamp(value)
    if value_type == 'bytes':
        return str(parse_bytes(value))
    return sanitize_value(value)


def calculate_email_usage_percent(used: float, quota: float) -> float:
    """Mailbox usage in percent, capped at 100; 0 for a missing or unlimited quota"""
    if quota <= 0:
        return 0.0
    return min(100.0, used / quota * 100)


def escape_key_param(param: str) -> str:
    """Escape a parameter for a Zabbix item key"""
    param = (str(param)
             .replace('\\', '\\\\')
             .replace('"', '\\"')
             .replace('[', '\\[')
             .replace(']', '\\]')
             .replace(',', '\\,'))

    if ' ' in param:
        param = f'"{param}"'
    return param


def create_item_key(prefix: str, metric: str, params: Optional[Sequence[Any]] = None) -> str:
    """
    Build a Zabbix item key

    Example:
        create_item_key('ispconfig.website', 'info', ['123', 'active'])
        # 'ispconfig.website.info[123,active]'
    """
    key = f'{prefix}.{metric}'
    if params:
        escaped: List[str] = [escape_key_param(p) for p in params]
        key += f"[{','.join(escaped)}]"
    return key
