from datetime import datetime, timezone

import pytest

from ispconfig_zabbix.values import (
    calculate_email_usage_percent,
    create_item_key,
    escape_key_param,
    format_item_value,
    parse_bytes,
    parse_timestamp,
    sanitize_value,
    to_float,
)


@pytest.mark.parametrize('value', ['y', 'yes', '1', 'true', 'on', 'active', 'YES', 'Active', True, 1, 2.5])
def test_boolean_true(value):
    assert format_item_value(value, 'boolean') == '1'


@pytest.mark.parametrize('value', ['n', 'no', '0', 'false', 'off', 'inactive', '', False, 0, -1])
def test_boolean_false(value):
    assert format_item_value(value, 'boolean') == '0'


@pytest.mark.parametrize('value_type', ['string', 'numeric', 'boolean', 'timestamp', 'bytes', 'unknown'])
def test_none_is_empty_for_every_type(value_type):
    assert format_item_value(None, value_type) == ''


def test_bytes():
    assert format_item_value('1.5M', 'bytes') == '1572864'
    assert format_item_value('1G', 'bytes') == '1073741824'
    assert format_item_value('2k', 'bytes') == '2048'
    assert format_item_value(' 10 T ', 'bytes') == str(10 * 1024 ** 4)
    assert format_item_value('512B', 'bytes') == '512'
    assert format_item_value(1048576, 'bytes') == '1048576'
    assert format_item_value('1048576', 'bytes') == '1048576'
    assert format_item_value('invalid', 'bytes') == '0'
    assert format_item_value('1.5X', 'bytes') == '0'


def test_bytes_truncates_fractions():
    assert parse_bytes('1.3K') == 1331


def test_numeric():
    assert format_item_value('42.5', 'numeric') == '42.5'
    assert format_item_value('100', 'numeric') == '100'
    assert format_item_value(100.0, 'numeric') == '100'
    assert format_item_value('42.50', 'numeric') == '42.5'
    assert format_item_value('-3', 'numeric') == '-3'
    assert format_item_value('abc', 'numeric') == '0'


def test_numeric_reads_leading_number():
    assert to_float('12abc') == 12.0
    assert to_float('  7.25 MB') == 7.25
    assert to_float('') == 0.0


def test_timestamp_numeric():
    assert format_item_value(1234567890, 'timestamp') == '1234567890'
    assert format_item_value('1234567890', 'timestamp') == '1234567890'


def test_timestamp_from_date_string():
    assert format_item_value('2009-02-13 23:31:30', 'timestamp') == '1234567890'
    assert int(format_item_value('2024-01-15', 'timestamp')) > 0
    assert format_item_value('13.02.2009 23:31:30', 'timestamp') == '1234567890'
    assert format_item_value('Fri, 13 Feb 2009 23:31:30 +0000', 'timestamp') == '1234567890'


def test_timestamp_with_offset():
    expected = int(datetime(2009, 2, 13, 23, 31, 30, tzinfo=timezone.utc).timestamp())
    assert parse_timestamp('2009-02-14T00:31:30+01:00') == expected
    assert parse_timestamp('2009-02-13T23:31:30Z') == expected


def test_timestamp_unparsable():
    assert format_item_value('not a date', 'timestamp') == '0'
    assert parse_timestamp('') is None


def test_string_is_sanitized():
    assert format_item_value('  example.com\n', 'string') == 'example.com'
    assert format_item_value('a\x00b\x7fc', 'string') == 'abc'
    assert format_item_value(42) == '42'


def test_sanitize_value():
    assert sanitize_value(None) == ''
    assert sanitize_value(True) == '1'
    assert sanitize_value(False) == '0'
    assert sanitize_value([1, 'a']) == '[1,"a"]'
    assert sanitize_value({'k': 'v'}) == '{"k":"v"}'
    assert sanitize_value(1.0) == '1'
    assert sanitize_value('\ttext\r\n') == 'text'


def test_usage_percent():
    assert calculate_email_usage_percent(512, 1024) == 50.0
    assert calculate_email_usage_percent(2048, 1024) == 100.0
    assert calculate_email_usage_percent(100, 0) == 0.0
    assert calculate_email_usage_percent(100, -1) == 0.0


def test_item_key():
    assert create_item_key('ispconfig.website', 'status') == 'ispconfig.website.status'
    assert create_item_key('ispconfig.website', 'status', ['123']) == 'ispconfig.website.status[123]'
    assert create_item_key('ispconfig.website', 'info', ['123', 'active']) == 'ispconfig.website.info[123,active]'


def test_item_key_escaping():
    assert escape_key_param('a,b') == 'a\\,b'
    assert escape_key_param('[x]') == '\\[x\\]'
    assert escape_key_param('say "hi"') == '"say \\"hi\\""'
    assert escape_key_param('C:\\dir') == 'C:\\\\dir'
    assert create_item_key('p', 'm', ['my site']) == 'p.m["my site"]'


@pytest.mark.parametrize('value', ['1e999', '-1e999', float('inf'), float('nan'), '9' * 400 + 'T'])
def test_overflowing_numbers_are_unparsable(value):
    assert format_item_value(value, 'bytes') == '0'
    assert format_item_value(value, 'timestamp') == '0'
    assert parse_bytes(value) == 0
    assert parse_timestamp(value) is None
