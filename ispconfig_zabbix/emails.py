"""
Mailbox Monitoring for Zabbix

Example:
    from ispconfig_zabbix.emails import discover_emails, read_email_value

    with ISPConfigClient(config) as client:
        document = discover_emails(client)
        print(read_email_value(client, 7, 'usage_percent'))  # '42.5'
"""

from typing import Any, Dict, Mapping

from .client import ISPConfigClient
from .discovery import empty_discovery, format_emails_discovery
from .errors import EntityNotFoundError, UnknownKeyError
from .types import DiscoveryDocument, ItemKey
from .values import calculate_email_usage_percent, format_item_value, to_float

MODULE = 'email'
KIND = 'emails'

EMAIL_KEYS: Dict[str, ItemKey] = {
    'active': ItemKey('active', 'boolean', 'n', 'Email active status (0/1)'),
    'email': ItemKey('email', 'string', '', 'Full email address'),
    'domain': ItemKey('domain', 'string', '', 'Domain name'),
    'quota': ItemKey('quota', 'bytes', 0, 'Mailbox quota in bytes'),
    'used': ItemKey('used', 'bytes', 0, 'Currently used space in bytes'),
    'usage_percent': ItemKey('used', 'numeric', 0, 'Usage percentage (0-100)'),
    'spamfilter_enabled': ItemKey('spamfilter_enabled', 'boolean', 'n', 'Spamfilter status (0/1)'),
    'antivirus_enabled': ItemKey('antivirus_enabled', 'boolean', 'n', 'Antivirus status (0/1)'),
    'mail_domain_id': ItemKey('mail_domain_id', 'numeric', 0, 'Mail domain ID'),
    'server_id': ItemKey('server_id', 'numeric', 0, 'Server ID'),
    'homedir': ItemKey('homedir', 'string', '', 'Home directory path'),
}


def get_usage_percent(email: Mapping[str, Any]) -> float:
    """Mailbox usage in percent of its quota"""
    quota = int(to_float(email.get('quota') or 0))
    used = int(to_float(email.get('used') or 0))
    return calculate_email_usage_percent(used, quota)


def get_email_value(email: Mapping[str, Any], key: str) -> str:
    """
    Get a formatted item value from a mailbox record

    Raises:
        UnknownKeyError: If key is not one of EMAIL_KEYS
    """
    try:
        item = EMAIL_KEYS[key]
    except KeyError:
        raise UnknownKeyError(key, KIND) from None

    if key == 'usage_percent':
        return format_item_value(get_usage_percent(email), 'numeric')

    value = email.get(item.field)
    return format_item_value(item.default if value is None else value, item.value_type)


def discover_emails(client: ISPConfigClient) -> DiscoveryDocument:
    """LLD document for all active mailboxes"""
    emails = client.get_emails()
    if not emails:
        return empty_discovery()
    return format_emails_discovery(emails)


def read_email_value(client: ISPConfigClient, mailuser_id: int, key: str) -> str:
    """
    Fetch a mailbox and return the value of one item key

    Raises:
        UnknownKeyError: If key is not supported
        EntityNotFoundError: If the mailbox does not exist
        ApiError: If the request fails
    """
    if key not in EMAIL_KEYS:
        raise UnknownKeyError(key, KIND)

    email = client.get_email(mailuser_id)
    if email is None:
        raise EntityNotFoundError('Email', mailuser_id)
    return get_email_value(email, key)
