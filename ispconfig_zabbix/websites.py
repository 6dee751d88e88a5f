"""
Website Monitoring for Zabbix

Example:
    from ispconfig_zabbix.client import ISPConfigClient
    from ispconfig_zabbix.websites import discover_websites, read_website_value

    with ISPConfigClient(config) as client:
        # LLD document with {#WEBSITE_ID}, {#DOMAIN}, ... per website
        document = discover_websites(client)

        # Single item value
        print(read_website_value(client, 1, 'ssl_enabled'))  # '1'
"""

from typing import Any, Dict, Mapping

from .client import ISPConfigClient
from .discovery import empty_discovery, format_websites_discovery
from .errors import EntityNotFoundError, UnknownKeyError
from .types import DiscoveryDocument, ItemKey
from .values import format_item_value

MODULE = 'websites'
KIND = 'websites'

WEBSITE_KEYS: Dict[str, ItemKey] = {
    'active': ItemKey('active', 'boolean', 'n', 'Website active status (0/1)'),
    'domain': ItemKey('domain', 'string', '', 'Domain name'),
    'server_id': ItemKey('server_id', 'numeric', 0, 'Server ID'),
    'document_root': ItemKey('document_root', 'string', '', 'Document root path'),
    'php_version': ItemKey('php', 'string', 'default', 'PHP version'),
    'ssl_enabled': ItemKey('ssl', 'boolean', 'n', 'SSL status (0/1)'),
    'traffic': ItemKey('traffic_quota', 'numeric', 0, 'Traffic quota'),
    'disk_usage': ItemKey('hd_usage', 'bytes', 0, 'Disk space usage in bytes'),
    'hd_quota': ItemKey('hd_quota', 'bytes', 0, 'Hard disk quota in bytes'),
    'backup_interval': ItemKey('backup_interval', 'string', '', 'Backup interval'),
    'backup_copies': ItemKey('backup_copies', 'numeric', 1, 'Number of backup copies'),
    'type': ItemKey('type', 'string', 'vhost', 'Website type'),
    'ipv4': ItemKey('ip_address', 'string', '', 'IPv4 address'),
    'ipv6': ItemKey('ipv6_address', 'string', '', 'IPv6 address'),
}


def get_website_value(website: Mapping[str, Any], key: str) -> str:
    """
    Get a formatted item value from a website record

    Raises:
        UnknownKeyError: If key is not one of WEBSITE_KEYS
    """
    try:
        item = WEBSITE_KEYS[key]
    except KeyError:
        raise UnknownKeyError(key, KIND) from None

    value = website.get(item.field)
    return format_item_value(item.default if value is None else value, item.value_type)


def discover_websites(client: ISPConfigClient) -> DiscoveryDocument:
    """LLD document for all active websites"""
    websites = client.get_websites()
    if not websites:
        return empty_discovery()
    return format_websites_discovery(websites)


def read_website_value(client: ISPConfigClient, website_id: int, key: str) -> str:
    """
    Fetch a website and return the value of one item key

    Raises:
        UnknownKeyError: If key is not supported
        EntityNotFoundError: If the website does not exist
        ApiError: If the request fails
    """
    if key not in WEBSITE_KEYS:
        raise UnknownKeyError(key, KIND)

    website = client.get_website(website_id)
    if website is None:
        raise EntityNotFoundError('Website', website_id)
    return get_website_value(website, key)
