"""
Zabbix Low-Level Discovery formatting

Turns ISPConfig records into LLD documents using a declarative mapping of
record fields to LLD macros, and validates the result.

Example:
    from ispconfig_zabbix.discovery import format_discovery, validate_lld_data, to_json

    document = format_discovery(
        [{'id': 1, 'name': 'Item 1', 'owner': {'login': 'admin'}}],
        {'id': '{#ITEM_ID}', 'name': '{#ITEM_NAME}', 'owner.login': '{#OWNER}'},
    )
    assert validate_lld_data(document)
    print(to_json(document))
    # {"data":[{"{#ITEM_ID}":"1","{#ITEM_NAME}":"Item 1","{#OWNER}":"admin"}]}
"""

import json
import re
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List

from .types import DiscoveryDocument, MacroMap
from .values import sanitize_value

MACRO_RE = re.compile(r'\{#[A-Z0-9_]+\}')

WEBSITE_MACROS: MacroMap = {
    'domain_id': '{#WEBSITE_ID}',
    'domain': '{#DOMAIN}',
    'server_id': '{#SERVER_ID}',
    'document_root': '{#DOCUMENT_ROOT}',
    'php': '{#PHP_VERSION}',
    'active': '{#ACTIVE}',
    'ssl': '{#SSL_ENABLED}',
}

EMAIL_MACROS: MacroMap = {
    'mailuser_id': '{#MAIL_USER_ID}',
    'email': '{#EMAIL}',
    'mail_domain_id': '{#MAIL_DOMAIN_ID}',
    'quota': '{#QUOTA}',
    'used': '{#USED}',
    'active': '{#ACTIVE}',
    'domain': '{#DOMAIN}',
}

MAIL_DOMAIN_MACROS: MacroMap = {
    'mail_domain_id': '{#MAIL_DOMAIN_ID}',
    'domain': '{#DOMAIN}',
    'server_id': '{#SERVER_ID}',
    'active': '{#ACTIVE}',
    'mail_catchall': '{#CATCH_ALL}',
}


def get_nested_value(item: Mapping, key: str, default: Any = '') -> Any:
    """
    Get a value using dot notation ('parent.child')

    An exact key match wins over the dotted path.
    """
    if key in item:
        return item[key]
    if '.' not in key:
        return default

    value: Any = item
    for part in key.split('.'):
        if not isinstance(value, Mapping) or part not in value:
            return default
        value = value[part]
    return value


def empty_discovery() -> DiscoveryDocument:
    """LLD document without entries"""
    return {'data': []}


def format_discovery(items: Iterable[Any], macro_map: MacroMap) -> DiscoveryDocument:
    """
    Format records for Zabbix Low-Level Discovery

    Every record yields one entry holding every macro of the map, in map
    order; fields missing from a record become ''. Records that produce no
    macros (only possible with an empty map) and non-mapping records are
    left out.

    Args:
        items: Records to format
        macro_map: Record field (dot notation allowed) to macro name

    Returns:
        Discovery document {'data': [...]}
    """
    data: List[Dict[str, str]] = []

    for item in items:
        if not isinstance(item, Mapping):
            continue

        entry = {
            macro: sanitize_value(get_nested_value(item, field))
            for field, macro in macro_map.items()
        }
        if entry:
            data.append(entry)

    return {'data': data}


def format_websites_discovery(websites: Iterable[Any]) -> DiscoveryDocument:
    """LLD document for websites"""
    return format_discovery(websites, WEBSITE_MACROS)


def format_emails_discovery(emails: Iterable[Any]) -> DiscoveryDocument:
    """LLD document for mailboxes"""
    return format_discovery(emails, EMAIL_MACROS)


def format_mail_domains_discovery(domains: Iterable[Any]) -> DiscoveryDocument:
    """LLD document for mail domains"""
    return format_discovery(domains, MAIL_DOMAIN_MACROS)


def validate_lld_data(document: Any) -> bool:
    """
    Validate the structure of an LLD document

    'data' must be a list of dicts whose keys are all macros ({#NAME}).
    An empty list is valid.
    """
    if not isinstance(document, Mapping):
        return False

    data = document.get('data')
    if not isinstance(data, list):
        return False

    for entry in data:
        if not isinstance(entry, dict):
            return False
        for key in entry:
            if not isinstance(key, str) or not MACRO_RE.fullmatch(key):
                return False

    return True


def to_json(document: Any, pretty: bool = False) -> str:
    """Serialize for the Zabbix agent, unicode and slashes unescaped"""
    if pretty:
        return json.dumps(document, indent=4, ensure_ascii=False)
    return json.dumps(document, separators=(',', ':'), ensure_ascii=False)
