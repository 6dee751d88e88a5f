"""
Mail Domain Monitoring for Zabbix

Besides the record fields, mail domains expose aggregated mailbox metrics
(account_count, total_quota, total_used) computed from the domain's mailboxes.

Example:
    from ispconfig_zabbix.mail_domains import discover_mail_domains, read_mail_domain_value

    with ISPConfigClient(config) as client:
        document = discover_mail_domains(client)
        print(read_mail_domain_value(client, 3, 'account_count'))  # '12'
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .client import ISPConfigClient
from .discovery import empty_discovery, format_mail_domains_discovery
from .errors import ApiError, EntityNotFoundError, UnknownKeyError
from .types import DiscoveryDocument, ItemKey, MailDomainStats
from .values import format_item_value

logger = logging.getLogger(__name__)

MODULE = 'email'
KIND = 'mail_domains'

MAIL_DOMAIN_KEYS: Dict[str, ItemKey] = {
    'active': ItemKey('active', 'boolean', 'n', 'Mail domain active status (0/1)'),
    'domain': ItemKey('domain', 'string', '', 'Domain name'),
    'server_id': ItemKey('server_id', 'numeric', 0, 'Server ID'),
    'mail_catchall': ItemKey('mail_catchall', 'string', '', 'Catch-all email address'),
    'account_count': ItemKey('account_count', 'numeric', 0, 'Number of email accounts in domain'),
    'total_quota': ItemKey('total_quota', 'bytes', 0, 'Total quota for all accounts (bytes)'),
    'total_used': ItemKey('total_used', 'bytes', 0, 'Total used space for all accounts (bytes)'),
}

STATS_KEYS = ('account_count', 'total_quota', 'total_used')


def enrich_mail_domain_data(domains: Iterable[Any]) -> List[Dict[str, Any]]:
    """
    Normalise mail domain records

    ISPConfig keys mail domains by domain_id; mail_domain_id is filled from
    it when missing and mail_catchall defaults to ''.
    """
    enriched = []
    for domain in domains:
        if not isinstance(domain, Mapping):
            continue
        domain = dict(domain)
        if domain.get('mail_domain_id') is None:
            domain['mail_domain_id'] = domain.get('domain_id', '')
        if domain.get('mail_catchall') is None:
            domain['mail_catchall'] = ''
        enriched.append(domain)
    return enriched


def get_mail_domain_stats(client: ISPConfigClient, domain_id: int) -> MailDomainStats:
    """Aggregated mailbox statistics, zeroed if ISPConfig cannot be queried"""
    try:
        return client.get_mail_domain_stats(domain_id)
    except ApiError as e:
        logger.error(f"Failed to get domain stats: {e}")
        return {'account_count': 0, 'total_quota': 0, 'total_used': 0}


def get_mail_domain_value(domain: Mapping[str, Any], key: str,
                          stats: Optional[MailDomainStats] = None) -> str:
    """
    Get a formatted item value from a mail domain record

    Args:
        domain: Mail domain record
        key: One of MAIL_DOMAIN_KEYS
        stats: Aggregated statistics, required for the STATS_KEYS

    Raises:
        UnknownKeyError: If key is not one of MAIL_DOMAIN_KEYS
    """
    try:
        item = MAIL_DOMAIN_KEYS[key]
    except KeyError:
        raise UnknownKeyError(key, KIND) from None

    source: Mapping[str, Any] = (stats or {}) if key in STATS_KEYS else domain
    value = source.get(item.field)
    return format_item_value(item.default if value is None else value, item.value_type)


def discover_mail_domains(client: ISPConfigClient) -> DiscoveryDocument:
    """LLD document for all active mail domains"""
    domains = client.get_mail_domains()
    if not domains:
        return empty_discovery()
    return format_mail_domains_discovery(enrich_mail_domain_data(domains))


def read_mail_domain_value(client: ISPConfigClient, domain_id: int, key: str) -> str:
    """
    Fetch a mail domain and return the value of one item key

    Raises:
        UnknownKeyError: If key is not supported
        EntityNotFoundError: If the mail domain does not exist
        ApiError: If the request fails
    """
    if key not in MAIL_DOMAIN_KEYS:
        raise UnknownKeyError(key, KIND)

    domain = client.get_mail_domain(domain_id)
    if domain is None:
        raise EntityNotFoundError('Mail domain', domain_id)

    stats = get_mail_domain_stats(client, domain_id) if key in STATS_KEYS else None
    return get_mail_domain_value(domain, key, stats)
