"""
ISPConfig Monitoring for Zabbix

This package connects to the ISPConfig remote (SOAP) API, fetches websites,
mailboxes and mail domains and formats them for Zabbix, either as
Low-Level Discovery (LLD) JSON or as single item values.

Example - Discovery:
    from ispconfig_zabbix import ISPConfigClient, load_config, discover_websites, to_json

    with ISPConfigClient(load_config()) as client:
        print(to_json(discover_websites(client)))

Example - Item values:
    from ispconfig_zabbix import ISPConfigClient, load_config, read_email_value

    with ISPConfigClient(load_config()) as client:
        print(read_email_value(client, 7, 'usage_percent'))

Example - Formatting only:
    from ispconfig_zabbix import format_item_value, format_discovery

    format_item_value('1.5G', 'bytes')   # '1610612736'
    format_discovery([{'id': 1}], {'id': '{#ID}'})
    # {'data': [{'{#ID}': '1'}]}
"""

# Re-export all types
from .types import *

# Errors
from .errors import (
    ISPConfigError,
    ConfigurationError,
    ApiError,
    AuthenticationError,
    UnknownKeyError,
    ValidationError,
    EntityNotFoundError,
)

# Configuration
from .config import (
    get_config,
    set_config,
    reset_config,
    load_config,
    configure_logging,
    is_module_enabled,
)

# API client and transport
from .client import ISPConfigClient, ENTITY_KINDS
from .transport import SoapTransport, SoapFault, TransportError

# Value formatting
from .values import (
    format_item_value,
    sanitize_value,
    calculate_email_usage_percent,
    create_item_key,
    parse_bytes,
)

# Low-Level Discovery
from .discovery import (
    format_discovery,
    format_websites_discovery,
    format_emails_discovery,
    format_mail_domains_discovery,
    validate_lld_data,
    to_json,
)

# Entities
from .websites import discover_websites, read_website_value, get_website_value
from .emails import discover_emails, read_email_value, get_email_value
from .mail_domains import discover_mail_domains, read_mail_domain_value, get_mail_domain_value

__version__ = '1.0.0'

# Define __all__ for explicit exports
__all__ = [
    # Types
    'PanelConfig',
    'ModuleToggles',
    'WebsiteRecord',
    'MailUserRecord',
    'MailDomainRecord',
    'MailDomainStats',
    'DiscoveryDocument',
    'ItemKey',
    'MacroMap',
    'FilterCriteria',

    # Errors
    'ISPConfigError',
    'ConfigurationError',
    'ApiError',
    'AuthenticationError',
    'UnknownKeyError',
    'ValidationError',
    'EntityNotFoundError',

    # Configuration
    'get_config',
    'set_config',
    'reset_config',
    'load_config',
    'configure_logging',
    'is_module_enabled',

    # API client and transport
    'ISPConfigClient',
    'ENTITY_KINDS',
    'SoapTransport',
    'SoapFault',
    'TransportError',

    # Value formatting
    'format_item_value',
    'sanitize_value',
    'calculate_email_usage_percent',
    'create_item_key',
    'parse_bytes',

    # Low-Level Discovery
    'format_discovery',
    'format_websites_discovery',
    'format_emails_discovery',
    'format_mail_domains_discovery',
    'validate_lld_data',
    'to_json',

    # Websites
    'discover_websites',
    'read_website_value',
    'get_website_value',

    # Emails
    'discover_emails',
    'read_email_value',
    'get_email_value',

    # Mail domains
    'discover_mail_domains',
    'read_mail_domain_value',
    'get_mail_domain_value',
]
