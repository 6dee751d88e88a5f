"""
Type definitions for the ISPConfig monitoring bridge
Based on the ISPConfig remote API records
"""

from typing import TypedDict, NamedTuple, Union, List, Dict, Any, Optional


class ModuleToggles(TypedDict, total=False):
    """Which ISPConfig modules are monitored"""
    websites: bool
    email: bool
    databases: bool
    dns: bool
    ftp: bool


class PanelConfig(TypedDict, total=False):
    """ISPConfig API configuration"""
    soap_uri: str
    soap_location: str
    username: str
    password: str
    verify_ssl: bool
    timeout: int
    max_retries: int
    retry_delay: float
    modules: ModuleToggles
    log_enabled: bool
    log_file: Optional[str]
    log_level: str
    debug: bool


# ISPConfig returns most scalar columns as strings
FieldValue = Union[str, int, float, bool, None]

# Server-side filter passed to the *_get functions
FilterCriteria = Dict[str, Any]

# Mapping of record field (dot notation allowed) to Zabbix macro name
MacroMap = Dict[str, str]


class WebsiteRecord(TypedDict, total=False):
    """Website (web_domain) record"""
    domain_id: str
    domain: str
    server_id: str
    document_root: str
    php: str
    active: str
    ssl: str
    ip_address: str
    ipv6_address: str
    traffic_quota: str
    hd_usage: str
    hd_quota: str
    backup_interval: str
    backup_copies: str
    type: str


class MailUserRecord(TypedDict, total=False):
    """Mailbox (mail_user) record"""
    mailuser_id: str
    email: str
    mail_domain_id: str
    domain: str
    quota: str
    used: str
    active: str
    spamfilter_enabled: str
    antivirus_enabled: str
    server_id: str
    homedir: str


class MailDomainRecord(TypedDict, total=False):
    """Mail domain record"""
    mail_domain_id: str
    domain_id: str
    domain: str
    server_id: str
    active: str
    mail_catchall: str


class MailDomainStats(TypedDict):
    """Aggregated mailbox statistics of one mail domain"""
    account_count: int
    total_quota: int
    total_used: int


class DiscoveryDocument(TypedDict):
    """Zabbix Low-Level Discovery document"""
    data: List[Dict[str, str]]


class ItemKey(NamedTuple):
    """How a Zabbix item key is read from a record"""
    field: str
    value_type: str
    default: FieldValue
    description: str
