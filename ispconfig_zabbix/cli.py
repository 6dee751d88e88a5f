"""
Command line entry points used by the Zabbix agent

Discovery (LLD JSON on stdout):
    ispconfig-zabbix-discovery websites
    ispconfig-zabbix-discovery emails --pretty

Key reader (single bare value on stdout):
    ispconfig-zabbix-key websites 1 ssl_enabled
    ispconfig-zabbix-key mail_domains 3 account_count

Connectivity check:
    ispconfig-zabbix-check

Example zabbix_agentd.conf entries:
    UserParameter=ispconfig.discovery[*],ispconfig-zabbix-discovery $1
    UserParameter=ispconfig.item[*],ispconfig-zabbix-key $1 $2 $3

Diagnostics go to stderr (and the optional log file) so that stdout only
ever carries what Zabbix reads. Discovery fails soft: on any error an empty
{"data":[]} document is still printed.
"""

import argparse
import logging
import sys
from typing import Any, Callable, Dict, List, NamedTuple, Optional

from . import emails, mail_domains, websites
from .client import ISPConfigClient
from .config import configure_logging, is_module_enabled, load_config
from .discovery import empty_discovery, to_json, validate_lld_data
from .errors import ApiError, ConfigurationError, ISPConfigError, ValidationError
from .types import DiscoveryDocument, ItemKey

logger = logging.getLogger('ispconfig_zabbix.cli')


class Entity(NamedTuple):
    """Monitoring module toggle and handlers of one entity kind"""
    module: str
    discover: Callable[[ISPConfigClient], DiscoveryDocument]
    read_value: Callable[[ISPConfigClient, int, str], str]
    keys: Dict[str, ItemKey]


ENTITIES: Dict[str, Entity] = {
    websites.KIND: Entity(websites.MODULE, websites.discover_websites,
                          websites.read_website_value, websites.WEBSITE_KEYS),
    emails.KIND: Entity(emails.MODULE, emails.discover_emails,
                        emails.read_email_value, emails.EMAIL_KEYS),
    mail_domains.KIND: Entity(mail_domains.MODULE, mail_domains.discover_mail_domains,
                              mail_domains.read_mail_domain_value, mail_domains.MAIL_DOMAIN_KEYS),
}


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--config', dest='config_file', default=None,
                        help='Path to a config.env file (default: standard locations)')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')


def _load_config(args: argparse.Namespace) -> Dict[str, Any]:
    configure_logging({'debug': args.debug})
    config = load_config(args.config_file)
    if args.debug:
        config['debug'] = True
    configure_logging(config)
    return config


def format_usage(kind: str) -> str:
    """Usage text listing the item keys of an entity kind"""
    lines = [f"Usage: ispconfig-zabbix-key {kind} <id> <key>", "", "Available keys:"]
    keys = ENTITIES[kind].keys
    width = max(len(name) for name in keys)
    for name, item in keys.items():
        lines.append(f"  {name.ljust(width)} - {item.description}")
    return "\n".join(lines)


def discovery_main(argv: Optional[List[str]] = None) -> int:
    """
    Print the LLD document of an entity kind

    Returns:
        Exit code: 0 on success or when the module is disabled, 1 on errors
    """
    parser = argparse.ArgumentParser(
        prog='ispconfig-zabbix-discovery',
        description='ISPConfig Low-Level Discovery for Zabbix')
    parser.add_argument('kind', choices=sorted(ENTITIES))
    parser.add_argument('--pretty', action='store_true', help='Indent the JSON output')
    _add_common_arguments(parser)
    args = parser.parse_args(argv)

    entity = ENTITIES[args.kind]
    empty = to_json(empty_discovery())

    try:
        config = _load_config(args)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        print(empty)
        return 1

    if not is_module_enabled(config, entity.module):
        logger.info(f"Module '{entity.module}' is disabled in configuration")
        print(empty)
        return 0

    try:
        with ISPConfigClient(config) as client:
            document = entity.discover(client)

        if not validate_lld_data(document):
            raise ValidationError('Invalid LLD data format')
    except ApiError as e:
        logger.error(f"ISPConfig API Error: {e}")
        print(empty)
        return 1
    except ISPConfigError as e:
        logger.error(f"Autodiscovery Error: {e}")
        print(empty)
        return 1
    except Exception as e:
        logger.exception(f"Unexpected autodiscovery error: {e}")
        print(empty)
        return 1

    print(to_json(document, pretty=args.pretty))
    logger.info(f"ISPConfig {args.kind} discovery: found {len(document['data'])} entries")
    return 0


def key_main(argv: Optional[List[str]] = None) -> int:
    """
    Print a single item value

    Returns:
        Exit code: 0 on success, 1 on any error (nothing printed)
    """
    parser = argparse.ArgumentParser(
        prog='ispconfig-zabbix-key',
        description='Read a single ISPConfig item value for Zabbix')
    parser.add_argument('kind', choices=sorted(ENTITIES))
    parser.add_argument('entity_id', nargs='?')
    parser.add_argument('key', nargs='?')
    _add_common_arguments(parser)
    args = parser.parse_args(argv)

    if args.entity_id is None or args.key is None:
        print(format_usage(args.kind))
        return 1

    try:
        config = _load_config(args)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    try:
        entity_id = int(args.entity_id)
    except ValueError:
        entity_id = 0
    if entity_id <= 0:
        logger.error(f"Invalid {args.kind} ID: {args.entity_id}")
        return 1

    entity = ENTITIES[args.kind]
    if not is_module_enabled(config, entity.module):
        logger.error(f"Module '{entity.module}' is disabled in configuration")
        return 1

    try:
        with ISPConfigClient(config) as client:
            value = entity.read_value(client, entity_id, args.key)
    except ApiError as e:
        logger.error(f"ISPConfig API Error: {e}")
        return 1
    except ISPConfigError as e:
        logger.error(f"Key Reader Error: {e}")
        return 1
    except Exception as e:
        logger.exception(f"Unexpected key reader error: {e}")
        return 1

    sys.stdout.write(value)
    sys.stdout.flush()
    return 0


def check_main(argv: Optional[List[str]] = None) -> int:
    """
    Verify connectivity: log in, count the records of each enabled module, log out

    Returns:
        Exit code: 0 if every call succeeded, 1 otherwise
    """
    parser = argparse.ArgumentParser(
        prog='ispconfig-zabbix-check',
        description='Check the connection to the ISPConfig remote API')
    _add_common_arguments(parser)
    args = parser.parse_args(argv)

    try:
        config = _load_config(args)
        with ISPConfigClient(config) as client:
            client.login()
            print(f"Login successful ({config['soap_location']})")

            for kind, entity in ENTITIES.items():
                if not is_module_enabled(config, entity.module):
                    print(f"{kind}: module '{entity.module}' disabled")
                    continue
                records = client.get_entities(kind)
                print(f"{kind}: {len(records)} active")

            logged_out = client.logout()
    except ISPConfigError as e:
        logger.error(f"Check failed: {e}")
        print(f"Check failed: {e}")
        return 1

    print("Logout successful" if logged_out else "Logout failed")
    return 0 if logged_out else 1
