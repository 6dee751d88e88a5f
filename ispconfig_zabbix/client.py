"""
ISPConfig API Session Client

Owns the authenticated session to the ISPConfig remote API, retries failed
calls and exposes typed fetch operations for the monitored entities.

Example:
    from ispconfig_zabbix.client import ISPConfigClient
    from ispconfig_zabbix.config import load_config

    with ISPConfigClient(load_config()) as client:
        for website in client.get_websites():
            print(website['domain'])

        mailbox = client.get_email(12)

        # Any remote function, the session id is prepended automatically
        users = client.call('mail_user_get', [{'mail_domain_id': 3}])

The session is acquired lazily by the first call and released (logout) when
the with-block exits, whether or not an exception was raised.
"""

import logging
import time
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence
from urllib.parse import urlparse

from .errors import ApiError, AuthenticationError, ConfigurationError
from .transport import SoapFault, SoapTransport, Transport, TransportError
from .types import FilterCriteria, MailDomainStats
from .values import parse_bytes

logger = logging.getLogger(__name__)

REQUIRED_CONFIG = ('soap_uri', 'soap_location', 'username', 'password')

DEFAULT_FILTER: FilterCriteria = {'active': 'y'}


class EntityKind(NamedTuple):
    """Remote function prefix and primary key of an ISPConfig entity"""
    function: str
    id_field: str


ENTITY_KINDS: Dict[str, EntityKind] = {
    'websites': EntityKind('sites_web_domain', 'domain_id'),
    'emails': EntityKind('mail_user', 'mailuser_id'),
    'mail_domains': EntityKind('mail_domain', 'domain_id'),
}


class ApiRequest(NamedTuple):
    """A remote method name with its ordered parameters (session id excluded)"""
    method: str
    params: List[Any]


class RetryResult(NamedTuple):
    """Outcome of a retried remote call"""
    value: Any
    error: Optional[Exception]
    attempts: int
    elapsed: float

    @property
    def ok(self) -> bool:
        return self.error is None


def validate_config(config: Dict[str, Any]) -> None:
    """
    Validate the client configuration

    Raises:
        ConfigurationError: If a required key is missing or empty, or the
            SOAP URI is not an absolute http(s) URL
    """
    for key in REQUIRED_CONFIG:
        if not config.get(key):
            raise ConfigurationError(f"Missing required configuration: {key}")

    parsed = urlparse(str(config['soap_uri']))
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        raise ConfigurationError('Invalid SOAP URI')


class ISPConfigClient:
    """Client for the ISPConfig remote API"""

    def __init__(self, config: Dict[str, Any], transport: Optional[Transport] = None,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], float] = time.monotonic):
        validate_config(config)

        self.username: str = config['username']
        self._password: str = config['password']
        max_retries = config.get('max_retries')
        self.max_retries: int = max(1, int(3 if max_retries is None else max_retries))
        retry_delay = config.get('retry_delay')
        self.retry_delay: float = float(2 if retry_delay is None else retry_delay)
        self._session_id: Optional[str] = None
        self._sleep = sleep
        self._clock = clock

        if transport is None:
            transport = SoapTransport(
                location=config['soap_location'],
                uri=config['soap_uri'],
                verify_ssl=bool(config.get('verify_ssl', True)),
                timeout=config.get('timeout') or 30,
            )
        self.transport = transport

    def __enter__(self) -> 'ISPConfigClient':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @property
    def session_id(self) -> Optional[str]:
        """Current session id, None when not logged in"""
        return self._session_id

    def close(self) -> None:
        """Release the session"""
        self.logout()

    def login(self) -> str:
        """
        Log in to ISPConfig and get a session ID

        Returns the cached session without a remote call when already
        logged in.

        Returns:
            Session ID

        Raises:
            AuthenticationError: If the login is rejected or returns an empty session
            ApiError: If the login request fails
        """
        if self._session_id is not None:
            return self._session_id

        result = self._execute_with_retry(
            ApiRequest('login', [self.username, self._password]), with_session=False)

        if not result.ok:
            error_class = AuthenticationError if isinstance(result.error, SoapFault) else ApiError
            self._raise_for(result, 'Login failed', error_class)

        if not result.value:
            raise AuthenticationError('Login failed: Empty session ID returned')

        self._session_id = str(result.value)
        logger.debug(f"Logged in to ISPConfig as {self.username}")
        return self._session_id

    def logout(self) -> bool:
        """
        Log out from ISPConfig

        The local session is cleared even when the remote logout fails.

        Returns:
            True on success or when not logged in, False if the logout call failed
        """
        if self._session_id is None:
            return True

        session_id, self._session_id = self._session_id, None

        try:
            self.transport.invoke('logout', [session_id])
        except Exception as e:
            logger.warning(f"Logout failed: {e}")
            return False

        logger.debug("Logged out from ISPConfig")
        return True

    def get_entities(self, kind: str, filter: Optional[FilterCriteria] = None) -> List[Dict[str, Any]]:
        """
        Get records of an entity kind

        Args:
            kind: One of ENTITY_KINDS ('websites', 'emails', 'mail_domains')
            filter: Server-side filter, defaults to active records only

        Returns:
            List of records, empty when ISPConfig does not return a list

        Raises:
            ApiError: If the request fails
        """
        entity = self._entity_kind(kind)
        self.login()

        criteria = dict(DEFAULT_FILTER) if filter is None else filter
        result = self._execute_with_retry(ApiRequest(f'{entity.function}_get', [criteria]))
        if not result.ok:
            self._raise_for(result, f'Failed to get {kind}')

        return result.value if isinstance(result.value, list) else []

    def get_entity_by_id(self, kind: str, entity_id: Any) -> Optional[Dict[str, Any]]:
        """
        Get a single record by its primary key

        Returns:
            The record, or None if ISPConfig returned no match

        Raises:
            ApiError: If the request fails
        """
        entity = self._entity_kind(kind)
        self.login()

        result = self._execute_with_retry(
            ApiRequest(f'{entity.function}_get', [{entity.id_field: entity_id}]))
        if not result.ok:
            self._raise_for(result, f'Failed to get {kind} {entity_id}')

        records = result.value
        if isinstance(records, list) and records and isinstance(records[0], dict):
            return records[0]
        return None

    def get_entity_stats(self, kind: str, entity_id: Any) -> Dict[str, Any]:
        """
        Get statistics of a single record through the *_get_stats function

        Raises:
            ApiError: If the request fails
        """
        entity = self._entity_kind(kind)
        self.login()

        result = self._execute_with_retry(ApiRequest(f'{entity.function}_get_stats', [entity_id]))
        if not result.ok:
            self._raise_for(result, f'Failed to get {kind} stats for {entity_id}')

        return result.value if isinstance(result.value, dict) else {}

    def call(self, method: str, params: Optional[Sequence[Any]] = None) -> Any:
        """
        Call any ISPConfig remote function

        Args:
            method: Remote function name
            params: Parameters excluding the session ID, which is prepended

        Returns:
            Raw decoded result

        Raises:
            ApiError: If the request fails
        """
        self.login()

        result = self._execute_with_retry(ApiRequest(method, list(params or [])))
        if not result.ok:
            self._raise_for(result, f'Failed to call {method}')
        return result.value

    def get_websites(self) -> List[Dict[str, Any]]:
        """Get all active websites"""
        return self.get_entities('websites')

    def get_website(self, website_id: int) -> Optional[Dict[str, Any]]:
        """Get a website by domain_id"""
        return self.get_entity_by_id('websites', website_id)

    def get_website_stats(self, website_id: int) -> Dict[str, Any]:
        """Get website statistics"""
        return self.get_entity_stats('websites', website_id)

    def get_emails(self) -> List[Dict[str, Any]]:
        """Get all active mailboxes"""
        return self.get_entities('emails')

    def get_email(self, mailuser_id: int) -> Optional[Dict[str, Any]]:
        """Get a mailbox by mailuser_id"""
        return self.get_entity_by_id('emails', mailuser_id)

    def get_mail_domains(self) -> List[Dict[str, Any]]:
        """Get all active mail domains"""
        return self.get_entities('mail_domains')

    def get_mail_domain(self, domain_id: int) -> Optional[Dict[str, Any]]:
        """Get a mail domain by domain_id"""
        return self.get_entity_by_id('mail_domains', domain_id)

    def get_mail_domain_stats(self, domain_id: int) -> MailDomainStats:
        """
        Count the mailboxes of a mail domain and sum their quota and usage

        Raises:
            ApiError: If the request fails
        """
        emails = self.call('mail_user_get', [{'mail_domain_id': domain_id}])
        if not isinstance(emails, list):
            return {'account_count': 0, 'total_quota': 0, 'total_used': 0}

        mailboxes = [e for e in emails if isinstance(e, dict)]
        return {
            'account_count': len(mailboxes),
            'total_quota': sum(parse_bytes(e.get('quota') or 0) for e in mailboxes),
            'total_used': sum(parse_bytes(e.get('used') or 0) for e in mailboxes),
        }

    @staticmethod
    def _entity_kind(kind: str) -> EntityKind:
        try:
            return ENTITY_KINDS[kind]
        except KeyError:
            raise ValueError(
                f"Unknown entity kind: {kind}. Expected one of: {', '.join(ENTITY_KINDS)}"
            ) from None

    def _authenticate(self) -> str:
        """Single login attempt used to refresh a dropped session inside the retry loop"""
        session_id = self.transport.invoke('login', [self.username, self._password])
        if not session_id:
            raise AuthenticationError('Login failed: Empty session ID returned')
        self._session_id = str(session_id)
        logger.debug("Re-authenticated after session loss")
        return self._session_id

    def _execute_with_retry(self, request: ApiRequest, with_session: bool = True) -> RetryResult:
        """
        Invoke a request, retrying failed attempts

        Makes up to max_retries attempts with retry_delay seconds between
        them. A failure mentioning the session drops the cached session id;
        the next attempt logs in again before repeating the request.

        Returns:
            RetryResult carrying either the value or the last error unchanged
        """
        start = self._clock()
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                args = list(request.params)
                if with_session:
                    args.insert(0, self._session_id or self._authenticate())
                value = self.transport.invoke(request.method, args)
                return RetryResult(value, None, attempt, self._clock() - start)
            except (TransportError, AuthenticationError) as e:
                last_error = e
                if 'session' in str(e).lower():
                    self._session_id = None

                if attempt < self.max_retries:
                    logger.warning(
                        f"Attempt {attempt} of {request.method} failed ({e}), "
                        f"retrying in {self.retry_delay} seconds...")
                    self._sleep(self.retry_delay)

        return RetryResult(None, last_error, self.max_retries, self._clock() - start)

    @staticmethod
    def _raise_for(result: RetryResult, message: str, error_class: type = ApiError) -> None:
        raise error_class(
            f"{message}: {result.error}",
            cause=result.error,
            attempts=result.attempts,
            elapsed=result.elapsed,
        ) from result.error
