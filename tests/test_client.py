import pytest

from ispconfig_zabbix.client import ISPConfigClient
from ispconfig_zabbix.errors import ApiError, AuthenticationError, ConfigurationError
from ispconfig_zabbix.transport import SoapFault, TransportError

from .conftest import FakeTransport, Script, fail

WEBSITES = [{'domain_id': '1', 'domain': 'example.com', 'active': 'y'}]


class TestConfiguration:
    @pytest.mark.parametrize('key', ['soap_uri', 'soap_location', 'username', 'password'])
    def test_missing_required_key(self, panel_config, key):
        transport = FakeTransport()
        panel_config[key] = ''

        with pytest.raises(ConfigurationError, match=f'Missing required configuration: {key}'):
            ISPConfigClient(panel_config, transport=transport)
        assert transport.calls == []

    def test_absent_key(self, panel_config):
        del panel_config['password']

        with pytest.raises(ConfigurationError, match='password'):
            ISPConfigClient(panel_config, transport=FakeTransport())

    @pytest.mark.parametrize('uri', ['not-a-url', 'ftp://panel.example.com/', 'https://'])
    def test_invalid_uri(self, panel_config, uri):
        panel_config['soap_uri'] = uri

        with pytest.raises(ConfigurationError, match='Invalid SOAP URI'):
            ISPConfigClient(panel_config, transport=FakeTransport())

    def test_retry_settings(self, make_client):
        client = make_client(FakeTransport(), max_retries=0, retry_delay=None)

        assert client.max_retries == 1
        assert client.retry_delay == 2.0


class TestSession:
    def test_login_is_reused(self, make_client):
        transport = FakeTransport()
        client = make_client(transport)

        assert client.login() == 'sess-1'
        assert client.login() == 'sess-1'
        assert transport.calls == [('login', ['zabbix', 'secret'])]

    def test_empty_session_id(self, make_client):
        client = make_client(FakeTransport(session_id=''))

        with pytest.raises(AuthenticationError, match='Empty session ID returned'):
            client.login()
        assert client.session_id is None

    def test_rejected_credentials(self, make_client, sleeps):
        fault = SoapFault('Server', 'The login failed. Username or password wrong.')
        transport = FakeTransport({'login': fault})
        client = make_client(transport)

        with pytest.raises(AuthenticationError) as excinfo:
            client.login()

        assert 'Login failed' in str(excinfo.value)
        assert excinfo.value.__cause__ is fault
        assert excinfo.value.attempts == 3
        assert transport.methods() == ['login', 'login', 'login']
        assert sleeps == [2, 2]

    def test_login_network_error(self, make_client):
        client = make_client(FakeTransport({'login': fail()}), max_retries=1)

        with pytest.raises(ApiError) as excinfo:
            client.login()
        assert type(excinfo.value) is ApiError

    def test_logout_without_session(self, make_client):
        transport = FakeTransport()

        assert make_client(transport).logout() is True
        assert transport.calls == []

    def test_logout(self, make_client):
        transport = FakeTransport()
        client = make_client(transport)
        client.login()

        assert client.logout() is True
        assert transport.calls[-1] == ('logout', ['sess-1'])
        assert client.session_id is None

    def test_logout_failure_clears_session(self, make_client):
        transport = FakeTransport({'logout': fail()})
        client = make_client(transport)
        client.login()

        assert client.logout() is False
        assert client.session_id is None
        assert transport.methods().count('logout') == 1

    def test_logout_never_raises(self, make_client):
        transport = FakeTransport({'logout': RuntimeError('socket closed')})
        client = make_client(transport)
        client.login()

        assert client.logout() is False
        assert client.session_id is None

    def test_logout_error_keeps_original_exception(self, make_client):
        transport = FakeTransport({'logout': RuntimeError('socket closed')})
        client = make_client(transport)

        with pytest.raises(KeyError, match='boom'):
            with client:
                client.login()
                raise KeyError('boom')

    def test_context_manager_logs_out_on_error(self, make_client):
        transport = FakeTransport()
        client = make_client(transport)

        with pytest.raises(RuntimeError):
            with client:
                client.login()
                raise RuntimeError('boom')

        assert transport.methods() == ['login', 'logout']
        assert client.session_id is None

    def test_context_manager_without_calls(self, make_client):
        transport = FakeTransport()

        with make_client(transport):
            pass

        assert transport.calls == []


class TestFetch:
    def test_default_filter(self, make_client):
        transport = FakeTransport({'sites_web_domain_get': WEBSITES})

        assert make_client(transport).get_websites() == WEBSITES
        assert transport.calls == [
            ('login', ['zabbix', 'secret']),
            ('sites_web_domain_get', ['sess-1', {'active': 'y'}]),
        ]

    def test_explicit_filter(self, make_client):
        transport = FakeTransport({'mail_domain_get': []})

        make_client(transport).get_entities('mail_domains', {})
        assert transport.calls[-1] == ('mail_domain_get', ['sess-1', {}])

    def test_non_list_result(self, make_client):
        transport = FakeTransport({'mail_user_get': False})

        assert make_client(transport).get_emails() == []

    def test_get_by_id(self, make_client):
        mailbox = {'mailuser_id': '7', 'email': 'info@example.com'}
        transport = FakeTransport({'mail_user_get': [mailbox]})

        assert make_client(transport).get_email(7) == mailbox
        assert transport.calls[-1] == ('mail_user_get', ['sess-1', {'mailuser_id': 7}])

    def test_get_by_id_no_match(self, make_client):
        transport = FakeTransport({'sites_web_domain_get': []})

        assert make_client(transport).get_website(99) is None

    def test_stats(self, make_client):
        transport = FakeTransport({'sites_web_domain_get_stats': {'traffic': '100'}})
        client = make_client(transport)

        assert client.get_website_stats(1) == {'traffic': '100'}
        assert transport.calls[-1] == ('sites_web_domain_get_stats', ['sess-1', 1])

        transport.responses['sites_web_domain_get_stats'] = None
        assert client.get_website_stats(1) == {}

    def test_call_prepends_session(self, make_client):
        transport = FakeTransport({'server_get': {'server_name': 'web1'}})

        assert make_client(transport).call('server_get', [1]) == {'server_name': 'web1'}
        assert transport.calls[-1] == ('server_get', ['sess-1', 1])

    def test_unknown_kind(self, make_client):
        with pytest.raises(ValueError, match='Unknown entity kind'):
            make_client(FakeTransport()).get_entities('databases')

    def test_mail_domain_stats(self, make_client):
        transport = FakeTransport({'mail_user_get': [
            {'quota': '1G', 'used': '512M'},
            {'quota': 1024, 'used': None},
            'junk',
        ]})

        stats = make_client(transport).get_mail_domain_stats(3)

        assert stats == {
            'account_count': 2,
            'total_quota': 1024 ** 3 + 1024,
            'total_used': 512 * 1024 ** 2,
        }
        assert transport.calls[-1] == ('mail_user_get', ['sess-1', {'mail_domain_id': 3}])


class TestRetry:
    def test_exhausted_retries(self, make_client, sleeps):
        errors = [fail('timeout 1'), fail('timeout 2'), fail('timeout 3')]
        transport = FakeTransport({'sites_web_domain_get': Script(*errors)})

        with pytest.raises(ApiError) as excinfo:
            make_client(transport).get_websites()

        assert excinfo.value.__cause__ is errors[-1]
        assert excinfo.value.cause is errors[-1]
        assert excinfo.value.attempts == 3
        assert '(after 3 attempts' in str(excinfo.value)
        assert sleeps == [2, 2]

    def test_undecodable_response_is_retried(self, make_client, sleeps):
        garbled = TransportError("Invalid SOAP response: invalid literal for int() with base 10: ''")
        transport = FakeTransport({'mail_user_get': Script(garbled, garbled, garbled)})

        with pytest.raises(ApiError) as excinfo:
            make_client(transport).get_emails()

        assert excinfo.value.__cause__ is garbled
        assert transport.methods().count('mail_user_get') == 3
        assert sleeps == [2, 2]

    def test_recovers_after_failure(self, make_client, sleeps):
        transport = FakeTransport({'sites_web_domain_get': Script(fail(), WEBSITES)})

        assert make_client(transport).get_websites() == WEBSITES
        assert sleeps == [2]

    def test_single_attempt_does_not_sleep(self, make_client, sleeps):
        transport = FakeTransport({'sites_web_domain_get': fail()})

        with pytest.raises(ApiError):
            make_client(transport, max_retries=1).get_websites()
        assert sleeps == []

    def test_session_fault_logs_in_again(self, make_client, sleeps):
        expired = SoapFault('Server', 'The Session is expired or does not exist.')
        transport = FakeTransport({
            'login': Script('sess-1', 'sess-2'),
            'sites_web_domain_get': Script(expired, WEBSITES),
        })
        client = make_client(transport)

        assert client.get_websites() == WEBSITES
        assert client.session_id == 'sess-2'
        assert transport.calls[-1] == ('sites_web_domain_get', ['sess-2', {'active': 'y'}])
        assert transport.methods() == ['login', 'sites_web_domain_get', 'login', 'sites_web_domain_get']

    def test_other_faults_keep_session(self, make_client):
        transport = FakeTransport({
            'sites_web_domain_get': Script(fail('Server busy'), WEBSITES),
        })
        client = make_client(transport)

        client.get_websites()
        assert transport.methods().count('login') == 1
        assert client.session_id == 'sess-1'
