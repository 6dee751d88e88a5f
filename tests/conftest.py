import os

import pytest

from ispconfig_zabbix import config as config_module
from ispconfig_zabbix.client import ISPConfigClient
from ispconfig_zabbix.transport import TransportError


class Script:
    """Successive answers of one remote method; exceptions are raised"""

    def __init__(self, *answers):
        self.answers = list(answers)

    def next(self):
        answer = self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer


class FakeTransport:
    """Records invocations and answers from a per-method table"""

    def __init__(self, responses=None, session_id='sess-1'):
        self.calls = []
        self.responses = {'login': session_id, 'logout': True}
        self.responses.update(responses or {})

    def invoke(self, method, args):
        self.calls.append((method, list(args)))
        response = self.responses.get(method)
        if isinstance(response, Script):
            return response.next()
        if isinstance(response, Exception):
            raise response
        return response

    def methods(self):
        return [method for method, _ in self.calls]


def fail(message='Connection refused'):
    return TransportError(message)


@pytest.fixture
def panel_config():
    return {
        'soap_uri': 'https://panel.example.com:8080/remote/',
        'soap_location': 'https://panel.example.com:8080/remote/index.php',
        'username': 'zabbix',
        'password': 'secret',
        'verify_ssl': True,
        'timeout': 30,
        'max_retries': 3,
        'retry_delay': 2,
        'modules': {'websites': True, 'email': True, 'databases': False, 'dns': False, 'ftp': False},
        'log_enabled': False,
        'log_file': None,
        'log_level': 'info',
        'debug': False,
    }


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_client(panel_config, sleeps):
    def factory(transport, **overrides):
        config = dict(panel_config, **overrides)
        return ISPConfigClient(config, transport=transport, sleep=sleeps.append)
    return factory


def _clear_panel_env():
    for name in list(os.environ):
        if name.startswith('ISPCONFIG_'):
            del os.environ[name]


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep the host's ISPCONFIG_* variables and config files out of the tests"""
    saved = {k: v for k, v in os.environ.items() if k.startswith('ISPCONFIG_')}
    _clear_panel_env()
    monkeypatch.setattr(config_module, 'SYSTEM_CONFIG_FILE', tmp_path / 'etc' / 'config.env')
    monkeypatch.chdir(tmp_path)
    config_module.reset_config()
    yield
    _clear_panel_env()
    os.environ.update(saved)
    config_module.reset_config()
