"""
SOAP transport for the ISPConfig remote API

ISPConfig exposes its remote API through a WSDL-less PHP SoapServer speaking
SOAP 1.1 rpc/encoded. This module encodes positional parameters into such an
envelope, posts it with requests and decodes the returned value back into
plain Python types (lists, dicts, str, int, float, bool, None).

Example:
    from ispconfig_zabbix.transport import SoapTransport

    transport = SoapTransport(
        location='https://panel.example.com:8080/remote/index.php',
        uri='https://panel.example.com:8080/remote/',
    )
    session_id = transport.invoke('login', ['zabbix', 'secret'])
    websites = transport.invoke('sites_web_domain_get', [session_id, {'active': 'y'}])
"""

from collections.abc import Mapping
from typing import Any, Optional, Protocol, Sequence
from xml.etree import ElementTree
from xml.sax.saxutils import escape, quoteattr

import requests
import urllib3

from .config import debug_log

SOAP_ENV = 'http://schemas.xmlsoap.org/soap/envelope/'
SOAP_ENC = 'http://schemas.xmlsoap.org/soap/encoding/'
XSD = 'http://www.w3.org/2001/XMLSchema'
XSI = 'http://www.w3.org/2001/XMLSchema-instance'
APACHE_SOAP = 'http://xml.apache.org/xml-soap'

ENVELOPE_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<SOAP-ENV:Envelope xmlns:SOAP-ENV="{soap_env}" xmlns:ns1={uri} xmlns:xsd="{xsd}" \
xmlns:xsi="{xsi}" xmlns:ns2="{apache}" xmlns:SOAP-ENC="{soap_enc}" \
SOAP-ENV:encodingStyle="{soap_enc}"><SOAP-ENV:Body><ns1:{method}>{params}</ns1:{method}>\
</SOAP-ENV:Body></SOAP-ENV:Envelope>"""

# Methods whose parameters must never reach the log
_SENSITIVE_METHODS = ('login',)


class TransportError(Exception):
    """Exception raised when a SOAP request cannot be completed"""


class SoapFault(TransportError):
    """Exception raised for a SOAP fault returned by the server"""
    def __init__(self, faultcode: str, faultstring: str):
        self.faultcode = faultcode
        self.faultstring = faultstring
        super().__init__(faultstring)


class Transport(Protocol):
    """Anything able to invoke a remote API method with positional arguments"""

    def invoke(self, method: str, args: Sequence[Any]) -> Any:
        ...


def _local(tag: str) -> str:
    """Strip the namespace from an ElementTree tag or xsi:type value"""
    if tag.startswith('{'):
        tag = tag.split('}', 1)[1]
    return tag.split(':')[-1]


def encode_value(name: str, value: Any) -> str:
    """
    Encode a Python value as an rpc/encoded SOAP element

    Args:
        name: Element name (param0, item, key, value, ...)
        value: Value to encode

    Returns:
        XML fragment
    """
    if value is None:
        return f'<{name} xsi:nil="true"/>'
    if isinstance(value, bool):
        return f'<{name} xsi:type="xsd:boolean">{"true" if value else "false"}</{name}>'
    if isinstance(value, int):
        return f'<{name} xsi:type="xsd:int">{value}</{name}>'
    if isinstance(value, float):
        return f'<{name} xsi:type="xsd:float">{value!r}</{name}>'
    if isinstance(value, Mapping):
        items = ''.join(
            f'<item>{encode_value("key", str(k))}{encode_value("value", v)}</item>'
            for k, v in value.items()
        )
        return f'<{name} xsi:type="ns2:Map">{items}</{name}>'
    if isinstance(value, (list, tuple)):
        items = ''.join(encode_value('item', v) for v in value)
        return (f'<{name} SOAP-ENC:arrayType="xsd:anyType[{len(value)}]" '
                f'xsi:type="SOAP-ENC:Array">{items}</{name}>')
    return f'<{name} xsi:type="xsd:string">{escape(str(value))}</{name}>'


def build_envelope(uri: str, method: str, args: Sequence[Any]) -> str:
    """Build the request envelope for a remote method call"""
    params = ''.join(encode_value(f'param{i}', arg) for i, arg in enumerate(args))
    return ENVELOPE_TEMPLATE.format(
        soap_env=SOAP_ENV,
        soap_enc=SOAP_ENC,
        xsd=XSD,
        xsi=XSI,
        apache=APACHE_SOAP,
        uri=quoteattr(uri),
        method=method,
        params=params,
    )


def decode_value(elem: ElementTree.Element) -> Any:
    """
    Decode an rpc/encoded SOAP element into a Python value

    Arrays become lists, apache Maps become dicts, structs become dicts
    keyed by child element name and scalars are converted by xsi:type.
    """
    if elem.get(f'{{{XSI}}}nil') in ('true', '1'):
        return None

    xsi_type = _local(elem.get(f'{{{XSI}}}type', ''))

    if xsi_type == 'Map':
        result = {}
        for item in elem:
            key = value = None
            for part in item:
                if _local(part.tag) == 'key':
                    key = decode_value(part)
                elif _local(part.tag) == 'value':
                    value = decode_value(part)
            result[key] = value
        return result

    if xsi_type == 'Array' or elem.get(f'{{{SOAP_ENC}}}arrayType') is not None:
        return [decode_value(child) for child in elem]

    if len(elem):
        return {_local(child.tag): decode_value(child) for child in elem}

    text = elem.text or ''
    if xsi_type in ('int', 'integer', 'long', 'short', 'byte'):
        return int(text)
    if xsi_type in ('float', 'double', 'decimal'):
        return float(text)
    if xsi_type == 'boolean':
        return text.strip().lower() in ('true', '1')
    return text


def parse_response(content: bytes) -> Any:
    """
    Parse a SOAP response body

    Returns:
        The decoded return value, or None for void methods

    Raises:
        SoapFault: If the body carries a SOAP fault
        TransportError: If the body is not a SOAP envelope or a value cannot be decoded
    """
    try:
        root = ElementTree.fromstring(content)
    except ElementTree.ParseError as exc:
        raise TransportError(f"Invalid SOAP response: {exc}") from exc

    body = root.find(f'{{{SOAP_ENV}}}Body')
    if body is None:
        raise TransportError("Invalid SOAP response: missing Body")

    fault = body.find(f'{{{SOAP_ENV}}}Fault')
    if fault is not None:
        fields = {_local(child.tag): (child.text or '').strip() for child in fault}
        raise SoapFault(fields.get('faultcode', ''), fields.get('faultstring', 'Unknown SOAP fault'))

    response = next(iter(body), None)
    if response is None:
        return None
    result = next(iter(response), None)
    if result is None:
        return None

    try:
        return decode_value(result)
    except ValueError as exc:
        raise TransportError(f"Invalid SOAP response: {exc}") from exc


class SoapTransport:
    """requests based transport for the ISPConfig SOAP endpoint"""

    def __init__(self, location: str, uri: str, verify_ssl: bool = True,
                 timeout: int = 30, session: Optional[requests.Session] = None):
        self.location = location
        self.uri = uri
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self.session = session or requests.Session()

        if not verify_ssl:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    def invoke(self, method: str, args: Sequence[Any]) -> Any:
        """
        Invoke a remote method

        Args:
            method: ISPConfig remote function (e.g., 'login', 'mail_user_get')
            args: Positional parameters

        Returns:
            Decoded return value

        Raises:
            SoapFault: If ISPConfig answers with a fault
            TransportError: If the request fails
        """
        if method in _SENSITIVE_METHODS:
            debug_log(f'Calling {method}')
        else:
            debug_log(f'Calling {method}', list(args[1:]))

        payload = build_envelope(self.uri, method, args).encode('utf-8')
        headers = {
            'Content-Type': 'text/xml; charset=utf-8',
            'SOAPAction': f'"{self.uri}#{method}"',
        }

        try:
            response = self.session.post(
                self.location,
                data=payload,
                headers=headers,
                verify=self.verify_ssl,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as exc:
            debug_log(f'{method} failed:', str(exc))
            raise TransportError(f"Failed to call {method}: {exc}") from exc

        if response.status_code >= 400:
            # PHP SoapServer reports faults with HTTP 500
            try:
                parse_response(response.content)
            except SoapFault:
                raise
            except TransportError:
                pass
            debug_log(f'{method} failed:', response.status_code)
            raise TransportError(
                f"ISPConfig API request failed ({response.status_code}): {response.reason}")

        result = parse_response(response.content)
        debug_log(f'{method} completed successfully')
        return result
