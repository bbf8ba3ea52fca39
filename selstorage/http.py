# Copyright (c) 2010-2022 OpenStack, LLC.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or
# implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
HTTP plumbing shared by the auth user and the storage client.

Every request goes through :class:`HttpExecutor`, which hands back an
immutable :class:`HttpResponse` and remembers the raw header text of the
last exchange so failures can be reported with what was actually sent.
"""
import logging
from urllib.parse import quote, unquote, urlparse

import requests
from requests.sessions import merge_hooks, merge_setting
from requests.structures import CaseInsensitiveDict

from selstorage import version as selstorage_version

logger = logging.getLogger("selstorage")
logger.addHandler(logging.NullHandler())

#: Default behaviour is to redact header values known to contain secrets,
#: such as ``X-Auth-Key`` and ``X-Auth-Token``. Up to the first 16 chars
#: may be revealed.
#:
#: To disable, set the value of ``redact_sensitive_headers`` to ``False``.
logger_settings = {
    'redact_sensitive_headers': True,
    'reveal_sensitive_prefix': 16
}
#: Header names are compared in lower case.
LOGGER_SENSITIVE_HEADERS = [
    'x-auth-token', 'x-auth-key', 'x-storage-token', 'set-cookie'
]

DOWNLOAD_TIMEOUT = 30
DOWNLOAD_MAX_REDIRECTS = 4
DOWNLOAD_CHUNK_SIZE = 65536


def safe_value(name, value):
    """
    Only show up to logger_settings['reveal_sensitive_prefix'] characters
    from a sensitive header.

    :param name: Header name
    :param value: Header value
    :return: Safe header value
    """
    if name.lower() in LOGGER_SENSITIVE_HEADERS:
        prefix_length = logger_settings.get('reveal_sensitive_prefix', 16)
        prefix_length = int(
            min(prefix_length, (len(value) ** 2) / 32, len(value) / 2)
        )
        redacted_value = value[0:prefix_length]
        return redacted_value + '...'
    return value


def scrub_headers(headers):
    """
    Redact header values that can contain sensitive information that
    should not be logged.

    :param headers: Either a dict or an iterable of two-element tuples
    :return: Safe dictionary of headers with sensitive information removed
    """
    if hasattr(headers, 'items'):
        headers = headers.items()
    headers = [
        (parse_header_string(key), parse_header_string(val))
        for (key, val) in headers
    ]
    if not logger_settings.get('redact_sensitive_headers', True):
        return dict(headers)
    if logger_settings.get('reveal_sensitive_prefix', 16) < 0:
        logger_settings['reveal_sensitive_prefix'] = 16
    return {key: safe_value(key, val) for (key, val) in headers}


def parse_header_string(data):
    if not isinstance(data, (str, bytes)):
        data = str(data)
    if isinstance(data, bytes):
        try:
            data = data.decode('ascii')
        except UnicodeDecodeError:
            data = quote(data)
    try:
        unquoted = unquote(data, errors='strict')
    except UnicodeDecodeError:
        return data
    return unquoted


def encode_utf8(value):
    if type(value) in (int, float, bool):
        # requests only accepts byte- or unicode-string header values
        value = str(value)
    if isinstance(value, str):
        value = value.encode('utf8')
    return value


def encode_headers(headers):
    return {header: encode_utf8(value) for header, value in headers.items()}


def http_log(args, kwargs, resp, body):
    if not logger.isEnabledFor(logging.INFO):
        return

    # create and log equivalent curl command
    string_parts = ['curl -i']
    for element in args:
        if element == 'HEAD':
            string_parts.append(' -I')
        elif element in ('GET', 'POST', 'PUT', 'DELETE'):
            string_parts.append(' -X %s' % element)
        else:
            string_parts.append(' %s' % parse_header_string(element))
    if 'headers' in kwargs:
        headers = scrub_headers(kwargs['headers'])
        for element in headers:
            header = ' -H "%s: %s"' % (element, headers[element])
            string_parts.append(header)

    # log response as debug if good, or info if error
    if resp.status < 300:
        log_method = logger.debug
    else:
        log_method = logger.info

    log_method("REQ: %s", "".join(string_parts))
    log_method("RESP STATUS: %s %s", resp.status, resp.reason)
    log_method("RESP HEADERS: %s", scrub_headers(resp.headers))
    if body:
        log_method("RESP BODY: %s", body)


def format_request_headers(method, url, headers):
    """
    Render an outgoing request the way it appears on the wire, minus body.
    """
    parsed = urlparse(url)
    path = parsed.path or '/'
    if parsed.query:
        path += '?' + parsed.query
    lines = ['%s %s HTTP/1.1' % (method, path), 'Host: %s' % parsed.netloc]
    for key, value in headers.items():
        lines.append('%s: %s' % (parse_header_string(key),
                                 parse_header_string(value)))
    return '\r\n'.join(lines) + '\r\n\r\n'


def format_response_headers(resp):
    """
    Render the status line and headers of a requests response, including
    the hops of any redirects that were followed.
    """
    blocks = []
    for hop in list(resp.history) + [resp]:
        lines = ['HTTP/1.1 %s %s' % (hop.status_code, hop.reason)]
        for key, value in hop.headers.items():
            lines.append('%s: %s' % (key, value))
        blocks.append('\r\n'.join(lines))
    return '\r\n\r\n'.join(blocks) + '\r\n\r\n'


class HttpResponse:
    """
    Status, headers and body of one finished HTTP exchange.
    """

    def __init__(self, status, headers=None, body=b'', reason='', url=''):
        self._status = status
        self._headers = CaseInsensitiveDict(headers or {})
        self._body = body
        self._reason = reason
        self._url = url

    @property
    def status(self):
        return self._status

    @property
    def headers(self):
        # a copy; responses don't change once they are built
        return CaseInsensitiveDict(self._headers)

    @property
    def body(self):
        return self._body

    @property
    def reason(self):
        return self._reason

    @property
    def url(self):
        return self._url

    def has_header(self, name):
        return name in self._headers

    def get_header(self, name, default=None):
        return self._headers.get(name, default)

    def __repr__(self):
        return '%s(%r, %r)' % (self.__class__.__name__, self._status,
                               self._url)


class StoragePreparedRequest(requests.PreparedRequest):
    def prepare_headers(self, headers):
        try:
            return super().prepare_headers(headers)
        except UnicodeError:
            # Object paths in X-Object-Meta-Location may be UTF-8 encoded,
            # which RFC 7230 does not allow; pass them through as they are.
            self.headers = CaseInsensitiveDict(headers or {})


class StorageRequestsSession(requests.Session):

    def prepare_request(self, request):
        # Like the superclass, minus cookies and .netrc auth overrides.
        p = StoragePreparedRequest()
        headers = merge_setting(
            request.headers,
            self.headers,
            dict_class=CaseInsensitiveDict,
        )
        p.prepare(
            method=request.method.upper(),
            url=request.url,
            data=request.data,
            headers=headers,
            params=merge_setting(request.params, self.params),
            auth=merge_setting(request.auth, self.auth),
            cookies=None,
            hooks=merge_hooks(request.hooks, self.hooks),
        )
        return p

    def rebuild_auth(self, prepared_request, response):
        # requests only drops Authorization when a redirect leaves the host
        super().rebuild_auth(prepared_request, response)
        headers = prepared_request.headers
        if 'X-Auth-Token' in headers and self.should_strip_auth(
                response.request.url, prepared_request.url):
            del headers['X-Auth-Token']


class HttpExecutor:
    def __init__(self, timeout=None, default_user_agent=None,
                 max_redirects=DOWNLOAD_MAX_REDIRECTS):
        """
        Perform HTTP requests for one storage client.

        :param timeout: socket read timeout value passed directly to the
                        requests library for every request but downloads;
                        None means the requests default.
        :param default_user_agent: Set the User-Agent header on every
                                   request. If set to None (default), the
                                   user agent will be
                                   "python-selstorageclient-<version>".
        :param max_redirects: how many redirect hops a download may follow
        """
        self.timeout = timeout
        if default_user_agent is None:
            default_user_agent = \
                'python-selstorageclient-%s' % \
                selstorage_version.version_string
        self.default_user_agent = default_user_agent

        self.request_session = StorageRequestsSession()
        # Don't use requests's default headers
        self.request_session.headers = None
        self.download_session = StorageRequestsSession()
        self.download_session.headers = None
        self.download_session.max_redirects = max_redirects

        self.last_request_headers = ''
        self.last_response_headers = ''

    def _request(self, session, method, url, **kwargs):
        """Final wrapper before requests call, to be patched in tests"""
        return session.request(method, url, **kwargs)

    def _prepare_headers(self, headers):
        headers = encode_headers(headers) if headers else {}
        if not any(k.lower() == 'user-agent' for k in headers):
            headers['User-Agent'] = self.default_user_agent
        return headers

    def request(self, method, url, headers=None, data=None):
        """
        Send one request and read the whole response.

        :param method: HTTP verb
        :param url: absolute URL
        :param headers: request headers
        :param data: request body; bytes or a readable file object
        :returns: a :class:`HttpResponse`
        """
        headers = self._prepare_headers(headers)
        self.last_request_headers = format_request_headers(
            method, url, headers)
        kwargs = {'headers': headers, 'data': data, 'allow_redirects': False}
        if self.timeout:
            kwargs['timeout'] = self.timeout
        resp = self._request(self.request_session, method, url, **kwargs)
        try:
            self.last_response_headers = format_response_headers(resp)
            response = HttpResponse(resp.status_code, resp.headers,
                                    resp.content, resp.reason, url)
        finally:
            resp.close()
        http_log((url, method), {'headers': headers}, response,
                 response.body if response.status >= 300 else None)
        return response

    def download(self, url, fileobj, headers=None,
                 timeout=DOWNLOAD_TIMEOUT, chunk_size=DOWNLOAD_CHUNK_SIZE):
        """
        Stream the body of a GET straight into ``fileobj``.

        Redirects are followed up to the session's ``max_redirects``. The
        body is only written for a 2xx final response.

        :returns: a :class:`HttpResponse` with an empty body
        """
        headers = self._prepare_headers(headers)
        self.last_request_headers = format_request_headers('GET', url,
                                                           headers)
        resp = self._request(self.download_session, 'GET', url,
                             headers=headers, stream=True, timeout=timeout,
                             allow_redirects=True)
        try:
            self.last_response_headers = format_response_headers(resp)
            if 200 <= resp.status_code < 300:
                for chunk in resp.iter_content(chunk_size):
                    fileobj.write(chunk)
            response = HttpResponse(resp.status_code, resp.headers, b'',
                                    resp.reason, url)
        finally:
            resp.close()
        http_log((url, 'GET'), {'headers': headers}, response, None)
        return response

    def close(self):
        self.request_session.close()
        self.download_session.close()
