# Copyright (c) 2010-2012 OpenStack, LLC.
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

import unittest
from unittest import mock

from requests import RequestException
from requests.structures import CaseInsensitiveDict
from urllib.parse import urlparse

from selstorage import http


class StubResponse(object):
    """
    Placeholder structure for use with fake_http_connect's code_iter to modify
    response attributes (status, body, headers) on a per-request basis.
    """

    def __init__(self, status=200, body=b'', headers=None):
        self.status = status
        self.body = body
        self.headers = headers or {}

    def __repr__(self):
        return '%s(%r, %r, %r)' % (self.__class__.__name__, self.status,
                                   self.body, self.headers)


class FakeResponse(object):
    """Just enough of a requests.Response for HttpExecutor."""

    def __init__(self, status, body=b'', headers=None, reason='Fake'):
        self.status_code = status
        self.reason = reason
        self.content = body
        self.headers = CaseInsensitiveDict(headers or {})
        self.history = []
        self.closed = False

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i:i + chunk_size]

    def close(self):
        self.closed = True


def fake_http_connect(*code_iter, **kwargs):
    """
    Generate a callable which yields a series of stubbed responses, one per
    request. Items of ``code_iter`` are status codes or StubResponses; a
    status <= 0 raises RequestException instead.
    """
    code_iter = iter(code_iter)
    default_body = kwargs.get('body', b'')
    default_headers = kwargs.get('headers')

    def connect():
        status = next(code_iter)
        if isinstance(status, StubResponse):
            return FakeResponse(status.status, body=status.body,
                                headers=status.headers)
        if status <= 0:
            raise RequestException()
        return FakeResponse(status, body=default_body,
                            headers=default_headers)

    connect.code_iter = code_iter
    return connect


def decode_headers(headers):
    return CaseInsensitiveDict(
        (key, value.decode('utf8') if isinstance(value, bytes) else value)
        for key, value in (headers or {}).items())


class MockHttpTest(unittest.TestCase):

    def setUp(self):
        super(MockHttpTest, self).setUp()
        self.fake_connect = None
        self.request_log = []

        test = self

        def fake_request(executor, session, method, url, **kwargs):
            if test.fake_connect is None:
                test.fail('Unexpected %s request for %s' % (method, url))
            data = kwargs.get('data')
            if hasattr(data, 'read'):
                # consume the stream like a real upload would
                data = data.read()
            try:
                resp = test.fake_connect()
            except StopIteration:
                test.fail('Unexpected %s request for %s' % (method, url))
            test.request_log.append({
                'method': method,
                'url': url,
                'parsed_url': urlparse(url),
                'headers': decode_headers(kwargs.get('headers')),
                'body': data,
                'kwargs': kwargs,
                'session': session,
                'resp': resp,
            })
            return resp

        patcher = mock.patch.object(http.HttpExecutor, '_request',
                                    new=fake_request)
        patcher.start()
        self.addCleanup(patcher.stop)

    def fake_http_connection(self, *args, **kwargs):
        self.validateMockedRequestsConsumed()
        self.request_log = []
        self.fake_connect = fake_http_connect(*args, **kwargs)

    def assert_request_equal(self, expected, real_request):
        method, path = expected[:2]
        parsed = real_request['parsed_url']
        real_path = parsed.path
        if parsed.query:
            real_path += '?' + parsed.query
        self.assertEqual((method, path), (real_request['method'], real_path))
        if len(expected) > 2:
            for key, value in CaseInsensitiveDict(expected[2]).items():
                self.assertEqual(
                    value, real_request['headers'].get(key),
                    'Header mismatch on %r for %s %s' % (key, method, path))

    def assertRequests(self, expected_requests):
        """
        Make sure some requests were made like you expected, provide a list of
        expected requests, typically in the form of [(method, path), ...]
        or [(method, path, headers), ...]
        """
        real_requests = iter(self.request_log)
        for expected in expected_requests:
            try:
                real_request = next(real_requests)
            except StopIteration:
                self.fail('Expected request %r was not made' % (expected,))
            self.assert_request_equal(expected, real_request)
        try:
            real_request = next(real_requests)
        except StopIteration:
            pass
        else:
            self.fail('At least one extra request received: %r' %
                      real_request)

    def validateMockedRequestsConsumed(self):
        if not self.fake_connect:
            return
        unused_responses = list(self.fake_connect.code_iter)
        if unused_responses:
            self.fail('Unused responses %r' % (unused_responses,))

    def tearDown(self):
        self.validateMockedRequestsConsumed()
        super(MockHttpTest, self).tearDown()
