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

"""
Storage user: credentials plus the token obtained with them.

Auth uses the v1 header scheme::

   > GET /auth/v1.0 HTTP/1.1
   > X-Auth-User: <login>
   > X-Auth-Key: <password>
   >
   < HTTP/1.1 204 No Content
   < X-Storage-Url: https://<storage host>/v1/<account>
   < X-Storage-Token: <token>

The token is kept on the user and mirrored in a :class:`TokenStore`, so
other processes (and new user objects) can pick it up without
authorizing again.
"""
import collections
import logging
import threading

from selstorage.exceptions import AuthError
from selstorage.http import HttpExecutor
from selstorage.utils import is_success

logger = logging.getLogger("selstorage")

AUTH_PATH = '/auth/v1.0'
TOKEN_HEADER = 'X-Storage-Token'

Credentials = collections.namedtuple('Credentials', ['login', 'password'])


class User:
    def __init__(self, login, password, token_store, auth_url,
                 executor=None):
        """
        :param login: storage user login
        :param password: storage user password
        :param token_store: :class:`selstorage.cache.TokenStore` the token
                            is mirrored into
        :param auth_url: base URL of the auth service; ``/auth/v1.0`` is
                         appended to it
        :param executor: :class:`selstorage.http.HttpExecutor` to send the
                         auth request with
        """
        self.credentials = Credentials(login, password)
        self.token_store = token_store
        self.auth_url = auth_url.rstrip('/')
        self.executor = executor or HttpExecutor()
        self._token = None
        self._lock = threading.RLock()

    @property
    def login(self):
        return self.credentials.login

    def get_token(self):
        """
        Return the current token, authorizing only when neither this object
        nor the token store has one.

        :raises AuthError: the auth request failed
        """
        with self._lock:
            if not self._token:
                token = self.token_store.get(self.login)
                if token:
                    logger.debug('Using cached token for %s', self.login)
                else:
                    token = self._authorize()
                    self.token_store.set(self.login, token)
                self._token = token
            return self._token

    def refresh_token(self):
        """
        Authorize again, whatever is cached, and store the new token.

        :raises AuthError: the auth request failed
        """
        with self._lock:
            token = self._authorize()
            self.token_store.set(self.login, token)
            self._token = token
            return self._token

    def forget_token(self):
        """Drop the token from memory and from the token store."""
        with self._lock:
            self._token = None
            self.token_store.expire(self.login)

    def _authorize(self):
        logger.debug('Authorizing %s at %s', self.login, self.auth_url)
        headers = {'X-Auth-User': self.credentials.login,
                   'X-Auth-Key': self.credentials.password}
        resp = self.executor.request('GET', self.auth_url + AUTH_PATH,
                                     headers=headers)
        if not is_success(resp.status):
            raise AuthError.from_response(
                resp, 'Auth GET failed',
                request_headers=self.executor.last_request_headers)

        token = resp.get_header(TOKEN_HEADER)
        if not token:
            raise AuthError.from_response(
                resp, 'Auth GET returned no %s header' % TOKEN_HEADER,
                request_headers=self.executor.last_request_headers)
        return token

    def __repr__(self):
        return '%s(%r)' % (self.__class__.__name__, self.login)
