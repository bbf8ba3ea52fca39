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
Token caches.

A cache backend is anything with ``get(key)``, ``set(key, value, ttl)`` and
``delete(key)``. :class:`TokenStore` puts the token key naming and the
fixed TTL on top of one.
"""
import logging
import threading
import time

import redis

logger = logging.getLogger("selstorage")

#: Six hours.
TOKEN_TTL = 21600
TOKEN_KEY_PREFIX = 'selectel_storage_token_'


class MemoryCache:
    """
    In-process cache with per-key expiry. Shared by every user in a
    process; lost on restart.
    """

    def __init__(self, clock=time.time):
        self._clock = clock
        self._data = {}
        self._lock = threading.Lock()

    def get(self, key):
        with self._lock:
            try:
                value, expires_at = self._data[key]
            except KeyError:
                return None
            if expires_at is not None and expires_at <= self._clock():
                del self._data[key]
                return None
            return value

    def set(self, key, value, ttl=None):
        expires_at = self._clock() + ttl if ttl else None
        with self._lock:
            self._data[key] = (value, expires_at)

    def delete(self, key):
        with self._lock:
            self._data.pop(key, None)


class RedisCache:
    """
    Cache backed by a :class:`redis.Redis` client, so tokens survive
    process restarts and are shared between workers.
    """

    def __init__(self, client):
        self.client = client

    @classmethod
    def from_url(cls, url, **kwargs):
        return cls(redis.Redis.from_url(url, **kwargs))

    def get(self, key):
        value = self.client.get(key)
        if isinstance(value, bytes):
            value = value.decode('utf8')
        return value

    def set(self, key, value, ttl=None):
        self.client.set(key, value, ex=ttl)

    def delete(self, key):
        self.client.delete(key)


class TokenStore:
    def __init__(self, cache, ttl=TOKEN_TTL):
        self.cache = cache
        self.ttl = ttl

    @staticmethod
    def key_for(login):
        return TOKEN_KEY_PREFIX + login

    def get(self, login):
        """:returns: the cached token for ``login`` or None"""
        return self.cache.get(self.key_for(login)) or None

    def set(self, login, token):
        logger.debug('Caching token for %s for %ss', login, self.ttl)
        self.cache.set(self.key_for(login), token, self.ttl)

    def expire(self, login):
        self.cache.delete(self.key_for(login))
