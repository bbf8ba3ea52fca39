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
One storage client per logical storage type.

Storage types are names the application uses for kinds of content
(``static``, ``video``); each one maps to a container and the user allowed
into it. Settings are usually read from an INI file::

    [selstorage]
    auth_url = https://auth.selcdn.ru
    storage_url = https://api.selcdn.ru/v1/SEL_12345
    redis_url = redis://localhost:6379/0

    [storage:static]
    container = container_1
    public_host = static.example.com
    login = 12345_static
    password = secret
"""
import configparser
import logging
import os
import threading

from selstorage.cache import MemoryCache, RedisCache, TokenStore
from selstorage.client import StorageClient
from selstorage.exceptions import ConfigError
from selstorage.http import HttpExecutor
from selstorage.user import User
from selstorage.utils import parse_timeout

logger = logging.getLogger("selstorage")

STORAGE_TYPE_STATIC = 'static'
STORAGE_TYPE_VIDEO = 'video'

DEFAULT_AUTH_URL = 'https://auth.selcdn.ru'
DEFAULT_CONFIG_FILE = '/etc/selstorage.conf'
CONFIG_FILE_ENV = 'SELSTORAGE_CONFIG_FILE'
MAIN_SECTION = 'selstorage'
STORAGE_SECTION_PREFIX = 'storage:'
STORAGE_OPTIONS = ('container', 'public_host', 'login', 'password')


def load_config(path=None):
    """
    Read storage settings from an INI file.

    :param path: config file; defaults to ``$SELSTORAGE_CONFIG_FILE`` and
                 then ``/etc/selstorage.conf``
    :returns: a dict with ``auth_url``, ``storage_url``, ``timeout``,
              ``redis_url`` and ``storages``, the latter mapping each
              storage type to its settings
    :raises ConfigError: the file is missing or incomplete
    """
    if path is None:
        path = os.environ.get(CONFIG_FILE_ENV, DEFAULT_CONFIG_FILE)
    parser = configparser.ConfigParser()
    if not parser.read(path):
        raise ConfigError('Unable to read config file %s' % path)
    if not parser.has_section(MAIN_SECTION):
        raise ConfigError('Config file %s has no [%s] section'
                          % (path, MAIN_SECTION))

    conf = {}
    try:
        conf['storage_url'] = parser.get(MAIN_SECTION, 'storage_url')
    except configparser.NoOptionError:
        raise ConfigError('Config file %s has no storage_url' % path)
    conf['auth_url'] = parser.get(MAIN_SECTION, 'auth_url',
                                  fallback=DEFAULT_AUTH_URL)
    conf['redis_url'] = parser.get(MAIN_SECTION, 'redis_url', fallback=None)
    try:
        conf['timeout'] = parse_timeout(
            parser.get(MAIN_SECTION, 'timeout', fallback=None))
    except ValueError as err:
        raise ConfigError('Bad timeout in %s: %s' % (path, err))

    conf['storages'] = {}
    for section in parser.sections():
        if not section.startswith(STORAGE_SECTION_PREFIX):
            continue
        storage_type = section[len(STORAGE_SECTION_PREFIX):]
        try:
            conf['storages'][storage_type] = {
                option: parser.get(section, option)
                for option in STORAGE_OPTIONS}
        except configparser.NoOptionError as err:
            raise ConfigError('Incomplete settings for storage %r: %s'
                              % (storage_type, err))
    return conf


class ClientRegistry:
    """
    Builds a :class:`StorageClient` for a storage type on first use and
    hands out the same one afterwards.
    """

    def __init__(self, config, cache=None):
        """
        :param config: settings as returned by :func:`load_config`
        :param cache: token cache backend; when omitted, Redis is used if
                      ``redis_url`` is configured, else an in-process cache
        """
        self.config = config
        self.storages = dict(config.get('storages') or {})
        if cache is None:
            if config.get('redis_url'):
                cache = RedisCache.from_url(config['redis_url'])
            else:
                cache = MemoryCache()
        self.token_store = TokenStore(cache)
        self._clients = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config_file(cls, path=None, cache=None):
        return cls(load_config(path), cache=cache)

    def configured_types(self):
        return sorted(self.storages)

    def get(self, storage_type):
        """
        :raises ConfigError: no settings for ``storage_type``
        """
        with self._lock:
            client = self._clients.get(storage_type)
            if client is None:
                client = self._build(storage_type)
                self._clients[storage_type] = client
            return client

    def static(self):
        return self.get(STORAGE_TYPE_STATIC)

    def video(self):
        return self.get(STORAGE_TYPE_VIDEO)

    def _build(self, storage_type):
        try:
            settings = self.storages[storage_type]
        except KeyError:
            raise ConfigError("There are no connection settings for "
                              "storage '%s'" % storage_type)
        if not self.config.get('storage_url'):
            raise ConfigError('No storage_url configured')

        logger.debug('Building client for storage %s (container %s)',
                     storage_type, settings['container'])
        executor = HttpExecutor(timeout=self.config.get('timeout'))
        user = User(settings['login'], settings['password'],
                    self.token_store,
                    self.config.get('auth_url') or DEFAULT_AUTH_URL,
                    executor=executor)
        return StorageClient(settings['container'], user,
                             settings['public_host'],
                             self.config['storage_url'],
                             executor=executor)
