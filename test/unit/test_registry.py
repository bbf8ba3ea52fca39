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

import os
import tempfile
import threading
import unittest
from unittest import mock

from selstorage import registry as r
from selstorage.cache import MemoryCache, RedisCache
from selstorage.client import StorageClient
from selstorage.exceptions import ConfigError

CONFIG = '''
[selstorage]
storage_url = https://api.example.com/v1/SEL_1
timeout = 15

[storage:static]
container = container_1
public_host = static.example.com
login = 1_static
password = s3cret

[storage:video]
container = /container_2/
public_host = video.example.com/
login = 1_video
password = v1deo
'''


def make_config(**overrides):
    config = {
        'auth_url': 'https://auth.example.com',
        'storage_url': 'https://api.example.com/v1/SEL_1',
        'timeout': None,
        'redis_url': None,
        'storages': {
            'static': {'container': 'container_1',
                       'public_host': 'static.example.com',
                       'login': '1_static', 'password': 's3cret'},
        },
    }
    config.update(overrides)
    return config


class ConfigFileTestCase(unittest.TestCase):

    def write_config(self, contents):
        fd, path = tempfile.mkstemp(suffix='.conf')
        with os.fdopen(fd, 'w') as f:
            f.write(contents)
        self.addCleanup(os.unlink, path)
        return path


class TestLoadConfig(ConfigFileTestCase):

    def test_load(self):
        conf = r.load_config(self.write_config(CONFIG))
        self.assertEqual('https://api.example.com/v1/SEL_1',
                         conf['storage_url'])
        self.assertEqual(r.DEFAULT_AUTH_URL, conf['auth_url'])
        self.assertEqual(15.0, conf['timeout'])
        self.assertIsNone(conf['redis_url'])
        self.assertEqual(['static', 'video'], sorted(conf['storages']))
        self.assertEqual({'container': 'container_1',
                          'public_host': 'static.example.com',
                          'login': '1_static',
                          'password': 's3cret'},
                         conf['storages']['static'])

    def test_path_from_environment(self):
        path = self.write_config(CONFIG)
        with mock.patch.dict(os.environ, {'SELSTORAGE_CONFIG_FILE': path}):
            conf = r.load_config()
        self.assertIn('video', conf['storages'])

    def test_missing_file(self):
        self.assertRaises(ConfigError, r.load_config,
                          '/nonexistent/selstorage.conf')

    def test_missing_main_section(self):
        path = self.write_config('[storage:static]\ncontainer = c\n')
        self.assertRaises(ConfigError, r.load_config, path)

    def test_missing_storage_url(self):
        path = self.write_config('[selstorage]\nauth_url = http://a\n')
        with self.assertRaises(ConfigError) as ctx:
            r.load_config(path)
        self.assertIn('storage_url', str(ctx.exception))

    def test_incomplete_storage(self):
        path = self.write_config(
            '[selstorage]\nstorage_url = http://s\n'
            '[storage:static]\ncontainer = c\npublic_host = h\n'
            'login = l\n')
        with self.assertRaises(ConfigError) as ctx:
            r.load_config(path)
        self.assertIn('password', str(ctx.exception))

    def test_bad_timeout(self):
        path = self.write_config(
            '[selstorage]\nstorage_url = http://s\ntimeout = -1\n')
        self.assertRaises(ConfigError, r.load_config, path)

    def test_other_sections_ignored(self):
        path = self.write_config(
            '[selstorage]\nstorage_url = http://s\n[logging]\nlevel = 1\n')
        self.assertEqual({}, r.load_config(path)['storages'])


class TestClientRegistry(ConfigFileTestCase):

    def test_get(self):
        registry = r.ClientRegistry(make_config(), cache=MemoryCache())
        client = registry.get('static')
        self.assertIsInstance(client, StorageClient)
        self.assertEqual('/container_1', client.container_path)
        self.assertEqual('static.example.com', client.public_host)
        self.assertEqual('https://api.example.com/v1/SEL_1',
                         client.storage_url)
        self.assertEqual('1_static', client.user.login)
        self.assertEqual('https://auth.example.com', client.user.auth_url)
        self.assertIs(client.executor, client.user.executor)

    def test_memoized(self):
        registry = r.ClientRegistry(make_config())
        self.assertIs(registry.get('static'), registry.get('static'))
        self.assertIs(registry.static(), registry.get('static'))

    def test_unconfigured_type(self):
        registry = r.ClientRegistry(make_config())
        with self.assertRaises(ConfigError) as ctx:
            registry.video()
        self.assertIn("'video'", str(ctx.exception))
        # still unconfigured on the next call
        self.assertRaises(ConfigError, registry.get, 'video')

    def test_missing_storage_url(self):
        registry = r.ClientRegistry(make_config(storage_url=None))
        self.assertRaises(ConfigError, registry.static)

    def test_configured_types(self):
        config = make_config()
        config['storages']['video'] = dict(config['storages']['static'])
        registry = r.ClientRegistry(config)
        self.assertEqual(['static', 'video'], registry.configured_types())

    def test_users_share_token_store(self):
        cache = MemoryCache()
        config = make_config()
        config['storages']['video'] = dict(config['storages']['static'],
                                           login='1_video')
        registry = r.ClientRegistry(config, cache=cache)
        registry.static().user.token_store.set('1_static', 'tok')
        self.assertIs(cache, registry.video().user.token_store.cache)
        self.assertIs(registry.static().user.token_store,
                      registry.video().user.token_store)

    def test_timeout_passed_to_executor(self):
        registry = r.ClientRegistry(make_config(timeout=15.0))
        self.assertEqual(15.0, registry.static().executor.timeout)

    def test_default_cache(self):
        registry = r.ClientRegistry(make_config())
        self.assertIsInstance(registry.token_store.cache, MemoryCache)

    def test_redis_cache(self):
        with mock.patch.object(RedisCache, 'from_url') as from_url:
            registry = r.ClientRegistry(
                make_config(redis_url='redis://localhost:6379/0'))
        from_url.assert_called_once_with('redis://localhost:6379/0')
        self.assertIs(from_url.return_value, registry.token_store.cache)

    def test_from_config_file(self):
        registry = r.ClientRegistry.from_config_file(
            self.write_config(CONFIG), cache=MemoryCache())
        video = registry.video()
        self.assertEqual('/container_2', video.container_path)
        self.assertEqual('video.example.com', video.public_host)
        self.assertEqual(15.0, video.executor.timeout)

    def test_concurrent_get_builds_one_client(self):
        registry = r.ClientRegistry(make_config())
        orig_build = registry._build
        built = []
        start = threading.Event()

        def slow_build(storage_type):
            start.wait(1)
            built.append(storage_type)
            return orig_build(storage_type)

        results = []
        with mock.patch.object(registry, '_build', side_effect=slow_build):
            threads = [threading.Thread(
                target=lambda: results.append(registry.get('static')))
                for _ in range(5)]
            for t in threads:
                t.start()
            start.set()
            for t in threads:
                t.join()
        self.assertEqual(['static'], built)
        self.assertEqual(5, len(results))
        self.assertTrue(all(c is results[0] for c in results))
