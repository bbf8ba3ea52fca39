# -*- encoding: utf-8 -*-
"""
Selectel Cloud Storage Python client binding.
"""
from .exceptions import AuthError, ClientException, ConfigError, \
    ServiceError  # noqa
from .cache import MemoryCache, RedisCache, TokenStore  # noqa
from .user import Credentials, User  # noqa
from .client import StorageClient  # noqa
from .registry import ClientRegistry, load_config  # noqa
from .version import version_string as __version__  # noqa
