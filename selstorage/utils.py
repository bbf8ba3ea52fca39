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
"""Miscellaneous utility functions for use with the storage client."""


def is_success(status):
    return 200 <= status < 300


def normalize_object_path(path):
    """
    Make sure an object path starts with a single slash.

    :param path: path of an object relative to its container
    :returns: the path with a leading ``/``
    """
    if not path.startswith('/'):
        path = '/' + path
    return path


def normalize_container_path(container):
    """
    Container paths start with a slash and never end with one, so object
    paths can be appended to them as they are.
    """
    container = normalize_object_path(container)
    if container.endswith('/'):
        container = container[:-1]
    return container


def normalize_host(host):
    return host.rstrip('/')


def parse_timeout(value):
    """
    Parse a timeout option. Empty values mean "no explicit timeout".

    :raises ValueError: if the value is not a positive number
    """
    if value is None or value == '':
        return None
    timeout = float(value)
    if timeout <= 0:
        raise ValueError('timeout must be a positive number, got %r'
                         % (value,))
    return timeout
