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
Selectel storage client library used internally
"""
import logging
import os
from urllib.parse import quote, unquote, urlencode, urlparse

from selstorage.exceptions import ServiceError
from selstorage.http import DOWNLOAD_TIMEOUT
from selstorage.utils import (
    is_success, normalize_container_path, normalize_host,
    normalize_object_path)

logger = logging.getLogger("selstorage")

SYMLINK_CONTENT_TYPE = 'x-storage/symlink'


class StorageClient:

    """
    Client for the objects of one container.

    Requests carry an X-Auth-Token header with the user's token. A request
    answered with 401 gets one more try with a freshly authorized token;
    if that one fails too, :class:`ServiceError` is raised.
    """

    def __init__(self, container, user, public_host, storage_url,
                 executor=None):
        """
        :param container: container name; leading and trailing slashes are
                          normalized away
        :param user: :class:`selstorage.user.User` accessing the container
        :param public_host: host the files are served from publicly
        :param storage_url: storage account URL, e.g.
                            ``https://api.selcdn.ru/v1/SEL_12345``
        :param executor: :class:`selstorage.http.HttpExecutor`; defaults to
                         the user's
        """
        self.user = user
        self.container_path = normalize_container_path(container)
        self.public_host = normalize_host(public_host)
        self.storage_url = storage_url.rstrip('/')
        self.executor = executor or user.executor

    def _url(self, path='', query=None):
        url = self.storage_url + quote(self.container_path + path)
        if query:
            url += '?' + urlencode(query)
        return url

    def _retry(self, method, path, headers=None, data=None, query=None):
        """
        Send a request with the current token; on 401 refresh the token and
        send it once more.

        :returns: the :class:`HttpResponse` of the last attempt
        :raises ServiceError: the retried request did not succeed either
        """
        url = self._url(path, query)
        headers = dict(headers or {})
        headers['X-Auth-Token'] = self.user.get_token()
        start = data.tell() if hasattr(data, 'tell') else None
        resp = self.executor.request(method, url, headers=headers, data=data)
        if resp.status != 401:
            return resp

        logger.info('%s %s answered 401, refreshing token for %s',
                    method, url, self.user.login)
        headers['X-Auth-Token'] = self.user.refresh_token()
        if start is not None:
            data.seek(start)
        resp = self.executor.request(method, url, headers=headers, data=data)
        if not is_success(resp.status):
            raise ServiceError.from_response(
                resp, 'Object %s failed' % method,
                request_headers=self.executor.last_request_headers)
        return resp

    def list_files(self, prefix=None):
        """
        List all the objects in the container.

        :param prefix: only list objects whose names start with this
        :returns: a list of object names
        :raises ServiceError: the listing failed
        """
        query = {'prefix': prefix} if prefix else None
        resp = self._retry('GET', '', query=query)
        if not is_success(resp.status):
            raise ServiceError.from_response(
                resp, 'Container GET failed',
                request_headers=self.executor.last_request_headers)
        if not resp.body:
            return []
        return [name for name in resp.body.decode('utf8').split('\n')
                if name]

    def upload_file(self, local_path, storage_path):
        """
        Upload a local file.

        :param local_path: file to upload
        :param storage_path: object path inside the container
        :returns: the HTTP status; 201 means created
        :raises FileNotFoundError: ``local_path`` is not a file
        :raises ServiceError: the upload was retried after a 401 and failed
        """
        if not os.path.isfile(local_path):
            raise FileNotFoundError('%s does not exist' % local_path)
        storage_path = normalize_object_path(storage_path)

        size = os.path.getsize(local_path)
        headers = {'Content-Length': str(size)}
        if not size:
            # requests frames an empty file object as chunked
            resp = self._retry('PUT', storage_path, headers=headers,
                               data=b'')
            return resp.status
        with open(local_path, 'rb') as fp:
            resp = self._retry('PUT', storage_path, headers=headers, data=fp)
        return resp.status

    def download_file(self, url, local_path):
        """
        Download an object to a local file.

        The object is looked up with a HEAD request first. The download
        itself is a plain streaming GET that is not retried on 401.

        :param url: URL of the object; only its path is used, relative to
                    the container
        :param local_path: where to write the object
        :returns: True if the local file is as long as the stored object
        :raises ServiceError: the object is missing or the lookup failed
        """
        storage_path = normalize_object_path(unquote(urlparse(url).path))

        head = self._retry('HEAD', storage_path)
        if head.status == 404:
            raise ServiceError.from_response(
                head, 'File %s is not found' % storage_path,
                request_headers=self.executor.last_request_headers)
        elif not is_success(head.status):
            raise ServiceError.from_response(
                head, 'Object HEAD failed',
                request_headers=self.executor.last_request_headers)

        headers = {'X-Auth-Token': self.user.get_token()}
        with open(local_path, 'wb') as fp:
            resp = self.executor.download(self._url(storage_path), fp,
                                          headers=headers,
                                          timeout=DOWNLOAD_TIMEOUT)
        if not is_success(resp.status):
            logger.warning('Download of %s answered %s',
                           storage_path, resp.status)

        expected_length = head.get_header('Content-Length')
        if expected_length is None:
            return False
        try:
            expected_length = int(expected_length)
        except ValueError:
            logger.warning('HEAD of %s returned bad Content-Length %r',
                           storage_path, expected_length)
            return False
        return os.path.getsize(local_path) == expected_length

    def make_link(self, origin_path, link_path):
        """
        Create a symlink object pointing at another object of the same
        container. The origin does not have to exist.

        :returns: the HTTP status
        """
        origin_path = normalize_object_path(origin_path)
        link_path = normalize_object_path(link_path)
        headers = {
            'Content-Type': SYMLINK_CONTENT_TYPE,
            'X-Object-Meta-Location': self.container_path + origin_path,
            'Content-Length': '0',
        }
        resp = self._retry('PUT', link_path, headers=headers)
        return resp.status

    def delete_file(self, storage_path):
        """
        Delete an object.

        :returns: the HTTP status; 404 means there was nothing to delete
        """
        storage_path = normalize_object_path(storage_path)
        resp = self._retry('DELETE', storage_path)
        return resp.status

    def get_public_url(self, storage_path):
        return '//' + self.public_host + normalize_object_path(storage_path)

    @property
    def last_request_headers(self):
        return self.executor.last_request_headers

    @property
    def last_response_headers(self):
        return self.executor.last_response_headers

    def __repr__(self):
        return '%s(%r, %r)' % (self.__class__.__name__,
                               self.container_path, self.user)
