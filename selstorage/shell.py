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

import argparse
import logging
import sys

from requests.exceptions import RequestException

from selstorage import version as selstorage_version
from selstorage.exceptions import ClientException
from selstorage.http import logger_settings as client_logger_settings
from selstorage.registry import ClientRegistry, STORAGE_TYPE_STATIC

BASENAME = 'selstorage'
commands = ('list', 'upload', 'download', 'delete', 'link', 'url', 'auth')


class OutputManager:
    """
    Prints messages to ``print_stream`` and errors to ``error_stream``,
    counting the errors so the command can exit non-zero.
    """

    def __init__(self, print_stream=None, error_stream=None):
        self.print_stream = print_stream or sys.stdout
        self.error_stream = error_stream or sys.stderr
        self.error_count = 0

    def print_msg(self, msg, *fmt_args):
        if fmt_args:
            msg = msg % fmt_args
        print(msg, file=self.print_stream)

    def error(self, msg, *fmt_args):
        if fmt_args:
            msg = msg % fmt_args
        self.error_count += 1
        print(msg, file=self.error_stream)

    def get_error_count(self):
        return self.error_count


st_list_options = '[--prefix <prefix>]'

st_list_help = '''
Lists the objects of the container.

Optional arguments:
  -p, --prefix <prefix> Only list items beginning with the prefix.
'''.strip('\n')


def st_list(parser, args, output_manager):
    parser.add_argument(
        '-p', '--prefix', dest='prefix',
        help='Only list items beginning with the prefix.')
    options = parser.parse_args(args)
    client = get_client(options)
    for name in client.list_files(prefix=options.prefix):
        output_manager.print_msg(name)


st_upload_options = '<file> <object>'

st_upload_help = '''
Uploads a local file.

Positional arguments:
  <file>                Local file to upload.
  <object>              Object path inside the container.
'''.strip('\n')


def st_upload(parser, args, output_manager):
    parser.add_argument('file')
    parser.add_argument('object')
    options = parser.parse_args(args)
    client = get_client(options)
    status = client.upload_file(options.file, options.object)
    if status in (200, 201):
        output_manager.print_msg(options.object)
    else:
        output_manager.error('Error uploading %s: status %s',
                             options.object, status)


st_download_options = '<url> <file>'

st_download_help = '''
Downloads an object.

Positional arguments:
  <url>                 Public URL or path of the object.
  <file>                Local file to write.
'''.strip('\n')


def st_download(parser, args, output_manager):
    parser.add_argument('url')
    parser.add_argument('file')
    options = parser.parse_args(args)
    client = get_client(options)
    if client.download_file(options.url, options.file):
        output_manager.print_msg(options.file)
    else:
        output_manager.error('Incomplete download of %s to %s',
                             options.url, options.file)


st_delete_options = '<object> [<object>] [...]'

st_delete_help = '''
Deletes objects. Objects that are already gone are not an error.

Positional arguments:
  <object>              Object path to delete. Specify multiple times
                        for multiple objects.
'''.strip('\n')


def st_delete(parser, args, output_manager):
    parser.add_argument('objects', nargs='+')
    options = parser.parse_args(args)
    client = get_client(options)
    for obj in options.objects:
        status = client.delete_file(obj)
        if status == 404:
            output_manager.print_msg('%s (already absent)', obj)
        elif 200 <= status < 300:
            output_manager.print_msg(obj)
        else:
            output_manager.error('Error deleting %s: status %s', obj, status)


st_link_options = '<origin> <link>'

st_link_help = '''
Creates a symlink object. The origin does not have to exist.

Positional arguments:
  <origin>              Object path the link points at.
  <link>                Object path of the link.
'''.strip('\n')


def st_link(parser, args, output_manager):
    parser.add_argument('origin')
    parser.add_argument('link')
    options = parser.parse_args(args)
    client = get_client(options)
    status = client.make_link(options.origin, options.link)
    if 200 <= status < 300:
        output_manager.print_msg('%s -> %s', options.link, options.origin)
    else:
        output_manager.error('Error linking %s: status %s',
                             options.link, status)


st_url_options = '<object>'

st_url_help = '''
Prints the public URL of an object. Makes no requests.

Positional arguments:
  <object>              Object path.
'''.strip('\n')


def st_url(parser, args, output_manager):
    parser.add_argument('object')
    options = parser.parse_args(args)
    client = get_client(options)
    output_manager.print_msg(client.get_public_url(options.object))


st_auth_options = '[--refresh]'

st_auth_help = '''
Authorizes the storage user and prints the token.

Optional arguments:
  --refresh             Authorize even if a token is cached.
'''.strip('\n')


def st_auth(parser, args, output_manager):
    parser.add_argument(
        '--refresh', action='store_true', default=False,
        help='Authorize even if a token is cached.')
    options = parser.parse_args(args)
    client = get_client(options)
    if options.refresh:
        token = client.user.refresh_token()
    else:
        token = client.user.get_token()
    output_manager.print_msg(token)


def get_client(options):
    registry = ClientRegistry.from_config_file(options.config)
    return registry.get(options.storage_type)


def add_default_args(parser):
    parser.add_argument(
        '--config', dest='config', default=None,
        help='Config file. Defaults to env[SELSTORAGE_CONFIG_FILE], then '
        '/etc/selstorage.conf.')
    parser.add_argument(
        '-t', '--storage-type', dest='storage_type',
        default=STORAGE_TYPE_STATIC,
        help='Storage type to work with. Defaults to %s.'
        % STORAGE_TYPE_STATIC)
    parser.add_argument(
        '-d', '--debug', action='store_true', default=False,
        help='Show the curl commands and results of all http queries, '
        'unredacted.')
    parser.add_argument(
        '-i', '--info', action='store_true', default=False,
        help='Show the curl commands and results of all http queries '
        'which return an error.')


def setup_logging(options):
    if options.debug:
        logging.basicConfig(level=logging.DEBUG)
        client_logger_settings['redact_sensitive_headers'] = False
    elif options.info:
        logging.basicConfig(level=logging.INFO)


def main(arguments=None):
    argv = sys.argv[1:] if arguments is None else arguments

    parser = argparse.ArgumentParser(
        prog=BASENAME, add_help=False, usage='''
%(prog)s [--version] [--help] [--config <file>]
                  [--storage-type <type>] [--debug] [--info]
                  <subcommand> [--help] [<subcommand options>]

Command-line interface to the Selectel storage API.

Positional arguments:
  <subcommand>
    list                 Lists the objects of the container.
    upload               Uploads a local file.
    download             Downloads an object.
    delete               Deletes objects.
    link                 Creates a symlink object.
    url                  Prints the public URL of an object.
    auth                 Authorizes the storage user and prints the token.

Examples:
  %(prog)s --config ./selstorage.conf list --prefix images/

  %(prog)s -t video upload ./clip.mp4 clips/clip.mp4
'''.strip('\n'))
    parser.add_argument('--version', action='version',
                        version='python-selstorageclient %s'
                        % selstorage_version.version_string)
    parser.add_argument('-h', '--help', action='store_true')
    add_default_args(parser)

    options, args = parser.parse_known_args(argv)

    if not args or args[0] not in commands:
        if options.help:
            parser.print_help()
        else:
            parser.print_usage()
        if args:
            sys.exit('no such command: %s' % args[0])
        sys.exit()

    command = args[0]
    subparser = argparse.ArgumentParser(
        prog='%s %s' % (BASENAME, command),
        usage='%s %s %s' % (BASENAME, command,
                            globals()['st_%s_options' % command]),
        description=globals()['st_%s_help' % command],
        formatter_class=argparse.RawDescriptionHelpFormatter)
    add_default_args(subparser)
    # the subcommand is the first positional, wherever the options put it
    subparser.add_argument('command', help=argparse.SUPPRESS)

    setup_logging(options)
    output = OutputManager()
    try:
        globals()['st_%s' % command](subparser, argv, output)
    except ClientException as err:
        output.error(str(err))
        if options.debug and err.request_headers:
            output.error('Request:\n\n%s', err.request_headers)
    except (RequestException, OSError) as err:
        output.error(str(err))

    if output.get_error_count() > 0:
        sys.exit(1)


if __name__ == '__main__':
    main()
