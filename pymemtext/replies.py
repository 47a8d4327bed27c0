# Copyright 2012 Pinterest.com
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Parsing of memcached text protocol replies.

Every request expects a reply of a known shape (a single status line, a
stream of VALUE entries terminated by END, a number, ...). The parser is
told which shape to expect and either returns the decoded reply or raises.
"""

import collections
import enum

import semantic_version

from pymemtext.exceptions import (
    MemcacheClientError,
    MemcacheServerError,
    MemcacheStatusError,
    MemcacheUnknownCommandError,
    MemcacheUnknownError,
)

U32_MAX = 2 ** 32 - 1
U64_MAX = 2 ** 64 - 1


class Status(enum.Enum):
    STORED = 'Stored'
    NOT_STORED = 'Not stored'
    EXISTS = 'Key exists'
    NOT_FOUND = 'Key not found'
    DELETED = 'Deleted'
    TOUCHED = 'Touched'
    OK = 'Ok'
    CLIENT_ERROR = 'Client error'
    SERVER_ERROR = 'Server error'
    PROTOCOL_ERROR = 'Protocol error'
    UNSUPPORTED = 'Not supported for text protocol'

    @property
    def desc(self):
        return self.value


# Status lines the server may answer a storage, delete, touch or flush with.
STATUS_TOKENS = {
    b'STORED': Status.STORED,
    b'NOT_STORED': Status.NOT_STORED,
    b'EXISTS': Status.EXISTS,
    b'NOT_FOUND': Status.NOT_FOUND,
    b'DELETED': Status.DELETED,
    b'TOUCHED': Status.TOUCHED,
    b'OK': Status.OK,
}


class ReplyShape(enum.Enum):
    STATUS_ONLY = 'status_only'
    VALUE = 'value'
    VALUE_STREAM = 'value_stream'
    CAS_VALUE = 'cas_value'
    CAS_VALUE_STREAM = 'cas_value_stream'
    NUMERIC = 'numeric'
    VERSION = 'version'
    STAT_STREAM = 'stat_stream'
    UNSUPPORTED = 'unsupported'


ValueEntry = collections.namedtuple('ValueEntry', 'key value flags cas')


def raise_errors(line, name):
    """Raise the exception matching an error line, if line is one."""
    if line == b'ERROR' or line.startswith(b'ERROR '):
        raise MemcacheUnknownCommandError(name)

    if line.startswith(b'CLIENT_ERROR'):
        error = line[len(b'CLIENT_ERROR') + 1:].decode('ascii')
        raise MemcacheClientError(error)

    if line.startswith(b'SERVER_ERROR'):
        error = line[len(b'SERVER_ERROR') + 1:].decode('ascii')
        raise MemcacheServerError(error)


def parse_uint(token, maximum=U64_MAX):
    """Parse an unsigned decimal, refusing signs, spaces and overflow."""
    if not token or not token.isdigit():
        raise MemcacheUnknownError('Not an unsigned integer: %r' % (token,))
    value = int(token)
    if value > maximum:
        raise MemcacheUnknownError('Integer out of range: %r' % (token,))
    return value


def parse_reply(reader, shape, name, keys=()):
    """
    Read one complete reply of the given shape.

    Args:
      reader: a pymemtext.framing.LineReader.
      shape: the ReplyShape the request expects.
      name: bytes, the command name, used in error messages.
      keys: the keys requested, for the VALUE shapes.

    Returns:
      STATUS_ONLY: a Status.
      VALUE, CAS_VALUE: a ValueEntry (a miss raises MemcacheStatusError).
      VALUE_STREAM, CAS_VALUE_STREAM: an OrderedDict of key to ValueEntry.
      NUMERIC: an int, or Status.NOT_FOUND.
      VERSION: a semantic_version.Version.
      STAT_STREAM: an OrderedDict of str to str.
    """
    if shape is ReplyShape.STATUS_ONLY:
        return _parse_status(reader, name)
    if shape is ReplyShape.VALUE:
        return _parse_single_value(reader, name, keys, False)
    if shape is ReplyShape.CAS_VALUE:
        return _parse_single_value(reader, name, keys, True)
    if shape is ReplyShape.VALUE_STREAM:
        return _parse_values(reader, name, keys, False)
    if shape is ReplyShape.CAS_VALUE_STREAM:
        return _parse_values(reader, name, keys, True)
    if shape is ReplyShape.NUMERIC:
        return _parse_numeric(reader, name)
    if shape is ReplyShape.VERSION:
        return _parse_version(reader, name)
    if shape is ReplyShape.STAT_STREAM:
        return _parse_stats(reader, name)
    raise ValueError('No reply is read for shape {0}'.format(shape))


def _parse_status(reader, name):
    line = reader.readline()
    raise_errors(line, name)

    try:
        return STATUS_TOKENS[line]
    except KeyError:
        raise MemcacheUnknownError(line[:32])


def _parse_value_line(line, expect_cas):
    parts = line.split(b' ')
    if len(parts) != (5 if expect_cas else 4):
        raise MemcacheUnknownError(line[:32])

    key = parts[1]
    flags = parse_uint(parts[2], U32_MAX)
    size = parse_uint(parts[3], U32_MAX)
    cas = parse_uint(parts[4]) if expect_cas else None
    return key, flags, size, cas


def _parse_values(reader, name, keys, expect_cas):
    requested = set(keys)
    result = collections.OrderedDict()

    while True:
        line = reader.readline()
        raise_errors(line, name)

        if line == b'END':
            return result
        elif line.startswith(b'VALUE '):
            key, flags, size, cas = _parse_value_line(line, expect_cas)
            if key in result:
                raise MemcacheUnknownError('Duplicate key: %r' % (key,))
            if requested and key not in requested:
                raise MemcacheUnknownError('Unexpected key: %r' % (key,))

            value = reader.readvalue(size)
            result[key] = ValueEntry(key, value, flags, cas)
        else:
            raise MemcacheUnknownError(line[:32])


def _parse_single_value(reader, name, keys, expect_cas):
    result = _parse_values(reader, name, keys, expect_cas)
    if len(result) > 1:
        raise MemcacheUnknownError(
            'Got {0} values for a single key'.format(len(result)))
    if not result:
        raise MemcacheStatusError(Status.NOT_FOUND)
    return next(iter(result.values()))


def _parse_numeric(reader, name):
    line = reader.readline()
    raise_errors(line, name)

    if line == b'NOT_FOUND':
        return Status.NOT_FOUND

    # memcached space-pads the number when it gets shorter in place.
    return parse_uint(line.rstrip(b' '))


def _parse_version(reader, name):
    line = reader.readline()
    raise_errors(line, name)

    if not line.startswith(b'VERSION '):
        raise MemcacheUnknownError(line[:32])

    raw = line[len(b'VERSION '):].decode('ascii')
    try:
        return semantic_version.Version(raw)
    except ValueError:
        raise MemcacheUnknownError('Malformed version: {0}'.format(raw))


def _parse_stats(reader, name):
    result = collections.OrderedDict()

    while True:
        line = reader.readline()
        raise_errors(line, name)

        if line == b'END':
            return result
        elif line.startswith(b'STAT '):
            parts = line.split(b' ', 2)
            if len(parts) != 3 or not parts[1]:
                raise MemcacheUnknownError(line[:32])
            result[parts[1].decode('ascii')] = parts[2].decode('ascii')
        else:
            raise MemcacheUnknownError(line[:32])
