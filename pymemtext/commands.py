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
Encoding of memcached text protocol commands.

Every function here validates its inputs and returns the complete bytes to
write for one request: the header line, and for storage commands the value
block. Invalid input raises MemcacheIllegalInputError before anything is
written.
"""

from pymemtext.exceptions import MemcacheIllegalInputError
from pymemtext.replies import U32_MAX, U64_MAX

MAX_KEY_LENGTH = 250

STORE_COMMANDS = (b'set', b'add', b'replace', b'append', b'prepend')
ARITHMETIC_COMMANDS = (b'incr', b'decr')


def check_key(key):
    """Return key as bytes, or raise if memcached would refuse it."""
    if isinstance(key, str):
        try:
            key = key.encode('ascii')
        except UnicodeEncodeError:
            raise MemcacheIllegalInputError("No ascii key: %r" % (key,))
    elif isinstance(key, (bytearray, memoryview)):
        key = bytes(key)
    elif not isinstance(key, bytes):
        raise MemcacheIllegalInputError("Key is not bytes: %r" % (key,))

    if not key:
        raise MemcacheIllegalInputError("Key is empty")
    if len(key) > MAX_KEY_LENGTH:
        raise MemcacheIllegalInputError("Key is too long: %r" % (key,))
    for c in key:
        # Space, CR and LF would break the framing; memcached refuses the
        # other control characters and the reader refuses non-ASCII echoes.
        if c <= 32 or c >= 127:
            raise MemcacheIllegalInputError(
                "Key contains whitespace, control or non-ascii "
                "characters: %r" % (key,))
    return key


def check_value(value, encoding='ascii', max_length=U32_MAX):
    """Return value as bytes, or raise if it can't be stored."""
    if isinstance(value, str):
        try:
            value = value.encode(encoding)
        except UnicodeEncodeError as e:
            raise MemcacheIllegalInputError(str(e))
    elif isinstance(value, (bytearray, memoryview)):
        value = bytes(value)
    elif not isinstance(value, bytes):
        raise MemcacheIllegalInputError(
            "Value is not bytes: %r" % (type(value),))

    if len(value) > min(max_length, U32_MAX):
        raise MemcacheIllegalInputError(
            "Value is too large: {0} bytes".format(len(value)))
    return value


def check_uint(name, value, maximum=U32_MAX):
    if isinstance(value, bool) or not isinstance(value, int):
        raise MemcacheIllegalInputError(
            "{0} must be an integer, not {1!r}".format(name, value))
    if value < 0 or value > maximum:
        raise MemcacheIllegalInputError(
            "{0} out of range: {1}".format(name, value))
    return value


def _line(*parts, noreply=False):
    if noreply:
        parts += (b'noreply',)
    return b' '.join(parts) + b'\r\n'


def _num(value):
    return str(value).encode('ascii')


def store_command(name, key, value, flags=0, exptime=0, cas=None,
                  noreply=False, encoding='ascii', max_value_length=U32_MAX):
    """
    The set, add, replace, append, prepend and (with a cas token) cas
    commands:

      <name> <key> <flags> <exptime> <bytes> [<cas>] [noreply]\\r\\n
      <value>\\r\\n
    """
    if name not in STORE_COMMANDS + (b'cas',):
        raise ValueError('Not a storage command: %r' % (name,))
    if (name == b'cas') != (cas is not None):
        raise ValueError('A cas token goes with the cas command only')

    key = check_key(key)
    value = check_value(value, encoding, max_value_length)
    flags = check_uint('flags', flags)
    exptime = check_uint('exptime', exptime)

    parts = [name, key, _num(flags), _num(exptime), _num(len(value))]
    if cas is not None:
        parts.append(_num(check_uint('cas', cas, U64_MAX)))
    return _line(*parts, noreply=noreply) + value + b'\r\n'


def retrieval_command(name, keys, max_line_length=None):
    """The get and gets commands: <name> <key>*\\r\\n"""
    if name not in (b'get', b'gets'):
        raise ValueError('Not a retrieval command: %r' % (name,))

    checked = [check_key(key) for key in keys]
    if not checked:
        raise MemcacheIllegalInputError("No keys given")

    cmd = _line(name, *checked)
    if max_line_length is not None and len(cmd) - 2 > max_line_length:
        raise MemcacheIllegalInputError(
            "Command line exceeds {0} bytes".format(max_line_length))
    return cmd


def delete_command(key, noreply=False):
    return _line(b'delete', check_key(key), noreply=noreply)


def arithmetic_command(name, key, amount, noreply=False):
    """The incr and decr commands: <name> <key> <amount> [noreply]\\r\\n"""
    if name not in ARITHMETIC_COMMANDS:
        raise ValueError('Not an arithmetic command: %r' % (name,))
    amount = check_uint('amount', amount, U64_MAX)
    return _line(name, check_key(key), _num(amount), noreply=noreply)


def touch_command(key, exptime, noreply=False):
    exptime = check_uint('exptime', exptime)
    return _line(b'touch', check_key(key), _num(exptime), noreply=noreply)


def flush_all_command(exptime=0, noreply=False):
    exptime = check_uint('exptime', exptime)
    if exptime:
        return _line(b'flush_all', _num(exptime), noreply=noreply)
    return _line(b'flush_all', noreply=noreply)


def stats_command(*args):
    parts = [b'stats']
    for arg in args:
        parts.append(check_key(arg))
    return _line(*parts)


def version_command():
    return b'version\r\n'


def quit_command():
    return b'quit\r\n'
