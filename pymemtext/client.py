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
A memcached text protocol adapter.

Basic Usage:
------------

 from pymemtext.client import connect

 adapter = connect(('localhost', 11211), connect_timeout=1, timeout=1)
 adapter.set(b'some_key', b'some_value')
 value, flags = adapter.get(b'some_key')


Using an existing stream:
-------------------------

 import socket
 from pymemtext.client import TextProtocol

 sock = socket.create_connection(('localhost', 11211))
 adapter = TextProtocol(sock.makefile('rwb'))


Best Practices:
---------------

 - An adapter owns its stream and runs one command at a time. Give each
   thread its own adapter, or check adapters out of a pool.
 - Once an adapter raises MemcacheIOError or a MemcacheProtocolError, it is
   poisoned and every later call raises MemcachePoisonedError. Throw it away
   and connect a new one.
 - The *_noreply methods don't wait for the server, so failures only show up
   on the next call that reads a reply.
 - Use get_multi whenever possible, it costs a single round trip.
"""

__author__ = "Charles Gordon"


import collections
import contextlib
import logging
import socket
import threading

from pymemtext.capabilities import check_supported
from pymemtext.commands import (
    arithmetic_command,
    check_key,
    check_uint,
    delete_command,
    flush_all_command,
    quit_command,
    retrieval_command,
    stats_command,
    store_command,
    touch_command,
    version_command,
)
from pymemtext.exceptions import (
    MemcacheError,
    MemcacheIOError,
    MemcacheMultiError,
    MemcachePoisonedError,
    MemcacheProtocolError,
    MemcacheStatusError,
    MemcacheUnknownError,
)
from pymemtext.framing import MAX_LINE_LENGTH, MAX_VALUE_LENGTH, LineReader
from pymemtext.operations import (
    AuthOperation,
    CasOperation,
    MultiOperation,
    NoReplyOperation,
    Operation,
    ServerOperation,
)
from pymemtext.replies import U64_MAX, ReplyShape, Status, parse_reply

logger = logging.getLogger(__name__)

VALID_STATUS_RESULTS = {
    b'set':       (Status.STORED, Status.NOT_STORED, Status.EXISTS,
                   Status.NOT_FOUND),
    b'add':       (Status.STORED, Status.NOT_STORED),
    b'replace':   (Status.STORED, Status.NOT_STORED, Status.NOT_FOUND),
    b'append':    (Status.STORED, Status.NOT_STORED),
    b'prepend':   (Status.STORED, Status.NOT_STORED),
    b'cas':       (Status.STORED, Status.EXISTS, Status.NOT_FOUND,
                   Status.NOT_STORED),
    b'delete':    (Status.DELETED, Status.NOT_FOUND),
    b'touch':     (Status.TOUCHED, Status.NOT_FOUND),
    b'flush_all': (Status.OK,),
}

SUCCESS_STATUSES = (Status.STORED, Status.DELETED, Status.TOUCHED, Status.OK)

# Errors after which the position in the stream is unknown.
POISONING_ERRORS = (MemcacheIOError, MemcacheProtocolError)


class TextProtocol(Operation, ServerOperation, MultiOperation,
                   NoReplyOperation, CasOperation, AuthOperation):
    """
    Speaks the memcached text protocol over a single stream.

    Keys and Values:
    ----------------

     Keys are bytes of 1 to 250 printable ASCII characters, without spaces
     or control characters. A str key is accepted if it encodes to ASCII.

     Values are bytes. A str value is encoded with the adapter's "encoding"
     argument. Flags and expiration times are integers between 0 and
     2**32 - 1, CAS tokens and counter amounts between 0 and 2**64 - 1.

    Error Handling:
    ---------------

     All of the methods in this class that talk to memcached can raise one
     of the following exceptions:

      * MemcacheStatusError: the server refused the operation (NOT_FOUND,
        NOT_STORED or EXISTS), see its "status" attribute.
      * MemcacheClientError: the server answered CLIENT_ERROR.
      * MemcacheServerError: the server answered SERVER_ERROR.
      * MemcacheIllegalInputError: a key or value was rejected before
        anything was sent.
      * MemcacheUnsupportedError: the operation can't be expressed with the
        text protocol. Nothing is sent.
      * MemcacheUnknownCommandError, MemcacheUnknownError,
        MemcacheUnexpectedCloseError: the reply didn't make sense.
      * MemcacheIOError: the stream failed.
      * MemcachePoisonedError: one of the previous three happened earlier.

     The last four leave the adapter poisoned. The others leave it usable.
    """

    def __init__(self,
                 stream,
                 max_line_length=MAX_LINE_LENGTH,
                 max_value_length=MAX_VALUE_LENGTH,
                 encoding='ascii'):
        """
        Constructor.

        Args:
          stream: a binary file-like object with read, readline, write and
            flush methods, e.g. socket.makefile('rwb').
          max_line_length: optional int, longest reply header line accepted,
            and longest command line sent by get_multi.
          max_value_length: optional int, largest value sent or accepted.
          encoding: optional str, used to encode str values.
        """
        self.stream = stream
        self.reader = LineReader(stream, max_line_length, max_value_length)
        self.max_line_length = max_line_length
        self.max_value_length = max_value_length
        self.encoding = encoding
        self._lock = threading.RLock()
        self._poisoned_by = None
        self._closed = False

    @property
    def poisoned(self):
        return self._poisoned_by is not None

    @property
    def closed(self):
        return self._closed

    def close(self):
        """Close the stream. Any later operation raises MemcacheIOError."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            try:
                self.stream.close()
            except OSError:
                logger.debug('Error closing stream', exc_info=True)

    # Operation

    def set(self, key, value, flags=0, expiration=0):
        """
        The memcached "set" command.

        Returns:
          None. Raises MemcacheServerError if the server ran out of memory,
          and MemcacheStatusError if it refused the item anyway (some
          proxies and storage engines answer NOT_STORED).
        """
        self._store_cmd(b'set', key, value, flags, expiration)

    def add(self, key, value, flags=0, expiration=0):
        """
        The memcached "add" command.

        Raises:
          MemcacheStatusError: with Status.NOT_STORED if the key exists.
        """
        self._store_cmd(b'add', key, value, flags, expiration)

    def delete(self, key):
        """
        The memcached "delete" command.

        Raises:
          MemcacheStatusError: with Status.NOT_FOUND if there was no such
            key.
        """
        self._misc_cmd(b'delete', delete_command, key)

    def replace(self, key, value, flags=0, expiration=0):
        self._store_cmd(b'replace', key, value, flags, expiration)

    def get(self, key):
        """
        The memcached "get" command for one key.

        Returns:
          A tuple of (value, flags).

        Raises:
          MemcacheStatusError: with Status.NOT_FOUND on a miss.
        """
        entry = self._fetch_one(b'get', key, ReplyShape.VALUE)
        return entry.value, entry.flags

    def getk(self, key):
        entry = self._fetch_one(b'get', key, ReplyShape.VALUE)
        return entry.key, entry.value, entry.flags

    def increment(self, key, amount, initial=None, expiration=0):
        """
        The memcached "incr" command.

        The text protocol has no notion of an initial value, so when the key
        is missing and initial is not None, the counter is created with an
        "add" and initial is returned. If somebody else created the key in
        between, the increment is retried once.

        Returns:
          The new value of the counter.

        Raises:
          MemcacheStatusError: with Status.NOT_FOUND if the key doesn't exist
            and initial is None.
        """
        return self._arithmetic_cmd(b'incr', key, amount, initial, expiration)

    def decrement(self, key, amount, initial=None, expiration=0):
        """
        The memcached "decr" command. See increment for the handling of
        initial. The server never takes a counter below zero.
        """
        return self._arithmetic_cmd(b'decr', key, amount, initial, expiration)

    def append(self, key, value):
        self._store_cmd(b'append', key, value)

    def prepend(self, key, value):
        self._store_cmd(b'prepend', key, value)

    def touch(self, key, expiration):
        """
        The memcached "touch" command.

        Raises:
          MemcacheStatusError: with Status.NOT_FOUND if there was no such
            key.
        """
        self._misc_cmd(b'touch', touch_command, key, expiration)

    # ServerOperation

    def quit(self):
        """
        The memcached "quit" command.

        The server closes the connection without replying, so the stream is
        closed as well and the adapter can't be used afterwards.
        """
        try:
            with self._exclusive(b'quit'):
                self._send(quit_command())
        finally:
            self.close()

    def flush(self, expiration=0):
        """
        The memcached "flush_all" command.

        Args:
          expiration: optional int, the number of seconds to wait before
            flushing, or zero to flush immediately (the default).
        """
        self._misc_cmd(b'flush_all', flush_all_command, expiration)

    def noop(self):
        check_supported('noop')

    def version(self):
        """
        The memcached "version" command.

        Returns:
          A semantic_version.Version.
        """
        self._check_usable(b'version')
        return self._request(b'version', version_command(),
                             ReplyShape.VERSION)

    def stat(self, *args):
        """
        The memcached "stats" command.

        Args:
          *args: extra arguments to the "stats" command, such as "settings"
            or "items". See the memcached protocol documentation.

        Returns:
          An OrderedDict of stat name to value, both str, in the order the
          server sent them.
        """
        self._check_usable(b'stats')
        return self._request(b'stats', stats_command(*args),
                             ReplyShape.STAT_STREAM)

    # MultiOperation

    def set_multi(self, values):
        """
        Set several keys, one "set" command after the other.

        Args:
          values: dict of key to a tuple of (value, flags, expiration).

        Raises:
          MemcacheMultiError: if some keys failed. All keys are attempted;
            the ones not listed in its "failures" have been set.
        """
        def _set(key, item):
            value, flags, expiration = item
            self.set(key, value, flags, expiration)
        self._multi_cmd(b'set', _set, values.items())

    def delete_multi(self, keys):
        """
        Delete several keys, one "delete" command after the other. Raises
        MemcacheMultiError like set_multi.
        """
        self._multi_cmd(b'delete', lambda key, _: self.delete(key),
                        ((key, None) for key in keys))

    def increment_multi(self, values):
        """
        Increment several counters, one "incr" command after the other.

        Args:
          values: dict of key to a tuple of (amount, initial, expiration).

        Returns:
          A dict of key to new value. Raises MemcacheMultiError like
          set_multi; its "results" hold the counters that were incremented.
        """
        def _incr(key, item):
            amount, initial, expiration = item
            return self.increment(key, amount, initial, expiration)
        return self._multi_cmd(b'incr', _incr, values.items())

    def get_multi(self, keys):
        """
        The memcached "get" command with several keys.

        Returns:
          An OrderedDict of key (bytes) to (value, flags) for the keys that
          were found. Keys the server didn't return are absent.
        """
        entries = self._fetch_many(b'get', keys, ReplyShape.VALUE_STREAM)
        return collections.OrderedDict(
            (key, (entry.value, entry.flags))
            for key, entry in entries.items())

    def get_cas_multi(self, keys):
        """
        The memcached "gets" command with several keys.

        Returns:
          An OrderedDict of key (bytes) to (value, flags, cas).
        """
        entries = self._fetch_many(b'gets', keys,
                                   ReplyShape.CAS_VALUE_STREAM)
        return collections.OrderedDict(
            (key, (entry.value, entry.flags, entry.cas))
            for key, entry in entries.items())

    # NoReplyOperation

    def set_noreply(self, key, value, flags=0, expiration=0):
        self._store_cmd(b'set', key, value, flags, expiration, noreply=True)

    def add_noreply(self, key, value, flags=0, expiration=0):
        self._store_cmd(b'add', key, value, flags, expiration, noreply=True)

    def delete_noreply(self, key):
        self._misc_cmd(b'delete', delete_command, key, True, noreply=True)

    def replace_noreply(self, key, value, flags=0, expiration=0):
        self._store_cmd(b'replace', key, value, flags, expiration,
                        noreply=True)

    def increment_noreply(self, key, amount, initial=None, expiration=0):
        """Like increment, but without a reply there is no way to tell a
        missing key, so initial is ignored."""
        self._check_usable(b'incr')
        self._request(b'incr', arithmetic_command(b'incr', key, amount, True),
                      ReplyShape.NUMERIC, noreply=True)

    def decrement_noreply(self, key, amount, initial=None, expiration=0):
        self._check_usable(b'decr')
        self._request(b'decr', arithmetic_command(b'decr', key, amount, True),
                      ReplyShape.NUMERIC, noreply=True)

    def append_noreply(self, key, value):
        self._store_cmd(b'append', key, value, noreply=True)

    def prepend_noreply(self, key, value):
        self._store_cmd(b'prepend', key, value, noreply=True)

    # CasOperation

    def set_cas(self, key, value, flags, expiration, cas):
        """
        The memcached "cas" command.

        Returns:
          None. The text protocol doesn't return the new CAS token; use
          get_cas to fetch it.

        Raises:
          MemcacheStatusError: with Status.EXISTS if the item was modified
            since the token was fetched, Status.NOT_FOUND if it is gone.
        """
        self._store_cmd(b'cas', key, value, flags, expiration, cas=cas)

    def add_cas(self, key, value, flags=0, expiration=0):
        check_supported('add_cas')

    def replace_cas(self, key, value, flags, expiration, cas):
        """Same as set_cas: "cas" only ever replaces an existing item."""
        self._store_cmd(b'cas', key, value, flags, expiration, cas=cas)

    def get_cas(self, key):
        """
        The memcached "gets" command for one key.

        Returns:
          A tuple of (value, flags, cas).
        """
        entry = self._fetch_one(b'gets', key, ReplyShape.CAS_VALUE)
        return entry.value, entry.flags, entry.cas

    def getk_cas(self, key):
        entry = self._fetch_one(b'gets', key, ReplyShape.CAS_VALUE)
        return entry.key, entry.value, entry.flags, entry.cas

    def increment_cas(self, key, amount, initial, expiration, cas):
        check_supported('increment_cas')

    def decrement_cas(self, key, amount, initial, expiration, cas):
        check_supported('decrement_cas')

    def append_cas(self, key, value, cas):
        check_supported('append_cas')

    def prepend_cas(self, key, value, cas):
        check_supported('prepend_cas')

    def touch_cas(self, key, expiration, cas):
        check_supported('touch_cas')

    # AuthOperation

    def list_mechanisms(self):
        check_supported('list_mechanisms')

    def auth_start(self, mechanism, data):
        check_supported('auth_start')

    def auth_continue(self, mechanism, data):
        check_supported('auth_continue')

    # Dispatch

    def _check_usable(self, name):
        # Runs before argument validation too: a poisoned adapter reports
        # MemcachePoisonedError whatever the arguments.
        with self._lock:
            if self._poisoned_by is not None:
                raise MemcachePoisonedError(
                    'Adapter poisoned by earlier error: {0!r}'.format(
                        self._poisoned_by))
            if self._closed:
                self._poison(name, MemcacheIOError('Stream is closed'))
                raise self._poisoned_by

    @contextlib.contextmanager
    def _exclusive(self, name):
        with self._lock:
            self._check_usable(name)
            try:
                yield
            except POISONING_ERRORS as e:
                self._poison(name, e)
                raise

    def _poison(self, name, error):
        logger.warning('Poisoning adapter after %s: %r',
                       name.decode('ascii'), error)
        self._poisoned_by = error

    def _send(self, cmd):
        try:
            self.stream.write(cmd)
            self.stream.flush()
        except (OSError, ValueError) as e:
            raise MemcacheIOError(str(e)) from e

    def _request(self, name, cmd, shape, keys=(), noreply=False):
        with self._exclusive(name):
            logger.debug('Sending %s%s', name.decode('ascii'),
                         ' noreply' if noreply else '')
            self._send(cmd)

            if noreply:
                return None

            reply = parse_reply(self.reader, shape, name, keys)
            if (shape is ReplyShape.STATUS_ONLY and
                    reply not in VALID_STATUS_RESULTS[name]):
                raise MemcacheUnknownError(
                    'Unexpected {0} reply to {1}'.format(
                        reply.name, name.decode('ascii')))
            return reply

    def _check_status(self, status):
        if status not in SUCCESS_STATUSES:
            raise MemcacheStatusError(status)

    def _store_cmd(self, name, key, value, flags=0, expiration=0, cas=None,
                   noreply=False):
        self._check_usable(name)
        cmd = store_command(
            name, key, value, flags, expiration, cas=cas, noreply=noreply,
            encoding=self.encoding, max_value_length=self.max_value_length)
        status = self._request(name, cmd, ReplyShape.STATUS_ONLY,
                               noreply=noreply)
        if not noreply:
            self._check_status(status)

    def _misc_cmd(self, name, build, *args, noreply=False):
        self._check_usable(name)
        cmd = build(*args)
        status = self._request(name, cmd, ReplyShape.STATUS_ONLY,
                               noreply=noreply)
        if not noreply:
            self._check_status(status)

    def _fetch_one(self, name, key, shape):
        self._check_usable(name)
        key = check_key(key)
        cmd = retrieval_command(name, [key], self.max_line_length)
        return self._request(name, cmd, shape, keys=(key,))

    def _fetch_many(self, name, keys, shape):
        self._check_usable(name)
        # memcached answers a key once per occurrence in the request.
        checked = list(collections.OrderedDict.fromkeys(
            check_key(key) for key in keys))
        if not checked:
            return collections.OrderedDict()

        cmd = retrieval_command(name, checked, self.max_line_length)
        return self._request(name, cmd, shape, keys=checked)

    def _arithmetic_cmd(self, name, key, amount, initial, expiration):
        self._check_usable(name)
        cmd = arithmetic_command(name, key, amount)
        if initial is not None:
            initial = check_uint('initial', initial, U64_MAX)
            add_cmd = store_command(b'add', key, str(initial), 0, expiration)

        with self._lock:
            result = self._request(name, cmd, ReplyShape.NUMERIC)
            if result is not Status.NOT_FOUND:
                return result
            if initial is None:
                raise MemcacheStatusError(Status.NOT_FOUND)

            logger.debug('Counter missing, adding initial value')
            status = self._request(b'add', add_cmd, ReplyShape.STATUS_ONLY)
            if status is Status.STORED:
                return initial

            # Somebody else created the counter in between.
            result = self._request(name, cmd, ReplyShape.NUMERIC)
            if result is Status.NOT_FOUND:
                raise MemcacheStatusError(Status.NOT_FOUND)
            return result

    def _multi_cmd(self, name, func, items):
        self._check_usable(name)
        results = collections.OrderedDict()
        failures = collections.OrderedDict()

        for key, item in items:
            try:
                results[key] = func(key, item)
            except POISONING_ERRORS + (MemcachePoisonedError,):
                raise
            except MemcacheError as e:
                failures[key] = e

        if failures:
            raise MemcacheMultiError(failures, results)
        return results


def connect(server,
            connect_timeout=None,
            timeout=None,
            no_delay=False,
            socket_module=socket,
            **kwargs):
    """
    Open a TCP connection to memcached and wrap it in a TextProtocol.

    Args:
      server: tuple(hostname, port)
      connect_timeout: optional float, seconds to wait for a connection to
        the memcached server. Defaults to "forever" (uses the underlying
        default socket timeout, which can be very long).
      timeout: optional float, seconds to wait for send or recv calls on
        the socket connected to memcached. Defaults to "forever" (uses the
        underlying default socket timeout, which can be very long).
      no_delay: optional bool, set the TCP_NODELAY flag, which may help
        with performance in some cases. Defaults to False.
      socket_module: socket module to use, e.g. gevent.socket. Defaults to
        the standard library's socket module.
      **kwargs: passed on to the TextProtocol constructor.
    """
    sock = socket_module.socket(socket_module.AF_INET,
                                socket_module.SOCK_STREAM)
    try:
        sock.settimeout(connect_timeout)
        sock.connect(server)
        sock.settimeout(timeout)
        if no_delay:
            sock.setsockopt(socket_module.IPPROTO_TCP,
                            socket_module.TCP_NODELAY, 1)
        stream = sock.makefile('rwb')
    finally:
        # The stream keeps the connection open until it is closed itself.
        sock.close()
    return TextProtocol(stream, **kwargs)
