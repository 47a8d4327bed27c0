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
Framing of memcached text protocol replies.

A reply is a sequence of header lines, each terminated by "\\r\\n", and value
blocks of a length announced by the preceding header, also followed by
"\\r\\n". The reader below turns a buffered byte stream into those two kinds
of frames and refuses anything that doesn't add up byte for byte.
"""

import logging

from pymemtext.exceptions import (
    MemcacheIOError,
    MemcacheUnexpectedCloseError,
    MemcacheUnknownError,
)

logger = logging.getLogger(__name__)

MAX_LINE_LENGTH = 64 * 1024
MAX_VALUE_LENGTH = 1024 * 1024


class LineReader(object):
    """
    Reads header lines and value blocks from a stream.

    The stream must be a binary file-like object with ``read(size)`` and
    ``readline(limit)`` methods, for example the result of
    ``socket.makefile('rwb')``. Short reads are fine; the reader keeps asking
    until it has what it needs or the stream reports end of file.
    """

    def __init__(self, stream, max_line_length=MAX_LINE_LENGTH,
                 max_value_length=MAX_VALUE_LENGTH):
        self.stream = stream
        self.max_line_length = max_line_length
        self.max_value_length = max_value_length

    def readline(self):
        """Read a header line.

        Returns:
          The line as bytes, without the trailing "\\r\\n".

        Raises:
          MemcacheUnexpectedCloseError: the stream ended before the line did.
          MemcacheUnknownError: the line is empty, too long, not ASCII, or
            not terminated by "\\r\\n".
          MemcacheIOError: the stream failed.
        """
        chunks = []
        # Room for the terminator on top of the longest accepted line.
        remaining = self.max_line_length + 2

        while True:
            chunk = self._call(self.stream.readline, remaining)
            if not chunk:
                raise MemcacheUnexpectedCloseError()
            chunks.append(chunk)
            remaining -= len(chunk)

            if chunk.endswith(b'\n'):
                break
            if remaining <= 0:
                raise MemcacheUnknownError(
                    'Line exceeds {0} bytes'.format(self.max_line_length))

        line = b''.join(chunks)
        if not line.endswith(b'\r\n'):
            raise MemcacheUnknownError(
                'Line not terminated by CRLF: %r' % (line[:32],))

        line = line[:-2]
        if not line:
            raise MemcacheUnknownError('Empty line')
        if b'\r' in line:
            raise MemcacheUnknownError('Stray CR in line: %r' % (line[:32],))
        if not line.isascii():
            raise MemcacheUnknownError('Non-ASCII line: %r' % (line[:32],))
        return line

    def readvalue(self, size):
        """Read a value block of exactly size bytes and its "\\r\\n".

        Returns:
          The value as bytes (exactly size of them).
        """
        if size > self.max_value_length:
            raise MemcacheUnknownError(
                'Value of {0} bytes exceeds {1}'.format(
                    size, self.max_value_length))

        chunks = []
        rlen = size + 2
        while rlen > 0:
            chunk = self._call(self.stream.read, rlen)
            if not chunk:
                raise MemcacheUnexpectedCloseError()
            chunks.append(chunk)
            rlen -= len(chunk)

        data = b''.join(chunks)
        if len(data) != size + 2 or data[size:] != b'\r\n':
            raise MemcacheUnknownError(
                'Value block of {0} bytes not followed by CRLF'.format(size))
        return data[:size]

    def _call(self, method, size):
        try:
            return method(size)
        except OSError as e:
            logger.debug('Read failed: %s', e)
            raise MemcacheIOError(str(e)) from e
