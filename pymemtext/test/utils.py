"""
Useful testing utilities.

This module is considered public API.

"""

import collections


class MockStream(object):
    """
    A stand-in for ``socket.makefile('rwb')``.

    Reads are served from a list of chunks, never crossing a chunk boundary,
    so tests control exactly how a reply is split. A chunk that is an
    exception instance is raised instead of returned. Once the chunks are
    exhausted the stream reports end of file.
    """

    def __init__(self, recv_bufs):
        self.recv_bufs = collections.deque(recv_bufs)
        self.send_bufs = []
        self._pending = []
        self.closed = False
        self.flushes = 0
        self.reads = 0

    @property
    def sent(self):
        return b''.join(self.send_bufs)

    @property
    def io_count(self):
        return self.reads + len(self.send_bufs) + len(self._pending) \
            + self.flushes

    def write(self, data):
        if self.closed:
            raise ValueError('I/O operation on closed file.')
        self._pending.append(bytes(data))
        return len(data)

    def flush(self):
        if self.closed:
            raise ValueError('I/O operation on closed file.')
        self.flushes += 1
        self.send_bufs.extend(self._pending)
        self._pending = []

    def close(self):
        self.closed = True

    def _next_chunk(self):
        self.reads += 1
        if not self.recv_bufs:
            return b''
        value = self.recv_bufs[0]
        if isinstance(value, Exception):
            self.recv_bufs.popleft()
            raise value
        return value

    def _consume(self, count):
        value = self.recv_bufs.popleft()
        if count < len(value):
            self.recv_bufs.appendleft(value[count:])
        return value[:count]

    def read(self, size):
        chunk = self._next_chunk()
        if not chunk:
            return chunk
        return self._consume(min(size, len(chunk)))

    def readline(self, limit=-1):
        chunk = self._next_chunk()
        if not chunk:
            return chunk
        end = chunk.find(b'\n') + 1 or len(chunk)
        if 0 <= limit < end:
            end = limit
        return self._consume(end)
