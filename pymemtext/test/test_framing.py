import socket
import unittest

import pytest

from pymemtext.exceptions import (
    MemcacheIOError,
    MemcacheProtocolError,
    MemcacheUnexpectedCloseError,
    MemcacheUnknownError,
)
from pymemtext.framing import LineReader
from pymemtext.test.utils import MockStream


@pytest.mark.unit()
class TestLineReader(unittest.TestCase):
    def make_reader(self, chunks, **kwargs):
        return LineReader(MockStream(list(chunks)), **kwargs)

    def test_readline(self):
        reader = self.make_reader([b'STORED\r\n'])
        assert reader.readline() == b'STORED'

    def test_readline_across_chunks(self):
        reader = self.make_reader([b'STO', b'RED\r', b'\nEND\r\n'])
        assert reader.readline() == b'STORED'
        assert reader.readline() == b'END'

    def test_readline_eof(self):
        reader = self.make_reader([])
        with pytest.raises(MemcacheUnexpectedCloseError):
            reader.readline()

    def test_readline_eof_mid_line(self):
        reader = self.make_reader([b'STOR'])
        with pytest.raises(MemcacheProtocolError):
            reader.readline()

    def test_readline_bare_lf(self):
        reader = self.make_reader([b'STORED\n'])
        with pytest.raises(MemcacheUnknownError):
            reader.readline()

    def test_readline_stray_cr(self):
        reader = self.make_reader([b'STO\rRED\r\n'])
        with pytest.raises(MemcacheUnknownError):
            reader.readline()

    def test_readline_empty(self):
        reader = self.make_reader([b'\r\n'])
        with pytest.raises(MemcacheUnknownError):
            reader.readline()

    def test_readline_non_ascii(self):
        reader = self.make_reader([b'VALUE k\xc3\xa9 0 1\r\n'])
        with pytest.raises(MemcacheUnknownError):
            reader.readline()

    def test_readline_too_long(self):
        reader = self.make_reader([b'x' * 20 + b'\r\n'], max_line_length=10)
        with pytest.raises(MemcacheUnknownError):
            reader.readline()

    def test_readline_at_limit(self):
        reader = self.make_reader([b'x' * 10 + b'\r\n'], max_line_length=10)
        assert reader.readline() == b'x' * 10

    def test_readline_io_error(self):
        reader = self.make_reader([socket.timeout('timed out')])
        with pytest.raises(MemcacheIOError) as exc_info:
            reader.readline()
        assert isinstance(exc_info.value.__cause__, socket.timeout)

    def test_readvalue(self):
        reader = self.make_reader([b'val', b'ue\r', b'\nEND\r\n'])
        assert reader.readvalue(5) == b'value'
        assert reader.readline() == b'END'

    def test_readvalue_binary(self):
        value = b'\r\n\x00\xff \r\n'
        reader = self.make_reader([value + b'\r\n'])
        assert reader.readvalue(len(value)) == value

    def test_readvalue_empty(self):
        reader = self.make_reader([b'\r\n'])
        assert reader.readvalue(0) == b''

    def test_readvalue_short(self):
        reader = self.make_reader([b'AB'])
        with pytest.raises(MemcacheUnexpectedCloseError):
            reader.readvalue(3)

    def test_readvalue_bad_terminator(self):
        reader = self.make_reader([b'ABCD\r\n'])
        with pytest.raises(MemcacheUnknownError):
            reader.readvalue(3)

    def test_readvalue_too_large(self):
        stream = MockStream([b'x' * 11 + b'\r\n'])
        reader = LineReader(stream, max_value_length=10)
        with pytest.raises(MemcacheUnknownError):
            reader.readvalue(11)
        assert stream.reads == 0
