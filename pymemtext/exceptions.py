# Copyright 2021 Pinterest.com
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
class MemcacheError(Exception):
    "Base exception class"
    pass


class MemcacheClientError(MemcacheError):
    """Raised when memcached fails to parse the arguments to a request, likely
    due to a malformed key and/or value, a bug in this library, or a version
    mismatch with memcached."""
    pass


class MemcacheIllegalInputError(MemcacheClientError):
    """Raised when a key or value is not legal for Memcache (see the class docs
    for TextProtocol for more details). Nothing is sent to the server."""
    pass


class MemcacheServerError(MemcacheError):
    """Raised when memcached reports a failure while processing a request,
    likely due to a bug or transient issue in memcached. The connection is
    still usable afterwards."""
    pass


class MemcacheProtocolError(MemcacheError):
    """Raised when the reply from memcached does not follow the framing or
    shape expected for the request. The position in the stream can no longer
    be trusted, so the adapter that raised it is poisoned."""
    pass


class MemcacheUnknownCommandError(MemcacheClientError, MemcacheProtocolError):
    """Raised when memcached fails to parse a request (a bare ERROR reply),
    likely due to a bug in this library or a version mismatch with
    memcached."""
    pass


class MemcacheUnknownError(MemcacheProtocolError):
    """Raised when this library receives a response from memcached that it
    cannot parse, likely due to a bug in this library or a version mismatch
    with memcached."""
    pass


class MemcacheUnexpectedCloseError(MemcacheProtocolError):
    "Raised when the connection with memcached closes in the middle of a reply."
    pass


class MemcacheIOError(MemcacheError):
    """Raised when reading from or writing to the stream fails. The original
    exception is available as __cause__."""
    pass


class MemcacheStatusError(MemcacheError):
    """Raised when memcached answers with a well-formed but unsuccessful
    status, such as NOT_FOUND, NOT_STORED or EXISTS."""

    def __init__(self, status, detail=None):
        self.status = status
        self.detail = detail
        message = status.desc
        if detail is not None:
            message = '{0} ({1})'.format(message, detail)
        super(MemcacheStatusError, self).__init__(message)


class MemcacheUnsupportedError(MemcacheError):
    """Raised for operations that cannot be expressed with the text protocol,
    such as SASL authentication or CAS-returning writes. Nothing is sent to
    the server."""
    pass


class MemcachePoisonedError(MemcacheError):
    """Raised for every operation on an adapter that previously hit an I/O or
    protocol error. Nothing is sent to the server."""
    pass


class MemcacheMultiError(MemcacheError):
    """Raised by the multi-key write operations when some of the keys failed.

    Attributes:
      failures: dict of key to the exception raised for that key.
      results: dict of key to the result for every key that succeeded.
    """

    def __init__(self, failures, results=None):
        self.failures = failures
        self.results = results if results is not None else {}
        super(MemcacheMultiError, self).__init__(
            '{0} of {1} keys failed'.format(
                len(failures), len(failures) + len(self.results)))
