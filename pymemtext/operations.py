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
The operation contracts shared by protocol adapters.

Routers and pools program against these; an adapter for a given wire
protocol implements all of them and raises MemcacheUnsupportedError for the
operations its protocol can't express.

Keys are bytes (or ASCII str), values are bytes, flags and expiration times
are unsigned 32 bit integers, CAS tokens and counters unsigned 64 bit
integers. Unsuccessful statuses raise MemcacheStatusError.
"""

from abc import ABCMeta, abstractmethod


class Operation(metaclass=ABCMeta):
    @abstractmethod
    def set(self, key, value, flags=0, expiration=0):
        """Store value under key unconditionally."""

    @abstractmethod
    def add(self, key, value, flags=0, expiration=0):
        """Store value under key only if the key doesn't exist yet."""

    @abstractmethod
    def delete(self, key):
        """Delete key."""

    @abstractmethod
    def replace(self, key, value, flags=0, expiration=0):
        """Store value under key only if the key already exists."""

    @abstractmethod
    def get(self, key):
        """Return a tuple of (value, flags) for key."""

    @abstractmethod
    def getk(self, key):
        """Return a tuple of (key, value, flags), the key as echoed by the
        server."""

    @abstractmethod
    def increment(self, key, amount, initial=None, expiration=0):
        """Increment the counter under key by amount and return the new
        value. If the key doesn't exist and initial is not None, the counter
        is created with the value initial instead."""

    @abstractmethod
    def decrement(self, key, amount, initial=None, expiration=0):
        """Like increment, but decrements. Counters don't go below zero."""

    @abstractmethod
    def append(self, key, value):
        """Append value to the existing value of key."""

    @abstractmethod
    def prepend(self, key, value):
        """Prepend value to the existing value of key."""

    @abstractmethod
    def touch(self, key, expiration):
        """Update the expiration time of key."""


class ServerOperation(metaclass=ABCMeta):
    @abstractmethod
    def quit(self):
        """Ask the server to close the connection."""

    @abstractmethod
    def flush(self, expiration=0):
        """Invalidate all items, now or after expiration seconds."""

    @abstractmethod
    def noop(self):
        pass

    @abstractmethod
    def version(self):
        """Return the server version as a semantic_version.Version."""

    @abstractmethod
    def stat(self):
        """Return the general purpose statistics as an ordered dict of
        name to value, both str."""


class MultiOperation(metaclass=ABCMeta):
    @abstractmethod
    def set_multi(self, values):
        """Store several values.

        Args:
          values: dict of key to a tuple of (value, flags, expiration).
        """

    @abstractmethod
    def delete_multi(self, keys):
        pass

    @abstractmethod
    def increment_multi(self, values):
        """Increment several counters.

        Args:
          values: dict of key to a tuple of (amount, initial, expiration).

        Returns:
          A dict of key to the new counter value.
        """

    @abstractmethod
    def get_multi(self, keys):
        """Return a dict of key to (value, flags) for the keys that were
        found. Missing keys are absent from the dict."""

    @abstractmethod
    def get_cas_multi(self, keys):
        """Like get_multi, with (value, flags, cas) tuples."""


class NoReplyOperation(metaclass=ABCMeta):
    """Fire and forget variants. They return as soon as the request is
    written; errors show up on the next operation that reads a reply."""

    @abstractmethod
    def set_noreply(self, key, value, flags=0, expiration=0):
        pass

    @abstractmethod
    def add_noreply(self, key, value, flags=0, expiration=0):
        pass

    @abstractmethod
    def delete_noreply(self, key):
        pass

    @abstractmethod
    def replace_noreply(self, key, value, flags=0, expiration=0):
        pass

    @abstractmethod
    def increment_noreply(self, key, amount, initial=None, expiration=0):
        pass

    @abstractmethod
    def decrement_noreply(self, key, amount, initial=None, expiration=0):
        pass

    @abstractmethod
    def append_noreply(self, key, value):
        pass

    @abstractmethod
    def prepend_noreply(self, key, value):
        pass


class CasOperation(metaclass=ABCMeta):
    @abstractmethod
    def set_cas(self, key, value, flags, expiration, cas):
        """Store value only if the item still has the given CAS token."""

    @abstractmethod
    def add_cas(self, key, value, flags=0, expiration=0):
        """Add value and return the CAS token of the new item."""

    @abstractmethod
    def replace_cas(self, key, value, flags, expiration, cas):
        pass

    @abstractmethod
    def get_cas(self, key):
        """Return a tuple of (value, flags, cas)."""

    @abstractmethod
    def getk_cas(self, key):
        """Return a tuple of (key, value, flags, cas)."""

    @abstractmethod
    def increment_cas(self, key, amount, initial, expiration, cas):
        """Return a tuple of (new value, new cas)."""

    @abstractmethod
    def decrement_cas(self, key, amount, initial, expiration, cas):
        """Return a tuple of (new value, new cas)."""

    @abstractmethod
    def append_cas(self, key, value, cas):
        """Append and return the new CAS token."""

    @abstractmethod
    def prepend_cas(self, key, value, cas):
        """Prepend and return the new CAS token."""

    @abstractmethod
    def touch_cas(self, key, expiration, cas):
        """Touch and return the new CAS token."""


class AuthOperation(metaclass=ABCMeta):
    @abstractmethod
    def list_mechanisms(self):
        """Return the SASL mechanisms the server offers."""

    @abstractmethod
    def auth_start(self, mechanism, data):
        pass

    @abstractmethod
    def auth_continue(self, mechanism, data):
        pass
