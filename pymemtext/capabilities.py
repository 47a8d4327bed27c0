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
Which operations the text protocol can express, and with which command.

Routers can consult this table to send an operation to a binary adapter
instead. TextProtocol consults it before touching the stream.
"""

import collections

from pymemtext.exceptions import MemcacheUnsupportedError

Capability = collections.namedtuple(
    'Capability', 'name contract command supported')


def _ops(contract, *entries):
    return [Capability(name, contract, command, command is not None)
            for name, command in entries]


CAPABILITIES = collections.OrderedDict(
    (capability.name, capability) for capability in
    _ops('Operation',
         ('set', b'set'),
         ('add', b'add'),
         ('delete', b'delete'),
         ('replace', b'replace'),
         ('get', b'get'),
         ('getk', b'get'),
         ('increment', b'incr'),
         ('decrement', b'decr'),
         ('append', b'append'),
         ('prepend', b'prepend'),
         ('touch', b'touch')) +
    _ops('ServerOperation',
         ('quit', b'quit'),
         ('flush', b'flush_all'),
         # NoOp only exists as a binary protocol packet.
         ('noop', None),
         ('version', b'version'),
         ('stat', b'stats')) +
    _ops('MultiOperation',
         ('set_multi', b'set'),
         ('delete_multi', b'delete'),
         ('increment_multi', b'incr'),
         ('get_multi', b'get'),
         ('get_cas_multi', b'gets')) +
    _ops('NoReplyOperation',
         ('set_noreply', b'set'),
         ('add_noreply', b'add'),
         ('delete_noreply', b'delete'),
         ('replace_noreply', b'replace'),
         ('increment_noreply', b'incr'),
         ('decrement_noreply', b'decr'),
         ('append_noreply', b'append'),
         ('prepend_noreply', b'prepend')) +
    # Text replies never carry the CAS token of the item they just wrote,
    # so only the operations that consume a token are possible.
    _ops('CasOperation',
         ('set_cas', b'cas'),
         ('add_cas', None),
         ('replace_cas', b'cas'),
         ('get_cas', b'gets'),
         ('getk_cas', b'gets'),
         ('increment_cas', None),
         ('decrement_cas', None),
         ('append_cas', None),
         ('prepend_cas', None),
         ('touch_cas', None)) +
    _ops('AuthOperation',
         ('list_mechanisms', None),
         ('auth_start', None),
         ('auth_continue', None))
)


def is_supported(name):
    """True if the text protocol can carry the named operation."""
    try:
        return CAPABILITIES[name].supported
    except KeyError:
        raise ValueError('Unknown operation: {0}'.format(name))


def unsupported_operations():
    return [name for name, capability in CAPABILITIES.items()
            if not capability.supported]


def check_supported(name):
    if not is_supported(name):
        raise MemcacheUnsupportedError(
            '{0} is not supported for text protocol'.format(name))
