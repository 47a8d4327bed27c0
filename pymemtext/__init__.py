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
__version__ = '1.0.0'

from pymemtext.client import TextProtocol  # noqa
from pymemtext.client import connect  # noqa
from pymemtext.replies import Status  # noqa
from pymemtext.replies import ReplyShape  # noqa

from pymemtext.exceptions import MemcacheError  # noqa
from pymemtext.exceptions import MemcacheClientError  # noqa
from pymemtext.exceptions import MemcacheUnknownCommandError  # noqa
from pymemtext.exceptions import MemcacheIllegalInputError  # noqa
from pymemtext.exceptions import MemcacheServerError  # noqa
from pymemtext.exceptions import MemcacheProtocolError  # noqa
from pymemtext.exceptions import MemcacheUnknownError  # noqa
from pymemtext.exceptions import MemcacheUnexpectedCloseError  # noqa
from pymemtext.exceptions import MemcacheIOError  # noqa
from pymemtext.exceptions import MemcacheStatusError  # noqa
from pymemtext.exceptions import MemcacheUnsupportedError  # noqa
from pymemtext.exceptions import MemcachePoisonedError  # noqa
from pymemtext.exceptions import MemcacheMultiError  # noqa
