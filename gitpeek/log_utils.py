# log_utils.py -- Logging utilities for gitpeek
# Copyright (C) 2026 The gitpeek Authors
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# gitpeek is dual-licensed under the Apache License, Version 2.0 and the GNU
# General Public License as published by the Free Software Foundation; version 2.0
# or (at your option) any later version. You can redistribute it and/or
# modify it under the terms of either of these two licenses.
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# You should have received a copy of the licenses; if not, see
# <http://www.gnu.org/licenses/> for a copy of the GNU General Public License
# and <http://www.apache.org/licenses/LICENSE-2.0> for a copy of the Apache
# License, Version 2.0.
#

"""Logging utilities for gitpeek.

gitpeek is mostly used as a library, so the ``gitpeek`` logger carries a
null handler and stays silent unless the application configures logging.
Setting ``GIT_TRACE`` turns on debug output the same way git does.

Modules only need ``getLogger`` from here; anything else can come straight
from the standard logging module.
"""

__all__ = [
    "default_logging_config",
    "getLogger",
    "remove_null_handler",
]

import logging
import os
import sys

getLogger = logging.getLogger

_NULL_HANDLER = logging.NullHandler()
_GITPEEK_LOGGER = getLogger("gitpeek")
_GITPEEK_LOGGER.addHandler(_NULL_HANDLER)

_TRACE_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"


def _trace_handler(value: str) -> logging.Handler | None:
    """Create the handler a ``GIT_TRACE`` value asks for.

    ``1``, ``2`` and ``true`` trace to stderr, ``3`` to ``9`` to that file
    descriptor and an absolute path to that file, or to ``trace.<pid>``
    when the path is a directory.

    Returns: A handler, or None when the value does not enable tracing
    Raises:
      OSError: if the trace target can not be opened
    """
    if value.lower() in ("1", "2", "true"):
        return logging.StreamHandler(sys.stderr)
    if value.isdigit():
        fd = int(value)
        if 3 <= fd <= 9:
            return logging.StreamHandler(os.fdopen(fd, "w", buffering=1))
        return None
    if not os.path.isabs(value):
        return None
    if os.path.isdir(value):
        value = os.path.join(value, f"trace.{os.getpid()}")
    return logging.FileHandler(value, mode="a")


def default_logging_config() -> None:
    """Set up the default gitpeek loggers.

    GIT_TRACE takes precedence; without it, warnings and errors go to stderr
    as bare messages.
    """
    remove_null_handler()
    trace_value = os.environ.get("GIT_TRACE", "")
    try:
        handler = _trace_handler(trace_value)
    except OSError as exc:
        handler = None
        trace_error: OSError | None = exc
    else:
        trace_error = None

    if handler is None:
        logging.basicConfig(level=logging.INFO, stream=sys.stderr, format="%(message)s")
    else:
        handler.setFormatter(logging.Formatter(_TRACE_FORMAT))
        logging.basicConfig(level=logging.DEBUG, handlers=[handler])

    if trace_error is not None:
        getLogger(__name__).warning(
            "Failed to open GIT_TRACE target %s: %s", trace_value, trace_error
        )


def remove_null_handler() -> None:
    """Remove the null handler from the gitpeek logger.

    Generally applications that want to use logging should call this first.
    """
    _GITPEEK_LOGGER.removeHandler(_NULL_HANDLER)
