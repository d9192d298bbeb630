# errors.py -- errors for gitpeek
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

"""gitpeek-related exception classes and utility functions."""

__all__ = [
    "ApplyDeltaError",
    "ChecksumMismatch",
    "ConfigFormatError",
    "DeltaChainTooDeep",
    "FileFormatException",
    "HeadNotFound",
    "NotBlobError",
    "NotCommitError",
    "NotGitRepository",
    "NotTreeError",
    "ObjectFormatException",
    "ObjectMissing",
    "UnsupportedExtension",
    "UnsupportedPackIndexVersion",
    "UnsupportedVersion",
    "WrongObjectException",
]

import binascii


def _format_checksum(value: bytes | str | int) -> str:
    if isinstance(value, int):
        return f"{value:08x}"
    if isinstance(value, bytes) and len(value) == 40:
        return value.decode("ascii")
    if isinstance(value, bytes):
        return binascii.hexlify(value).decode("ascii")
    return value


class ChecksumMismatch(Exception):
    """A checksum didn't match the expected contents."""

    def __init__(
        self,
        expected: bytes | str | int,
        got: bytes | str | int,
        extra: str | None = None,
    ) -> None:
        """Initialize a ChecksumMismatch exception.

        Args:
            expected: The expected checksum value (binary SHA, hex string or
                CRC32 integer).
            got: The actual checksum value.
            extra: Optional additional error information.
        """
        self.expected = _format_checksum(expected)
        self.got = _format_checksum(got)
        self.extra = extra
        message = f"Checksum mismatch: Expected {self.expected}, got {self.got}"
        if self.extra is not None:
            message += f"; {extra}"
        Exception.__init__(self, message)


class WrongObjectException(Exception):
    """Baseclass for all the _ is not a _ exceptions on objects.

    Do not instantiate directly.

    Subclasses should define a type_name attribute that indicates what
    was expected if they were raised.
    """

    type_name: str

    def __init__(self, sha: bytes, *args: object, **kwargs: object) -> None:
        """Initialize a WrongObjectException.

        Args:
            sha: The hex SHA of the object that was not of the expected type.
            *args: Additional positional arguments.
            **kwargs: Additional keyword arguments.
        """
        self.sha = sha
        Exception.__init__(self, f"{sha.decode('ascii')} is not a {self.type_name}")


class NotCommitError(WrongObjectException):
    """Indicates that the sha requested does not point to a commit."""

    type_name = "commit"


class NotTreeError(WrongObjectException):
    """Indicates that the sha requested does not point to a tree."""

    type_name = "tree"


class NotBlobError(WrongObjectException):
    """Indicates that the sha requested does not point to a blob."""

    type_name = "blob"


class ObjectMissing(KeyError):
    """Indicates that a requested object is in none of the object sources."""

    def __init__(self, sha: bytes, *args: object, **kwargs: object) -> None:
        """Initialize an ObjectMissing exception.

        Args:
            sha: The hex SHA of the missing object.
            *args: Additional positional arguments.
            **kwargs: Additional keyword arguments.
        """
        self.sha = sha
        KeyError.__init__(self, sha)

    def __str__(self) -> str:
        """Return a readable message rather than the quoted key."""
        return f"{self.sha.decode('ascii')} is not in the object store"


class ApplyDeltaError(Exception):
    """Indicates that applying a delta failed."""

    def __init__(self, *args: object, **kwargs: object) -> None:
        """Initialize an ApplyDeltaError.

        Args:
            *args: Error message and additional positional arguments.
            **kwargs: Additional keyword arguments.
        """
        Exception.__init__(self, *args, **kwargs)


class DeltaChainTooDeep(Exception):
    """A delta chain was longer than the configured maximum."""

    def __init__(self, sha: bytes, depth: int) -> None:
        """Initialize a DeltaChainTooDeep exception.

        Args:
            sha: The hex SHA of the object whose chain was being resolved.
            depth: The maximum depth that was exceeded.
        """
        self.sha = sha
        self.depth = depth
        Exception.__init__(
            self,
            f"delta chain for {sha.decode('ascii')} exceeds maximum depth {depth}",
        )


class NotGitRepository(Exception):
    """Indicates that no Git repository was found."""

    def __init__(self, *args: object, **kwargs: object) -> None:
        """Initialize a NotGitRepository exception.

        Args:
            *args: Error message and additional positional arguments.
            **kwargs: Additional keyword arguments.
        """
        Exception.__init__(self, *args, **kwargs)


class HeadNotFound(Exception):
    """HEAD could not be resolved to an object id."""

    def __init__(self, path: str, reason: str) -> None:
        """Initialize a HeadNotFound exception.

        Args:
            path: Path of the file that could not be used.
            reason: Why it could not be used.
        """
        self.path = path
        self.reason = reason
        Exception.__init__(self, f"unable to resolve HEAD: {path}: {reason}")


class UnsupportedPackIndexVersion(Exception):
    """Indicates a pack index with a version this reader does not handle."""

    def __init__(self, version: int, path: str | None = None) -> None:
        """Initialize an UnsupportedPackIndexVersion exception.

        Args:
            version: The version found in (or implied by) the index file.
            path: Optional path of the index file.
        """
        self.version = version
        self.path = path
        message = f"Unsupported pack index version {version}"
        if path is not None:
            message += f" in {path}"
        Exception.__init__(self, message)


class UnsupportedVersion(Exception):
    """Unsupported repository format version."""

    def __init__(self, version: int) -> None:
        """Initialize an UnsupportedVersion exception.

        Args:
            version: The unsupported repository format version
        """
        self.version = version
        Exception.__init__(self, f"Unsupported repository format version {version}")


class UnsupportedExtension(Exception):
    """Unsupported repository extension."""

    def __init__(self, extension: str) -> None:
        """Initialize an UnsupportedExtension exception.

        Args:
            extension: The unsupported repository extension
        """
        self.extension = extension
        Exception.__init__(self, f"Unsupported repository extension {extension}")


class FileFormatException(Exception):
    """Base class for exceptions relating to reading git file formats."""


class ConfigFormatError(FileFormatException, ValueError):
    """A git config file or one of its values could not be parsed."""


class ObjectFormatException(FileFormatException):
    """Indicates an error parsing an object or a pack structure."""
