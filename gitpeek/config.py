# config.py - Reading of git config files
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

"""Reading of git config files.

Section and variable names are matched case-insensitively, subsection names
exactly. When a variable is set more than once the last value wins.

Includes are not followed.
"""

__all__ = [
    "ConfigFile",
]

import os
import sys
from collections.abc import Iterator
from typing import IO

from .errors import ConfigFormatError

Section = tuple[bytes, ...]
SectionLike = bytes | str | tuple[bytes | str, ...]
NameLike = bytes | str


_ESCAPE_TABLE = {
    ord(b"\\"): ord(b"\\"),
    ord(b'"'): ord(b'"'),
    ord(b"n"): ord(b"\n"),
    ord(b"t"): ord(b"\t"),
    ord(b"b"): ord(b"\b"),
}
_COMMENT_CHARS = [ord(b"#"), ord(b";")]
_WHITESPACE_CHARS = [ord(b"\t"), ord(b" ")]

_INT_SUFFIXES = {b"k": 1024, b"m": 1024**2, b"g": 1024**3}


def _parse_string(value: bytes) -> bytes:
    value_array = bytearray(value.strip())
    ret = bytearray()
    whitespace = bytearray()
    in_quotes = False
    i = 0
    while i < len(value_array):
        c = value_array[i]
        if c == ord(b"\\"):
            i += 1
            if whitespace:
                ret.extend(whitespace)
                whitespace = bytearray()
            if i >= len(value_array):
                # Backslash at end of string - treat as literal backslash
                ret.append(ord(b"\\"))
            elif value_array[i] in _ESCAPE_TABLE:
                ret.append(_ESCAPE_TABLE[value_array[i]])
            else:
                # Unknown escape sequence - keep the backslash, reprocess
                # the character after it
                ret.append(ord(b"\\"))
                i -= 1
        elif c == ord(b'"'):
            in_quotes = not in_quotes
        elif c in _COMMENT_CHARS and not in_quotes:
            # the rest of the line is a comment
            break
        elif c in _WHITESPACE_CHARS:
            whitespace.append(c)
        else:
            if whitespace:
                ret.extend(whitespace)
                whitespace = bytearray()
            ret.append(c)
        i += 1

    if in_quotes:
        raise ConfigFormatError("missing end quote")

    return bytes(ret)


def _check_variable_name(name: bytes) -> bool:
    for i in range(len(name)):
        c = name[i : i + 1]
        if not c.isalnum() and c != b"-":
            return False
    return True


def _check_section_name(name: bytes) -> bool:
    for i in range(len(name)):
        c = name[i : i + 1]
        if not c.isalnum() and c not in (b"-", b"."):
            return False
    return True


def _strip_comments(line: bytes) -> bytes:
    quote = ord(b'"')
    string_open = False
    for i, character in enumerate(bytearray(line)):
        # Comment characters outside balanced quotes denote comment start
        if character == quote:
            string_open = not string_open
        elif not string_open and character in _COMMENT_CHARS:
            return line[:i]
    return line


def _is_line_continuation(value: bytes) -> bool:
    """Check if a value ends with an unescaped line continuation backslash."""
    if value.endswith(b"\\\r\n"):
        content = value[:-2]
    elif value.endswith(b"\\\n"):
        content = value[:-1]
    else:
        return False

    backslash_count = len(content) - len(content.rstrip(b"\\"))
    # An even number of backslashes are all escaped
    return backslash_count % 2 == 1


def _strip_continuation(value: bytes) -> bytes:
    if value.endswith(b"\\\r\n"):
        return value[:-3]
    return value[:-2]


def _parse_section_header_line(line: bytes) -> tuple[Section, bytes]:
    # Parse section header ("[bla]")
    line = _strip_comments(line).rstrip()
    in_quotes = False
    escaped = False
    for i, c in enumerate(line):
        if escaped:
            escaped = False
            continue
        if c == ord(b'"'):
            in_quotes = not in_quotes
        if c == ord(b"\\"):
            escaped = True
        if c == ord(b"]") and not in_quotes:
            last = i
            break
    else:
        raise ConfigFormatError("expected trailing ]")
    pts = line[1:last].split(b" ", 1)
    line = line[last + 1 :]
    if not _check_section_name(pts[0]):
        raise ConfigFormatError(f"invalid section name {pts[0]!r}")
    section: Section
    if len(pts) == 2:
        if pts[1][:1] == b'"' and pts[1][-1:] == b'"':
            pts[1] = pts[1][1:-1].replace(b'\\"', b'"').replace(b"\\\\", b"\\")
        else:
            raise ConfigFormatError(f"Invalid subsection {pts[1]!r}")
        section = (pts[0].lower(), pts[1])
    else:
        # Deprecated [section.subsection] syntax
        pts = pts[0].split(b".", 1)
        if len(pts) == 2:
            section = (pts[0].lower(), pts[1])
        else:
            section = (pts[0].lower(),)
    return section, line


class ConfigFile:
    """A Git configuration file, like .git/config."""

    def __init__(self, encoding: str | None = None) -> None:
        """Initialize an empty ConfigFile.

        Args:
          encoding: Encoding used for ``str`` section and variable names
        """
        if encoding is None:
            encoding = sys.getdefaultencoding()
        self.encoding = encoding
        self.path: str | None = None
        self._values: dict[Section, dict[bytes, bytes]] = {}

    def __repr__(self) -> str:
        """Return string representation of ConfigFile."""
        return f"{self.__class__.__name__}({self._values!r})"

    @classmethod
    def from_file(cls, f: IO[bytes]) -> "ConfigFile":
        """Read configuration from a file-like object.

        Raises:
          ConfigFormatError: if the file is not valid git config syntax
        """
        ret = cls()
        section: Section | None = None
        setting: bytes | None = None
        continuation = b""
        for lineno, line in enumerate(f.readlines()):
            if lineno == 0 and line.startswith(b"\xef\xbb\xbf"):
                line = line[3:]
            if setting is not None:
                # continuation line
                if _is_line_continuation(line):
                    continuation += _strip_continuation(line)
                    continue
                assert section is not None
                ret._values[section][setting] = _parse_string(continuation + line)
                setting = None
                continue
            line = line.lstrip()
            if line[:1] == b"[":
                section, line = _parse_section_header_line(line)
                ret._values.setdefault(section, {})
            if _strip_comments(line).strip() == b"":
                continue
            if section is None:
                raise ConfigFormatError(f"setting {line!r} without section")
            try:
                name, value = line.split(b"=", 1)
            except ValueError:
                name = line
                value = b"true"
            name = name.strip().lower()
            if not _check_variable_name(name):
                raise ConfigFormatError(f"invalid variable name {name!r}")
            if _is_line_continuation(value):
                setting = name
                continuation = _strip_continuation(value)
            else:
                ret._values[section][name] = _parse_string(value)
        if setting is not None and section is not None:
            ret._values[section][setting] = _parse_string(continuation)
        return ret

    @classmethod
    def from_path(cls, path: str | os.PathLike[str]) -> "ConfigFile":
        """Read configuration from a file on disk."""
        abs_path = os.fspath(path)
        with open(abs_path, "rb") as f:
            ret = cls.from_file(f)
        ret.path = abs_path
        return ret

    def _check_section_and_name(
        self, section: SectionLike, name: NameLike
    ) -> tuple[Section, bytes]:
        if not isinstance(section, tuple):
            section = (section,)

        checked_section = tuple(
            subsection.encode(self.encoding)
            if not isinstance(subsection, bytes)
            else subsection
            for subsection in section
        )
        checked_section = (checked_section[0].lower(), *checked_section[1:])

        if not isinstance(name, bytes):
            name = name.encode(self.encoding)

        return checked_section, name.lower()

    def get(self, section: SectionLike, name: NameLike) -> bytes:
        """Retrieve the contents of a configuration setting.

        Args:
          section: Section name, or tuple with section name and optional
            subsection name
          name: Variable name
        Returns:
          Contents of the setting
        Raises:
          KeyError: if the value is not set
        """
        section, name = self._check_section_and_name(section, name)

        if len(section) > 1:
            try:
                return self._values[section][name]
            except KeyError:
                pass

        return self._values[(section[0],)][name]

    def get_boolean(
        self, section: SectionLike, name: NameLike, default: bool | None = None
    ) -> bool | None:
        """Retrieve a configuration setting as boolean.

        Args:
          section: Section name, or tuple with section name and optional
            subsection name
          name: Variable name
          default: Default value if setting is not found

        Returns:
          Contents of the setting
        """
        try:
            value = self.get(section, name)
        except KeyError:
            return default
        if value.lower() in (b"true", b"yes", b"on", b"1"):
            return True
        elif value.lower() in (b"false", b"no", b"off", b"0", b""):
            return False
        raise ConfigFormatError(f"not a valid boolean string: {value!r}")

    def get_int(
        self, section: SectionLike, name: NameLike, default: int | None = None
    ) -> int | None:
        """Retrieve a configuration setting as an integer.

        The ``k``, ``m`` and ``g`` suffixes scale by powers of 1024.
        """
        try:
            value = self.get(section, name)
        except KeyError:
            return default
        multiplier = _INT_SUFFIXES.get(value[-1:].lower(), 1)
        if multiplier != 1:
            value = value[:-1]
        try:
            return int(value) * multiplier
        except ValueError as exc:
            raise ConfigFormatError(f"not a valid integer: {value!r}") from exc

    def items(self, section: SectionLike) -> Iterator[tuple[bytes, bytes]]:
        """Iterate over the (name, value) pairs of a section.

        Names are returned lowercased.
        """
        section, _ = self._check_section_and_name(section, b"")
        return iter(self._values.get(section, {}).items())

    def sections(self) -> list[Section]:
        """Return the sections present, in file order."""
        return list(self._values)

    def has_section(self, name: Section) -> bool:
        """Check if a specified section exists."""
        return name in self._values
