# objects.py -- Access to base git objects
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

"""Access to base git objects."""

__all__ = [
    "BLOB",
    "COMMIT",
    "OBJECT_TYPE_NAMES",
    "OBJECT_TYPE_NUMS",
    "S_IFGITLINK",
    "S_ISGITLINK",
    "TAG",
    "TREE",
    "ObjectID",
    "RawObjectID",
    "StoredObject",
    "TreeEntry",
    "as_hexsha",
    "decode_loose_object",
    "hex_to_filename",
    "hex_to_sha",
    "object_header",
    "parse_commit_tree",
    "parse_tree",
    "sha_to_hex",
    "valid_hexsha",
]

import binascii
import os
import posixpath
import stat
from collections.abc import Iterator
from typing import NamedTuple, NewType

from .errors import ObjectFormatException

# Hex (40 ASCII bytes) and binary (20 bytes) forms of an object name.
ObjectID = NewType("ObjectID", bytes)
RawObjectID = NewType("RawObjectID", bytes)

HEX_LENGTH = 40
OID_LENGTH = 20

COMMIT = b"commit"
TREE = b"tree"
BLOB = b"blob"
TAG = b"tag"

# Type numbers as used in pack entry headers.
OBJECT_TYPE_NAMES = {1: COMMIT, 2: TREE, 3: BLOB, 4: TAG}
OBJECT_TYPE_NUMS = {name: num for (num, name) in OBJECT_TYPE_NAMES.items()}

S_IFGITLINK = 0o160000


def S_ISGITLINK(m: int) -> bool:
    """Check if a mode indicates a submodule.

    Args:
      m: Mode to check
    Returns: a ``boolean``
    """
    return stat.S_IFMT(m) == S_IFGITLINK


def sha_to_hex(sha: bytes) -> ObjectID:
    """Takes a string and returns the hex of the sha within."""
    hexsha = binascii.hexlify(sha)
    if len(hexsha) != HEX_LENGTH:
        raise ValueError(f"Incorrect length of sha string: {hexsha!r}")
    return ObjectID(hexsha)


def hex_to_sha(hex: bytes | str) -> RawObjectID:
    """Takes a hex sha and returns a binary sha."""
    if len(hex) != HEX_LENGTH:
        raise ValueError(f"Incorrect length of hexsha: {hex!r}")
    try:
        return RawObjectID(binascii.unhexlify(hex))
    except (TypeError, binascii.Error) as exc:
        if not isinstance(hex, bytes):
            raise
        raise ValueError(exc.args[0]) from exc


def valid_hexsha(hex: bytes | str) -> bool:
    """Check whether a string is a full hex object name."""
    if len(hex) != HEX_LENGTH:
        return False
    try:
        binascii.unhexlify(hex)
    except (TypeError, binascii.Error):
        return False
    else:
        return True


def as_hexsha(sha: bytes | str) -> ObjectID:
    """Normalise an object name to its lowercase hex form.

    Accepts a 20-byte binary name, or a 40-character hex name given as
    ``bytes`` or ``str``.
    """
    if isinstance(sha, str):
        sha = sha.encode("ascii")
    if len(sha) == OID_LENGTH:
        return sha_to_hex(sha)
    if valid_hexsha(sha):
        return ObjectID(sha.lower())
    raise ValueError(f"Invalid object name {sha!r}")


def hex_to_filename(path: str, hex: bytes | str) -> str:
    """Takes a hex sha and returns its filename relative to the given path."""
    if not isinstance(hex, str):
        hex = hex.decode("ascii")
    # The first byte of the sha is the directory name
    directory = hex[:2]
    file = hex[2:]
    return os.path.join(path, directory, file)


def object_header(type_name: bytes, length: int) -> bytes:
    """Return an object header for the given type name and content length."""
    return type_name + b" " + str(length).encode("ascii") + b"\0"


class StoredObject(NamedTuple):
    """A fully reconstructed object: its kind and its body."""

    type_name: bytes
    data: bytes

    @property
    def type_num(self) -> int:
        """Return the pack type number for this object's kind."""
        return OBJECT_TYPE_NUMS[self.type_name]

    def raw_length(self) -> int:
        """Return the length of the object body."""
        return len(self.data)

    def as_raw_string(self) -> bytes:
        """Return the object as stored loose, before compression."""
        return object_header(self.type_name, len(self.data)) + self.data


def decode_loose_object(text: bytes) -> StoredObject:
    """Parse the inflated contents of a loose object.

    Args:
      text: ``b"<kind> <length>\\0<body>"``
    Returns: A StoredObject
    Raises:
      ObjectFormatException: if the header is malformed or the declared
        length does not match the body
    """
    header_end = text.find(b"\0")
    if header_end == -1:
        raise ObjectFormatException("loose object header is not terminated")
    header = text[:header_end]
    try:
        type_name, size_text = header.split(b" ", 1)
    except ValueError as exc:
        raise ObjectFormatException(f"invalid object header {header!r}") from exc
    if type_name not in OBJECT_TYPE_NUMS:
        raise ObjectFormatException(f"{type_name!r} is not a known object type")
    if not size_text.isdigit() or (size_text[:1] == b"0" and len(size_text) > 1):
        raise ObjectFormatException(f"Size {size_text!r} is not in canonical format")
    data = text[header_end + 1 :]
    if int(size_text) != len(data):
        raise ObjectFormatException(
            f"object length mismatch: header says {int(size_text)}, "
            f"body has {len(data)} bytes"
        )
    return StoredObject(type_name, data)


class TreeEntry(NamedTuple):
    """Named tuple encapsulating a single tree entry."""

    path: bytes
    mode: int
    sha: ObjectID

    def in_path(self, path: bytes) -> "TreeEntry":
        """Return a copy of this entry with the given path prepended."""
        return TreeEntry(posixpath.join(path, self.path), self.mode, self.sha)


def parse_tree(text: bytes) -> Iterator[tuple[bytes, int, ObjectID]]:
    """Parse a tree text.

    Args:
      text: Serialized text to parse
    Returns: iterator of tuples of (name, mode, sha)
    Raises:
      ObjectFormatException: if the object was malformed in some way
    """
    count = 0
    length = len(text)
    while count < length:
        mode_end = text.find(b" ", count)
        if mode_end == -1:
            raise ObjectFormatException("tree entry mode is not terminated")
        mode_text = text[count:mode_end]
        try:
            mode = int(mode_text, 8)
        except ValueError as exc:
            raise ObjectFormatException(f"Invalid mode {mode_text!r}") from exc
        name_end = text.find(b"\0", mode_end)
        if name_end == -1:
            raise ObjectFormatException("tree entry name is not terminated")
        name = text[mode_end + 1 : name_end]
        if not name:
            raise ObjectFormatException("empty name in tree entry")
        count = name_end + 1 + OID_LENGTH
        if count > length:
            raise ObjectFormatException(f"truncated object id for {name!r}")
        yield (name, mode, sha_to_hex(text[name_end + 1 : count]))


def parse_commit_tree(text: bytes) -> ObjectID:
    """Extract the id of the root tree from a commit body.

    Only the header block (up to the first blank line) is examined.
    """
    for line in text.split(b"\n"):
        if not line:
            break
        key, _, value = line.partition(b" ")
        if key == b"tree":
            if not valid_hexsha(value):
                raise ObjectFormatException(f"Invalid tree id {value!r}")
            return ObjectID(value.lower())
    raise ObjectFormatException("commit has no tree header")
