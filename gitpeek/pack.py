# pack.py -- For dealing with packed git objects.
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

"""Classes for dealing with packed git objects.

A pack is a compact representation of a bunch of objects, stored
using deltas where possible.

They have two parts, the pack file, which stores the data, and an index
that tells you where the data is.

To find an object you look in all of the index files 'til you find a
match for the object name. You then use the pointer got from this as
a pointer in to the corresponding packfile.

Entries that are deltas only carry the instructions to rebuild the object
from a base; following the base references is the job of the object store,
since a reference delta may point outside the pack.
"""

__all__ = [
    "DELTA_TYPES",
    "OFS_DELTA",
    "REF_DELTA",
    "Pack",
    "PackData",
    "PackIndex",
    "PackIndexEntry",
    "UnpackedObject",
    "apply_delta",
    "decode_ofs_delta_distance",
    "load_pack_index",
    "load_pack_index_file",
    "read_pack_header",
    "read_zlib_chunks",
    "take_msb_bytes",
    "unpack_object",
    "unpack_object_header",
]

import binascii
import mmap
import os
import struct
import zlib
from collections.abc import Callable, Iterator
from hashlib import sha1
from io import UnsupportedOperation
from os import SEEK_END
from struct import unpack_from
from types import TracebackType
from typing import IO, Any

from .errors import (
    ApplyDeltaError,
    ChecksumMismatch,
    ObjectFormatException,
    UnsupportedPackIndexVersion,
)
from .log_utils import getLogger
from .objects import (
    HEX_LENGTH,
    OID_LENGTH,
    ObjectID,
    RawObjectID,
    hex_to_sha,
    sha_to_hex,
)
from .varint import decode_varint

logger = getLogger(__name__)

OFS_DELTA = 6
REF_DELTA = 7

DELTA_TYPES = (OFS_DELTA, REF_DELTA)

PACK_INDEX_MAGIC = b"\377tOc"

PACK_HEADER_SIZE = 12

_ZLIB_BUFSIZE = 65536


def take_msb_bytes(
    read: Callable[[int], bytes], crc32: int | None = None
) -> tuple[list[int], int | None]:
    """Read bytes marked with most significant bit.

    Args:
      read: Read function
      crc32: Optional CRC32 checksum to update

    Returns:
      Tuple of (list of bytes read, updated CRC32 or None)
    """
    ret: list[int] = []
    while len(ret) == 0 or ret[-1] & 0x80:
        b = read(1)
        if not b:
            raise ObjectFormatException("unexpected end of data in pack entry header")
        if crc32 is not None:
            crc32 = binascii.crc32(b, crc32)
        ret.append(b[0])
    return ret, crc32


def unpack_object_header(
    read: Callable[[int], bytes], crc32: int | None = None
) -> tuple[int, int, int | None]:
    """Read the type and size at the start of a pack entry.

    The first byte holds a continuation bit, the type in bits 4-6 and the
    low four bits of the size; every following byte adds seven more bits of
    size, least significant group first.

    Returns: Tuple of (type number, size, updated CRC32 or None)
    """
    raw, crc32 = take_msb_bytes(read, crc32=crc32)
    type_num = (raw[0] >> 4) & 0x07
    size = raw[0] & 0x0F
    for i, byte in enumerate(raw[1:]):
        size += (byte & 0x7F) << ((i * 7) + 4)
    return type_num, size, crc32


def decode_ofs_delta_distance(raw: list[int]) -> int:
    """Decode the backward distance of an offset delta.

    Most significant group comes first, and every continuation step adds one
    before shifting, so that no two encodings denote the same distance.
    """
    distance = raw[0] & 0x7F
    for byte in raw[1:]:
        distance += 1
        distance <<= 7
        distance += byte & 0x7F
    return distance


class UnpackedObject:
    """Class encapsulating an object unpacked from a pack file.

    These objects should only be created from within unpack_object. For delta
    entries ``decomp_chunks`` holds the delta instructions and ``delta_base``
    the backward distance (offset deltas) or binary base SHA (ref deltas).
    """

    __slots__ = [
        "crc32",  # CRC32 of the raw entry, if computed.
        "decomp_chunks",  # Decompressed object chunks.
        "decomp_len",  # Length announced by the entry header.
        "delta_base",  # Delta base distance or SHA.
        "offset",  # Offset in its pack.
        "pack_type_num",  # Type of this object in the pack (may be a delta).
    ]

    delta_base: None | bytes | int
    decomp_chunks: list[bytes]
    decomp_len: int
    crc32: int | None
    offset: int | None
    pack_type_num: int

    def __init__(
        self,
        pack_type_num: int,
        *,
        delta_base: None | bytes | int = None,
        decomp_len: int = 0,
        crc32: int | None = None,
        offset: int | None = None,
    ) -> None:
        """Initialize an UnpackedObject.

        Args:
            pack_type_num: Type number of this object in the pack
            delta_base: Delta base (distance or SHA) if this is a delta object
            decomp_len: Decompressed length announced by the entry header
            crc32: CRC32 checksum
            offset: Offset in the pack file
        """
        self.offset = offset
        self.pack_type_num = pack_type_num
        self.delta_base = delta_base
        self.decomp_chunks = []
        self.decomp_len = decomp_len
        self.crc32 = crc32

    @property
    def data(self) -> bytes:
        """Return the decompressed entry contents."""
        return b"".join(self.decomp_chunks)

    def __eq__(self, other: object) -> bool:
        """Check equality with another UnpackedObject."""
        if not isinstance(other, UnpackedObject):
            return False
        for slot in self.__slots__:
            if getattr(self, slot) != getattr(other, slot):
                return False
        return True

    def __repr__(self) -> str:
        """Return string representation of this UnpackedObject."""
        data = [f"{s}={getattr(self, s)!r}" for s in self.__slots__]
        return "{}({})".format(self.__class__.__name__, ", ".join(data))


def read_zlib_chunks(
    read_some: Callable[[int], bytes],
    unpacked: UnpackedObject,
    buffer_size: int = _ZLIB_BUFSIZE,
) -> bytes:
    """Read zlib data from a buffer.

    Args:
      read_some: Read function that returns at least one byte, but may
        return less than the requested size.
      unpacked: An UnpackedObject to write result data to. If its crc32
        attr is not None, the CRC32 of the compressed bytes will be computed
        using this starting CRC32.
      buffer_size: Size of the read buffer.
    Returns: Leftover unused data from the decompression.

    Raises:
      zlib.error: if a decompression error occurred.
    """
    decomp_obj = zlib.decompressobj()

    decomp_chunks = unpacked.decomp_chunks
    crc32 = unpacked.crc32

    while True:
        add = read_some(buffer_size)
        if not add:
            raise zlib.error("EOF before end of zlib stream")
        decomp = decomp_obj.decompress(add)
        decomp_chunks.append(decomp)
        if decomp_obj.eof:
            unused = decomp_obj.unused_data
            if crc32 is not None:
                crc32 = binascii.crc32(add[: len(add) - len(unused)], crc32)
            break
        if crc32 is not None:
            crc32 = binascii.crc32(add, crc32)
    if crc32 is not None:
        crc32 &= 0xFFFFFFFF

    unpacked.crc32 = crc32
    return unused


def read_pack_header(read: Callable[[int], bytes]) -> tuple[int, int]:
    """Read the header of a pack file.

    Args:
      read: Read function
    Returns: Tuple of (pack version, number of objects).
    """
    header = read(PACK_HEADER_SIZE)
    if len(header) < PACK_HEADER_SIZE:
        raise ObjectFormatException("file too short to contain pack")
    if header[:4] != b"PACK":
        raise ObjectFormatException(f"Invalid pack header {header!r}")
    (version,) = unpack_from(b">L", header, 4)
    if version not in (2, 3):
        raise ObjectFormatException(f"Unsupported pack version {version}")
    (num_objects,) = unpack_from(b">L", header, 8)
    return (version, num_objects)


def unpack_object(
    read_all: Callable[[int], bytes],
    read_some: Callable[[int], bytes] | None = None,
    compute_crc32: bool = False,
    zlib_bufsize: int = _ZLIB_BUFSIZE,
) -> tuple[UnpackedObject, bytes]:
    """Unpack a Git object.

    Args:
      read_all: Read function that blocks until the number of requested
        bytes are read.
      read_some: Read function that returns at least one byte, but may not
        return the number of bytes requested.
      compute_crc32: If True, compute the CRC32 of the raw entry (header,
        delta base and compressed data). If False, the returned CRC32 will
        be None.
      zlib_bufsize: An optional buffer size for zlib operations.
    Returns: A tuple of (unpacked, unused), where unused is the unused data
        leftover from decompression.
    """
    if read_some is None:
        read_some = read_all
    crc32: int | None = 0 if compute_crc32 else None

    type_num, size, crc32 = unpack_object_header(read_all, crc32=crc32)

    delta_base: int | bytes | None
    if type_num == OFS_DELTA:
        raw, crc32 = take_msb_bytes(read_all, crc32=crc32)
        delta_base = decode_ofs_delta_distance(raw)
    elif type_num == REF_DELTA:
        delta_base = read_all(OID_LENGTH)
        if len(delta_base) != OID_LENGTH:
            raise ObjectFormatException("truncated delta base in pack entry")
        if crc32 is not None:
            crc32 = binascii.crc32(delta_base, crc32)
    elif type_num in (1, 2, 3, 4):
        delta_base = None
    else:
        raise ObjectFormatException(f"Invalid pack entry type {type_num}")

    unpacked = UnpackedObject(
        type_num,
        delta_base=delta_base,
        decomp_len=size,
        crc32=crc32,
    )
    unused = read_zlib_chunks(read_some, unpacked, buffer_size=zlib_bufsize)
    return unpacked, unused


def _decode_copy_operation(cmd: int, delta: bytes, index: int) -> tuple[int, int, int]:
    """Decode the operands of a delta copy instruction.

    Bits 0-3 of ``cmd`` say which of four little-endian offset bytes follow,
    bits 4-6 which of three length bytes follow. A length of zero means
    0x10000.

    Returns: Tuple of (copy offset, copy length, new index)
    """
    cp_off = 0
    for i in range(4):
        if cmd & (1 << i):
            if index >= len(delta):
                raise ApplyDeltaError("copy instruction runs past end of delta")
            cp_off |= delta[index] << (i * 8)
            index += 1
    cp_size = 0
    for i in range(3):
        if cmd & (1 << (4 + i)):
            if index >= len(delta):
                raise ApplyDeltaError("copy instruction runs past end of delta")
            cp_size |= delta[index] << (i * 8)
            index += 1
    if cp_size == 0:
        cp_size = 0x10000
    return cp_off, cp_size, index


def apply_delta(src_buf: bytes, delta: bytes) -> bytes:
    """Based on the similar function in git's patch-delta.c.

    Args:
      src_buf: Source buffer
      delta: Delta instructions
    Returns: The reconstructed target buffer
    Raises:
      ApplyDeltaError: if the delta is corrupt or does not fit the source
    """
    delta_length = len(delta)
    try:
        # The source size is not needed; copies are bounded by src_buf.
        _, index = decode_varint(delta, 0)
        dest_size, index = decode_varint(delta, index)
    except ValueError as exc:
        raise ApplyDeltaError(f"truncated delta header: {exc}") from exc
    out = bytearray(dest_size)
    pos = 0
    while index < delta_length:
        cmd = delta[index]
        index += 1
        if cmd & 0x80:
            cp_off, cp_size, index = _decode_copy_operation(cmd, delta, index)
            if cp_off + cp_size > len(src_buf):
                raise ApplyDeltaError(
                    f"copy of {cp_size} bytes at {cp_off} exceeds source size "
                    f"{len(src_buf)}"
                )
            if pos + cp_size > dest_size:
                raise ApplyDeltaError("copy exceeds declared target size")
            out[pos : pos + cp_size] = src_buf[cp_off : cp_off + cp_size]
            pos += cp_size
        elif cmd != 0:
            if index + cmd > delta_length:
                raise ApplyDeltaError("insert runs past end of delta")
            if pos + cmd > dest_size:
                raise ApplyDeltaError("insert exceeds declared target size")
            out[pos : pos + cmd] = delta[index : index + cmd]
            index += cmd
            pos += cmd
        else:
            raise ApplyDeltaError("Invalid opcode 0")

    if pos != dest_size:
        raise ApplyDeltaError(f"dest size incorrect: {pos} != {dest_size}")

    return bytes(out)


def _load_file_contents(f: IO[bytes], size: int | None = None) -> tuple[Any, int]:
    """Load contents from a file, preferring mmap when possible.

    Args:
      f: File-like object to load
      size: Expected size, or None to determine from file
    Returns: Tuple of (contents, size)
    """
    try:
        fd = f.fileno()
    except (UnsupportedOperation, AttributeError):
        fd = None
    if fd is not None:
        if size is None:
            size = os.fstat(fd).st_size
        try:
            contents = mmap.mmap(fd, size, access=mmap.ACCESS_READ)
        except (OSError, ValueError):
            # Can't mmap - perhaps a socket, or an empty file
            pass
        else:
            return contents, size
    contents_bytes = f.read()
    size = len(contents_bytes)
    return contents_bytes, size


def load_pack_index(path: str | os.PathLike[str]) -> "PackIndex":
    """Load an index file by path.

    Args:
      path: Path to the index file
    Returns: A PackIndex loaded from the given path
    """
    with open(path, "rb") as f:
        return load_pack_index_file(path, f)


def load_pack_index_file(path: str | os.PathLike[str], f: IO[bytes]) -> "PackIndex":
    """Load an index file from a file-like object.

    Args:
      path: Path for the index file
      f: File-like object
    Returns: A PackIndex loaded from the given file
    Raises:
      UnsupportedPackIndexVersion: for anything but a version 2 index
    """
    contents, size = _load_file_contents(f)
    try:
        return PackIndex(path, contents, size)
    finally:
        close_fn = getattr(contents, "close", None)
        if close_fn is not None:
            close_fn()


PackIndexEntry = tuple[RawObjectID, int, int]


class PackIndex:
    """A version 2 index in to a packfile.

    Given a sha id of an object a pack index can tell you the location in the
    packfile of that object if it has it.

    Layout: magic and version, a 256-entry fan-out table of cumulative counts
    keyed by the first byte of the SHA, the sorted SHAs, their CRC32s, their
    4-byte offsets (high bit set: index into the 8-byte large offset table
    that follows), then the pack checksum and the checksum of the index.

    All entries are read when the index is loaded; lookups are dictionary
    lookups rather than bisections.
    """

    def __init__(
        self, filename: str | os.PathLike[str], contents: Any, size: int | None = None
    ) -> None:
        """Parse a pack index.

        Args:
          filename: Path of the index (used in messages)
          contents: Raw contents of the index file
          size: Size of the contents, if already known
        """
        self._filename = filename
        if size is None:
            size = len(contents)
        self._size = size
        if contents[:4] != PACK_INDEX_MAGIC:
            # Version 1 indexes have no magic.
            raise UnsupportedPackIndexVersion(1, self.path)
        if size < 8:
            raise ObjectFormatException(f"pack index {self.path} is truncated")
        (self.version,) = unpack_from(b">L", contents, 4)
        if self.version != 2:
            raise UnsupportedPackIndexVersion(self.version, self.path)
        self._fan_out_table = self._read_fan_out_table(contents, 8)
        count = self._fan_out_table[-1]
        name_table_offset = 8 + 0x100 * 4
        crc32_table_offset = name_table_offset + OID_LENGTH * count
        offset_table_offset = crc32_table_offset + 4 * count
        large_table_offset = offset_table_offset + 4 * count
        if size < large_table_offset:
            raise ObjectFormatException(f"pack index {self.path} is truncated")

        crc32s = struct.unpack_from(f">{count}L", contents, crc32_table_offset)
        raw_offsets = struct.unpack_from(f">{count}L", contents, offset_table_offset)
        num_large = sum(1 for offset in raw_offsets if offset & (2**31))
        trailer_offset = large_table_offset + 8 * num_large
        if size < trailer_offset:
            raise ObjectFormatException(f"pack index {self.path} is truncated")
        self._entries: dict[RawObjectID, tuple[int, int]] = {}
        self._by_offset: dict[int, tuple[RawObjectID, int]] = {}
        for i in range(count):
            start = name_table_offset + i * OID_LENGTH
            name = RawObjectID(bytes(contents[start : start + OID_LENGTH]))
            offset = raw_offsets[i]
            if offset & (2**31):
                large_index = offset & (2**31 - 1)
                if large_index >= num_large:
                    raise ObjectFormatException(
                        f"large offset index {large_index} out of range in {self.path}"
                    )
                (offset,) = unpack_from(
                    ">Q", contents, large_table_offset + large_index * 8
                )
            self._entries[name] = (offset, crc32s[i])
            self._by_offset[offset] = (name, crc32s[i])
        self._names = sorted(self._entries)
        # A missing or short trailer is only reported by check().
        trailer_end = min(size, trailer_offset + 2 * OID_LENGTH)
        self._pack_checksum = bytes(contents[trailer_offset : trailer_offset + 20])
        self._stored_checksum = bytes(contents[trailer_offset + 20 : trailer_end])
        self._calculated_checksum = sha1(
            contents[: min(trailer_end, trailer_offset + 20)]
        ).digest()
        logger.debug("loaded pack index %s with %d entries", self.path, count)

    @property
    def path(self) -> str:
        """Return the path to this index file."""
        return os.fspath(self._filename)

    @staticmethod
    def _read_fan_out_table(contents: Any, start_offset: int) -> list[int]:
        """Read the fan-out table from the index.

        The fan-out table contains 256 entries mapping first byte values
        to the number of objects with SHA1s less than or equal to that byte.

        Args:
          contents: Raw contents of the index file
          start_offset: Offset in the file where the fan-out table starts
        Returns: List of 256 integers
        """
        if len(contents) < start_offset + 0x100 * 4:
            raise ObjectFormatException("pack index fan-out table is truncated")
        ret = list(struct.unpack_from(">256L", contents, start_offset))
        for previous, current in zip(ret, ret[1:]):
            if current < previous:
                raise ObjectFormatException("pack index fan-out table is not sorted")
        return ret

    def __len__(self) -> int:
        """Return the number of entries in this pack index."""
        return self._fan_out_table[-1]

    def __iter__(self) -> Iterator[ObjectID]:
        """Iterate over the hex SHAs in this pack index, in sorted order."""
        return (sha_to_hex(name) for name in self._names)

    def __contains__(self, sha: object) -> bool:
        """Check whether an object (hex or binary SHA) is in this index."""
        if not isinstance(sha, bytes):
            return False
        try:
            self.object_offset(sha)
        except (KeyError, ValueError):
            return False
        return True

    def iterentries(self) -> Iterator[PackIndexEntry]:
        """Iterate over the entries in this pack index.

        Returns: iterator over tuples with object name, offset in packfile and
            crc32 checksum.
        """
        for name in self._names:
            offset, crc32 = self._entries[name]
            yield (name, offset, crc32)

    def _lookup(self, sha: bytes) -> tuple[int, int]:
        if len(sha) == HEX_LENGTH:
            sha = hex_to_sha(sha)
        return self._entries[RawObjectID(sha)]

    def object_offset(self, sha: ObjectID | RawObjectID) -> int:
        """Return the offset in to the corresponding packfile for the object.

        Raises:
          KeyError: if the pack does not contain the object
        """
        return self._lookup(sha)[0]

    def object_crc32(self, sha: ObjectID | RawObjectID) -> int:
        """Return the CRC32 recorded for an object."""
        return self._lookup(sha)[1]

    def object_sha_at(self, offset: int) -> ObjectID | None:
        """Return the hex SHA of the entry starting at ``offset``, if any."""
        try:
            name, _ = self._by_offset[offset]
        except KeyError:
            return None
        return sha_to_hex(name)

    def crc32_at(self, offset: int) -> int | None:
        """Return the CRC32 of the entry starting at ``offset``, if any."""
        try:
            return self._by_offset[offset][1]
        except KeyError:
            return None

    def get_pack_checksum(self) -> bytes:
        """Return the SHA1 checksum stored for the corresponding packfile.

        Returns: 20-byte binary digest
        """
        return self._pack_checksum

    def get_stored_checksum(self) -> bytes:
        """Return the SHA1 checksum stored for this index.

        Returns: 20-byte binary digest
        """
        return self._stored_checksum

    def calculate_checksum(self) -> bytes:
        """Return the SHA1 checksum over this pack index.

        Returns: This is a 20-byte binary digest
        """
        return self._calculated_checksum

    def check(self) -> None:
        """Check that the stored checksum matches the actual checksum."""
        actual = self.calculate_checksum()
        stored = self.get_stored_checksum()
        if actual != stored:
            raise ChecksumMismatch(stored, actual, extra=self.path)


class PackData:
    """The data contained in a packfile.

    Each entry starts with a variable length header giving its type and
    inflated size, followed by the base reference for deltas and the zlib
    compressed body. Entries are read on demand by offset.
    """

    def __init__(
        self,
        filename: str | os.PathLike[str],
        file: IO[bytes] | None = None,
    ) -> None:
        """Create a PackData object representing the pack in the given filename.

        The file must exist and stay readable until the object is disposed of.
        """
        self._filename = filename
        self._file: IO[bytes]
        if file is None:
            self._file = open(self._filename, "rb")
        else:
            self._file = file
        try:
            (self.version, self._num_objects) = read_pack_header(self._file.read)
        except BaseException:
            self._file.close()
            raise

    @property
    def filename(self) -> str:
        """Get the filename of the pack file."""
        return os.path.basename(os.fspath(self._filename))

    @property
    def path(self) -> str:
        """Get the full path of the pack file."""
        return os.fspath(self._filename)

    def close(self) -> None:
        """Close the underlying pack file."""
        self._file.close()

    def __enter__(self) -> "PackData":
        """Enter context manager."""
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit context manager."""
        self.close()

    def __len__(self) -> int:
        """Returns the number of objects in this pack."""
        return self._num_objects

    def get_stored_checksum(self) -> bytes:
        """Return the expected checksum stored in this pack."""
        self._file.seek(-OID_LENGTH, SEEK_END)
        return self._file.read(OID_LENGTH)

    def get_unpacked_object_at(
        self, offset: int, *, compute_crc32: bool = False
    ) -> UnpackedObject:
        """Given offset in the packfile return a UnpackedObject."""
        if offset < PACK_HEADER_SIZE:
            raise ObjectFormatException(
                f"offset {offset} points into the header of {self.filename}"
            )
        self._file.seek(offset)
        try:
            unpacked, _ = unpack_object(self._file.read, compute_crc32=compute_crc32)
        except zlib.error as exc:
            raise ObjectFormatException(
                f"corrupt entry at offset {offset} in {self.filename}: {exc}"
            ) from exc
        unpacked.offset = offset
        return unpacked


class Pack:
    """A Git pack object: a pack file paired with its index."""

    _data: PackData | None
    _idx: PackIndex | None

    def __init__(
        self, basename: str | os.PathLike[str], *, verify_crc32: bool = True
    ) -> None:
        """Initialize a Pack object.

        Args:
          basename: Base path for pack files (without .pack/.idx extension)
          verify_crc32: Whether to check each entry read against the CRC32
            recorded in the index
        """
        self._basename = os.fspath(basename)
        self._data = None
        self._idx = None
        self._idx_path = self._basename + ".idx"
        self._data_path = self._basename + ".pack"
        self.verify_crc32 = verify_crc32

    @property
    def name(self) -> str:
        """The name of this pack, as used in file names."""
        return os.path.basename(self._basename)

    @property
    def data(self) -> PackData:
        """The pack data object being used."""
        if self._data is None:
            self._data = PackData(self._data_path)
            if self.verify_crc32:
                try:
                    self.check_length_and_checksum()
                except BaseException:
                    self.close()
                    raise
        return self._data

    @property
    def index(self) -> PackIndex:
        """The index being used.

        Note: This may be an in-memory index
        """
        if self._idx is None:
            self._idx = load_pack_index(self._idx_path)
        return self._idx

    def close(self) -> None:
        """Close the pack file."""
        if self._data is not None:
            self._data.close()
            self._data = None

    def __enter__(self) -> "Pack":
        """Enter context manager."""
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit context manager."""
        self.close()

    def __len__(self) -> int:
        """Number of entries in this pack."""
        return len(self.index)

    def __repr__(self) -> str:
        """Return string representation of this pack."""
        return f"{self.__class__.__name__}({self._basename!r})"

    def __iter__(self) -> Iterator[ObjectID]:
        """Iterate over all the sha1s of the objects in this pack."""
        return iter(self.index)

    def __contains__(self, sha1: object) -> bool:
        """Check whether this pack contains a particular SHA1."""
        return sha1 in self.index

    def check_length_and_checksum(self) -> None:
        """Sanity check the length and checksum of the pack index and data."""
        assert self._data is not None
        if len(self.index) != len(self._data):
            raise ObjectFormatException(
                f"Length mismatch: {len(self.index)} (index) != "
                f"{len(self._data)} (data)"
            )
        idx_stored_checksum = self.index.get_pack_checksum()
        data_stored_checksum = self._data.get_stored_checksum()
        if idx_stored_checksum != data_stored_checksum:
            raise ChecksumMismatch(
                idx_stored_checksum, data_stored_checksum, extra=self.name
            )

    def object_offset(self, sha: ObjectID | RawObjectID) -> int:
        """Return the offset of an object in this pack.

        Raises:
          KeyError: if the object is not in this pack
        """
        return self.index.object_offset(sha)

    def object_sha_at(self, offset: int) -> ObjectID | None:
        """Return the SHA of the entry at ``offset``, if the index lists one."""
        return self.index.object_sha_at(offset)

    def get_unpacked_object_at(self, offset: int) -> UnpackedObject:
        """Read the entry at ``offset``, without resolving deltas.

        Raises:
          ChecksumMismatch: if CRC32 verification is enabled and the raw
            entry does not match the index
        """
        unpacked = self.data.get_unpacked_object_at(
            offset, compute_crc32=self.verify_crc32
        )
        if self.verify_crc32:
            expected = self.index.crc32_at(offset)
            if expected is None:
                raise ObjectFormatException(
                    f"no index entry for offset {offset} in {self.name}"
                )
            if expected != unpacked.crc32:
                raise ChecksumMismatch(
                    expected,
                    unpacked.crc32 if unpacked.crc32 is not None else 0,
                    extra=f"entry at offset {offset} in {self.name}",
                )
        return unpacked
