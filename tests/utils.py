# utils.py -- Test utilities for gitpeek.
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

"""Utility functions common to gitpeek tests.

gitpeek itself never writes repositories, so the writers used to build
fixtures live here.
"""

import binascii
import os
import stat
import struct
import zlib
from collections.abc import Iterable, Mapping
from difflib import SequenceMatcher
from hashlib import sha1

from gitpeek.objects import (
    BLOB,
    COMMIT,
    OBJECT_TYPE_NAMES,
    TREE,
    ObjectID,
    hex_to_filename,
    hex_to_sha,
    object_header,
    sha_to_hex,
)
from gitpeek.pack import OFS_DELTA, PACK_INDEX_MAGIC, REF_DELTA

# Example ids: the empty blob and empty tree.
EMPTY_BLOB_ID = ObjectID(b"e69de29bb2d1d6434b8b29ae775ad8c2e48c5391")
EMPTY_TREE_ID = ObjectID(b"4b825dc642cb6eb9a060e54bf8d69288fbee4904")


def obj_sha(type_name: bytes, data: bytes) -> ObjectID:
    """Compute the hex id of an object."""
    return ObjectID(
        sha1(object_header(type_name, len(data)) + data).hexdigest().encode("ascii")
    )


def write_loose_object(objects_dir: str, type_name: bytes, data: bytes) -> ObjectID:
    """Store an object loose below ``objects_dir`` and return its id."""
    raw = object_header(type_name, len(data)) + data
    sha = obj_sha(type_name, data)
    path = hex_to_filename(objects_dir, sha)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(zlib.compress(raw))
    return sha


def write_raw_loose_object(objects_dir: str, sha: bytes, raw: bytes) -> None:
    """Store arbitrary (possibly invalid) object text under ``sha``."""
    path = hex_to_filename(objects_dir, sha)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(zlib.compress(raw))


def make_tree(entries: Iterable[tuple[bytes, int, ObjectID]]) -> bytes:
    """Serialize tree entries of (name, mode, hex sha) in git's order."""

    def key(entry: tuple[bytes, int, ObjectID]) -> bytes:
        name, mode, _ = entry
        if stat.S_ISDIR(mode):
            return name + b"/"
        return name

    return b"".join(
        b"%o %s\0%s" % (mode, name, hex_to_sha(sha))
        for (name, mode, sha) in sorted(entries, key=key)
    )


def make_commit(tree_id: ObjectID, message: bytes = b"Test commit\n") -> bytes:
    """Serialize a root commit pointing at ``tree_id``."""
    return (
        b"tree " + tree_id + b"\n"
        b"author Test Author <test@example.com> 1700000000 +0000\n"
        b"committer Test Author <test@example.com> 1700000000 +0000\n"
        b"\n" + message
    )


def _nest(files: Mapping[str, object]) -> dict[str, object]:
    root: dict[str, object] = {}
    for path, value in files.items():
        parts = path.split("/")
        node = root
        for part in parts[:-1]:
            node = node.setdefault(part, {})  # type: ignore[assignment]
        node[parts[-1]] = value
    return root


def write_tree(objects_dir: str, files: Mapping[str, object]) -> ObjectID:
    """Store blobs and trees for ``files`` and return the root tree id.

    Values are ``bytes`` for regular files, or ``(mode, data_or_sha)`` for
    other modes; for gitlinks (0o160000) the second item is a commit id that
    is not stored.
    """

    def store(node: dict[str, object]) -> ObjectID:
        entries = []
        for name, value in node.items():
            if isinstance(value, dict):
                entries.append((name.encode("utf-8"), stat.S_IFDIR, store(value)))
                continue
            if isinstance(value, tuple):
                mode, payload = value
            else:
                mode, payload = 0o100644, value
            if mode == 0o160000:
                sha = ObjectID(payload)
            else:
                sha = write_loose_object(objects_dir, BLOB, payload)
            entries.append((name.encode("utf-8"), mode, sha))
        return write_loose_object(objects_dir, TREE, make_tree(entries))

    return store(_nest(files))


def make_repo(
    path: str,
    files: Mapping[str, object],
    *,
    checkout: bool = True,
    branch: bytes = b"refs/heads/master",
) -> ObjectID:
    """Create a repository at ``path`` whose HEAD commit contains ``files``.

    Args:
      path: Working tree root; ``.git`` is created inside it
      files: Mapping from ``/``-separated path to contents (see write_tree)
      checkout: Whether to also write the files to the working tree
      branch: Branch HEAD points at
    Returns: The commit id
    """
    controldir = os.path.join(path, ".git")
    objects_dir = os.path.join(controldir, "objects")
    os.makedirs(os.path.join(objects_dir, "pack"))
    os.makedirs(os.path.join(controldir, "refs", "heads"))
    with open(os.path.join(controldir, "config"), "wb") as f:
        f.write(b"[core]\n\trepositoryformatversion = 0\n\tbare = false\n")

    tree_id = write_tree(objects_dir, files)
    commit_id = write_loose_object(objects_dir, COMMIT, make_commit(tree_id))
    with open(os.path.join(controldir, "HEAD"), "wb") as f:
        f.write(b"ref: " + branch + b"\n")
    ref_path = os.path.join(controldir, os.fsdecode(branch))
    os.makedirs(os.path.dirname(ref_path), exist_ok=True)
    with open(ref_path, "wb") as f:
        f.write(commit_id + b"\n")

    if checkout:
        for name, value in files.items():
            full_path = os.path.join(path, *name.split("/"))
            os.makedirs(os.path.dirname(full_path), exist_ok=True)
            if isinstance(value, tuple):
                mode, payload = value
                if mode == 0o120000:
                    os.symlink(payload, full_path)
                elif mode == 0o160000:
                    os.mkdir(full_path)
                else:
                    with open(full_path, "wb") as f:
                        f.write(payload)
            else:
                with open(full_path, "wb") as f:
                    f.write(value)  # type: ignore[arg-type]
    return commit_id


def pack_object_header(type_num: int, delta_base: bytes | int | None, size: int) -> bytes:
    """Create a pack object header for the given object info.

    Args:
      type_num: Numeric type of the object.
      delta_base: Delta base offset or ref, or None for whole objects.
      size: Uncompressed object size.
    Returns: A header for a packed object.
    """
    header = []
    c = (type_num << 4) | (size & 15)
    size >>= 4
    while size:
        header.append(c | 0x80)
        c = size & 0x7F
        size >>= 7
    header.append(c)
    if type_num == OFS_DELTA:
        assert isinstance(delta_base, int)
        ret = [delta_base & 0x7F]
        delta_base >>= 7
        while delta_base:
            delta_base -= 1
            ret.insert(0, 0x80 | (delta_base & 0x7F))
            delta_base >>= 7
        header.extend(ret)
    elif type_num == REF_DELTA:
        assert isinstance(delta_base, bytes) and len(delta_base) == 20
        header.extend(delta_base)
    return bytes(header)


def _delta_encode_size(size: int) -> bytes:
    ret = bytearray()
    c = size & 0x7F
    size >>= 7
    while size:
        ret.append(c | 0x80)
        c = size & 0x7F
        size >>= 7
    ret.append(c)
    return bytes(ret)


def encode_copy_operation(start: int, length: int) -> bytes:
    """Encode a delta copy instruction, omitting zero bytes."""
    scratch = bytearray([0x80])
    for i in range(4):
        if start & 0xFF << i * 8:
            scratch.append((start >> i * 8) & 0xFF)
            scratch[0] |= 1 << i
    for i in range(3):
        if length & 0xFF << i * 8:
            scratch.append((length >> i * 8) & 0xFF)
            scratch[0] |= 1 << (4 + i)
    return bytes(scratch)


def create_delta(base_buf: bytes, target_buf: bytes) -> bytes:
    """Use python difflib to work out how to transform base_buf to target_buf."""
    out = [_delta_encode_size(len(base_buf)), _delta_encode_size(len(target_buf))]
    seq = SequenceMatcher(isjunk=None, a=base_buf, b=target_buf, autojunk=False)
    for opcode, i1, i2, j1, j2 in seq.get_opcodes():
        if opcode == "equal":
            copy_start = i1
            copy_len = i2 - i1
            while copy_len > 0:
                to_copy = min(copy_len, 0xFFFF)
                out.append(encode_copy_operation(copy_start, to_copy))
                copy_start += to_copy
                copy_len -= to_copy
        if opcode in ("replace", "insert"):
            o = j1
            while o < j2:
                s = min(j2 - o, 127)
                out.append(bytes([s]))
                out.append(target_buf[o : o + s])
                o += s
    return b"".join(out)


def write_pack_index_v2(
    path: str,
    entries: Iterable[tuple[bytes, int, int]],
    pack_checksum: bytes,
    *,
    large_offsets: Iterable[bytes] = (),
) -> None:
    """Write a version 2 pack index.

    Args:
      path: Path of the index file
      entries: (binary sha, offset, crc32) tuples
      pack_checksum: Checksum of the pack the index describes
      large_offsets: Binary shas whose offsets go in the 8-byte table
    """
    force_large = set(large_offsets)
    entries = sorted(entries)
    fan_out = [0] * 256
    for name, _offset, _crc32 in entries:
        fan_out[name[0]] += 1
    for i in range(1, 256):
        fan_out[i] += fan_out[i - 1]
    chunks = [PACK_INDEX_MAGIC, struct.pack(">L", 2)]
    chunks.append(struct.pack(">256L", *fan_out))
    chunks.extend(name for (name, _offset, _crc32) in entries)
    chunks.extend(struct.pack(">L", crc32) for (_name, _offset, crc32) in entries)
    large_table = []
    for name, offset, _crc32 in entries:
        if offset >= 2**31 or name in force_large:
            chunks.append(struct.pack(">L", 2**31 | len(large_table)))
            large_table.append(offset)
        else:
            chunks.append(struct.pack(">L", offset))
    chunks.extend(struct.pack(">Q", offset) for offset in large_table)
    chunks.append(pack_checksum)
    contents = b"".join(chunks)
    with open(path, "wb") as f:
        f.write(contents + sha1(contents).digest())


def build_pack(basename: str, objects_spec, *, large_offsets: Iterable[int] = ()):
    """Write a pack and its index from a concise description.

    Args:
      basename: Path of the pack without the .pack/.idx extension
      objects_spec: A list of (type_num, obj). For non-delta types, obj
        is the object's data. For delta types, obj is a tuple of
        (base, data), where base is either an index in objects_spec of the
        base for that delta, or for a ref delta an external ``(type_num,
        data)`` tuple (the pack will be thin), and data is the full,
        non-deltified data for that object.
      large_offsets: Indices in objects_spec whose offsets go in the large
        offset table of the index
    Returns: A list of tuples in the order specified by objects_spec:
        (offset, type num, data, hex sha, CRC32)
    """
    num_objects = len(objects_spec)
    full_objects: dict[int, tuple[int, bytes, bytes]] = {}

    while len(full_objects) < num_objects:
        for i, (type_num, obj) in enumerate(objects_spec):
            if i in full_objects:
                continue
            if type_num not in (OFS_DELTA, REF_DELTA):
                full_objects[i] = (type_num, obj, obj_sha(OBJECT_TYPE_NAMES[type_num], obj))
                continue
            base, data = obj
            if isinstance(base, int):
                if base not in full_objects:
                    continue
                base_type_num = full_objects[base][0]
            else:
                base_type_num = base[0]
            full_objects[i] = (
                base_type_num,
                data,
                obj_sha(OBJECT_TYPE_NAMES[base_type_num], data),
            )

    pack = bytearray(b"PACK" + struct.pack(">LL", 2, num_objects))
    offsets: dict[int, int] = {}
    crc32s: dict[int, int] = {}
    for i, (type_num, obj) in enumerate(objects_spec):
        offset = len(pack)
        delta_base: bytes | int | None = None
        if type_num == OFS_DELTA:
            base_index, data = obj
            delta_base = offset - offsets[base_index]
            body = create_delta(full_objects[base_index][1], data)
        elif type_num == REF_DELTA:
            base, data = obj
            if isinstance(base, int):
                _, base_data, base_sha = full_objects[base]
            else:
                base_data = base[1]
                base_sha = obj_sha(OBJECT_TYPE_NAMES[base[0]], base_data)
            delta_base = hex_to_sha(base_sha)
            body = create_delta(base_data, data)
        else:
            body = obj
        entry = pack_object_header(type_num, delta_base, len(body)) + zlib.compress(body)
        pack.extend(entry)
        offsets[i] = offset
        crc32s[i] = binascii.crc32(entry) & 0xFFFFFFFF

    pack_checksum = sha1(pack).digest()
    with open(basename + ".pack", "wb") as f:
        f.write(pack + pack_checksum)

    write_pack_index_v2(
        basename + ".idx",
        [
            (hex_to_sha(full_objects[i][2]), offsets[i], crc32s[i])
            for i in range(num_objects)
        ],
        pack_checksum,
        large_offsets=[hex_to_sha(full_objects[i][2]) for i in large_offsets],
    )

    expected = []
    for i in range(num_objects):
        type_num, data, sha = full_objects[i]
        expected.append((offsets[i], type_num, data, sha, crc32s[i]))
    return expected


__all__ = [
    "EMPTY_BLOB_ID",
    "EMPTY_TREE_ID",
    "build_pack",
    "create_delta",
    "encode_copy_operation",
    "make_commit",
    "make_repo",
    "make_tree",
    "obj_sha",
    "pack_object_header",
    "sha_to_hex",
    "write_loose_object",
    "write_pack_index_v2",
    "write_raw_loose_object",
    "write_tree",
]
