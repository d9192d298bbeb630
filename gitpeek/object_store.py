# object_store.py -- Object store for git objects
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

"""Git object store interfaces and implementation."""

__all__ = [
    "DEFAULT_MAX_DELTA_CHAIN_DEPTH",
    "PACKDIR",
    "DiskObjectStore",
    "FlatTree",
    "build_flat_tree",
    "iter_commit_tree",
    "iter_tree_contents",
    "tree_path_to_str",
]

import os
import stat
import zlib
from collections.abc import Iterator, Mapping
from types import TracebackType
from typing import TYPE_CHECKING

from .errors import (
    ConfigFormatError,
    DeltaChainTooDeep,
    NotCommitError,
    NotTreeError,
    ObjectFormatException,
    ObjectMissing,
)
from .log_utils import getLogger
from .objects import (
    COMMIT,
    OBJECT_TYPE_NAMES,
    TREE,
    ObjectID,
    RawObjectID,
    StoredObject,
    TreeEntry,
    as_hexsha,
    decode_loose_object,
    hex_to_filename,
    parse_commit_tree,
    parse_tree,
    sha_to_hex,
)
from .pack import DELTA_TYPES, OFS_DELTA, Pack, apply_delta

if TYPE_CHECKING:
    from .config import ConfigFile

logger = getLogger(__name__)

PACKDIR = "pack"

# git refuses to create pack delta chains deeper than this.
DEFAULT_MAX_DELTA_CHAIN_DEPTH = 4095

FlatTree = Mapping[str, ObjectID]


class DiskObjectStore:
    """Git-style object store that exists on disk.

    Objects are looked up loose first, then in each pack in name order.
    Every object handed out is remembered for the lifetime of the store, so
    repeated lookups (and delta bases shared between objects) are decoded
    only once.
    """

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        max_delta_chain_depth: int = DEFAULT_MAX_DELTA_CHAIN_DEPTH,
        verify_crc32: bool = True,
    ) -> None:
        """Open an object store.

        Args:
          path: Path of the object store (usually ``.git/objects``)
          max_delta_chain_depth: Maximum number of deltas followed to
            reconstruct one object
          verify_crc32: Whether to check pack entries against the CRC32
            recorded in their index
        """
        self.path = os.fspath(path)
        self.pack_dir = os.path.join(self.path, PACKDIR)
        self.max_delta_chain_depth = max_delta_chain_depth
        self.verify_crc32 = verify_crc32
        self._pack_cache: list[Pack] | None = None
        self._cache: dict[ObjectID, StoredObject] = {}

    def __repr__(self) -> str:
        """Return string representation of DiskObjectStore."""
        return f"<{self.__class__.__name__}({self.path!r})>"

    @classmethod
    def from_config(
        cls,
        path: str | os.PathLike[str],
        config: "ConfigFile",
        *,
        max_delta_chain_depth: int | None = None,
        verify_crc32: bool | None = None,
    ) -> "DiskObjectStore":
        """Create a DiskObjectStore from a configuration object.

        Keyword arguments that are not None take precedence over the
        ``gitpeek.maxDeltaChainDepth`` and ``gitpeek.verifyPackCrc`` settings.
        """
        if max_delta_chain_depth is None:
            max_delta_chain_depth = config.get_int(
                b"gitpeek", b"maxDeltaChainDepth", DEFAULT_MAX_DELTA_CHAIN_DEPTH
            )
            assert max_delta_chain_depth is not None
            if max_delta_chain_depth < 0:
                raise ConfigFormatError(
                    f"gitpeek.maxDeltaChainDepth must not be negative: "
                    f"{max_delta_chain_depth}"
                )
        elif max_delta_chain_depth < 0:
            raise ValueError(
                f"maximum delta chain depth must not be negative: {max_delta_chain_depth}"
            )
        if verify_crc32 is None:
            verify_crc32 = config.get_boolean(b"gitpeek", b"verifyPackCrc", True)
            assert verify_crc32 is not None
        return cls(
            path,
            max_delta_chain_depth=max_delta_chain_depth,
            verify_crc32=verify_crc32,
        )

    @property
    def packs(self) -> list[Pack]:
        """List with pack objects, in the order they are searched."""
        if self._pack_cache is None:
            self._pack_cache = self._load_packs()
        return self._pack_cache

    def _load_packs(self) -> list[Pack]:
        try:
            pack_dir_contents = os.listdir(self.pack_dir)
        except FileNotFoundError:
            return []
        pack_files = []
        for name in pack_dir_contents:
            if name.startswith("pack-") and name.endswith(".pack"):
                # verify that idx exists first (otherwise the pack was not yet
                # fully written)
                idx_name = os.path.splitext(name)[0] + ".idx"
                if idx_name in pack_dir_contents:
                    pack_files.append(name[: -len(".pack")])
        pack_files.sort()
        logger.debug("found %d packs in %s", len(pack_files), self.pack_dir)
        return [
            Pack(os.path.join(self.pack_dir, f), verify_crc32=self.verify_crc32)
            for f in pack_files
        ]

    def close(self) -> None:
        """Close all open pack files and forget cached objects."""
        if self._pack_cache is not None:
            for pack in self._pack_cache:
                pack.close()
            self._pack_cache = None
        self._cache.clear()

    def __enter__(self) -> "DiskObjectStore":
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

    def _get_shafile_path(self, sha: ObjectID) -> str:
        return hex_to_filename(self.path, sha)

    def _get_loose_object(self, sha: ObjectID) -> StoredObject | None:
        """Read a loose object.

        Returns: The object, or None if it is not stored loose
        Raises:
          ObjectFormatException: if the file exists but is not a valid object
        """
        path = self._get_shafile_path(sha)
        try:
            with open(path, "rb") as f:
                compressed = f.read()
        except FileNotFoundError:
            return None
        try:
            text = zlib.decompress(compressed)
        except zlib.error as exc:
            raise ObjectFormatException(
                f"corrupt loose object {sha.decode('ascii')}: {exc}"
            ) from exc
        return decode_loose_object(text)

    def contains_loose(self, sha: ObjectID | RawObjectID | str) -> bool:
        """Check if a particular object is present by SHA1 and is loose."""
        return os.path.exists(self._get_shafile_path(as_hexsha(sha)))

    def contains_packed(self, sha: ObjectID | RawObjectID | str) -> bool:
        """Check if a particular object is present by SHA1 and is packed."""
        hexsha = as_hexsha(sha)
        return any(hexsha in pack for pack in self.packs)

    def __contains__(self, sha: object) -> bool:
        """Check if a particular object is present by SHA1.

        This method makes no distinction between loose and packed objects.
        """
        if not isinstance(sha, (bytes, str)):
            return False
        try:
            hexsha = as_hexsha(sha)
        except ValueError:
            return False
        if hexsha in self._cache:
            return True
        return self.contains_loose(hexsha) or self.contains_packed(hexsha)

    def _find_packed(self, sha: ObjectID) -> tuple[Pack, int]:
        for pack in self.packs:
            try:
                return pack, pack.object_offset(sha)
            except KeyError:
                continue
        raise ObjectMissing(sha)

    def get_raw(self, name: ObjectID | RawObjectID | str) -> tuple[bytes, bytes]:
        """Obtain the raw text for an object.

        Args:
          name: sha for the object.
        Returns: tuple with type name and object contents.
        """
        obj = self[name]
        return obj.type_name, obj.data

    def __getitem__(self, sha: ObjectID | RawObjectID | str) -> StoredObject:
        """Obtain an object by SHA1.

        Raises:
          ObjectMissing: if no loose object or pack has it
          ValueError: if ``sha`` is not an object name
        """
        hexsha = as_hexsha(sha)
        try:
            return self._cache[hexsha]
        except KeyError:
            pass
        obj = self._get_loose_object(hexsha)
        if obj is None:
            pack, offset = self._find_packed(hexsha)
            obj = self._resolve_packed(hexsha, pack, offset)
        self._cache[hexsha] = obj
        return obj

    def _resolve_packed(self, sha: ObjectID, pack: Pack, offset: int) -> StoredObject:
        """Reconstruct a packed object, following its delta chain.

        Walks from the object towards its base, collecting delta
        instructions, until a plain entry or an already known object is
        found; the deltas are then applied base first. Offset deltas stay
        within ``pack``; reference deltas may continue in a loose object or
        another pack.
        """
        deltas: list[tuple[ObjectID | None, bytes]] = []
        current: ObjectID | None = sha
        while True:
            unpacked = pack.get_unpacked_object_at(offset)
            if unpacked.pack_type_num not in DELTA_TYPES:
                base = StoredObject(
                    OBJECT_TYPE_NAMES[unpacked.pack_type_num], unpacked.data
                )
                if current is not None:
                    self._cache[current] = base
                break
            deltas.append((current, unpacked.data))
            if len(deltas) > self.max_delta_chain_depth:
                raise DeltaChainTooDeep(sha, self.max_delta_chain_depth)
            if unpacked.pack_type_num == OFS_DELTA:
                assert isinstance(unpacked.delta_base, int)
                if unpacked.delta_base == 0:
                    raise ObjectFormatException(
                        f"offset delta at {offset} in {pack.name} refers to itself"
                    )
                offset -= unpacked.delta_base
                current = pack.object_sha_at(offset)
                if current is not None and current in self._cache:
                    base = self._cache[current]
                    break
            else:
                assert isinstance(unpacked.delta_base, bytes)
                current = sha_to_hex(unpacked.delta_base)
                cached = self._cache.get(current)
                if cached is None:
                    cached = self._get_loose_object(current)
                    if cached is not None:
                        self._cache[current] = cached
                if cached is not None:
                    base = cached
                    break
                pack, offset = self._find_packed(current)

        if deltas:
            logger.debug(
                "resolving %s through %d deltas", sha.decode("ascii"), len(deltas)
            )
        obj = base
        for delta_sha, delta in reversed(deltas):
            obj = StoredObject(base.type_name, apply_delta(obj.data, delta))
            if delta_sha is not None:
                self._cache[delta_sha] = obj
        return obj


def iter_tree_contents(
    store: DiskObjectStore,
    tree_id: ObjectID | None,
    *,
    include_trees: bool = False,
) -> Iterator[TreeEntry]:
    """Iterate the contents of a tree and all subtrees.

    Iteration is depth-first pre-order, as in e.g. os.walk.

    Args:
      store: Object store to get trees from
      tree_id: SHA1 of the tree.
      include_trees: If True, include tree objects in the iteration.

    Yields: TreeEntry namedtuples for all the objects in a tree.
    Raises:
      NotTreeError: if a directory entry does not name a tree
    """
    if tree_id is None:
        return
    todo = [TreeEntry(b"", stat.S_IFDIR, tree_id)]
    while todo:
        entry = todo.pop()
        if stat.S_ISDIR(entry.mode):
            tree = store[entry.sha]
            if tree.type_name != TREE:
                raise NotTreeError(entry.sha)
            extra = [
                TreeEntry(name, mode, sha).in_path(entry.path)
                for (name, mode, sha) in parse_tree(tree.data)
            ]
            todo.extend(reversed(extra))
        if not stat.S_ISDIR(entry.mode) or (include_trees and entry.path):
            yield entry


def iter_commit_tree(
    store: DiskObjectStore, commit_id: ObjectID | RawObjectID | str
) -> Iterator[TreeEntry]:
    """Iterate the leaf entries of the tree of a commit.

    Raises:
      NotCommitError: if ``commit_id`` does not name a commit
    """
    commit = store[commit_id]
    if commit.type_name != COMMIT:
        raise NotCommitError(as_hexsha(commit_id))
    return iter_tree_contents(store, parse_commit_tree(commit.data))


def tree_path_to_str(path: bytes) -> str:
    return path.decode("utf-8", "surrogateescape")


def build_flat_tree(
    store: DiskObjectStore, commit_id: ObjectID | RawObjectID | str
) -> dict[str, ObjectID]:
    """Expand the tree of a commit into a path to blob id mapping.

    Args:
      store: Object store to read from
      commit_id: Commit whose tree to expand
    Returns: Dictionary from ``/``-separated path to object id, in tree order.
      Names are decoded as UTF-8; undecodable bytes are kept as surrogates.
    Raises:
      NotCommitError: if ``commit_id`` does not name a commit
    """
    return {
        tree_path_to_str(entry.path): entry.sha
        for entry in iter_commit_tree(store, commit_id)
    }
