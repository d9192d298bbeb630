# repo.py -- For dealing with git repositories.
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

"""Repository access.

This module contains the Repo class, which ties together the refs, the object
store and the working tree of a repository on disk.
"""

__all__ = [
    "COMMONDIR",
    "CONTROLDIR",
    "OBJECTDIR",
    "REFSDIR",
    "NoWorkingTree",
    "Repo",
    "read_gitfile",
]

import os
from types import MappingProxyType, TracebackType
from typing import BinaryIO

from .config import ConfigFile
from .errors import (
    NotBlobError,
    NotGitRepository,
    UnsupportedExtension,
    UnsupportedVersion,
)
from .log_utils import getLogger
from .object_store import (
    DiskObjectStore,
    FlatTree,
    iter_commit_tree,
    tree_path_to_str,
)
from .objects import (
    BLOB,
    S_ISGITLINK,
    ObjectID,
    RawObjectID,
    StoredObject,
    as_hexsha,
)
from .refs import DiskRefsContainer, resolve_head
from .status import WorkingTreeDiff, diff_against_filesystem

logger = getLogger(__name__)

CONTROLDIR = ".git"
OBJECTDIR = "objects"
REFSDIR = "refs"
COMMONDIR = "commondir"

# Extensions that do not change how objects and refs are read.
KNOWN_EXTENSIONS = frozenset(
    [b"noop", b"objectformat", b"partialclone", b"preciousobjects", b"worktreeconfig"]
)


class NoWorkingTree(Exception):
    """The repository is bare, so there is no working tree to compare."""


def read_gitfile(f: BinaryIO) -> str:
    """Read a ``.git`` file.

    The first line of the file should start with "gitdir: "

    Args:
      f: File-like object to read from
    Returns: A path
    """
    cs = f.read()
    if not cs.startswith(b"gitdir: "):
        raise ValueError("Expected file to start with 'gitdir: '")
    return cs[len(b"gitdir: ") :].rstrip(b"\r\n").decode("utf-8")


class Repo:
    """A git repository backed by local disk.

    To open an existing repository, call the constructor with
    the path of the repository.

    Note that a repository object holds on to open pack files and a cache of
    decoded objects; call .close() to free up those resources.

    Attributes:
      path: Path to the working copy (if it exists) or repository control
        directory (if the repository is bare)
      bare: Whether this is a bare repository
    """

    path: str
    bare: bool
    object_store: DiskObjectStore
    refs: DiskRefsContainer

    def __init__(
        self,
        root: str | bytes | os.PathLike[str],
        bare: bool | None = None,
        *,
        max_delta_chain_depth: int | None = None,
        verify_crc32: bool | None = None,
    ) -> None:
        """Open a repository on disk.

        Args:
          root: Path to the repository's root.
          bare: True if this is a bare repository.
          max_delta_chain_depth: Overrides ``gitpeek.maxDeltaChainDepth``
          verify_crc32: Overrides ``gitpeek.verifyPackCrc``
        """
        root = os.fspath(root)
        if isinstance(root, bytes):
            root = os.fsdecode(root)
        hidden_path = os.path.join(root, CONTROLDIR)
        if bare is None:
            if os.path.isfile(hidden_path) or os.path.isdir(
                os.path.join(hidden_path, OBJECTDIR)
            ):
                bare = False
            elif os.path.isdir(os.path.join(root, OBJECTDIR)) and os.path.isdir(
                os.path.join(root, REFSDIR)
            ):
                bare = True
            else:
                raise NotGitRepository(f"No git repository was found at {root}")

        self.bare = bare
        if bare is False:
            if os.path.isfile(hidden_path):
                with open(hidden_path, "rb") as f:
                    try:
                        path = read_gitfile(f)
                    except ValueError as exc:
                        raise NotGitRepository(
                            f"Invalid .git file at {hidden_path}: {exc}"
                        ) from exc
                self._controldir = os.path.join(root, path)
            else:
                self._controldir = hidden_path
        else:
            self._controldir = root
        try:
            with open(os.path.join(self._controldir, COMMONDIR), "rb") as f:
                self._commondir = os.path.join(
                    self._controldir, os.fsdecode(f.read().rstrip(b"\r\n"))
                )
        except FileNotFoundError:
            self._commondir = self._controldir
        self.path = root

        config = self.get_config()
        self._check_repository_format(config)

        self.refs = DiskRefsContainer(self._commondir, self._controldir)
        self.object_store = DiskObjectStore.from_config(
            os.path.join(self._commondir, OBJECTDIR),
            config,
            max_delta_chain_depth=max_delta_chain_depth,
            verify_crc32=verify_crc32,
        )
        self._flat_trees: dict[ObjectID, tuple[FlatTree, frozenset[str]]] = {}

    @staticmethod
    def _check_repository_format(config: ConfigFile) -> None:
        try:
            format_version = int(config.get("core", "repositoryformatversion"))
        except KeyError:
            format_version = 0
        except ValueError as exc:
            raise UnsupportedVersion(-1) from exc

        if format_version not in (0, 1):
            raise UnsupportedVersion(format_version)

        if format_version == 0:
            # Version 0 repositories ignore extensions.
            return

        for extension, value in config.items(b"extensions"):
            if extension not in KNOWN_EXTENSIONS:
                raise UnsupportedExtension(extension.decode("utf-8"))
            if extension == b"objectformat" and value.lower() != b"sha1":
                raise UnsupportedExtension(f"objectformat = {value.decode()}")

    def __repr__(self) -> str:
        """Return string representation of this repository."""
        return f"<Repo at {self.path!r}>"

    @classmethod
    def discover(cls, start: str | bytes | os.PathLike[str] = ".") -> "Repo":
        """Iterate parent directories to discover a repository.

        Return a Repo object for the first parent directory that looks like a
        Git repository.

        Args:
          start: The directory to start discovery from (defaults to '.')
        """
        path = os.path.abspath(start)
        if isinstance(path, bytes):
            path = os.fsdecode(path)
        while True:
            try:
                return cls(path)
            except NotGitRepository:
                new_path, _tail = os.path.split(path)
                if new_path == path:  # Root reached
                    break
                path = new_path
        start_str = os.fspath(start)
        if isinstance(start_str, bytes):
            start_str = os.fsdecode(start_str)
        raise NotGitRepository(f"No git repository was found at {start_str}")

    def controldir(self) -> str:
        """Return the path of the control directory."""
        return self._controldir

    def commondir(self) -> str:
        """Return the path of the common directory.

        For a main working tree, it is identical to controldir().

        For a linked working tree, it is the control directory of the
        main working tree.
        """
        return self._commondir

    def get_config(self) -> ConfigFile:
        """Retrieve the config object.

        Returns: `ConfigFile` object for the ``.git/config`` file.
        """
        path = os.path.join(self._commondir, "config")
        try:
            return ConfigFile.from_path(path)
        except FileNotFoundError:
            ret = ConfigFile()
            ret.path = path
            return ret

    def head(self) -> ObjectID:
        """Return the SHA1 pointed at by HEAD.

        Raises:
          HeadNotFound: if HEAD is missing, unborn or not an object id
          SymrefLoop: if HEAD is part of a symbolic reference cycle
        """
        return resolve_head(self._controldir, self._commondir)

    def get_object(self, sha: ObjectID | RawObjectID | str) -> StoredObject:
        """Retrieve the object with the specified SHA.

        Args:
          sha: SHA to retrieve
        Returns: A StoredObject
        Raises:
          ObjectMissing: when the object can not be found
        """
        return self.object_store[sha]

    def __getitem__(self, sha: ObjectID | RawObjectID | str) -> StoredObject:
        """Retrieve an object by SHA, like get_object."""
        return self.object_store[sha]

    def flat_tree(
        self, commit_id: ObjectID | RawObjectID | str | None = None
    ) -> FlatTree:
        """Return the path to blob id mapping of a commit.

        The mapping is built once per commit and is read-only.

        Args:
          commit_id: Commit to expand; defaults to HEAD
        """
        return self._expand_commit(commit_id)[0]

    def _expand_commit(
        self, commit_id: ObjectID | RawObjectID | str | None
    ) -> tuple[FlatTree, frozenset[str]]:
        """Return the flat tree and the submodule paths of a commit."""
        if commit_id is None:
            commit_id = self.head()
        commit_id = as_hexsha(commit_id)
        try:
            return self._flat_trees[commit_id]
        except KeyError:
            pass
        paths = {}
        gitlinks = set()
        for entry in iter_commit_tree(self.object_store, commit_id):
            path = tree_path_to_str(entry.path)
            paths[path] = entry.sha
            if S_ISGITLINK(entry.mode):
                gitlinks.add(path)
        logger.debug(
            "expanded commit %s into %d paths",
            commit_id.decode("ascii"),
            len(paths),
        )
        expanded = (MappingProxyType(paths), frozenset(gitlinks))
        self._flat_trees[commit_id] = expanded
        return expanded

    def diff_worktree(
        self, commit_id: ObjectID | RawObjectID | str | None = None
    ) -> WorkingTreeDiff:
        """Compare the working tree with a commit (HEAD by default).

        Raises:
          NoWorkingTree: for bare repositories
        """
        if self.bare:
            raise NoWorkingTree(f"{self.path} is a bare repository")
        flat_tree, gitlinks = self._expand_commit(commit_id)
        return diff_against_filesystem(
            self.object_store, flat_tree, self.path, gitlinks
        )

    def get_head_blob(self, path: str | bytes) -> bytes | None:
        """Return the contents of a file as committed in HEAD.

        Args:
          path: ``/``-separated path relative to the repository root
        Returns: The file contents, or None if HEAD has no such file
        """
        if isinstance(path, bytes):
            path = path.decode("utf-8", "surrogateescape")
        path = path.replace(os.path.sep, "/")
        while path.startswith("./"):
            path = path[2:]
        sha = self.flat_tree().get(path)
        if sha is None:
            return None
        blob = self.object_store[sha]
        if blob.type_name != BLOB:
            raise NotBlobError(sha)
        return blob.data

    def close(self) -> None:
        """Close any files opened by this repository."""
        self.object_store.close()
        self._flat_trees.clear()

    def __enter__(self) -> "Repo":
        """Enter context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit context manager and close repository."""
        self.close()
