# status.py -- Compare a committed tree with the working tree
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

"""Compare a flattened commit tree with the files on disk.

There is no index involved: every tracked path is checked against the
committed blob directly, and anything else on disk is untracked.
"""

__all__ = [
    "DELETED",
    "MODIFIED",
    "TYPE_CHANGE",
    "TreeChange",
    "WorkingTreeDiff",
    "diff_against_filesystem",
    "get_changed_paths",
    "get_untracked_paths",
]

import os
import stat
from collections.abc import Collection, Iterator
from typing import NamedTuple

from .errors import NotBlobError
from .log_utils import getLogger
from .object_store import DiskObjectStore, FlatTree
from .objects import BLOB

logger = getLogger(__name__)

CONTROLDIR = ".git"

MODIFIED = "modified"
DELETED = "deleted"
TYPE_CHANGE = "type-change"


class TreeChange(NamedTuple):
    """A tracked path whose working copy differs from the commit."""

    path: str
    status: str


class WorkingTreeDiff(NamedTuple):
    """Changed tracked paths, in tree order, and sorted untracked paths."""

    changes: list[TreeChange]
    untracked: list[str]


def _tree_to_fs_path(root: str, tree_path: str) -> str:
    """Convert a ``/``-separated tree path to a path below ``root``."""
    return os.path.join(root, *tree_path.split("/"))


def get_changed_paths(
    store: DiskObjectStore, flat_tree: FlatTree, root: str | os.PathLike[str]
) -> Iterator[TreeChange]:
    """Check every tracked path against the file on disk.

    Args:
      store: Object store holding the committed blobs
      flat_tree: Mapping from tree path to blob id
      root: Working tree root
    Returns: iterator over changes, unchanged paths are skipped
    Raises:
      NotBlobError: if a path on disk is a file but the tree has no blob for it
    """
    root = os.fspath(root)
    for path, sha in flat_tree.items():
        full_path = _tree_to_fs_path(root, path)
        try:
            st = os.lstat(full_path)
        except (FileNotFoundError, NotADirectoryError):
            yield TreeChange(path, DELETED)
            continue
        if not stat.S_ISREG(st.st_mode):
            yield TreeChange(path, TYPE_CHANGE)
            continue
        blob = store[sha]
        if blob.type_name != BLOB:
            raise NotBlobError(sha)
        if st.st_size != len(blob.data):
            yield TreeChange(path, MODIFIED)
            continue
        with open(full_path, "rb") as f:
            current = f.read()
        if current != blob.data:
            yield TreeChange(path, MODIFIED)


def get_untracked_paths(
    root: str | os.PathLike[str],
    flat_tree: FlatTree,
    gitlinks: Collection[str] = (),
) -> list[str]:
    """List regular files under ``root`` that are not in ``flat_tree``.

    ``.git`` directories and files are skipped, as are the checkouts of
    submodules listed in ``gitlinks``. A tracked file that has become a
    directory is walked like any other directory.

    Args:
      root: Working tree root
      flat_tree: Mapping from tree path to blob id
      gitlinks: Tree paths recorded as submodule commits
    Returns: sorted list of ``/``-separated paths
    """
    root = os.fspath(root)
    untracked = []
    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = os.path.relpath(dirpath, root)
        if rel_dir == os.curdir:
            prefix = ""
        else:
            prefix = rel_dir.replace(os.path.sep, "/") + "/"
        dirnames[:] = [
            d for d in dirnames if d != CONTROLDIR and prefix + d not in gitlinks
        ]
        for name in filenames:
            if name == CONTROLDIR:
                continue
            path = prefix + name
            if path in flat_tree:
                continue
            try:
                st = os.lstat(os.path.join(dirpath, name))
            except FileNotFoundError:
                # Removed while walking
                continue
            if stat.S_ISREG(st.st_mode):
                untracked.append(path)
    untracked.sort()
    return untracked


def diff_against_filesystem(
    store: DiskObjectStore,
    flat_tree: FlatTree,
    root: str | os.PathLike[str],
    gitlinks: Collection[str] = (),
) -> WorkingTreeDiff:
    """Classify the working tree against a flattened commit tree.

    Args:
      store: Object store holding the committed blobs
      flat_tree: Mapping from tree path to blob id
      root: Working tree root
      gitlinks: Tree paths recorded as submodule commits
    Returns: A WorkingTreeDiff
    """
    changes = list(get_changed_paths(store, flat_tree, root))
    untracked = get_untracked_paths(root, flat_tree, gitlinks)
    logger.debug(
        "%d tracked paths: %d changed, %d untracked",
        len(flat_tree),
        len(changes),
        len(untracked),
    )
    return WorkingTreeDiff(changes, untracked)
