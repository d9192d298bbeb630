# porcelain.py -- Porcelain-like layer on top of gitpeek
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

"""Simple wrapper that provides porcelain-like functions on top of gitpeek.

Currently implemented:
 * diff
 * show
 * status

These functions are meant to behave similarly to the git subcommands.
Differences in behaviour are considered bugs.

Each function takes either a path to a repository or a Repo object.
"""

__all__ = [
    "Error",
    "StatusCounts",
    "diff",
    "open_repo_closing",
    "show",
    "status",
]

import os
from collections.abc import Iterator
from contextlib import AbstractContextManager, closing, contextmanager
from typing import NamedTuple, TypeVar

from .repo import Repo
from .status import WorkingTreeDiff

T = TypeVar("T")


class Error(Exception):
    """Porcelain-based error."""

    def __init__(self, msg: str) -> None:
        """Initialize Error with message."""
        super().__init__(msg)


class StatusCounts(NamedTuple):
    """Number of changed tracked paths and of untracked files."""

    modified: int
    untracked: int


@contextmanager
def _noop_context_manager(obj: T) -> Iterator[T]:
    """Context manager that has the same api as closing but does nothing."""
    yield obj


def open_repo_closing(
    path_or_repo: str | os.PathLike[str] | Repo,
) -> AbstractContextManager[Repo]:
    """Open an argument that can be a repository or a path for a repository.

    returns a context manager that will close the repo on exit if the argument
    is a path, else does nothing if the argument is a repo.
    """
    if isinstance(path_or_repo, Repo):
        return _noop_context_manager(path_or_repo)
    return closing(Repo(path_or_repo))


def show(repo: str | os.PathLike[str] | Repo, path: str) -> bytes:
    """Return the contents of a file as committed in HEAD.

    Args:
      repo: Path to repository or repository object
      path: Path of the file, relative to the repository root
    Returns: The committed file contents
    Raises:
      Error: if HEAD has no such file
    """
    with open_repo_closing(repo) as r:
        contents = r.get_head_blob(path)
    if contents is None:
        raise Error("File not found in HEAD")
    return contents


def diff(repo: str | os.PathLike[str] | Repo = ".") -> WorkingTreeDiff:
    """Compare the working tree with HEAD.

    Args:
      repo: Path to repository or repository object
    Returns: WorkingTreeDiff with changed tracked paths and untracked files
    """
    with open_repo_closing(repo) as r:
        return r.diff_worktree()


def status(repo: str | os.PathLike[str] | Repo = ".") -> StatusCounts:
    """Count changes in the working tree relative to HEAD.

    Every changed tracked path counts as modified, whether its contents
    differ, it was deleted or it changed type.

    Args:
      repo: Path to repository or repository object
    Returns: StatusCounts
    """
    result = diff(repo)
    return StatusCounts(len(result.changes), len(result.untracked))
