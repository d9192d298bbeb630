# refs.py -- For dealing with git refs
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

"""Ref handling.

Only reading is supported: loose ref files under the control directory and
the ``packed-refs`` file.
"""

__all__ = [
    "BAD_REF_CHARS",
    "HEADREF",
    "SYMREF",
    "DiskRefsContainer",
    "PackedRefsException",
    "SymrefLoop",
    "check_ref_format",
    "parse_symref_value",
    "read_packed_refs",
    "resolve_head",
]

import os
from collections.abc import Iterator
from typing import IO

from .errors import FileFormatException, HeadNotFound
from .log_utils import getLogger
from .objects import ObjectID, valid_hexsha

logger = getLogger(__name__)

HEADREF = b"HEAD"
SYMREF = b"ref:"
BAD_REF_CHARS = set(b"\177 ~^:?*[")


class SymrefLoop(Exception):
    """There is a loop between one or more symrefs."""

    def __init__(self, ref: bytes, depth: int) -> None:
        """Initialize SymrefLoop exception."""
        self.ref = ref
        self.depth = depth
        Exception.__init__(
            self, f"symbolic reference loop at {ref!r} after {depth} steps"
        )


class PackedRefsException(FileFormatException):
    """Indicates an error parsing the packed-refs file."""


def parse_symref_value(contents: bytes) -> bytes:
    """Parse a symref value.

    Args:
      contents: Contents to parse
    Returns: Destination
    """
    if contents.startswith(SYMREF):
        return contents[len(SYMREF) :].strip()
    raise ValueError(contents)


def check_ref_format(refname: bytes) -> bool:
    """Check if a refname is correctly formatted.

    Follows the rules of git-check-ref-format, which also keeps names from
    escaping the control directory.

    Args:
      refname: The refname to check
    Returns: True if refname is valid, False otherwise
    """
    if b"/." in refname or refname.startswith(b"."):
        return False
    if b"/" not in refname:
        return False
    if b".." in refname:
        return False
    for c in refname:
        if c < 0o40 or c in BAD_REF_CHARS:
            return False
    if refname[-1] in b"/.":
        return False
    if refname.endswith(b".lock"):
        return False
    if b"@{" in refname:
        return False
    if b"\\" in refname:
        return False
    return True


def _split_ref_line(line: bytes) -> tuple[bytes, bytes]:
    """Split a single ref line into a tuple of SHA1 and name."""
    fields = line.rstrip(b"\n\r").split(b" ")
    if len(fields) != 2:
        raise PackedRefsException(f"invalid ref line {line!r}")
    sha, name = fields
    if not valid_hexsha(sha):
        raise PackedRefsException(f"Invalid hex sha {sha!r}")
    if not check_ref_format(name):
        raise PackedRefsException(f"invalid ref name {name!r}")
    return (sha, name)


def read_packed_refs(f: IO[bytes]) -> Iterator[tuple[bytes, bytes]]:
    """Read a packed refs file.

    Comment lines and peeled (``^``) lines are skipped.

    Args:
      f: file-like object to read from
    Returns: Iterator over tuples with SHA1s and ref names.
    """
    for line in f:
        if line.startswith(b"#") or line.startswith(b"^"):
            continue
        if not line.strip():
            continue
        yield _split_ref_line(line)


class DiskRefsContainer:
    """Refs stored in a git control directory."""

    def __init__(
        self,
        path: str | os.PathLike[str],
        worktree_path: str | os.PathLike[str] | None = None,
    ) -> None:
        """Initialize DiskRefsContainer.

        Args:
          path: Path of the common control directory (usually ``.git``)
          worktree_path: Control directory of a linked worktree, which holds
            its own HEAD; defaults to ``path``
        """
        self.path = os.fspath(path)
        if worktree_path is None:
            self.worktree_path = self.path
        else:
            self.worktree_path = os.fspath(worktree_path)
        self._packed_refs: dict[bytes, bytes] | None = None

    def __repr__(self) -> str:
        """Return string representation of DiskRefsContainer."""
        return f"{self.__class__.__name__}({self.path!r})"

    def refpath(self, name: bytes) -> str:
        """Return the disk path of a ref."""
        path = os.fsdecode(name)
        if os.path.sep != "/":
            path = path.replace("/", os.path.sep)
        root_dir = self.worktree_path if name == HEADREF else self.path
        return os.path.join(root_dir, path)

    def get_packed_refs(self) -> dict[bytes, bytes]:
        """Get contents of the packed-refs file.

        Returns: Dictionary mapping ref names to SHA1s

        Note: Will return an empty dictionary when no packed-refs file is
            present.
        """
        if self._packed_refs is None:
            self._packed_refs = {}
            path = os.path.join(self.path, "packed-refs")
            try:
                f = open(path, "rb")
            except FileNotFoundError:
                return {}
            with f:
                for sha, name in read_packed_refs(f):
                    self._packed_refs[name] = sha
        return self._packed_refs

    def read_loose_ref(self, name: bytes) -> bytes | None:
        """Read a reference file and return its contents.

        Only the first line of the file is used, without surrounding
        whitespace.

        Args:
          name: the refname to read, relative to refpath
        Returns: The contents of the ref file, or None if the file does not
            exist.
        """
        filename = self.refpath(name)
        try:
            with open(filename, "rb") as f:
                line = f.readline()
        except OSError:
            # Missing files, directories in the way and forbidden paths all
            # mean the ref is not stored loose.
            return None
        return line.strip()

    def read_ref(self, refname: bytes) -> bytes | None:
        """Read a reference without following any references.

        Args:
          refname: The name of the reference
        Returns: The contents of the ref file, or None if it does
            not exist.
        """
        contents = self.read_loose_ref(refname)
        if contents is None:
            contents = self.get_packed_refs().get(refname, None)
        return contents

    def follow(self, name: bytes) -> tuple[list[bytes], bytes | None]:
        """Follow a reference name.

        Symbolic references are followed until a non-symbolic value is found;
        there is no fixed limit on the number of steps.

        Returns: a tuple of (refnames, sha), wheres refnames are the names of
            references in the chain
        Raises:
          SymrefLoop: if a reference is visited twice
          ValueError: if a symbolic reference names an invalid ref
        """
        contents: bytes | None = SYMREF + name
        refnames: list[bytes] = []
        seen: set[bytes] = set()
        while contents and contents.startswith(SYMREF):
            refname = parse_symref_value(contents)
            if refname in seen:
                raise SymrefLoop(name, len(refnames))
            if refname != HEADREF and not check_ref_format(refname):
                raise ValueError(f"invalid ref name {refname!r}")
            seen.add(refname)
            refnames.append(refname)
            contents = self.read_ref(refname)
        logger.debug("followed %r through %r", name, refnames)
        return refnames, contents

    def __contains__(self, refname: bytes) -> bool:
        """Check if a reference exists."""
        if self.read_ref(refname):
            return True
        return False

    def __getitem__(self, name: bytes) -> ObjectID:
        """Get the SHA1 for a reference name.

        This method follows all symbolic references.
        """
        _, sha = self.follow(name)
        if sha is None:
            raise KeyError(name)
        return ObjectID(sha)


def resolve_head(
    controldir: str | os.PathLike[str],
    commondir: str | os.PathLike[str] | None = None,
) -> ObjectID:
    """Resolve HEAD in a control directory to a commit id.

    HEAD is either a literal object id (detached) or ``ref: <name>``; chains
    of symbolic references are followed.

    Args:
      controldir: Path of the control directory
      commondir: Shared control directory of a linked worktree, if different
    Returns: The 40-character hex id HEAD points at
    Raises:
      HeadNotFound: if HEAD or its target is missing or is not an object id
      SymrefLoop: if symbolic references form a cycle
    """
    if commondir is None:
        commondir = controldir
    refs = DiskRefsContainer(commondir, controldir)
    head_path = refs.refpath(HEADREF)
    if refs.read_loose_ref(HEADREF) is None:
        raise HeadNotFound(head_path, "no such file")
    try:
        refnames, value = refs.follow(HEADREF)
    except ValueError as exc:
        raise HeadNotFound(head_path, str(exc)) from exc
    target_path = refs.refpath(refnames[-1])
    if value is None:
        raise HeadNotFound(target_path, "reference target does not exist")
    if not valid_hexsha(value):
        raise HeadNotFound(target_path, f"invalid object id {value!r}")
    logger.debug("HEAD resolves to %s via %r", value.decode("ascii"), refnames)
    return ObjectID(value.lower())
