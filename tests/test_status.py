# test_status.py -- tests for status.py
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

"""Tests for comparing flattened trees with the filesystem."""

import os

from gitpeek.errors import NotBlobError
from gitpeek.object_store import DiskObjectStore
from gitpeek.objects import BLOB, TREE
from gitpeek.status import (
    DELETED,
    MODIFIED,
    TreeChange,
    diff_against_filesystem,
    get_changed_paths,
    get_untracked_paths,
)

from . import TestCase
from .utils import write_loose_object


class StatusTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.store_dir = self.make_temp_dir()
        self.store = DiskObjectStore(self.store_dir)
        self.addCleanup(self.store.close)
        self.root = self.make_temp_dir()

    def write(self, path: str, contents: bytes) -> None:
        full_path = os.path.join(self.root, *path.split("/"))
        os.makedirs(os.path.dirname(full_path), exist_ok=True)
        with open(full_path, "wb") as f:
            f.write(contents)

    def test_no_tracked_files(self) -> None:
        self.write("a.txt", b"a")
        self.write("dir/b.txt", b"b")
        result = diff_against_filesystem(self.store, {}, self.root)
        self.assertEqual([], result.changes)
        self.assertEqual(["a.txt", "dir/b.txt"], result.untracked)

    def test_changed(self) -> None:
        same = write_loose_object(self.store_dir, BLOB, b"same")
        changed = write_loose_object(self.store_dir, BLOB, b"before")
        gone = write_loose_object(self.store_dir, BLOB, b"gone")
        self.write("same.txt", b"same")
        self.write("changed.txt", b"after!")
        flat_tree = {"same.txt": same, "changed.txt": changed, "gone.txt": gone}
        self.assertEqual(
            [TreeChange("changed.txt", MODIFIED), TreeChange("gone.txt", DELETED)],
            list(get_changed_paths(self.store, flat_tree, self.root)),
        )

    def test_deleted_blob_not_read(self) -> None:
        # The blob is only needed when the file exists on disk.
        missing = b"1" * 40
        self.assertEqual(
            [TreeChange("gone.txt", DELETED)],
            list(get_changed_paths(self.store, {"gone.txt": missing}, self.root)),
        )

    def test_not_a_blob(self) -> None:
        tree_id = write_loose_object(self.store_dir, TREE, b"")
        self.write("a.txt", b"a")
        self.assertRaises(
            NotBlobError,
            list,
            get_changed_paths(self.store, {"a.txt": tree_id}, self.root),
        )

    def test_untracked_skips_tracked_and_git(self) -> None:
        self.write("tracked.txt", b"t")
        self.write("untracked.txt", b"u")
        self.write(".git/config", b"")
        self.write("sub/.git", b"gitdir: elsewhere\n")
        self.write("sub/file.txt", b"f")
        self.assertEqual(
            ["sub/file.txt", "untracked.txt"],
            get_untracked_paths(self.root, {"tracked.txt": b"0" * 40}),
        )

    def test_untracked_descends_into_replaced_file(self) -> None:
        self.write("README/inner.txt", b"i")
        self.assertEqual(
            ["README/inner.txt"],
            get_untracked_paths(self.root, {"README": b"0" * 40}),
        )

    def test_untracked_skips_gitlinks(self) -> None:
        self.write("sub/inner.txt", b"i")
        self.write("other/inner.txt", b"o")
        flat_tree = {"sub": b"1" * 40}
        self.assertEqual(
            ["other/inner.txt"],
            get_untracked_paths(self.root, flat_tree, gitlinks={"sub"}),
        )

    def test_untracked_sorted(self) -> None:
        for name in ("b", "a/z", "a/b", "C"):
            self.write(name, b"x")
        self.assertEqual(["C", "a/b", "a/z", "b"], get_untracked_paths(self.root, {}))
