# test_cli.py -- tests for gitpeek cli
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

"""Tests for gitpeek.cli."""

import io
import logging
import os
import sys

from gitpeek import cli
from gitpeek.log_utils import _GITPEEK_LOGGER

from . import TestCase
from .utils import make_repo


class MockStream:
    """Text stream that also exposes the bytes written through ``buffer``."""

    def __init__(self) -> None:
        self.buffer = io.BytesIO()

    def write(self, data: str) -> int:
        return self.buffer.write(data.encode("utf-8"))

    def flush(self) -> None:
        pass

    def getvalue(self) -> bytes:
        return self.buffer.getvalue()


class GitpeekCliTestCase(TestCase):
    """Base class for CLI tests."""

    def setUp(self) -> None:
        super().setUp()
        self.repo_path = self.make_temp_dir()
        make_repo(
            self.repo_path,
            {"hello.txt": b"hello\n", "bin/data": b"\x00\xff\x10", "docs/a.txt": b"a\n"},
        )
        # main() configures logging; keep that from leaking between tests.
        root_logger = logging.getLogger()
        saved = (list(root_logger.handlers), root_logger.level)
        saved_gitpeek = list(_GITPEEK_LOGGER.handlers)

        def restore() -> None:
            root_logger.handlers, root_logger.level = saved
            _GITPEEK_LOGGER.handlers = saved_gitpeek

        self.addCleanup(restore)
        root_logger.handlers = []

    def abspath(self, path: str) -> str:
        return os.path.join(self.repo_path, *path.split("/"))

    def _run_cli(self, *args: str) -> tuple[int | None, bytes, bytes]:
        """Run a command in the repository and capture its output."""
        old_stdout = sys.stdout
        old_stderr = sys.stderr
        old_cwd = os.getcwd()
        stdout = MockStream()
        stderr = MockStream()
        try:
            sys.stdout = stdout  # type: ignore[assignment]
            sys.stderr = stderr  # type: ignore[assignment]
            os.chdir(self.repo_path)
            result = cli.main(list(args))
        finally:
            sys.stdout = old_stdout
            sys.stderr = old_stderr
            os.chdir(old_cwd)
        return result, stdout.getvalue(), stderr.getvalue()


class HelpTests(GitpeekCliTestCase):
    def test_no_arguments(self) -> None:
        result, stdout, _ = self._run_cli()
        self.assertEqual(1, result)
        self.assertIn(b"diff, show, status", stdout)

    def test_help(self) -> None:
        result, stdout, _ = self._run_cli("--help")
        self.assertEqual(1, result)
        self.assertIn(b"usage: gitpeek", stdout)

    def test_unknown_command(self) -> None:
        with self.assertLogs("gitpeek.cli", level="CRITICAL") as cm:
            result, _, _ = self._run_cli("frobnicate")
        self.assertEqual(1, result)
        self.assertEqual(["No such subcommand: frobnicate"], [r.getMessage() for r in cm.records])


class ShowCommandTest(GitpeekCliTestCase):
    def test_show(self) -> None:
        result, stdout, _ = self._run_cli("show", "hello.txt")
        self.assertIsNone(result)
        self.assertEqual(b"hello\n", stdout)

    def test_show_binary(self) -> None:
        _, stdout, _ = self._run_cli("show", "bin/data")
        self.assertEqual(b"\x00\xff\x10", stdout)

    def test_show_gitdir(self) -> None:
        other = self.make_temp_dir()
        make_repo(other, {"hello.txt": b"elsewhere\n"})
        _, stdout, _ = self._run_cli("show", "--gitdir", other, "hello.txt")
        self.assertEqual(b"elsewhere\n", stdout)

    def test_show_missing(self) -> None:
        with self.assertLogs("gitpeek.cli", level="CRITICAL") as cm:
            result, stdout, _ = self._run_cli("show", "nope.txt")
        self.assertEqual(1, result)
        self.assertEqual(b"", stdout)
        self.assertEqual(
            ["fatal: File not found in HEAD"], [r.getMessage() for r in cm.records]
        )

    def test_not_a_repository(self) -> None:
        self.repo_path = self.make_temp_dir()
        with self.assertLogs("gitpeek.cli", level="CRITICAL") as cm:
            result, _, _ = self._run_cli("show", "hello.txt")
        self.assertEqual(1, result)
        self.assertIn("No git repository was found", cm.records[0].getMessage())

    def test_malformed_config(self) -> None:
        with open(os.path.join(self.repo_path, ".git", "config"), "ab") as f:
            f.write(b"[gitpeek]\n\tmaxDeltaChainDepth = lots\n")
        with self.assertLogs("gitpeek.cli", level="CRITICAL") as cm:
            result, stdout, _ = self._run_cli("show", "hello.txt")
        self.assertEqual(1, result)
        self.assertEqual(b"", stdout)
        self.assertEqual(
            "fatal: not a valid integer: b'lots'", cm.records[0].getMessage()
        )

    def test_unparseable_config(self) -> None:
        with open(os.path.join(self.repo_path, ".git", "config"), "ab") as f:
            f.write(b"[broken\n")
        with self.assertLogs("gitpeek.cli", level="CRITICAL") as cm:
            result, _, _ = self._run_cli("status")
        self.assertEqual(1, result)
        self.assertEqual("fatal: expected trailing ]", cm.records[0].getMessage())


class DiffCommandTest(GitpeekCliTestCase):
    def test_clean(self) -> None:
        result, stdout, _ = self._run_cli("diff")
        self.assertIsNone(result)
        self.assertEqual(b"modified 0\nuntracked 0\n", stdout)

    def test_changes(self) -> None:
        os.remove(self.abspath("docs/a.txt"))
        with open(self.abspath("hello.txt"), "wb") as f:
            f.write(b"hellO\n")
        with open(self.abspath("new.txt"), "wb") as f:
            f.write(b"new\n")
        _, stdout, _ = self._run_cli("diff")
        self.assertEqual(
            b"modified 2\n"
            b"untracked 1\n"
            b"modified files:\n"
            b"\tdeleted: docs/a.txt\n"
            b"\tmodified: hello.txt\n"
            b"untracked sample:\n"
            b"\tnew.txt\n",
            stdout,
        )

    def test_untracked_sample_limited(self) -> None:
        for i in range(cli.UNTRACKED_SAMPLE_SIZE + 5):
            with open(self.abspath(f"u{i:02d}.txt"), "wb") as f:
                f.write(b"x")
        _, stdout, _ = self._run_cli("diff")
        lines = stdout.decode("utf-8").splitlines()
        self.assertEqual(f"untracked {cli.UNTRACKED_SAMPLE_SIZE + 5}", lines[1])
        self.assertEqual("untracked sample:", lines[2])
        self.assertEqual(cli.UNTRACKED_SAMPLE_SIZE, len(lines) - 3)
        self.assertEqual("\tu00.txt", lines[3])

    def test_explicit_gitdir(self) -> None:
        other = self.make_temp_dir()
        make_repo(other, {"a.txt": b"a\n"})
        os.remove(os.path.join(other, "a.txt"))
        _, stdout, _ = self._run_cli("diff", other)
        self.assertTrue(stdout.startswith(b"modified 1\nuntracked 0\n"))

    def test_unborn_head(self) -> None:
        with open(os.path.join(self.repo_path, ".git", "HEAD"), "wb") as f:
            f.write(b"ref: refs/heads/unborn\n")
        with self.assertLogs("gitpeek.cli", level="CRITICAL") as cm:
            result, _, _ = self._run_cli("diff")
        self.assertEqual(1, result)
        self.assertIn("unable to resolve HEAD", cm.records[0].getMessage())


class StatusCommandTest(GitpeekCliTestCase):
    def test_clean(self) -> None:
        result, stdout, _ = self._run_cli("status")
        self.assertIsNone(result)
        self.assertEqual(b"modified 0\nuntracked 0\n", stdout)

    def test_counts(self) -> None:
        os.remove(self.abspath("hello.txt"))
        os.symlink("docs/a.txt", self.abspath("hello.txt"))
        with open(self.abspath("docs/new.txt"), "wb") as f:
            f.write(b"new\n")
        _, stdout, _ = self._run_cli("status")
        self.assertEqual(b"modified 1\nuntracked 1\n", stdout)
