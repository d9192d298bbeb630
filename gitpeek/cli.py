#
# gitpeek - Read-only access to git repositories
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

"""Simple command-line interface to gitpeek.

Three commands are available: ``show`` prints a file as committed in HEAD,
``diff`` summarises how the working tree differs from HEAD and ``status``
prints only the counts.
"""

__all__ = [
    "Command",
    "cmd_diff",
    "cmd_show",
    "cmd_status",
    "commands",
    "main",
    "signal_int",
]

import argparse
import logging
import signal
import sys
import types
from collections.abc import Sequence
from typing import ClassVar

from . import porcelain
from .errors import (
    ApplyDeltaError,
    ChecksumMismatch,
    DeltaChainTooDeep,
    FileFormatException,
    HeadNotFound,
    NotGitRepository,
    ObjectMissing,
    UnsupportedExtension,
    UnsupportedPackIndexVersion,
    UnsupportedVersion,
    WrongObjectException,
)
from .log_utils import default_logging_config
from .refs import SymrefLoop
from .repo import NoWorkingTree

logger = logging.getLogger(__name__)

# Number of untracked paths listed by ``diff``.
UNTRACKED_SAMPLE_SIZE = 20

_FATAL_ERRORS = (
    porcelain.Error,
    ApplyDeltaError,
    ChecksumMismatch,
    DeltaChainTooDeep,
    FileFormatException,
    HeadNotFound,
    NoWorkingTree,
    NotGitRepository,
    ObjectMissing,
    SymrefLoop,
    UnsupportedExtension,
    UnsupportedPackIndexVersion,
    UnsupportedVersion,
    WrongObjectException,
)


def signal_int(signal: int, frame: types.FrameType | None) -> None:
    """Handle interrupt signal by exiting.

    Args:
        signal: Signal number
        frame: Current stack frame
    """
    sys.exit(1)


class Command:
    """A gitpeek subcommand."""

    description: ClassVar[str] = ""

    def run(self, args: Sequence[str]) -> int | None:
        """Run the command."""
        raise NotImplementedError(self.run)


class cmd_show(Command):
    """Print a file as committed in HEAD."""

    def run(self, args: Sequence[str]) -> None:
        """Execute the show command.

        Args:
            args: Command line arguments
        """
        parser = argparse.ArgumentParser(prog="gitpeek show")
        parser.add_argument("path", help="Path of the file in the repository")
        parser.add_argument(
            "--gitdir", default=".", help="Repository root (default: current directory)"
        )
        parsed_args = parser.parse_args(args)
        contents = porcelain.show(parsed_args.gitdir, parsed_args.path)
        sys.stdout.flush()
        sys.stdout.buffer.write(contents)
        sys.stdout.buffer.flush()


class cmd_diff(Command):
    """Summarise differences between the working tree and HEAD."""

    def run(self, args: Sequence[str]) -> None:
        """Execute the diff command.

        Args:
            args: Command line arguments
        """
        parser = argparse.ArgumentParser(prog="gitpeek diff")
        parser.add_argument("gitdir", nargs="?", default=".", help="Git directory")
        parsed_args = parser.parse_args(args)
        result = porcelain.diff(parsed_args.gitdir)
        sys.stdout.write(f"modified {len(result.changes)}\n")
        sys.stdout.write(f"untracked {len(result.untracked)}\n")
        if result.changes:
            sys.stdout.write("modified files:\n")
            for change in result.changes:
                sys.stdout.write(f"\t{change.status}: {change.path}\n")
        if result.untracked:
            sys.stdout.write("untracked sample:\n")
            for path in result.untracked[:UNTRACKED_SAMPLE_SIZE]:
                sys.stdout.write(f"\t{path}\n")


class cmd_status(Command):
    """Show the number of changed and untracked files."""

    def run(self, args: Sequence[str]) -> None:
        """Execute the status command.

        Args:
            args: Command line arguments
        """
        parser = argparse.ArgumentParser(prog="gitpeek status")
        parser.add_argument("gitdir", nargs="?", default=".", help="Git directory")
        parsed_args = parser.parse_args(args)
        counts = porcelain.status(parsed_args.gitdir)
        sys.stdout.write(f"modified {counts.modified}\n")
        sys.stdout.write(f"untracked {counts.untracked}\n")


commands: dict[str, type[Command]] = {
    "diff": cmd_diff,
    "show": cmd_show,
    "status": cmd_status,
}


def main(argv: Sequence[str] | None = None) -> int | None:
    """Main entry point for the gitpeek CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code or None
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = argparse.ArgumentParser(
        prog="gitpeek",
        description="Read-only access to git repositories",
        add_help=False,
    )
    parser.add_argument("--help", "-h", action="store_true", help="Show help")
    global_args, remaining = parser.parse_known_args(argv)

    if global_args.help or not remaining:
        parser = argparse.ArgumentParser(
            prog="gitpeek", description="Read-only access to git repositories"
        )
        parser.add_argument(
            "command",
            nargs="?",
            help=f"Command to run. Available: {', '.join(sorted(commands.keys()))}",
        )
        parser.print_help()
        return 1

    default_logging_config()

    cmd = remaining[0]
    cmd_args = remaining[1:]

    try:
        cmd_kls = commands[cmd]
    except KeyError:
        logger.fatal("No such subcommand: %s", cmd)
        return 1
    try:
        return cmd_kls().run(cmd_args)
    except _FATAL_ERRORS as exc:
        logger.fatal("fatal: %s", exc)
        return 1


def _main() -> None:
    signal.signal(signal.SIGINT, signal_int)

    sys.exit(main())


if __name__ == "__main__":
    _main()
