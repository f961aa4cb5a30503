# cli.py -- Command-line interface for gitlet
# Copyright (C) 2026 The Gitlet Authors
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# Gitlet is dual-licensed under the Apache License, Version 2.0 and the GNU
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

"""Simple command-line interface to gitlet.

Only ``fetch`` is implemented. Errors are printed to stderr; the exit
status is 128 for fatal errors and 1 for unsupported invocations, like
git's.
"""

__all__ = [
    "Command",
    "cmd_fetch",
    "commands",
    "main",
]

import argparse
import os
import signal
import sys
import types
from collections.abc import Sequence

from . import log_utils, porcelain
from .errors import (
    HTTPRemoteError,
    ObjectFormatError,
    ObjectIntegrityError,
    ObjectNotFoundError,
    RefFormatError,
    RefUpdateConflict,
    RemoteNotFoundError,
    RepositoryNotFoundError,
    UnsupportedOperationError,
)
from .file import FileLocked

logger = log_utils.getLogger(__name__)

FATAL_EXIT_STATUS = 128
UNSUPPORTED_EXIT_STATUS = 1

FATAL_ERRORS = (
    RepositoryNotFoundError,
    RemoteNotFoundError,
    ObjectNotFoundError,
    ObjectIntegrityError,
    ObjectFormatError,
    RefFormatError,
    RefUpdateConflict,
    HTTPRemoteError,
    FileLocked,
)


def signal_int(signal: int, frame: types.FrameType | None) -> None:
    """Handle interrupt signal by exiting."""
    sys.exit(1)


def _fatal_message(e: Exception) -> str:
    msg = str(e)
    if msg.startswith("fatal: "):
        return msg
    return f"fatal: {msg}"


class Command:
    """A gitlet subcommand."""

    def run(self, args: Sequence[str]) -> int | None:
        """Run the command."""
        raise NotImplementedError(self.run)


class cmd_fetch(Command):
    """Download objects and refs from another repository."""

    def run(self, args: Sequence[str]) -> int | None:
        parser = argparse.ArgumentParser(prog="gitlet fetch")
        parser.add_argument(
            "remote", nargs="?", default=None, help="Name of the remote to fetch from"
        )
        parsed_args = parser.parse_args(args)
        try:
            report = porcelain.fetch(os.getcwd(), parsed_args.remote)
        except UnsupportedOperationError as e:
            sys.stderr.write(f"{e}\n")
            return UNSUPPORTED_EXIT_STATUS
        except FATAL_ERRORS as e:
            sys.stderr.write(_fatal_message(e) + "\n")
            return FATAL_EXIT_STATUS
        sys.stdout.write(report)
        return None


commands: dict[str, type[Command]] = {
    "fetch": cmd_fetch,
}


def main(argv: Sequence[str] | None = None) -> int | None:
    """Main entry point for the gitlet CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code or None
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = argparse.ArgumentParser(
        prog="gitlet", description="Simple command-line interface to gitlet"
    )
    parser.add_argument(
        "command",
        help=f"Command to run. Available: {', '.join(sorted(commands.keys()))}",
    )
    parser.add_argument("args", nargs=argparse.REMAINDER)
    parsed_args = parser.parse_args(argv)

    log_utils.default_logging_config()

    try:
        cmd_kls = commands[parsed_args.command]
    except KeyError:
        logger.fatal("No such subcommand: %s", parsed_args.command)
        return 1
    return cmd_kls().run(parsed_args.args)


def _main() -> None:
    signal.signal(signal.SIGINT, signal_int)
    sys.exit(main())


if __name__ == "__main__":
    _main()
