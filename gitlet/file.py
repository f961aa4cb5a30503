# file.py -- Safe access to gitlet files
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

"""Safe access to gitlet files.

Writes follow the git lock-file protocol: all writes to a file ``foo`` go
to ``foo.lock`` in the same directory, and the lock file is renamed over
``foo`` when it is closed. Readers therefore never see a half-written
file, and two writers cannot hold the same lock.
"""

__all__ = [
    "FileLocked",
    "LockedFile",
    "ensure_dir_exists",
    "open_locked",
]

import os
import warnings
from types import TracebackType
from typing import IO


def ensure_dir_exists(dirname: str | os.PathLike[str]) -> None:
    """Ensure a directory exists, creating if necessary."""
    try:
        os.makedirs(dirname)
    except FileExistsError:
        pass


class FileLocked(Exception):
    """File is already locked."""

    def __init__(self, filename: str, lockfilename: str) -> None:
        """Initialize FileLocked.

        Args:
          filename: Name of the file that is locked
          lockfilename: Name of the lock file
        """
        self.filename = filename
        self.lockfilename = lockfilename
        super().__init__(f"Unable to create '{lockfilename}': File exists.")


def open_locked(
    filename: str | os.PathLike[str],
    mode: str = "rb",
    mask: int = 0o644,
    fsync: bool = True,
) -> "IO[bytes] | LockedFile":
    """Open a file, obeying the lock-file protocol for writes.

    Only read-only and write-only binary modes are supported.

    Args:
      filename: Path to the file
      mode: File mode ('rb' or 'wb')
      mask: File mask for the created file
      fsync: Whether to call fsync() before renaming into place
    Returns: a builtin file object for reads, a LockedFile for writes
    """
    if "a" in mode:
        raise OSError("append mode not supported for gitlet files")
    if "+" in mode:
        raise OSError("read/write mode not supported for gitlet files")
    if "b" not in mode:
        raise OSError("text mode not supported for gitlet files")
    if "w" in mode:
        return LockedFile(filename, mask=mask, fsync=fsync)
    return open(filename, mode)


class LockedFile:
    """File that follows the lock-file protocol for writes.

    Note: You *must* call close() or abort() on a LockedFile for the lock to
        be released. Using it as a context manager does that for you, and
        aborts if the block raised.
    """

    def __init__(
        self, filename: str | os.PathLike[str], mask: int = 0o644, fsync: bool = True
    ) -> None:
        self._filename = os.fspath(filename)
        self._lockfilename = self._filename + ".lock"
        self._fsync = fsync
        try:
            fd = os.open(
                self._lockfilename,
                os.O_RDWR | os.O_CREAT | os.O_EXCL | getattr(os, "O_BINARY", 0),
                mask,
            )
        except FileExistsError as exc:
            raise FileLocked(self._filename, self._lockfilename) from exc
        self._file = os.fdopen(fd, "wb")
        self._closed = False

    @property
    def name(self) -> str:
        return self._filename

    @property
    def closed(self) -> bool:
        """Return whether the file is closed."""
        return self._closed

    def write(self, data: bytes) -> int:
        return self._file.write(data)

    def abort(self) -> None:
        """Close and discard the lockfile without overwriting the target.

        If the file is already closed, this is a no-op.
        """
        if self._closed:
            return
        self._file.close()
        try:
            os.remove(self._lockfilename)
        except FileNotFoundError:
            # Already renamed into place or removed by someone else.
            pass
        self._closed = True

    def close(self) -> None:
        """Close this file, renaming the lockfile over the original.

        Raises:
          OSError: if the original file could not be replaced. The lock file
            is removed in that case.
        """
        if self._closed:
            return
        self._file.flush()
        if self._fsync:
            os.fsync(self._file.fileno())
        self._file.close()
        try:
            os.replace(self._lockfilename, self._filename)
        finally:
            self.abort()

    def __del__(self) -> None:
        if not getattr(self, "_closed", True):
            warnings.warn(f"unclosed {self!r}", ResourceWarning, stacklevel=2)
            self.abort()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._filename!r})"

    def __enter__(self) -> "LockedFile":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            self.abort()
        else:
            self.close()
