# errors.py -- errors for gitlet
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

"""Gitlet-related exception classes.

The messages of the errors raised by a fetch are relied upon verbatim by
scripts and tests; do not change their text.
"""

from typing import Union

CONTROLDIR_NAME = ".gitlet"


class RepositoryNotFoundError(Exception):
    """Indicates that no gitlet repository was found."""

    def __init__(self, *args: object) -> None:
        """Initialize a RepositoryNotFoundError.

        Args:
            *args: Optional message override; defaults to the git-style
              "not a repository" message.
        """
        if not args:
            args = (
                "fatal: Not a gitlet repository (or any of the parent "
                f"directories): {CONTROLDIR_NAME}",
            )
        Exception.__init__(self, *args)


class RemoteNotFoundError(Exception):
    """Indicates that a remote name (or location) does not resolve."""

    def __init__(self, name: str) -> None:
        """Initialize a RemoteNotFoundError.

        Args:
            name: The remote name or location that could not be resolved.
        """
        self.name = name
        Exception.__init__(
            self, f"fatal: '{name}' does not appear to be a git repository"
        )


class RemoteExists(Exception):
    """Raised when adding a remote that is already configured."""

    def __init__(self, name: str) -> None:
        self.name = name
        Exception.__init__(self, f"fatal: remote {name} already exists.")


class UnsupportedOperationError(Exception):
    """The operation was invoked in a shape this tool does not support."""

    def __init__(self, *args: object) -> None:
        if not args:
            args = ("unsupported",)
        Exception.__init__(self, *args)


class ObjectNotFoundError(Exception):
    """Indicates that a requested object is missing from a store."""

    def __init__(self, sha: bytes) -> None:
        """Initialize an ObjectNotFoundError.

        Args:
            sha: The hex SHA of the missing object.
        """
        self.sha = sha
        Exception.__init__(
            self, f"{sha.decode('ascii', 'replace')} is not in the object store"
        )


class ObjectIntegrityError(Exception):
    """Stored content does not hash to the key it is stored under."""

    def __init__(self, expected: Union[bytes, str], got: Union[bytes, str]) -> None:
        """Initialize an ObjectIntegrityError.

        Args:
            expected: The SHA the object was requested by.
            got: The SHA its content actually hashes to.
        """
        if isinstance(expected, bytes):
            expected = expected.decode("ascii")
        if isinstance(got, bytes):
            got = got.decode("ascii")
        self.expected = expected
        self.got = got
        Exception.__init__(self, f"Checksum mismatch: Expected {expected}, got {got}")


class ObjectFormatError(Exception):
    """Indicates an error parsing a serialized object."""


class RefNotFoundError(Exception):
    """Indicates that a ref does not exist."""

    def __init__(self, name: bytes) -> None:
        self.name = name
        Exception.__init__(self, f"ref {name.decode('utf-8', 'replace')} not found")


class RefFormatError(Exception):
    """Indicates an invalid ref name."""

    def __init__(self, name: bytes) -> None:
        self.name = name
        Exception.__init__(
            self, f"invalid ref name {name.decode('utf-8', 'replace')!r}"
        )


class RefUpdateConflict(Exception):
    """A ref changed between reading and updating it."""

    def __init__(self, name: bytes) -> None:
        self.name = name
        Exception.__init__(
            self,
            f"ref {name.decode('utf-8', 'replace')} was updated concurrently",
        )


class HTTPRemoteError(Exception):
    """Transport-level failure talking to an HTTP remote."""
