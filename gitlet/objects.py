# objects.py -- Access to base gitlet objects
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

"""Access to base gitlet objects.

There are three kinds of object: blobs (file content), trees (a sorted
mapping of entry names to ``(kind, sha)``) and commits (a tree, zero or
more parents, a timestamp and a message). An object's identity is the
SHA-1 of ``<kind> <length>\\0<payload>``, rendered as 40 hex digits.
"""

__all__ = [
    "BLOB",
    "COMMIT",
    "HEXSHA_LEN",
    "TREE",
    "ZERO_SHA",
    "Blob",
    "Commit",
    "ObjectID",
    "ShaFile",
    "Tree",
    "check_hexsha",
    "hash_object",
    "object_class",
    "object_header",
    "parse_object",
    "split_serialized_object",
    "valid_hexsha",
]

import binascii
import hashlib
from collections.abc import Iterator
from typing import ClassVar

from .errors import ObjectFormatError

ObjectID = bytes

HEXSHA_LEN = 40
ZERO_SHA = b"0" * HEXSHA_LEN

BLOB = b"blob"
TREE = b"tree"
COMMIT = b"commit"

# Header fields for commits
_TREE_HEADER = b"tree"
_PARENT_HEADER = b"parent"
_TIMESTAMP_HEADER = b"timestamp"


def valid_hexsha(hex: bytes | str) -> bool:
    """Check if a string is a valid hex SHA."""
    if len(hex) != HEXSHA_LEN:
        return False
    try:
        binascii.unhexlify(hex)
    except (TypeError, binascii.Error):
        return False
    if isinstance(hex, str):
        hex = hex.encode("ascii", "replace")
    return hex == hex.lower()


def check_hexsha(hex: bytes, error_msg: str) -> None:
    """Check if a string is a valid hex sha string.

    Args:
      hex: Hex string to check
      error_msg: Error message to use in exception
    Raises:
      ObjectFormatError: Raised when the string is not valid
    """
    if not valid_hexsha(hex):
        raise ObjectFormatError(f"{error_msg} {hex!r}")


def object_header(type_name: bytes, length: int) -> bytes:
    """Return an object header for the given kind and payload length."""
    return type_name + b" " + str(length).encode("ascii") + b"\0"


def hash_object(type_name: bytes, payload: bytes) -> ObjectID:
    """Compute the hex SHA an object with this kind and payload is stored as."""
    sha = hashlib.sha1(object_header(type_name, len(payload)))
    sha.update(payload)
    return sha.hexdigest().encode("ascii")


def object_class(type_name: bytes) -> type["ShaFile"]:
    """Get the object class corresponding to the given kind.

    Raises:
      ObjectFormatError: if the kind is unknown
    """
    try:
        return _TYPE_MAP[type_name]
    except KeyError:
        raise ObjectFormatError(f"unknown object type {type_name!r}") from None


def split_serialized_object(data: bytes) -> tuple[bytes, bytes]:
    """Split a serialized object into its kind and payload.

    Raises:
      ObjectFormatError: if the header is malformed or the declared length
        does not match the payload
    """
    header, sep, payload = data.partition(b"\0")
    if not sep:
        raise ObjectFormatError("object header is not NUL-terminated")
    try:
        type_name, size = header.split(b" ", 1)
    except ValueError:
        raise ObjectFormatError(f"malformed object header {header!r}") from None
    if not size.isdigit() or (len(size) > 1 and size.startswith(b"0")):
        raise ObjectFormatError(f"malformed object size {size!r}")
    if int(size) != len(payload):
        raise ObjectFormatError(
            f"object size mismatch: header says {int(size)}, got {len(payload)}"
        )
    object_class(type_name)
    return type_name, payload


def parse_object(data: bytes) -> "ShaFile":
    """Parse a serialized object (header followed by payload)."""
    return ShaFile.from_raw_string(*split_serialized_object(data))


class ShaFile:
    """A content-addressed gitlet object."""

    type_name: ClassVar[bytes]

    @staticmethod
    def from_raw_string(type_name: bytes, payload: bytes) -> "ShaFile":
        """Create an object of the given kind from its payload."""
        obj = object_class(type_name)()
        obj._deserialize(payload)
        return obj

    def _deserialize(self, payload: bytes) -> None:
        raise NotImplementedError(self._deserialize)

    def _serialize(self) -> bytes:
        raise NotImplementedError(self._serialize)

    def as_raw_string(self) -> bytes:
        """Return the payload of this object."""
        return self._serialize()

    def as_serialized_object(self) -> bytes:
        """Return the header and payload, as stored on disk."""
        payload = self._serialize()
        return object_header(self.type_name, len(payload)) + payload

    @property
    def id(self) -> ObjectID:
        """The hex SHA of this object."""
        return hash_object(self.type_name, self._serialize())

    def references(self) -> list[ObjectID]:
        """Return the SHAs this object refers to, in a stable order."""
        raise NotImplementedError(self.references)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.id.decode('ascii')}>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ShaFile):
            return NotImplemented
        return self.type_name == other.type_name and self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


class Blob(ShaFile):
    """A file's content."""

    type_name = BLOB

    def __init__(self, data: bytes = b"") -> None:
        self.data = data

    @classmethod
    def from_string(cls, data: bytes) -> "Blob":
        return cls(data)

    def _deserialize(self, payload: bytes) -> None:
        self.data = payload

    def _serialize(self) -> bytes:
        return self.data

    def references(self) -> list[ObjectID]:
        return []


def _check_entry_name(name: bytes) -> None:
    if not name or b"/" in name or b"\0" in name or b"\n" in name:
        raise ObjectFormatError(f"invalid tree entry name {name!r}")
    if name in (b".", b".."):
        raise ObjectFormatError(f"invalid tree entry name {name!r}")


class Tree(ShaFile):
    """A directory listing: entry name to ``(kind, sha)``."""

    type_name = TREE

    def __init__(self) -> None:
        self._entries: dict[bytes, tuple[bytes, ObjectID]] = {}

    def add(self, name: bytes, kind: bytes, hexsha: ObjectID) -> None:
        """Add an entry to the tree.

        Args:
          name: The name of the entry, as a single path component.
          kind: Either BLOB or TREE.
          hexsha: The hex SHA of the entry's object.
        """
        _check_entry_name(name)
        if kind not in (BLOB, TREE):
            raise ObjectFormatError(f"invalid tree entry kind {kind!r}")
        check_hexsha(hexsha, "invalid tree entry sha")
        self._entries[name] = (kind, hexsha)

    def __getitem__(self, name: bytes) -> tuple[bytes, ObjectID]:
        return self._entries[name]

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[bytes]:
        return iter(sorted(self._entries))

    def iteritems(self) -> Iterator[tuple[bytes, bytes, ObjectID]]:
        """Iterate over entries in name order.

        Returns: iterator over (name, kind, sha) tuples
        """
        for name in sorted(self._entries):
            kind, sha = self._entries[name]
            yield name, kind, sha

    def _deserialize(self, payload: bytes) -> None:
        self._entries = {}
        if payload and not payload.endswith(b"\n"):
            raise ObjectFormatError("tree is not newline-terminated")
        last_name = None
        for line in payload.split(b"\n")[:-1]:
            try:
                kind, sha, name = line.split(b" ", 2)
            except ValueError:
                raise ObjectFormatError(f"malformed tree entry {line!r}") from None
            # Entries must be strictly sorted by name.
            if last_name is not None and name <= last_name:
                raise ObjectFormatError(f"tree entries out of order at {name!r}")
            self.add(name, kind, sha)
            last_name = name

    def _serialize(self) -> bytes:
        return b"".join(
            kind + b" " + sha + b" " + name + b"\n"
            for name, kind, sha in self.iteritems()
        )

    def references(self) -> list[ObjectID]:
        return [sha for (name, kind, sha) in self.iteritems()]


class Commit(ShaFile):
    """A snapshot of a tree, with history."""

    type_name = COMMIT

    def __init__(self) -> None:
        self.tree: ObjectID = ZERO_SHA
        self.parents: list[ObjectID] = []
        self.timestamp = 0
        self.message = b""

    def _deserialize(self, payload: bytes) -> None:
        header, sep, message = payload.partition(b"\n\n")
        if not sep:
            raise ObjectFormatError("commit has no message separator")
        tree = None
        timestamp = None
        parents = []
        for line in header.split(b"\n"):
            field, _, value = line.partition(b" ")
            if field == _TREE_HEADER and tree is None and not parents:
                check_hexsha(value, "invalid tree sha")
                tree = value
            elif field == _PARENT_HEADER and tree is not None and timestamp is None:
                check_hexsha(value, "invalid parent sha")
                parents.append(value)
            elif field == _TIMESTAMP_HEADER and tree is not None and timestamp is None:
                try:
                    timestamp = int(value)
                except ValueError:
                    raise ObjectFormatError(f"invalid timestamp {value!r}") from None
                if str(timestamp).encode("ascii") != value:
                    raise ObjectFormatError(f"non-canonical timestamp {value!r}")
            else:
                raise ObjectFormatError(f"unexpected commit header {line!r}")
        if tree is None or timestamp is None:
            raise ObjectFormatError("commit is missing tree or timestamp")
        self.tree = tree
        self.parents = parents
        self.timestamp = timestamp
        self.message = message

    def _serialize(self) -> bytes:
        chunks = [_TREE_HEADER + b" " + self.tree + b"\n"]
        for parent in self.parents:
            chunks.append(_PARENT_HEADER + b" " + parent + b"\n")
        chunks.append(_TIMESTAMP_HEADER + b" " + str(self.timestamp).encode("ascii"))
        chunks.append(b"\n\n")
        chunks.append(self.message)
        return b"".join(chunks)

    def references(self) -> list[ObjectID]:
        return [self.tree, *self.parents]


OBJECT_CLASSES: tuple[type[ShaFile], ...] = (Blob, Tree, Commit)

_TYPE_MAP: dict[bytes, type[ShaFile]] = {cls.type_name: cls for cls in OBJECT_CLASSES}
