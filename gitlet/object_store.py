# object_store.py -- Object store interface
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

"""Object store interface and its on-disk and in-memory implementations.

The store only grows: objects are written once under the hash of their
content and are never modified or removed.
"""

__all__ = [
    "BaseObjectStore",
    "DiskObjectStore",
    "MemoryObjectStore",
]

import logging
import os
import tempfile
from collections.abc import Iterable, Iterator

from .errors import ObjectIntegrityError, ObjectNotFoundError
from .file import ensure_dir_exists
from .objects import (
    ObjectID,
    ShaFile,
    hash_object,
    object_header,
    split_serialized_object,
    valid_hexsha,
)

logger = logging.getLogger(__name__)

# Object files are never rewritten once in place.
OBJECT_MODE = 0o444


class BaseObjectStore:
    """Object store interface."""

    def contains(self, sha: ObjectID) -> bool:
        """Check if a particular object is present, without reading it."""
        raise NotImplementedError(self.contains)

    def __contains__(self, sha: object) -> bool:
        """Check if a particular object is present by SHA."""
        if not isinstance(sha, bytes):
            return False
        return self.contains(sha)

    def __iter__(self) -> Iterator[ObjectID]:
        """Iterate over the SHAs that are present in this store."""
        raise NotImplementedError(self.__iter__)

    def get_raw(self, sha: ObjectID) -> tuple[bytes, bytes]:
        """Obtain the kind and payload of an object.

        Args:
          sha: hex sha of the object.
        Returns: tuple with kind and payload
        Raises:
          ObjectNotFoundError: if the object is not present
          ObjectIntegrityError: if the stored content does not hash to sha
        """
        raise NotImplementedError(self.get_raw)

    def _add_raw(self, sha: ObjectID, type_name: bytes, payload: bytes) -> bool:
        """Store an object whose sha has already been computed.

        Returns: True if the object was written, False if it was present
        """
        raise NotImplementedError(self._add_raw)

    def __getitem__(self, sha: ObjectID) -> ShaFile:
        """Obtain an object by SHA."""
        type_name, payload = self.get_raw(sha)
        return ShaFile.from_raw_string(type_name, payload)

    def has(self, sha: ObjectID) -> bool:
        """Check whether the object is present."""
        return sha in self

    def get(self, sha: ObjectID) -> tuple[bytes, bytes]:
        """Return ``(kind, payload)`` for the object stored under sha."""
        return self.get_raw(sha)

    def put(self, type_name: bytes, payload: bytes) -> ObjectID:
        """Store a payload of the given kind.

        Storing content that is already present is a no-op.

        Args:
          type_name: The object kind (b"blob", b"tree" or b"commit")
          payload: The serialized payload
        Returns: the hex sha the content is stored under
        Raises:
          ObjectFormatError: if the payload does not parse as that kind
        """
        # Refuse to store something that could never be read back.
        ShaFile.from_raw_string(type_name, payload)
        sha = hash_object(type_name, payload)
        self._add_raw(sha, type_name, payload)
        return sha

    def add_object(self, obj: ShaFile) -> bool:
        """Add a single object to this object store.

        Returns: True if the object was newly written
        """
        return self._add_raw(obj.id, obj.type_name, obj.as_raw_string())

    def add_objects(self, objects: Iterable[ShaFile]) -> int:
        """Add a set of objects to this object store.

        Returns: the number of objects that were newly written
        """
        return sum(1 for obj in objects if self.add_object(obj))


class DiskObjectStore(BaseObjectStore):
    """Object store that keeps one file per object in a directory."""

    def __init__(self, path: str | os.PathLike[str], fsync_object_files: bool = False) -> None:
        """Open an object store.

        Args:
          path: Path of the object directory.
          fsync_object_files: Whether to fsync object files before they are
            moved into place.
        """
        self.path = os.fspath(path)
        self.fsync_object_files = fsync_object_files

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}({self.path!r})>"

    @classmethod
    def init(cls, path: str | os.PathLike[str]) -> "DiskObjectStore":
        """Create a new, empty object directory."""
        ensure_dir_exists(path)
        return cls(path)

    def _get_shafile_path(self, sha: ObjectID) -> str:
        # Keys become file names; anything but a hex sha could escape the
        # object directory.
        if not valid_hexsha(sha):
            raise ValueError(f"invalid sha {sha!r}")
        return os.path.join(self.path, sha.decode("ascii"))

    def contains(self, sha: ObjectID) -> bool:
        if not valid_hexsha(sha):
            return False
        return os.path.isfile(self._get_shafile_path(sha))

    def __iter__(self) -> Iterator[ObjectID]:
        for name in sorted(os.listdir(self.path)):
            if valid_hexsha(name):
                yield name.encode("ascii")

    def get_raw(self, sha: ObjectID) -> tuple[bytes, bytes]:
        try:
            path = self._get_shafile_path(sha)
        except ValueError:
            raise ObjectNotFoundError(sha) from None
        try:
            with open(path, "rb") as f:
                data = f.read()
        except FileNotFoundError:
            raise ObjectNotFoundError(sha) from None
        type_name, payload = split_serialized_object(data)
        actual = hash_object(type_name, payload)
        if actual != sha:
            raise ObjectIntegrityError(sha, actual)
        return type_name, payload

    def _add_raw(self, sha: ObjectID, type_name: bytes, payload: bytes) -> bool:
        path = self._get_shafile_path(sha)
        if os.path.exists(path):
            return False
        # Readers must never see a partial object.
        fd, tmp_path = tempfile.mkstemp(prefix="tmp_obj_", dir=self.path)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(object_header(type_name, len(payload)))
                f.write(payload)
                f.flush()
                if self.fsync_object_files:
                    os.fsync(f.fileno())
            os.chmod(tmp_path, OBJECT_MODE)
            os.replace(tmp_path, path)
        except BaseException:
            try:
                os.remove(tmp_path)
            except FileNotFoundError:
                pass
            raise
        logger.debug("wrote object %s", sha.decode("ascii"))
        return True


class MemoryObjectStore(BaseObjectStore):
    """Object store that keeps all objects in memory."""

    def __init__(self) -> None:
        self._data: dict[ObjectID, tuple[bytes, bytes]] = {}

    def contains(self, sha: ObjectID) -> bool:
        return sha in self._data

    def __iter__(self) -> Iterator[ObjectID]:
        return iter(list(self._data))

    def get_raw(self, sha: ObjectID) -> tuple[bytes, bytes]:
        try:
            return self._data[sha]
        except KeyError:
            raise ObjectNotFoundError(sha) from None

    def _add_raw(self, sha: ObjectID, type_name: bytes, payload: bytes) -> bool:
        if sha in self._data:
            return False
        self._data[sha] = (type_name, payload)
        return True
