# repo.py -- Repository access
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

"""Repository access.

A repository is a directory holding a ``.gitlet`` control directory with
``objects/``, ``refs/`` and ``config`` inside it. Repository objects are
plain values: any number of them can be open in one process, which is
what fetching from one local repository into another relies on.
"""

__all__ = [
    "BASE_DIRECTORIES",
    "CONTROLDIR",
    "OBJECTDIR",
    "REFSDIR",
    "BaseRepo",
    "MemoryRepo",
    "Repo",
]

import logging
import os
from types import TracebackType

from .config import ConfigFile
from .errors import RemoteNotFoundError, RepositoryNotFoundError
from .errors import CONTROLDIR_NAME as CONTROLDIR
from .file import open_locked
from .object_store import BaseObjectStore, DiskObjectStore, MemoryObjectStore
from .refs import (
    HEADS_NAMESPACE,
    REMOTES_NAMESPACE,
    DictRefsContainer,
    DiskRefsContainer,
    RefsContainer,
)

logger = logging.getLogger(__name__)

OBJECTDIR = "objects"
REFSDIR = "refs"
CONFIG_FILENAME = "config"
BASE_DIRECTORIES = [
    [OBJECTDIR],
    [REFSDIR],
    [REFSDIR, os.fsdecode(HEADS_NAMESPACE)],
    [REFSDIR, os.fsdecode(REMOTES_NAMESPACE)],
]


class BaseRepo:
    """Base class for a gitlet repository.

    Attributes:
      object_store: Dictionary-like object for accessing
        the objects
      refs: Dictionary-like object with the refs in this
        repository
    """

    def __init__(self, object_store: BaseObjectStore, refs: RefsContainer) -> None:
        self.object_store = object_store
        self.refs = refs

    def get_config(self) -> ConfigFile:
        """Retrieve the config object."""
        raise NotImplementedError(self.get_config)

    def get_named_file(self, path: str) -> bytes | None:
        """Get the contents of a file in the control dir.

        Args:
          path: The path to the file, relative to the control dir.
        Returns: The file contents, or None if the file does not exist.
        """
        raise NotImplementedError(self.get_named_file)

    def _put_named_file(self, path: str, contents: bytes) -> None:
        """Write a file to the control dir with the given name and contents."""
        raise NotImplementedError(self._put_named_file)

    def get_remote_location(self, remote_name: str) -> str:
        """Look up the location configured for a remote.

        Raises:
          RemoteNotFoundError: if no such remote is configured
        """
        try:
            url = self.get_config().get((b"remote", remote_name.encode("utf-8")), b"url")
        except KeyError:
            raise RemoteNotFoundError(remote_name) from None
        return url.decode("utf-8")

    def close(self) -> None:
        """Close any files opened by this repository."""

    def __enter__(self) -> "BaseRepo":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()


class Repo(BaseRepo):
    """A gitlet repository backed by local disk.

    To open an existing repository, call the constructor with the path of
    the directory holding ``.gitlet``; to search the ancestors of a
    directory, use :meth:`discover`. To create a new repository, use the
    :meth:`init` class method.
    """

    path: str
    object_store: DiskObjectStore
    refs: DiskRefsContainer

    def __init__(self, root: str | os.PathLike[str]) -> None:
        """Open a repository on disk.

        Raises:
          RepositoryNotFoundError: if root does not hold a repository
        """
        root = os.fspath(root)
        controldir = os.path.join(root, CONTROLDIR)
        if not os.path.isdir(os.path.join(controldir, OBJECTDIR)):
            raise RepositoryNotFoundError()
        self.path = root
        self._controldir = controldir
        fsync_object_files = self.get_config().get_boolean(
            b"core", b"fsyncObjectFiles", False
        )
        super().__init__(
            DiskObjectStore(
                os.path.join(controldir, OBJECTDIR),
                fsync_object_files=bool(fsync_object_files),
            ),
            DiskRefsContainer(controldir),
        )

    def __repr__(self) -> str:
        return f"<Repo at {self.path!r}>"

    @classmethod
    def discover(cls, start: str | os.PathLike[str] = ".") -> "Repo":
        """Iterate parent directories to discover a repository.

        Return a Repo object for the first parent directory that looks like a
        gitlet repository.

        Raises:
          RepositoryNotFoundError: if neither start nor any of its parents
            holds a repository
        """
        path = os.path.abspath(start)
        while True:
            try:
                return cls(path)
            except RepositoryNotFoundError:
                new_path, _tail = os.path.split(path)
                if new_path == path:  # Root reached
                    break
                path = new_path
        raise RepositoryNotFoundError()

    @classmethod
    def init(cls, path: str | os.PathLike[str], *, mkdir: bool = False) -> "Repo":
        """Create a new repository.

        Args:
          path: Path in which to create the repository
          mkdir: Whether to create the directory
        Returns: `Repo` instance
        """
        path = os.fspath(path)
        if mkdir:
            os.mkdir(path)
        controldir = os.path.join(path, CONTROLDIR)
        os.mkdir(controldir)
        for d in BASE_DIRECTORIES:
            os.mkdir(os.path.join(controldir, *d))
        ret = cls(path)
        ret._put_named_file(CONFIG_FILENAME, b"")
        logger.debug("initialized empty repository in %s", controldir)
        return ret

    def controldir(self) -> str:
        """Return the path of the control directory."""
        return self._controldir

    def get_named_file(self, path: str) -> bytes | None:
        try:
            with open_locked(os.path.join(self._controldir, path), "rb") as f:
                return f.read()
        except FileNotFoundError:
            return None

    def _put_named_file(self, path: str, contents: bytes) -> None:
        with open_locked(os.path.join(self._controldir, path), "wb") as f:
            f.write(contents)

    def get_config(self) -> ConfigFile:
        """Retrieve the config object, read fresh from disk."""
        path = os.path.join(self._controldir, CONFIG_FILENAME)
        try:
            return ConfigFile.from_path(path)
        except FileNotFoundError:
            ret = ConfigFile()
            ret.path = path
            return ret


class MemoryRepo(BaseRepo):
    """Repo that stores refs, objects, config and named files in memory."""

    def __init__(self) -> None:
        super().__init__(MemoryObjectStore(), DictRefsContainer({}))
        self._named_files: dict[str, bytes] = {}
        self._config = ConfigFile()

    def get_named_file(self, path: str) -> bytes | None:
        return self._named_files.get(path)

    def _put_named_file(self, path: str, contents: bytes) -> None:
        self._named_files[path] = contents

    def get_config(self) -> ConfigFile:
        return self._config
