# porcelain.py -- Porcelain-like layer on top of gitlet
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

"""Simple wrapper that provides porcelain-like functions on top of gitlet.

Currently implemented:
 * fetch
 * init
 * remote{_add}

These functions are meant to behave similarly to the git subcommands.
Differences in behaviour are considered bugs.

Functions should generally accept both unicode strings and bytestrings
"""

__all__ = [
    "fetch",
    "init",
    "open_repo_closing",
    "remote_add",
]

import os
from collections.abc import Iterator
from contextlib import AbstractContextManager, closing, contextmanager
from typing import TypeVar

from .errors import RemoteExists
from .fetch import FetchService
from .repo import BaseRepo, Repo

T = TypeVar("T", bound=BaseRepo)

RepoPath = str | os.PathLike[str] | BaseRepo

DEFAULT_ENCODING = "utf-8"


@contextmanager
def _noop_context_manager(obj: T) -> Iterator[T]:
    """Context manager that has the same api as closing but does nothing."""
    yield obj


def open_repo_closing(path_or_repo: RepoPath) -> AbstractContextManager[BaseRepo]:
    """Open an argument that can be a repository or a path for a repository.

    A path is searched upwards for the enclosing repository, and the
    returned context manager closes it on exit. A repository object is
    passed through untouched.
    """
    if isinstance(path_or_repo, BaseRepo):
        return _noop_context_manager(path_or_repo)
    return closing(Repo.discover(path_or_repo))


def init(path: str | os.PathLike[str] = ".", mkdir: bool = False) -> Repo:
    """Create a new gitlet repository.

    Args:
      path: Path to repository.
      mkdir: Whether to create the directory first.
    Returns: A Repo instance
    """
    return Repo.init(path, mkdir=mkdir)


def remote_add(repo: RepoPath, name: bytes | str, url: bytes | str) -> None:
    """Add a remote.

    Args:
      repo: Path to the repository
      name: Remote name
      url: Remote URL
    Raises:
      RemoteExists: if a remote with this name is already configured
    """
    if not isinstance(name, bytes):
        name = name.encode(DEFAULT_ENCODING)
    if not isinstance(url, bytes):
        url = url.encode(DEFAULT_ENCODING)
    with open_repo_closing(repo) as r:
        c = r.get_config()
        section = (b"remote", name)
        if c.has_section(section):
            raise RemoteExists(name.decode(DEFAULT_ENCODING))
        c.set(section, b"url", url)
        if c.path is not None:
            c.write_to_path()


def fetch(repo: RepoPath = ".", remote_name: str | None = None) -> str:
    """Fetch objects from a remote.

    Args:
      repo: Path inside the repository, or a repository object
      remote_name: Name of the remote to fetch from
    Returns: the fetch report text
    Raises:
      RepositoryNotFoundError: if repo is a path outside any repository
      RemoteNotFoundError: if the remote is not configured or unreachable
      UnsupportedOperationError: if no remote name is given
    """
    with open_repo_closing(repo) as r:
        return str(FetchService(r).fetch(remote_name))
