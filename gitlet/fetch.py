# fetch.py -- Fetch missing history from a remote
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

"""Copying missing history from a remote into a local repository.

A fetch runs through five phases:

1. Resolve: map the remote name to a location and open a :class:`Remote`.
2. Enumerate: list the remote's branches.
3. Transfer: walk the closure of all branch heads at once, pruning at
   objects already present locally, and store what is missing.
4. UpdateRefs: point ``refs/remotes/<remote>/<branch>`` at the remote
   heads.
5. Report: describe what changed as a :class:`FetchReport`.

Any error before UpdateRefs leaves every ref untouched.
"""

__all__ = [
    "FETCH_HEAD",
    "FetchReport",
    "FetchService",
    "RefChange",
]

from collections.abc import Callable

from . import client, log_utils
from .config import Config
from .errors import (
    ObjectFormatError,
    RefFormatError,
    RefUpdateConflict,
    UnsupportedOperationError,
)
from .graph import find_missing_objects, sort_dependencies_first
from .objects import COMMIT, ZERO_SHA, ObjectID
from .refs import Ref, check_ref_format, ref_name, remote_namespace
from .repo import BaseRepo

logger = log_utils.getLogger(__name__)

FETCH_HEAD = "FETCH_HEAD"


class RefChange:
    """A remote-tracking ref that a fetch created or moved.

    Attributes:
      name: Short branch name on the remote
      old_sha: Previous remote-tracking value, or None if there was none
      new_sha: Value the remote-tracking ref now points at
      remote_name: Name of the remote fetched from
    """

    NEW_BRANCH = "new branch"
    UPDATED = "updated"

    def __init__(
        self,
        name: Ref,
        old_sha: ObjectID | None,
        new_sha: ObjectID,
        remote_name: str,
    ) -> None:
        self.name = name
        self.old_sha = old_sha
        self.new_sha = new_sha
        self.remote_name = remote_name

    @property
    def kind(self) -> str:
        if self.old_sha is None:
            return self.NEW_BRANCH
        return self.UPDATED

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RefChange):
            return NotImplemented
        return (
            self.name == other.name
            and self.old_sha == other.old_sha
            and self.new_sha == other.new_sha
            and self.remote_name == other.remote_name
        )

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}({self.name!r}, {self.old_sha!r}, "
            f"{self.new_sha!r}, {self.remote_name!r})"
        )

    def __str__(self) -> str:
        name = self.name.decode("utf-8")
        return f"* [{self.kind}] {name} -> {self.remote_name}/{name}"


class FetchReport:
    """Outcome of a fetch.

    Attributes:
      location: Identifier of the remote, as shown on the ``From`` line
      count: Number of objects written to the local store
      changes: Created or moved remote-tracking refs, sorted by branch name
      refs: All remote branches that were fetched, mapped to their SHAs
    """

    def __init__(
        self,
        location: str,
        count: int,
        changes: list[RefChange],
        refs: dict[Ref, ObjectID] | None = None,
    ) -> None:
        self.location = location
        self.count = count
        self.changes = changes
        self.refs = refs if refs is not None else {}

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}({self.location!r}, {self.count!r}, "
            f"{self.changes!r})"
        )

    def __str__(self) -> str:
        lines = [f"From {self.location}", f"Count {self.count}"]
        lines.extend(str(change) for change in self.changes)
        return "".join(line + "\n" for line in lines)

    def fetch_head(self) -> bytes:
        """Render the contents of FETCH_HEAD for this fetch."""
        location = self.location.encode("utf-8")
        return b"".join(
            sha + b"\t\tbranch '" + name + b"' of " + location + b"\n"
            for name, sha in sorted(self.refs.items())
        )


class FetchService:
    """Fetch from the remotes configured in a repository.

    Args:
      repo: Local repository to fetch into
      get_remote: Function opening a :class:`gitlet.client.Remote` for a
        location, given the location and the repository configuration
      progress: Optional function receiving progress messages during the
        closure walk
    """

    def __init__(
        self,
        repo: BaseRepo,
        get_remote: Callable[..., client.Remote] = client.get_remote,
        progress: Callable[[str], None] | None = None,
    ) -> None:
        self.repo = repo
        self._get_remote = get_remote
        self.progress = progress

    def fetch(self, remote_name: str | None = None) -> FetchReport:
        """Fetch every branch of a remote.

        Args:
          remote_name: Name of a remote configured in the repository
        Returns: a FetchReport describing the transfer
        Raises:
          UnsupportedOperationError: if no remote name is given
          RemoteNotFoundError: if the remote is not configured, or its
            location holds no repository
          ObjectNotFoundError: if the remote lacks an object it refers to
          ObjectIntegrityError: if the remote hands out an object under the
            wrong sha
          ObjectFormatError: if a remote branch does not point at a commit
          RefFormatError: if the remote has a branch name that is not a
            valid ref name
          RefUpdateConflict: if a remote-tracking ref changed while the
            fetch was running
        """
        if not remote_name:
            raise UnsupportedOperationError()
        config = self.repo.get_config()
        remote = self._resolve(remote_name, config)
        try:
            refs = self._enumerate(remote, remote_name)
            count = self._transfer(remote, refs)
            location = remote.identifier()
        finally:
            remote.close()
        changes = self._update_refs(remote_name, refs)
        report = FetchReport(location, count, changes, refs)
        self.repo._put_named_file(FETCH_HEAD, report.fetch_head())
        logger.info(
            "fetched %d objects and %d ref changes from %s",
            count,
            len(changes),
            location,
        )
        return report

    def _resolve(self, remote_name: str, config: Config) -> client.Remote:
        location = self.repo.get_remote_location(remote_name)
        logger.debug("resolved remote %s to %s", remote_name, location)
        return self._get_remote(location, config=config)

    def _enumerate(self, remote: client.Remote, remote_name: str) -> dict[Ref, ObjectID]:
        refs = remote.list_refs()
        namespace = remote_namespace(remote_name)
        for name in refs:
            refname = ref_name(namespace, name)
            if not check_ref_format(refname):
                raise RefFormatError(refname)
        logger.debug("remote %s has %d branches", remote_name, len(refs))
        return refs

    def _transfer(self, remote: client.Remote, refs: dict[Ref, ObjectID]) -> int:
        object_store = self.repo.object_store
        wants = [refs[name] for name in sorted(refs)]
        missing = find_missing_objects(
            wants, object_store.contains, remote.fetch_object, self.progress
        )
        for name in sorted(refs):
            sha = refs[name]
            obj = missing[sha] if sha in missing else object_store[sha]
            if obj.type_name != COMMIT:
                raise ObjectFormatError(
                    f"remote branch {name.decode('utf-8', 'replace')} "
                    f"points at a {obj.type_name.decode('ascii')}, not a commit"
                )
        count = 0
        # A stored object must have its whole closure stored already.
        for sha in sort_dependencies_first(missing):
            if object_store.add_object(missing[sha]):
                count += 1
        logger.debug("stored %d of %d missing objects", count, len(missing))
        return count

    def _update_refs(
        self, remote_name: str, refs: dict[Ref, ObjectID]
    ) -> list[RefChange]:
        namespace = remote_namespace(remote_name)
        previous = self.repo.refs.list(namespace)
        changes = []
        for name in sorted(refs):
            new_sha = refs[name]
            old_sha = previous.get(name)
            if old_sha == new_sha:
                continue
            refname = ref_name(namespace, name)
            expected = old_sha if old_sha is not None else ZERO_SHA
            if not self.repo.refs.set_if_equals(refname, expected, new_sha):
                raise RefUpdateConflict(refname)
            changes.append(RefChange(name, old_sha, new_sha, remote_name))
        return changes
