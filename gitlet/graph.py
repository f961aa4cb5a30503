# graph.py -- Object graph reachability
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

"""Reachability over the object graph.

The object graph has an edge from every commit to its tree and parents and
from every tree to its entries; blobs are leaves. All traversals here use
an explicit stack so that long histories do not hit the recursion limit.
"""

__all__ = [
    "MissingObjectFinder",
    "find_missing_objects",
    "sort_dependencies_first",
]

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping

from .errors import ObjectIntegrityError
from .objects import ObjectID, ShaFile

logger = logging.getLogger(__name__)


class MissingObjectFinder:
    """Find the objects reachable from some heads that are not known locally.

    Iterating yields ``(sha, object)`` pairs, fetching each object through
    ``fetch_object``. A sha for which ``is_known`` returns True is pruned:
    neither it nor anything reachable only through it is fetched, which
    bounds the work to what the local side lacks regardless of how much
    history is shared.

    Args:
      wants: SHAs to start from
      is_known: Predicate telling whether a sha is already present locally
      fetch_object: Function returning the object for a sha; an object
        that does not hash to the requested sha raises ObjectIntegrityError
      progress: Optional function called with a status line every 1000
        objects and once at the end
    """

    def __init__(
        self,
        wants: Iterable[ObjectID],
        is_known: Callable[[ObjectID], bool],
        fetch_object: Callable[[ObjectID], ShaFile],
        progress: Callable[[str], None] | None = None,
    ) -> None:
        self._is_known = is_known
        self._fetch_object = fetch_object
        self._todo: list[ObjectID] = []
        self._seen: set[ObjectID] = set()
        for sha in wants:
            if sha not in self._seen:
                self._seen.add(sha)
                self._todo.append(sha)
        # Pop from the end but visit wants in the order given.
        self._todo.reverse()
        self._found = 0
        if progress is None:
            self.progress: Callable[[str], None] = lambda msg: None
        else:
            self.progress = progress

    def __iter__(self) -> Iterator[tuple[ObjectID, ShaFile]]:
        while self._todo:
            sha = self._todo.pop()
            if self._is_known(sha):
                continue
            obj = self._fetch_object(sha)
            if obj.id != sha:
                raise ObjectIntegrityError(sha, obj.id)
            self._found += 1
            if self._found % 1000 == 0:
                self.progress(f"counting objects: {self._found}\r")
            for ref in reversed(obj.references()):
                if ref not in self._seen:
                    self._seen.add(ref)
                    self._todo.append(ref)
            yield sha, obj
        self.progress(f"counting objects: {self._found}, done.\n")


def find_missing_objects(
    wants: Iterable[ObjectID],
    is_known: Callable[[ObjectID], bool],
    fetch_object: Callable[[ObjectID], ShaFile],
    progress: Callable[[str], None] | None = None,
) -> dict[ObjectID, ShaFile]:
    """Compute the closure of wants minus everything known locally.

    Returns: dictionary mapping each missing sha to its object, in the order
        the objects were discovered
    """
    missing = dict(MissingObjectFinder(wants, is_known, fetch_object, progress))
    logger.debug("closure walk found %d missing objects", len(missing))
    return missing


def sort_dependencies_first(objects: Mapping[ObjectID, ShaFile]) -> list[ObjectID]:
    """Order objects so each comes after every object it references.

    References to objects outside the mapping are ignored. Since the object
    graph is acyclic, this is a post-order walk.
    """
    order: list[ObjectID] = []
    done: set[ObjectID] = set()
    for root in objects:
        if root in done:
            continue
        stack: list[tuple[ObjectID, bool]] = [(root, False)]
        while stack:
            sha, expanded = stack.pop()
            if expanded:
                order.append(sha)
                continue
            if sha in done:
                continue
            done.add(sha)
            stack.append((sha, True))
            for ref in reversed(objects[sha].references()):
                if ref in objects and ref not in done:
                    stack.append((ref, False))
    return order
