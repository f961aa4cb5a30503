# utils.py -- Test utilities
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

"""Utility functions common to gitlet tests."""

import shutil
import tempfile
from collections.abc import Mapping, Sequence

from gitlet.object_store import BaseObjectStore
from gitlet.objects import BLOB, TREE, Blob, Commit, ObjectID, Tree
from gitlet.refs import HEADS_NAMESPACE
from gitlet.repo import BaseRepo, Repo

# Fixed default so that object ids are stable between runs.
DEFAULT_TIMESTAMP = 1262304000


def make_tree(object_store: BaseObjectStore, files: Mapping[bytes, bytes]) -> ObjectID:
    """Store blobs and (nested) trees for a files mapping.

    Args:
      object_store: Store to add the objects to
      files: Dictionary mapping slash-separated paths to file contents
    Returns: the SHA of the root tree
    """
    subtrees: dict[bytes, dict[bytes, bytes]] = {}
    tree = Tree()
    for path, contents in files.items():
        name, sep, rest = path.partition(b"/")
        if sep:
            subtrees.setdefault(name, {})[rest] = contents
        else:
            blob = Blob(contents)
            object_store.add_object(blob)
            tree.add(name, BLOB, blob.id)
    for name, subfiles in subtrees.items():
        tree.add(name, TREE, make_tree(object_store, subfiles))
    object_store.add_object(tree)
    return tree.id


def make_commit(
    object_store: BaseObjectStore,
    files: Mapping[bytes, bytes],
    parents: Sequence[ObjectID] = (),
    message: bytes = b"",
    timestamp: int = DEFAULT_TIMESTAMP,
) -> ObjectID:
    """Store a commit of files and all the objects it refers to.

    Returns: the SHA of the new commit
    """
    commit = Commit()
    commit.tree = make_tree(object_store, files)
    commit.parents = list(parents)
    commit.timestamp = timestamp
    commit.message = message
    object_store.add_object(commit)
    return commit.id


def commit_files(
    repo: BaseRepo,
    files: Mapping[bytes, bytes],
    branch: bytes = b"master",
    message: bytes = b"",
    timestamp: int = DEFAULT_TIMESTAMP,
) -> ObjectID:
    """Commit files on top of a branch and advance the branch.

    Returns: the SHA of the new commit
    """
    parent = repo.refs.list(HEADS_NAMESPACE).get(branch)
    sha = make_commit(
        repo.object_store,
        files,
        parents=[parent] if parent is not None else [],
        message=message,
        timestamp=timestamp,
    )
    repo.refs.write(HEADS_NAMESPACE, branch, sha)
    return sha


def init_temp_repo(testcase) -> Repo:
    """Create a repository in a temporary directory removed after the test."""
    path = tempfile.mkdtemp()
    testcase.addCleanup(shutil.rmtree, path)
    repo = Repo.init(path)
    testcase.addCleanup(repo.close)
    return repo
