# test_fetch.py -- Tests for fetching from a remote
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

"""Tests for fetching from a remote."""

import os
import shutil
import tempfile
import threading

from gitlet.client import Remote, RepoRemote
from gitlet.errors import (
    ObjectFormatError,
    ObjectIntegrityError,
    ObjectNotFoundError,
    RefFormatError,
    RefUpdateConflict,
    RemoteNotFoundError,
    UnsupportedOperationError,
)
from gitlet.fetch import FetchReport, FetchService, RefChange
from gitlet.objects import Blob, Tree
from gitlet.refs import HEADS_NAMESPACE, DictRefsContainer, remote_namespace
from gitlet.repo import MemoryRepo, Repo
from gitlet.web import make_server

from . import TestCase
from .utils import commit_files, init_temp_repo

ORIGIN = remote_namespace("origin")


class FetchTestCase(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.remote = init_temp_repo(self)
        self.local = init_temp_repo(self)
        config = self.local.get_config()
        config.set((b"remote", b"origin"), b"url", self.remote.path.encode("utf-8"))
        config.write_to_path()

    def fetch(self, remote_name: str | None = "origin") -> FetchReport:
        return FetchService(self.local).fetch(remote_name)

    def object_bytes(self, repo: Repo, sha: bytes) -> bytes:
        with open(os.path.join(repo.object_store.path, sha.decode("ascii")), "rb") as f:
            return f.read()

    def assertObjectsCopied(self) -> None:
        remote_shas = sorted(self.remote.object_store)
        self.assertEqual(remote_shas, sorted(self.local.object_store))
        for sha in remote_shas:
            self.assertEqual(
                self.object_bytes(self.remote, sha), self.object_bytes(self.local, sha)
            )


class FetchScenarioTests(FetchTestCase):
    def test_single_commit(self) -> None:
        master = commit_files(self.remote, {b"a.txt": b"hello\n", b"b.txt": b"world\n"})
        report = self.fetch()
        self.assertEqual(4, report.count)
        self.assertEqual(
            f"From {self.remote.path}\n"
            "Count 4\n"
            "* [new branch] master -> origin/master\n",
            str(report),
        )
        self.assertObjectsCopied()
        self.assertEqual(master, self.local.refs.read(ORIGIN, b"master"))

    def test_two_commits(self) -> None:
        c1 = commit_files(self.remote, {b"a.txt": b"one\n", b"b.txt": b"two\n"})
        c2 = commit_files(self.remote, {b"a.txt": b"three\n", b"b.txt": b"four\n"})
        report = self.fetch()
        self.assertEqual(8, report.count)
        self.assertIn(c1, self.local.object_store)
        self.assertIn(c2, self.local.object_store)
        self.assertObjectsCopied()
        self.assertEqual(c2, self.local.refs.read(ORIGIN, b"master"))

    def test_branches_share_history(self) -> None:
        master = commit_files(self.remote, {b"a.txt": b"hello\n", b"b.txt": b"world\n"})
        self.remote.refs.write(HEADS_NAMESPACE, b"other2", master)
        self.remote.refs.write(HEADS_NAMESPACE, b"other1", master)
        report = self.fetch()
        self.assertEqual(
            f"From {self.remote.path}\n"
            "Count 4\n"
            "* [new branch] master -> origin/master\n"
            "* [new branch] other1 -> origin/other1\n"
            "* [new branch] other2 -> origin/other2\n",
            str(report),
        )
        self.assertEqual(
            {b"master": master, b"other1": master, b"other2": master},
            self.local.refs.list(ORIGIN),
        )

    def test_diverging_branches_counted_once(self) -> None:
        base = commit_files(self.remote, {b"a": b"1", b"b": b"2"})
        commit_files(self.remote, {b"a": b"3", b"b": b"2"}, branch=b"master")
        self.remote.refs.write(HEADS_NAMESPACE, b"feature", base)
        commit_files(self.remote, {b"a": b"1", b"b": b"4"}, branch=b"feature")
        # 4 for the base, 3 for each branch tip
        self.assertEqual(10, self.fetch().count)
        self.assertObjectsCopied()

    def test_unknown_remote(self) -> None:
        with self.assertRaises(RemoteNotFoundError) as cm:
            self.fetch("nonexistent")
        self.assertIn("nonexistent", str(cm.exception))
        self.assertEqual(
            "fatal: 'nonexistent' does not appear to be a git repository",
            str(cm.exception),
        )

    def test_no_remote_name(self) -> None:
        with self.assertRaises(UnsupportedOperationError) as cm:
            self.fetch(None)
        self.assertEqual("unsupported", str(cm.exception))

    def test_empty_remote_name(self) -> None:
        self.assertRaises(UnsupportedOperationError, self.fetch, "")

    def test_no_remote_name_checked_first(self) -> None:
        # Nothing is configured and the remote does not exist either.
        self.assertRaises(UnsupportedOperationError, FetchService(MemoryRepo()).fetch)


class IncrementalFetchTests(FetchTestCase):
    def test_idempotent(self) -> None:
        commit_files(self.remote, {b"a.txt": b"hello\n", b"b.txt": b"world\n"})
        self.fetch()
        report = self.fetch()
        self.assertEqual(0, report.count)
        self.assertEqual([], report.changes)
        self.assertEqual(f"From {self.remote.path}\nCount 0\n", str(report))

    def test_updated_branch(self) -> None:
        c1 = commit_files(self.remote, {b"a.txt": b"hello\n", b"b.txt": b"world\n"})
        self.fetch()
        c2 = commit_files(self.remote, {b"a.txt": b"bye\n", b"b.txt": b"world\n"})
        report = self.fetch()
        # new blob, new tree, new commit
        self.assertEqual(3, report.count)
        self.assertEqual([RefChange(b"master", c1, c2, "origin")], report.changes)
        self.assertEqual(
            f"From {self.remote.path}\n"
            "Count 3\n"
            "* [updated] master -> origin/master\n",
            str(report),
        )
        self.assertEqual(c2, self.local.refs.read(ORIGIN, b"master"))

    def test_only_changed_refs_reported(self) -> None:
        master = commit_files(self.remote, {b"a": b"1"})
        self.fetch()
        self.remote.refs.write(HEADS_NAMESPACE, b"topic", master)
        self.assertEqual(
            f"From {self.remote.path}\n"
            "Count 0\n"
            "* [new branch] topic -> origin/topic\n",
            str(self.fetch()),
        )

    def test_local_objects_not_transferred(self) -> None:
        files = {b"a.txt": b"hello\n", b"b.txt": b"world\n"}
        commit_files(self.local, files)
        commit_files(self.remote, files)
        # Same content, same timestamp: the whole commit is already here.
        self.assertEqual(0, self.fetch().count)

    def test_local_branches_untouched(self) -> None:
        local_master = commit_files(self.local, {b"mine": b"1"})
        commit_files(self.remote, {b"theirs": b"2"})
        self.fetch()
        self.assertEqual(local_master, self.local.refs.read(HEADS_NAMESPACE, b"master"))

    def test_fetch_head(self) -> None:
        master = commit_files(self.remote, {b"a": b"1"})
        self.remote.refs.write(HEADS_NAMESPACE, b"other", master)
        self.fetch()
        location = self.remote.path.encode("utf-8")
        self.assertEqual(
            master + b"\t\tbranch 'master' of " + location + b"\n"
            + master + b"\t\tbranch 'other' of " + location + b"\n",
            self.local.get_named_file("FETCH_HEAD"),
        )

    def test_two_remotes(self) -> None:
        upstream = init_temp_repo(self)
        config = self.local.get_config()
        config.set((b"remote", b"upstream"), b"url", upstream.path.encode("utf-8"))
        config.write_to_path()
        commit_files(self.remote, {b"a": b"1"})
        commit_files(upstream, {b"a": b"2"})
        self.fetch("origin")
        report = self.fetch("upstream")
        self.assertEqual(
            "* [new branch] master -> upstream/master", str(report.changes[0])
        )
        self.assertEqual(
            {b"master"}, set(self.local.refs.list(remote_namespace("upstream")))
        )
        self.assertEqual({b"master"}, set(self.local.refs.list(ORIGIN)))


class FailedFetchTests(FetchTestCase):
    def test_missing_remote_object(self) -> None:
        commit_files(self.remote, {b"a.txt": b"hello\n"})
        blob_path = os.path.join(
            self.remote.object_store.path, Blob(b"hello\n").id.decode("ascii")
        )
        os.remove(blob_path)
        self.assertRaises(ObjectNotFoundError, self.fetch)
        self.assertEqual({}, self.local.refs.list(ORIGIN))
        self.assertEqual([], list(self.local.object_store))
        self.assertIsNone(self.local.get_named_file("FETCH_HEAD"))

    def test_location_not_a_repository(self) -> None:
        config = self.local.get_config()
        config.set((b"remote", b"broken"), b"url", b"/nonexistent/repo")
        config.write_to_path()
        with self.assertRaises(RemoteNotFoundError) as cm:
            self.fetch("broken")
        self.assertEqual("/nonexistent/repo", cm.exception.name)


class StubRemote(Remote):
    def __init__(self, refs, objects=None) -> None:
        self.refs = refs
        self.objects = objects or MemoryRepo().object_store
        self.closed = False

    def list_refs(self):
        return dict(self.refs)

    def fetch_object(self, sha):
        return self.objects[sha]

    def identifier(self) -> str:
        return "stub"

    def close(self) -> None:
        self.closed = True


class FetchServiceTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.local = MemoryRepo()
        self.local.get_config().set((b"remote", b"origin"), b"url", b"stub://")
        self.source = MemoryRepo()
        self.locations: list[str] = []

    def get_remote(self, location, config=None):
        self.locations.append(location)
        return RepoRemote(self.source, location)

    def test_memory_repos(self) -> None:
        master = commit_files(self.source, {b"a": b"1"})
        report = FetchService(self.local, get_remote=self.get_remote).fetch("origin")
        self.assertEqual(["stub://"], self.locations)
        self.assertEqual(3, report.count)
        self.assertEqual("stub://", report.location)
        self.assertEqual(master, self.local.refs.read(ORIGIN, b"master"))

    def test_remote_closed(self) -> None:
        stub = StubRemote({})
        FetchService(self.local, get_remote=lambda location, config: stub).fetch(
            "origin"
        )
        self.assertTrue(stub.closed)

    def test_remote_closed_on_error(self) -> None:
        stub = StubRemote({b"master": b"f" * 40})
        service = FetchService(self.local, get_remote=lambda location, config: stub)
        self.assertRaises(ObjectNotFoundError, service.fetch, "origin")
        self.assertTrue(stub.closed)

    def test_invalid_branch_name(self) -> None:
        master = commit_files(self.source, {b"a": b"1"})
        stub = StubRemote(
            {b"master": master, b"bad..name": master}, self.source.object_store
        )
        service = FetchService(self.local, get_remote=lambda location, config: stub)
        self.assertRaises(RefFormatError, service.fetch, "origin")
        self.assertEqual([], list(self.local.object_store))
        self.assertEqual({}, self.local.refs.list(ORIGIN))

    def test_object_under_wrong_sha(self) -> None:
        want = b"a" * 40
        stub = StubRemote({b"master": want}, {want: Blob(b"other")})
        service = FetchService(self.local, get_remote=lambda location, config: stub)
        with self.assertRaises(ObjectIntegrityError):
            service.fetch("origin")
        self.assertEqual([], list(self.local.object_store))
        self.assertEqual({}, self.local.refs.list(ORIGIN))
        self.assertIsNone(self.local.get_named_file("FETCH_HEAD"))

    def test_branch_pointing_at_blob(self) -> None:
        blob = Blob(b"not a commit")
        self.source.object_store.add_object(blob)
        self.source.refs.write(HEADS_NAMESPACE, b"master", blob.id)
        service = FetchService(self.local, get_remote=self.get_remote)
        with self.assertRaises(ObjectFormatError) as cm:
            service.fetch("origin")
        self.assertEqual(
            "remote branch master points at a blob, not a commit", str(cm.exception)
        )
        self.assertEqual([], list(self.local.object_store))
        self.assertEqual({}, self.local.refs.list(ORIGIN))

    def test_branch_pointing_at_known_tree(self) -> None:
        tree = Tree()
        self.local.object_store.add_object(tree)
        self.source.object_store.add_object(tree)
        self.source.refs.write(HEADS_NAMESPACE, b"master", tree.id)
        service = FetchService(self.local, get_remote=self.get_remote)
        self.assertRaises(ObjectFormatError, service.fetch, "origin")
        self.assertEqual({}, self.local.refs.list(ORIGIN))

    def test_report_sorted(self) -> None:
        master = commit_files(self.source, {b"a": b"1"})
        stub = StubRemote(
            {b"zeta": master, b"alpha": master, b"master": master},
            self.source.object_store,
        )
        report = FetchService(
            self.local, get_remote=lambda location, config: stub
        ).fetch("origin")
        self.assertEqual(
            [b"alpha", b"master", b"zeta"], [change.name for change in report.changes]
        )

    def test_progress(self) -> None:
        commit_files(self.source, {b"a": b"1"})
        messages: list[str] = []
        FetchService(
            self.local, get_remote=self.get_remote, progress=messages.append
        ).fetch("origin")
        self.assertEqual(["counting objects: 3, done.\n"], messages)

    def test_dependencies_stored_first(self) -> None:
        commit_files(self.source, {b"dir/a": b"1", b"b": b"2"})
        commit_files(self.source, {b"dir/a": b"3", b"b": b"2"})
        order: list[bytes] = []
        original = self.local.object_store.add_object

        def add_object(obj):
            for ref in obj.references():
                self.assertIn(ref, order)
            order.append(obj.id)
            return original(obj)

        self.local.object_store.add_object = add_object
        report = FetchService(self.local, get_remote=self.get_remote).fetch("origin")
        self.assertEqual(report.count, len(order))

    def test_conflict(self) -> None:
        class RacingRefsContainer(DictRefsContainer):
            def set_if_equals(self, name, old_ref, new_ref):
                return False

        self.local.refs = RacingRefsContainer({})
        commit_files(self.source, {b"a": b"1"})
        service = FetchService(self.local, get_remote=self.get_remote)
        with self.assertRaises(RefUpdateConflict) as cm:
            service.fetch("origin")
        self.assertEqual(b"refs/remotes/origin/master", cm.exception.name)


class FetchOverHTTPTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        for name in ("https_proxy", "http_proxy", "all_proxy"):
            self.overrideEnv(name, None)
        self.remote = init_temp_repo(self)
        self.server = make_server("localhost", 0, self.remote)
        self.addCleanup(self.server.server_close)
        thread = threading.Thread(target=self.server.serve_forever)
        thread.daemon = True
        thread.start()
        self.addCleanup(thread.join)
        self.addCleanup(self.server.shutdown)
        self.url = f"http://localhost:{self.server.server_port}/"
        self.local = init_temp_repo(self)
        config = self.local.get_config()
        config.set((b"remote", b"origin"), b"url", self.url.encode("ascii"))
        config.write_to_path()

    def test_fetch(self) -> None:
        master = commit_files(self.remote, {b"a.txt": b"hello\n", b"b.txt": b"world\n"})
        report = FetchService(self.local).fetch("origin")
        self.assertEqual(
            f"From {self.url}\nCount 4\n* [new branch] master -> origin/master\n",
            str(report),
        )
        self.assertEqual(master, self.local.refs.read(ORIGIN, b"master"))
        self.assertEqual(
            sorted(self.remote.object_store), sorted(self.local.object_store)
        )
        self.assertEqual(0, FetchService(self.local).fetch("origin").count)


class FetchReportTests(TestCase):
    def test_str(self) -> None:
        changes = [
            RefChange(b"master", None, b"1" * 40, "origin"),
            RefChange(b"topic", b"2" * 40, b"3" * 40, "origin"),
        ]
        self.assertEqual(
            "From /srv/repo\n"
            "Count 12\n"
            "* [new branch] master -> origin/master\n"
            "* [updated] topic -> origin/topic\n",
            str(FetchReport("/srv/repo", 12, changes)),
        )

    def test_kind(self) -> None:
        self.assertEqual(
            RefChange.NEW_BRANCH, RefChange(b"m", None, b"1" * 40, "o").kind
        )
        self.assertEqual(
            RefChange.UPDATED, RefChange(b"m", b"2" * 40, b"1" * 40, "o").kind
        )

    def test_fetch_head_empty(self) -> None:
        self.assertEqual(b"", FetchReport("x", 0, []).fetch_head())
