# refs.py -- For dealing with gitlet refs
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

"""Ref handling.

Refs are mutable names for commit SHAs. Local branches live under
``refs/heads/`` and remote-tracking branches under
``refs/remotes/<remote>/``. Most of the API addresses a ref as a
*namespace* (``b"heads"``, ``b"remotes/origin"``) plus a short *name*
(``b"master"``); the full name is ``refs/<namespace>/<name>``.
"""

__all__ = [
    "HEADS_NAMESPACE",
    "LOCAL_BRANCH_PREFIX",
    "LOCAL_REMOTE_PREFIX",
    "REFS_PREFIX",
    "REMOTES_NAMESPACE",
    "DictRefsContainer",
    "DiskRefsContainer",
    "Ref",
    "RefsContainer",
    "check_ref_format",
    "read_info_refs",
    "ref_name",
    "remote_namespace",
    "write_info_refs",
]

import logging
import os
from collections.abc import Iterator, Mapping

from .errors import RefFormatError, RefNotFoundError
from .file import LockedFile, ensure_dir_exists, open_locked
from .objects import ZERO_SHA, ObjectID, valid_hexsha

logger = logging.getLogger(__name__)

Ref = bytes

REFS_PREFIX = b"refs/"
HEADS_NAMESPACE = b"heads"
REMOTES_NAMESPACE = b"remotes"
LOCAL_BRANCH_PREFIX = REFS_PREFIX + HEADS_NAMESPACE + b"/"
LOCAL_REMOTE_PREFIX = REFS_PREFIX + REMOTES_NAMESPACE + b"/"
BAD_REF_CHARS = set(b"\177 ~^:?*[")


def check_ref_format(refname: Ref) -> bool:
    """Check if a refname is correctly formatted.

    Implements the same rules as git-check-ref-format[1].

    [1]
    http://www.kernel.org/pub/software/scm/git/docs/git-check-ref-format.html

    Args:
      refname: The refname to check
    Returns: True if refname is valid, False otherwise
    """
    # These could be combined into one big expression, but are listed
    # separately to parallel [1].
    if b"/." in refname or refname.startswith(b"."):
        return False
    if b"/" not in refname:
        return False
    if b".." in refname or b"//" in refname:
        return False
    for i, c in enumerate(refname):
        if ord(refname[i : i + 1]) < 0o40 or c in BAD_REF_CHARS:
            return False
    if refname[-1] in b"/.":
        return False
    if refname.endswith(b".lock"):
        return False
    if b"@{" in refname:
        return False
    if b"\\" in refname:
        return False
    return True


def ref_name(namespace: bytes, name: bytes) -> Ref:
    """Return the full ref name for a short name in a namespace."""
    return REFS_PREFIX + namespace.strip(b"/") + b"/" + name


def remote_namespace(remote_name: str) -> bytes:
    """Return the namespace holding the remote-tracking refs of a remote."""
    return REMOTES_NAMESPACE + b"/" + remote_name.encode("utf-8")


class RefsContainer:
    """A container for refs."""

    def _check_refname(self, name: Ref) -> None:
        """Ensure a full refname is valid and lives under refs/.

        Raises:
          RefFormatError: if name is not a valid refname
        """
        if not name.startswith(REFS_PREFIX) or not check_ref_format(name):
            raise RefFormatError(name)

    def allkeys(self) -> set[Ref]:
        """All refs present in this container."""
        raise NotImplementedError(self.allkeys)

    def read_ref(self, name: Ref) -> ObjectID | None:
        """Read the value of a full refname, or None if it does not exist."""
        raise NotImplementedError(self.read_ref)

    def set_if_equals(
        self, name: Ref, old_ref: ObjectID | None, new_ref: ObjectID
    ) -> bool:
        """Set a refname to new_ref only if it currently equals old_ref.

        Args:
          name: The full refname to set.
          old_ref: The sha the refname must currently refer to, ZERO_SHA if
            it must not exist yet, or None to set unconditionally.
          new_ref: The new sha the refname will refer to.
        Returns: True if the set was successful, False otherwise.
        """
        raise NotImplementedError(self.set_if_equals)

    def __iter__(self) -> Iterator[Ref]:
        return iter(sorted(self.allkeys()))

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, bytes):
            return False
        return self.read_ref(name) is not None

    def __getitem__(self, name: Ref) -> ObjectID:
        """Get the SHA1 for a full refname.

        Raises:
          RefNotFoundError: if the ref does not exist
        """
        sha = self.read_ref(name)
        if sha is None:
            raise RefNotFoundError(name)
        return sha

    def __setitem__(self, name: Ref, ref: ObjectID) -> None:
        """Set a full refname unconditionally."""
        self.set_if_equals(name, None, ref)

    def subkeys(self, base: bytes) -> set[bytes]:
        """Refs present in this container under a base.

        Args:
          base: The base to return refs under, e.g. b"refs/heads".
        Returns: A set of refs under the base, with the base prefix stripped.
        """
        base = base.rstrip(b"/") + b"/"
        return {
            refname[len(base) :] for refname in self.allkeys() if refname.startswith(base)
        }

    def as_dict(self, base: bytes) -> dict[Ref, ObjectID]:
        """Return the refs under a base as a dictionary of short names."""
        ret = {}
        base = base.rstrip(b"/")
        for key in self.subkeys(base):
            sha = self.read_ref(base + b"/" + key)
            if sha is not None:
                ret[key] = sha
        return ret

    def read(self, namespace: bytes, name: bytes) -> ObjectID:
        """Read a ref in a namespace.

        Raises:
          RefNotFoundError: if the ref does not exist
        """
        return self[ref_name(namespace, name)]

    def write(self, namespace: bytes, name: bytes, sha: ObjectID) -> None:
        """Point a ref in a namespace at sha, replacing any previous value."""
        self[ref_name(namespace, name)] = sha

    def list(self, namespace: bytes) -> dict[bytes, ObjectID]:
        """Return all refs in a namespace, keyed by short name."""
        return self.as_dict(REFS_PREFIX + namespace.strip(b"/"))


class DictRefsContainer(RefsContainer):
    """RefsContainer backed by a simple dict."""

    def __init__(self, refs: Mapping[Ref, ObjectID] | None = None) -> None:
        self._refs: dict[Ref, ObjectID] = dict(refs or {})

    def allkeys(self) -> set[Ref]:
        return set(self._refs)

    def read_ref(self, name: Ref) -> ObjectID | None:
        return self._refs.get(name)

    def set_if_equals(
        self, name: Ref, old_ref: ObjectID | None, new_ref: ObjectID
    ) -> bool:
        self._check_refname(name)
        if old_ref is not None and self._refs.get(name, ZERO_SHA) != old_ref:
            return False
        self._refs[name] = new_ref
        return True


class DiskRefsContainer(RefsContainer):
    """Refs container that reads refs from disk."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        """Initialize DiskRefsContainer.

        Args:
          path: The control directory holding the refs/ directory.
        """
        self.path = os.fspath(path)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.path!r})"

    def refpath(self, name: Ref) -> str:
        """Return the disk path of a ref."""
        return os.path.join(self.path, *os.fsdecode(name).split("/"))

    def allkeys(self) -> set[Ref]:
        refspath = os.path.join(self.path, "refs")
        prefix_len = len(os.path.join(self.path, ""))
        keys = set()
        for root, dirs, files in os.walk(refspath):
            directory = os.fsencode(root[prefix_len:])
            if os.path.sep != "/":
                directory = directory.replace(os.fsencode(os.path.sep), b"/")
            for filename in files:
                refname = directory + b"/" + os.fsencode(filename)
                if check_ref_format(refname):
                    keys.add(refname)
        return keys

    def read_ref(self, name: Ref) -> ObjectID | None:
        """Read a ref file.

        Returns: the sha the ref points at, or None if the ref does not exist
        Raises:
          RefFormatError: if the file exists but does not hold a sha
        """
        try:
            with open_locked(self.refpath(name), "rb") as f:
                contents = f.read()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            return None
        sha = contents.strip()
        if not valid_hexsha(sha):
            raise RefFormatError(name)
        return sha

    def set_if_equals(
        self, name: Ref, old_ref: ObjectID | None, new_ref: ObjectID
    ) -> bool:
        self._check_refname(name)
        filename = self.refpath(name)
        ensure_dir_exists(os.path.dirname(filename))
        with LockedFile(filename) as f:
            # Read again while holding the lock so a concurrent writer
            # cannot slip in between the check and the write.
            current = self.read_ref(name)
            if old_ref is not None and (current or ZERO_SHA) != old_ref:
                f.abort()
                return False
            if current == new_ref:
                f.abort()
                return True
            f.write(new_ref + b"\n")
        logger.debug(
            "updated %s: %s -> %s",
            name.decode("utf-8", "replace"),
            (current or ZERO_SHA).decode("ascii"),
            new_ref.decode("ascii"),
        )
        return True


def read_info_refs(data: bytes) -> dict[Ref, ObjectID]:
    """Parse an info/refs listing.

    Args:
      data: Lines of the form ``<sha>\\t<name>\\n``
    Returns: Dictionary mapping ref names to SHA1s
    Raises:
      RefFormatError: if a line is malformed
    """
    ret = {}
    for line in data.splitlines():
        if not line:
            continue
        try:
            (sha, name) = line.split(b"\t", 1)
        except ValueError:
            raise RefFormatError(line) from None
        if not valid_hexsha(sha):
            raise RefFormatError(name)
        ret[name] = sha
    return ret


def write_info_refs(refs: Mapping[Ref, ObjectID]) -> Iterator[bytes]:
    """Generate an info/refs listing, sorted by ref name."""
    for name, sha in sorted(refs.items()):
        yield sha + b"\t" + name + b"\n"
