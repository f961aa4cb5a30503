# client.py -- Remote endpoints to fetch from
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

"""Endpoints for fetching from other repositories.

A remote is anything that can list its branches and hand out objects by
sha. The fetch algorithm only talks to the :class:`Remote` interface, so it
does not care whether the other repository is a directory on this machine
(:class:`LocalPathRemote`) or is served over HTTP (:class:`HttpRemote`,
see :mod:`gitlet.web` for the server side).
"""

__all__ = [
    "HttpRemote",
    "LocalPathRemote",
    "Remote",
    "RepoRemote",
    "default_urllib3_manager",
    "default_user_agent_string",
    "get_remote",
]

import logging
import os
import urllib.request
from typing import Any
from urllib.parse import unquote, urljoin, urlparse

import urllib3
import urllib3.exceptions

import gitlet

from .config import Config
from .errors import (
    HTTPRemoteError,
    ObjectIntegrityError,
    ObjectNotFoundError,
    RemoteNotFoundError,
    RepositoryNotFoundError,
)
from .objects import (
    ObjectID,
    ShaFile,
    hash_object,
    split_serialized_object,
    valid_hexsha,
)
from .refs import HEADS_NAMESPACE, Ref, read_info_refs
from .repo import BaseRepo, Repo

logger = logging.getLogger(__name__)


class Remote:
    """A repository objects can be fetched from."""

    def list_refs(self) -> dict[Ref, ObjectID]:
        """Enumerate the remote's branches.

        Returns: dictionary mapping short branch names to commit SHAs
        """
        raise NotImplementedError(self.list_refs)

    def fetch_object(self, sha: ObjectID) -> ShaFile:
        """Retrieve a single object.

        Raises:
          ObjectNotFoundError: if the remote does not have the object
        """
        raise NotImplementedError(self.fetch_object)

    def identifier(self) -> str:
        """Return the string naming this remote in fetch reports."""
        raise NotImplementedError(self.identifier)

    def close(self) -> None:
        """Release any resources held by this remote."""


class RepoRemote(Remote):
    """A remote backed by an already open repository object."""

    def __init__(self, repo: BaseRepo, identifier: str) -> None:
        self._repo = repo
        self._identifier = identifier

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._identifier!r})"

    def list_refs(self) -> dict[Ref, ObjectID]:
        return self._repo.refs.list(HEADS_NAMESPACE)

    def fetch_object(self, sha: ObjectID) -> ShaFile:
        return self._repo.object_store[sha]

    def identifier(self) -> str:
        return self._identifier

    def close(self) -> None:
        self._repo.close()


class LocalPathRemote(RepoRemote):
    """A repository in the local filesystem, read directly."""

    def __init__(self, location: str) -> None:
        """Open the repository at location.

        Args:
          location: A path, or a file:// URL
        Raises:
          RemoteNotFoundError: if no repository exists at the location
        """
        if location.startswith("file://"):
            path = unquote(urlparse(location).path)
        else:
            path = location
        try:
            repo = Repo(os.path.expanduser(path))
        except RepositoryNotFoundError:
            raise RemoteNotFoundError(location) from None
        super().__init__(repo, location)


def default_user_agent_string() -> str:
    """Return the default user agent string for gitlet."""
    return "gitlet/{}".format(".".join([str(x) for x in gitlet.__version__]))


def default_urllib3_manager(
    config: Config | None,
    base_url: str | None = None,
    timeout: float | None = None,
) -> urllib3.PoolManager:
    """Return urllib3 connection pool manager.

    Honour detected proxy configurations and the ``http`` section of the
    configuration (useragent, timeout, sslVerify).

    Args:
      config: Configuration to read ``http.*`` settings from
      base_url: Base URL, for proxy bypass checks
      timeout: Timeout for HTTP requests in seconds, overriding the config
    Returns:
      A urllib3.ProxyManager if a proxy applies, a urllib3.PoolManager
      otherwise
    """
    proxy_server: str | None = None
    for proxyname in ("https_proxy", "http_proxy", "all_proxy"):
        proxy_server = os.environ.get(proxyname)
        if proxy_server:
            break
    if proxy_server and base_url:
        hostname = urlparse(base_url).hostname
        if hostname and urllib.request.proxy_bypass_environment(hostname):
            proxy_server = None

    user_agent: str | None = None
    ssl_verify: bool | None = None
    if config is not None:
        try:
            user_agent = config.get(b"http", b"useragent").decode("utf-8")
        except KeyError:
            pass
        ssl_verify = config.get_boolean(b"http", b"sslVerify")
        if timeout is None:
            try:
                timeout = float(config.get(b"http", b"timeout").decode("utf-8"))
            except KeyError:
                pass
    if user_agent is None:
        user_agent = default_user_agent_string()

    kwargs: dict[str, Any] = {
        "headers": {"User-agent": user_agent},
        "cert_reqs": "CERT_NONE" if ssl_verify is False else "CERT_REQUIRED",
    }
    if timeout is not None:
        kwargs["timeout"] = timeout

    if proxy_server is not None:
        logger.debug("using proxy %s", proxy_server)
        return urllib3.ProxyManager(proxy_server, **kwargs)
    return urllib3.PoolManager(**kwargs)


class HttpRemote(Remote):
    """A repository served over HTTP by :mod:`gitlet.web`.

    The server exposes ``info/refs`` (one ``<sha>\\t<branch>`` line per
    branch) and ``objects/<sha>`` (the stored object bytes) below the base
    URL.
    """

    def __init__(
        self,
        base_url: str,
        config: Config | None = None,
        pool_manager: urllib3.PoolManager | None = None,
        timeout: float | None = None,
    ) -> None:
        self._location = base_url
        self._base_url = base_url.rstrip("/") + "/"
        if pool_manager is None:
            pool_manager = default_urllib3_manager(
                config, base_url=self._base_url, timeout=timeout
            )
        self.pool_manager = pool_manager

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._location!r})"

    def _http_request(self, path: str) -> tuple[int, bytes]:
        url = urljoin(self._base_url, path)
        try:
            resp = self.pool_manager.request(
                "GET", url, headers={"Pragma": "no-cache"}, preload_content=True
            )
        except urllib3.exceptions.HTTPError as e:
            raise HTTPRemoteError(str(e)) from e
        logger.debug("GET %s: %d", url, resp.status)
        if resp.status not in (200, 404):
            raise HTTPRemoteError(f"unexpected http resp {resp.status} for {url}")
        return resp.status, resp.data

    def list_refs(self) -> dict[Ref, ObjectID]:
        status, data = self._http_request("info/refs")
        if status == 404:
            raise RemoteNotFoundError(self._location)
        return read_info_refs(data)

    def fetch_object(self, sha: ObjectID) -> ShaFile:
        if not valid_hexsha(sha):
            raise ObjectNotFoundError(sha)
        status, data = self._http_request("objects/" + sha.decode("ascii"))
        if status == 404:
            raise ObjectNotFoundError(sha)
        type_name, payload = split_serialized_object(data)
        actual = hash_object(type_name, payload)
        if actual != sha:
            raise ObjectIntegrityError(sha, actual)
        return ShaFile.from_raw_string(type_name, payload)

    def identifier(self) -> str:
        return self._location

    def close(self) -> None:
        self.pool_manager.clear()


def get_remote(location: str, config: Config | None = None) -> Remote:
    """Obtain a remote for a location.

    Args:
      location: An http(s) URL, a file:// URL or a local path
      config: Configuration for HTTP settings
    Raises:
      RemoteNotFoundError: if a local location holds no repository
    """
    if location.startswith(("http://", "https://")):
        return HttpRemote(location, config=config)
    return LocalPathRemote(location)
