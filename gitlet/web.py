# web.py -- HTTP server for gitlet
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

"""HTTP server exposing a gitlet repository to :class:`gitlet.client.HttpRemote`."""

__all__ = [
    "HTTP_METHOD_NOT_ALLOWED",
    "HTTP_NOT_FOUND",
    "HTTP_OK",
    "GitletHTTPApplication",
    "HTTPRequest",
    "WSGIRequestHandlerLogger",
    "WSGIServerLogger",
    "get_info_refs",
    "get_object",
    "make_server",
]

import re
from collections.abc import Callable, Iterable, Iterator
from types import TracebackType
from typing import TYPE_CHECKING, ClassVar
from wsgiref.simple_server import (
    ServerHandler,
    WSGIRequestHandler,
    WSGIServer,
)
from wsgiref.simple_server import make_server as _make_wsgiref_server

from . import log_utils
from .errors import ObjectIntegrityError, ObjectNotFoundError
from .objects import object_header
from .refs import HEADS_NAMESPACE, write_info_refs
from .repo import BaseRepo

if TYPE_CHECKING:
    from _typeshed.wsgi import StartResponse, WSGIEnvironment

logger = log_utils.getLogger(__name__)


# HTTP status strings
HTTP_OK = "200 OK"
HTTP_NOT_FOUND = "404 Not Found"
HTTP_METHOD_NOT_ALLOWED = "405 Method Not Allowed"
HTTP_ERROR = "500 Internal Server Error"

NO_CACHE_HEADERS = [
    ("Expires", "Fri, 01 Jan 1980 00:00:00 GMT"),
    ("Pragma", "no-cache"),
    ("Cache-Control", "no-cache, max-age=0, must-revalidate"),
]

# Objects never change once written.
CACHE_FOREVER_HEADERS = [
    ("Cache-Control", "public, max-age=31536000, immutable"),
]


class HTTPRequest:
    """State of a single HTTP request.

    Attributes:
      environ: the WSGI environment for the request.
    """

    def __init__(
        self, environ: "WSGIEnvironment", start_response: "StartResponse"
    ) -> None:
        self.environ = environ
        self._start_response = start_response
        self._cache_headers: list[tuple[str, str]] = []
        self._headers: list[tuple[str, str]] = []

    def respond(
        self,
        status: str = HTTP_OK,
        content_type: str | None = None,
    ) -> None:
        """Begin a response with the given status and other headers."""
        if content_type:
            self._headers.append(("Content-Type", content_type))
        self._headers.extend(self._cache_headers)
        self._start_response(status, self._headers)

    def not_found(self, message: str) -> bytes:
        """Begin a HTTP 404 response and return the text of a message."""
        self._cache_headers = []
        logger.info("Not found: %s", message)
        self.respond(HTTP_NOT_FOUND, "text/plain")
        return message.encode("ascii")

    def method_not_allowed(self, message: str) -> bytes:
        """Begin a HTTP 405 response and return the text of a message."""
        self._cache_headers = []
        self._headers.append(("Allow", "GET"))
        logger.info("Method not allowed: %s", message)
        self.respond(HTTP_METHOD_NOT_ALLOWED, "text/plain")
        return message.encode("ascii")

    def error(self, message: str) -> bytes:
        """Begin a HTTP 500 response and return the text of a message."""
        self._cache_headers = []
        logger.error("Error: %s", message)
        self.respond(HTTP_ERROR, "text/plain")
        return message.encode("ascii")

    def nocache(self) -> None:
        """Set the response to never be cached by the client."""
        self._cache_headers = NO_CACHE_HEADERS

    def cache_forever(self) -> None:
        """Set the response to be cached forever by the client."""
        self._cache_headers = CACHE_FOREVER_HEADERS


def get_info_refs(
    req: HTTPRequest, repo: BaseRepo, mat: re.Match[str]
) -> Iterator[bytes]:
    """Send the listing of the repository's branches."""
    refs = repo.refs.list(HEADS_NAMESPACE)
    logger.info("Sending %d refs", len(refs))
    req.nocache()
    req.respond(HTTP_OK, "text/plain")
    yield from write_info_refs(refs)


def get_object(
    req: HTTPRequest, repo: BaseRepo, mat: re.Match[str]
) -> Iterator[bytes]:
    """Send a stored object, header and payload."""
    sha = mat.group(1).encode("ascii")
    logger.info("Sending object %s", mat.group(1))
    try:
        type_name, payload = repo.object_store.get_raw(sha)
    except ObjectNotFoundError:
        yield req.not_found("Object not found")
        return
    except (OSError, ObjectIntegrityError):
        yield req.error("Error reading object")
        return
    req.cache_forever()
    req.respond(HTTP_OK, "application/x-gitlet-object")
    yield object_header(type_name, len(payload))
    yield payload


class GitletHTTPApplication:
    """WSGI application serving a repository's refs and objects.

    Attributes:
      repo: the repository backing this application
    """

    services: ClassVar[
        dict[
            re.Pattern[str],
            Callable[[HTTPRequest, BaseRepo, re.Match[str]], Iterator[bytes]],
        ]
    ] = {
        re.compile("/info/refs$"): get_info_refs,
        re.compile("/objects/([0-9a-f]{40})$"): get_object,
    }

    def __init__(self, repo: BaseRepo) -> None:
        self.repo = repo

    def __call__(
        self,
        environ: "WSGIEnvironment",
        start_response: "StartResponse",
    ) -> Iterable[bytes]:
        path = environ["PATH_INFO"]
        method = environ["REQUEST_METHOD"]
        req = HTTPRequest(environ, start_response)
        for spath, handler in self.services.items():
            mat = spath.search(path)
            if mat is None:
                continue
            if method != "GET":
                return [req.method_not_allowed(f"{method} not supported")]
            return handler(req, self.repo, mat)
        return [req.not_found("Sorry, that path is not supported")]


class ServerHandlerLogger(ServerHandler):
    """ServerHandler that uses gitlet's logger for logging exceptions."""

    def log_exception(
        self,
        exc_info: (
            tuple[type[BaseException], BaseException, TracebackType]
            | tuple[None, None, None]
            | None
        ),
    ) -> None:
        logger.exception(
            "Exception happened during processing of request",
            exc_info=exc_info,
        )


class WSGIRequestHandlerLogger(WSGIRequestHandler):
    """WSGIRequestHandler that uses gitlet's logger for request logs."""

    def log_message(self, format: str, *args: object) -> None:
        logger.info(format, *args)

    def log_error(self, *args: object) -> None:
        logger.error(*args)

    def handle(self) -> None:
        """Handle a single HTTP request."""
        self.raw_requestline = self.rfile.readline()
        if not self.parse_request():  # An error code has been sent, just exit
            return

        handler = ServerHandlerLogger(
            self.rfile,
            self.wfile,  # type: ignore
            self.get_stderr(),
            self.get_environ(),
        )
        handler.request_handler = self  # type: ignore  # backpointer for logging
        handler.run(self.server.get_app())  # type: ignore


class WSGIServerLogger(WSGIServer):
    """WSGIServer that uses gitlet's logger for error handling."""

    def handle_error(self, request: object, client_address: tuple[str, int]) -> None:
        logger.exception(
            f"Exception happened during processing of request from {client_address!s}"
        )


def make_server(host: str, port: int, repo: BaseRepo) -> WSGIServer:
    """Create an HTTP server serving a repository.

    Args:
      host: Address to listen on
      port: Port to listen on; 0 picks a free one (see ``server_port``)
      repo: Repository to serve
    Returns: a server; call ``serve_forever`` to run it
    """
    server = _make_wsgiref_server(
        host,
        port,
        GitletHTTPApplication(repo),
        server_class=WSGIServerLogger,
        handler_class=WSGIRequestHandlerLogger,
    )
    logger.info("Listening for HTTP connections on %s:%d", host, server.server_port)
    return server
