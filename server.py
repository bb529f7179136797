"""HTTP file server entry point and listener lifecycle orchestration."""

from __future__ import annotations

import argparse
import enum
import json
import logging
import os
import selectors
import socket
import threading
import time
from urllib.parse import urlsplit

from compiler import CompilationError, Compiler, TypeScriptCompiler
from config import (
    BASE_DIR,
    COMPILE_EXTENSION,
    COMPILE_TIMEOUT_SECS,
    LISTEN_BACKLOG,
    LISTEN_URI,
    LOG_FORMAT,
    MOUNT_PREFIX,
    SOCKET_TIMEOUT_SECS,
    TSC_COMMAND,
)
from dispatcher import ContentDispatcher
from file_handlers import forbidden, internal_error, not_found
from request import HTTPRequest, HTTPRequestParseError
from response import REASON_PHRASES, HTTPResponse
from socket_handler import (
    HeaderTooLargeError,
    MalformedRequestError,
    SocketTimeoutError,
    discard_unread_input,
    read_http_request_head,
    write_http_response_message,
)
from utils import is_within_directory, resolve_request_path

logger = logging.getLogger(__name__)

WILDCARD_HOSTS = {"", "+", "*"}


class ServerState(enum.Enum):
    CREATED = "created"
    LISTENING = "listening"
    DRAINING = "draining"
    CLOSED = "closed"


def parse_listen_uri(listen_uri: str) -> tuple[str, int]:
    """Split ``http://host:port/`` (or bare ``host:port``) into host and port.

    ``+`` and ``*`` hosts bind every interface. The listen URI only names the
    socket; scoping requests under a path is the mount prefix's job, so a
    non-root path is rejected rather than ignored.
    """
    if "://" not in listen_uri:
        listen_uri = f"http://{listen_uri}"
    parsed = urlsplit(listen_uri)
    if parsed.scheme != "http":
        raise ValueError(f"Unsupported listen scheme: {parsed.scheme}")
    if parsed.path not in {"", "/"}:
        raise ValueError(
            f"Listen URI path {parsed.path!r} is not supported; use mount_prefix instead"
        )

    netloc = parsed.netloc
    if netloc.startswith("["):
        host, _sep, port_text = netloc[1:].partition("]")
        port_text = port_text.removeprefix(":")
    elif ":" in netloc:
        host, _sep, port_text = netloc.rpartition(":")
    else:
        host, port_text = netloc, ""
    if host in WILDCARD_HOSTS:
        host = "0.0.0.0"

    try:
        port = int(port_text) if port_text else 80
    except ValueError as exc:
        raise ValueError(f"Invalid listen port in {listen_uri!r}") from exc
    if not 0 <= port <= 65535:
        raise ValueError(f"Listen port must be 0-65535, got {port}")
    return host, port


class HTTPFileServer:
    """Serve files under ``base_dir``, compiling TypeScript sources on request.

    Single-use: ``open`` starts the accept loop on a dedicated thread and
    ``close`` stops it; a closed server cannot be reopened. Connections are
    handled one at a time on the loop thread.
    """

    def __init__(
        self,
        listen_uri: str = LISTEN_URI,
        base_dir: str = BASE_DIR,
        mount_prefix: str = MOUNT_PREFIX,
        *,
        compiler: Compiler | None = None,
        dispatcher: ContentDispatcher | None = None,
        socket_timeout_secs: float | None = SOCKET_TIMEOUT_SECS,
        log_format: str = LOG_FORMAT,
    ) -> None:
        self.host, self.port = parse_listen_uri(listen_uri)
        self.base_dir = os.path.abspath(base_dir)
        self.mount_prefix = mount_prefix
        self.socket_timeout_secs = socket_timeout_secs
        self.log_format = log_format
        self._owns_compiler = dispatcher is None and compiler is None
        if dispatcher is None:
            compiler = compiler or TypeScriptCompiler()
            dispatcher = ContentDispatcher.with_compiler(compiler)
        self.compiler = compiler
        self.dispatcher = dispatcher

        self.state = ServerState.CREATED
        self._state_lock = threading.Lock()
        self._cancel_event = threading.Event()
        self._server_socket: socket.socket | None = None
        self._wake_reader: socket.socket | None = None
        self._wake_writer: socket.socket | None = None
        self._thread: threading.Thread | None = None

    def __enter__(self) -> "HTTPFileServer":
        self.open()
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.close()

    def open(self) -> None:
        """Bind the listening socket and start the accept loop in the background."""
        with self._state_lock:
            if self.state is not ServerState.CREATED:
                raise RuntimeError(f"Server cannot be opened from state {self.state.value}")
            if not os.path.isdir(self.base_dir):
                raise NotADirectoryError(f"Base directory does not exist: {self.base_dir}")

            family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
            server_socket = socket.socket(family, socket.SOCK_STREAM)
            try:
                server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                server_socket.bind((self.host, self.port))
                server_socket.listen(LISTEN_BACKLOG)
                server_socket.setblocking(False)
            except Exception:
                server_socket.close()
                raise
            self.port = server_socket.getsockname()[1]
            self._server_socket = server_socket
            self._wake_reader, self._wake_writer = socket.socketpair()

            self.state = ServerState.LISTENING
            self._thread = threading.Thread(
                target=self._run,
                name="http-file-server",
                daemon=True,
            )
            self._thread.start()

        logger.info(
            "Listening on http://%s:%s%s serving %s",
            self.host,
            self.port,
            self.mount_prefix or "/",
            self.base_dir,
        )

    def close(self) -> None:
        """Stop accepting connections and wait until the listening socket is released.

        A connection already being handled runs to completion first. A
        compiler the server created itself is closed afterwards.
        """
        self._cancel_event.set()
        with self._state_lock:
            if self.state is ServerState.CREATED:
                self.state = ServerState.CLOSED
            thread = self._thread
            wake_writer = self._wake_writer

        if wake_writer is not None:
            try:
                wake_writer.send(b"\0")
            except OSError:
                # The loop already exited and closed the wake-up pair.
                pass

        if thread is not None and thread is not threading.current_thread():
            thread.join()

        if self._owns_compiler and isinstance(self.compiler, TypeScriptCompiler):
            self.compiler.close()

    def _run(self) -> None:
        server_socket = self._server_socket
        assert server_socket is not None and self._wake_reader is not None
        try:
            with selectors.DefaultSelector() as selector:
                selector.register(server_socket, selectors.EVENT_READ, data=None)
                selector.register(self._wake_reader, selectors.EVENT_READ, data="wake")
                while not self._cancel_event.is_set():
                    events = selector.select()
                    if self._cancel_event.is_set():
                        break

                    for key, _mask in events:
                        if key.data is None:
                            self._accept_client(server_socket)
        except Exception:
            logger.exception("Accept loop failed")
        finally:
            self.state = ServerState.DRAINING
            logger.info("Draining: no further connections will be accepted")
            server_socket.close()
            self._server_socket = None
            for wake_socket in (self._wake_reader, self._wake_writer):
                if wake_socket is not None:
                    wake_socket.close()
            self.state = ServerState.CLOSED
            logger.info("Closed listener on %s:%s", self.host, self.port)

    def _accept_client(self, server_socket: socket.socket) -> None:
        try:
            client_socket, address = server_socket.accept()
        except BlockingIOError:
            return
        except OSError as exc:
            logger.warning("accept() failed: %s", exc)
            return

        if self._cancel_event.is_set():
            client_socket.close()
            return

        try:
            self._handle_client(client_socket, address)
        except Exception:
            logger.exception("Unhandled error while handling client %s", address[0])

    def _handle_client(self, client_socket: socket.socket, address: tuple[str, int]) -> None:
        with client_socket:
            client_socket.settimeout(self.socket_timeout_secs)
            started_at = time.perf_counter()
            method = "-"
            path = "-"

            try:
                raw_request = read_http_request_head(client_socket)
            except HeaderTooLargeError:
                raw_request = None
                response = HTTPResponse(status_code=431, body="Request Header Fields Too Large")
            except SocketTimeoutError:
                raw_request = None
                response = HTTPResponse(status_code=408, body="Request Timeout")
            except MalformedRequestError:
                raw_request = None
                response = HTTPResponse(status_code=400, body="Bad Request")
            except OSError as exc:
                logger.debug("Read from %s failed: %s", address[0], exc)
                return

            if raw_request == b"":
                return

            if raw_request is not None:
                try:
                    request = HTTPRequest.from_bytes(raw_request)
                except HTTPRequestParseError as exc:
                    response = HTTPResponse(
                        status_code=exc.status_code,
                        body=REASON_PHRASES.get(exc.status_code, "Bad Request"),
                    )
                else:
                    method = request.method
                    path = request.path
                    response = self._dispatch(request)

            response.headers["Connection"] = "close"
            try:
                bytes_sent = write_http_response_message(client_socket, response)
                discard_unread_input(client_socket)
            except OSError as exc:
                logger.debug("Sending response to %s failed: %s", address[0], exc)
                return

            self._record_and_log(
                address=address,
                method=method,
                path=path,
                response=response,
                payload_size=bytes_sent,
                started_at=started_at,
            )

    def _dispatch(self, request: HTTPRequest) -> HTTPResponse:
        if request.method not in {"GET", "HEAD"}:
            return HTTPResponse(
                status_code=405,
                headers={"Allow": "GET, HEAD"},
                body="Method Not Allowed",
            )

        response = self._serve_path(request.path)
        if request.method == "HEAD":
            return response.without_body()
        return response

    def _serve_path(self, request_path: str) -> HTTPResponse:
        file_path = resolve_request_path(request_path, self.base_dir, self.mount_prefix)
        if file_path is None:
            return not_found()
        if not is_within_directory(file_path, self.base_dir):
            logger.warning("Refusing path outside base directory: %s", request_path)
            return forbidden()

        try:
            return self.dispatcher.dispatch(file_path)
        except CompilationError as exc:
            logger.error("Compilation failed: %s\n%s", exc, exc.diagnostics)
        except OSError:
            logger.exception("Failed to read %s", file_path)
        except Exception:
            logger.exception("Unhandled error while serving %s", file_path)
        return internal_error()

    def _record_and_log(
        self,
        *,
        address: tuple[str, int],
        method: str,
        path: str,
        response: HTTPResponse,
        payload_size: int,
        started_at: float,
    ) -> None:
        duration_ms = (time.perf_counter() - started_at) * 1000
        event = {
            "client": address[0],
            "method": method,
            "path": path,
            "status": response.status_code,
            "bytes_out": payload_size,
            "latency_ms": round(duration_ms, 3),
        }
        if self.log_format == "json":
            logger.info(json.dumps(event, sort_keys=True))
            return

        logger.info(
            "client=%s method=%s path=%s status=%s bytes_out=%s duration_ms=%.2f",
            event["client"],
            event["method"],
            event["path"],
            event["status"],
            event["bytes_out"],
            duration_ms,
        )


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve files, compiling TypeScript on request")
    parser.add_argument("--listen", default=LISTEN_URI)
    parser.add_argument("--base-dir", default=BASE_DIR)
    parser.add_argument("--prefix", default=MOUNT_PREFIX)
    parser.add_argument("--compile-extension", default=COMPILE_EXTENSION)
    parser.add_argument("--tsc", nargs="+", default=list(TSC_COMMAND))
    parser.add_argument("--compile-timeout", type=float, default=COMPILE_TIMEOUT_SECS)
    parser.add_argument("--socket-timeout", type=float, default=SOCKET_TIMEOUT_SECS)
    parser.add_argument("--log-format", choices=["plain", "json"], default=LOG_FORMAT)
    return parser.parse_args()


if __name__ == "__main__":
    args = _parse_args()
    logging.basicConfig(level=logging.INFO)
    compiler = TypeScriptCompiler(command=args.tsc, timeout_secs=args.compile_timeout)
    server = HTTPFileServer(
        listen_uri=args.listen,
        base_dir=args.base_dir,
        mount_prefix=args.prefix,
        dispatcher=ContentDispatcher.with_compiler(compiler, args.compile_extension),
        socket_timeout_secs=args.socket_timeout,
        log_format=args.log_format,
    )
    server.open()
    try:
        while server.state is ServerState.LISTENING:
            time.sleep(0.5)
    except KeyboardInterrupt:
        pass
    finally:
        server.close()
        compiler.close()
