"""Running CGI scripts and parsing what they write back."""

from __future__ import annotations

import socket
import subprocess
import time
from dataclasses import dataclass
from enum import Enum, auto

from .constants import CGI_TIMEOUT, MAX_BODY_SIZE, MAX_HEADER_LENGTH
from .errors import ServerException

SERVER_SOFTWARE = "Webserv/1.0"
DEFAULT_CONTENT_TYPE = "plain/text"


class CGIError(ServerException):
    """A CGI run failed; ``status`` is the HTTP status to answer with."""

    def __init__(self, status, message):
        super().__init__(message)
        self.status = status


@dataclass(frozen=True)
class CGIResult:
    """The parsed output of a finished CGI script."""

    status: str
    content_type: str
    headers: str
    body: bytes


class _State(Enum):
    READING = auto()
    ERROR = auto()
    COMPLETE = auto()


def _is_ascii_alpha(text: str) -> bool:
    return all(c.isascii() and c.isalpha() for c in text)


def valid_status_line(value):
    """Check a ``Status`` header value such as ``404 NotFound``; return its code."""
    words = value.split()
    if len(words) != 2:
        raise CGIError(502, "Malformed status line")
    code, message = words
    if len(code) != 3 or not all(c in "0123456789" for c in code):
        raise CGIError(502, "Malformed status line")
    if not _is_ascii_alpha(message):
        raise CGIError(502, "Malformed status line")
    return code


def _parse_header_block(headers: str) -> tuple[str, str]:
    if len(headers) > MAX_HEADER_LENGTH:
        raise CGIError(502, "CGI response headers too long")
    status = None
    content_type = None
    rest = headers
    while rest:
        line, separator, rest = rest.partition("\r\n")
        if not separator:
            raise CGIError(502, "Malformed header line")
        if not line:
            raise CGIError(502, "Empty header line")
        colon = line.find(": ")
        if colon <= 0:
            raise CGIError(502, "Invalid header format")
        name, value = line[:colon], line[colon + 2:]
        if not name or not value:
            raise CGIError(502, "Empty header value")
        lowered = name.lower()
        if lowered == "status":
            status = valid_status_line(value)
        elif lowered == "content-type":
            content_type = value
    if content_type is None:
        raise CGIError(502, "Missing Content-Type header")
    return status or "200", content_type


def parse_cgi_output(output):
    """Split raw CGI output into status, content type, header block and body."""
    if isinstance(output, str):
        output = output.encode("latin-1")
    output = bytes(output)
    header_end = output.find(b"\r\n\r\n")
    if header_end == -1:
        raise CGIError(502, "Process completed without proper headers")
    headers = output[: header_end + 2].decode("latin-1")
    body = output[header_end + 4:]
    status, content_type = _parse_header_block(headers)
    if len(body) > MAX_BODY_SIZE:
        raise CGIError(502, "CGI response body too large")
    return CGIResult(status=status, content_type=content_type, headers=headers, body=body)


def build_environment(
    host,
    port,
    method,
    path_info,
    path_translated,
    script_name,
    script_filename,
    query,
    remote_addr,
    content_type,
    content_length,
):
    """Build the CGI/1.1 environment passed to a script."""
    environ = {
        "SERVER_SOFTWARE": SERVER_SOFTWARE,
        "SERVER_NAME": host,
        "GATEWAY_INTERFACE": "CGI/1.1",
        "SERVER_PROTOCOL": "HTTP/1.1",
        "SERVER_PORT": str(port),
        "REQUEST_METHOD": method,
        "PATH_INFO": path_info,
        "PATH_TRANSLATED": path_translated,
        "SCRIPT_NAME": script_name,
        "SCRIPT_FILENAME": script_filename,
        "QUERY_STRING": query,
        "REMOTE_ADDR": remote_addr,
        "REDIRECT_STATUS": "200",
        "CONTENT_TYPE": content_type if content_type is not None else DEFAULT_CONTENT_TYPE,
        "CONTENT_LENGTH": str(content_length),
    }
    return dict(sorted(environ.items()))


class CGIProcess:
    """One CGI script run, talking to the script over non-blocking sockets."""

    timeout = CGI_TIMEOUT
    chunk_size = 16384

    def __init__(self, executor_path, script_path, environ, post_body=b""):
        self.executor_path = str(executor_path)
        self.script_path = str(script_path)
        self.environ = dict(environ)
        if isinstance(post_body, str):
            post_body = post_body.encode("utf-8")
        self.post_body = bytes(post_body)
        self.error_code = 0
        self.result: CGIResult | None = None
        self._process: subprocess.Popen | None = None
        self._input: socket.socket | None = None
        self._output_sock: socket.socket | None = None
        self._output = bytearray()
        self._bytes_sent = 0
        self._start_time: float | None = None
        self._state = _State.READING
        self._timed_out = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.terminate()

    @property
    def input_fileno(self):
        """Descriptor to watch for writability, or None once closed."""
        return self._input.fileno() if self._input is not None else None

    @property
    def output_fileno(self):
        """Descriptor to watch for readability, or None once closed."""
        return self._output_sock.fileno() if self._output_sock is not None else None

    @property
    def input_open(self):
        return self._input is not None

    @property
    def output(self):
        return bytes(self._output)

    @property
    def returncode(self):
        return self._process.returncode if self._process is not None else None

    def _fail(self, status, message):
        self.error_code = status
        return CGIError(status, message)

    def start(self):
        """Create the sockets and start the script under its interpreter."""
        try:
            parent_in, child_in = socket.socketpair()
            try:
                parent_out, child_out = socket.socketpair()
            except OSError:
                parent_in.close()
                child_in.close()
                raise
        except OSError as exc:
            raise self._fail(500, "Socket pair creation failed") from exc
        try:
            self._process = subprocess.Popen(
                [self.executor_path, self.script_path],
                stdin=child_in.fileno(),
                stdout=child_out.fileno(),
                env=self.environ,
                close_fds=True,
            )
        except OSError as exc:
            for sock in (parent_in, child_in, parent_out, child_out):
                sock.close()
            raise self._fail(502, "Failed to start CGI process") from exc
        child_in.close()
        child_out.close()
        parent_in.setblocking(False)
        parent_out.setblocking(False)
        self._input = parent_in
        self._output_sock = parent_out
        self._start_time = time.monotonic()

    def _check_timeout(self):
        if self.has_timed_out():
            self._timed_out = True
            self.terminate()
            raise self._fail(504, "CGI timeout occured")

    def _close_input(self):
        if self._input is not None:
            self._input.close()
            self._input = None

    def send_post_body(self):
        """Send the next piece of the request body; return the bytes sent.

        Once everything has been sent, the script's input is closed.
        """
        self._check_timeout()
        if self._input is None:
            return 0
        remaining = self.post_body[self._bytes_sent:]
        if not remaining:
            self._close_input()
            return 0
        try:
            sent = self._input.send(remaining[: self.chunk_size])
        except BlockingIOError:
            return 0
        except OSError as exc:
            self.terminate()
            raise self._fail(500, "Send failed to CGI process") from exc
        self._bytes_sent += sent
        return sent

    def read_available_output(self):
        """Read what the script has written so far; return the bytes read."""
        self._check_timeout()
        if self._output_sock is None:
            return 0
        try:
            chunk = self._output_sock.recv(self.chunk_size)
        except BlockingIOError:
            return 0
        except OSError as exc:
            self.terminate()
            raise self._fail(500, "Error reading from CGI") from exc
        if chunk:
            self._output.extend(chunk)
            return len(chunk)
        self._finish()
        return 0

    def _finish(self):
        code = None
        if self._process is not None:
            try:
                code = self._process.wait(timeout=0.1)
            except subprocess.TimeoutExpired:
                code = None
        self.terminate()
        if code is not None and code < 0:
            self._state = _State.ERROR
            raise self._fail(504 if self._timed_out else 502, "CGI process terminated by signal")
        self._state = _State.COMPLETE

    def has_timed_out(self):
        """True once the script has run longer than ``timeout`` seconds."""
        if self._start_time is None:
            return False
        return time.monotonic() - self._start_time > self.timeout

    def is_complete(self):
        return self._state is _State.COMPLETE

    def terminate(self):
        """Close the sockets and stop the script if it is still running."""
        self._close_input()
        if self._output_sock is not None:
            self._output_sock.close()
            self._output_sock = None
        process = self._process
        if process is not None and process.poll() is None:
            process.terminate()
            try:
                process.wait(timeout=0.1)
            except subprocess.TimeoutExpired:
                process.kill()
                process.wait()

    def parse_output(self):
        """Parse the collected output into a :class:`CGIResult`."""
        try:
            self.result = parse_cgi_output(self._output)
        except CGIError as exc:
            self.error_code = exc.status
            raise
        return self.result