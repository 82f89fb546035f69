"""Reading of a server configuration file into ``ServerConfig`` objects."""

from __future__ import annotations

import logging
import re

from .config_helpers import (
    add_valid_ip,
    check_duplicate_ip_port_domains,
    check_duplicates,
    check_extension,
    convert_to_bytes,
    count_words,
    generate_ip_port_domain,
    has_alpha,
    is_valid_ip,
    is_valid_ip_alone,
    remove_consecutive_slashes,
    transform_root,
)
from .config_model import Location, ServerConfig
from .errors import ConfigError
from .location_block import apply_location_directive, new_location, parse_location_header

logger = logging.getLogger(__name__)

_WHITESPACE = " \t\n\v\f\r"
_KEY = re.compile(r"[^ \t\n\v\f\r]*")


def _atoi(text: str) -> int:
    match = re.match(r"\s*([+-]?\d+)", text)
    return int(match.group(1)) if match else 0


def split_directive(line):
    """Split a directive line into ``(line, key, value)``.

    The returned line has trailing semicolons and whitespace removed, ``key``
    is the first word and ``value`` the parameters with a trailing comment,
    semicolons and surrounding whitespace removed. A value that starts with
    ``#`` is kept as it is.
    """
    stripped = line.rstrip(";" + _WHITESPACE)
    text = line.lstrip(_WHITESPACE)
    key = _KEY.match(text).group(0)
    value = text[len(key):].split("\n", 1)[0].lstrip(_WHITESPACE)
    comment = value.find("#")
    if comment > 0:
        value = value[:comment]
    value = value.rstrip(";" + _WHITESPACE)
    return stripped, key, value


def _apply_listen(server: ServerConfig, token: str) -> None:
    if "." in token and ":" in token:
        if not is_valid_ip(token):
            raise ConfigError("invalid IP address/Port!")
        add_valid_ip(server, token)
    elif "." in token or ":" in token:
        if is_valid_ip_alone(token):
            add_valid_ip(server, token + ":8080")
    else:
        add_valid_ip(server, "0.0.0.0:" + token)


def _apply_index(server: ServerConfig, token: str) -> None:
    if not server.index_cleared:
        server.index.clear()
        server.index_cleared = True
    check_extension(token)
    if token not in server.index:
        server.index.append(token)


def _apply_root(server: ServerConfig, token: str, word_count: int) -> None:
    if server.root_set:
        raise ConfigError("conflicting directive 'root' is used more than once!")
    if word_count != 2:
        raise ConfigError("root directive error detected!")
    server.root = transform_root(token)
    server.root_set = True


def _apply_autoindex(server: ServerConfig, token: str) -> None:
    if server.autoindex_set:
        raise ConfigError("'autoindex' is used more than once!")
    if token.startswith("on"):
        server.autoindex = True
    elif token.startswith("off"):
        server.autoindex = False
    else:
        raise ConfigError("autoindex parameters only allows 'on' or 'off'!")
    server.autoindex_set = True


def _apply_body_size(server: ServerConfig, token: str) -> None:
    if server.client_max_body_size_set:
        raise ConfigError("'client_max_body_size' is used more than once!")
    server.client_max_body_size = convert_to_bytes(token)
    server.client_max_body_size_set = True


def _apply_return(server: ServerConfig, token: str, word_count: int) -> None:
    bad_code = "in return directive: invalid error code detected! Must be 400 - 599!"
    if word_count == 2 and not has_alpha(token):
        if server.ret:
            return
        code = _atoi(token)
        if not 100 <= code <= 599:
            raise ConfigError(bad_code)
        server.ret.setdefault(code, "")
        return
    if word_count != 3:
        raise ConfigError("return directive error detected!")
    if server.ret:
        return
    if not has_alpha(token) and token[0].isdigit():
        code = _atoi(token)
        if not 100 <= code <= 599:
            raise ConfigError(bad_code)
        server.ret_code = code
    elif token.startswith("/") or token.startswith("http"):
        server.ret_value = token
        if server.ret_code < 100:
            raise ConfigError("return directive must have an error_code + URL/PATH!")
        server.ret[server.ret_code] = remove_consecutive_slashes(server.ret_value)
        server.ret_code = 0
        server.ret_value = ""
    else:
        raise ConfigError("invalid return parameter detected!")


def _apply_cgi(server: ServerConfig, token: str) -> None:
    if token.startswith("."):
        if len(token) > 1:
            server.pending_cgi_ext = token
    elif token.startswith("/"):
        server.pending_cgi_path = remove_consecutive_slashes(token)
    else:
        raise ConfigError("cgi_ext parameters are invalid!")
    if server.pending_cgi_ext and server.pending_cgi_path:
        server.cgi[server.pending_cgi_ext] = server.pending_cgi_path
        server.pending_cgi_ext = ""
        server.pending_cgi_path = ""


def apply_server_directive(server, line, key, value, pending_error_codes):
    """Apply one directive line inside a server block.

    ``pending_error_codes`` collects the codes of an ``error_page`` directive
    until its page path is seen. Returns True if the line closed the block.
    """
    word_count = count_words(line)
    if not value:
        if key == "}":
            return True
        raise ConfigError("server block directive requires parameters!")

    param = 1
    for token in value.split(" "):
        if not token:
            continue
        if key == "listen" and word_count == 2:
            _apply_listen(server, token)
        elif key.startswith("server_name"):
            if token not in server.domains:
                server.domains.append(token)
        elif key.startswith("index"):
            _apply_index(server, token)
        elif key.startswith("root"):
            _apply_root(server, token, word_count)
        elif key.startswith("autoindex"):
            _apply_autoindex(server, token)
        elif key.startswith("client_max_body_size"):
            _apply_body_size(server, token)
        elif key.startswith("error_page") and word_count >= 3:
            param += 1
            if token.startswith("/") and param == word_count:
                page = remove_consecutive_slashes(token)
                for code in pending_error_codes:
                    server.error_pages[code] = page
                pending_error_codes.clear()
            elif not has_alpha(token) and 1 <= param < word_count:
                code = _atoi(token)
                if not 400 <= code <= 599:
                    raise ConfigError("invalid error code detected! Must be 400 - 599!")
                pending_error_codes.append(code)
            else:
                raise ConfigError("error_page directive error detected!")
        elif key.startswith("return"):
            _apply_return(server, token, word_count)
        elif key.startswith("cgi_exec") and word_count == 3:
            _apply_cgi(server, token)
        else:
            raise ConfigError("unknown server directive")
    return False


class ConfigParser:
    """Line-by-line parser of a configuration file.

    Feed it every line with :meth:`feed_line`, then call :meth:`finish` to
    validate the result and get the list of server configurations.
    """

    def __init__(self):
        self.configs: list[ServerConfig] = []
        self._pending_error_codes: list[int] = []
        self._depth = 0
        self._empty = True
        self._server_seen = False
        self._in_server = False
        self._location_open = False
        self._in_location = False
        self._location_kind = None
        self._location_path = ""

    @property
    def _server(self) -> ServerConfig:
        return self.configs[-1]

    def feed_line(self, line):
        """Process one line of configuration text."""
        line = line.lstrip()
        if not line or line.startswith("#") or not line.strip(" \t\n\r"):
            return
        line = line.rstrip(" ")
        if not line:
            return
        self._empty = False
        if line.endswith("{"):
            self._depth += 1
        elif line.endswith("}"):
            self._depth -= 1
        self._check_server_block(line)

    def finish(self):
        """Validate what was read and return the server configurations."""
        if self._depth != 0:
            logger.error("'{' is left opened.")
            raise ConfigError("Syntax error. Fix .conf file.")
        if self._empty:
            raise ConfigError("Config file is empty.")
        for server in self.configs:
            check_duplicates(server)
        for server in self.configs:
            generate_ip_port_domain(server)
        check_duplicate_ip_port_domains(self.configs)
        return self.configs

    def _open_server(self) -> None:
        self._in_server = True
        self.configs.append(ServerConfig.new_default(len(self.configs) + 1, transform_root("www")))

    def _check_server_block(self, value: str) -> None:
        while value:
            if self._in_server:
                self._add_server_directive(value)
                break
            if value.startswith("server"):
                self._server_seen = True
                value = value[len("server"):]
                while value:
                    if value[0].isspace():
                        value = value[1:]
                    elif value[0] == "{":
                        value = value[1:]
                        self._open_server()
                    else:
                        raise ConfigError("server block error!")
            elif value[0] == "{" and self._server_seen:
                value = value[1:]
                self._open_server()
            else:
                raise ConfigError("server block cannot be found!")

    def _add_server_directive(self, line: str) -> None:
        stripped, key, value = split_directive(line)
        if stripped.startswith("location") or self._location_open:
            self._check_location_block(stripped)
            return
        if apply_server_directive(self._server, stripped, key, value, self._pending_error_codes):
            self._server_seen = False
            self._in_server = False

    def _check_location_block(self, line: str) -> None:
        while line:
            if self._in_location:
                if self._location_kind is None or not self._location_path:
                    raise ConfigError("invalid location type and/or path is empty!")
                self._add_location_directive(line)
                break
            if line.startswith("location"):
                self._location_open = True
                self._location_kind = None
                kind, path, opened = parse_location_header(line)
                self._location_kind = kind
                if path:
                    self._location_path = path
                if opened:
                    self._in_location = True
                    new_location(self._server, self._location_path, kind)
                line = ""
            elif line[0] == "{" and self._location_open:
                self._in_location = True
                line = line[1:]
                new_location(self._server, self._location_path, self._location_kind)
            else:
                raise ConfigError("location block cannot be found!")

    def _find_location(self) -> Location | None:
        server = self._server
        for locations in (server.exact_loc, server.prefer_loc, server.prefix_loc):
            location = locations.get(self._location_path)
            if location is not None and location.path == self._location_path:
                return location
        return None

    def _add_location_directive(self, line: str) -> None:
        stripped, key, value = split_directive(line)
        location = self._find_location()
        if location is None:
            return
        if apply_location_directive(location, stripped, key, value, self._pending_error_codes):
            self._location_open = False
            self._in_location = False


def parse_config(text):
    """Parse configuration text and return the list of server configurations."""
    parser = ConfigParser()
    for line in text.split("\n"):
        parser.feed_line(line)
    return parser.finish()


def load_config(path):
    """Read and parse the configuration file at ``path``."""
    try:
        with open(path, encoding="utf-8", errors="surrogateescape") as handle:
            text = handle.read()
    except OSError as exc:
        raise ConfigError("Cannot open .conf file") from exc
    return parse_config(text)