"""Parsing of ``location`` block headers and the directives inside them."""

from __future__ import annotations

import re

from .config_helpers import (
    check_extension,
    convert_to_bytes,
    count_words,
    has_alpha,
    remove_consecutive_slashes,
    transform_root,
)
from .config_model import Location, LocationKind, ServerConfig
from .errors import ConfigError

_METHOD_PREFIXES = ("GET", "POST", "DELETE")


def _atoi(text: str) -> int:
    match = re.match(r"\s*([+-]?\d+)", text)
    return int(match.group(1)) if match else 0


def _fields(value: str) -> list[str]:
    return [part for part in value.split(" ") if part]


def _location_map(server: ServerConfig, kind: LocationKind) -> dict[str, Location]:
    if kind is LocationKind.EXACT:
        return server.exact_loc
    if kind is LocationKind.PREFER:
        return server.prefer_loc
    return server.prefix_loc


def parse_location_header(line):
    """Parse a ``location [=|^~] /path [{]`` line.

    Returns ``(kind, path, opened)``: the match kind (``None`` if none was
    given and no path followed), the path (empty if none was seen) and
    whether the opening brace was on this line.
    """
    if not line.startswith("location"):
        raise ConfigError("location block cannot be found!")
    rest = line[len("location"):]
    kind = None
    path = ""
    opened = False
    while rest:
        if rest[0].isspace():
            rest = rest[1:]
        elif rest.startswith("="):
            if kind is not None:
                raise ConfigError("on 'location' line!")
            kind = LocationKind.EXACT
            rest = rest[1:]
        elif rest.startswith("^~"):
            if kind is not None:
                raise ConfigError("on 'location' line!")
            kind = LocationKind.PREFER
            rest = rest[2:]
        elif rest.startswith("/"):
            segment = rest.split(" ", 1)[0]
            if kind is None:
                kind = LocationKind.PREFIX
            if segment.endswith("{"):
                segment = segment[:-1]
            path = segment
            rest = rest[len(segment):]
        elif rest[0] == "{" and kind is not None:
            opened = True
            rest = rest[1:]
        else:
            raise ConfigError("location block error!")
    return kind, path, opened


def new_location(server, path, kind):
    """Open a location block in ``server``, inheriting the server's settings.

    A block reopened for a path already present reuses the stored location:
    the inherited settings are reset, the rest is kept.
    """
    if kind is None:
        raise ConfigError("initLocationBlock unexpected error!")
    kind = LocationKind(kind)
    locations = _location_map(server, kind)
    location = locations.setdefault(path, Location())
    location.kind = kind
    location.path = path
    location.client_max_body_size = server.client_max_body_size
    location.limit_except_set = False
    location.limit_except = list(server.limit_except)
    location.error_pages = dict(server.error_pages)
    location.autoindex = server.autoindex
    location.index = list(server.index)
    location.index_wiped = False
    location.root = server.root
    location.root_alias_set = False
    location.cgi = dict(server.cgi)
    return location


def _apply_index(location: Location, name: str) -> None:
    check_extension(name)
    if not location.index_wiped:
        location.index.clear()
        location.index_wiped = True
        if name not in location.index:
            location.index.append(name)
        return
    if name in location.index:
        raise ConfigError("(location) duplicate index detected!")
    location.index.append(name)


def _apply_root(location: Location, word: str, word_count: int) -> None:
    if location.root_alias_set:
        raise ConfigError(
            "conflicting directive 'root' and 'alias' in location block,\n"
            "or 'root' is used more than once!"
        )
    if word_count != 2:
        raise ConfigError("root directive error detected!")
    location.root = transform_root(word)
    location.root_alias_set = True


def _apply_alias(location: Location, word: str, word_count: int) -> None:
    if location.root_alias_set:
        raise ConfigError(
            "conflicting directive 'root' and 'alias' in location block,\n"
            "or 'alias' is used more than once!"
        )
    if not (word.startswith("/") and word_count == 2):
        raise ConfigError("alias directive error detected!")
    location.alias = transform_root(word)
    location.root_alias_set = True
    location.root = ""


def _apply_autoindex(location: Location, word: str) -> None:
    if location.autoindex_set:
        raise ConfigError("(Location) 'autoindex' is used more than once!")
    if word.startswith("on"):
        location.autoindex = True
    elif word.startswith("off"):
        location.autoindex = False
    else:
        raise ConfigError("autoindex parameters only allows 'on' or 'off'!")
    location.autoindex_set = True


def _apply_body_size(location: Location, word: str) -> None:
    if location.client_max_body_size_set:
        raise ConfigError("(Location) 'client_max_body_size' is used more than once!")
    location.client_max_body_size = convert_to_bytes(word)
    location.client_max_body_size_set = True


def _apply_return(location: Location, word: str, word_count: int) -> None:
    bad_code = "(location) in return directive: invalid error code detected! Must be 400 - 599!"
    if word_count == 2 and not has_alpha(word):
        if location.ret:
            return
        code = _atoi(word)
        if not 100 <= code <= 599:
            raise ConfigError(bad_code)
        location.ret.setdefault(code, "")
        return
    if word_count != 3:
        raise ConfigError("return directive error detected!")
    if location.ret:
        return
    if not has_alpha(word) and word[0].isdigit():
        code = _atoi(word)
        if not 100 <= code <= 599:
            raise ConfigError(bad_code)
        location.ret_code = code
    elif word.startswith("/") or word.startswith("http"):
        location.ret_value = word
        if location.ret_code < 100:
            raise ConfigError("(location) return directive must have an error_code + URL/PATH!")
        location.ret[location.ret_code] = remove_consecutive_slashes(location.ret_value)
        location.ret_code = 0
        location.ret_value = ""
    else:
        raise ConfigError("(location) invalid return parameter detected!")


def _apply_cgi(location: Location, word: str) -> None:
    if word.startswith("."):
        if len(word) > 1:
            location.pending_cgi_ext = word
    elif word.startswith("/"):
        location.pending_cgi_path = remove_consecutive_slashes(word)
    else:
        raise ConfigError("cgi_ext parameters are invalid!")
    if location.pending_cgi_ext and location.pending_cgi_path:
        location.cgi[location.pending_cgi_ext] = location.pending_cgi_path
        location.pending_cgi_ext = ""
        location.pending_cgi_path = ""


def apply_location_directive(location, line, key, value, pending_error_codes):
    """Apply one directive line inside a location block.

    ``line`` is the whole directive line, ``key`` its first word and ``value``
    the cleaned-up parameters. ``pending_error_codes`` collects the codes of
    an ``error_page`` directive until its page path is seen. Returns True if
    the line closed the block.
    """
    word_count = count_words(line)
    if not value:
        if key == "}":
            return True
        raise ConfigError("location block directive requires parameters!")

    param = 1
    methods_pending = False
    for word in _fields(value):
        if key.startswith("index"):
            _apply_index(location, word)
        elif key.startswith("root"):
            _apply_root(location, word, word_count)
        elif key.startswith("limit_except"):
            if location.limit_except_set:
                raise ConfigError("(location) 'limit_except' is used more than once!")
            if not methods_pending:
                location.limit_except.clear()
                methods_pending = True
            param += 1
            method = word.upper()
            if not method.startswith(_METHOD_PREFIXES):
                raise ConfigError("unknown parameters.")
            if 1 <= param < word_count:
                if method not in location.limit_except:
                    location.limit_except.append(method)
            elif param == word_count:
                methods_pending = False
                if method not in location.limit_except:
                    location.limit_except.append(method)
                    location.limit_except_set = True
        elif key.startswith("autoindex"):
            _apply_autoindex(location, word)
        elif key.startswith("client_max_body_size"):
            _apply_body_size(location, word)
        elif key.startswith("error_page") and word_count >= 3:
            param += 1
            if word.startswith("/") and param == word_count:
                page = remove_consecutive_slashes(word)
                for code in pending_error_codes:
                    location.error_pages[code] = page
                pending_error_codes.clear()
            elif not has_alpha(word) and 1 <= param < word_count:
                code = _atoi(word)
                if not 400 <= code <= 599:
                    raise ConfigError("invalid error code detected! Must be 400 - 599!")
                pending_error_codes.append(code)
            else:
                raise ConfigError("error_page directive error detected!")
        elif key.startswith("alias"):
            _apply_alias(location, word, word_count)
        elif key.startswith("return"):
            _apply_return(location, word, word_count)
        elif key.startswith("cgi_exec") and word_count == 3:
            _apply_cgi(location, word)
        else:
            raise ConfigError("unknown location directive!")
    return False