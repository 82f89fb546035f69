"""Human-readable dumps of parsed server and location configurations."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from .config_model import Location, ServerConfig

COLOUR_RED = "\033[31m"
COLOUR_ORANGE = "\033[38;5;214m"
COLOUR_YELLOW = "\033[33m"
COLOUR_GREEN = "\033[32m"
COLOUR_BLUE = "\033[34m"
COLOUR_RESET = "\033[0m"

_RULE = "-" * 37
_EMPTY = "(empty)"


def _label(colour: str, text: str) -> str:
    return f"{colour}{text}{COLOUR_RESET}"


def _joined(values: Iterable[str]) -> str:
    items = list(values)
    return ", ".join(items) if items else _EMPTY


def _ret_lines(ret: Mapping[int, str]) -> list[str]:
    if not ret:
        return [_EMPTY]
    return [f"({code}, {target})" for code, target in sorted(ret.items())]


def _format_location(key: str, location: Location) -> list[str]:
    blue = COLOUR_BLUE
    lines = [
        _label(COLOUR_RED, "Key: ") + key,
        _label(COLOUR_RED, "Container members: "),
        _label(blue, "  type: ") + (_EMPTY if location.kind is None else str(int(location.kind))),
        _label(blue, "  path: ") + (location.path or _EMPTY),
        _label(blue, "  root: ") + (location.root or _EMPTY),
        _label(blue, "  index: ") + _joined(location.index),
        _label(blue, "  alias: ") + (location.alias or _EMPTY),
    ]
    ret_lines = _ret_lines(location.ret)
    lines.append(_label(blue, "  ret: ") + ret_lines[0])
    lines.extend(ret_lines[1:])

    lines.append(_label(blue, "  error_pages:"))
    if location.error_pages:
        lines.extend(f"    {code}, {page}" for code, page in sorted(location.error_pages.items()))
    else:
        lines.append(f"  {_EMPTY}")

    lines.append(_label(blue, "  client_max_body_size: ") + str(location.client_max_body_size))
    lines.append(_label(blue, "  autoindex: ") + str(int(bool(location.autoindex))))
    lines.append(_label(blue, "  limit_except: ") + _joined(location.limit_except))

    # The colour reset follows the newline here.
    cgi_header = f"{blue}  cgi:\n{COLOUR_RESET}"
    if location.cgi:
        body = [f"    {ext}, {path}" for ext, path in sorted(location.cgi.items())]
    else:
        body = [f"  {_EMPTY}"]
    lines.append(cgi_header + body[0])
    lines.extend(body[1:])
    return lines


def format_locations(locations):
    """Describe every location of a map, ordered by path."""
    lines: list[str] = []
    for key in sorted(locations):
        lines.extend(_format_location(key, locations[key]))
    return "".join(f"{line}\n" for line in lines)


def _format_location_group(label: str, locations: Mapping[str, Location]) -> str:
    if not locations:
        return f"{label}: {_EMPTY}\n"
    return (
        _label(COLOUR_ORANGE, f"* in {label} *")
        + "\n"
        + format_locations(locations)
        + f"Map size = {len(locations)}\n"
    )


def _format_server(server: ServerConfig) -> str:
    green = COLOUR_GREEN
    parts: list[str] = [f"{_RULE}\n", _label(COLOUR_YELLOW, server.name) + "\n"]

    parts.append(f"{green}ip_port:\n{COLOUR_RESET}")
    if server.ip_port:
        for ip in sorted(server.ip_port):
            parts.extend(f"{ip}:{port}\n" for port in server.ip_port[ip])
    else:
        parts.append(f"{_EMPTY}\n")

    parts.append(_label(green, "server_name/domains: ") + _joined(server.domains) + "\n")

    parts.append(f"{green}ipPortDomains:\n{COLOUR_RESET}")
    if server.ip_port_domain:
        parts.extend(f"{entry}\n" for entry in server.ip_port_domain)
    else:
        parts.append(f"{_EMPTY}\n")

    parts.append(_label(green, "index: ") + _joined(server.index) + "\n")
    parts.append(_label(green, "root: ") + (server.root or _EMPTY) + "\n")

    parts.append(_label(green, "ret: "))
    parts.extend(f"{line}\n" for line in _ret_lines(server.ret))

    parts.append(f"{green}error_pages:\n{COLOUR_RESET}")
    if server.error_pages:
        parts.extend(f"{code}, {page}\n" for code, page in sorted(server.error_pages.items()))
    else:
        parts.append(f"{_EMPTY}\n")

    parts.append(_label(green, "client_max_body_size: ") + f"{server.client_max_body_size}\n")
    parts.append(_label(green, "autoindex: ") + str(int(bool(server.autoindex))) + "\n")
    parts.append(_label(green, "limit_except: ") + _joined(server.limit_except) + "\n")

    parts.append(f"{green}cgi:\n{COLOUR_RESET}")
    if server.cgi:
        parts.extend(f"{ext}, {path}\n" for ext, path in sorted(server.cgi.items()))
    else:
        parts.append(f"{_EMPTY}\n")

    parts.append(f"{COLOUR_YELLOW}Locations:\n{COLOUR_RESET}")
    parts.append(_format_location_group("exact_loc", server.exact_loc))
    parts.append(_format_location_group("prefer_loc", server.prefer_loc))
    parts.append(_format_location_group("prefix_loc", server.prefix_loc))
    parts.append(f"{_RULE}\n")
    return "".join(parts)


def format_configs(configs):
    """Describe every server configuration, in order."""
    return "".join(_format_server(server) for server in configs)