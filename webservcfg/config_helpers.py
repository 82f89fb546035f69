"""Validation and conversion helpers used while parsing a configuration."""

from __future__ import annotations

import logging
import os
import re

from .config_model import ServerConfig
from .constants import MAX_BODY_SIZE
from .errors import ConfigError

logger = logging.getLogger(__name__)

_ULONG_MAX = 2**64 - 1
_DIGITS = frozenset("0123456789")
_ALLOWED_EXTENSIONS = frozenset({".html", ".htm", ".php"})
_SIZE_SUFFIXES = {"k": 1024, "m": 1048576, "g": 1073741824}
_RANGE_MESSAGE = "Valid ranges: 0.0.0.0 or (127.0.0.0 to 127.255.255.255)"


def _atoi(text: str) -> int:
    match = re.match(r"\s*([+-]?\d+)", text)
    return int(match.group(1)) if match else 0


def _split_fields(text: str, delimiter: str) -> list[str]:
    """Split like repeated line reads: a trailing empty field is not produced."""
    parts = text.split(delimiter)
    if parts and parts[-1] == "":
        parts.pop()
    return parts


def _split_address(address: str) -> tuple[str, str]:
    ip_part, colon, port_part = address.partition(":")
    if not colon:
        return address, address
    return ip_part, port_part


def _parse_unsigned(text: str) -> tuple[int | None, bool]:
    """Read an unsigned number; return (value or None on failure, consumed everything)."""
    match = re.match(r"\s*([+-]?)(\d+)", text)
    if match is None:
        return None, False
    number = int(match.group(2))
    if number > _ULONG_MAX:
        return None, False
    if match.group(1) == "-":
        number = (-number) & _ULONG_MAX
    return number, match.end() == len(text)


def _is_ascii_alpha(char: str) -> bool:
    return char.isascii() and char.isalpha()


def remove_consecutive_slashes(path):
    """Collapse every run of slashes into a single slash."""
    return re.sub(r"/{2,}", "/", path)


def transform_root(root, cwd=None):
    """Make a root directory absolute, slash-terminated and free of doubled slashes."""
    if not root.startswith("/"):
        base = os.getcwd() if cwd is None else str(cwd)
        result = f"{base}/{root}"
    else:
        result = root
    if result and not result.endswith("/"):
        result += "/"
    return remove_consecutive_slashes(result)


def count_words(line):
    """Number of whitespace-separated words in a line."""
    return len(line.split())


def is_valid_port_number(port):
    """True if the port lies in 1..65535."""
    return 1 <= port <= 65535


def has_alpha(text):
    """True if the text holds any ASCII letter."""
    return any(_is_ascii_alpha(c) for c in text)


def _octets_valid(ip_part: str) -> bool:
    octets = []
    for octet in _split_fields(ip_part, "."):
        if not all(c in _DIGITS for c in octet):
            return False
        number = _atoi(octet)
        if number > 255:
            return False
        octets.append(number)
    if len(octets) != 4:
        return False
    if octets == [0, 0, 0, 0] or octets[0] == 127:
        return True
    raise ConfigError(_RANGE_MESSAGE)


def is_valid_ip(address):
    """Validate an ``ip:port`` pair; only 0.0.0.0 and 127.x.x.x are accepted."""
    ip_part, port_part = _split_address(address)
    if not is_valid_port_number(_atoi(port_part)):
        return False
    return _octets_valid(ip_part)


def is_valid_ip_alone(address):
    """Validate a bare IPv4 address; only 0.0.0.0 and 127.x.x.x are accepted."""
    return _octets_valid(address)


def add_valid_ip(server, address):
    """Record an ``ip:port`` pair in the server's listen table."""
    ip_part, port_part = _split_address(address)
    if has_alpha(port_part):
        raise ConfigError("port cannot contain alphabets!")
    port = _atoi(port_part)
    ports = server.ip_port.get(ip_part)
    if ports is not None:
        if port in ports:
            raise ConfigError("duplicate port number detected!")
        if is_valid_port_number(port):
            ports.append(port)
    else:
        server.ip_port[ip_part] = [port] if is_valid_port_number(port) else []


def convert_to_bytes(value):
    """Convert a size such as ``512``, ``8k`` or ``1M`` into bytes."""
    if value and _is_ascii_alpha(value[-1]):
        suffix = value[-1].lower()
        number, complete = _parse_unsigned(value[:-1])
        if number is None or not complete:
            raise ConfigError("invalid value, conversion failed.")
        number = (number * _SIZE_SUFFIXES.get(suffix, 1)) & _ULONG_MAX
        if number > MAX_BODY_SIZE:
            raise ConfigError("client_max_body_size set too high!")
        return number
    number, complete = _parse_unsigned(value)
    if number is None or not complete:
        logger.warning("Invalid input: conversion failed.")
    return 0 if number is None else number


def check_extension(name):
    """Check that an index file name has an accepted extension and return it."""
    dot = name.find(".")
    if dot != -1 and dot != len(name) - 1:
        extension = name[dot:]
        if extension in _ALLOWED_EXTENSIONS:
            return extension
        raise ConfigError("Invalid extension! Only .html, .htm, .php are accepted.")
    raise ConfigError("Index parameters require an extension! .html, .htm, .php!")


def convert_str_to_size(number):
    """Convert a string of digits into a non-negative integer."""
    if not all(c in _DIGITS for c in number):
        raise ConfigError("Non-numeric character detected in timeout parameter!")
    if not number:
        return 0
    return min(int(number), _ULONG_MAX)


def _reject_duplicates(values, label: str) -> None:
    seen = set()
    for item in values:
        if item in seen:
            raise ConfigError(f"duplicate value found in {label}!")
        seen.add(item)


def check_duplicates(server: ServerConfig):
    """Raise if ports, domains, index files or allowed methods repeat."""
    _reject_duplicates(server.ports, "ports")
    _reject_duplicates(server.domains, "domains")
    _reject_duplicates(server.index, "index")
    _reject_duplicates(server.limit_except, "limit_except")


def generate_ip_port_domain(server: ServerConfig):
    """Fill ``ip_port_list`` and ``ip_port_domain`` from the listen table and names."""
    for ip in sorted(server.ip_port):
        server.ip_port_list.extend(f"{ip}:{port}" for port in server.ip_port[ip])
    for ip_port in server.ip_port_list:
        server.ip_port_domain.extend(f"{ip_port}:{domain}" for domain in server.domains)


def check_duplicate_ip_port_domains(configs):
    """Drop ``ip:port:domain`` entries that another entry already claims.

    When an entry appears more than once, the first occurrence in the server
    being examined is removed, so the last server to claim it keeps it.
    """
    for server in configs:
        entries = server.ip_port_domain
        position = 0
        while position < len(entries):
            check = entries[position]
            count = 0
            for other in configs:
                for candidate in list(other.ip_port_domain):
                    if candidate != check:
                        continue
                    count += 1
                    if count > 1:
                        if check in entries:
                            entries.remove(check)
                        break
            position += 1