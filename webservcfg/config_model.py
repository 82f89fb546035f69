"""Data model for parsed server and location blocks."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum

from .constants import MAX_BODY_SIZE

DEFAULT_BODY_SIZE = 1048576


class LocationKind(IntEnum):
    """How a location path is matched against a request URI."""

    EXACT = 1  # location = /path
    PREFER = 2  # location ^~ /path
    PREFIX = 3  # location /path


@dataclass
class Location:
    """Settings of one ``location`` block."""

    kind: LocationKind | None = None
    path: str = ""
    index: list[str] = field(default_factory=list)
    index_wiped: bool = False
    ret: dict[int, str] = field(default_factory=dict)
    ret_code: int = 0
    ret_value: str = ""
    root: str = ""
    alias: str = ""
    root_alias_set: bool = False
    error_pages: dict[int, str] = field(default_factory=dict)
    client_max_body_size: int = DEFAULT_BODY_SIZE
    client_max_body_size_set: bool = False
    autoindex: bool = False
    autoindex_set: bool = False
    limit_except: list[str] = field(default_factory=list)
    limit_except_set: bool = False
    cgi: dict[str, str] = field(default_factory=dict)
    pending_cgi_ext: str = ""
    pending_cgi_path: str = ""


@dataclass
class ServerConfig:
    """Settings of one ``server`` block."""

    name: str = ""
    ports: list[int] = field(default_factory=list)
    ipaddr: str = ""
    ip_port: dict[str, list[int]] = field(default_factory=dict)
    ip_port_list: list[str] = field(default_factory=list)
    ip_port_domain: list[str] = field(default_factory=list)
    domains: list[str] = field(default_factory=list)
    index: list[str] = field(default_factory=list)
    index_cleared: bool = False
    cgi_ext: dict[str, str] = field(default_factory=dict)
    ret: dict[int, str] = field(default_factory=dict)
    ret_code: int = 0
    ret_value: str = ""
    root: str = ""
    root_set: bool = False
    error_pages: dict[int, str] = field(default_factory=dict)
    client_max_body_size: int = DEFAULT_BODY_SIZE
    client_max_body_size_set: bool = False
    autoindex: bool = False
    autoindex_set: bool = False
    limit_except: list[str] = field(default_factory=list)
    exact_loc: dict[str, Location] = field(default_factory=dict)
    prefer_loc: dict[str, Location] = field(default_factory=dict)
    prefix_loc: dict[str, Location] = field(default_factory=dict)
    upload_store: str = ""
    max_file_size: int = 0
    allowed_types: list[str] = field(default_factory=list)
    cgi: dict[str, str] = field(default_factory=dict)
    pending_cgi_ext: str = ""
    pending_cgi_path: str = ""
    client_header_timeout: int = 0
    client_body_timeout: int = 0
    send_timeout: int = 0
    keepalive_timeout: int = 0
    cgi_read_timeout: int = 0
    cgi_send_timeout: int = 0
    cgi_connect_timeout: int = 0

    @classmethod
    def new_default(cls, number, root):
        """Create the defaults a freshly opened ``server`` block starts with."""
        return cls(
            name=f"server{number}",
            client_max_body_size=MAX_BODY_SIZE,
            root=root,
            index=["index.html", "index.htm"],
            limit_except=["GET", "POST", "DELETE"],
        )