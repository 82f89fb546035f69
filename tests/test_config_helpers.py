import os

import pytest

from webservcfg.config_helpers import (
    add_valid_ip,
    check_duplicate_ip_port_domains,
    check_duplicates,
    check_extension,
    convert_str_to_size,
    convert_to_bytes,
    count_words,
    generate_ip_port_domain,
    has_alpha,
    is_valid_ip,
    is_valid_ip_alone,
    is_valid_port_number,
    remove_consecutive_slashes,
    transform_root,
)
from webservcfg.config_model import Location, LocationKind, ServerConfig
from webservcfg.constants import MAX_BODY_SIZE
from webservcfg.errors import ConfigError, ServerException


def _server(number=1):
    return ServerConfig.new_default(number, "/srv/www/")


def test_remove_consecutive_slashes_pinned():
    assert remove_consecutive_slashes("/var//www///html") == "/var/www/html"


@pytest.mark.parametrize("path", ["", "/", "////", "a//b", "//x//y//", "no/slash/runs"])
def test_remove_consecutive_slashes_invariants(path):
    result = remove_consecutive_slashes(path)
    assert "//" not in result
    assert remove_consecutive_slashes(result) == result
    assert result.replace("/", "") == path.replace("/", "")


def test_transform_root_relative_uses_cwd(tmp_path):
    result = transform_root("www", str(tmp_path))
    assert result == os.path.join(str(tmp_path), "www") + "/"


def test_transform_root_defaults_to_process_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    result = transform_root("site")
    assert result.startswith(os.getcwd())
    assert result.endswith("/site/")


def test_transform_root_absolute_ignores_cwd():
    result = transform_root("/srv//data", "/elsewhere")
    assert result == "/srv/data/"
    assert "elsewhere" not in result


def test_count_words():
    assert count_words("error_page 404   /404.html") == 3
    assert count_words("   ") == 0


@pytest.mark.parametrize("port, expected", [(0, False), (1, True), (65535, True), (65536, False)])
def test_is_valid_port_number(port, expected):
    assert is_valid_port_number(port) is expected


def test_has_alpha():
    assert has_alpha("80a") is True
    assert has_alpha("8080") is False
    assert has_alpha("") is False


@pytest.mark.parametrize("address", ["127.0.0.1:8080", "0.0.0.0:80", "127.255.255.255:65535"])
def test_is_valid_ip_accepts(address):
    assert is_valid_ip(address) is True


@pytest.mark.parametrize(
    "address",
    ["127.0.0.1:0", "127.0.0.1:70000", "127.0.0:80", "127.a.0.1:80", "127.0.0.256:80"],
)
def test_is_valid_ip_rejects(address):
    assert is_valid_ip(address) is False


def test_is_valid_ip_outside_allowed_range_raises():
    with pytest.raises(ConfigError, match="Valid ranges"):
        is_valid_ip("10.0.0.1:80")


def test_is_valid_ip_alone():
    assert is_valid_ip_alone("127.0.0.1") is True
    assert is_valid_ip_alone("0.0.0.0") is True
    assert is_valid_ip_alone("1.2.3") is False
    with pytest.raises(ConfigError, match="Valid ranges"):
        is_valid_ip_alone("192.168.1.1")


def test_add_valid_ip_builds_table():
    server = _server()
    add_valid_ip(server, "0.0.0.0:80")
    add_valid_ip(server, "0.0.0.0:81")
    add_valid_ip(server, "127.0.0.1:8080")
    assert server.ip_port == {"0.0.0.0": [80, 81], "127.0.0.1": [8080]}


def test_add_valid_ip_duplicate_port_raises():
    server = _server()
    add_valid_ip(server, "0.0.0.0:80")
    with pytest.raises(ConfigError, match="duplicate port"):
        add_valid_ip(server, "0.0.0.0:80")


def test_add_valid_ip_alpha_port_raises():
    with pytest.raises(ConfigError, match="alphabets"):
        add_valid_ip(_server(), "0.0.0.0:8a")


def test_add_valid_ip_invalid_port_leaves_empty_list():
    server = _server()
    add_valid_ip(server, "127.0.0.1:0")
    assert server.ip_port == {"127.0.0.1": []}


@pytest.mark.parametrize("value, expected", [("1k", 1024), ("1K", 1024), ("1m", 1048576), ("1M", 1048576)])
def test_convert_to_bytes_suffixes(value, expected):
    assert convert_to_bytes(value) == expected


def test_convert_to_bytes_plain_number_has_no_limit():
    assert convert_to_bytes("512") == 512
    assert convert_to_bytes(str(MAX_BODY_SIZE * 4)) == MAX_BODY_SIZE * 4


def test_convert_to_bytes_unknown_suffix_is_ignored():
    assert convert_to_bytes("12x") == 12


def test_convert_to_bytes_trailing_garbage_still_returns_number():
    assert convert_to_bytes("12 ") == 12
    assert convert_to_bytes("") == 0


@pytest.mark.parametrize("value", ["2m", "1g", "1025k"])
def test_convert_to_bytes_too_large(value):
    with pytest.raises(ConfigError, match="too high"):
        convert_to_bytes(value)


@pytest.mark.parametrize("value", ["abck", "k", "1 2k"])
def test_convert_to_bytes_bad_number(value):
    with pytest.raises(ConfigError, match="conversion failed"):
        convert_to_bytes(value)


@pytest.mark.parametrize("name, extension", [("index.html", ".html"), ("home.htm", ".htm"), ("app.php", ".php")])
def test_check_extension_accepts(name, extension):
    assert check_extension(name) == extension


@pytest.mark.parametrize("name", ["index.txt", "a.b.html"])
def test_check_extension_invalid(name):
    with pytest.raises(ConfigError, match="Invalid extension"):
        check_extension(name)


@pytest.mark.parametrize("name", ["index", "index."])
def test_check_extension_missing(name):
    with pytest.raises(ConfigError, match="require an extension"):
        check_extension(name)


def test_convert_str_to_size():
    assert convert_str_to_size("30") == 30
    assert convert_str_to_size("") == 0
    for bad in ("3a", "-1", " 5"):
        with pytest.raises(ConfigError, match="Non-numeric"):
            convert_str_to_size(bad)


def test_config_error_is_server_exception():
    with pytest.raises(ServerException):
        convert_str_to_size("x")


@pytest.mark.parametrize(
    "attribute, values, label",
    [
        ("ports", [80, 80], "ports"),
        ("domains", ["a.test", "a.test"], "domains"),
        ("index", ["index.html", "index.html"], "index"),
        ("limit_except", ["GET", "GET"], "limit_except"),
    ],
)
def test_check_duplicates_raises(attribute, values, label):
    server = _server()
    setattr(server, attribute, values)
    with pytest.raises(ConfigError, match=f"duplicate value found in {label}!"):
        check_duplicates(server)


def test_check_duplicates_accepts_defaults():
    server = _server()
    check_duplicates(server)
    assert server.index == ["index.html", "index.htm"]
    assert server.limit_except == ["GET", "POST", "DELETE"]


def test_generate_ip_port_domain_orders_by_ip():
    server = _server()
    server.ip_port = {"127.0.0.1": [80], "0.0.0.0": [81]}
    server.domains = ["a", "b"]
    generate_ip_port_domain(server)
    assert server.ip_port_list == ["0.0.0.0:81", "127.0.0.1:80"]
    assert server.ip_port_domain == [
        "0.0.0.0:81:a",
        "0.0.0.0:81:b",
        "127.0.0.1:80:a",
        "127.0.0.1:80:b",
    ]


def test_generate_ip_port_domain_without_domains():
    server = _server()
    server.ip_port = {"0.0.0.0": [80]}
    generate_ip_port_domain(server)
    assert server.ip_port_list == ["0.0.0.0:80"]
    assert server.ip_port_domain == []


def test_check_duplicate_ip_port_domains_last_server_keeps_entry():
    first, second = _server(1), _server(2)
    first.ip_port_domain = ["0.0.0.0:80:x", "0.0.0.0:80:only-first"]
    second.ip_port_domain = ["0.0.0.0:80:x"]
    check_duplicate_ip_port_domains([first, second])
    assert first.ip_port_domain == ["0.0.0.0:80:only-first"]
    assert second.ip_port_domain == ["0.0.0.0:80:x"]


def test_check_duplicate_ip_port_domains_collapses_within_server():
    server = _server()
    server.ip_port_domain = ["0.0.0.0:80:x", "0.0.0.0:80:x"]
    check_duplicate_ip_port_domains([server])
    assert server.ip_port_domain == ["0.0.0.0:80:x"]


def test_new_default_server():
    server = ServerConfig.new_default(3, "/srv/www/")
    assert server.name == "server3"
    assert server.client_max_body_size == MAX_BODY_SIZE
    assert server.root == "/srv/www/"
    assert server.index == ["index.html", "index.htm"]
    assert server.limit_except == ["GET", "POST", "DELETE"]
    assert server.exact_loc == {} and server.cgi == {}


def test_new_default_servers_do_not_share_lists():
    first, second = _server(1), _server(2)
    first.index.append("extra.html")
    assert second.index == ["index.html", "index.htm"]


def test_location_defaults():
    location = Location(kind=LocationKind.PREFIX, path="/images")
    assert location.client_max_body_size == MAX_BODY_SIZE
    assert location.autoindex is False
    assert LocationKind(1) is LocationKind.EXACT