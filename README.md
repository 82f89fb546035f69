# webservcfg

`webservcfg` reads and validates configuration files for a small
nginx-style HTTP server, and runs CGI scripts through non-blocking
sockets, parsing what they write back.

## Configuration files

A configuration holds one or more `server` blocks. Each block may set
listening addresses, server names, a document root, index files, error
pages, redirects, body size limits, CGI interpreters and `location`
blocks:

```
server {
    listen 127.0.0.1:8080;
    server_name example.com www.example.com;
    root www;
    index index.html;
    client_max_body_size 512k;
    error_page 404 /errors/404.html;
    cgi_exec .py /usr/bin/python3;

    location = /exact {
        return 301 /elsewhere;
    }

    location ^~ /static {
        autoindex on;
    }

    location /upload {
        limit_except POST DELETE;
        client_max_body_size 1m;
    }
}
```

Some rules the parser applies:

- `listen` takes `ip:port`, a bare address or a bare port. Addresses are
  accepted only as `0.0.0.0` or within `127.0.0.0/8`; a bare port listens
  on `0.0.0.0`, a bare address on port 8080.
- Relative `root` and `alias` paths are resolved against the current
  working directory; roots always end in `/`, and runs of slashes are
  collapsed.
- `index` files must end in `.html`, `.htm` or `.php`.
- `client_max_body_size` accepts `k`, `m` and `g` suffixes; a suffixed
  size may not exceed 1 MiB.
- `error_page` codes must lie in 400–599, `return` codes in 100–599.
- `root`, `autoindex` and `client_max_body_size` may be given only once
  per block; inside a location, `root` and `alias` exclude each other.
- A new server starts with root `www`, index `index.html index.htm` and
  the methods `GET`, `POST` and `DELETE`.

Unknown directives, repeated single-use directives, invalid addresses,
bad index extensions, unbalanced braces and an empty file raise
`webservcfg.errors.ConfigError`.

## Loading a configuration

```python
from webservcfg.parser import load_config, parse_config
from webservcfg.report import format_configs

configs = load_config("server.conf")
for server in configs:
    print(server.name, server.root, server.domains)

print(format_configs(configs))
```

`parse_config` does the same for configuration text held in a string.
For line-by-line input, create a `webservcfg.parser.ConfigParser`, call
`feed_line` for each line and `finish` once the input is exhausted;
`finish` returns the list of `ServerConfig` objects.

Each `ServerConfig` (in `webservcfg.config_model`) keeps its locations in
three maps by match kind: `exact_loc` (`=`), `prefer_loc` (`^~`) and
`prefix_loc` (plain prefix). A `Location` starts with the server's
settings at the point it is declared and overrides them with its own
directives. After parsing, `ip_port_domain` lists `ip:port:domain`
entries; an entry claimed by more than one server is kept only by the
last server to claim it.

`webservcfg.report.format_configs` and `format_locations` return a
coloured, human-readable dump of parsed configurations.

## Running CGI scripts

```python
from webservcfg.cgi import CGIProcess, CGIError, build_environment

environ = build_environment(
    "example.com", "8080", "POST", "", "", "/cgi-bin/hello.py",
    "/srv/www/cgi-bin/hello.py", "name=value", "127.0.0.1",
    "application/x-www-form-urlencoded", 10,
)
with CGIProcess("/usr/bin/python3", "/srv/www/cgi-bin/hello.py",
                environ, b"name=value") as process:
    try:
        process.start()
        while not process.is_complete():
            process.send_post_body()
            process.read_available_output()
        result = process.parse_output()
        print(result.status, result.content_type, result.body)
    except CGIError as error:
        print("CGI failed with status", error.status, error)
```

`send_post_body` and `read_available_output` never block; the
`input_fileno` and `output_fileno` properties give the descriptors to
wait on with `select` or `selectors`.

A script's output must start with headers separated from the body by a
blank line and must include `Content-Type`; a `Status` header, when
present, must be a three-digit code followed by a single word, and the
status defaults to `200`. Malformed output, a script killed by a signal
or a script that cannot be started gives status 502; a script that runs
longer than 15 seconds is stopped and reported with 504. The same checks
are available without a process through `parse_cgi_output` and
`valid_status_line`.

## What this package does not do

It has no HTTP server: it does not listen on sockets, accept
connections, parse requests or build responses, and it provides no
command to run. It produces the configuration such a server would use
and handles the CGI side of a request, leaving the rest to the caller.