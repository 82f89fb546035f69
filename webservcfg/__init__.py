"""Configuration parsing, reporting and CGI script handling for an nginx-style HTTP server."""

__version__ = "1.0.0"

__all__ = [
    "cgi",
    "config_helpers",
    "config_model",
    "constants",
    "errors",
    "location_block",
    "parser",
    "report",
]