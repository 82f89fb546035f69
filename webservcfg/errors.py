"""Exception types raised by the server and its configuration parser."""


class ServerException(Exception):
    """A fatal error while setting up or running the server."""


class DisconnectedException(Exception):
    """A client connection went away."""


class ConfigError(ServerException):
    """The configuration file is malformed or holds an invalid value."""