class RestGraphError(Exception):
    """
    Base exception for all restgraph failures.
    """

    pass


class ConfigError(RestGraphError):
    """
    Raised when configuration values are invalid.
    """

    pass


class CandidateError(RestGraphError):
    """
    Raised when an upload candidate cannot be introspected.
    """

    pass


class CandidateReadError(CandidateError):
    """
    Raised when the bytes of an upload candidate cannot be loaded.
    """

    pass


class TransportError(RestGraphError):
    """
    Raised when a call cannot reach the remote endpoint.
    """

    pass
