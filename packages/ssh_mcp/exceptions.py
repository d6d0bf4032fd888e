"""Custom exceptions for ssh-mcp server."""


class SshMcpError(Exception):
    """Base exception for ssh-mcp server."""

    code = "InternalError"

    def __init__(self, message: str, target_id: str = ""):
        super().__init__(message)
        self.target_id = target_id


class AlreadyExistsError(SshMcpError):
    """Raised when creating a connection, session or credential whose id is taken."""

    code = "AlreadyExists"


class NotFoundError(SshMcpError):
    """Raised when an operation references an unknown id."""

    code = "NotFound"


class InvalidParamsError(SshMcpError):
    """Raised when required fields are missing or contradict each other."""

    code = "InvalidParams"


class ConnectionFailedError(SshMcpError):
    """Raised when the SSH connection cannot be established."""

    code = "ConnectionFailed"

    def __init__(self, message: str, host: str = "", port: int = 0, target_id: str = ""):
        super().__init__(message, target_id=target_id)
        self.host = host
        self.port = port


class OperationFailedError(SshMcpError):
    """Raised when a transport call or remote command fails after connecting."""

    code = "OperationFailed"


class InvalidStateError(SshMcpError):
    """Raised when a session or connection is no longer usable."""

    code = "InvalidState"


class ConfigurationError(SshMcpError):
    """Raised when configuration is invalid or missing."""

    code = "ConfigurationError"

    def __init__(self, message: str, missing_key: str = ""):
        super().__init__(message)
        self.missing_key = missing_key
