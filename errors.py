from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Classification of bridge errors."""

    SPECIFICATION = "specification"
    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    TRANSPORT = "transport"
    NOT_FOUND = "not_found"
    EXECUTION = "execution"


class BridgeError(Exception):
    """Base class for every error raised while building or calling tools."""

    kind = ErrorKind.EXECUTION

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class SpecificationError(BridgeError):
    """The API description is malformed or uses an unsupported version."""

    kind = ErrorKind.SPECIFICATION


class ConfigurationError(BridgeError):
    """Bad base URL, HTTP method, or configuration value."""

    kind = ErrorKind.CONFIGURATION


class UploadValidationError(BridgeError):
    """The file-upload payload could not be decoded."""

    kind = ErrorKind.VALIDATION


class TransportError(BridgeError):
    """Network failure or timeout while talking to the upstream API."""

    kind = ErrorKind.TRANSPORT


class ToolNotFoundError(BridgeError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, name: str):
        super().__init__(f"Tool not found: {name}")
        self.name = name


class ToolExecutionError(BridgeError):
    """Non-2xx upstream response, or a declared-JSON body that did not parse."""

    kind = ErrorKind.EXECUTION

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
