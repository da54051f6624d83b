"""FTP-specific exceptions for the FTP batch dispatcher.

Custom exception hierarchy for session and batch operations to provide
clear error handling and user-friendly messages.
"""

from typing import Optional


class FTPError(Exception):
    """Base exception for all FTP-related errors."""

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class FTPConnectionError(FTPError):
    """Failed to establish FTP connection."""

    def __init__(self, host: str, port: Optional[int], original_error: Exception = None):
        self.host = host
        self.port = port
        target = f"{host}:{port}" if port else host
        message = f"Failed to connect to {target}"
        super().__init__(message, original_error)


class FTPAuthenticationError(FTPError):
    """FTP authentication (login) failed."""

    def __init__(self, username: str, original_error: Exception = None):
        self.username = username
        message = f"Authentication failed for user '{username}'"
        super().__init__(message, original_error)


class FTPNotConnectedError(FTPError):
    """Operation attempted without active FTP connection."""

    def __init__(self, operation: str = "Operation"):
        message = f"{operation} requires an active FTP connection"
        super().__init__(message)


class FTPTimeoutError(FTPError):
    """FTP operation timed out."""

    def __init__(self, operation: str = "Operation", timeout: int = 30):
        self.timeout = timeout
        message = f"{operation} timed out after {timeout} seconds"
        super().__init__(message)


class FTPTransferError(FTPError):
    """Failed to move file content to or from the server."""

    def __init__(self, direction: str, remote_path: str, original_error: Exception = None):
        self.direction = direction
        self.remote_path = remote_path
        message = f"Failed to {direction} '{remote_path}'"
        super().__init__(message, original_error)


class FTPPathError(FTPError):
    """FTP path operation failed (delete, list, mkdir, rmdir)."""

    def __init__(self, path: str, operation: str, original_error: Exception = None):
        self.path = path
        self.operation = operation
        message = f"Failed to {operation} path '{path}'"
        super().__init__(message, original_error)


class MissingBinaryDataError(FTPError):
    """Input record has no binary attachment under the requested name."""

    def __init__(self, item_index: int, property_name: str):
        self.item_index = item_index
        self.property_name = property_name
        message = f"Item {item_index} has no binary property '{property_name}'"
        super().__init__(message)


class ParameterError(FTPError):
    """A per-record parameter could not be resolved."""

    def __init__(self, name: str, item_index: int, original_error: Exception = None):
        self.name = name
        self.item_index = item_index
        message = f"Could not resolve parameter '{name}' for item {item_index}"
        super().__init__(message, original_error)


class UnsupportedOperationError(FTPError):
    """Operation kind is not one the dispatcher knows."""

    def __init__(self, operation: str):
        self.operation = operation
        message = f'The operation "{operation}" is not supported!'
        super().__init__(message)


class BatchOperationError(FTPError):
    """A batch failed: a record failed while failure isolation was
    disabled, or the batch could not start at all.

    Carries the node and operation identity so the caller can locate
    the failing step of a larger workflow, and the output records
    produced before the failure. item_index is None when no record
    was involved (connection failure, unknown operation).
    """

    def __init__(
        self,
        node_name: str,
        operation: str,
        item_index: Optional[int],
        original_error: Exception = None,
        results: Optional[list] = None
    ):
        self.node_name = node_name
        self.operation = operation
        self.item_index = item_index
        self.results = list(results or [])
        message = f"[{node_name}] {operation} failed"
        if item_index is not None:
            message += f" on item {item_index}"
        super().__init__(message, original_error)
