"""Connection check used to check saved credentials before a batch runs."""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union

from ftp_batch.ftp.connection import FTPClient, FTPConnectionConfig, build_access_options

logger = logging.getLogger("ftp_batch.credential_check")


class CredentialStatus(Enum):
    """Outcome of a credential check."""
    OK = "OK"
    ERROR = "Error"


@dataclass
class CredentialTestResult:
    """Status and human-readable message of a credential check."""
    status: CredentialStatus
    message: str

    @property
    def ok(self) -> bool:
        """True if the check connected and logged in."""
        return self.status == CredentialStatus.OK

    def to_dict(self) -> dict:
        """Convert the result to a dictionary."""
        return {"status": self.status.value, "message": self.message}


def success(message: Optional[str] = None) -> CredentialTestResult:
    """Build an OK result."""
    if message is None:
        message = "Authentication successful!"
    return CredentialTestResult(status=CredentialStatus.OK, message=message)


def fail(detail: Union[str, Exception, dict, None] = None) -> CredentialTestResult:
    """
    Build an Error result.

    Args:
        detail: Failure detail. Strings are used as the message, other
            values are serialized as "Auth failed: <JSON>".

    Returns:
        CredentialTestResult with status ERROR
    """
    if isinstance(detail, str):
        message = detail
    elif detail is None:
        message = "Auth failed"
    else:
        if isinstance(detail, Exception):
            detail = {"type": type(detail).__name__, "message": str(detail)}
        message = f"Auth failed: {json.dumps(detail, default=str)}"
    return CredentialTestResult(status=CredentialStatus.ERROR, message=message)


def check_credentials(
    config: FTPConnectionConfig,
    client_factory: Callable[..., FTPClient] = FTPClient,
) -> CredentialTestResult:
    """
    Connect and log in once, then close.

    Args:
        config: Connection configuration to check
        client_factory: Creates the (unconnected) client

    Returns:
        CredentialTestResult; never raises for connection failures
    """
    client = client_factory(timeout=config.timeout, verbose=config.verbose_logging)
    try:
        client.access(build_access_options(config))
        logger.info(f"Credential check succeeded for {config.user}@{config.host}")
        return success()
    except Exception as e:
        logger.warning(f"Credential check failed for {config.user}@{config.host}: {e}")
        return fail(e)
    finally:
        client.close()
