"""FTP connection management for the FTP batch dispatcher.

Provides the ConnectionState and TLSMode enums, the FTPConnectionConfig
dataclass, the secure session builder (build_access_options and
open_session) and FTPClient, the single session a batch runs against.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from ftplib import FTP, FTP_TLS, all_errors, error_perm
from pathlib import Path
from typing import BinaryIO, List, Optional, Union
import logging
import posixpath
import socket
import ssl
import tempfile

from ftp_batch.ftp.exceptions import (
    FTPConnectionError,
    FTPAuthenticationError,
    FTPNotConnectedError,
    FTPPathError,
    FTPTimeoutError,
    FTPTransferError,
)
from ftp_batch.ftp.listing import (
    DirectoryEntry,
    SKIPPED_MLSD_TYPES,
    is_listable_name,
)
from ftp_batch.ftp.pem import format_pem

logger = logging.getLogger("ftp_batch.connection")
protocol_logger = logging.getLogger("ftp_batch.protocol")


class ConnectionState(Enum):
    """FTP connection state."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class TLSMode(Enum):
    """How TLS is negotiated on the control channel."""
    PLAIN = "plain"
    EXPLICIT = "explicit"
    IMPLICIT = "implicit"

    @classmethod
    def from_secure(cls, secure: Union[bool, str]) -> "TLSMode":
        """Map an access option "secure" value (False, True or "implicit")."""
        if secure == "implicit":
            return cls.IMPLICIT
        return cls.EXPLICIT if secure else cls.PLAIN


DEFAULT_PORTS = {
    TLSMode.PLAIN: 21,
    TLSMode.EXPLICIT: 21,
    TLSMode.IMPLICIT: 990,
}


@dataclass
class FTPConnectionConfig:
    """Resolved FTP connection configuration for one batch."""
    host: str
    password: str = ""
    port: int = 0
    user: str = "anonymous"
    secure: bool = True
    implicit_tls: bool = False
    certificate: Optional[str] = None
    private_key: Optional[str] = None
    ignore_tls_issues: bool = False
    verbose_logging: bool = False
    timeout: int = 30

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.host:
            raise ValueError("Host is required")
        if self.port and not 1 <= self.port <= 65535:
            raise ValueError(f"Port must be between 1 and 65535, got {self.port}")
        if not 5 <= self.timeout <= 300:
            raise ValueError(f"Timeout must be between 5 and 300, got {self.timeout}")

    @property
    def tls_mode(self) -> TLSMode:
        """TLS mode implied by the secure and implicit_tls flags."""
        if not self.secure:
            return TLSMode.PLAIN
        return TLSMode.IMPLICIT if self.implicit_tls else TLSMode.EXPLICIT


@dataclass
class FTPResponse:
    """Final reply of a server command."""
    code: int
    message: str

    @classmethod
    def parse(cls, response: str) -> "FTPResponse":
        """Split a raw reply such as "250 File removed" into code and text."""
        response = response or ""
        try:
            code = int(response[:3])
        except ValueError:
            code = 0
        return cls(code=code, message=response)

    def to_dict(self) -> dict:
        """Convert the response to a dictionary."""
        return {"code": self.code, "message": self.message}


def build_access_options(config: FTPConnectionConfig) -> dict:
    """
    Assemble the parameters of the single connect call.

    Args:
        config: Connection configuration

    Returns:
        Dictionary for FTPClient.access(). "port" is present only for a
        non-zero port; "cert" and "key" only when non-empty after PEM repair.
    """
    cert = format_pem(config.certificate)
    key = format_pem(config.private_key)

    secure_options = {"reject_unauthorized": not config.ignore_tls_issues}
    if cert:
        secure_options["cert"] = cert
    if key:
        secure_options["key"] = key

    options = {"host": config.host}
    if config.port:
        options["port"] = config.port
    options.update(
        user=config.user,
        password=config.password,
        secure="implicit" if config.tls_mode == TLSMode.IMPLICIT else config.secure,
        secure_options=secure_options,
    )
    return options


def build_ssl_context(secure_options: dict) -> ssl.SSLContext:
    """
    Create the SSL context for an FTPS session.

    Args:
        secure_options: "reject_unauthorized" and optional PEM "cert"/"key"

    Returns:
        Configured client-side SSL context
    """
    context = ssl.create_default_context()
    if not secure_options.get("reject_unauthorized", True):
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

    cert = secure_options.get("cert")
    key = secure_options.get("key")
    if cert:
        _load_client_certificate(context, cert, key)
    elif key:
        logger.warning("Private key supplied without a certificate, ignoring it")
    return context


def _load_client_certificate(context: ssl.SSLContext, cert: str, key: Optional[str]) -> None:
    # load_cert_chain only reads from files
    with tempfile.TemporaryDirectory(prefix="ftp_batch_tls_") as tmpdir:
        cert_path = Path(tmpdir) / "cert.pem"
        cert_path.write_text(cert, encoding="ascii")
        key_path = None
        if key:
            key_path = Path(tmpdir) / "key.pem"
            key_path.touch(mode=0o600)
            key_path.write_text(key, encoding="ascii")
        context.load_cert_chain(
            certfile=str(cert_path),
            keyfile=str(key_path) if key_path else None,
        )


class ProtocolLoggingMixin:
    """Reports the control conversation to the protocol logger when verbose."""

    verbose = False

    def putcmd(self, line):
        if self.verbose:
            protocol_logger.debug(f"> {self.sanitize(line)}")
        super().putcmd(line)

    def getmultiline(self):
        line = super().getmultiline()
        if self.verbose:
            protocol_logger.debug(f"< {line}")
        return line


class LoggingFTP(ProtocolLoggingMixin, FTP):
    """ftplib.FTP with protocol logging."""


class LoggingFTP_TLS(ProtocolLoggingMixin, FTP_TLS):
    """ftplib.FTP_TLS with protocol logging."""


class ImplicitFTP_TLS(LoggingFTP_TLS):
    """FTP_TLS variant that wraps the control socket as soon as it connects."""

    def __init__(self, *args, **kwargs):
        self._sock = None
        super().__init__(*args, **kwargs)

    @property
    def sock(self):
        return self._sock

    @sock.setter
    def sock(self, value):
        if value is not None and not isinstance(value, ssl.SSLSocket):
            value = self.context.wrap_socket(value, server_hostname=self.host)
        self._sock = value


class FTPClient:
    """A single FTP/FTPS session with state tracking."""

    # Block size for FTP transfers (8KB)
    BLOCK_SIZE = 8192

    def __init__(self, timeout: int = 30, verbose: bool = False):
        """
        Initialize the client.

        Args:
            timeout: Connect and socket timeout in seconds
            verbose: Log every command and reply at DEBUG level
        """
        self._ftp: Optional[FTP] = None
        self._timeout = timeout
        self._verbose = verbose
        self._state = ConnectionState.DISCONNECTED
        self._connected_at: Optional[datetime] = None
        self._last_activity: Optional[datetime] = None
        self._error_message: Optional[str] = None

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        """True if currently connected."""
        return self._state == ConnectionState.CONNECTED

    @property
    def verbose(self) -> bool:
        """True if the control conversation is being logged."""
        return self._verbose

    @verbose.setter
    def verbose(self, value: bool) -> None:
        self._verbose = bool(value)
        if self._ftp is not None:
            self._ftp.verbose = self._verbose

    @property
    def connected_at(self) -> Optional[datetime]:
        """Timestamp when connection was established."""
        return self._connected_at

    @property
    def last_activity(self) -> Optional[datetime]:
        """Timestamp of last operation."""
        return self._last_activity

    @property
    def error_message(self) -> Optional[str]:
        """Last error message if state is ERROR."""
        return self._error_message

    @property
    def ftp(self) -> FTP:
        """
        Get the underlying ftplib object.

        Raises:
            FTPNotConnectedError: If not connected
        """
        if not self.is_connected or self._ftp is None:
            raise FTPNotConnectedError("FTP access")
        return self._ftp

    def _create_ftp(self, mode: TLSMode, context: Optional[ssl.SSLContext]) -> FTP:
        if mode == TLSMode.IMPLICIT:
            ftp = ImplicitFTP_TLS(context=context, timeout=self._timeout)
        elif mode == TLSMode.EXPLICIT:
            ftp = LoggingFTP_TLS(context=context, timeout=self._timeout)
        else:
            ftp = LoggingFTP(timeout=self._timeout)
        ftp.verbose = self._verbose
        return ftp

    def access(self, options: dict) -> FTPResponse:
        """
        Connect, negotiate TLS and log in.

        Args:
            options: Access options as built by build_access_options()

        Returns:
            The server's welcome message

        Raises:
            FTPConnectionError: If connection fails
            FTPAuthenticationError: If login fails
            FTPTimeoutError: If connection times out
        """
        if self._ftp is not None:
            self.close()

        host = options["host"]
        mode = TLSMode.from_secure(options.get("secure", False))
        port = options.get("port") or DEFAULT_PORTS[mode]
        user = options.get("user") or "anonymous"

        self._state = ConnectionState.CONNECTING
        self._error_message = None
        ftp = None

        try:
            context = None
            if mode != TLSMode.PLAIN:
                context = build_ssl_context(options.get("secure_options") or {})
            ftp = self._create_ftp(mode, context)

            try:
                welcome = ftp.connect(host=host, port=port, timeout=self._timeout)
            except socket.timeout:
                raise FTPTimeoutError("Connection", self._timeout)
            except OSError as e:
                raise FTPConnectionError(host, port, e)

            try:
                ftp.login(user=user, passwd=options.get("password") or "")
            except error_perm as e:
                raise FTPAuthenticationError(user, e)

            if mode != TLSMode.PLAIN:
                ftp.prot_p()
            ftp.set_pasv(True)

        except (FTPConnectionError, FTPAuthenticationError, FTPTimeoutError) as e:
            self._fail(ftp, str(e))
            raise
        except Exception as e:
            self._fail(ftp, str(e))
            raise FTPConnectionError(host, port, e)

        self._ftp = ftp
        self._state = ConnectionState.CONNECTED
        self._connected_at = datetime.now()
        self._last_activity = self._connected_at
        logger.info(f"Connected to {host}:{port} ({mode.value})")
        return FTPResponse.parse(welcome)

    def _fail(self, ftp: Optional[FTP], message: str) -> None:
        self._state = ConnectionState.ERROR
        self._error_message = message
        self._ftp = None
        logger.warning(f"Connection failed: {self._error_message}")
        if ftp is not None:
            try:
                ftp.close()
            except OSError:
                pass

    def close(self) -> None:
        """Close FTP connection gracefully."""
        if self._ftp:
            try:
                self._ftp.quit()
            except Exception:
                # Best effort close
                try:
                    self._ftp.close()
                except Exception:
                    pass

            if self._connected_at is not None:
                duration = (datetime.now() - self._connected_at).total_seconds()
                idle = (datetime.now() - (self._last_activity or self._connected_at)).total_seconds()
                logger.info(f"Disconnected after {duration:.1f}s ({idle:.1f}s since last activity)")

        self._ftp = None
        self._state = ConnectionState.DISCONNECTED
        self._connected_at = None

    def __enter__(self) -> "FTPClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _update_activity(self) -> None:
        """Update last activity timestamp."""
        self._last_activity = datetime.now()

    def list(self, path: str = "") -> List[DirectoryEntry]:
        """
        List directory contents in the order the server reports them.

        Uses MLSD and falls back to LIST for servers that do not
        implement it.

        Args:
            path: Directory path to list (current directory if empty)

        Returns:
            DirectoryEntry objects, without "." and ".."

        Raises:
            FTPNotConnectedError: If not connected
            FTPPathError: If the directory cannot be listed
        """
        ftp = self.ftp
        self._update_activity()
        try:
            try:
                return [
                    DirectoryEntry.from_mlsd(name, facts)
                    for name, facts in ftp.mlsd(path)
                    if is_listable_name(name)
                    and facts.get("type", "").lower() not in SKIPPED_MLSD_TYPES
                ]
            except error_perm as e:
                if not str(e).startswith(("500", "502")):
                    raise
                logger.debug(f"MLSD not supported, falling back to LIST: {e}")
            return self._list_unix(ftp, path)
        except all_errors as e:
            raise FTPPathError(path, "list", e)

    def _list_unix(self, ftp: FTP, path: str) -> List[DirectoryEntry]:
        lines: List[str] = []
        args = [path] if path else []
        ftp.dir(*args, lines.append)

        entries = []
        for line in lines:
            entry = DirectoryEntry.from_unix_line(line)
            if entry is not None and is_listable_name(entry.name):
                entries.append(entry)
        return entries

    def remove(self, path: str) -> FTPResponse:
        """
        Delete a file.

        Raises:
            FTPNotConnectedError: If not connected
            FTPPathError: If the file cannot be deleted
        """
        ftp = self.ftp
        self._update_activity()
        try:
            return FTPResponse.parse(ftp.delete(path))
        except all_errors as e:
            raise FTPPathError(path, "delete", e)

    def remove_dir(self, path: str) -> FTPResponse:
        """
        Remove a directory together with everything below it.

        Raises:
            FTPNotConnectedError: If not connected
            FTPPathError: If any part of the tree cannot be removed
        """
        ftp = self.ftp
        self._update_activity()
        self._clear_dir(path)
        try:
            return FTPResponse.parse(ftp.rmd(path))
        except all_errors as e:
            raise FTPPathError(path, "remove directory", e)

    def _clear_dir(self, path: str) -> None:
        for entry in self.list(path):
            child = posixpath.join(path, entry.name)
            if entry.is_directory:
                self.remove_dir(child)
            else:
                self.remove(child)

    def ensure_dir(self, path: str) -> None:
        """
        Create every missing directory along a path.

        The working directory is the same before and after the call.

        Raises:
            FTPNotConnectedError: If not connected
            FTPPathError: If a directory cannot be created
        """
        ftp = self.ftp
        self._update_activity()
        try:
            original = ftp.pwd()
            try:
                if path.startswith("/"):
                    ftp.cwd("/")
                for segment in [s for s in path.split("/") if s]:
                    try:
                        ftp.cwd(segment)
                    except error_perm:
                        ftp.mkd(segment)
                        ftp.cwd(segment)
            finally:
                ftp.cwd(original)
        except all_errors as e:
            raise FTPPathError(path, "create", e)

    def download_to(self, sink, path: str) -> FTPResponse:
        """
        Download a file, handing each received chunk to sink.write.

        Args:
            sink: Object with a write(bytes) method
            path: Remote file path

        Raises:
            FTPNotConnectedError: If not connected
            FTPTransferError: If the download fails
        """
        ftp = self.ftp
        self._update_activity()
        try:
            response = ftp.retrbinary(f"RETR {path}", sink.write, blocksize=self.BLOCK_SIZE)
        except all_errors as e:
            raise FTPTransferError("download", path, e)
        return FTPResponse.parse(response)

    def upload_from(self, source: BinaryIO, path: str) -> FTPResponse:
        """
        Upload a readable stream to a remote file.

        Args:
            source: Binary stream, read once until end of stream
            path: Remote file path

        Raises:
            FTPNotConnectedError: If not connected
            FTPTransferError: If the upload fails
        """
        ftp = self.ftp
        self._update_activity()
        try:
            response = ftp.storbinary(f"STOR {path}", source, blocksize=self.BLOCK_SIZE)
        except all_errors as e:
            raise FTPTransferError("upload", path, e)
        return FTPResponse.parse(response)


def open_session(config: FTPConnectionConfig) -> FTPClient:
    """
    Build the access options for a configuration and connect once.

    Args:
        config: Connection configuration

    Returns:
        A connected FTPClient; the caller owns it and must close it

    Raises:
        FTPConnectionError: If connection fails
        FTPAuthenticationError: If login fails
        FTPTimeoutError: If connection times out
    """
    client = FTPClient(timeout=config.timeout, verbose=config.verbose_logging)
    client.access(build_access_options(config))
    return client
