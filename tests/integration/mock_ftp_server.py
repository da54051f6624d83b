"""Local FTP server for integration testing.

Uses pyftpdlib to serve a temporary directory tree.
"""

import tempfile
import threading
import time
from pathlib import Path
from typing import Optional

from pyftpdlib.authorizers import DummyAuthorizer
from pyftpdlib.handlers import FTPHandler
from pyftpdlib.servers import FTPServer


class MockFTPServer:
    """
    Local FTP server over a temporary directory.

    Usage:
        with MockFTPServer(port=2121) as server:
            # Connect to localhost:2121
            # server.root_dir contains the served filesystem
            pass
    """

    DEFAULT_USER = "testuser"
    DEFAULT_PASS = "testpass"

    def __init__(
        self,
        port: int = 2121,
        username: str = DEFAULT_USER,
        password: str = DEFAULT_PASS,
    ):
        """
        Initialize the server.

        Args:
            port: Port to listen on
            username: FTP username
            password: FTP password
        """
        self.port = port
        self.username = username
        self.password = password

        self._server: Optional[FTPServer] = None
        self._thread: Optional[threading.Thread] = None
        self._temp_dir: Optional[tempfile.TemporaryDirectory] = None
        self._root_dir: Optional[Path] = None

    @property
    def root_dir(self) -> Path:
        """Root directory of the served filesystem."""
        if self._root_dir is None:
            raise RuntimeError("Server not started")
        return self._root_dir

    @property
    def host(self) -> str:
        """Server host address."""
        return "127.0.0.1"

    def _create_structure(self) -> None:
        """Create the initial directory tree."""
        root = self._root_dir

        inbox = root / "inbox"
        inbox.mkdir()
        (inbox / "a.txt").write_text("alpha")
        (inbox / "b.csv").write_text("id,name\n1,beta\n")

        (root / "empty").mkdir()

        tree = root / "tree" / "nested" / "deeper"
        tree.mkdir(parents=True)
        (root / "tree" / "top.txt").write_text("top")
        (tree / "leaf.bin").write_bytes(b"\x00\x01\x02")

    def add_file(self, path: str, content: bytes) -> Path:
        """
        Add a file to the served filesystem.

        Args:
            path: FTP path (e.g., "/inbox/new.txt")
            content: File content

        Returns:
            Local path of the created file
        """
        local_path = self._root_dir / path.lstrip("/")
        local_path.parent.mkdir(parents=True, exist_ok=True)
        local_path.write_bytes(content)
        return local_path

    def local_path(self, path: str) -> Path:
        """Local path for an FTP path."""
        return self._root_dir / path.lstrip("/")

    def start(self) -> None:
        """Start the FTP server in a background thread."""
        self._temp_dir = tempfile.TemporaryDirectory(prefix="mock_ftp_")
        self._root_dir = Path(self._temp_dir.name)

        self._create_structure()

        authorizer = DummyAuthorizer()
        authorizer.add_user(
            self.username,
            self.password,
            str(self._root_dir),
            perm="elradfmwMT"  # Full permissions
        )

        class Handler(FTPHandler):
            pass

        Handler.authorizer = authorizer
        Handler.passive_ports = range(60000, 60100)

        self._server = FTPServer((self.host, self.port), Handler)

        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()

        # Give server time to start
        time.sleep(0.2)

    def stop(self) -> None:
        """Stop the FTP server and clean up."""
        if self._server:
            self._server.close_all()

        if self._temp_dir:
            self._temp_dir.cleanup()

        self._server = None
        self._thread = None
        self._temp_dir = None
        self._root_dir = None

    def __enter__(self) -> "MockFTPServer":
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.stop()
