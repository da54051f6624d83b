"""Byte buffer <-> stream bridging for uploads and downloads."""

import io
import posixpath
from typing import List, Optional


class BufferStream(io.RawIOBase):
    """
    Finite, single-pass readable stream over an in-memory buffer.

    Reads are served from a memoryview of the original buffer, so the
    payload is never copied as a whole. Once the end is reached every
    read returns b"".
    """

    def __init__(self, data: bytes):
        super().__init__()
        self._view = memoryview(data)
        self._position = 0

    @property
    def size(self) -> int:
        """Total number of bytes in the stream."""
        return len(self._view)

    @property
    def remaining(self) -> int:
        """Number of bytes not yet read."""
        return len(self._view) - self._position

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        if self.closed:
            raise ValueError("I/O operation on closed stream")
        count = min(len(buffer), self.remaining)
        buffer[:count] = self._view[self._position:self._position + count]
        self._position += count
        return count

    def close(self) -> None:
        if not self.closed:
            self._view.release()
        super().close()


class ChunkCollector:
    """
    Writable sink that keeps every chunk it receives, in arrival order.

    Handed to a download call as its write callback; the contiguous
    buffer is assembled once, after the transfer has completed.
    """

    def __init__(self, remote_path: str = ""):
        self.remote_path = remote_path
        self._chunks: List[bytes] = []
        self._size = 0

    @property
    def size(self) -> int:
        """Number of bytes received so far."""
        return self._size

    @property
    def chunk_count(self) -> int:
        """Number of chunks received so far."""
        return len(self._chunks)

    @property
    def file_name(self) -> str:
        """Last segment of the remote path."""
        return remote_basename(self.remote_path)

    def write(self, chunk: bytes) -> int:
        """Receive the next chunk."""
        self._chunks.append(bytes(chunk))
        self._size += len(chunk)
        return len(chunk)

    def getvalue(self) -> bytes:
        """Concatenate all chunks into one buffer."""
        return b"".join(self._chunks)


def remote_basename(remote_path: Optional[str]) -> str:
    """
    Get the last segment of a remote path.

    Args:
        remote_path: Remote (POSIX-style) path

    Returns:
        The file name, e.g. "report.csv" for "/out/report.csv"
    """
    if not remote_path:
        return ""
    return posixpath.basename(remote_path.rstrip("/"))
