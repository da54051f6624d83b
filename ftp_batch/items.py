"""Input and output records of a batch.

An Item carries a JSON-like payload plus named binary attachments.
Binary payloads travel as base64 when records are serialized.
"""

import base64
import mimetypes
import posixpath
from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass
class BinaryData:
    """A binary attachment: payload bytes plus file metadata."""
    data: bytes
    file_name: str = ""
    mime_type: str = "application/octet-stream"
    file_extension: str = ""

    @property
    def file_size(self) -> int:
        """Payload size in bytes."""
        return len(self.data)

    @classmethod
    def prepare(cls, data: bytes, file_name: str = "") -> "BinaryData":
        """
        Wrap a buffer, deriving mime type and extension from the file name.

        Args:
            data: Payload bytes
            file_name: File name, e.g. "report.csv"

        Returns:
            BinaryData instance
        """
        extension = posixpath.splitext(file_name)[1].lstrip(".").lower()
        mime_type, _ = mimetypes.guess_type(file_name)
        return cls(
            data=data,
            file_name=file_name,
            mime_type=mime_type or "application/octet-stream",
            file_extension=extension,
        )

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly dictionary (payload as base64)."""
        return {
            "data": base64.b64encode(self.data).decode("ascii"),
            "fileName": self.file_name,
            "mimeType": self.mime_type,
            "fileExtension": self.file_extension,
            "fileSize": self.file_size,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "BinaryData":
        """Create from a dictionary produced by to_dict()."""
        return cls(
            data=base64.b64decode(data.get("data", "")),
            file_name=data.get("fileName", ""),
            mime_type=data.get("mimeType") or "application/octet-stream",
            file_extension=data.get("fileExtension", ""),
        )


@dataclass
class Item:
    """One input or output record."""
    json: dict = field(default_factory=dict)
    binary: Dict[str, BinaryData] = field(default_factory=dict)
    paired_item: Optional[int] = None

    @property
    def is_error(self) -> bool:
        """True for an isolated per-record failure."""
        return "error" in self.json

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly dictionary."""
        data = {"json": self.json}
        if self.binary:
            data["binary"] = {name: b.to_dict() for name, b in self.binary.items()}
        if self.paired_item is not None:
            data["pairedItem"] = self.paired_item
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Item":
        """
        Create an item from a dictionary.

        A dictionary without a "json" key is taken as the payload itself.
        """
        if "json" not in data:
            return cls(json=dict(data))
        binary = {
            name: BinaryData.from_dict(value)
            for name, value in (data.get("binary") or {}).items()
        }
        return cls(
            json=dict(data["json"]),
            binary=binary,
            paired_item=data.get("pairedItem"),
        )
