"""Directory listing entries for the FTP batch dispatcher.

Parses MLSD facts and, for servers without MLSD, Unix-style LIST lines
into DirectoryEntry objects.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class FileType(Enum):
    """Kind of a directory entry."""
    UNKNOWN = "unknown"
    FILE = "file"
    DIRECTORY = "directory"
    SYMBOLIC_LINK = "symlink"


# MLSD "type" facts for the directory itself and its parent
SKIPPED_MLSD_TYPES = {"cdir", "pdir"}

MLSD_TYPES = {
    "file": FileType.FILE,
    "dir": FileType.DIRECTORY,
    "os.unix=symlink": FileType.SYMBOLIC_LINK,
    "os.unix=slink": FileType.SYMBOLIC_LINK,
}

UNIX_TYPES = {
    "-": FileType.FILE,
    "d": FileType.DIRECTORY,
    "l": FileType.SYMBOLIC_LINK,
}

# drwxr-xr-x  2 owner group  4096 Jan  1 12:00 name
UNIX_LIST_PATTERN = re.compile(
    r"^(?P<type>[-dlbcps])(?P<permissions>[rwxsStT-]{9})[@+.]?\s+"
    r"\d+\s+(?P<user>\S+)\s+(?P<group>\S+)\s+(?P<size>\d+)\s+"
    r"(?P<date>\w{3}\s+\d{1,2}\s+(?:\d{1,2}:\d{2}|\d{4}))\s+(?P<name>.+)$"
)


@dataclass
class DirectoryEntry:
    """One entry of a remote directory as reported by the server."""
    name: str
    type: FileType = FileType.UNKNOWN
    size: int = 0
    modified_at: Optional[str] = None
    raw_modified_at: str = ""
    permissions: Optional[str] = None
    user: Optional[str] = None
    group: Optional[str] = None
    link: Optional[str] = None

    @property
    def is_directory(self) -> bool:
        """True if the entry is a directory."""
        return self.type == FileType.DIRECTORY

    @property
    def is_file(self) -> bool:
        """True if the entry is a regular file."""
        return self.type == FileType.FILE

    def to_dict(self) -> dict:
        """Convert the entry to a JSON-friendly dictionary."""
        return {
            "name": self.name,
            "type": self.type.value,
            "size": self.size,
            "modifiedAt": self.modified_at,
            "rawModifiedAt": self.raw_modified_at,
            "permissions": self.permissions,
            "user": self.user,
            "group": self.group,
            "link": self.link,
        }

    @classmethod
    def from_mlsd(cls, name: str, facts: dict) -> "DirectoryEntry":
        """
        Create an entry from one MLSD line.

        Args:
            name: Entry name
            facts: Fact dictionary as returned by ftplib's mlsd()

        Returns:
            DirectoryEntry instance
        """
        facts = {key.lower(): value for key, value in facts.items()}
        entry_type = MLSD_TYPES.get(facts.get("type", "").lower(), FileType.UNKNOWN)
        raw_modified = facts.get("modify", "")

        size = facts.get("size") or facts.get("sizd") or "0"
        try:
            size = int(size)
        except ValueError:
            size = 0

        return cls(
            name=name,
            type=entry_type,
            size=size,
            modified_at=parse_mlsd_timestamp(raw_modified),
            raw_modified_at=raw_modified,
            permissions=facts.get("unix.mode") or facts.get("perm"),
            user=facts.get("unix.owner") or facts.get("unix.uid"),
            group=facts.get("unix.group") or facts.get("unix.gid"),
        )

    @classmethod
    def from_unix_line(cls, line: str) -> Optional["DirectoryEntry"]:
        """
        Create an entry from one Unix-style LIST line.

        Args:
            line: Raw LIST output line

        Returns:
            DirectoryEntry, or None for "total" and unparseable lines
        """
        match = UNIX_LIST_PATTERN.match(line.strip())
        if not match:
            return None

        entry_type = UNIX_TYPES.get(match.group("type"), FileType.UNKNOWN)
        name = match.group("name")
        link = None
        if entry_type == FileType.SYMBOLIC_LINK and " -> " in name:
            name, link = name.split(" -> ", 1)

        return cls(
            name=name,
            type=entry_type,
            size=int(match.group("size")),
            raw_modified_at=match.group("date"),
            permissions=match.group("permissions"),
            user=match.group("user"),
            group=match.group("group"),
            link=link,
        )


def parse_mlsd_timestamp(value: str) -> Optional[str]:
    """Convert an MLSD YYYYMMDDHHMMSS[.sss] UTC timestamp to ISO 8601."""
    if not value:
        return None
    try:
        parsed = datetime.strptime(value[:14], "%Y%m%d%H%M%S")
    except ValueError:
        return None
    return parsed.isoformat() + "Z"


def is_listable_name(name: str) -> bool:
    """False for the "." and ".." pseudo entries."""
    return name not in (".", "..", "")
