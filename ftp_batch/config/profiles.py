"""Connection profile management for the FTP batch dispatcher.

Provides the ConnectionProfile dataclass and ProfileManager, which keeps
named profiles in a JSON file and their passwords in the system keyring.
"""

import json
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Dict, List, Optional

from ftp_batch.config.credentials import CredentialManager
from ftp_batch.config.paths import get_profiles_path
from ftp_batch.ftp.connection import FTPConnectionConfig

logger = logging.getLogger("ftp_batch.profiles")


@dataclass
class ConnectionProfile:
    """Saved connection settings. The password is kept in the keyring."""

    host: str = ""
    port: int = 0
    user: str = "anonymous"
    secure: bool = True
    implicit_tls: bool = False
    ignore_tls_issues: bool = False
    verbose_logging: bool = False
    certificate: str = ""
    private_key: str = ""
    timeout: int = 30

    def to_dict(self) -> dict:
        """Convert profile to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "ConnectionProfile":
        """Create profile from dictionary, ignoring unknown keys."""
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_fields}
        return cls(**filtered)

    def to_config(self, password: str = "") -> FTPConnectionConfig:
        """
        Build the connection configuration for a batch.

        Raises:
            ValueError: If the profile holds invalid values
        """
        return FTPConnectionConfig(
            host=self.host,
            password=password,
            port=self.port,
            user=self.user,
            secure=self.secure,
            implicit_tls=self.implicit_tls,
            certificate=self.certificate or None,
            private_key=self.private_key or None,
            ignore_tls_issues=self.ignore_tls_issues,
            verbose_logging=self.verbose_logging,
            timeout=self.timeout,
        )


class ProfileManager:
    """Manages connection profile persistence."""

    def __init__(
        self,
        config_path: Optional[Path] = None,
        credentials: Optional[CredentialManager] = None
    ):
        """
        Initialize profile manager.

        Args:
            config_path: Optional custom path, defaults to platform standard
            credentials: Optional credential store, defaults to the keyring
        """
        self._config_path = config_path or get_profiles_path()
        self._credentials = credentials or CredentialManager()
        self._profiles: Optional[Dict[str, ConnectionProfile]] = None

    @property
    def config_path(self) -> Path:
        """Path to profiles file."""
        return self._config_path

    def load(self) -> Dict[str, ConnectionProfile]:
        """
        Load profiles from disk.

        Returns:
            Profiles by name (empty if file not found or unreadable)
        """
        self._profiles = {}
        if self._config_path.exists():
            try:
                with open(self._config_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                for name, values in (data.get("profiles") or {}).items():
                    self._profiles[name] = ConnectionProfile.from_dict(values)
            except (json.JSONDecodeError, IOError, AttributeError, TypeError) as e:
                # Invalid or unreadable file, start empty
                logger.warning(f"Ignoring unreadable profiles file {self._config_path}: {e}")
                self._profiles = {}

        return self._profiles

    def _write(self) -> None:
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        data = {"profiles": {name: p.to_dict() for name, p in self._profiles.items()}}
        with open(self._config_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def _ensure_loaded(self) -> Dict[str, ConnectionProfile]:
        if self._profiles is None:
            self.load()
        return self._profiles

    def names(self) -> List[str]:
        """Names of all saved profiles, sorted."""
        return sorted(self._ensure_loaded())

    def get(self, name: str) -> Optional[ConnectionProfile]:
        """Get a profile by name, or None."""
        return self._ensure_loaded().get(name)

    def save(self, name: str, profile: ConnectionProfile, password: Optional[str] = None) -> None:
        """
        Persist a profile, and its password if given.

        Args:
            name: Profile name
            profile: Profile to save
            password: Optional password to store in the keyring
        """
        self._ensure_loaded()[name] = profile
        self._write()

        if password is not None:
            if not self._credentials.save_password(profile.host, profile.user, password):
                logger.warning(f"Could not store password for profile '{name}' in keyring")

    def delete(self, name: str) -> bool:
        """
        Remove a profile and its stored password.

        Passwords are keyed by host and user, so the password is kept
        while another profile still uses the same pair.

        Returns:
            True if the profile existed
        """
        profiles = self._ensure_loaded()
        profile = profiles.pop(name, None)
        if profile is None:
            return False

        self._write()
        shared = any(
            (other.host, other.user) == (profile.host, profile.user)
            for other in profiles.values()
        )
        if shared:
            logger.info(f"Keeping password for {profile.user}@{profile.host}, still used by another profile")
        else:
            self._credentials.delete_password(profile.host, profile.user)
        return True

    def resolve(self, name: str, password: Optional[str] = None) -> FTPConnectionConfig:
        """
        Build the connection configuration for a saved profile.

        Args:
            name: Profile name
            password: Password override; the keyring is used when None

        Raises:
            KeyError: If no profile has this name
            ValueError: If the profile holds invalid values
        """
        profile = self.get(name)
        if profile is None:
            raise KeyError(f"Unknown profile '{name}'")

        if password is None:
            password = self._credentials.get_password(profile.host, profile.user) or ""
        return profile.to_config(password)
