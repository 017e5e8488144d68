"""Named gateway connection profiles.

A connection profile is a (base URL, credential) pair identifying one
gateway tenant or deployment. The registry stores profiles by name and
tracks which one is active.

Concurrency:
    Reads never lock. Writes take a lock and swap in a new mapping
    (copy-on-write), so registration is safe while other tasks or threads
    resolve profiles.

    The active pointer is shared state with no per-request isolation. If
    one caller calls ``set_active("tenant-2")`` while another is mid-request,
    the in-flight request may use either profile depending on when it
    resolved. Callers that need isolation should pass an explicit
    connection name on every request instead of relying on the pointer.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

import httpx

from evolution_gateway.core.errors import ConfigurationError, UnknownConnectionError

logger = logging.getLogger(__name__)

DEFAULT_CONNECTION_NAME = "default"


@dataclass(frozen=True)
class ConnectionProfile:
    """One gateway deployment.

    Attributes:
        name: Unique registry key.
        base_url: Absolute http(s) URL without trailing slash.
        credential: API key sent in the credential header.
        instance: Default instance name used to fill ``{instance}`` paths.
    """

    name: str
    base_url: str
    credential: str
    instance: Optional[str] = None

    def __repr__(self) -> str:
        return (
            f"ConnectionProfile(name={self.name!r}, base_url={self.base_url!r}, "
            f"credential='***', instance={self.instance!r})"
        )


def normalize_base_url(base_url: Optional[str], name: str = "") -> str:
    """Validate ``base_url`` as an absolute http(s) URL and strip the trailing slash.

    Raises:
        ConfigurationError: If the URL is empty or not absolute http(s).
    """
    if base_url is None or not str(base_url).strip():
        raise ConfigurationError(
            f"Server URL is required for connection '{name}'",
            field="base_url",
            code="MISSING_SERVER_URL",
        )
    candidate = str(base_url).strip()
    try:
        url = httpx.URL(candidate)
    except (httpx.InvalidURL, TypeError, ValueError) as exc:
        raise ConfigurationError(
            f"Invalid server URL for connection '{name}': {candidate}",
            field="base_url",
            code="INVALID_SERVER_URL",
        ) from exc
    if url.scheme not in ("http", "https") or not url.host:
        raise ConfigurationError(
            f"Invalid server URL for connection '{name}': {candidate}",
            field="base_url",
            code="INVALID_SERVER_URL",
        )
    return candidate.rstrip("/")


class ConnectionRegistry:
    """Stores connection profiles and the active-connection pointer."""

    def __init__(self, default_name: str = DEFAULT_CONNECTION_NAME) -> None:
        self._profiles: Mapping[str, ConnectionProfile] = {}
        self._write_lock = threading.Lock()
        self._default_name = default_name
        self._active_name = default_name

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def register(
        self,
        name: str,
        base_url: str,
        credential: str,
        *,
        instance: Optional[str] = None,
    ) -> ConnectionProfile:
        """Insert or replace the profile called ``name``.

        Replacement is a full overwrite; nothing from the previous profile
        is kept.

        Raises:
            ConfigurationError: If the name or credential is empty, or the
                URL is empty or malformed.
        """
        if not name or not str(name).strip():
            raise ConfigurationError("Connection name is required", field="name")
        url = normalize_base_url(base_url, name)
        if not credential:
            raise ConfigurationError(
                f"API key is required for connection '{name}'",
                field="credential",
                code="MISSING_API_KEY",
            )

        profile = ConnectionProfile(
            name=name, base_url=url, credential=credential, instance=instance or None
        )
        with self._write_lock:
            replaced = name in self._profiles
            profiles = dict(self._profiles)
            profiles[name] = profile
            self._profiles = profiles

        logger.debug("%s connection '%s' -> %s", "Replaced" if replaced else "Registered", name, url)
        return profile

    def unregister(self, name: str) -> bool:
        """Remove a profile.

        If it was active, the pointer falls back to the default name.

        Returns:
            True if a profile was removed.
        """
        with self._write_lock:
            if name not in self._profiles:
                return False
            profiles = dict(self._profiles)
            del profiles[name]
            self._profiles = profiles
            if self._active_name == name:
                self._active_name = self._default_name
        logger.debug("Removed connection '%s'", name)
        return True

    def clear(self) -> None:
        with self._write_lock:
            self._profiles = {}
            self._active_name = self._default_name

    def set_active(self, name: str) -> None:
        """Point subsequent calls without an explicit connection at ``name``.

        Raises:
            UnknownConnectionError: If ``name`` is not registered.
        """
        with self._write_lock:
            if name not in self._profiles:
                raise UnknownConnectionError(
                    f"Connection '{name}' is not registered",
                    name=name,
                    available=list(self._profiles),
                )
            self._active_name = name

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def active_name(self) -> str:
        return self._active_name

    @property
    def default_name(self) -> str:
        return self._default_name

    def has(self, name: str) -> bool:
        return name in self._profiles

    def names(self) -> List[str]:
        return list(self._profiles)

    def get(self, name: str) -> Optional[ConnectionProfile]:
        return self._profiles.get(name)

    def resolve(self, name: Optional[str] = None) -> ConnectionProfile:
        """Profile for ``name``, or the active profile when ``name`` is None.

        Raises:
            UnknownConnectionError: If the requested (or active) name is not
                registered.
        """
        profiles = self._profiles
        target = name if name is not None else self._active_name
        profile = profiles.get(target)
        if profile is None:
            raise UnknownConnectionError(
                f"Connection '{target}' is not registered",
                name=target,
                available=list(profiles),
            )
        return profile

    def snapshot(self) -> Dict[str, ConnectionProfile]:
        return dict(self._profiles)
