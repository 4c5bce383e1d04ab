"""
Session Store

Persists one ``WalletSession`` per wallet address under the key
``session:<walletAddress>``. The empty string is a sentinel for "explicitly
cleared": the key is kept so that a logged-out address can be told apart
from one that never connected.

Reads never raise. Anything that cannot be turned back into a session
(missing key, sentinel, unreadable file, malformed JSON) loads as ``None``.

Only the owning account's activation flow writes an address's entry; there
is no locking between two flows for the same address.
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Union

from pydantic import ValidationError

from ..schemas.bases import WalletSession

logger = logging.getLogger(__name__)

KEY_PREFIX = "session:"
CLEARED = ""


def session_key(address: str) -> str:
    return f"{KEY_PREFIX}{address}"


class SessionStore(ABC):
    """Key/value persistence for wallet sessions.

    Subclasses provide raw string access; serialisation and the empty
    sentinel are handled here.
    """

    @abstractmethod
    def _read(self, key: str) -> Optional[str]:
        """Return the raw value for ``key``, or None if it was never written."""
        pass

    @abstractmethod
    def _write(self, key: str, value: str) -> None:
        pass

    def save(self, address: str, session: WalletSession) -> None:
        """
        Persist ``session`` for ``address``, replacing any previous value.

        An empty address is ignored.
        """
        if not address:
            return
        self._write(session_key(address), session.to_canonical_json())

    def load(self, address: str) -> Optional[WalletSession]:
        """
        Return the stored session for ``address``.

        Returns:
            The session, or None if it is missing, cleared or unreadable.
        """
        if not address:
            return None
        try:
            raw = self._read(session_key(address))
        except OSError as e:
            logger.warning("Could not read session for %s: %s", address, e)
            return None
        if not raw:
            return None
        try:
            return WalletSession.model_validate_json(raw)
        except (ValidationError, ValueError) as e:
            logger.warning("Discarding unparsable session for %s: %s", address, e)
            return None

    def clear(self, address: str) -> None:
        """Mark the session for ``address`` as cleared (the key is kept)."""
        if not address:
            return
        self._write(session_key(address), CLEARED)

    def has_entry(self, address: str) -> bool:
        """Check whether ``address`` was ever saved, including cleared entries."""
        try:
            return self._read(session_key(address)) is not None
        except OSError:
            return False


class MemorySessionStore(SessionStore):
    """Process-local store, mostly useful for tests and short-lived scripts."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})

    def _read(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def _write(self, key: str, value: str) -> None:
        self._values[key] = value

    def raw(self) -> Dict[str, str]:
        return dict(self._values)


class FileSessionStore(SessionStore):
    """
    Durable store backed by a single JSON object file.

    Writes go to a temporary file in the same directory which then replaces
    the store, so a crash never leaves a half-written file behind.

    Args:
        path: Location of the JSON file. Parent directories are created on
            first write.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()

    def _load_all(self) -> Dict[str, str]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except UnicodeDecodeError as e:
            logger.warning("Session store %s is not UTF-8, ignoring it: %s", self.path, e)
            return {}
        try:
            data = json.loads(text) if text.strip() else {}
        except ValueError as e:
            logger.warning("Session store %s is corrupt, ignoring it: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Session store %s is not a JSON object, ignoring it", self.path)
            return {}
        return data

    def _read(self, key: str) -> Optional[str]:
        value = self._load_all().get(key)
        return value if isinstance(value, str) or value is None else json.dumps(value)

    def _write(self, key: str, value: str) -> None:
        data = self._load_all()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".sessions-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise
