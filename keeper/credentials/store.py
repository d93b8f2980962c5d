"""Single-file store for the device credential issued by the service."""

from __future__ import annotations

import contextlib
import hashlib
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

LOGGER = logging.getLogger(__name__)


class CredentialStoreError(RuntimeError):
    """Raised when the credential cannot be persisted."""


class CredentialStore:
    """Reads, writes and hashes the persisted sentry blob."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[bytes]:
        """Return the stored blob, or ``None`` when nothing has been issued yet."""

        try:
            return self._path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError:
            LOGGER.warning("Unable to read sentry file %s", self._path, exc_info=True)
            return None

    def load_hash(self) -> Optional[bytes]:
        blob = self.load()
        if blob is None:
            return None
        return self.hash(blob)

    @staticmethod
    def hash(blob: bytes) -> bytes:
        """SHA-1 digest of the credential, as expected by the service."""

        return hashlib.sha1(blob).digest()

    def save(self, blob: bytes) -> None:
        """Replace the stored blob atomically.

        The data goes to a temporary sibling first and is renamed into place,
        so readers see either the old or the new credential.
        """

        directory = self._path.parent
        tmp_name: Optional[str] = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", suffix=".tmp", dir=directory)
            with os.fdopen(fd, "wb") as handle:
                handle.write(blob)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
            tmp_name = None
        except OSError as exc:
            raise CredentialStoreError(f"Failed to write sentry file {self._path}") from exc
        finally:
            if tmp_name is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
        LOGGER.debug("Wrote %s byte(s) to sentry file %s", len(blob), self._path)
