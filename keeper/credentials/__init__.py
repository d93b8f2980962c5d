"""Device credential (sentry) persistence."""

from .store import CredentialStore, CredentialStoreError

__all__ = ["CredentialStore", "CredentialStoreError"]
