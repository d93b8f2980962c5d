import hashlib

import pytest

from keeper.credentials import CredentialStore, CredentialStoreError


def test_load_returns_none_when_no_credential_was_issued(tmp_path):
    store = CredentialStore(tmp_path / "sentry.bin")

    assert store.load() is None
    assert store.load_hash() is None


def test_saved_blob_hashes_like_the_original(tmp_path):
    store = CredentialStore(tmp_path / "sentry.bin")
    blob = bytes(range(256)) * 8

    store.save(blob)

    assert store.load() == blob
    assert CredentialStore.hash(store.load()) == CredentialStore.hash(blob)
    assert store.load_hash() == hashlib.sha1(blob).digest()


def test_save_replaces_previous_credential_without_leftovers(tmp_path):
    store = CredentialStore(tmp_path / "nested" / "sentry.bin")

    store.save(b"first")
    store.save(b"second")

    assert store.load() == b"second"
    assert sorted(p.name for p in store.path.parent.iterdir()) == ["sentry.bin"]


def test_hash_is_sha1_digest():
    assert CredentialStore.hash(b"") == hashlib.sha1(b"").digest()
    assert len(CredentialStore.hash(b"abc")) == 20


def test_save_failure_raises_and_keeps_old_file(tmp_path):
    target = tmp_path / "sentry.bin"
    target.mkdir()
    store = CredentialStore(target)

    with pytest.raises(CredentialStoreError):
        store.save(b"blob")

    assert target.is_dir()
    assert [p.name for p in tmp_path.iterdir()] == ["sentry.bin"]
