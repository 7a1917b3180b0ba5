from __future__ import annotations

from agent_cashbook.storage.identity_store import IdentityStore


def test_identity_created_once_and_reused(tmp_path):
    store = IdentityStore(tmp_path)
    assert store.load() is None

    first = store.get_or_create()
    second = IdentityStore(tmp_path).get_or_create()

    assert first.owner_id == second.owner_id
    assert (tmp_path / "identity.json").exists()


def test_corrupted_identity_file_is_replaced(tmp_path):
    (tmp_path / "identity.json").write_text("{broken", encoding="utf-8")
    store = IdentityStore(tmp_path)

    ident = store.get_or_create()
    assert ident.owner_id
    assert store.load() == ident


def test_save_explicit_owner(tmp_path):
    store = IdentityStore(tmp_path)
    store.save("counter-01")
    assert store.get_or_create().owner_id == "counter-01"
