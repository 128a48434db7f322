from __future__ import annotations

import pytest

from gardenpub.services.vault import Vault


def test_relative_path_normalizes_and_rejects_escapes(vault_root) -> None:
    vault = Vault(vault_root)

    assert vault.relative_path("Notes/../Assets/./a.png") == "Assets/a.png"
    assert vault.relative_path("/Assets\\a.png") == "Assets/a.png"
    assert vault.relative_path("../outside.png") is None
    assert vault.relative_path("Notes/../../outside.png") is None


def test_resolve_refuses_paths_outside_the_vault(vault_root) -> None:
    (vault_root.parent / "secret.png").write_bytes(b"secret")
    vault = Vault(vault_root)

    with pytest.raises(ValueError):
        vault.read_binary("../secret.png")
    assert vault.exists("../secret.png") is False


def test_resolve_refuses_symlinks_pointing_outside(vault_root) -> None:
    outside = vault_root.parent / "secret.png"
    outside.write_bytes(b"secret")
    link = vault_root / "link.png"
    try:
        link.symlink_to(outside)
    except OSError:
        pytest.skip("symlinks are not available")
    vault = Vault(vault_root)

    assert vault.exists("link.png") is False
    with pytest.raises(ValueError):
        vault.resolve("link.png")


def test_markdown_files_skip_hidden_folders_and_sort(vault_root, add_note) -> None:
    add_note("b.md")
    add_note("A/a.md")
    add_note(".trash/old.md")

    assert Vault(vault_root).get_markdown_files() == ["A/a.md", "b.md"]
