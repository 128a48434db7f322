from __future__ import annotations

from gardenpub.services.compiler import MarkdownCompiler
from gardenpub.services.selection import PublishSelector
from gardenpub.services.snapshot import generate_garden_export
from gardenpub.services.vault import Vault


def build_selector(settings) -> PublishSelector:
    vault = Vault(settings.vault_path)
    return PublishSelector(vault, MarkdownCompiler(vault), settings)


def test_snapshot_requires_dev_folder(settings, notifier) -> None:
    assert generate_garden_export(settings, build_selector(settings), notifier) is None
    assert notifier.messages == ["dev_plugin_path missing; set it in the settings to generate a snapshot"]


def test_snapshot_lists_images_notes_and_assets(settings, notifier, add_note, add_image, tmp_path) -> None:
    dev = tmp_path / "dev"
    configured = settings.model_copy(update={"dev_plugin_path": dev})
    add_image("Assets/fern.png")
    add_note("Notes/Plants.md", {"dg-publish": True}, "![[fern.png]]\n")
    add_note("Notes/Trees.md", {"dg-publish": True}, "Oak\n")

    snapshot = generate_garden_export(configured, build_selector(configured), notifier)

    assert snapshot == dev / "src/test/snapshot.md"
    lines = snapshot.read_text(encoding="utf-8").splitlines()
    assert lines[:2] == ["IMAGES:", "Assets/fern.png"]
    assert lines[2:5] == ["==========", "Notes/Plants.md", "=========="]
    assert "Notes/Trees.md" in lines
    assert lines[-3:] == ["==========", "ASSETS:", "/img/user/Assets/fern.png"]
    assert (dev / "Notes/Trees.md").read_text(encoding="utf-8").endswith("Oak\n\n")
    assert notifier.messages == [
        f"Snapshot written to {snapshot}",
        "Check snapshot to make sure nothing has accidentally changed",
    ]
