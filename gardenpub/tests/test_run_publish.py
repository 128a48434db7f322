from __future__ import annotations

import json
from pathlib import Path

import pytest

from gardenpub.scripts import run_publish


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep the real environment and any garden.yaml in the working tree out of the CLI."""

    for name in ("GITHUB_TOKEN", "GARDEN_CONFIG", "GARDEN_GITHUB_TOKEN", "GARDEN_GITHUB_REPO",
                 "GARDEN_GITHUB_USERNAME", "GARDEN_EXPORT_PATH", "GARDEN_VAULT_PATH", "GARDEN_DEV_PLUGIN_PATH"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def test_scan_prints_marked_notes(vault_root, add_note, add_image, capsys) -> None:
    add_image("Assets/fern.png")
    add_note("Notes/Plants.md", {"dg-publish": True}, "![[fern.png]]\n")

    exit_code = run_publish.run(["scan", "--vault", str(vault_root)])

    assert exit_code == run_publish.EXIT_OK
    assert json.loads(capsys.readouterr().out) == {"notes": ["Notes/Plants.md"], "images": ["Assets/fern.png"]}


def test_publish_without_remote_settings_is_a_config_error(vault_root, add_note) -> None:
    add_note("Notes/Plants.md", {"dg-publish": True}, "")

    assert run_publish.run(["publish", "--vault", str(vault_root)]) == run_publish.EXIT_CONFIG


def test_export_without_path_is_a_config_error(vault_root) -> None:
    assert run_publish.run(["export", "--vault", str(vault_root)]) == run_publish.EXIT_CONFIG


def test_export_writes_mirror_and_prints_outcomes(vault_root, export_root, add_note, capsys) -> None:
    add_note("Notes/Plants.md", {"dg-publish": True}, "Ferns\n")

    exit_code = run_publish.run(["export", "--vault", str(vault_root), "--export-path", str(export_root)])

    assert exit_code == run_publish.EXIT_OK
    assert json.loads(capsys.readouterr().out) == {"Notes/Plants.md": "published"}
    assert (export_root / "src/site/notes/Notes/Plants.md").is_file()


def test_config_file_is_loaded(tmp_path, vault_root, add_note, capsys) -> None:
    add_note("Share.md", {"share": True}, "")
    config = tmp_path / "custom.yaml"
    config.write_text(f"vaultPath: {vault_root}\npublishFlag: share\n", encoding="utf-8")

    assert run_publish.run(["scan", "--config", str(config)]) == run_publish.EXIT_OK
    assert json.loads(capsys.readouterr().out)["notes"] == ["Share.md"]


def test_invalid_config_returns_config_error(tmp_path) -> None:
    config = tmp_path / "bad.yaml"
    config.write_text("operationTimeout: -1\n", encoding="utf-8")

    assert run_publish.run(["scan", "--config", str(config)]) == run_publish.EXIT_CONFIG


def test_snapshot_without_dev_folder_is_a_config_error(vault_root) -> None:
    assert run_publish.run(["snapshot", "--vault", str(vault_root)]) == run_publish.EXIT_CONFIG


@pytest.mark.parametrize("command", ["scan", "export", "snapshot"])
def test_missing_vault_is_a_config_error(tmp_path, export_root, command) -> None:
    missing = tmp_path / "no-such-vault"

    exit_code = run_publish.run([command, "--vault", str(missing), "--export-path", str(export_root)])

    assert exit_code == run_publish.EXIT_CONFIG
    assert not export_root.exists()
