"""Write a snapshot of the compiled garden so changes in compiled output show up in a diff."""

from __future__ import annotations

import logging
from pathlib import Path

from gardenpub.models.settings import PublishSettings
from gardenpub.services.notifications import Notifier
from gardenpub.services.selection import PublishSelector
from gardenpub.utils.paths import normalize_path


logger = logging.getLogger(__name__)

SNAPSHOT_PATH = "src/test/snapshot.md"
_SEPARATOR = "=========="


def generate_garden_export(
    settings: PublishSettings,
    selector: PublishSelector,
    notifier: Notifier,
) -> Path | None:
    """Compile every marked note into ``dev_plugin_path`` and write a snapshot listing.

    Returns the snapshot path, or ``None`` when no development folder is configured.
    """

    dev_path = settings.dev_plugin_path
    if dev_path is None:
        notifier.notify("dev_plugin_path missing; set it in the settings to generate a snapshot")
        return None

    marked = selector.scan()
    sections: list[str] = ["IMAGES:"]
    sections.extend(marked.images)
    asset_paths: set[str] = set()

    for note in marked.notes:
        compiled = note.compile()
        asset_paths.update(asset.path for asset in compiled.assets)

        destination = dev_path / normalize_path(compiled.get_path())
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(f"{compiled.text}\n", encoding="utf-8")

        sections.extend([_SEPARATOR, compiled.get_path(), _SEPARATOR, compiled.text])

    sections.append(_SEPARATOR)
    sections.append("ASSETS:")
    sections.extend(sorted(asset_paths))

    snapshot = dev_path / SNAPSHOT_PATH
    snapshot.parent.mkdir(parents=True, exist_ok=True)
    snapshot.write_text("\n".join(sections) + "\n", encoding="utf-8")

    logger.info("Snapshot of %d notes written to %s", len(marked.notes), snapshot)
    notifier.notify(f"Snapshot written to {snapshot}")
    notifier.notify("Check snapshot to make sure nothing has accidentally changed")
    return snapshot
