"""Portable collection snapshots."""

from docembed.snapshot.codec import (
    FORMAT_VERSION,
    export_collection,
    import_collection,
    load_snapshot,
    save_snapshot,
)

__all__ = [
    "FORMAT_VERSION",
    "export_collection",
    "import_collection",
    "load_snapshot",
    "save_snapshot",
]
