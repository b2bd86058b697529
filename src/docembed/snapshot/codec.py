"""Snapshot codec — collection ⇄ self-contained, versioned bytes.

A snapshot is a compressed NumPy ``.npz`` archive (a CRC-checked zip)
read with ``allow_pickle=False``:

=========  ==========================================================
member     content
=========  ==========================================================
header     UTF-8 JSON: format, version, name, metadata, dimension, count
ids        UTF-8 JSON list of entry ids
texts      UTF-8 JSON list of entry texts
metadata   UTF-8 JSON list of string → string objects
vectors    ``float32`` matrix, ``count × dimension``
=========  ==========================================================

JSON members are stored as ``uint8`` arrays. Vectors are written exactly
as the collection holds them, so a round-trip is bit-for-bit.
"""

from __future__ import annotations

import io
import json
import logging
import os
import tempfile
import zipfile
import zlib
from pathlib import Path
from typing import Any

import numpy as np

from docembed.collection.collection import Collection
from docembed.errors import DecodeFailure

logger = logging.getLogger(__name__)

FORMAT_NAME = "docembed-snapshot"
FORMAT_VERSION = 1

_MEMBERS = ("header", "ids", "texts", "metadata", "vectors")


# ---------------------------------------------------------------------------
# Bytes
# ---------------------------------------------------------------------------


def export_collection(collection: Collection) -> bytes:
    """Serialize a collection to snapshot bytes."""
    vectors = collection.vectors()
    header = {
        "format": FORMAT_NAME,
        "version": FORMAT_VERSION,
        "name": collection.name,
        "metadata": collection.metadata,
        "dimension": int(vectors.shape[1]),
        "count": len(collection),
    }

    buf = io.BytesIO()
    np.savez_compressed(
        buf,
        header=_json_array(header),
        ids=_json_array(collection.ids),
        texts=_json_array(collection.texts()),
        metadata=_json_array(collection.entry_metadata()),
        vectors=np.ascontiguousarray(vectors, dtype=np.float32),
    )
    data = buf.getvalue()
    logger.info(
        "Exported collection %s: %d entries, %d bytes", collection.name, len(collection), len(data),
    )
    return data


def import_collection(data: bytes) -> Collection:
    """Rebuild a frozen collection from snapshot bytes.

    Raises:
        DecodeFailure: The bytes are not a snapshot, are corrupt or
            truncated, or use an unsupported format version.
    """
    try:
        archive = np.load(io.BytesIO(data), allow_pickle=False)
    except (ValueError, OSError, EOFError, zipfile.BadZipFile) as exc:
        raise DecodeFailure(f"Not a readable snapshot archive: {exc}") from exc

    if not isinstance(archive, np.lib.npyio.NpzFile):
        raise DecodeFailure("Not a snapshot archive: found a bare array")

    with archive:
        missing = [m for m in _MEMBERS if m not in archive.files]
        if missing:
            raise DecodeFailure(f"Snapshot is missing members: {missing}")

        try:
            header = _read_json(archive, "header")
            ids = _read_json(archive, "ids")
            texts = _read_json(archive, "texts")
            metadata = _read_json(archive, "metadata")
            vectors = archive["vectors"]
        except DecodeFailure:
            raise
        except (ValueError, OSError, EOFError, KeyError, zipfile.BadZipFile, zlib.error) as exc:
            raise DecodeFailure(f"Corrupt snapshot member: {exc}") from exc

    collection = _assemble(header, ids, texts, metadata, vectors)
    collection.snapshot_size = len(data)
    logger.info("Imported collection %s: %d entries", collection.name, len(collection))
    return collection


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


def save_snapshot(collection: Collection, path: str | Path) -> int:
    """Write a snapshot file atomically; return its size in bytes."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    data = export_collection(collection)

    fd, tmp_name = tempfile.mkstemp(dir=p.parent, prefix=f".{p.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.replace(tmp_name, p)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    logger.info("Snapshot saved to %s (%d bytes)", p, len(data))
    return len(data)


def load_snapshot(path: str | Path) -> Collection:
    """Read a snapshot file into a frozen collection."""
    data = Path(path).read_bytes()
    return import_collection(data)


# ---------------------------------------------------------------------------
# Private
# ---------------------------------------------------------------------------


def _json_array(value: Any) -> np.ndarray:
    raw = json.dumps(value, ensure_ascii=False).encode("utf-8")
    return np.frombuffer(raw, dtype=np.uint8)


def _read_json(archive: Any, member: str) -> Any:
    array = archive[member]
    if array.dtype != np.uint8 or array.ndim != 1:
        raise DecodeFailure(f"Snapshot member {member!r} has unexpected type {array.dtype}")
    try:
        return json.loads(array.tobytes().decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DecodeFailure(f"Snapshot member {member!r} is not valid JSON: {exc}") from exc


def _check_types(header: dict, ids: list, texts: list, metadata: list) -> None:
    name = header.get("name")
    if not isinstance(name, str) or not name:
        raise DecodeFailure(f"Snapshot name must be a non-empty string, got {name!r}")
    if not _is_str_map(header.get("metadata") or {}):
        raise DecodeFailure("Snapshot collection metadata must map strings to strings")
    for i, (entry_id, text, meta) in enumerate(zip(ids, texts, metadata, strict=True)):
        if not isinstance(entry_id, str):
            raise DecodeFailure(f"Snapshot entry {i} has a non-string id {entry_id!r}")
        if not isinstance(text, str):
            raise DecodeFailure(f"Snapshot entry {entry_id!r} has a non-string text")
        if not _is_str_map(meta):
            raise DecodeFailure(f"Snapshot entry {entry_id!r} metadata must map strings to strings")


def _is_str_map(value: Any) -> bool:
    return isinstance(value, dict) and all(
        isinstance(k, str) and isinstance(v, str) for k, v in value.items()
    )


def _assemble(
    header: Any,
    ids: Any,
    texts: Any,
    metadata: Any,
    vectors: np.ndarray,
) -> Collection:
    if not isinstance(header, dict) or header.get("format") != FORMAT_NAME:
        raise DecodeFailure("Snapshot header has an unknown format")
    version = header.get("version")
    if version != FORMAT_VERSION:
        raise DecodeFailure(
            f"Unsupported snapshot version {version!r} (expected {FORMAT_VERSION})"
        )

    count = header.get("count")
    dimension = header.get("dimension")
    if not (isinstance(ids, list) and isinstance(texts, list) and isinstance(metadata, list)):
        raise DecodeFailure("Snapshot ids, texts and metadata must be lists")
    if not len(ids) == len(texts) == len(metadata) == count:
        raise DecodeFailure(
            f"Snapshot entry counts disagree: header={count}, ids={len(ids)}, "
            f"texts={len(texts)}, metadata={len(metadata)}"
        )
    _check_types(header, ids, texts, metadata)
    if vectors.dtype != np.float32 or vectors.shape != (count, dimension):
        raise DecodeFailure(
            f"Snapshot vectors have shape {vectors.shape} ({vectors.dtype}), "
            f"expected ({count}, {dimension}) float32"
        )

    try:
        return Collection.from_arrays(
            name=header["name"],
            ids=ids,
            texts=texts,
            metadata=metadata,
            vectors=vectors,
            collection_metadata=header.get("metadata") or {},
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise DecodeFailure(f"Snapshot entries are inconsistent: {exc}") from exc
