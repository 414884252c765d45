"""
GeoJSON feature source.

Streams features one at a time from:

- a whole-document FeatureCollection (``features`` parsed incrementally),
- a JSON array of features,
- one or more concatenated Feature objects (a single Feature document, or
  newline-delimited GeoJSON),
- GeoJSON text sequences (RS-prefixed lines).

The file stays open while features are consumed, so no more of it is read
than the downstream stages have asked for.
"""

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Iterator
from pathlib import Path
from typing import BinaryIO, Optional

import ijson

from ..types import Feature, InputReadError

logger = logging.getLogger(__name__)

# Hand control back to the event loop every N features
YIELD_EVERY = 1000

RECORD_SEPARATOR = b"\x1e"


async def read_geojson_features(path: Path) -> AsyncIterator[Feature]:
    """
    Stream features from a GeoJSON file.

    Raises:
        InputReadError: If the file is missing, unreadable or malformed
    """
    path = Path(path)
    try:
        f = open(path, "rb")
    except FileNotFoundError as e:
        raise InputReadError(path, "file not found") from e
    except OSError as e:
        raise InputReadError(path, str(e)) from e

    count = 0
    with f:
        try:
            for feature in _parse_features(path, f):
                yield feature
                count += 1
                if count % YIELD_EVERY == 0:
                    await asyncio.sleep(0)
        except ijson.JSONError as e:
            raise InputReadError(path, f"malformed JSON after {count:,} features: {e}") from e
        except (OSError, UnicodeDecodeError) as e:
            raise InputReadError(path, str(e)) from e

    logger.info(f"Read {count:,} features from {path.name}")


def _parse_features(path: Path, f: BinaryIO) -> Iterator[Feature]:
    first = _first_significant_byte(f)
    f.seek(0)

    if not first:
        return
    if first == RECORD_SEPARATOR:
        yield from _sequence_features(path, f)
    elif first == b"[":
        for item in ijson.items(f, "item", use_float=True):
            yield _checked_feature(path, item)
    elif first == b"{":
        kind = _top_level_type(f)
        f.seek(0)
        if kind == "FeatureCollection":
            for item in ijson.items(f, "features.item", use_float=True):
                yield _checked_feature(path, item)
        elif kind == "Feature":
            for item in ijson.items(f, "", multiple_values=True, use_float=True):
                yield _checked_feature(path, item)
        else:
            raise InputReadError(path, f"unexpected GeoJSON type {kind!r}")
    else:
        raise InputReadError(path, "expected a GeoJSON object or array")


def _first_significant_byte(f: BinaryIO) -> bytes:
    while True:
        chunk = f.read(4096)
        if not chunk:
            return b""
        stripped = chunk.lstrip()
        if stripped:
            return stripped[:1]


def _top_level_type(f: BinaryIO) -> Optional[str]:
    """Read just far enough into the first object to learn its GeoJSON type."""
    key = None
    for prefix, event, value in ijson.parse(f, multiple_values=True):
        if prefix == "" and event == "map_key":
            key = value
            # Some writers put "features" before "type"
            if key == "features":
                return "FeatureCollection"
        elif prefix == "type" and key == "type" and event == "string":
            return value
        elif prefix == "" and event == "end_map":
            return None
    return None


def _sequence_features(path: Path, f: BinaryIO) -> Iterator[Feature]:
    for line_number, raw in enumerate(f, start=1):
        line = raw.decode("utf-8").strip().lstrip("\x1e").strip()
        if not line:
            continue
        try:
            document = json.loads(line)
        except json.JSONDecodeError as e:
            raise InputReadError(path, f"line {line_number}: {e.msg}") from e
        yield _checked_feature(path, document)


def _checked_feature(path: Path, feature) -> Feature:
    if not isinstance(feature, dict) or feature.get("type") != "Feature":
        raise InputReadError(path, "expected GeoJSON Feature members")
    if feature.get("properties") is None:
        feature["properties"] = {}
    return feature
