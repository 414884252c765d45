"""
FeatureCollection exporter.

Streams features into a GeoJSON FeatureCollection file. The collection is
written to a temporary sibling file and moved into place once the stream is
exhausted, so a failed pipeline never leaves a truncated output behind.
"""

import json
import logging
import math
import os
import tempfile
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

from ..types import Feature, OutputWriteError

logger = logging.getLogger(__name__)


def json_safe(value: Any) -> Any:
    """Replace NaN/Infinity (unknown elevations) with None for valid JSON."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, list):
        return [json_safe(item) for item in value]
    if isinstance(value, dict):
        return {key: json_safe(item) for key, item in value.items()}
    return value


async def write_feature_collection(features: AsyncIterator[Feature], out_path: Path) -> int:
    """
    Write a stream of features as one FeatureCollection.

    Args:
        features: Feature stream; pulling from it drives the pipeline
        out_path: Destination GeoJSON file

    Returns:
        Number of features written

    Raises:
        OutputWriteError: If the destination cannot be written
    """
    out_path = Path(out_path)
    try:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(suffix=".geojson.tmp", dir=str(out_path.parent))
    except OSError as e:
        raise OutputWriteError(out_path, str(e)) from e

    count = 0
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write('{"type":"FeatureCollection","features":[\n')
            async for feature in features:
                if count:
                    f.write(",\n")
                f.write(json.dumps(json_safe(feature), ensure_ascii=False, allow_nan=False))
                count += 1
            f.write("\n]}\n")
        os.replace(tmp_name, out_path)
    except OSError as e:
        raise OutputWriteError(out_path, str(e)) from e
    finally:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)

    logger.info(f"Successfully exported {count:,} features to {out_path}")
    return count
