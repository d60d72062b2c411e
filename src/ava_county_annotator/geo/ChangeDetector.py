from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from ava_county_annotator.core.constants import REGION_FILE_PATTERN
from ava_county_annotator.core.models import ChangeRecord

LOG = logging.getLogger(__name__)

Snapshot = Mapping[str, Mapping[str, Any]]

# Not region attributes: `name` and `crs` are stamped by the GeoJSON writer
_WRITER_MEMBERS = frozenset({"features", "name", "crs"})


def canonicalize(doc: Any) -> Any:
    """Stable structural form: keys sorted, numpy/tuple values normalized."""
    return json.loads(json.dumps(doc, sort_keys=True, default=str))


def load_snapshot(directory: Path, pattern: str = REGION_FILE_PATTERN) -> Dict[str, Dict[str, Any]]:
    """{file stem: parsed GeoJSON} for every matching file in `directory`."""
    snapshot: Dict[str, Dict[str, Any]] = {}
    if not directory.exists():
        return snapshot
    for path in sorted(directory.glob(pattern)):
        with path.open("r", encoding="utf-8") as f:
            snapshot[path.stem] = json.load(f)
    return snapshot


class ChangeDetector:
    """
    Diff two region snapshots keyed by region id.

    Each snapshot value is a GeoJSON FeatureCollection (a bare Feature is
    treated as a one-feature collection). Documents are canonicalized first so
    key order alone never yields a change. Read-only: nothing is written.
    """

    def diff(self, before: Snapshot, after: Snapshot) -> List[ChangeRecord]:
        records: List[ChangeRecord] = []

        for region_id in sorted(set(before) | set(after)):
            if region_id not in before:
                records.append(ChangeRecord(region_id=region_id, kind="added"))
                continue
            if region_id not in after:
                records.append(ChangeRecord(region_id=region_id, kind="removed"))
                continue

            records.extend(
                self._diff_region(
                    region_id,
                    canonicalize(before[region_id]),
                    canonicalize(after[region_id]),
                )
            )

        return records

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    @staticmethod
    def _as_collection(doc: Dict[str, Any]) -> Dict[str, Any]:
        if doc.get("type") == "Feature":
            return {"type": "FeatureCollection", "features": [doc]}
        return doc

    def _diff_region(
        self,
        region_id: str,
        before: Dict[str, Any],
        after: Dict[str, Any],
    ) -> List[ChangeRecord]:
        before = self._as_collection(before)
        after = self._as_collection(after)
        records: List[ChangeRecord] = []

        # Collection-level members other than the ones GDAL writes itself
        for key in sorted((set(before) | set(after)) - _WRITER_MEMBERS):
            old, new = before.get(key), after.get(key)
            if old != new:
                records.append(
                    ChangeRecord(region_id=region_id, kind="changed", attribute=key, old=old, new=new)
                )

        features_before = before.get("features") or []
        features_after = after.get("features") or []
        if len(features_before) != len(features_after):
            records.append(
                ChangeRecord(
                    region_id=region_id,
                    kind="changed",
                    attribute="feature_count",
                    old=len(features_before),
                    new=len(features_after),
                )
            )

        for i, (fb, fa) in enumerate(zip(features_before, features_after)):
            records.extend(self._diff_feature(region_id, i, fb, fa))

        return records

    def _diff_feature(
        self,
        region_id: str,
        index: int,
        before: Dict[str, Any],
        after: Dict[str, Any],
    ) -> List[ChangeRecord]:
        records: List[ChangeRecord] = []

        props_before = before.get("properties") or {}
        props_after = after.get("properties") or {}
        for key in sorted(set(props_before) | set(props_after)):
            old, new = props_before.get(key), props_after.get(key)
            if old != new:
                records.append(
                    ChangeRecord(
                        region_id=region_id,
                        kind="changed",
                        attribute=key,
                        old=old,
                        new=new,
                        feature_index=index,
                    )
                )

        if before.get("geometry") != after.get("geometry"):
            records.append(
                ChangeRecord(
                    region_id=region_id,
                    kind="changed",
                    attribute="geometry",
                    old=_geometry_summary(before.get("geometry")),
                    new=_geometry_summary(after.get("geometry")),
                    feature_index=index,
                )
            )

        return records


def _geometry_summary(geom: Optional[Mapping[str, Any]]) -> Optional[str]:
    # Coordinates are too long for a report line; type is enough to locate it
    if geom is None:
        return None
    return str(geom.get("type"))


def format_report(records: List[ChangeRecord]) -> List[str]:
    """Human-readable diff lines; not a machine-parseable contract."""
    added = [r for r in records if r.kind == "added"]
    removed = [r for r in records if r.kind == "removed"]
    changed = [r for r in records if r.kind == "changed"]

    lines: List[str] = []
    if added:
        lines.append("The following new GeoJSON files have been added:")
        lines.extend(f"  Added: {r.region_id}" for r in added)
    if removed:
        lines.append("The following GeoJSON files are missing from the output:")
        lines.extend(f"  Removed: {r.region_id}" for r in removed)
    if changed:
        lines.append("The following GeoJSON attributes have changed:")
        for r in changed:
            where = r.region_id if r.feature_index is None else f"{r.region_id}[{r.feature_index}]"
            lines.append(f"  Changed: {where} {r.attribute}: {r.old!r} -> {r.new!r}")
    if not lines:
        lines.append("No differences between original and updated GeoJSON files.")
    return lines


def log_report(records: List[ChangeRecord]) -> None:
    for line in format_report(records):
        LOG.info(line)
