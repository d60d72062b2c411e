from __future__ import annotations

from typing import Iterable

from ava_county_annotator.core.constants import LABEL_DELIMITER
from ava_county_annotator.core.models import IntersectionResult


def reduce(region_id: str, results: Iterable[IntersectionResult]) -> str:
    """
    Canonical county label for a region: unique boundary names, sorted by
    code point, joined with '|'. No results -> "".

    `region_id` only guards against results leaking in from another region.
    """
    names = set()
    for r in results:
        if r.region_id != region_id:
            raise ValueError(f"result for {r.region_id!r} passed to reduce({region_id!r})")
        names.add(r.boundary_name)
    return LABEL_DELIMITER.join(sorted(names))
