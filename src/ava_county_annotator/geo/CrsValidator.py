from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from ava_county_annotator.core.constants import CANONICAL_EPSG
from ava_county_annotator.core.errors import ValidationError
from ava_county_annotator.core.models import Region

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationOutcome:
    valid: bool
    region: Region
    reason: str = ""

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        return self.region.bounds


class CrsValidator:
    """
    Gate regions on their declared CRS.

    A region passes only when its declared EPSG equals the canonical one;
    an undeclared CRS fails. Nothing is reprojected here. Rejections are
    logged with the region bounding box so the offending file can be located.
    """

    def __init__(self, required_epsg: int = CANONICAL_EPSG) -> None:
        self.required_epsg = int(required_epsg)

    def validate(self, region: Region) -> ValidationOutcome:
        LOG.info("START Validating CRS for region: %s", region.identifier)

        if region.crs_epsg is None:
            reason = "missing CRS"
        elif region.crs_epsg != self.required_epsg:
            reason = f"EPSG:{region.crs_epsg} != EPSG:{self.required_epsg}"
        else:
            reason = ""

        LOG.info("END Validating CRS for region: %s", region.identifier)

        if reason:
            LOG.warning("Unexpected CRS in %s (%s)", region.identifier, reason)
            LOG.warning("Bounding box for %s: %s", region.identifier, region.bounds)
            return ValidationOutcome(valid=False, region=region, reason=reason)

        return ValidationOutcome(valid=True, region=region)

    def require(self, region: Region) -> Region:
        """Raise ValidationError unless `region` passes the CRS gate."""
        outcome = self.validate(region)
        if not outcome.valid:
            raise ValidationError(f"region {region.identifier!r} rejected: {outcome.reason}")
        return region

    def validate_all(self, regions: Sequence[Region]) -> Tuple[List[Region], List[ValidationOutcome]]:
        """Split regions into (valid regions, rejected outcomes), order preserved."""
        valid: List[Region] = []
        rejected: List[ValidationOutcome] = []
        for region in regions:
            outcome = self.validate(region)
            if outcome.valid:
                valid.append(region)
            else:
                rejected.append(outcome)

        LOG.info("%d of %d regions passed CRS validation.", len(valid), len(regions))
        return valid, rejected
