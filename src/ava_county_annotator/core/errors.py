from __future__ import annotations


class AvaCountyError(Exception):
    """Base class for every error raised by the annotation pipeline."""


class ValidationError(AvaCountyError):
    """A region failed the CRS gate and is excluded from processing."""


class GeometryError(AvaCountyError):
    """Intersection or area computation failed on a malformed geometry."""


class StoreError(AvaCountyError):
    """Connection, query or write failure against the spatial store."""


class ProvisioningError(AvaCountyError):
    """Reference data could not be downloaded, unpacked or loaded."""
