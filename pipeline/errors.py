"""Exception types shared by the pipeline and the catalog service."""

__all__ = ["CatalogError", "SnapshotError", "PipelineInputError"]


class CatalogError(Exception):
    """Base class for catalog errors."""


class SnapshotError(CatalogError):
    """The canonical snapshot (or a raw input file) could not be read or parsed."""


class PipelineInputError(SnapshotError):
    """A pipeline run was started without usable raw input."""
