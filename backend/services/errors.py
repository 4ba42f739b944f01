from __future__ import annotations


class BlueprintError(ValueError):
    """Blueprint cannot be converted (missing sections, broken references)."""


class UnsupportedTopologyError(BlueprintError):
    """Blueprint shape the layout engine does not handle."""


class GridCollisionError(RuntimeError):
    """Two nodes were placed on the same lane grid cell."""


class SerializationError(ValueError):
    """BPMN tree rejected by the serializer (dangling references)."""
