from __future__ import annotations


class ItemConstructionError(ValueError):
    """Raised when an item or capability component is built without a usable required field."""
