from django.core.exceptions import ValidationError


class InsufficientStockError(ValidationError):
    """Requested quantity exceeds the replayed balance of a (material, location) key."""

    def __init__(self, material, godown, available, requested):
        self.material = material
        self.godown = godown
        self.available = available
        self.requested = requested
        where = godown.name if godown is not None else "direct stock"
        super().__init__(
            f"Insufficient stock for material {material.name} in {where}. "
            f"Available: {available}, Required: {requested}",
            code="insufficient_stock",
        )


class ConflictError(Exception):
    """The write would contradict stored state (e.g. deleting stock that was already issued)."""
