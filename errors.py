"""Exceptions raised while configuring, generating and rendering collectibles."""


class ConfigurationError(ValueError):
    """Invalid configuration or configuration not matching the layer assets."""


class ReorderInvariantViolation(AssertionError):
    """Reordering changed the number of traits of a collectible."""


class GenerationError(RuntimeError):
    """A collection could not be generated with the requested constraints."""


class AssetIOError(OSError):
    """A layer image used by a collectible could not be loaded."""

    def __init__(self, collectible_id, path, reason=None):
        self.collectible_id = collectible_id
        self.path = path
        message = f"Collectible #{collectible_id}: cannot load layer {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
