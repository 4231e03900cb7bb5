"""Profile registry package."""

from nixbucks.registry.manager import ProfileRegistry, RegistryIndex

__all__ = ["ProfileRegistry", "RegistryIndex"]
