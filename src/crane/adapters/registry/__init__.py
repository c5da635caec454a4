"""Registry adapters."""

from .doi import DoiRegistryAdapter

__all__ = ["DoiRegistryAdapter"]
