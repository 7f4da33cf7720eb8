"""Remote jobs API adapters."""

from .client import FlyerApiClient

__all__ = ["FlyerApiClient"]
