"""Platform adapters. Each implements base.AdapterBase."""

from chanrelay.adapters.base import AdapterBase, PlatformClient

__all__ = ["AdapterBase", "PlatformClient"]
