"""Reference-data loaders built on the cache store."""

from .reference import RESOURCES, Loaded, ReferenceCatalog
from .refresh import ForceRefreshFlags

__all__ = ["RESOURCES", "Loaded", "ReferenceCatalog", "ForceRefreshFlags"]
