"""LockGraph CLI: selective NuGet lock file regeneration for multi-project trees."""

__version__ = "0.1.0"
