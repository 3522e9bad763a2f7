"""Exceptions raised by the terrain engine."""


class TerrainError(Exception):
    """Base class for terrain engine errors."""


class SettingsError(TerrainError, ValueError):
    """Raised when a generation settings object is malformed.

    This is the only hard failure of a generation pass; it is raised before
    any generation work begins.
    """
