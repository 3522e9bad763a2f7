"""
Configuration modules for terrain generation.
"""

from .config import EngineSettings, settings
from .generation_settings import (
    CoastlineSettings,
    GenerationSettings,
    LakeSettings,
    RiverSettings,
    TributarySettings,
    VoronoiSettings,
    load_generation_settings,
)
from .logging_config import configure_logging

__all__ = [
    'EngineSettings',
    'settings',
    'GenerationSettings',
    'VoronoiSettings',
    'CoastlineSettings',
    'LakeSettings',
    'RiverSettings',
    'TributarySettings',
    'load_generation_settings',
    'configure_logging',
]
