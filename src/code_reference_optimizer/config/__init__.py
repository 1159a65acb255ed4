"""Configuration module for Code Reference Optimizer."""

from code_reference_optimizer.config.settings import (
    CacheSettings,
    DiffSettings,
    ExtractionSettings,
    PerformanceSettings,
    Settings,
)

__all__ = [
    "Settings",
    "CacheSettings",
    "ExtractionSettings",
    "DiffSettings",
    "PerformanceSettings",
]
