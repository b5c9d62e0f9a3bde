"""Integrations that plug effects, events and variables into modwire."""

from .obs import IntegrationData, ObsIntegration, ObsSettings
from .registry import EffectType, EventFilter, EventSource, PluginRegistry, ReplaceVariable

__all__ = [
    "EffectType",
    "EventFilter",
    "EventSource",
    "IntegrationData",
    "ObsIntegration",
    "ObsSettings",
    "PluginRegistry",
    "ReplaceVariable",
]
