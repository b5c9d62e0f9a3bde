"""Host registry that integrations plug their capabilities into.

An integration contributes effect types (actions the streamer can run),
event sources (things that happen), event filters and replace
variables (``$name`` placeholders). The registry owns no behaviour of
its own beyond lookup, triggering effects and fanning events out to
listeners.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import structlog

from ..exceptions import ModwireError

logger = structlog.get_logger("modwire.app")

EffectData = Dict[str, Any]
EventMeta = Dict[str, Any]
EventListener = Callable[[str, str, EventMeta], Awaitable[None]]


@dataclass(frozen=True)
class EffectType:
    """An action that can be triggered with a dict of effect settings."""
    id: str
    name: str
    description: str
    trigger: Callable[[EffectData], Awaitable[bool]]


@dataclass(frozen=True)
class EventDefinition:
    id: str
    name: str
    description: str = ""


@dataclass(frozen=True)
class EventSource:
    """A named group of events emitted by one integration."""
    id: str
    name: str
    events: Tuple[EventDefinition, ...] = ()

    def get_event(self, event_id: str) -> Optional[EventDefinition]:
        for event in self.events:
            if event.id == event_id:
                return event
        return None


@dataclass(frozen=True)
class EventFilter:
    """Predicate deciding whether an event's metadata matches a value.

    Attributes:
        events: ``(source_id, event_id)`` pairs the filter applies to.
        predicate: ``(filter_value, event_meta) -> bool``.
    """
    id: str
    name: str
    description: str
    events: Tuple[Tuple[str, str], ...]
    predicate: Callable[[str, EventMeta], bool]

    def applies_to(self, source_id: str, event_id: str) -> bool:
        return (source_id, event_id) in self.events


@dataclass(frozen=True)
class ReplaceVariable:
    """A ``$handle`` placeholder resolved at evaluation time."""
    handle: str
    description: str
    evaluator: Callable[[], Awaitable[str]]


@dataclass
class PluginRegistry:
    """Lookup tables for everything integrations register.

    Re-registering an id replaces the previous entry and logs a
    conflict warning.
    """

    effects: Dict[str, EffectType] = field(default_factory=dict)
    event_sources: Dict[str, EventSource] = field(default_factory=dict)
    filters: Dict[str, EventFilter] = field(default_factory=dict)
    variables: Dict[str, ReplaceVariable] = field(default_factory=dict)
    _listeners: List[EventListener] = field(default_factory=list, repr=False)

    def _put(self, table: dict, key: str, value: Any, kind: str) -> None:
        if key in table:
            logger.warning("plugin_registry_conflict", kind=kind, id=key)
        table[key] = value
        logger.debug("plugin_registered", kind=kind, id=key)

    def register_effect(self, effect: EffectType) -> None:
        self._put(self.effects, effect.id, effect, "effect")

    def register_event_source(self, source: EventSource) -> None:
        self._put(self.event_sources, source.id, source, "event_source")

    def register_filter(self, event_filter: EventFilter) -> None:
        self._put(self.filters, event_filter.id, event_filter, "filter")

    def register_replace_variable(self, variable: ReplaceVariable) -> None:
        self._put(self.variables, variable.handle, variable, "variable")

    def get_effect(self, effect_id: str) -> Optional[EffectType]:
        return self.effects.get(effect_id)

    def get_event_source(self, source_id: str) -> Optional[EventSource]:
        return self.event_sources.get(source_id)

    def get_filter(self, filter_id: str) -> Optional[EventFilter]:
        return self.filters.get(filter_id)

    def get_replace_variable(self, handle: str) -> Optional[ReplaceVariable]:
        return self.variables.get(handle)

    async def trigger_effect(self, effect_id: str, effect: EffectData) -> bool:
        """Run a registered effect. Unknown ids and failures return False."""
        effect_type = self.effects.get(effect_id)
        if effect_type is None:
            logger.warning("effect_unknown", effect_id=effect_id)
            return False
        try:
            return await effect_type.trigger(effect)
        except ModwireError as e:
            logger.warning("effect_failed", effect_id=effect_id, error=str(e))
        except Exception as e:
            logger.error("effect_error", effect_id=effect_id, error=str(e))
        return False

    async def evaluate_variable(self, handle: str) -> Optional[str]:
        """Resolve a replace variable; None if it is not registered."""
        variable = self.variables.get(handle)
        if variable is None:
            return None
        return await variable.evaluator()

    def on_event(self, listener: EventListener) -> None:
        """Register a callback for every triggered event."""
        self._listeners.append(listener)

    async def trigger_event(self, source_id: str, event_id: str, meta: EventMeta) -> None:
        """Fan an event out to all listeners.

        Events whose source or id is not registered are dropped with a
        warning. A failing listener does not stop the others.
        """
        source = self.event_sources.get(source_id)
        if source is None or source.get_event(event_id) is None:
            logger.warning("event_unknown", source_id=source_id, event_id=event_id)
            return
        logger.debug("event_triggered", source_id=source_id, event_id=event_id)
        for listener in list(self._listeners):
            try:
                await listener(source_id, event_id, meta)
            except Exception as e:
                logger.error(
                    "event_listener_error",
                    source_id=source_id,
                    event_id=event_id,
                    error=str(e),
                )
