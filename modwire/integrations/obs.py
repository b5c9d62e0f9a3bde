"""OBS integration: scene and source control through obs-websocket.

Registers OBS effect types, the ``obs`` event source, a scene-name
event filter and two replace variables with the host PluginRegistry,
then hands the user's websocket settings to an injected ``init_remote``
factory (``obs_remote.connect_obs_remote`` in the app). The factory owns
the websocket connection; this module only talks to the ObsRemote it
returns.

Key classes:
    ObsSettings: Pydantic model of the user-configurable settings.
    ObsRemote: Protocol for the websocket remote-control client.
    ObsIntegration: Registration and connection setup.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Union

import structlog
from pydantic import BaseModel, Field, ValidationError

from ..exceptions import ObsIntegrationError
from .registry import (
    EffectData,
    EffectType,
    EventDefinition,
    EventFilter,
    EventMeta,
    EventSource,
    PluginRegistry,
    ReplaceVariable,
)

logger = structlog.get_logger("modwire.obs")

OBS_SOURCE_ID = "obs"
DEFAULT_OBS_PORT = 4455


class WebsocketSettings(BaseModel):
    ip_address: str = Field(default="localhost", description="Host running OBS")
    port: int = Field(default=DEFAULT_OBS_PORT, ge=1, le=65535)
    password: str = ""


class MiscSettings(BaseModel):
    logging: bool = Field(default=False, description="Log OBS errors")


class ObsSettings(BaseModel):
    """User settings for the OBS integration."""

    websocket_settings: WebsocketSettings = Field(default_factory=WebsocketSettings)
    misc: MiscSettings = Field(default_factory=MiscSettings)


class IntegrationData(BaseModel):
    """What the host passes to an integration on init and settings update."""

    user_settings: Optional[ObsSettings] = None


OBS_INTEGRATION_DEFINITION = {
    "id": "OBS",
    "name": "OBS",
    "description": (
        "Connect to OBS to change scenes, toggle sources and filters, "
        "and much more. Requires OBS 28+ or the obs-websocket v5 plugin."
    ),
    "link_type": "none",
    "configurable": True,
    "connection_toggle": False,
    "setting_categories": {
        "websocket_settings": {
            "title": "Websocket Settings",
            "sort_rank": 1,
            "settings": {
                "ip_address": {
                    "title": "IP Address",
                    "description": (
                        "The ip address of the computer running OBS. "
                        "Use 'localhost' for the same computer."
                    ),
                    "type": "string",
                    "default": "localhost",
                },
                "port": {
                    "title": "Port",
                    "description": "Port the OBS Websocket is running on. Default is 4455.",
                    "type": "number",
                    "default": DEFAULT_OBS_PORT,
                },
                "password": {
                    "title": "Password",
                    "description": "The password set for the OBS Websocket.",
                    "type": "password",
                    "default": "",
                },
            },
        },
        "misc": {
            "title": "Misc",
            "sort_rank": 2,
            "settings": {
                "logging": {
                    "title": "Enable logging for OBS Errors",
                    "type": "boolean",
                    "default": False,
                },
            },
        },
    },
}


@dataclass(frozen=True)
class ObsConnectionOptions:
    ip: str
    port: int
    password: str
    logging: bool
    force_connect: bool = True


class ObsRemote(Protocol):
    """Remote-control operations used by the OBS effects and variables."""

    async def get_current_scene(self) -> str: ...

    async def set_current_scene(self, scene_name: str) -> None: ...

    async def get_current_scene_collection(self) -> str: ...

    async def set_current_scene_collection(self, collection_name: str) -> None: ...

    async def get_source_visibility(self, scene_name: str, source_name: str) -> bool: ...

    async def set_source_visibility(
        self, scene_name: str, source_name: str, visible: bool
    ) -> None: ...

    async def get_source_filter_enabled(self, source_name: str, filter_name: str) -> bool: ...

    async def set_source_filter_enabled(
        self, source_name: str, filter_name: str, enabled: bool
    ) -> None: ...

    async def get_input_muted(self, input_name: str) -> bool: ...

    async def set_input_muted(self, input_name: str, muted: bool) -> None: ...

    async def start_stream(self) -> None: ...

    async def stop_stream(self) -> None: ...

    async def start_virtual_cam(self) -> None: ...

    async def stop_virtual_cam(self) -> None: ...

    def disconnect(self) -> None: ...


# init_remote(options, registry) -> remote. The remote may emit events
# through registry.trigger_event("obs", ...).
RemoteFactory = Callable[[ObsConnectionOptions, PluginRegistry], ObsRemote]

OBS_EVENT_SOURCE = EventSource(
    id=OBS_SOURCE_ID,
    name="OBS",
    events=(
        EventDefinition("scene-changed", "Scene Changed", "When the program scene changes"),
        EventDefinition(
            "scene-collection-changed",
            "Scene Collection Changed",
            "When the active scene collection changes",
        ),
        EventDefinition("stream-started", "Stream Started", "When OBS starts streaming"),
        EventDefinition("stream-stopped", "Stream Stopped", "When OBS stops streaming"),
    ),
)


def _scene_name_matches(value: str, meta: EventMeta) -> bool:
    scene_name = meta.get("scene_name")
    if scene_name is None:
        return False
    return str(scene_name).lower() == value.lower()


SCENE_NAME_FILTER = EventFilter(
    id="obs:scene-name",
    name="Scene Name",
    description="Filter on the name of the new OBS scene",
    events=((OBS_SOURCE_ID, "scene-changed"),),
    predicate=_scene_name_matches,
)


def _required(effect: EffectData, key: str) -> str:
    value = effect.get(key)
    if not value:
        raise ObsIntegrationError(f"Effect is missing '{key}'", field=key)
    return str(value)


# Explicit actions per toggle effect; "toggle" flips the current state
VISIBILITY_ACTIONS = {"show": True, "hide": False}
FILTER_ACTIONS = {"enable": True, "disable": False}
MUTE_ACTIONS = {"mute": True, "unmute": False}


def _resolve_toggle(action: Optional[str], current: bool, actions: Dict[str, bool]) -> bool:
    """Map an effect's action word onto the new boolean state."""
    action = (action or "toggle").lower()
    if action == "toggle":
        return not current
    if action in actions:
        return actions[action]
    raise ObsIntegrationError(
        f"Unknown action '{action}'", action=action, accepted=sorted(actions)
    )


class ObsIntegration:
    """Registers OBS capabilities and manages the remote handle.

    Args:
        registry: Host plugin registry.
        init_remote: Factory that connects to OBS and returns an
            ObsRemote.
    """

    def __init__(self, registry: PluginRegistry, init_remote: RemoteFactory):
        self.registry = registry
        self._init_remote = init_remote
        self.remote: Optional[ObsRemote] = None

    @property
    def connected(self) -> bool:
        return self.remote is not None

    def _require_remote(self) -> ObsRemote:
        if self.remote is None:
            raise ObsIntegrationError("OBS remote is not configured")
        return self.remote

    def _setup_connection(
        self, integration_data: Union[IntegrationData, Mapping[str, Any], None]
    ) -> None:
        if not isinstance(integration_data, IntegrationData):
            try:
                integration_data = IntegrationData.model_validate(integration_data or {})
            except ValidationError as e:
                logger.warning(
                    "obs_settings_invalid",
                    errors=[
                        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                        for err in e.errors()
                    ],
                )
                return
        settings = integration_data.user_settings
        if settings is None:
            logger.info("obs_settings_missing")
            return
        ws = settings.websocket_settings
        options = ObsConnectionOptions(
            ip=ws.ip_address,
            port=ws.port,
            password=ws.password,
            logging=settings.misc.logging,
        )
        self.disconnect()
        logger.info("obs_connection_setup", ip=ws.ip_address, port=ws.port)
        try:
            self.remote = self._init_remote(options, self.registry)
        except Exception as e:
            logger.warning("obs_remote_unavailable", error=str(e))
            self.remote = None

    def disconnect(self) -> None:
        """Close the current remote, if any."""
        if self.remote is None:
            return
        remote, self.remote = self.remote, None
        try:
            remote.disconnect()
        except Exception as e:
            logger.warning("obs_disconnect_failed", error=str(e))

    def init(
        self,
        linked: bool,
        integration_data: Union[IntegrationData, Mapping[str, Any], None],
    ) -> None:
        """Register every OBS capability, then connect with the user settings.

        ``integration_data`` may be an IntegrationData or the raw mapping
        read from settings.yaml. Invalid settings are logged and leave
        the integration registered but disconnected.
        """
        logger.info("obs_integration_starting", linked=linked)

        for effect in self.effect_types():
            self.registry.register_effect(effect)
        self.registry.register_event_source(OBS_EVENT_SOURCE)
        self.registry.register_filter(SCENE_NAME_FILTER)
        for variable in self.replace_variables():
            self.registry.register_replace_variable(variable)

        self._setup_connection(integration_data)

    def on_user_settings_update(
        self, integration_data: Union[IntegrationData, Mapping[str, Any], None]
    ) -> None:
        self._setup_connection(integration_data)

    # --- Effects ---

    async def _change_scene(self, effect: EffectData) -> bool:
        await self._require_remote().set_current_scene(_required(effect, "scene_name"))
        return True

    async def _change_scene_collection(self, effect: EffectData) -> bool:
        await self._require_remote().set_current_scene_collection(
            _required(effect, "scene_collection_name")
        )
        return True

    async def _toggle_source_visibility(self, effect: EffectData) -> bool:
        remote = self._require_remote()
        scene = _required(effect, "scene_name")
        source = _required(effect, "source_name")
        current = await remote.get_source_visibility(scene, source)
        await remote.set_source_visibility(
            scene, source, _resolve_toggle(effect.get("action"), current, VISIBILITY_ACTIONS)
        )
        return True

    async def _toggle_source_filter(self, effect: EffectData) -> bool:
        remote = self._require_remote()
        source = _required(effect, "source_name")
        filter_name = _required(effect, "filter_name")
        current = await remote.get_source_filter_enabled(source, filter_name)
        await remote.set_source_filter_enabled(
            source, filter_name, _resolve_toggle(effect.get("action"), current, FILTER_ACTIONS)
        )
        return True

    async def _toggle_source_muted(self, effect: EffectData) -> bool:
        remote = self._require_remote()
        source = _required(effect, "source_name")
        current = await remote.get_input_muted(source)
        await remote.set_input_muted(
            source, _resolve_toggle(effect.get("action"), current, MUTE_ACTIONS)
        )
        return True

    async def _start_stream(self, effect: EffectData) -> bool:
        await self._require_remote().start_stream()
        return True

    async def _stop_stream(self, effect: EffectData) -> bool:
        await self._require_remote().stop_stream()
        return True

    async def _start_virtual_cam(self, effect: EffectData) -> bool:
        await self._require_remote().start_virtual_cam()
        return True

    async def _stop_virtual_cam(self, effect: EffectData) -> bool:
        await self._require_remote().stop_virtual_cam()
        return True

    def effect_types(self) -> tuple:
        return (
            EffectType("obs:change-scene", "Change OBS Scene",
                       "Switch the program scene", self._change_scene),
            EffectType("obs:change-scene-collection", "Change OBS Scene Collection",
                       "Switch the active scene collection", self._change_scene_collection),
            EffectType("obs:toggle-source-visibility", "Toggle OBS Source Visibility",
                       "Show, hide or toggle a source in a scene", self._toggle_source_visibility),
            EffectType("obs:toggle-source-filter", "Toggle OBS Source Filter",
                       "Enable, disable or toggle a source filter", self._toggle_source_filter),
            EffectType("obs:toggle-source-muted", "Toggle OBS Source Muted",
                       "Mute, unmute or toggle an audio source", self._toggle_source_muted),
            EffectType("obs:start-stream", "Start OBS Stream",
                       "Start streaming in OBS", self._start_stream),
            EffectType("obs:stop-stream", "Stop OBS Stream",
                       "Stop streaming in OBS", self._stop_stream),
            EffectType("obs:start-virtual-cam", "Start OBS Virtual Camera",
                       "Start the OBS virtual camera", self._start_virtual_cam),
            EffectType("obs:stop-virtual-cam", "Stop OBS Virtual Camera",
                       "Stop the OBS virtual camera", self._stop_virtual_cam),
        )

    # --- Replace variables ---

    async def _scene_name(self) -> str:
        if self.remote is None:
            return "Unknown"
        return await self.remote.get_current_scene()

    async def _scene_collection_name(self) -> str:
        if self.remote is None:
            return "Unknown"
        return await self.remote.get_current_scene_collection()

    def replace_variables(self) -> tuple:
        return (
            ReplaceVariable("obsSceneName", "The name of the current OBS scene", self._scene_name),
            ReplaceVariable(
                "obsSceneCollectionName",
                "The name of the current OBS scene collection",
                self._scene_collection_name,
            ),
        )
