"""obs-websocket v5 remote built on obsws-python.

obsws-python clients are synchronous and block on the socket, so every
request runs in a worker thread via ``asyncio.to_thread``. OBS events
arrive on the event client's own thread and are handed back to the
asyncio loop as ``obs`` events on the PluginRegistry.
"""

import asyncio
from concurrent.futures import Future
from typing import Any, Callable, Dict, Optional

import obsws_python as obsws
import structlog

from .obs import OBS_SOURCE_ID, ObsConnectionOptions
from .registry import PluginRegistry

logger = structlog.get_logger("modwire.obs")

CONNECT_TIMEOUT_SECONDS = 3


class ObsWebsocketRemote:
    """ObsRemote over an obsws-python request client.

    Args:
        requests: Connected ``obsws_python.ReqClient``.
        events: Connected ``obsws_python.EventClient``, or None when no
            event loop was available to receive OBS events.
        log_errors: Log failed requests (the ``misc.logging`` setting).
    """

    def __init__(self, requests, events=None, log_errors: bool = False):
        self._requests = requests
        self._events = events
        self._log_errors = log_errors

    async def _call(self, method: str, *args: Any) -> Any:
        try:
            return await asyncio.to_thread(getattr(self._requests, method), *args)
        except Exception as e:
            if self._log_errors:
                logger.warning("obs_request_failed", request=method, error=str(e))
            raise

    async def get_current_scene(self) -> str:
        response = await self._call("get_current_program_scene")
        return response.current_program_scene_name

    async def set_current_scene(self, scene_name: str) -> None:
        await self._call("set_current_program_scene", scene_name)

    async def get_current_scene_collection(self) -> str:
        response = await self._call("get_scene_collection_list")
        return response.current_scene_collection_name

    async def set_current_scene_collection(self, collection_name: str) -> None:
        await self._call("set_current_scene_collection", collection_name)

    async def _scene_item_id(self, scene_name: str, source_name: str) -> int:
        response = await self._call("get_scene_item_id", scene_name, source_name)
        return response.scene_item_id

    async def get_source_visibility(self, scene_name: str, source_name: str) -> bool:
        item_id = await self._scene_item_id(scene_name, source_name)
        response = await self._call("get_scene_item_enabled", scene_name, item_id)
        return response.scene_item_enabled

    async def set_source_visibility(
        self, scene_name: str, source_name: str, visible: bool
    ) -> None:
        item_id = await self._scene_item_id(scene_name, source_name)
        await self._call("set_scene_item_enabled", scene_name, item_id, visible)

    async def get_source_filter_enabled(self, source_name: str, filter_name: str) -> bool:
        response = await self._call("get_source_filter", source_name, filter_name)
        return response.filter_enabled

    async def set_source_filter_enabled(
        self, source_name: str, filter_name: str, enabled: bool
    ) -> None:
        await self._call("set_source_filter_enabled", source_name, filter_name, enabled)

    async def get_input_muted(self, input_name: str) -> bool:
        response = await self._call("get_input_mute", input_name)
        return response.input_muted

    async def set_input_muted(self, input_name: str, muted: bool) -> None:
        await self._call("set_input_mute", input_name, muted)

    async def start_stream(self) -> None:
        await self._call("start_stream")

    async def stop_stream(self) -> None:
        await self._call("stop_stream")

    async def start_virtual_cam(self) -> None:
        await self._call("start_virtual_cam")

    async def stop_virtual_cam(self) -> None:
        await self._call("stop_virtual_cam")

    def disconnect(self) -> None:
        for client in (self._events, self._requests):
            if client is not None:
                client.disconnect()
        logger.info("obs_disconnected")


def event_callbacks(
    registry: PluginRegistry, loop: asyncio.AbstractEventLoop
) -> Dict[str, Callable[[Any], Future]]:
    """Build obsws-python event callbacks that forward into the registry.

    obsws-python dispatches on the callback's ``__name__``
    (``on_<snake_case_event>``), so the returned functions keep those
    names. Each callback returns the future of the scheduled
    ``trigger_event`` call.
    """

    def emit(event_id: str, meta: Dict[str, Any]) -> Future:
        return asyncio.run_coroutine_threadsafe(
            registry.trigger_event(OBS_SOURCE_ID, event_id, meta), loop
        )

    def on_current_program_scene_changed(data):
        return emit("scene-changed", {"scene_name": data.scene_name})

    def on_current_scene_collection_changed(data):
        return emit(
            "scene-collection-changed",
            {"scene_collection_name": data.scene_collection_name},
        )

    def on_stream_state_changed(data):
        # Fires for the transitional STARTING/STOPPING states too
        if data.output_state == "OBS_WEBSOCKET_OUTPUT_STARTED":
            return emit("stream-started", {})
        if data.output_state == "OBS_WEBSOCKET_OUTPUT_STOPPED":
            return emit("stream-stopped", {})
        return None

    callbacks = (
        on_current_program_scene_changed,
        on_current_scene_collection_changed,
        on_stream_state_changed,
    )
    return {cb.__name__: cb for cb in callbacks}


def connect_obs_remote(
    options: ObsConnectionOptions, registry: PluginRegistry
) -> ObsWebsocketRemote:
    """RemoteFactory that opens obs-websocket request and event clients.

    Must be called from the asyncio loop that should receive OBS events.
    Raises whatever obsws-python raises when OBS is unreachable.
    """
    connection = {
        "host": options.ip,
        "port": options.port,
        "password": options.password,
        "timeout": CONNECT_TIMEOUT_SECONDS,
    }
    requests = obsws.ReqClient(**connection)

    events: Optional[Any] = None
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.warning("obs_events_unavailable", reason="no running event loop")
    else:
        try:
            events = obsws.EventClient(**connection)
        except Exception:
            requests.disconnect()
            raise
        events.callback.register(list(event_callbacks(registry, loop).values()))

    logger.info("obs_connected", ip=options.ip, port=options.port)
    return ObsWebsocketRemote(requests, events, log_errors=options.logging)
