"""Builds the local overlay URL that browser sources load."""

from pathlib import Path
from typing import Any, Optional, Union
from urllib.parse import quote

from .config import DEFAULT_WEB_SERVER_PORT

OVERLAY_FILENAME = "overlay.html"

# Characters encodeURIComponent leaves as-is
_URI_COMPONENT_SAFE = "-_.!~*'()"


def _valid_port(port: Any) -> Optional[int]:
    if isinstance(port, bool):
        return None
    try:
        return int(port)
    except (TypeError, ValueError):
        return None


def get_overlay_path(
    instance_name: Optional[str],
    port: Any,
    user_data_dir: Union[str, Path],
) -> str:
    """Return the overlay file path with its query string.

    ``port`` is only added when it is a number other than the default
    web server port; ``instance`` only when a non-empty instance name
    is given.
    """
    overlay_path = str(Path(user_data_dir) / OVERLAY_FILENAME)

    params = []
    port_number = _valid_port(port)
    if port_number is not None and port_number != DEFAULT_WEB_SERVER_PORT:
        params.append(("port", str(port_number)))

    if instance_name:
        params.append(("instance", quote(instance_name, safe=_URI_COMPONENT_SAFE)))

    for index, (key, value) in enumerate(params):
        prefix = "?" if index == 0 else "&"
        overlay_path += f"{prefix}{key}={value}"

    return overlay_path


def overlay_path_from_config(config, instance_name: Optional[str] = None) -> str:
    """get_overlay_path using the configured port and user data dir."""
    return get_overlay_path(instance_name, config.web_server_port, config.user_data_dir)
