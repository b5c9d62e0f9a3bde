"""Tests for the overlay URL builder."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from modwire.overlay import get_overlay_path, overlay_path_from_config

DATA_DIR = Path("/home/streamer/.modwire")
OVERLAY = str(DATA_DIR / "overlay.html")


def test_default_port_no_instance():
    assert get_overlay_path(None, 7472, DATA_DIR) == OVERLAY


def test_custom_port():
    assert get_overlay_path(None, 8080, DATA_DIR) == f"{OVERLAY}?port=8080"


def test_instance_only():
    assert get_overlay_path("Main", 7472, DATA_DIR) == f"{OVERLAY}?instance=Main"


def test_port_then_instance():
    assert get_overlay_path("Main", 8080, DATA_DIR) == f"{OVERLAY}?port=8080&instance=Main"


def test_instance_is_uri_encoded():
    result = get_overlay_path("Be Right Back & more", 7472, DATA_DIR)
    assert result == f"{OVERLAY}?instance=Be%20Right%20Back%20%26%20more"


def test_encoding_keeps_uri_component_safe_chars():
    assert get_overlay_path("a-b_c.d!(e)", 7472, DATA_DIR).endswith("instance=a-b_c.d!(e)")


def test_empty_instance_ignored():
    assert get_overlay_path("", 7472, DATA_DIR) == OVERLAY


@pytest.mark.parametrize("port", [None, "abc", float("nan"), True])
def test_invalid_port_ignored(port):
    assert get_overlay_path(None, port, DATA_DIR) == OVERLAY


def test_from_config():
    config = MagicMock()
    config.web_server_port = 9000
    config.user_data_dir = DATA_DIR
    assert overlay_path_from_config(config, "Alerts") == f"{OVERLAY}?port=9000&instance=Alerts"
