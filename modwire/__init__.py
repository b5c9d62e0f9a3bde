"""modwire: Twitch moderation slash-commands and OBS control for streamers."""

__version__ = "0.3.0"
