# Transcribe Helper
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Transcribe Helper service (transcribe-helper)

Connects every configured player with connectOnStartup, logs what they are
doing and keeps the sessions alive until SIGINT/SIGTERM.  Handy for checking
a config file before wiring the controller into an editor.

    transcribe-helper --config ~/.config/transcribe-helper/config.json
"""

import argparse
import asyncio
import logging
import signal

from .controller import MediaPlayerController, config_label
from .lib.config import cfg, load_player_configs, reload_config
from .lib.errors import ConfigError
from .lib.events import STATUS_UPDATE
from .lib.timestamps import seconds_to_timestamp

logger = logging.getLogger("transcribe-helper")


def _log_status(session, status):
    track = status.current_track
    logger.info("%s: %s %s / %s%s",
                config_label(session.config),
                status.state,
                seconds_to_timestamp(status.time),
                seconds_to_timestamp(status.length),
                f" - {track.name}" if track and track.name else "")


async def run(controller: MediaPlayerController):
    """Reload all players, wait for a signal, tear down."""
    sessions = await controller.reload()
    for session in sessions:
        session.on(STATUS_UPDATE, _log_status)
    if not sessions:
        logger.warning("No player connected")

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, stop_event.set)
    try:
        await stop_event.wait()
    finally:
        await controller.teardown()
        logger.info("Stopped")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="transcribe-helper",
        description="Control VLC or Spotify playback while transcribing.")
    parser.add_argument("--config", help="path to config.json (default: search the usual places)")
    parser.add_argument("--log-level", default=None,
                        help="DEBUG, INFO, WARNING or ERROR (default: config logging.level or INFO)")
    return parser.parse_args(argv)


def cli(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.INFO,
        format="[%(asctime)s] %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    try:
        reload_config(args.config)
    except ConfigError as e:
        logger.error("%s", e)
        return 1

    level = (args.log_level or cfg("logging", "level", default="INFO")).upper()
    logging.getLogger().setLevel(level)

    configs = load_player_configs()
    logger.info("%d player(s) configured: %s", len(configs),
                ", ".join(c.name or c.type for c in configs) or "none")
    asyncio.run(run(MediaPlayerController(configs)))
    return 0


if __name__ == "__main__":
    raise SystemExit(cli())
