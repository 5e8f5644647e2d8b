# PlayMix
# Copyright (C) 2024-2026 PlayMix contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Host bridge — the OpenAction / Stream Deck plugin websocket protocol.

The host starts the plugin as

    playmix -port 28196 -pluginUUID <uuid> -registerEvent registerPlugin -info '{...}'

We connect to ws://127.0.0.1:<port>, register, then translate host events
into PlayMixCore calls:

    willAppear / willDisappear   → on_appear / on_disappear
    dialDown / dialUp            → on_press / on_release
    dialRotate (payload.ticks)   → on_rotate
    keyUp                        → on_button_command

and core render updates back into setImage + setTitle.  Each message is
handled in its own task; messages for the same context are serialized by a
per-context lock so one slow dial never holds up another.
"""

import argparse
import asyncio
import json
import logging
import sys

import websockets

from .core import PlayMixCore
from .images import ResolvedImage
from .lib.config import cfg
from .lib.errors import CoreInitError

logger = logging.getLogger("playmix.plugin")

ACTION_PREFIX = "dev.playmix."


def action_name(action_uuid: str) -> str | None:
    """dev.playmix.volumedial → volumedial; None for foreign actions."""
    if not action_uuid or not action_uuid.startswith(ACTION_PREFIX):
        return None
    return action_uuid[len(ACTION_PREFIX):]


def volume_title(volume: float | None) -> str:
    return f"{round(volume * 100)}%" if volume is not None else ""


class HostBridge:

    def __init__(self, ws, core_factory=PlayMixCore):
        self._ws = ws
        self.core = core_factory(self.render_update)
        self._locks: dict[str, asyncio.Lock] = {}
        self._tasks: set[asyncio.Task] = set()

    # ── Outgoing ──

    async def send(self, event: str, context: str, payload: dict):
        await self._ws.send(json.dumps({"event": event, "context": context, "payload": payload}))

    async def render_update(self, context: str, image: ResolvedImage | None, volume: float | None):
        # image=None lets the host fall back to the action's default image
        await self.send("setImage", context, {"image": image.data if image else None, "target": 0})
        await self.send("setTitle", context, {"title": volume_title(volume), "target": 0})

    # ── Incoming ──

    def dispatch(self, raw: str | bytes):
        """Parse one host message and handle it in its own task."""
        try:
            msg = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Invalid JSON from host: %r", raw[:200])
            return
        task = asyncio.create_task(self._handle_locked(msg))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self):
        """Wait for every in-flight message handler."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _handle_locked(self, msg: dict):
        context = msg.get("context") or ""
        async with self._locks.setdefault(context, asyncio.Lock()):
            try:
                await self.handle(msg)
            except Exception:
                logger.exception("Error handling %s for %s", msg.get("event"), context)
            if msg.get("event") == "willDisappear":
                self._locks.pop(context, None)

    async def handle(self, msg: dict):
        event = msg.get("event")
        context = msg.get("context")
        payload = msg.get("payload") or {}
        logger.debug("Host event: %s %s", event, context)

        if event == "willAppear":
            name = action_name(msg.get("action", ""))
            if name is None:
                logger.warning("Ignoring unknown action %s", msg.get("action"))
                return
            await self.core.on_appear(context, name)
        elif event == "willDisappear":
            await self.core.on_disappear(context)
        elif event == "dialDown":
            await self.core.on_press(context)
        elif event == "dialUp":
            await self.core.on_release(context)
        elif event == "dialRotate":
            await self.core.on_rotate(context, int(payload.get("ticks", 0)))
        elif event == "keyUp":
            await self.core.on_button_command(context)


async def run(port: int, plugin_uuid: str, register_event: str):
    url = f"ws://127.0.0.1:{port}"
    logger.info("Connecting to host at %s", url)
    async with websockets.connect(url, max_size=None) as ws:
        await ws.send(json.dumps({"event": register_event, "uuid": plugin_uuid}))
        logger.info("Registered as %s", plugin_uuid)

        bridge = HostBridge(ws)
        await bridge.core.start()
        try:
            async for raw in ws:
                bridge.dispatch(raw)
        except websockets.exceptions.ConnectionClosed:
            logger.warning("Host connection closed")
        finally:
            await bridge.core.stop()
    logger.info("Host went away, exiting")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="playmix", description="PlayMix audio dial plugin")
    parser.add_argument("-port", type=int, required=True)
    parser.add_argument("-pluginUUID", required=True)
    parser.add_argument("-registerEvent", required=True)
    parser.add_argument("-info", default="{}")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=str(cfg("log_level", default="INFO")).upper(),
        format="[%(asctime)s] %(levelname)s %(name)s %(message)s",
    )
    try:
        asyncio.run(run(args.port, args.pluginUUID, args.registerEvent))
    except CoreInitError as e:
        logger.error("Cannot start: %s", e)
        sys.exit(1)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
