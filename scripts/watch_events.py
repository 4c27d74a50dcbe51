"""Connects to OBS, logs scene/stream events and redials after abnormal closes."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

LOGGER = logging.getLogger("watch_events")

WATCHED_EVENTS = (
    "CurrentProgramSceneChanged",
    "StreamStateChanged",
    "RecordStateChanged",
    "ExitStarted",
)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--url", default=None, help="Override OBSWS_URL")
    parser.add_argument("--password", default=None, help="Override OBSWS_PASSWORD")
    return parser.parse_args()


async def watch(url: str | None, password: str | None) -> None:
    from obsws import Session, SessionEvent, get_settings  # type: ignore
    from obsws.errors import ObsWebSocketError  # type: ignore

    session = Session(settings=get_settings())
    stop = asyncio.Event()

    async def redial(_data: object = None) -> None:
        try:
            await session.connect(url, password)
        except ObsWebSocketError as exc:
            LOGGER.warning("Redial failed: %s", exc)

    for name in WATCHED_EVENTS:
        session.on(name, lambda data, name=name: LOGGER.info("%s: %s", name, data))
    session.on("ExitStarted", lambda _data: stop.set())
    session.on(SessionEvent.RECONNECT_REQUESTED, redial)
    session.on(SessionEvent.CONNECTION_CLOSED, lambda data: LOGGER.info("Connection closed: %s", data))

    async with session:
        await session.connect(url, password)
        version = await session.call("GetVersion")
        LOGGER.info("Connected to OBS %s", (version or {}).get("obsVersion"))
        await stop.wait()


def main() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root))

    # Lazy import after adjusting sys.path
    from obsws.config import get_settings  # type: ignore

    args = _parse_args()
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    try:
        asyncio.run(watch(args.url, args.password))
    except KeyboardInterrupt:
        LOGGER.info("Interrupted")


if __name__ == "__main__":
    main()
