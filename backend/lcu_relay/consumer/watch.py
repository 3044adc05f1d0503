"""
Long-running consumer that logs every state transition
Used by debug/debug_websocket.py
"""

import asyncio
from typing import Optional

from loguru import logger

from .session import DEFAULT_RELAY_URL, ConsumerSession
from .state import ConsumerState, LcuStateStore


def format_status(store: LcuStateStore) -> str:
    """One-line summary of a consumer's view"""
    status = store.status
    parts = [f"state={store.state.value}"]
    if status.port:
        parts.append(f"port={status.port}")
    if store.gameflow_phase:
        parts.append(f"phase={store.gameflow_phase}")
    if store.champ_select is not None:
        session = store.champ_select
        pending = len(session.in_progress_actions())
        parts.append(f"champSelect=[{len(session.myTeam)}v{len(session.theirTeam)}, "
                     f"pending={pending}, timer={session.timer.phase or '?'}]")
    if status.error:
        parts.append(f"error={status.error!r}")
    return " ".join(parts)


async def watch_relay(
    url: str = DEFAULT_RELAY_URL,
    reconnect_delay: float = 5.0,
    poll_interval: float = 0.5,
    max_cycles: Optional[int] = None,
    session: Optional[ConsumerSession] = None,
):
    """
    Stay attached to the relay, reconnecting after reconnect_delay when the
    socket closes, and log whenever the derived state changes
    """
    session = session or ConsumerSession(url)
    last = None
    closed_at: Optional[float] = None
    loop = asyncio.get_running_loop()
    cycles = 0

    session.connect()
    try:
        while max_cycles is None or cycles < max_cycles:
            cycles += 1
            summary = format_status(session.store)
            if summary != last:
                if session.state == ConsumerState.WS_OPEN_LCU_CONNECTED:
                    logger.success(summary)
                elif session.status.error:
                    logger.warning(summary)
                else:
                    logger.info(summary)
                last = summary

            if session.state == ConsumerState.WS_DISCONNECTED:
                if closed_at is None:
                    closed_at = loop.time()
                elif loop.time() - closed_at >= reconnect_delay:
                    closed_at = None
                    session.connect()
            else:
                closed_at = None

            await asyncio.sleep(poll_interval)
    finally:
        await session.close()
