#!/usr/bin/env python3
"""
WebSocket Debug Client
Attaches to the relay's /ws endpoint and logs every LCU state transition

Usage:
    python debug/debug_websocket.py [ws://127.0.0.1:3001/ws]
"""

import asyncio
import os
import sys

from loguru import logger

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from lcu_relay.consumer import DEFAULT_RELAY_URL  # noqa: E402
from lcu_relay.consumer.watch import watch_relay  # noqa: E402

# Configure logger for nice output
logger.remove()
logger.add(
    sys.stdout,
    format="<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>",
    level=os.getenv("LCU_RELAY_LOG_LEVEL", "INFO").upper(),
)


if __name__ == "__main__":
    url = sys.argv[1] if len(sys.argv) > 1 else os.getenv("LCU_RELAY_URL", DEFAULT_RELAY_URL)

    print("\n" + "=" * 80)
    print("LCU Relay Debug Client")
    print("=" * 80)
    print(f"\nConnecting to {url} and logging connection, phase and champ select changes.")
    print("Start the relay with: python main.py\n")

    try:
        asyncio.run(watch_relay(url))
    except KeyboardInterrupt:
        logger.info("Debug client stopped")
