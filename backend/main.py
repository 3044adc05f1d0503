"""
LCU Relay - Backend Entry Point
FastAPI server relaying the League client's event stream over WebSocket,
plus a thin HTTP proxy for one-off LCU REST calls
"""

import sys
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from loguru import logger

from lcu_relay import __version__
from lcu_relay.config import RelaySettings
from lcu_relay.errors import NotConnected, ProxyError, ProxyTransportFailure
from lcu_relay.lcu import CURRENT_SUMMONER_PATH
from lcu_relay.services import RelaySession

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def configure_logging(level: str = "INFO"):
    logger.remove()
    logger.add(sys.stderr, level=level)


def create_app(settings: Optional[RelaySettings] = None, relay: Optional[RelaySession] = None) -> FastAPI:
    """
    Build the relay application

    Args:
        settings: relay settings (read from the environment when omitted)
        relay: pre-built relay session, mainly for tests
    """
    settings = settings or (relay.settings if relay else RelaySettings.from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler"""
        logger.info("Starting LCU relay backend...")
        session = relay or RelaySession(settings)
        await session.start()
        app.state.relay = session

        yield

        logger.info("Shutting down LCU relay backend...")
        await session.stop()

    app = FastAPI(
        title="LCU Relay",
        description="Local relay between the League client API and browser consumers",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint"""
        relay_session: RelaySession = request.app.state.relay
        return {
            "status": "healthy",
            "service": "lcu-relay",
            "version": __version__,
            **relay_session.status(),
        }

    @app.get("/api/lcu-credentials")
    async def lcu_credentials(request: Request):
        """Whether the relay currently holds an open LCU session"""
        relay_session: RelaySession = request.app.state.relay
        return {"connected": relay_session.upstream.is_connected}

    @app.get("/api/lcu/summoner/current")
    async def current_summoner(request: Request):
        return await _proxy_call(request.app.state.relay, "GET", CURRENT_SUMMONER_PATH)

    @app.api_route("/api/lcu/request/{lcu_path:path}", methods=PROXY_METHODS)
    async def lcu_request(lcu_path: str, request: Request):
        """Generic pass-through to the LCU REST API"""
        body = None
        raw = await request.body()
        if raw:
            try:
                body = await request.json()
            except ValueError:
                return JSONResponse(status_code=400, content={"error": "Request body must be JSON"})
        return await _proxy_call(request.app.state.relay, request.method, "/" + lcu_path, body)

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """
        Downstream event stream
        Client receives:
          - {"type": "LcuConnect", "data": {"port": "..."}}
          - {"type": "LcuDisconnect", "error": "..."?}
          - {"type": "LcuConnectError", "error": "..."}
          - {"type": "LcuEvent", "data": {"uri": ..., "eventType": ..., "data": ...}}
        The first message is always the current connect/disconnect status.
        """
        relay_session: RelaySession = websocket.app.state.relay
        await websocket.accept()
        relay_session.broadcaster.attach(websocket)

        try:
            while True:
                # Consumers only listen; anything they send is ignored
                data = await websocket.receive_text()
                logger.debug(f"Ignoring message from consumer: {data[:200]}")

        except WebSocketDisconnect:
            logger.info("Consumer disconnected normally")
        except Exception as e:
            logger.error(f"WebSocket error: {e}")
        finally:
            relay_session.broadcaster.detach(websocket)

    return app


async def _proxy_call(relay: RelaySession, method: str, path: str, body: Any = None) -> Response:
    """Forward to the LCU and map failures to JSON error responses"""
    try:
        response = await relay.gateway.forward(method, path, body)
    except NotConnected:
        return JSONResponse(status_code=404, content={"error": "LCU not connected"})
    except ProxyError as e:
        return JSONResponse(
            status_code=e.status,
            content={"error": f"LCU request failed: {e}", "lcuStatus": e.status, "lcuData": e.data},
        )
    except ProxyTransportFailure as e:
        logger.error(f"LCU proxy failure for {path}: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to reach LCU"})

    if response.status == 204 or response.body is None:
        return Response(status_code=response.status)
    if isinstance(response.body, str):
        media_type = response.headers.get("Content-Type", "text/plain")
        return Response(content=response.body, status_code=response.status, media_type=media_type)
    return JSONResponse(status_code=response.status, content=response.body)


_settings = RelaySettings.from_env()
configure_logging(_settings.log_level)
app = create_app(_settings)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=_settings.host,
        port=_settings.port,
        reload=False,
        log_level=_settings.log_level.lower(),
    )
