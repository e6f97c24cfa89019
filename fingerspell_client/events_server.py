"""
Events Server - Publishes recognition results to UI clients.

Handles:
- FastAPI WebSocket endpoint at /events
- Optional Bearer token authentication
- Broadcasting sign and word updates from the pipeline
- Reset requests from clients (clears the pending sign)
"""

import asyncio
import json
import logging
from typing import Dict, Optional, Set

import uvicorn
from fastapi import FastAPI, WebSocket, WebSocketDisconnect, status
from fastapi.middleware.cors import CORSMiddleware

from .pipeline import SignPipeline

logger = logging.getLogger(__name__)


class EventsServer:
    """
    WebSocket server mirroring the pipeline's observable state.

    Messages sent to clients:
        {"type": "state", "sign", "probability", "word", "pending"}
        {"type": "sign", "sign", "probability"}
        {"type": "word", "word"}
        {"type": "error", "reason"}

    Messages accepted from clients:
        {"type": "reset"}
    """

    def __init__(self, pipeline: SignPipeline, token: Optional[str] = None):
        """
        Initialize events server.

        Args:
            pipeline: Pipeline whose updates are published
            token: Optional bearer token required from clients
        """
        self.pipeline = pipeline
        self.token = token

        self._clients: Dict[str, WebSocket] = {}
        self._client_counter = 0
        self._pending_sends: Set[asyncio.Task] = set()

        # Statistics
        self._broadcasts = 0
        self._invalid_messages = 0

        pipeline.add_sign_observer(self._on_sign_update)
        pipeline.add_word_observer(self._on_word_resolved)

        self.app = FastAPI(title="Fingerspelling Events")
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        self._setup_routes()

    def _setup_routes(self):
        """Set up FastAPI routes."""

        @self.app.get("/health")
        async def health_check():
            """Health check endpoint."""
            return {"status": "ok", "clients": len(self._clients)}

        @self.app.get("/status")
        async def session_status():
            """Current recognition state and statistics."""
            return {
                "state": self.pipeline.snapshot(),
                "stats": self.pipeline.get_stats(),
            }

        @self.app.websocket("/events")
        async def websocket_events(websocket: WebSocket):
            """WebSocket endpoint for recognition events."""
            await self._handle_websocket(websocket)

    def _state_message(self) -> dict:
        return {"type": "state", **self.pipeline.snapshot()}

    async def _handle_websocket(self, websocket: WebSocket) -> None:
        """Handle incoming WebSocket connection."""
        if self.token and not self._verify_token(websocket.headers.get("authorization", "")):
            logger.warning(f"Authentication failed from {websocket.client}")
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

        await websocket.accept()

        self._client_counter += 1
        client_id = f"client_{self._client_counter}"
        self._clients[client_id] = websocket
        logger.info(f"UI client connected: {client_id}")

        try:
            await websocket.send_json(self._state_message())
            await self._receive_messages(websocket, client_id)
        except WebSocketDisconnect:
            logger.info(f"UI client disconnected: {client_id}")
        except Exception as e:
            logger.error(f"Error handling client {client_id}: {e}")
        finally:
            self._clients.pop(client_id, None)

    def _verify_token(self, auth_header: str) -> bool:
        """Verify Bearer token."""
        parts = auth_header.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            return False
        return parts[1] == self.token

    async def _receive_messages(self, websocket: WebSocket, client_id: str) -> None:
        """Receive and process messages from a client."""
        while True:
            data = await websocket.receive_text()

            try:
                msg = json.loads(data)
            except json.JSONDecodeError as e:
                self._invalid_messages += 1
                logger.warning(f"Invalid message from {client_id}: {e}")
                await websocket.send_json({"type": "error", "reason": "invalid_json"})
                continue

            msg_type = msg.get("type") if isinstance(msg, dict) else None
            if msg_type == "reset":
                logger.info(f"Reset requested by {client_id}")
                self.pipeline.reset()
                await websocket.send_json(self._state_message())
            else:
                self._invalid_messages += 1
                logger.warning(f"Unknown message type from {client_id}: {msg_type!r}")
                await websocket.send_json({"type": "error", "reason": "unknown_type"})

    # ------------------------------------------------------------------
    # Pipeline observers (called on the event loop thread)
    # ------------------------------------------------------------------

    def _on_sign_update(self, sign: Optional[str], probability: float) -> None:
        self._schedule_broadcast({"type": "sign", "sign": sign, "probability": probability})

    def _on_word_resolved(self, word: str) -> None:
        self._schedule_broadcast({"type": "word", "word": word})

    def _schedule_broadcast(self, payload: dict) -> None:
        if not self._clients:
            return
        task = asyncio.get_running_loop().create_task(self.broadcast(payload))
        self._pending_sends.add(task)
        task.add_done_callback(self._pending_sends.discard)

    async def broadcast(self, payload: dict) -> None:
        """Send a payload to every connected client."""
        self._broadcasts += 1
        for client_id, websocket in list(self._clients.items()):
            try:
                await websocket.send_json(payload)
            except Exception as e:
                logger.warning(f"Send to {client_id} failed: {e}")
                self._clients.pop(client_id, None)

    async def serve(self, host: str = "127.0.0.1", port: int = 8765) -> None:
        """Run the server with uvicorn until cancelled."""
        config = uvicorn.Config(
            self.app,
            host=host,
            port=port,
            log_level="info",
            access_log=False,
        )
        server = uvicorn.Server(config)
        logger.info(f"Events server listening on ws://{host}:{port}/events")
        await server.serve()

    def get_stats(self) -> dict:
        """Get server statistics."""
        return {
            "connected_clients": len(self._clients),
            "broadcasts": self._broadcasts,
            "invalid_messages": self._invalid_messages,
        }
