from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import asdict
from typing import Any, Callable, Dict, List, Optional, Tuple

import websockets
from websockets.asyncio.server import ServerConnection

from drawpoker.errors import PokerError
from drawpoker.game import GameEngine
from drawpoker.models import TableConfig

LOGGER = logging.getLogger("table_host")

# HostServer glues one GameEngine to a single controlling WebSocket client, a
# UI or script that relays every seat's decisions. Sockets and JSON live here;
# the engine stays pure.

Reply = Tuple[str, Dict[str, Any]]


class ProtocolError(PokerError):
    code = "BAD_SCHEMA"


def _require_str(message: Dict[str, Any], key: str) -> str:
    value = message.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ProtocolError(f"{key} required")
    return value.strip()


def _optional_int(message: Dict[str, Any], key: str) -> Optional[int]:
    value = message.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ProtocolError(f"{key} must be an integer")
    return value


class HostServer:
    def __init__(self, config: TableConfig, seed: Optional[int] = None) -> None:
        self.config = config
        self.seed = seed
        self.engine: Optional[GameEngine] = None
        self.controller: Optional[ServerConnection] = None
        self.lock = asyncio.Lock()
        self._handlers: Dict[str, Callable[[Dict[str, Any]], List[Reply]]] = {
            "hello": self._on_hello,
            "action": self._on_action,
            "discard": self._on_discard,
            "next_hand": self._on_next_hand,
            "state": self._on_state,
        }

    async def start(self, host: str = "127.0.0.1", port: int = 8765) -> None:
        async with websockets.serve(self._handle_connection, host, port):
            LOGGER.info("Table host listening on %s:%s", host, port)
            await asyncio.Future()

    async def _handle_connection(self, websocket: ServerConnection) -> None:
        if self.controller is not None:
            LOGGER.info("Rejected second controller")
            await self._send_error(websocket, "TABLE_BUSY", "Table already has a controller")
            await websocket.close()
            return

        self.controller = websocket
        LOGGER.info("Controller connected")
        try:
            async for raw in websocket:
                await self._handle_message(websocket, raw)
        except websockets.ConnectionClosed:
            pass
        finally:
            # Losing the controller abandons the session.
            self.controller = None
            self.engine = None
            LOGGER.info("Controller disconnected")

    async def _handle_message(self, websocket: ServerConnection, raw: Any) -> None:
        message = self._decode(raw)
        if message is None:
            await self._send_error(websocket, "BAD_JSON", "Message must be a JSON object")
            return
        msg_type = message.get("type")
        handler = self._handlers.get(msg_type) if isinstance(msg_type, str) else None
        if handler is None:
            await self._send_error(websocket, "UNKNOWN_TYPE", "Unsupported message type")
            return

        try:
            async with self.lock:
                replies = handler(message)
        except PokerError as exc:
            await self._send_error(websocket, exc.code, exc.msg)
            return
        except ValueError as exc:
            await self._send_error(websocket, "BAD_REQUEST", str(exc))
            return
        except Exception:  # noqa: BLE001
            LOGGER.exception("Failed to handle %s message", message.get("type"))
            await self._send_error(websocket, "INTERNAL_ERROR", "Unexpected server error")
            return

        for msg_type, payload in replies:
            await self._send_json(websocket, msg_type, payload)

    # Message handlers ------------------------------------------------

    def _require_engine(self) -> GameEngine:
        if self.engine is None:
            raise ProtocolError("Send hello first")
        return self.engine

    def _seed_for(self, engine: GameEngine) -> Optional[int]:
        if self.seed is None:
            return None
        return self.seed + engine.hand_counter

    def _on_hello(self, message: Dict[str, Any]) -> List[Reply]:
        players = message.get("players")
        if not isinstance(players, list) or not all(isinstance(name, str) and name.strip() for name in players):
            raise ProtocolError("players must be a list of names")

        engine = GameEngine([name.strip() for name in players], config=self.config)
        engine.start_hand(seed=self._seed_for(engine))
        self.engine = engine
        LOGGER.info("Session started with %s players", len(players))
        return [
            ("welcome", {"config": asdict(self.config), "players": [seat.player_id for seat in engine.seats]}),
            ("state", {"events": engine.consume_pre_events(), **engine.public_state()}),
        ]

    def _on_action(self, message: Dict[str, Any]) -> List[Reply]:
        engine = self._require_engine()
        player = _require_str(message, "player")
        state = engine.act(player, _require_str(message, "action"), _optional_int(message, "amount"))
        return [("state", state)]

    def _on_discard(self, message: Dict[str, Any]) -> List[Reply]:
        engine = self._require_engine()
        player = _require_str(message, "player")
        indices = message.get("indices", [])
        if not isinstance(indices, list) or any(isinstance(idx, bool) or not isinstance(idx, int) for idx in indices):
            raise ProtocolError("indices must be a list of integers")
        return [("state", engine.discard(player, indices))]

    def _on_next_hand(self, message: Dict[str, Any]) -> List[Reply]:
        engine = self._require_engine()
        if engine.is_session_over():
            return [("session_end", engine.session_result_payload())]
        engine.start_hand(seed=self._seed_for(engine))
        return [("state", {"events": engine.consume_pre_events(), **engine.public_state()})]

    def _on_state(self, message: Dict[str, Any]) -> List[Reply]:
        engine = self._require_engine()
        viewer = message.get("viewer")
        return [("state", {"events": [], **engine.public_state(viewer if isinstance(viewer, str) else None)})]

    # Wire helpers ----------------------------------------------------

    @staticmethod
    def _decode(raw: Any) -> Optional[Dict[str, Any]]:
        try:
            message = json.loads(raw)
        except (TypeError, ValueError):
            return None
        return message if isinstance(message, dict) else None

    async def _send_json(self, websocket: ServerConnection, msg_type: str, payload: Dict[str, Any]) -> None:
        await websocket.send(json.dumps({"v": 1, "type": msg_type, **payload}))

    async def _send_error(self, websocket: ServerConnection, code: str, msg: str) -> None:
        await self._send_json(websocket, "error", {"code": code, "msg": msg})
