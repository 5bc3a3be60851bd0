"""
Difusion de cambios a los navegadores conectados (Server-Sent Events).

Cada cliente de ``GET /api/broadcast`` tiene su propia cola; ``publish`` puede
llamarse desde el hilo del event loop o desde los hilos del threadpool de las
rutas sincronas.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, AsyncIterator, Literal, Union

from pydantic import BaseModel

logger = logging.getLogger(__name__)

KEEPALIVE_SECONDS = 15.0


class BroadcastMessage(BaseModel):
    type: Literal["UPDATE", "CREATE", "DELETE"]
    data: Any = None


class Broadcaster:
    def __init__(self, keepalive: float = KEEPALIVE_SECONDS):
        self.keepalive = keepalive
        self._subscribers: set[tuple[asyncio.AbstractEventLoop, asyncio.Queue]] = set()
        self._lock = threading.Lock()

    @property
    def client_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def _discard(self, entry) -> None:
        with self._lock:
            self._subscribers.discard(entry)

    def publish(self, message: Union[BroadcastMessage, dict]) -> int:
        """Encola el mensaje para cada cliente; devuelve cuantos lo recibieron."""
        if not isinstance(message, BroadcastMessage):
            message = BroadcastMessage.model_validate(message)
        frame = f"data: {message.model_dump_json()}\n\n"

        with self._lock:
            subscribers = list(self._subscribers)

        delivered = 0
        for entry in subscribers:
            loop, queue = entry
            try:
                loop.call_soon_threadsafe(queue.put_nowait, frame)
                delivered += 1
            except RuntimeError:
                # Event loop cerrado: cliente muerto
                self._discard(entry)
        logger.debug("Broadcast %s a %d clientes", message.type, delivered)
        return delivered

    async def subscribe(self, label: str = "unknown") -> AsyncIterator[str]:
        """Genera frames SSE hasta que el cliente se desconecta."""
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()
        entry = (loop, queue)
        with self._lock:
            self._subscribers.add(entry)
        logger.info("Cliente conectado: %s", label)

        try:
            yield ": conectado\n\n"
            while True:
                try:
                    frame = await asyncio.wait_for(queue.get(), timeout=self.keepalive)
                except asyncio.TimeoutError:
                    yield ": ping\n\n"
                    continue
                yield frame
        finally:
            self._discard(entry)
            logger.info("Cliente desconectado: %s", label)


broadcaster = Broadcaster()


def broadcast_update(type_: str, data: Any) -> None:
    """Aviso de cambios desde las acciones del servidor; nunca interrumpe la accion."""
    try:
        broadcaster.publish(BroadcastMessage(type=type_, data=data))
    except ValueError:
        logger.error("Mensaje de broadcast invalido: %s", type_, exc_info=True)
