import asyncio
import json

import pytest
from pydantic import ValidationError

from gonzaapp.services.broadcast import Broadcaster, BroadcastMessage


async def _next(gen, timeout=1.0):
    return await asyncio.wait_for(gen.__anext__(), timeout)


@pytest.mark.asyncio
async def test_fan_out_to_every_client():
    b = Broadcaster(keepalive=5)
    s1, s2 = b.subscribe("uno"), b.subscribe("dos")
    assert await _next(s1) == ": conectado\n\n"
    assert await _next(s2) == ": conectado\n\n"
    assert b.client_count == 2

    assert b.publish({"type": "DELETE", "data": ["a", "b"]}) == 2
    for s in (s1, s2):
        frame = await _next(s)
        assert frame.startswith("data: ") and frame.endswith("\n\n")
        assert json.loads(frame[len("data: "):]) == {"type": "DELETE", "data": ["a", "b"]}

    await s1.aclose()
    await s2.aclose()


@pytest.mark.asyncio
async def test_disconnect_removes_client():
    b = Broadcaster(keepalive=5)
    s = b.subscribe()
    await _next(s)
    assert b.client_count == 1
    await s.aclose()
    assert b.client_count == 0
    assert b.publish(BroadcastMessage(type="UPDATE", data=[])) == 0


@pytest.mark.asyncio
async def test_keepalive_comment():
    b = Broadcaster(keepalive=0.01)
    s = b.subscribe()
    await _next(s)
    assert await _next(s) == ": ping\n\n"
    await s.aclose()


def test_invalid_message_type():
    with pytest.raises(ValidationError):
        Broadcaster().publish({"type": "OTRO", "data": None})
