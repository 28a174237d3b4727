"""Receive: collect the stream until the batch-complete frame."""

import asyncio

import pytest

from signald_rest.errors import DaemonError
from signald_rest.receive import ReceiveStreamAdapter


def ack_subscribe(command):
    if command["type"] == "subscribe":
        return [{"id": command["id"], "type": "subscribed"}]
    return []


@pytest.mark.asyncio
async def test_receive_collects_until_done(signald, daemon):
    def stream(command):
        if command["type"] != "subscribe":
            return []
        return [
            {"id": command["id"], "type": "subscribed"},
            {"type": "message", "data": {"username": command["username"], "n": 1}},
            {"type": "message", "data": {"username": "+someone-else", "n": 99}},
            {"type": "message", "data": {"username": command["username"], "n": 2}},
            {"type": "message", "done": True},
            {"type": "message", "data": {"username": command["username"], "n": 3}},
        ]

    daemon.responder = stream
    batch = await ReceiveStreamAdapter(signald).receive("+1", timeout=2)

    assert daemon.commands == [{"type": "subscribe", "id": daemon.commands[0]["id"], "username": "+1"}]
    assert [f.data.get("n") if f.data else None for f in batch] == [1, 2, None]
    assert batch[-1].done is True
    assert not any(f.done for f in batch[:-1])
    assert signald.connected
    assert signald.correlator.pending == 0


@pytest.mark.asyncio
async def test_receive_waits_for_completion(signald, daemon):
    daemon.responder = ack_subscribe
    task = asyncio.ensure_future(ReceiveStreamAdapter(signald).receive("+1"))
    await daemon.wait_for_commands(1)

    await daemon.push({"type": "message", "data": {"n": 1}})
    await asyncio.sleep(0.05)
    assert not task.done()

    await daemon.push({"type": "message", "data": {"n": 2}, "done": True})
    batch = await asyncio.wait_for(task, 2)
    assert [f.data["n"] for f in batch] == [1, 2]


@pytest.mark.asyncio
async def test_receive_timeout(signald, daemon):
    daemon.responder = ack_subscribe
    with pytest.raises(TimeoutError):
        await ReceiveStreamAdapter(signald).receive("+1", timeout=0.1)
    assert signald.correlator.pending == 0


@pytest.mark.asyncio
async def test_rejected_subscribe_raises(signald, daemon):
    daemon.responder = lambda command: [{"id": command["id"], "type": "unexpected_error", "data": {"message": "unknown user"}}]
    with pytest.raises(DaemonError, match="unknown user"):
        await ReceiveStreamAdapter(signald).receive("+1", timeout=2)


@pytest.mark.asyncio
async def test_concurrent_receives_keep_their_own_batches(signald, daemon):
    daemon.responder = ack_subscribe
    receiver = ReceiveStreamAdapter(signald)
    first = asyncio.ensure_future(receiver.receive("+1"))
    await daemon.wait_for_commands(1)
    second = asyncio.ensure_future(receiver.receive("+2"))
    await daemon.wait_for_commands(2)
    await asyncio.sleep(0.05)

    await daemon.push({"type": "message", "data": {"username": "+1"}, "done": True})
    batch_one = await asyncio.wait_for(first, 2)
    assert [(f.type, f.id) for f in batch_one] == [("message", None)]
    assert not second.done()

    await daemon.push({"type": "message", "data": {"username": "+2", "n": 7}, "done": True})
    batch_two = await asyncio.wait_for(second, 2)
    assert [(f.type, f.data["n"]) for f in batch_two] == [("message", 7)]


@pytest.mark.asyncio
async def test_receive_does_not_steal_correlated_replies(signald, daemon):
    def respond(command):
        if command["type"] == "subscribe":
            return ack_subscribe(command)
        return [{"id": command["id"], "type": "group_list", "data": {"groups": []}}]

    daemon.responder = respond
    task = asyncio.ensure_future(ReceiveStreamAdapter(signald).receive("+1"))
    await daemon.wait_for_commands(1)

    assert await signald.list_groups("+1") == []
    await daemon.push({"type": "message", "done": True})
    batch = await asyncio.wait_for(task, 2)
    assert [f.type for f in batch] == ["message"]
