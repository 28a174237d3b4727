"""Socket transport and response correlation against a fake signald."""

import asyncio

import pytest

from signald_rest.correlator import ResponseCorrelator
from signald_rest.errors import TransportError
from signald_rest.models.command import ListGroupsCommand, RegisterCommand
from signald_rest.transport.unix import SocketTransport


@pytest.mark.asyncio
async def test_connect_is_idempotent(daemon):
    transport = SocketTransport(daemon.socket_path)
    assert not transport.connected
    await transport.connect()
    await transport.connect()
    assert transport.connected
    await transport.disconnect()
    assert not transport.connected
    assert daemon.connections == 1


@pytest.mark.asyncio
async def test_disconnect_without_connect_is_safe(daemon):
    transport = SocketTransport(daemon.socket_path)
    await transport.disconnect()
    assert not transport.connected


@pytest.mark.asyncio
async def test_connect_failure_raises_transport_error(socket_dir):
    transport = SocketTransport(str(socket_dir / "missing.sock"))
    with pytest.raises(TransportError):
        await transport.connect()
    assert not transport.connected


@pytest.mark.asyncio
async def test_send_when_disconnected_raises(daemon):
    transport = SocketTransport(daemon.socket_path)
    with pytest.raises(TransportError):
        await transport.send(RegisterCommand(username="+1"))


@pytest.mark.asyncio
async def test_send_writes_one_json_line(daemon):
    daemon.responder = lambda command: []
    transport = SocketTransport(daemon.socket_path)
    await transport.connect()
    command = RegisterCommand(username="+15551234567", voice=True)
    request_id = await transport.send(command)
    await daemon.wait_for_commands(1)
    await transport.disconnect()

    assert request_id == command.id
    assert daemon.commands == [{"type": "register", "id": command.id, "username": "+15551234567", "voice": True}]


@pytest.mark.asyncio
async def test_request_returns_matching_reply(daemon):
    daemon.responder = lambda command: [
        {"type": "version", "data": {"version": "0.x"}},
        {"id": "someone-else", "type": "group_list", "data": {}},
        {"id": command["id"], "type": "group_list", "data": {"groups": []}},
    ]
    transport = SocketTransport(daemon.socket_path)
    correlator = ResponseCorrelator(transport)
    await transport.connect()
    frame = await correlator.request(ListGroupsCommand(username="+1"), timeout=2)
    await transport.disconnect()

    assert frame.type == "group_list"
    assert frame.data == {"groups": []}
    assert correlator.pending == 0


@pytest.mark.asyncio
async def test_concurrent_requests_are_correlated_by_id(daemon):
    pending = []

    def hold(command):
        pending.append(command)
        if len(pending) < 2:
            return []
        # answer both, in reverse order
        return [{"id": c["id"], "type": "ok", "data": {"user": c["username"]}} for c in reversed(pending)]

    daemon.responder = hold
    transport = SocketTransport(daemon.socket_path)
    correlator = ResponseCorrelator(transport)
    await transport.connect()
    first, second = await asyncio.gather(
        correlator.request(ListGroupsCommand(username="+1"), timeout=2),
        correlator.request(ListGroupsCommand(username="+2"), timeout=2),
    )
    await transport.disconnect()

    assert first.data == {"user": "+1"}
    assert second.data == {"user": "+2"}


@pytest.mark.asyncio
async def test_malformed_frame_does_not_stop_read_loop(daemon, caplog):
    daemon.responder = lambda command: [b"{this is not json", {"id": command["id"], "type": "ok"}]
    transport = SocketTransport(daemon.socket_path)
    correlator = ResponseCorrelator(transport)
    await transport.connect()
    frame = await correlator.request(ListGroupsCommand(username="+1"), timeout=2)
    assert transport.connected
    await transport.disconnect()

    assert frame.type == "ok"
    assert "Skipping frame" in caplog.text


@pytest.mark.asyncio
async def test_request_timeout(daemon):
    daemon.responder = lambda command: []
    transport = SocketTransport(daemon.socket_path)
    correlator = ResponseCorrelator(transport)
    await transport.connect()
    with pytest.raises(TimeoutError):
        await correlator.request(ListGroupsCommand(username="+1"), timeout=0.1)
    assert correlator.pending == 0
    await transport.disconnect()


@pytest.mark.asyncio
async def test_daemon_hangup_fails_waiters(daemon):
    daemon.responder = lambda command: []
    transport = SocketTransport(daemon.socket_path)
    correlator = ResponseCorrelator(transport)
    await transport.connect()

    waiter = asyncio.ensure_future(correlator.request(ListGroupsCommand(username="+1")))
    await daemon.wait_for_commands(1)
    await daemon.drop_connections()

    with pytest.raises(TransportError):
        await asyncio.wait_for(waiter, 2)
    assert not transport.connected


@pytest.mark.asyncio
async def test_local_disconnect_fails_waiters_and_subscriptions(daemon):
    daemon.responder = lambda command: []
    transport = SocketTransport(daemon.socket_path)
    correlator = ResponseCorrelator(transport)
    await transport.connect()
    subscription = correlator.subscribe()

    waiter = asyncio.ensure_future(correlator.request(ListGroupsCommand(username="+1")))
    await daemon.wait_for_commands(1)
    await transport.disconnect()

    with pytest.raises(TransportError):
        await asyncio.wait_for(waiter, 2)
    with pytest.raises(TransportError):
        await asyncio.wait_for(subscription.next(), 2)


@pytest.mark.asyncio
async def test_reconnect_after_disconnect(daemon):
    transport = SocketTransport(daemon.socket_path)
    correlator = ResponseCorrelator(transport)
    await transport.connect()
    await transport.disconnect()
    await transport.connect()
    frame = await correlator.request(ListGroupsCommand(username="+1"), timeout=2)
    await transport.disconnect()
    assert frame.type == "list_groups"
    assert daemon.connections == 2


@pytest.mark.asyncio
async def test_subscription_gets_uncorrelated_frames_in_order(daemon):
    daemon.responder = lambda command: []
    transport = SocketTransport(daemon.socket_path)
    correlator = ResponseCorrelator(transport)
    await transport.connect()

    with correlator.subscribe() as first, correlator.subscribe(lambda f: f.type != "skip") as second:
        await transport.send(ListGroupsCommand(username="+1"))
        await daemon.wait_for_commands(1)
        await daemon.push(
            {"type": "message", "data": {"n": 1}},
            {"type": "skip"},
            {"type": "message", "data": {"n": 2}},
        )
        got_first = [await asyncio.wait_for(first.next(), 2) for _ in range(3)]
        got_second = [await asyncio.wait_for(second.next(), 2) for _ in range(2)]

    assert [f.type for f in got_first] == ["message", "skip", "message"]
    assert [f.data for f in got_second] == [{"n": 1}, {"n": 2}]
    assert transport.connected
    await transport.disconnect()
