"""Tests for the notification dispatcher."""

from unittest.mock import AsyncMock

import pytest

from essay_arena.realtime.connection import LiveConnection
from essay_arena.realtime.notifier import NotificationDispatcher


@pytest.fixture()
def dispatcher(registry) -> NotificationDispatcher:
    return NotificationDispatcher(registry)


@pytest.fixture()
def bob_socket(registry, make_websocket) -> AsyncMock:
    websocket = make_websocket()
    connection = LiveConnection(websocket, registry)
    registry.register(connection, "ESSAY1", "bob")
    connection.project_code = "ESSAY1"
    connection.user_name_norm = "bob"
    return websocket


@pytest.mark.asyncio
async def test_incoming_attack_payload(dispatcher, bob_socket, sent_events) -> None:
    delivered = await dispatcher.notify_attack("ESSAY1", "bob", 42, 15000)

    assert delivered is True
    assert sent_events(bob_socket) == [
        {"type": "incoming_attack", "attackId": 42, "expiresInMs": 15000}
    ]


@pytest.mark.asyncio
async def test_token_update_payload(dispatcher, bob_socket, sent_events) -> None:
    tokens = {"reviewTokens": 2, "attackTokens": 0, "shieldTokens": 1}

    await dispatcher.notify_token_update("ESSAY1", "bob", tokens)

    assert sent_events(bob_socket) == [{"type": "token_update", "tokens": tokens}]


@pytest.mark.asyncio
async def test_attack_result_merges_outcome(dispatcher, bob_socket, sent_events) -> None:
    await dispatcher.notify_attack_result(
        "ESSAY1", "bob", {"attackId": 1, "status": "defended", "defended": True}
    )

    assert sent_events(bob_socket) == [
        {"type": "attack_result", "attackId": 1, "status": "defended", "defended": True}
    ]


@pytest.mark.asyncio
async def test_unreachable_player_returns_false(dispatcher) -> None:
    assert await dispatcher.notify_attack("ESSAY1", "ghost", 1, 15000) is False


@pytest.mark.asyncio
async def test_registry_failure_is_logged_not_raised(registry, mocker) -> None:
    mocker.patch.object(registry, "send", AsyncMock(side_effect=RuntimeError("boom")))
    dispatcher = NotificationDispatcher(registry)

    assert await dispatcher.notify_token_update("ESSAY1", "bob", {}) is False
