"""Tests for provider selection in the LLM gateway"""

import pytest

from studyplan.llm import LLMGateway, LLMMessage, MessageRole, NoProviderAvailable
from tests.conftest import FakeLLM

MESSAGES = [LLMMessage(role=MessageRole.USER, content="Plan my week.")]


class OfflineLLM(FakeLLM):
    provider_name = "offline"

    async def is_available(self):
        return False


@pytest.mark.asyncio
async def test_fallback_moves_to_next_provider():
    primary = FakeLLM(RuntimeError("rate limited"))
    backup = FakeLLM('{"ok": true}')
    gateway = LLMGateway(clients=[primary, backup])

    response = await gateway.chat(MESSAGES)

    assert response.content == '{"ok": true}'
    assert len(primary.calls) == 1 and len(backup.calls) == 1


@pytest.mark.asyncio
async def test_without_fallback_exactly_one_request_is_made():
    primary = FakeLLM(RuntimeError("rate limited"))
    backup = FakeLLM('{"ok": true}')
    gateway = LLMGateway(clients=[primary, backup])

    with pytest.raises(RuntimeError, match="rate limited"):
        await gateway.chat(MESSAGES, allow_fallback=False)

    assert len(primary.calls) == 1
    assert backup.calls == []


@pytest.mark.asyncio
async def test_failed_call_without_fallback_can_be_retried():
    provider = FakeLLM(RuntimeError("transient 503"), '{"ok": true}')
    gateway = LLMGateway(clients=[provider])

    with pytest.raises(RuntimeError, match="transient 503"):
        await gateway.chat(MESSAGES, allow_fallback=False)

    response = await gateway.chat(MESSAGES, allow_fallback=False)

    assert response.content == '{"ok": true}'
    assert len(provider.calls) == 2


@pytest.mark.asyncio
async def test_unavailable_providers_are_skipped():
    backup = FakeLLM("hello")
    gateway = LLMGateway(clients=[OfflineLLM(), backup])

    response = await gateway.chat(MESSAGES, allow_fallback=False)

    assert response.content == "hello"


@pytest.mark.asyncio
async def test_no_available_provider():
    gateway = LLMGateway(clients=[OfflineLLM()])

    with pytest.raises(NoProviderAvailable):
        await gateway.chat(MESSAGES)


@pytest.mark.asyncio
async def test_health_check_reports_each_provider():
    gateway = LLMGateway(clients=[FakeLLM(), OfflineLLM()])

    health = await gateway.health_check()

    assert health == {
        "fake": {"available": True, "model": "fake-model"},
        "offline": {"available": False, "model": None},
    }
