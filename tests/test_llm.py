from types import SimpleNamespace

import pytest

from recruitbot.core.config import LLMConfig
from recruitbot.core.exceptions import RateLimitError
from recruitbot.core.states import ConversationState as S
from recruitbot.services.llm import MockTextGenerator, TextGenerator

FAST = LLMConfig(max_retries=2, retry_min_seconds=0, retry_max_seconds=0)


class FakeCompletions:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.requests = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=outcome))])


def _generator(outcomes):
    completions = FakeCompletions(outcomes)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return TextGenerator(client=client, config=FAST), completions


async def test_generate_builds_messages():
    generator, completions = _generator(["  ¡Hola!  "])
    history = [{"role": "assistant", "content": "Bienvenido"}, {"role": "user", "content": "Hola"}]

    reply = await generator.generate("Eres LIAH", history, "Hola", S.INITIAL)

    assert reply == "¡Hola!"
    messages = completions.requests[0]["messages"]
    assert messages[0]["role"] == "system"
    assert messages[0]["content"].startswith("Eres LIAH")
    # Current message already closes the history, so it is not sent twice
    assert [m["content"] for m in messages[1:]] == ["Bienvenido", "Hola"]


async def test_generate_appends_message_missing_from_history():
    generator, completions = _generator(["ok"])
    await generator.generate("prompt", [], "Hola")
    assert completions.requests[0]["messages"][-1] == {"role": "user", "content": "Hola"}


async def test_rate_limit_is_retried():
    generator, completions = _generator([Exception("429 RESOURCE_EXHAUSTED"), "Listo"])
    assert await generator.generate("prompt", [], "Hola") == "Listo"
    assert len(completions.requests) == 2


async def test_rate_limit_gives_up_after_max_retries():
    generator, completions = _generator([Exception("quota exceeded")] * 3)
    with pytest.raises(RateLimitError):
        await generator.generate("prompt", [], "Hola")
    assert len(completions.requests) == 3


async def test_other_errors_are_not_retried():
    generator, completions = _generator([ValueError("bad request")])
    with pytest.raises(ValueError):
        await generator.generate("prompt", [], "Hola")
    assert len(completions.requests) == 1


@pytest.mark.parametrize("message,accepted", [("Sí", True), ("acepto", True), ("no, gracias", False)])
async def test_mock_generator_terms(message, accepted):
    reply = await MockTextGenerator().generate("", [], message, S.TERMS)
    assert ("nombre completo" in reply) is accepted


async def test_mock_generator_has_reply_for_every_state():
    generator = MockTextGenerator()
    for state in S:
        assert await generator.generate("", [], "hola", state)
