import pytest
from tenacity import wait_none

from lexcanada.services.llm_client import (
    LLMClient,
    LLMProvider,
    LLMResponseError,
    LLMUnavailableError,
    as_string_list,
    normalize_messages,
    parse_json_response,
)


class FakeProvider(LLMProvider):
    def __init__(self, name, replies=None, api_key="key"):
        super().__init__(api_key, model=f"{name}-model")
        self.name = name
        self.replies = list(replies or [])
        self.calls = []

    def complete(self, system, messages, max_tokens, temperature, json_mode):
        self.calls.append({"system": system, "messages": messages, "json_mode": json_mode})
        reply = self.replies.pop(0) if self.replies else "ok"
        if isinstance(reply, Exception):
            raise reply
        return reply


def make_client(*providers, max_attempts=2):
    return LLMClient(list(providers), max_attempts=max_attempts, wait=wait_none())


class TestNormalizeMessages:
    def test_merges_consecutive_turns(self):
        result = normalize_messages([
            {"role": "user", "content": "Hello"},
            {"role": "user", "content": "Are you there?"},
            {"role": "ai", "content": "Yes."},
        ])

        assert result == [
            {"role": "user", "content": "Hello\n\nAre you there?"},
            {"role": "assistant", "content": "Yes."},
        ]

    def test_opens_with_user_turn(self):
        result = normalize_messages([{"role": "assistant", "content": "Welcome"}, {"role": "user", "content": "Hi"}])

        assert result[0] == {"role": "user", "content": "(conversation start)"}
        assert [m["role"] for m in result] == ["user", "assistant", "user"]

    def test_drops_blank_and_maps_other_roles(self):
        result = normalize_messages([{"role": "mediator", "content": "  "}, {"role": "system", "content": "Note"}])

        assert result == [{"role": "user", "content": "Note"}]


class TestParseJsonResponse:
    def test_plain_object(self):
        assert parse_json_response('{"score": 70}') == {"score": 70}

    def test_code_fence(self):
        assert parse_json_response('```json\n{"score": 70}\n```') == {"score": 70}

    def test_object_in_prose(self):
        assert parse_json_response('Here is the analysis: {"score": 70} Hope it helps.') == {"score": 70}

    @pytest.mark.parametrize("text", ["no json here", "[1, 2, 3]", "{broken"])
    def test_unreadable(self, text):
        with pytest.raises(LLMResponseError):
            parse_json_response(text)


class TestAsStringList:
    @pytest.mark.parametrize("value,expected", [
        (["a", 2], ["a", "2"]),
        ("Sign a settlement", ["Sign a settlement"]),
        ("  ", []),
        (None, []),
        ({"x": 1}, []),
    ])
    def test_coercion(self, value, expected):
        assert as_string_list(value) == expected


class TestLLMClient:
    def test_no_configured_provider(self):
        client = make_client(FakeProvider("openai", api_key=""))

        assert not client.is_available()
        with pytest.raises(LLMUnavailableError):
            client.complete("system", [{"role": "user", "content": "Hi"}])

    def test_default_order_prefers_deepseek(self):
        openai = FakeProvider("openai", ["from openai"])
        deepseek = FakeProvider("deepseek", ["from deepseek"])
        client = make_client(openai, deepseek)

        completion = client.complete("system", [{"role": "user", "content": "Hi"}])

        assert completion.provider == "deepseek"
        assert completion.text == "from deepseek"
        assert openai.calls == []

    def test_preferred_provider_goes_first(self):
        deepseek = FakeProvider("deepseek")
        anthropic = FakeProvider("anthropic", ["from anthropic"])
        client = make_client(deepseek, anthropic)

        assert client.complete("s", [{"role": "user", "content": "Hi"}], prefer=["anthropic"]).provider == "anthropic"

    def test_retries_then_succeeds(self):
        deepseek = FakeProvider("deepseek", [RuntimeError("timeout"), "second try"])
        client = make_client(deepseek)

        assert client.complete("s", [{"role": "user", "content": "Hi"}]).text == "second try"
        assert len(deepseek.calls) == 2

    def test_falls_back_after_retries(self):
        deepseek = FakeProvider("deepseek", [RuntimeError("down"), RuntimeError("down")])
        gemini = FakeProvider("gemini", ["from gemini"])
        client = make_client(deepseek, gemini)

        completion = client.complete("s", [{"role": "user", "content": "Hi"}])

        assert completion.provider == "gemini"
        assert len(deepseek.calls) == 2

    def test_empty_reply_moves_on(self):
        client = make_client(FakeProvider("deepseek", ["   "]), FakeProvider("openai", ["from openai"]))

        assert client.complete("s", [{"role": "user", "content": "Hi"}]).provider == "openai"

    def test_all_fail(self):
        client = make_client(FakeProvider("deepseek", [RuntimeError("down")] * 2), max_attempts=2)

        with pytest.raises(LLMUnavailableError):
            client.complete("s", [{"role": "user", "content": "Hi"}])

    def test_empty_conversation(self):
        client = make_client(FakeProvider("deepseek"))

        with pytest.raises(LLMResponseError):
            client.complete("s", [{"role": "user", "content": ""}])

    def test_complete_json(self):
        deepseek = FakeProvider("deepseek", ['```json\n{"summary": "ok"}\n```'])
        client = make_client(deepseek)

        assert client.complete_json("s", [{"role": "user", "content": "Analyze"}]) == {"summary": "ok"}
        assert deepseek.calls[0]["json_mode"] is True
