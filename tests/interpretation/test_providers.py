import json

import httpx
import pytest

from app.common.exceptions import LLMError
from app.interpretation.models import InterpretationRequest
from app.interpretation.providers import (
    AnthropicInterpreter,
    GoogleInterpreter,
    OpenAIInterpreter,
    parse_payload,
)

ANSWER = {
    "interpretation": "Glucose is above the reference range.",
    "summary": "Mildly elevated glucose",
    "riskLevel": "MODERATE",
    "confidence": 0.8,
    "recommendations": ["Repeat fasting glucose"],
}


@pytest.fixture
def request_model():
    return InterpretationRequest(
        test_name="Fasting Glucose",
        result_value="115",
        unit="mg/dL",
        reference_range="70-99",
        date_performed="2024-03-01",
    )


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestParsePayload:
    def test_plain_json(self):
        payload = parse_payload(json.dumps(ANSWER), source="test")
        assert payload.risk_level == "MODERATE"
        assert payload.recommendations == ["Repeat fasting glucose"]

    def test_fenced_json(self):
        payload = parse_payload(f"Here you go:\n```json\n{json.dumps(ANSWER)}\n```", source="test")
        assert payload.summary == "Mildly elevated glucose"

    @pytest.mark.parametrize("text", ["", "not json", "[1, 2]"])
    def test_rejects_non_objects(self, text):
        with pytest.raises(LLMError):
            parse_payload(text, source="test")


class TestOpenAI:
    def test_chat_completion(self, request_model):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "choices": [{"message": {"content": json.dumps(ANSWER)}}],
                    "usage": {"total_tokens": 321},
                },
            )

        provider = OpenAIInterpreter("sk-test", client=_client(handler))
        response = provider.interpret(request_model)

        assert seen["url"] == "https://api.openai.com/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"]["model"] == "gpt-4o"
        assert seen["body"]["response_format"] == {"type": "json_object"}
        assert "Result Value: 115 mg/dL" in seen["body"]["messages"][1]["content"]
        assert response.model == "gpt-4o"
        assert response.token_usage == 321
        assert response.payload.summary == "Mildly elevated glucose"

    def test_missing_key(self):
        with pytest.raises(LLMError, match="OPENAI_API_KEY"):
            OpenAIInterpreter("")

    def test_client_error_is_not_retried(self, request_model):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(400, json={"error": {"message": "bad request"}})

        provider = OpenAIInterpreter("sk-test", client=_client(handler), max_attempts=3)
        with pytest.raises(LLMError, match="status=400"):
            provider.interpret(request_model)
        assert len(calls) == 1

    def test_rate_limit_is_retried(self, request_model):
        responses = [
            httpx.Response(429, headers={"Retry-After": "0"}, json={"error": "slow down"}),
            httpx.Response(200, json={"choices": [{"message": {"content": json.dumps(ANSWER)}}]}),
        ]

        def handler(request: httpx.Request) -> httpx.Response:
            return responses.pop(0)

        provider = OpenAIInterpreter("sk-test", client=_client(handler), max_attempts=2)
        response = provider.interpret(request_model)

        assert response.payload.risk_level == "MODERATE"
        assert responses == []

    def test_base_url_with_v1_suffix(self):
        provider = OpenAIInterpreter("sk-test", base_url="https://proxy.local/v1/")
        assert provider.base_url == "https://proxy.local"


class TestAnthropic:
    def test_messages_with_fenced_reply(self, request_model):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "content": [{"type": "text", "text": f"```json\n{json.dumps(ANSWER)}\n```"}],
                    "usage": {"input_tokens": 100, "output_tokens": 50},
                },
            )

        provider = AnthropicInterpreter("ak-test", client=_client(handler))
        response = provider.interpret(request_model)

        assert seen["url"] == "https://api.anthropic.com/v1/messages"
        assert seen["headers"]["x-api-key"] == "ak-test"
        assert seen["headers"]["anthropic-version"] == "2023-06-01"
        assert seen["body"]["system"]
        assert response.token_usage == 150
        assert response.payload.confidence == 0.8

    def test_empty_content(self, request_model):
        provider = AnthropicInterpreter(
            "ak-test", client=_client(lambda request: httpx.Response(200, json={"content": []}))
        )
        with pytest.raises(LLMError, match="Empty response"):
            provider.interpret(request_model)


class TestGoogle:
    def test_falls_back_to_next_model(self, request_model):
        urls = []

        def handler(request: httpx.Request) -> httpx.Response:
            urls.append(str(request.url))
            assert request.headers["x-goog-api-key"] == "gk-test"
            if "gemini-a" in str(request.url):
                return httpx.Response(404, json={"error": {"message": "model not found"}})
            return httpx.Response(
                200,
                json={
                    "candidates": [{"content": {"parts": [{"text": json.dumps(ANSWER)}]}}],
                    "usageMetadata": {"totalTokenCount": 77},
                },
            )

        provider = GoogleInterpreter("gk-test", ["gemini-a", "gemini-b"], client=_client(handler))
        response = provider.interpret(request_model)

        assert [url.rsplit("/", 1)[-1] for url in urls] == [
            "gemini-a:generateContent",
            "gemini-b:generateContent",
        ]
        assert all("key=" not in url for url in urls)
        assert response.model == "gemini-b"
        assert response.token_usage == 77

    def test_all_models_fail(self, request_model):
        provider = GoogleInterpreter(
            "gk-test",
            ["gemini-a", "gemini-b"],
            client=_client(lambda request: httpx.Response(403, json={"error": {"message": "denied"}})),
        )
        with pytest.raises(LLMError, match="tried gemini-a, gemini-b"):
            provider.interpret(request_model)


class TestMalformedBodies:
    def test_anthropic_non_text_block(self, request_model):
        body = {"content": [{"type": "text", "text": {"nested": True}}], "usage": "none"}
        provider = AnthropicInterpreter(
            "ak-test", client=_client(lambda request: httpx.Response(200, json=body))
        )
        with pytest.raises(LLMError, match="Non-text response"):
            provider.interpret(request_model)

    def test_google_candidates_wrong_shape(self, request_model):
        body = {"candidates": [{"content": "text"}], "usageMetadata": {"totalTokenCount": "x"}}
        provider = GoogleInterpreter(
            "gk-test", ["gemini-a"], client=_client(lambda request: httpx.Response(200, json=body))
        )
        with pytest.raises(LLMError, match="tried gemini-a"):
            provider.interpret(request_model)

    def test_string_token_counts_are_parsed(self, request_model):
        body = {
            "content": [{"type": "text", "text": json.dumps(ANSWER)}],
            "usage": {"input_tokens": "12", "output_tokens": 3},
        }
        provider = AnthropicInterpreter(
            "ak-test", client=_client(lambda request: httpx.Response(200, json=body))
        )
        assert provider.interpret(request_model).token_usage == 15
