from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from autocity.advisory import (
    AdvisoryResponseError,
    ChatCompletionsAdvisoryClient,
    OfflineAdvisoryClient,
    build_analysis_prompt,
    extract_priorities,
    fallback_analysis,
    parse_advisory_content,
)
from autocity.models import CityAnalysis, DevelopmentStage, Needs


def _analysis(**overrides) -> CityAnalysis:
    values = {
        "population": 10,
        "money": 5_000,
        "happiness": 60,
        "power_balance": 30,
        "net_income": 12,
        "building_counts": {"residential": 1, "road": 2},
        "needs": Needs(),
        "development_stage": DevelopmentStage.EARLY,
        "available_budget": 4_000,
    }
    values.update(overrides)
    return CityAnalysis(**values)


def _completion(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def _client(handler, api_key: str | None = "secret") -> ChatCompletionsAdvisoryClient:
    return ChatCompletionsAdvisoryClient(
        base_url="https://advisory.test/v1",
        api_key=api_key,
        model="test-model",
        timeout_seconds=1,
        transport=httpx.MockTransport(handler),
    )


def test_parse_json_embedded_in_prose() -> None:
    text = 'Here you go: {"analysis": "ok", "priorities": ["Power", "road"], "suggestions": "s", "risks": "r"}'

    result = parse_advisory_content(text)

    assert result.succeeded is True
    assert result.priorities == ["power", "road"]
    assert result.analysis == "ok"
    assert result.raw_response == text


def test_parse_falls_back_to_keywords_when_priorities_missing() -> None:
    text = '{"analysis": "Build more housing and a school", "priorities": "n/a"}'

    result = parse_advisory_content(text)

    assert result.priorities == ["residential", "school"]
    assert result.suggestions == "Recommendations pending."


def test_parse_rejects_reply_without_json() -> None:
    with pytest.raises(AdvisoryResponseError):
        parse_advisory_content("I would build more parks.")

    with pytest.raises(AdvisoryResponseError):
        parse_advisory_content("{not json}")


def test_keyword_extraction_is_distinct_and_capped() -> None:
    assert extract_priorities("Roads, housing, residential blocks, power and parks") == [
        "road",
        "residential",
        "power",
    ]
    assert extract_priorities("nothing useful") == []


def test_fallback_analysis_picks_most_pressing_issue() -> None:
    power = fallback_analysis(_analysis(power_balance=-1))
    unhappy = fallback_analysis(_analysis(happiness=30))
    crowded = fallback_analysis(_analysis(population=10, building_counts={"residential": 1}))

    assert power.succeeded is False
    assert power.priorities == ["power", "road", "commercial"]
    assert unhappy.priorities[0] == "park"
    assert crowded.priorities[0] == "residential"
    assert crowded.raw_response == "local analysis"


def test_prompt_lists_city_figures() -> None:
    prompt = build_analysis_prompt(_analysis())

    assert "Population: 10" in prompt
    assert "- residential: 1" in prompt
    assert "Available budget: $4000" in prompt
    assert '"priorities"' in prompt


def test_client_parses_successful_completion() -> None:
    requests: list[httpx.Request] = []
    reply = json.dumps({"analysis": "grow", "priorities": ["residential", "power"], "suggestions": "houses"})

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=_completion(reply))

    result = asyncio.run(_client(handler).analyze(_analysis()))

    assert result.succeeded is True
    assert result.priorities == ["residential", "power"]
    assert requests[0].url.path == "/v1/chat/completions"
    assert requests[0].headers["Authorization"] == "Bearer secret"
    body = json.loads(requests[0].content)
    assert body["model"] == "test-model"
    assert body["messages"][1]["role"] == "user"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"error": "down"}),
        httpx.Response(200, json=_completion("I cannot help with that.")),
        httpx.Response(200, json={"unexpected": True}),
        httpx.Response(200, text="<html>gateway</html>"),
    ],
)
def test_client_falls_back_on_bad_replies(response: httpx.Response) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return response

    result = asyncio.run(_client(handler).analyze(_analysis(power_balance=-10)))

    assert result.succeeded is False
    assert result.priorities[0] == "power"


def test_client_falls_back_on_timeout() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow upstream", request=request)

    result = asyncio.run(_client(handler).analyze(_analysis()))

    assert result.succeeded is False


def test_unconfigured_client_never_calls_out() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=_completion("{}"))

    client = _client(handler, api_key=None)
    result = asyncio.run(client.analyze(_analysis()))
    check = asyncio.run(client.test_connection())

    assert client.configured is False
    assert result.succeeded is False
    assert check.succeeded is False
    assert check.detail == "advisory API key is not configured"
    assert calls == []


def test_connection_check_returns_reply_text() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_completion("Hello there"))

    check = asyncio.run(_client(handler).test_connection())

    assert check.succeeded is True
    assert check.detail == "Hello there"


def test_connection_check_reports_http_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": "bad key"})

    check = asyncio.run(_client(handler).test_connection())

    assert check.succeeded is False
    assert "HTTPStatusError" in check.detail


def test_offline_client_always_uses_local_analysis() -> None:
    client = OfflineAdvisoryClient()

    result = asyncio.run(client.analyze(_analysis()))
    check = asyncio.run(client.test_connection())

    assert result.succeeded is False
    assert check.succeeded is False


def test_client_setup_errors_degrade_to_fallback() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_completion("{}"))

    client = _client(handler, api_key="clé")

    result = asyncio.run(client.analyze(_analysis()))
    check = asyncio.run(client.test_connection())

    assert result.succeeded is False
    assert result.raw_response == "local analysis"
    assert check.succeeded is False
    assert "UnicodeEncodeError" in check.detail
