"""Advisory clients consulted by the planner for an external city analysis."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from autocity.models import AdvisoryResult, CityAnalysis, ConnectionCheck

from .parsing import SYSTEM_PROMPT, AdvisoryResponseError, build_analysis_prompt, fallback_analysis, parse_advisory_content


class AdvisoryClient(Protocol):
    """External analysis capability; every failure must degrade to ``succeeded=False``."""

    async def test_connection(self) -> ConnectionCheck:
        """Check that the advisory backend answers."""

    async def analyze(self, analysis: CityAnalysis) -> AdvisoryResult:
        """Return a structured analysis for the given city snapshot."""


class OfflineAdvisoryClient:
    """Advisory stand-in that always answers with the local rule-based analysis."""

    async def test_connection(self) -> ConnectionCheck:
        return ConnectionCheck(succeeded=False, detail="advisory disabled; using local planner")

    async def analyze(self, analysis: CityAnalysis) -> AdvisoryResult:
        return fallback_analysis(analysis)


class ChatCompletionsAdvisoryClient:
    """Advisory backed by an OpenAI-compatible ``/chat/completions`` endpoint."""

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str | None,
        model: str,
        timeout_seconds: float = 30.0,
        max_tokens: int = 800,
        temperature: float = 0.7,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._base_url = base_url
        self._api_key = api_key
        self._model = model
        self._timeout_seconds = timeout_seconds
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._transport = transport
        self._logger = logger or logging.getLogger("autocity.advisory")

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def test_connection(self) -> ConnectionCheck:
        if not self.configured:
            return ConnectionCheck(succeeded=False, detail="advisory API key is not configured")

        try:
            content = await self._complete(
                [
                    {"role": "system", "content": "You are a helpful assistant."},
                    {"role": "user", "content": "Hello"},
                ],
                max_tokens=50,
            )
        except (httpx.HTTPError, AdvisoryResponseError) as exc:
            self._logger.warning("advisory_connection_failed", extra={"error": f"{type(exc).__name__}: {exc}"})
            return ConnectionCheck(succeeded=False, detail=f"{type(exc).__name__}: {exc}")
        except Exception as exc:  # noqa: BLE001 - client setup errors still mean "unavailable".
            self._logger.exception("advisory_connection_failed")
            return ConnectionCheck(succeeded=False, detail=f"{type(exc).__name__}: {exc}")
        return ConnectionCheck(succeeded=True, detail=content)

    async def analyze(self, analysis: CityAnalysis) -> AdvisoryResult:
        if not self.configured:
            return fallback_analysis(analysis)

        try:
            content = await self._complete(
                [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_analysis_prompt(analysis)},
                ],
                max_tokens=self._max_tokens,
                temperature=self._temperature,
            )
            result = parse_advisory_content(content)
        except httpx.TimeoutException:
            self._logger.warning("advisory_timeout", extra={"timeout_seconds": self._timeout_seconds})
            return fallback_analysis(analysis)
        except (httpx.HTTPError, AdvisoryResponseError) as exc:
            self._logger.warning("advisory_failed", extra={"error": f"{type(exc).__name__}: {exc}"})
            return fallback_analysis(analysis)
        except Exception:  # noqa: BLE001 - client setup errors still degrade to the local analysis.
            self._logger.exception("advisory_failed")
            return fallback_analysis(analysis)

        self._logger.info("advisory_succeeded", extra={"priorities": result.priorities})
        return result

    async def _complete(
        self,
        messages: list[dict[str, str]],
        *,
        max_tokens: int,
        temperature: float | None = None,
    ) -> str:
        payload: dict[str, Any] = {"model": self._model, "messages": messages, "max_tokens": max_tokens}
        if temperature is not None:
            payload["temperature"] = temperature

        async with httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Authorization": f"Bearer {self._api_key}"},
            timeout=self._timeout_seconds,
            transport=self._transport,
        ) as client:
            response = await client.post("/chat/completions", json=payload)
            response.raise_for_status()
            try:
                body = response.json()
            except ValueError as exc:
                raise AdvisoryResponseError("advisory endpoint returned non-JSON body") from exc

        return _message_content(body)


def _message_content(body: Any) -> str:
    try:
        content = body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise AdvisoryResponseError("advisory reply is missing choices[0].message.content") from exc
    if not isinstance(content, str):
        raise AdvisoryResponseError("advisory message content is not text")
    return content
