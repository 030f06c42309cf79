"""Generation API boundary.

This module implements the one place where llmkit talks to a language
model: an OpenAI-compatible ``/chat/completions`` endpoint reached with
``httpx``.  Three call shapes are offered:

* :meth:`GenerationClient.generate_text` - buffered plain text;
* :meth:`GenerationClient.stream_text` - server-sent text deltas;
* :meth:`GenerationClient.generate_object` - JSON constrained by a
  pydantic model's JSON schema and validated against that model.

Every call, successful or not, records a :class:`CallTelemetry` entry in
the injected :class:`TelemetryStore` with its latency, token counts and
estimated cost.  Transport and HTTP failures surface as
:class:`GenerationError`; malformed or schema-violating output surfaces
as :class:`ParseError`.  Model ids use the registry's ``provider/model``
form and the provider prefix is stripped before the request is sent.
"""

from __future__ import annotations

import json
import re
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ..config.settings import settings
from ..core.errors import GenerationError, ParseError
from ..utils.logging import get_logger
from ..utils.tokens import estimate_tokens
from .registry import estimate_call_cost
from .telemetry import CallTelemetry, TelemetryStore


logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

_FENCE_PATTERN = re.compile(r"```[a-zA-Z]*\n?")
_OBJECT_PATTERN = re.compile(r"\{.*\}", re.DOTALL)
_ARRAY_PATTERN = re.compile(r"\[.*\]", re.DOTALL)


@dataclass
class GenerationResult:
    """Buffered text response with usage metadata."""

    text: str
    model: str
    input_tokens: int
    output_tokens: int
    cost: float
    latency_ms: float


class GenerationClient:
    """Async client for an OpenAI-compatible chat completions API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        default_model: Optional[str] = None,
        telemetry: Optional[TelemetryStore] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.openai_api_key
        self.base_url = (base_url or settings.openai_base_url).rstrip("/")
        self.default_model = default_model or settings.default_model
        self.telemetry = telemetry
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self._http_client = http_client

    # ------------------------------------------------------------------
    # Public calls
    async def generate_text(
        self,
        prompt: str,
        *,
        model: Optional[str] = None,
        system_prompt: Optional[str] = None,
        task: str = "summarization",
        temperature: Optional[float] = None,
    ) -> GenerationResult:
        """Run a buffered completion and return its text."""
        model_id = model or self.default_model
        payload = self._build_payload(model_id, prompt, system_prompt, temperature)
        started = time.perf_counter()
        try:
            data = await self._post(payload)
            text = _message_content(data)
        except (GenerationError, ParseError):
            self._record(model_id, task, started, estimate_tokens(prompt), 0, success=False)
            raise
        input_tokens, output_tokens = _usage(data, prompt, text)
        entry = self._record(model_id, task, started, input_tokens, output_tokens, success=True)
        return GenerationResult(
            text=text,
            model=model_id,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost=entry.cost,
            latency_ms=entry.latency_ms,
        )

    async def stream_text(
        self,
        prompt: str,
        *,
        model: Optional[str] = None,
        system_prompt: Optional[str] = None,
        task: str = "extraction",
    ) -> AsyncIterator[str]:
        """Yield text deltas as the model produces them."""
        model_id = model or self.default_model
        payload = self._build_payload(model_id, prompt, system_prompt, None)
        payload["stream"] = True
        started = time.perf_counter()
        collected: List[str] = []
        success = False
        try:
            async with self._client() as client:
                async with client.stream(
                    "POST",
                    f"{self.base_url}/chat/completions",
                    headers=self._headers(),
                    json=payload,
                ) as response:
                    if response.is_error:
                        await response.aread()
                        raise GenerationError(
                            f"HTTP {response.status_code} from generation API: {response.text[:200]}"
                        )
                    async for line in response.aiter_lines():
                        delta = _parse_stream_line(line)
                        if delta is None:
                            continue
                        if delta == _STREAM_DONE:
                            break
                        collected.append(delta)
                        yield delta
            success = True
        except httpx.HTTPError as exc:
            raise GenerationError(f"Streaming request failed: {exc}") from exc
        finally:
            text = "".join(collected)
            self._record(
                model_id, task, started, estimate_tokens(prompt), estimate_tokens(text), success=success
            )

    async def generate_object(
        self,
        prompt: str,
        schema: Type[T],
        *,
        model: Optional[str] = None,
        system_prompt: Optional[str] = None,
        task: str = "extraction",
    ) -> T:
        """Ask for JSON matching ``schema`` and validate the answer."""
        model_id = model or self.default_model
        payload = self._build_payload(model_id, prompt, system_prompt, None)
        payload["response_format"] = {
            "type": "json_schema",
            "json_schema": {
                "name": schema.__name__,
                "schema": schema.model_json_schema(),
            },
        }
        started = time.perf_counter()
        try:
            data = await self._post(payload)
            text = _message_content(data)
            result = validate_json(text, schema)
        except (GenerationError, ParseError):
            self._record(model_id, task, started, estimate_tokens(prompt), 0, success=False)
            raise
        input_tokens, output_tokens = _usage(data, prompt, text)
        self._record(model_id, task, started, input_tokens, output_tokens, success=True)
        return result

    # ------------------------------------------------------------------
    # Transport helpers
    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                yield client

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise GenerationError("OpenAI API key not configured (set OPENAI_API_KEY)")
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _build_payload(
        self,
        model_id: str,
        prompt: str,
        system_prompt: Optional[str],
        temperature: Optional[float],
    ) -> Dict[str, Any]:
        messages: List[Dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        payload: Dict[str, Any] = {"model": api_model_name(model_id), "messages": messages}
        if temperature is not None:
            payload["temperature"] = temperature
        return payload

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        headers = self._headers()
        try:
            async with self._client() as client:
                resp = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers=headers,
                    json=payload,
                )
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise GenerationError(
                f"HTTP {status} from generation API: {exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise GenerationError(f"Generation request failed: {exc}") from exc
        except ValueError as exc:
            raise ParseError(f"Generation API returned invalid JSON: {exc}") from exc

    def _record(
        self,
        model_id: str,
        task: str,
        started: float,
        input_tokens: int,
        output_tokens: int,
        *,
        success: bool,
    ) -> CallTelemetry:
        latency_ms = (time.perf_counter() - started) * 1000.0
        cost = estimate_call_cost(model_id, input_tokens, output_tokens) if success else 0.0
        entry = CallTelemetry(
            model=model_id,
            task=task,
            latency_ms=latency_ms,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost=cost,
            success=success,
        )
        if self.telemetry is not None:
            self.telemetry.record(entry)
        if not success:
            logger.debug(f"Generation call to {model_id} failed after {latency_ms:.0f}ms")
        return entry


_STREAM_DONE = "[DONE]"


def api_model_name(model_id: str) -> str:
    """Strip the provider prefix: ``openai/gpt-4o-mini`` -> ``gpt-4o-mini``."""
    return model_id.split("/", 1)[1] if "/" in model_id else model_id


def _message_content(data: Dict[str, Any]) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ParseError(f"Unexpected response shape from generation API: {exc}") from exc
    return content or ""


def _usage(data: Dict[str, Any], prompt: str, text: str) -> "tuple[int, int]":
    usage = data.get("usage") or {}
    input_tokens = usage.get("prompt_tokens") or estimate_tokens(prompt)
    output_tokens = usage.get("completion_tokens") or estimate_tokens(text)
    return int(input_tokens), int(output_tokens)


def _parse_stream_line(line: str) -> Optional[str]:
    """Return the text delta of one SSE line, ``[DONE]`` at the end, else ``None``."""
    line = line.strip()
    if not line.startswith("data:"):
        return None
    data = line[len("data:"):].strip()
    if data == _STREAM_DONE:
        return _STREAM_DONE
    try:
        chunk = json.loads(data)
        return chunk["choices"][0]["delta"].get("content") or None
    except (ValueError, KeyError, IndexError, TypeError):
        logger.debug(f"Ignoring unparseable stream line: {line[:80]}")
        return None


def parse_json_object(text: str) -> Dict[str, Any]:
    """Extract and decode the first JSON object in a model response.

    Markdown code fences and chatter around the object are tolerated.
    """
    cleaned = _FENCE_PATTERN.sub("", text)
    match = _OBJECT_PATTERN.search(cleaned)
    if not match:
        raise ParseError("No JSON object found in response")
    try:
        value = json.loads(match.group(0))
    except ValueError as exc:
        raise ParseError(f"Invalid JSON in response: {exc}") from exc
    if not isinstance(value, dict):
        raise ParseError("Response JSON is not an object")
    return value


def parse_json_array(text: str) -> List[Any]:
    """Extract and decode the first JSON array in a model response."""
    cleaned = _FENCE_PATTERN.sub("", text)
    match = _ARRAY_PATTERN.search(cleaned)
    if not match:
        raise ParseError("No JSON array found in response")
    try:
        value = json.loads(match.group(0))
    except ValueError as exc:
        raise ParseError(f"Invalid JSON in response: {exc}") from exc
    if not isinstance(value, list):
        raise ParseError("Response JSON is not an array")
    return value


def validate_json(text: str, schema: Type[T]) -> T:
    """Parse the JSON object in ``text`` and validate it against ``schema``."""
    payload = parse_json_object(text)
    try:
        return schema.model_validate(payload)
    except ValidationError as exc:
        raise ParseError(f"Response does not match {schema.__name__}: {exc}") from exc
