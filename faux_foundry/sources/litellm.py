from __future__ import annotations

import asyncio
import logging
from typing import Any

import litellm
from litellm.exceptions import (
    APIConnectionError,
    APIError,
    AuthenticationError,
    BadRequestError,
    InternalServerError,
    NotFoundError,
    RateLimitError,
    ServiceUnavailableError,
    Timeout,
)
from litellm.types.utils import ModelResponse
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from faux_foundry.core.exceptions import BatchSourceError, ErrorKind
from faux_foundry.core.types import Record
from faux_foundry.sources.base import BatchSource
from faux_foundry.sources.prompt import build_prompt, parse_records
from faux_foundry.spec.models import DEFAULT_ENDPOINT, Specification

logger = logging.getLogger(__name__)

_UNAVAILABLE_ERRORS: tuple[type[Exception], ...] = (
    RateLimitError,
    ServiceUnavailableError,
    InternalServerError,
    NotFoundError,
    BadRequestError,
    AuthenticationError,
    APIError,
)


class LiteLLMBatchSource(BatchSource):
    """Batch source backed by any litellm-supported chat model.

    The model string is ``<provider>/<name>`` (``ollama/llama3.1:8b``).
    Rate-limit and server errors are retried a few times inside the
    request deadline before being reported as ``UNAVAILABLE``.
    """

    def __init__(
        self,
        provider: str = "ollama",
        api_key: str | None = None,
        seed: int | None = None,
    ) -> None:
        self._provider = provider
        self._api_key = api_key or None
        self._seed = seed

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> LiteLLMBatchSource:
        return cls(
            provider=config.get("provider", "ollama"),
            api_key=config.get("api_key"),
            seed=config.get("seed"),
        )

    def model_name(self, spec: Specification) -> str:
        name = spec.model.name
        if name.startswith(f"{self._provider}/"):
            return name
        return f"{self._provider}/{name}"

    async def request_batch(
        self,
        spec: Specification,
        count: int,
        timeout: float,
    ) -> list[Record]:
        prompt = build_prompt(spec, count)
        try:
            async with asyncio.timeout(timeout):
                text = await self._complete(spec, prompt, timeout)
        except (TimeoutError, Timeout) as exc:
            raise BatchSourceError(
                ErrorKind.TIMEOUT, f"no response within {timeout:.1f}s"
            ) from exc
        except APIConnectionError as exc:
            raise BatchSourceError(ErrorKind.TRANSPORT, str(exc)) from exc
        except _UNAVAILABLE_ERRORS as exc:
            raise BatchSourceError(ErrorKind.UNAVAILABLE, str(exc)) from exc

        records = parse_records(text, spec)
        if not records:
            logger.warning(
                "Could not parse any records from response: %.200s", text
            )
            raise BatchSourceError(
                ErrorKind.MALFORMED,
                f"no valid JSON records in a {len(text)}-character response",
            )
        logger.info(
            "Parsed %d/%d records from %s", len(records), count, spec.model.name
        )
        return records[:count]

    @retry(
        retry=retry_if_exception_type(
            (RateLimitError, ServiceUnavailableError, InternalServerError)
        ),
        stop=stop_after_attempt(3),
        wait=wait_exponential_jitter(initial=1, max=10, jitter=1),
        reraise=True,
    )
    async def _complete(self, spec: Specification, prompt: str, timeout: float) -> str:
        kwargs: dict[str, Any] = {
            "model": self.model_name(spec),
            "messages": [{"role": "user", "content": prompt}],
            "temperature": spec.model.temperature,
            "timeout": timeout,
        }
        if self._provider == "ollama" or spec.model.endpoint != DEFAULT_ENDPOINT:
            kwargs["api_base"] = spec.model.endpoint
        if self._api_key:
            kwargs["api_key"] = self._api_key
        if self._seed is not None:
            kwargs["seed"] = self._seed

        response: ModelResponse = await litellm.acompletion(**kwargs)
        text = response.choices[0].message.content  # type: ignore[union-attr]
        if not text:
            raise BatchSourceError(ErrorKind.MALFORMED, "empty response")
        return text.strip()
