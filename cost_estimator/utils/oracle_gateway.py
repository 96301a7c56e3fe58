"""
Oracle Gateway

The single place where oracle calls are retried, validated and absorbed.
Resolvers never call the oracle directly: they go through safe_search for
free-text research and safe_extract for structured answers.

Failure contract:
    - safe_extract returns the caller's fallback after max_attempts failed
      attempts (exception, unparseable JSON, missing fields, placeholder
      sources). It never raises, except for task cancellation.
    - safe_search makes one attempt and returns the fallback on any failure
      or empty answer.
"""

import asyncio
import json
from typing import Any, Callable, Optional, TypeVar

from jsonschema import Draft7Validator
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from cost_estimator.models.config import SystemParams
from cost_estimator.utils.llm_helpers import CostOracle, extract_json_from_markdown
from cost_estimator.utils.logger import get_logger
from cost_estimator.utils.prompt_loader import render_prompt
from cost_estimator.utils.source_validation import find_placeholder_sources

T = TypeVar("T")


class OracleValidationError(ValueError):
    """Raised when an oracle answer does not satisfy the requested schema."""

    pass


def schema_from_example(example: dict[str, Any]) -> dict[str, Any]:
    """Derive a JSON Schema requiring every key of an example object.

    Nested objects require their own keys but carry no type constraint, so
    a nested field may be null (e.g. an optional range) while a present
    object must be complete.
    """
    return {
        "type": "object",
        **_object_requirements(example),
    }


def _object_requirements(example: dict[str, Any]) -> dict[str, Any]:
    properties: dict[str, Any] = {}
    for key, value in example.items():
        properties[key] = _object_requirements(value) if isinstance(value, dict) else {}
    return {"required": list(example.keys()), "properties": properties}


def parse_oracle_json(response: str, output_schema: dict[str, Any]) -> dict[str, Any]:
    """Parse and validate one extraction answer.

    Raises:
        OracleValidationError: If the answer is not JSON, misses a schema
            field, or cites a placeholder source
    """
    json_text = extract_json_from_markdown(response)
    try:
        data = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise OracleValidationError(f"Invalid JSON: {e.msg}") from e

    validator = Draft7Validator(schema_from_example(output_schema))
    errors = sorted(validator.iter_errors(data), key=lambda err: list(err.path))
    if errors:
        raise OracleValidationError(
            "; ".join(error.message for error in errors[:5])
        )

    placeholders = find_placeholder_sources(data)
    if placeholders:
        raise OracleValidationError(
            f"Placeholder source in fields: {', '.join(placeholders)}"
        )

    return data


class OracleGateway:
    """Retrying, validating front door to a CostOracle."""

    def __init__(
        self,
        oracle: CostOracle,
        max_attempts: int = 2,
        backoff_seconds: float = 1.0,
        extraction_model: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        self.oracle = oracle
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.extraction_model = extraction_model
        self.correlation_id = correlation_id
        self.logger = get_logger(
            correlation_id=correlation_id,
            phase="oracle",
            component="oracle_gateway",
        )

    @classmethod
    def from_params(
        cls,
        oracle: CostOracle,
        params: SystemParams,
        correlation_id: Optional[str] = None,
    ) -> "OracleGateway":
        return cls(
            oracle,
            max_attempts=params.gateway.max_attempts,
            backoff_seconds=params.gateway.backoff_seconds,
            extraction_model=params.oracle.model,
            correlation_id=correlation_id,
        )

    async def safe_extract(
        self,
        content: str,
        output_schema: dict[str, Any],
        fallback: T,
        max_attempts: Optional[int] = None,
        description: str = "data",
    ) -> dict[str, Any] | T:
        """
        Extract structured data from content, retrying on invalid answers.

        Args:
            content: Text the oracle should extract from (usually a search answer)
            output_schema: Example JSON object; every key is required in the answer
            fallback: Returned unchanged after all attempts fail
            max_attempts: Override of the configured attempt count
            description: What is being extracted, for logging

        Returns:
            Parsed answer dict, or fallback
        """
        attempts = max_attempts or self.max_attempts
        prompt = render_prompt(
            "base/extract.j2",
            correlation_id=self.correlation_id,
            content=content,
            schema=output_schema,
        )

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(attempts),
                wait=wait_fixed(self.backoff_seconds),
                retry=retry_if_exception_type(Exception),
                reraise=True,
            ):
                with attempt:
                    number = attempt.retry_state.attempt_number
                    try:
                        response = await self.oracle.ask(
                            prompt, model=self.extraction_model
                        )
                        data = parse_oracle_json(response, output_schema)
                    except asyncio.CancelledError:
                        raise
                    except Exception as e:
                        self.logger.warning(
                            "Extraction attempt failed",
                            description=description,
                            attempt=number,
                            max_attempts=attempts,
                            reason=str(e)[:200],
                        )
                        raise
                    self.logger.debug(
                        "Extraction succeeded", description=description, attempt=number
                    )
                    return data
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error(
                "Extraction failed after all attempts, using fallback",
                description=description,
                max_attempts=attempts,
                reason=str(e)[:200],
            )
        return fallback

    async def safe_search(
        self,
        query: str,
        fallback: str = "",
        model: Optional[str] = None,
        web_search: bool = True,
        description: str = "search",
    ) -> str:
        """
        Run one free-text oracle query.

        Args:
            query: Prompt to send
            fallback: Returned on any failure or empty answer
            model: Model override (e.g. a search-capable model)
            web_search: Allow the oracle to search the web
            description: What is being searched, for logging

        Returns:
            Answer text, or fallback
        """
        try:
            answer = await self.oracle.ask(query, web_search=web_search, model=model)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.warning(
                "Search failed, using fallback",
                description=description,
                attempt=1,
                max_attempts=1,
                reason=str(e)[:200],
            )
            return fallback

        if not answer or not answer.strip():
            self.logger.warning(
                "Search returned empty answer, using fallback",
                description=description,
            )
            return fallback
        return answer

    async def resolve_with_fallback(
        self,
        content: str,
        output_schema: dict[str, Any],
        fallback: T,
        accept: Callable[[dict[str, Any]], bool],
        description: str = "data",
    ) -> dict[str, Any] | T:
        """safe_extract followed by an acceptance check; rejected answers yield fallback."""
        data = await self.safe_extract(
            content, output_schema, fallback=None, description=description
        )
        if data is None:
            return fallback

        try:
            accepted = accept(data)
        except Exception as e:
            self.logger.warning(
                "Acceptance check raised, rejecting answer",
                description=description,
                error_type=type(e).__name__,
                reason=str(e),
            )
            accepted = False

        if not accepted:
            self.logger.info("Answer rejected by acceptance check", description=description)
            return fallback
        return data
