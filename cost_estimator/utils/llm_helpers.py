"""
LLM Helpers Module

The cost oracle client. All oracle traffic goes through a CostOracle; the
production implementation is ClaudeOracle, built on claude_agent_sdk. Retry
and fallback policy lives one level up in OracleGateway, so a ClaudeOracle
call is a single attempt that raises on failure.

Example Usage:
    from cost_estimator.utils.llm_helpers import ClaudeOracle

    oracle = ClaudeOracle(model="claude-sonnet-4-5")
    answer = await oracle.ask(
        "What is the annual tuition for the MS in Computer Science at MIT?",
        web_search=True,
    )
"""

from typing import Optional, Protocol

import structlog

from cost_estimator.utils.rate_limiter import ModelRateLimiter

logger = structlog.get_logger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are an expert on international student costs. Respond directly to "
    "user prompts with the requested analysis."
)

WEB_TOOLS = ["WebSearch", "WebFetch"]


class OracleError(RuntimeError):
    """Raised when the oracle returns no usable answer."""

    pass


class CostOracle(Protocol):
    """Text-in, text-out reasoning service that can optionally search the web."""

    async def ask(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        web_search: bool = False,
        model: Optional[str] = None,
    ) -> str: ...


def extract_json_from_markdown(response_text: str) -> str:
    """Extract JSON from LLM response, removing markdown code block markers if present.

    Args:
        response_text: Raw text response from LLM

    Returns:
        Clean JSON string with code block markers removed
    """
    json_text = response_text.strip()

    if json_text.startswith("```json"):
        json_text = json_text[7:]
    elif json_text.startswith("```"):
        json_text = json_text[3:]

    if json_text.endswith("```"):
        json_text = json_text[:-3]

    return json_text.strip()


class ClaudeOracle:
    """CostOracle backed by claude_agent_sdk.ClaudeSDKClient.

    Web search is enabled per call by allowing the WebSearch and WebFetch
    tools; otherwise all tools are disabled and the call is a single turn.
    """

    def __init__(
        self,
        model: Optional[str] = None,
        search_max_turns: int = 6,
        rate_limiter: Optional[ModelRateLimiter] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        self.model = model
        self.search_max_turns = search_max_turns
        self.rate_limiter = rate_limiter or ModelRateLimiter()
        self.correlation_id = correlation_id

    async def ask(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        web_search: bool = False,
        model: Optional[str] = None,
    ) -> str:
        """
        Send one prompt to the oracle and collect the text answer.

        Args:
            prompt: The formatted prompt
            system: System prompt (defaults to the cost-expert prompt)
            web_search: Allow the oracle to search and fetch web pages
            model: Model override for this call

        Returns:
            Answer text

        Raises:
            OracleError: If the oracle returned an empty answer
            Exception: Any SDK or transport error, unchanged
        """
        from claude_agent_sdk import ClaudeAgentOptions, ClaudeSDKClient

        chosen_model = model or self.model
        log = logger.bind(
            correlation_id=self.correlation_id,
            model=chosen_model,
            web_search=web_search,
        )

        await self.rate_limiter.acquire(chosen_model)
        log.debug("Oracle call initiated", prompt_length=len(prompt))

        options = ClaudeAgentOptions(
            max_turns=self.search_max_turns if web_search else 1,
            allowed_tools=list(WEB_TOOLS) if web_search else [],
            system_prompt=system or DEFAULT_SYSTEM_PROMPT,
            setting_sources=None,  # Disable loading .claude/settings, CLAUDE.md, etc.
            model=chosen_model,
        )

        response_text = ""

        async with ClaudeSDKClient(options=options) as client:
            await client.query(prompt)

            async for message in client.receive_response():
                if hasattr(message, "content") and message.content:
                    if isinstance(message.content, str):
                        continue
                    for block in message.content:
                        if hasattr(block, "text"):
                            response_text += block.text

        if not response_text.strip():
            raise OracleError("Oracle returned empty response")

        log.debug("Oracle call succeeded", response_length=len(response_text))
        return response_text.strip()
