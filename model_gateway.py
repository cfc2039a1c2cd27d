"""
Model Gateway

Thin wrapper around the chat model used for research and consolidation.
Research calls go through a web-grounded client (Responses API with the
web search tool bound); consolidation calls use a plain client with no tools.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import openai
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage
from langchain_openai import ChatOpenAI

from config import ElectionSourceConfig
from errors import ConfigurationError, GatewayError, TransportError
from models import ConversationTurn

logger = logging.getLogger(__name__)

_TRANSPORT_ERRORS = (openai.APIConnectionError, openai.RateLimitError)


def message_text(message: Any) -> str:
    """Flatten a chat reply into plain text.

    Responses API replies carry a list of content blocks; chat completions
    carry a plain string.
    """
    content = getattr(message, "content", message)
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: List[str] = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") in ("text", "output_text"):
                parts.append(block.get("text") or "")
        return "".join(parts)
    return str(content)


def to_messages(prompt: str, history: Optional[Sequence[ConversationTurn]] = None) -> List[BaseMessage]:
    messages: List[BaseMessage] = []
    for turn in history or []:
        if turn.role == "model":
            messages.append(AIMessage(content=turn.text))
        else:
            messages.append(HumanMessage(content=turn.text))
    messages.append(HumanMessage(content=prompt))
    return messages


class ModelGateway(ABC):
    """Contract for the generation service.

    ``generate`` returns the raw reply text or raises ``GatewayError``
    (``TransportError`` for retryable transport problems) and
    ``ConfigurationError`` when credentials are rejected.
    """

    @abstractmethod
    def generate(
        self,
        prompt: str,
        use_grounding: bool = True,
        history: Optional[Sequence[ConversationTurn]] = None,
    ) -> str:
        """Return the raw reply text for ``prompt``."""


class OpenAIModelGateway(ModelGateway):
    def __init__(
        self,
        api_key: str,
        research_model: str = ElectionSourceConfig.RESEARCH_MODEL,
        transform_model: str = ElectionSourceConfig.TRANSFORM_MODEL,
        temperature: float = ElectionSourceConfig.MODEL_TEMPERATURE,
        top_p: float = ElectionSourceConfig.MODEL_TOP_P,
        max_output_tokens: int = ElectionSourceConfig.MAX_OUTPUT_TOKENS,
        timeout: int = ElectionSourceConfig.HTTP_TIMEOUT_SECONDS,
        organization: Optional[str] = ElectionSourceConfig.OPENAI_ORGANIZATION,
    ):
        if not api_key:
            raise ConfigurationError("OPENAI_API_KEY is required to build the model gateway")

        self.research_model = research_model
        self.transform_model = transform_model

        llm_params: Dict[str, Any] = {
            "api_key": api_key,
            "temperature": temperature,
            "top_p": top_p,
            "max_tokens": max_output_tokens,
            "timeout": timeout,
            # Retries are owned by the scheduling policy
            "max_retries": 0,
        }
        if organization:
            llm_params["openai_organization"] = organization

        research_llm = ChatOpenAI(model=research_model, use_responses_api=True, **llm_params)
        self.grounded_llm = research_llm.bind_tools([ElectionSourceConfig.GROUNDING_TOOL])
        self.plain_llm = ChatOpenAI(model=transform_model, **llm_params)

    def generate(
        self,
        prompt: str,
        use_grounding: bool = True,
        history: Optional[Sequence[ConversationTurn]] = None,
    ) -> str:
        messages = to_messages(prompt, history)
        if use_grounding:
            llm = self.grounded_llm
            logger.info(f"Making grounded request with {self.research_model} ({len(messages)} messages)")
        else:
            llm = self.plain_llm
            logger.info(f"Making ungrounded request with {self.transform_model} ({len(messages)} messages)")
        logger.debug(f"Prompt length: {len(prompt)} characters")

        try:
            response = llm.invoke(messages)
        except openai.AuthenticationError as exc:
            raise ConfigurationError(f"Model provider rejected credentials: {exc}") from exc
        except _TRANSPORT_ERRORS as exc:
            raise TransportError(f"{type(exc).__name__}: {exc}") from exc
        except Exception as exc:
            raise GatewayError(f"Model request failed: {type(exc).__name__}: {exc}") from exc

        text = message_text(response)
        if not text.strip():
            raise GatewayError("Model returned an empty response")
        logger.info(f"Received {len(text)} characters from model")
        return text
