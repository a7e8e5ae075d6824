"""
Base LLM
Abstract LLM provider
"""
from abc import ABC, abstractmethod
from typing import List, Optional, Dict, Any
from dataclasses import dataclass, field
from enum import Enum
import json
import re

from utils.exceptions import LLMError


_JSON_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class MessageRole(str, Enum):
    """Message role"""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Message:
    """Chat message"""
    role: MessageRole
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=MessageRole.USER, content=content)


@dataclass
class LLMResponse:
    """LLM response"""
    content: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)  # prompt_tokens, completion_tokens, total_tokens
    finish_reason: Optional[str] = None


def parse_json_content(content: str, provider: Optional[str] = None) -> Any:
    """Parse a JSON reply, tolerating a markdown code fence around it."""
    text = _JSON_FENCE.sub("", str(content or "").strip())
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise LLMError(f"Model returned invalid JSON: {e}", provider=provider) from e


class BaseLLM(ABC):
    """
    LLM abstract base

    Every provider implementation derives from this class.
    """

    def __init__(
        self,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 4096,
        timeout: float = 60.0,
        **kwargs,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.extra_config = kwargs

    @property
    @abstractmethod
    def provider(self) -> str:
        """Provider name"""
        pass

    @abstractmethod
    async def acomplete(
        self,
        messages: List[Message],
        json_mode: bool = False,
        **kwargs,
    ) -> LLMResponse:
        """
        Generate a completion

        Args:
            messages: conversation
            json_mode: ask the provider for a JSON object reply
            **kwargs: temperature / max_tokens overrides

        Returns:
            LLMResponse
        """
        pass

    async def acomplete_json(self, messages: List[Message], **kwargs) -> Any:
        """Complete in JSON mode and parse the reply."""
        response = await self.acomplete(messages, json_mode=True, **kwargs)
        return parse_json_content(response.content, provider=self.provider)

    async def achat(self, user_message: str, system_prompt: Optional[str] = None) -> str:
        """Single-turn chat"""
        messages = []
        if system_prompt:
            messages.append(Message.system(system_prompt))
        messages.append(Message.user(user_message))

        response = await self.acomplete(messages)
        return response.content

    @property
    def supports_images(self) -> bool:
        return False

    async def agenerate_image(self, prompt: str, **kwargs) -> str:
        """Generate one image and return its URL (or data URL)."""
        raise LLMError("Image generation is not supported", provider=self.provider)

    async def aclose(self) -> None:
        """Release the underlying client (no-op by default)."""
        return None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model={self.model}, provider={self.provider})"
