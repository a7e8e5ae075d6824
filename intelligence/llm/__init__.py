"""
LLM Module
OpenAI-compatible LLM providers
"""
from .base import BaseLLM, LLMResponse, Message, MessageRole, parse_json_content
from .openai_llm import OpenAILLM
from .deepseek_llm import DeepSeekLLM
from .factory import get_llm

__all__ = [
    "BaseLLM",
    "LLMResponse",
    "Message",
    "MessageRole",
    "parse_json_content",
    "OpenAILLM",
    "DeepSeekLLM",
    "get_llm",
]
