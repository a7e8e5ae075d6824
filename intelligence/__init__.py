"""
Intelligence Module
LLM abstraction and the website analyst
"""
from .llm import (
    BaseLLM,
    OpenAILLM,
    DeepSeekLLM,
    get_llm,
)
from .analyst import ANALYSIS_PHASE, WebsiteAnalyst

__all__ = [
    # LLM
    "BaseLLM",
    "OpenAILLM",
    "DeepSeekLLM",
    "get_llm",
    # Analyst
    "ANALYSIS_PHASE",
    "WebsiteAnalyst",
]
