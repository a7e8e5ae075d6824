"""
LLM Factory
Build an LLM instance from configuration
"""
from typing import Optional
import logging

from utils.exceptions import ConfigurationError
from .base import BaseLLM
from .openai_llm import OpenAILLM
from .deepseek_llm import DeepSeekLLM


logger = logging.getLogger(__name__)


DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "deepseek": "deepseek-chat",
}


def get_llm(
    provider: Optional[str] = None,
    model: Optional[str] = None,
    **kwargs,
) -> BaseLLM:
    """
    Get an LLM instance

    Reads LLM_* settings; explicit arguments win.

    Args:
        provider: openai or deepseek
        model: model name (provider default when empty)
        **kwargs: temperature, max_tokens, api_key, base_url ...

    Returns:
        BaseLLM instance

    Example:
        llm = get_llm()
        llm = get_llm(provider="deepseek")
        llm = get_llm(provider="openai", model="gpt-4o")
    """
    from config import get_llm_settings

    settings = get_llm_settings()

    provider = (provider or settings.provider or "").lower()
    model = model or settings.model_name or DEFAULT_MODELS.get(provider)

    api_keys = {
        "openai": settings.openai_api_key,
        "deepseek": settings.deepseek_api_key,
    }
    api_key = kwargs.pop("api_key", None) or api_keys.get(provider)

    default_params = {
        "temperature": settings.temperature,
        "max_tokens": settings.max_tokens,
    }
    for key, value in default_params.items():
        if key not in kwargs:
            kwargs[key] = value

    logger.debug("Creating LLM provider=%s model=%s", provider, model)

    if provider == "openai":
        kwargs.setdefault("image_model", settings.image_model)
        kwargs.setdefault("image_size", settings.image_size)
        return OpenAILLM(
            model=model,
            api_key=api_key,
            base_url=kwargs.pop("base_url", None),
            **kwargs,
        )
    elif provider == "deepseek":
        return DeepSeekLLM(
            model=model,
            api_key=api_key,
            base_url=kwargs.pop("base_url", None),
            **kwargs,
        )
    else:
        raise ConfigurationError(f"Unsupported LLM provider: {provider}")
