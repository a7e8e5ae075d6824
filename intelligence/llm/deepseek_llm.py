"""
DeepSeek LLM
deepseek-chat through the OpenAI-compatible API
"""
from typing import Optional

from .openai_llm import OpenAILLM


class DeepSeekLLM(OpenAILLM):
    """
    DeepSeek LLM

    Chat only; image generation is not offered by the provider.
    """

    DEFAULT_BASE_URL = "https://api.deepseek.com"

    def __init__(
        self,
        model: str = "deepseek-chat",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 4096,
        timeout: float = 120.0,  # slower than OpenAI on long prompts
        **kwargs,
    ):
        super().__init__(
            model=model,
            api_key=api_key,
            base_url=base_url or self.DEFAULT_BASE_URL,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            **kwargs,
        )

    @property
    def provider(self) -> str:
        return "deepseek"

    @property
    def supports_images(self) -> bool:
        return False

    async def agenerate_image(self, prompt: str, **kwargs) -> str:
        # skip OpenAILLM's images endpoint
        return await super(OpenAILLM, self).agenerate_image(prompt, **kwargs)
