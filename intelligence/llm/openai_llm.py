"""
OpenAI LLM
Chat completions (gpt-4o, gpt-4o-mini, ...) and image generation
"""
from typing import List, Optional
import logging

from openai import AsyncOpenAI, OpenAIError

from utils.exceptions import LLMError
from .base import BaseLLM, Message, LLMResponse


logger = logging.getLogger(__name__)


class OpenAILLM(BaseLLM):
    """
    OpenAI LLM

    Also serves any OpenAI-compatible endpoint through base_url.
    """

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 4096,
        timeout: float = 60.0,
        image_model: str = "dall-e-3",
        image_size: str = "1024x1024",
        **kwargs,
    ):
        super().__init__(model, temperature, max_tokens, timeout, **kwargs)
        self.api_key = api_key
        self.base_url = base_url
        self.image_model = image_model
        self.image_size = image_size
        self._async_client = None

    @property
    def provider(self) -> str:
        return "openai"

    @property
    def supports_images(self) -> bool:
        return True

    def _get_async_client(self) -> AsyncOpenAI:
        if self._async_client is None:
            self._async_client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
            )
        return self._async_client

    async def acomplete(
        self,
        messages: List[Message],
        json_mode: bool = False,
        **kwargs,
    ) -> LLMResponse:
        client = self._get_async_client()

        request_params = {
            "model": self.model,
            "messages": [m.to_dict() for m in messages],
            "temperature": kwargs.get("temperature", self.temperature),
            "max_tokens": kwargs.get("max_tokens", self.max_tokens),
        }
        if json_mode:
            request_params["response_format"] = {"type": "json_object"}

        try:
            response = await client.chat.completions.create(**request_params)
        except OpenAIError as e:
            raise LLMError(f"Completion failed: {e}", provider=self.provider, model=self.model) from e

        choice = response.choices[0]
        usage = response.usage
        return LLMResponse(
            content=choice.message.content or "",
            model=response.model,
            usage={
                "prompt_tokens": usage.prompt_tokens if usage else 0,
                "completion_tokens": usage.completion_tokens if usage else 0,
                "total_tokens": usage.total_tokens if usage else 0,
            },
            finish_reason=choice.finish_reason,
        )

    async def agenerate_image(self, prompt: str, **kwargs) -> str:
        client = self._get_async_client()
        try:
            response = await client.images.generate(
                model=kwargs.get("model", self.image_model),
                prompt=prompt,
                size=kwargs.get("size", self.image_size),
                n=1,
            )
        except OpenAIError as e:
            raise LLMError(f"Image generation failed: {e}", provider=self.provider, model=self.image_model) from e

        image = response.data[0]
        if image.url:
            return image.url
        if image.b64_json:
            return f"data:image/png;base64,{image.b64_json}"
        raise LLMError("Image generation returned no image", provider=self.provider)

    async def aclose(self) -> None:
        client = self._async_client
        if client is None:
            return
        try:
            await client.close()
        except Exception:
            logger.debug("Failed to close OpenAI client", exc_info=True)
        self._async_client = None
