"""OpenAI client used for marketing copy and text-to-image generation."""

from __future__ import annotations

from typing import Any, Dict, Optional

import openai

from ..errors import ProviderError
from ..types import CatalogItem, ContentType, GenerationRequest, Provider
from ..utils.files import sha256_hex
from ..utils.prompts import load_prompt

PLATFORM_CONTEXTS = {
    "facebook": "Facebook advertising platform with engaging headline, benefit-focused copy, and strong CTA",
    "instagram": "Instagram format with short, punchy text and relevant hashtags",
    "sms": "SMS marketing with a concise message under 160 characters",
    "email": "Email marketing with subject line and structured body content",
    "twitter": "Twitter post under 280 characters with one or two hashtags",
    "linkedin": "LinkedIn post with a professional, B2B-focused tone",
}
DEFAULT_PLATFORM_CONTEXT = "general marketing content with professional tone"


class OpenAIClient:
    """Synchronous text and image generation via the OpenAI API with a mock fallback."""

    name = Provider.OPENAI.value

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        text_model: str = "gpt-4o-mini",
        image_model: str = "dall-e-3",
        use_mock: bool = True,
        timeout: int = 60,
        client: Any = None,
    ) -> None:
        self._api_key = api_key
        self._api_url = api_url
        self._text_model = text_model
        self._image_model = image_model
        self._use_mock = use_mock
        self._timeout = timeout
        self._client = client

    def submit(self, request: GenerationRequest) -> Dict[str, Any]:
        """Return the raw chat completion or image generation payload."""
        if request.content_type is ContentType.TEXT:
            if self._use_mock:
                return self._mock_text(request)
            return self._call(self._create_copy, request)
        if self._use_mock:
            return self._mock_image(request)
        return self._call(self._create_image, request)

    def enhance_instruction(self, instruction: str, item: Optional[CatalogItem] = None) -> str:
        """Rewrite an operator instruction into a cleaner marketing brief."""
        instruction = (instruction or "").strip()
        if not instruction:
            raise ValueError("Instruction must not be empty.")
        if self._use_mock:
            product = f" for {item.name}" if item else ""
            return f"{instruction} Focus on the key benefits{product} and end with a clear call-to-action."

        variables = {
            "instruction": instruction,
            "product_name": item.name if item else "Product",
            "product_description": (item.description if item else "") or "n/a",
        }

        def _create(client):
            return client.chat.completions.create(
                model=self._text_model,
                messages=[
                    {"role": "system", "content": load_prompt("clean_instruction_system").strip()},
                    {"role": "user", "content": load_prompt("clean_instruction_user", variables).strip()},
                ],
                temperature=0.7,
                max_tokens=500,
            )

        raw = self._call(_create, None)
        text = self._extract_text(raw)
        if not text or not text.strip():
            raise ProviderError(self.name, "instruction enhancement returned no content")
        return text.strip()

    def _call(self, factory, request: Optional[GenerationRequest]) -> Dict[str, Any]:
        if not self._api_key:
            raise ProviderError(self.name, "OpenAI API key is missing; cannot call service.")
        client = self._resolve_client()
        try:
            response = factory(client) if request is None else factory(client, request)
        except openai.APITimeoutError as exc:
            raise ProviderError(self.name, exc, timed_out=True) from exc
        except openai.APIError as exc:
            raise ProviderError(self.name, exc) from exc
        return self._to_dict(response)

    def _create_copy(self, client, request: GenerationRequest):
        channel = (request.channel or "").strip().lower()
        system_prompt = load_prompt(
            "marketing_copy_system",
            {"platform_context": PLATFORM_CONTEXTS.get(channel, DEFAULT_PLATFORM_CONTEXT)},
        )
        user_prompt = load_prompt(
            "marketing_copy_user",
            {
                "instruction": request.instruction,
                "product_name": request.item_name or "Product",
                "product_description": request.item_description or "n/a",
            },
        )
        return client.chat.completions.create(
            model=self._text_model,
            messages=[
                {"role": "system", "content": system_prompt.strip()},
                {"role": "user", "content": user_prompt.strip()},
            ],
            temperature=0.7,
            max_tokens=request.format_spec.max_tokens or 500,
        )

    def _create_image(self, client, request: GenerationRequest):
        return client.images.generate(
            model=self._image_model,
            prompt=self._compose_image_prompt(request),
            size=self._select_size(request.format_spec.width, request.format_spec.height),
            n=1,
        )

    def _resolve_client(self):
        if self._client is None:
            # Retries belong to the dispatcher; one submit is one HTTP call.
            self._client = openai.OpenAI(
                api_key=self._api_key,
                base_url=self._api_url,
                timeout=self._timeout,
                max_retries=0,
            )
        return self._client

    @staticmethod
    def _compose_image_prompt(request: GenerationRequest) -> str:
        parts = [request.instruction.strip()]
        if request.item_name:
            product = f"Product: {request.item_name}"
            if request.item_description:
                product += f". {request.item_description.strip()}"
            parts.append(product)
        if request.reference_image_url:
            parts.append(
                "Use the product photo at "
                f"{request.reference_image_url} as the style and content reference."
            )
        return "\n".join(part for part in parts if part)

    @staticmethod
    def _select_size(width: Optional[int], height: Optional[int]) -> str:
        if not width or not height:
            return "1024x1024"
        ratio = width / height
        if ratio >= 1.2:
            return "1792x1024"
        if ratio <= 1 / 1.2:
            return "1024x1792"
        return "1024x1024"

    @staticmethod
    def _to_dict(response: Any) -> Dict[str, Any]:
        if isinstance(response, dict):
            return response
        if hasattr(response, "model_dump"):
            return response.model_dump()
        raise ProviderError(Provider.OPENAI.value, f"unexpected SDK response type {type(response).__name__}")

    @staticmethod
    def _extract_text(response: Dict[str, Any]) -> Optional[str]:
        choices = response.get("choices")
        if isinstance(choices, list) and choices:
            message = choices[0].get("message") if isinstance(choices[0], dict) else None
            if isinstance(message, dict) and isinstance(message.get("content"), str):
                return message["content"]
        return None

    def _mock_text(self, request: GenerationRequest) -> Dict[str, Any]:
        name = request.item_name or "Product"
        content = "\n\n".join(
            [
                f"HEADLINE: Meet {name}",
                f"BODY TEXT: {request.instruction}",
                "CALL TO ACTION: Shop now",
                f"HASHTAGS: #{name.replace(' ', '')} #NewArrival",
            ]
        )
        return {
            "id": f"chatcmpl-mock-{self._digest(request)[:12]}",
            "model": self._text_model,
            "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
        }

    def _mock_image(self, request: GenerationRequest) -> Dict[str, Any]:
        return {
            "created": 0,
            "data": [{"url": f"https://mock.feedgen.local/openai/{self._digest(request)[:16]}.png"}],
        }

    @staticmethod
    def _digest(request: GenerationRequest) -> str:
        seed = f"{request.item_id}|{request.content_type.value}|{request.instruction}"
        return sha256_hex(seed.encode("utf-8"))
