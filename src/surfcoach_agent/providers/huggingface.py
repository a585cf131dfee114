"""
Hugging Face Adapter
====================

Hugging Face Inference API backend running a LLaVA image-text model.

Request:
    POST {endpoint}/{model}
    Authorization: Bearer <credential>
    {"inputs": {"image": "data:image/jpeg;base64,...", "text": ...}}

Response is a list; the reply text is [0].generated_text.
"""

from typing import Any, Dict, Tuple

from surfcoach_agent.providers.base import HttpProviderAdapter


DEFAULT_MODEL = "llava-hf/llava-1.5-7b-hf"


class HuggingFaceAdapter(HttpProviderAdapter):
    """Hugging Face Inference API backend."""

    def _build_request(
        self,
        image_b64: str,
        prompt: str,
    ) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        model = self.config.model or DEFAULT_MODEL
        url = f"{self.config.endpoint.rstrip('/')}/{model}"
        headers = {
            "Authorization": f"Bearer {self.config.secret()}",
            "Content-Type": "application/json",
        }
        payload = {
            "inputs": {
                "image": f"data:image/jpeg;base64,{image_b64}",
                "text": prompt,
            },
            "parameters": {
                "temperature": self.temperature,
                "max_new_tokens": self.max_output_tokens,
            },
        }
        return url, headers, payload

    def _extract_text(self, data: Any) -> str:
        return data[0]["generated_text"]
