"""
Zhipu Adapter
=============

Zhipu AI GLM-4V chat-completions backend (OpenAI-style message shape).

Request:
    POST {endpoint}
    Authorization: Bearer <credential>
    {"model": "glm-4v", "messages": [{"role": "user", "content": [
        {"type": "text", "text": ...},
        {"type": "image_url", "image_url": {"url": "data:image/jpeg;base64,..."}}
    ]}]}

Response text lives at choices[0].message.content.
"""

from typing import Any, Dict, Tuple

from surfcoach_agent.providers.base import HttpProviderAdapter


DEFAULT_MODEL = "glm-4v"


class ZhipuAdapter(HttpProviderAdapter):
    """Zhipu AI GLM-4V backend."""

    def _build_request(
        self,
        image_b64: str,
        prompt: str,
    ) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        headers = {
            "Authorization": f"Bearer {self.config.secret()}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.config.model or DEFAULT_MODEL,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:image/jpeg;base64,{image_b64}"},
                        },
                    ],
                }
            ],
            "max_tokens": self.max_output_tokens,
            "temperature": self.temperature,
        }
        return self.config.endpoint, headers, payload

    def _extract_text(self, data: Any) -> str:
        return data["choices"][0]["message"]["content"]
