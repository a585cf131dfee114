"""
Gemini Adapter
==============

Google Gemini generateContent backend.

Request:
    POST {endpoint}/{model}:generateContent
    x-goog-api-key: <credential>
    {"contents": [{"parts": [{"text": ...}, {"inline_data": {...}}]}],
     "generationConfig": {"temperature": ..., "maxOutputTokens": ...}}

Response text lives at candidates[0].content.parts[0].text.
"""

from typing import Any, Dict, Tuple

from surfcoach_agent.providers.base import HttpProviderAdapter


DEFAULT_MODEL = "gemini-1.5-flash"


class GeminiAdapter(HttpProviderAdapter):
    """Google Gemini vision backend."""

    def _build_request(
        self,
        image_b64: str,
        prompt: str,
    ) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        model = self.config.model or DEFAULT_MODEL
        url = f"{self.config.endpoint.rstrip('/')}/{model}:generateContent"
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.config.secret(),
        }
        payload = {
            "contents": [{
                "parts": [
                    {"text": prompt},
                    {
                        "inline_data": {
                            "mime_type": "image/jpeg",
                            "data": image_b64,
                        }
                    },
                ]
            }],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_output_tokens,
            },
        }
        return url, headers, payload

    def _extract_text(self, data: Any) -> str:
        return data["candidates"][0]["content"]["parts"][0]["text"]
