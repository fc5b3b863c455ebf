import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from .config import Settings
from .errors import ConfigurationError, TransportError

log = logging.getLogger(__name__)

RETRY_BACKOFF_SECONDS = 1.0


def strip_code_fences(text: str) -> str:
    """Remove markdown code blocks the model sometimes wraps JSON in."""
    return text.replace("```json", "").replace("```", "").strip()


def extract_text(data: Dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate."""
    candidates = data.get("candidates") or [{}]
    parts = candidates[0].get("content", {}).get("parts", [])
    return "".join(part.get("text", "") for part in parts)


class GeminiModel:
    """Calls the Gemini ``generateContent`` REST endpoint.

    Any object with the same ``generate`` coroutine can stand in for this
    class in the AnalysisClient.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = settings.gemini_api_key
        self.endpoint = settings.gemini_endpoint
        self.timeout = settings.gemini_timeout
        self.max_retries = settings.gemini_max_retries
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    def build_payload(
        self,
        parts: List[Dict],
        schema: Optional[Dict] = None,
        system_instruction: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"contents": [{"role": "user", "parts": parts}]}
        if system_instruction:
            payload["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        if schema is not None:
            payload["generationConfig"] = {
                "responseMimeType": "application/json",
                "responseSchema": schema,
            }
        return payload

    async def generate(
        self,
        parts: List[Dict],
        schema: Optional[Dict] = None,
        system_instruction: Optional[str] = None,
    ) -> str:
        """Send one request and return the model's raw text."""
        if not self.configured:
            raise ConfigurationError("Gemini API key not configured")

        payload = self.build_payload(parts, schema, system_instruction)
        attempt = 0
        while True:
            try:
                return await self._post(payload)
            except TransportError as e:
                if attempt >= self.max_retries:
                    raise
                attempt += 1
                log.warning(f"Gemini request failed ({e}), retrying ({attempt}/{self.max_retries})")
                await asyncio.sleep(RETRY_BACKOFF_SECONDS * attempt)

    async def _post(self, payload: Dict[str, Any]) -> str:
        headers = {"Content-Type": "application/json"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    self.endpoint,
                    headers=headers,
                    json=payload,
                    params={"key": self.api_key},
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            raise TransportError(f"Gemini returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Gemini request error: {e.__class__.__name__}") from e
        except ValueError as e:
            raise TransportError("Gemini returned a non-JSON body") from e

        if not isinstance(data, dict):
            raise TransportError("Gemini returned an unexpected body")
        text_output = extract_text(data)
        if not text_output.strip():
            raise TransportError("No response text from Gemini")
        return text_output
