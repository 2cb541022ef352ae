"""Model gateway: one transcript in, one remote generation call, plain text out"""

import json
import logging
from typing import Any, Dict, Optional, Sequence, Tuple

import requests
from requests.exceptions import RequestException

from . import config

logger = logging.getLogger(__name__)

Block = Tuple[str, str]

EMPTY_REPLY = "Model returned no text."

_ROLE_MAP = {
    "system": "system",
    "user": "user",
    "model": "assistant",
    "assistant": "assistant",
    "ai": "assistant",
}


class GatewayError(Exception):
    """The HTTP call to the generation endpoint failed"""

    def __init__(self, message: str, status: Optional[int] = None, detail: str = ""):
        super().__init__(message)
        self.status = status
        self.detail = detail


def wire_role(role: str) -> str:
    return _ROLE_MAP.get((role or "").lower(), "user")


def _parts_text(parts: Any) -> str:
    """Join structured content parts: strings, {text} or {type, text}"""
    texts = []
    for part in parts:
        if isinstance(part, str):
            texts.append(part)
        elif isinstance(part, dict):
            value = part.get("text", part.get("value"))
            if isinstance(value, str):
                texts.append(value)
    return "\n".join(texts)


def _content_text(content: Any) -> Optional[str]:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return _parts_text(content)
    if isinstance(content, dict):
        value = content.get("value", content.get("text"))
        if isinstance(value, str):
            return value
    return None


def extract_text(payload: Any) -> str:
    """
    Pull the reply text out of a response envelope.

    Understands the proxy's {text} envelope, OpenAI-style choices with
    message.content as a string or as structured parts, bare completion
    fields and error bodies. Unknown shapes come back serialized as JSON.
    """
    text = None
    try:
        if isinstance(payload, str):
            text = payload
        elif isinstance(payload, list):
            if payload and isinstance(payload[0], dict):
                text = _content_text(payload[0].get("generated_text"))
        elif isinstance(payload, dict):
            choices = payload.get("choices")
            if isinstance(payload.get("text"), str):
                text = payload["text"]
            elif isinstance(choices, list) and choices:
                first = choices[0] if isinstance(choices[0], dict) else {}
                message = first.get("message")
                if isinstance(message, dict) and message.get("content") is not None:
                    text = _content_text(message["content"])
                elif isinstance(first.get("text"), str):
                    text = first["text"]
                elif message is not None:
                    text = json.dumps(message, ensure_ascii=False)
                if text is None:
                    text = json.dumps(first, ensure_ascii=False)
            else:
                for field in ("completion", "output", "generated_text", "content"):
                    if field in payload:
                        text = _content_text(payload[field])
                        if text is not None:
                            break
                if text is None and payload.get("error"):
                    text = f"Model error: {payload['error']}"
        if text is None:
            text = json.dumps(payload, ensure_ascii=False, default=str)
    except (TypeError, ValueError) as e:
        logger.warning(f"Could not read response envelope: {e}")
        text = str(payload)

    text = text.strip() if text else ""
    return text or EMPTY_REPLY


class ModelGateway:
    """
    Sends role-tagged transcripts to the generation endpoint.

    Two wire formats are supported:
      proxy - {contents: [{role, parts: [{text}]}]} -> {text}
      chat  - OpenAI-compatible chat completions
    Errors are raised as GatewayError, never retried.
    """

    def __init__(self, endpoint: str = None, mode: str = None, api_key: str = None,
                 model: str = None, timeout: float = None, session: requests.Session = None):
        self.endpoint = endpoint or config.API_ENDPOINT
        self.mode = (mode or config.API_MODE).lower()
        self.api_key = config.API_KEY if api_key is None else api_key
        self.model = model or config.MODEL_NAME
        self.timeout = timeout or config.REQUEST_TIMEOUT
        if self.mode not in ("proxy", "chat"):
            raise ValueError(f"Unknown gateway mode: {self.mode}")
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": config.USER_AGENT})

    def build_payload(self, blocks: Sequence[Block]) -> Dict:
        """Translate (role, text) blocks into the request body"""
        cleaned = [(wire_role(role), text) for role, text in blocks if text and text.strip()]
        if self.mode == "chat":
            return {
                "model": self.model,
                "messages": [{"role": role, "content": text} for role, text in cleaned],
                "max_tokens": config.MAX_TOKENS,
                "temperature": config.TEMPERATURE,
                "stream": False,
            }
        return {"contents": [{"role": role, "parts": [{"text": text}]} for role, text in cleaned]}

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.mode == "chat" and self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def generate(self, blocks: Sequence[Block]) -> str:
        """Send one generation request and return the reply text"""
        payload = self.build_payload(blocks)
        try:
            response = self.session.post(
                self.endpoint,
                json=payload,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except RequestException as e:
            logger.error(f"Request to {self.endpoint} failed: {e}")
            raise GatewayError(f"Request failed: {e}") from e

        if not response.ok:
            detail = _error_detail(response)
            logger.error(f"Model endpoint returned {response.status_code}: {detail}")
            raise GatewayError(
                f"Model error {response.status_code}", status=response.status_code, detail=detail
            )

        try:
            body = response.json()
        except ValueError:
            body = response.text
        text = extract_text(body)
        logger.info(f"Received reply ({len(text)} chars)")
        return text

    def ask(self, prompt: str) -> str:
        """Single-prompt convenience used for topic and recommendation calls"""
        return self.generate([("user", prompt)])


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or ""
    if isinstance(body, dict):
        parts = [str(body[k]) for k in ("error", "detail") if body.get(k)]
        if parts:
            return ": ".join(parts)
    return json.dumps(body, ensure_ascii=False, default=str)
