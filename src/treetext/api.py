"""Client for an OpenAI-compatible chat completion server."""

from typing import Any
from urllib.parse import urlsplit, urlunsplit

import requests
from loguru import logger

from treetext.config import DEFAULT_MODEL, GENERATION_TIMEOUT
from treetext.errors import BackendFailure

CHAT_COMPLETIONS_PATH = "/v1/chat/completions"
ROLES = ("system", "user", "assistant")


def chat_completions_url(base_url: str) -> str:
    """Point ``base_url`` at the chat completions endpoint.

    ``localhost`` is replaced by ``127.0.0.1`` so servers that only listen on
    IPv4 are reachable.
    """
    parts = urlsplit(base_url.strip())
    if parts.scheme not in ("http", "https") or not parts.netloc:
        msg = f"Invalid generation server URL: {base_url!r}"
        raise ValueError(msg)
    netloc = parts.netloc.replace("localhost", "127.0.0.1")
    return urlunsplit((parts.scheme, netloc, CHAT_COMPLETIONS_PATH, "", ""))


class GenerationApi:
    """Single request/response exchanges with a generation backend."""

    def __init__(
        self,
        base_url: str,
        *,
        model: str = DEFAULT_MODEL,
        timeout: float = GENERATION_TIMEOUT,
    ) -> None:
        self.url = chat_completions_url(base_url)
        self.model = model
        self.timeout = timeout
        self.sess = requests.Session()
        logger.debug("Generation API ready: url {!r}, model {!r}", self.url, self.model)

    def chat(self, messages: list[dict[str, str]], *, json_object: bool = False) -> str:
        """Send a conversation and return the stripped assistant reply.

        Args:
            messages: ``{"role", "content"}`` dicts; roles are system/user/assistant.
            json_object: Ask the backend to respond with a JSON object.

        Raises:
            BackendFailure: On connection errors, non-success status codes, or a
                response without a reply.
        """
        for message in messages:
            if message.get("role") not in ROLES or not isinstance(message.get("content"), str):
                msg = f"Invalid message: {message!r:.80}"
                raise ValueError(msg)

        payload: dict[str, Any] = {"model": self.model, "messages": messages, "stream": False}
        if json_object:
            payload["response_format"] = {"type": "json_object"}

        logger.debug("Making request: {!r} ({} messages)", self.url, len(messages))
        try:
            r = self.sess.post(self.url, json=payload, timeout=self.timeout)
        except requests.ConnectionError as e:
            msg = (
                f"Could not connect to the generation server at {self.url}. "
                f"Is it running? Details: {e}"
            )
            raise BackendFailure(msg) from e
        except requests.RequestException as e:
            msg = f"Request to {self.url} failed: {e}"
            raise BackendFailure(msg) from e

        if not r.ok:
            logger.error("Generation request failed with status {}: {}", r.status_code, r.text[:200])
            msg = f"API request failed with status {r.status_code}: {r.text}"
            raise BackendFailure(msg, status_code=r.status_code)

        try:
            rv: dict[str, Any] = r.json()
            content = rv["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            msg = f"Unexpected response from generation server: {r.text[:200]!r}"
            raise BackendFailure(msg, status_code=r.status_code) from e
        return (content or "").strip()
