"""HTTP client for the Psi backend: emotion computation and chat replies.

The blocking functions use requests directly; the async variants push them
onto a worker thread so the session loop never blocks on the network.
"""

import asyncio
import logging

import requests
from config import Config

from affect_sync.models import EmotionalState, MalformedResponse, TransportFailure

logger = logging.getLogger(__name__)


def _post(path, payload, timeout=None):
    """POST JSON and return the decoded body. Raises TransportFailure/MalformedResponse."""
    url = f"{Config.PSI_BASE_URL}{path}"
    logger.debug(f"POST {url}")
    try:
        response = requests.post(
            url,
            json=payload,
            timeout=timeout or Config.PSI_REQUEST_TIMEOUT,
        )
        response.raise_for_status()
    except requests.RequestException as e:
        raise TransportFailure(f"POST {path} failed: {e}") from e

    try:
        return response.json()
    except ValueError as e:
        raise MalformedResponse(f"POST {path} returned invalid JSON") from e


def compute_emotions(parameters, timeout=None):
    """Ask the backend for the EmotionalState produced by these parameters."""
    data = _post("/calculate-emotions", parameters.to_payload(), timeout)
    return EmotionalState.from_payload(data)


def send_message(message, parameters, timeout=None):
    """Send a chat message along with the current parameters. Returns the reply text."""
    data = _post(
        "/send-message",
        {"message": message, "parameters": parameters.to_payload()},
        timeout,
    )
    reply = data.get("reply") if isinstance(data, dict) else None
    if not isinstance(reply, str):
        raise MalformedResponse("POST /send-message returned no 'reply' string")
    return reply


async def compute_emotions_async(parameters):
    """Async wrapper for compute_emotions."""
    return await asyncio.to_thread(compute_emotions, parameters)


async def send_message_async(message, parameters):
    """Async wrapper for send_message."""
    return await asyncio.to_thread(send_message, message, parameters)

