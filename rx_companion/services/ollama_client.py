import base64
from typing import Any, Dict, Optional

import requests

from rx_companion.core.config import (
    OLLAMA_BASE_URL,
    OLLAMA_MODEL_OCR,
    OLLAMA_TIMEOUT_S,
)
from rx_companion.core.errors import RecognitionError

class OllamaError(RecognitionError):
    pass

def ollama_image_to_text(
    image_bytes: bytes,
    prompt: str,
    model: Optional[str] = None,
    timeout_s: Optional[int] = None,
) -> str:
    """
    Calls Ollama /api/chat with a vision model and returns the assistant text.
    """
    url = f"{OLLAMA_BASE_URL}/chat"
    payload: Dict[str, Any] = {
        "model": model or OLLAMA_MODEL_OCR,
        "messages": [
            {
                "role": "user",
                "content": prompt,
                "images": [base64.b64encode(image_bytes).decode("ascii")],
            },
        ],
        "stream": False,
        "options": {"temperature": 0},
    }

    try:
        r = requests.post(url, json=payload, timeout=timeout_s or OLLAMA_TIMEOUT_S)
    except requests.RequestException as e:
        raise OllamaError(f"Ollama unreachable: {e}") from e
    if r.status_code >= 400:
        raise OllamaError(f"Ollama {r.status_code}: {r.text}")

    data = r.json()
    return (data.get("message") or {}).get("content", "") or ""
