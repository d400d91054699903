import base64
import os
from typing import Optional

from huggingface_hub import InferenceClient

from rx_companion.core.config import (
    HF_MAX_TOKENS,
    HF_MODEL_OCR,
    HF_TIMEOUT_S,
)
from rx_companion.core.errors import RecognitionError

class HFOCRError(RecognitionError):
    pass

def hf_image_to_text(
    image_bytes: bytes,
    prompt: str,
    *,
    mime_type: str = "image/jpeg",
    model: Optional[str] = None,
    max_tokens: Optional[int] = None,
    timeout_s: Optional[int] = None,
) -> str:
    # read token + provider at runtime (prevents stale cached value)
    token = os.getenv("HF_TOKEN", "").strip()
    if not token:
        raise HFOCRError("HF_TOKEN is missing. Set it in config.env and restart.")
    provider = os.getenv("HF_PROVIDER", "auto").strip() or "auto"

    client = InferenceClient(
        provider=provider,
        api_key=token,
        timeout=float(timeout_s or HF_TIMEOUT_S),
    )

    data_uri = f"data:{mime_type};base64,{base64.b64encode(image_bytes).decode('ascii')}"
    messages = [
        {
            "role": "user",
            "content": [
                {"type": "text", "text": prompt},
                {"type": "image_url", "image_url": {"url": data_uri}},
            ],
        },
    ]

    try:
        out = client.chat_completion(
            model=model or HF_MODEL_OCR,
            messages=messages,
            temperature=0,
            max_tokens=max_tokens if max_tokens is not None else HF_MAX_TOKENS,
        )
    except Exception as e:
        raise HFOCRError(f"HF inference failed: {e}") from e

    return out.choices[0].message.content or ""
