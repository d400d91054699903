import base64
import logging
import mimetypes
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import unquote, urlparse

import requests

from rx_companion.core import config
from rx_companion.core.errors import RecognitionError
from rx_companion.services.hf_client import hf_image_to_text
from rx_companion.services.ollama_client import ollama_image_to_text

logger = logging.getLogger(__name__)

OCR_PROMPT = (
    "Transcribe all text printed on this prescription label exactly as it appears.\n"
    "Keep the original line breaks. Do not summarize, translate or add anything.\n"
    "Output only the transcribed text."
)

def load_image(image_uri: str, timeout_s: int = 20) -> Tuple[bytes, str]:
    """Bytes + MIME type for a local path, file://, http(s):// or data: URI."""
    if not image_uri:
        raise RecognitionError("No image to recognize.")

    parsed = urlparse(image_uri)
    if parsed.scheme == "data":
        header, _, b64 = image_uri.partition(",")
        mime = header[len("data:"):].split(";")[0] or "image/jpeg"
        try:
            return base64.b64decode(b64), mime
        except ValueError as e:
            raise RecognitionError(f"Bad data URI: {e}") from e

    if parsed.scheme in ("http", "https"):
        try:
            r = requests.get(image_uri, timeout=timeout_s)
        except requests.RequestException as e:
            raise RecognitionError(f"Could not download image: {e}") from e
        if r.status_code >= 400:
            raise RecognitionError(f"Could not download image: HTTP {r.status_code}")
        return r.content, r.headers.get("Content-Type", "image/jpeg")

    path = Path(unquote(parsed.path) if parsed.scheme == "file" else image_uri)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise RecognitionError(f"Could not read image {path}: {e}") from e
    return data, mimetypes.guess_type(path.name)[0] or "image/jpeg"

def recognize(image_uri: str, provider: Optional[str] = None) -> str:
    """
    image -> raw label text via the configured vision model.
    Raises RecognitionError when nothing usable comes back.
    """
    provider = (provider or config.OCR_PROVIDER).lower()
    if provider == "none":
        raise RecognitionError("Label recognition is disabled.")

    image_bytes, mime = load_image(image_uri)
    if provider == "ollama":
        text = ollama_image_to_text(image_bytes, OCR_PROMPT)
    elif provider == "hf":
        text = hf_image_to_text(image_bytes, OCR_PROMPT, mime_type=mime)
    else:
        raise RecognitionError(f"Unknown OCR provider {provider!r}")

    text = (text or "").strip()
    if not text:
        raise RecognitionError("No text recognized on the image.")
    logger.info("Recognized %d chars via %s", len(text), provider)
    return text
