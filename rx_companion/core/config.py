import os
from pathlib import Path

from rx_companion.core.env import load_env

load_env()

BASE_DIR = Path(__file__).resolve().parents[2]

RX_DATA_DIR = Path(os.getenv("RX_DATA_DIR", str(BASE_DIR / "data")))
RX_DB_FILE = os.getenv("RX_DB_FILE", "medications.db")
RX_CHECKPOINT_DB_FILE = os.getenv("RX_CHECKPOINT_DB_FILE", "checkpoints.db")

DEFAULT_DOSE_TIME = os.getenv("DEFAULT_DOSE_TIME", "09:00")

# ollama | hf | none
OCR_PROVIDER = os.getenv("OCR_PROVIDER", "ollama").strip().lower()

OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434/api")
OLLAMA_MODEL_OCR = os.getenv("OLLAMA_MODEL_OCR", "llama3.2-vision")
OLLAMA_TIMEOUT_S = int(os.getenv("OLLAMA_TIMEOUT_S", "90"))

HF_MODEL_OCR = os.getenv("HF_MODEL_OCR", "Qwen/Qwen2.5-VL-7B-Instruct")
HF_MAX_TOKENS = int(os.getenv("HF_MAX_TOKENS", "1024"))
HF_TIMEOUT_S = int(os.getenv("HF_TIMEOUT_S", "60"))

NOTIFICATIONS_ENABLED = os.getenv("NOTIFICATIONS_ENABLED", "true").lower() == "true"
# fire_due matches on the minute; ticking at least twice a minute keeps sleep drift from skipping one
MAX_REMINDER_TICK_SECONDS = 30

def parse_tick_seconds(raw: str) -> int:
    return max(0, min(int(raw), MAX_REMINDER_TICK_SECONDS))

REMINDER_TICK_SECONDS = parse_tick_seconds(os.getenv("REMINDER_TICK_SECONDS", "30"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
