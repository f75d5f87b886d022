from __future__ import annotations
import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

MIN_GRADING_TIMEOUT = 8.0
MAX_GRADING_TIMEOUT = 30.0

@dataclass(frozen=True)
class Settings:
    database_url: str
    gemini_api_key: str | None
    llm_model: str
    grading_timeout: float = 30.0  # seconds, 8..30
    feedback_lang: str = "en"  # en/vi

def _parse_timeout(raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError("GRADING_TIMEOUT_SECONDS must be a number")
    if not MIN_GRADING_TIMEOUT <= value <= MAX_GRADING_TIMEOUT:
        raise RuntimeError(
            f"GRADING_TIMEOUT_SECONDS must be between {MIN_GRADING_TIMEOUT:g} and {MAX_GRADING_TIMEOUT:g}"
        )
    return value

def load_settings() -> Settings:
    load_dotenv()
    database_url = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./data/recall.db")
    gemini_api_key = os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY") or None
    llm_model = os.getenv("LLM_MODEL", "gemini-2.5-flash").strip()
    grading_timeout = _parse_timeout(os.getenv("GRADING_TIMEOUT_SECONDS", "30").strip())
    feedback_lang = os.getenv("FEEDBACK_LANG", "en").strip().lower()
    if feedback_lang not in {"en", "vi"}:
        raise RuntimeError("FEEDBACK_LANG must be en or vi")

    return Settings(
        database_url=database_url,
        gemini_api_key=gemini_api_key,
        llm_model=llm_model,
        grading_timeout=grading_timeout,
        feedback_lang=feedback_lang,
    )
