from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

DEFAULT_EMPTY_REPLY = "Sorry, I could not come up with a reply. Please try again."


def _flag(name: str, default: str = "0") -> bool:
    return (os.getenv(name) or default).strip().lower() in ("1", "true", "yes", "on")


def _csv(name: str, default: str) -> List[str]:
    raw = os.getenv(name) or default
    return [x.strip() for x in raw.split(",") if x.strip()]


@dataclass
class Settings:
    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-flash"
    temperature: float = 0.7
    max_output_tokens: int = 500
    system_instruction: str = ""
    demo: bool = False
    local_only: bool = False
    ollama_model: str = "llama3.2:3b"
    ollama_path: str = "ollama"
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:5173"])
    log_level: str = "INFO"
    empty_reply_placeholder: str = DEFAULT_EMPTY_REPLY
    port: int = 3000

    @property
    def backend(self) -> str:
        if self.demo:
            return "demo"
        if self.local_only:
            return "ollama"
        return "gemini"


def load_settings() -> Settings:
    """Build settings from the environment (and a `.env` file if present)."""
    load_dotenv()
    return Settings(
        gemini_api_key=(os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY") or "").strip(),
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-1.5-flash").strip(),
        temperature=float(os.getenv("GEMINI_TEMPERATURE", "0.7")),
        max_output_tokens=int(os.getenv("GEMINI_MAX_OUTPUT_TOKENS", "500")),
        system_instruction=os.getenv("GEMINI_SYSTEM_INSTRUCTION", "").strip(),
        demo=_flag("DEMO_MOCK"),
        local_only=_flag("LOCAL_ONLY"),
        ollama_model=os.getenv("OLLAMA_MODEL", "llama3.2:3b").strip(),
        ollama_path=os.getenv("OLLAMA_PATH", "ollama").strip(),
        cors_origins=_csv("CORS_ORIGINS", "http://localhost:5173"),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        empty_reply_placeholder=os.getenv("EMPTY_REPLY_PLACEHOLDER") or DEFAULT_EMPTY_REPLY,
        port=int(os.getenv("PORT", "3000")),
    )


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # Reduce noise from libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
