"""
Model backends behind a common gateway.

A gateway receives the ordered conversation history (the newest user turn
last) and either returns the whole reply or yields it as text fragments.
Every backend failure surfaces as 'UpstreamError'; a stream may raise it
after some fragments were already yielded.
"""
from __future__ import annotations

import logging
import subprocess
import tempfile
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, List

import google.generativeai as genai

from .config import Settings
from .errors import UpstreamError
from .store import Role, Turn

logger = logging.getLogger(__name__)


class ModelGateway(ABC):
    name = "base"

    @abstractmethod
    def complete(self, history: List[Turn]) -> str:
        """Return the finished reply for the given history."""

    @abstractmethod
    def stream(self, history: List[Turn]) -> Iterator[str]:
        """Yield non-empty reply fragments in order."""


def to_gemini_contents(history: List[Turn]) -> List[Dict[str, Any]]:
    contents = []
    for turn in history:
        if not turn.text:
            continue
        role = "user" if turn.role is Role.USER else "model"
        contents.append({"role": role, "parts": [turn.text]})
    return contents


class GeminiGateway(ModelGateway):
    name = "gemini"

    def __init__(
        self,
        api_key: str,
        model_name: str = "gemini-1.5-flash",
        temperature: float = 0.7,
        max_output_tokens: int = 500,
        system_instruction: str = "",
    ) -> None:
        self.api_key = api_key
        self.model_name = model_name
        self.generation_config = genai.GenerationConfig(
            temperature=temperature,
            max_output_tokens=max_output_tokens,
        )
        self.system_instruction = system_instruction or None
        self._model = None

    def _get_model(self):
        if not self.api_key:
            raise UpstreamError("Missing GEMINI_API_KEY. Set environment variable GEMINI_API_KEY.")
        if self._model is None:
            try:
                genai.configure(api_key=self.api_key)
                self._model = genai.GenerativeModel(
                    self.model_name,
                    generation_config=self.generation_config,
                    system_instruction=self.system_instruction,
                )
            except Exception as e:
                raise UpstreamError(f"Gemini client setup failed: {e}") from e
        return self._model

    def complete(self, history: List[Turn]) -> str:
        model = self._get_model()
        try:
            response = model.generate_content(to_gemini_contents(history))
            return response.text
        except Exception as e:
            raise UpstreamError(f"Gemini call failed: {e}") from e

    def stream(self, history: List[Turn]) -> Iterator[str]:
        model = self._get_model()
        try:
            response = model.generate_content(to_gemini_contents(history), stream=True)
            for chunk in response:
                if chunk.text:
                    yield chunk.text
        except Exception as e:
            raise UpstreamError(f"Gemini call failed: {e}") from e


def build_local_prompt(history: List[Turn], max_turns: int = 8) -> str:
    # Keep history short so a small local model is not overwhelmed
    hist = ""
    for turn in history[-max_turns:]:
        hist += f"{turn.role.value.upper()}: {turn.text}\n"
    return f"CHAT HISTORY:\n{hist}\nASSISTANT:"


class OllamaGateway(ModelGateway):
    """Local model through the `ollama run` command line."""

    name = "ollama"

    def __init__(self, model: str = "llama3.2:3b", ollama_path: str = "ollama") -> None:
        self.model = model
        self.ollama_path = ollama_path

    def _command(self, history: List[Turn]) -> List[str]:
        return [self.ollama_path, "run", self.model, build_local_prompt(history)]

    def complete(self, history: List[Turn]) -> str:
        try:
            r = subprocess.run(
                self._command(history),
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="ignore",
            )
        except OSError as e:
            raise UpstreamError(f"Ollama local call failed: {e}") from e
        if r.returncode != 0:
            raise UpstreamError(r.stderr.strip() or "ollama failed")
        return r.stdout.strip()

    def stream(self, history: List[Turn]) -> Iterator[str]:
        # stderr carries progress output; spool it to a file so a full pipe
        # never blocks the child while stdout is being read
        errlog = tempfile.TemporaryFile()
        try:
            proc = subprocess.Popen(
                self._command(history),
                stdout=subprocess.PIPE,
                stderr=errlog,
                text=True,
                encoding="utf-8",
                errors="ignore",
            )
        except OSError as e:
            errlog.close()
            raise UpstreamError(f"Ollama local call failed: {e}") from e

        try:
            for line in proc.stdout:
                if line:
                    yield line
            proc.wait()
            if proc.returncode != 0:
                errlog.seek(0)
                message = errlog.read().decode("utf-8", errors="ignore").strip()
                raise UpstreamError(message or "ollama failed")
        finally:
            if proc.poll() is None:
                proc.kill()
                proc.wait()
            proc.stdout.close()
            errlog.close()


class DemoGateway(ModelGateway):
    """Offline backend with a canned reply, for running without credentials."""

    name = "demo"

    def __init__(self, chunk_size: int = 10) -> None:
        self.chunk_size = chunk_size

    def complete(self, history: List[Turn]) -> str:
        last = next((t.text for t in reversed(history) if t.role is Role.USER), "")
        return (
            f"(demo) You said: {last}\n"
            "I am running without a model backend. Set GEMINI_API_KEY to get real replies."
        )

    def stream(self, history: List[Turn]) -> Iterator[str]:
        text = self.complete(history)
        for i in range(0, len(text), self.chunk_size):
            yield text[i : i + self.chunk_size]


def build_gateway(settings: Settings) -> ModelGateway:
    if settings.demo:
        gateway: ModelGateway = DemoGateway()
    elif settings.local_only:
        gateway = OllamaGateway(model=settings.ollama_model, ollama_path=settings.ollama_path)
    else:
        gateway = GeminiGateway(
            api_key=settings.gemini_api_key,
            model_name=settings.gemini_model,
            temperature=settings.temperature,
            max_output_tokens=settings.max_output_tokens,
            system_instruction=settings.system_instruction,
        )
    logger.info("Using %s model backend", gateway.name)
    return gateway
