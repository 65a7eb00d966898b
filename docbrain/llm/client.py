# docbrain/llm/client.py

import logging
import os
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

import google.generativeai as genai
from openai import OpenAI

from docbrain.config import GEMINI_MODEL, LLM_REQUEST_TIMEOUT_SECONDS
from docbrain.errors import ModelCallError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Completion:
    text: str
    model: str


class LLMClient:
    """
    Chat completion client with provider fallback.

    Fallback order (STRICT):

    1. OpenAI (primary, honours the requested model)
    2. Gemini (secondary, always GEMINI_MODEL)

    Each provider is called once per request; the SDK's own retries
    are disabled. When every provider fails, ModelCallError is raised
    and the caller decides what to do with it.
    """

    def __init__(self, openai_client: Optional[OpenAI] = None, gemini_model=None):

        self.openai: Optional[OpenAI] = openai_client
        self.gemini_model = gemini_model

        if self.openai is None:
            self._init_openai()

        if self.gemini_model is None:
            self._init_gemini()

        logger.info(
            "LLM initialization complete",
            extra={"providers": self.providers},
        )

    # ============================================================
    # INITIALIZATION
    # ============================================================

    def _init_openai(self):

        key = os.getenv("OPENAI_API_KEY")

        if not key:
            logger.warning("OpenAI API key missing")
            return

        try:

            self.openai = OpenAI(
                api_key=key,
                timeout=LLM_REQUEST_TIMEOUT_SECONDS,
                max_retries=0,
            )

            logger.info("OpenAI initialized successfully")

        except Exception as e:

            logger.error(
                "OpenAI initialization failed",
                extra={"error": str(e)},
            )

    def _init_gemini(self):

        key = os.getenv("GEMINI_API_KEY")

        if not key:
            logger.warning("Gemini API key missing")
            return

        try:

            genai.configure(api_key=key)

            self.gemini_model = genai.GenerativeModel(model_name=GEMINI_MODEL)

            logger.info("Gemini initialized successfully")

        except Exception as e:

            logger.error(
                "Gemini initialization failed",
                extra={"error": str(e)},
            )

    @property
    def providers(self) -> List[str]:

        providers = []

        if self.openai is not None:
            providers.append("openai")

        if self.gemini_model is not None:
            providers.append("gemini")

        return providers

    # ============================================================
    # PUBLIC API
    # ============================================================

    def complete(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        temperature: float,
        json_mode: bool = False,
    ) -> Completion:

        logger.info(
            "LLM request started",
            extra={
                "requested_model": model,
                "providers": self.providers,
                "prompt_length": len(system_prompt) + len(user_prompt),
                "json_mode": json_mode,
            },
        )

        errors = []

        if self.openai is not None:

            try:

                return self._timed_call(
                    "openai",
                    lambda: self._complete_openai(
                        model, system_prompt, user_prompt, max_tokens, temperature, json_mode
                    ),
                )

            except Exception as e:

                errors.append(f"openai: {e}")

                logger.warning(
                    "OpenAI failed",
                    extra={"error": str(e), "error_type": type(e).__name__},
                )

        if self.gemini_model is not None:

            try:

                return self._timed_call(
                    "gemini",
                    lambda: self._complete_gemini(
                        system_prompt, user_prompt, max_tokens, temperature, json_mode
                    ),
                )

            except Exception as e:

                errors.append(f"gemini: {e}")

                logger.warning(
                    "Gemini failed",
                    extra={"error": str(e), "error_type": type(e).__name__},
                )

        if not errors:
            raise ModelCallError("No LLM backend available")

        raise ModelCallError("; ".join(errors))

    # ============================================================
    # PROVIDERS
    # ============================================================

    def _complete_openai(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        temperature: float,
        json_mode: bool,
    ) -> Completion:

        kwargs = {}

        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = self.openai.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
            **kwargs,
        )

        text = response.choices[0].message.content

        if not text:
            raise ModelCallError("OpenAI returned empty response")

        return Completion(text=text.strip(), model=response.model or model)

    def _complete_gemini(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        temperature: float,
        json_mode: bool,
    ) -> Completion:

        generation_config = {
            "max_output_tokens": max_tokens,
            "temperature": temperature,
        }

        if json_mode:
            generation_config["response_mime_type"] = "application/json"

        response = self.gemini_model.generate_content(
            f"{system_prompt}\n\n{user_prompt}",
            generation_config=generation_config,
        )

        if not response or not response.text:
            raise ModelCallError("Gemini returned empty response")

        return Completion(text=response.text.strip(), model=GEMINI_MODEL)

    # ============================================================
    # LATENCY OBSERVABILITY
    # ============================================================

    def _timed_call(self, provider: str, fn: Callable[[], Completion]) -> Completion:

        start = time.time()

        result = fn()

        latency = time.time() - start

        logger.info(
            "LLM provider success",
            extra={
                "provider": provider,
                "model": result.model,
                "latency_seconds": round(latency, 3),
            },
        )

        return result
