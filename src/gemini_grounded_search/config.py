"""
gemini_grounded_search.config
Defaults, API key discovery and validated configuration for the client and
the redirect resolver.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import requests

from .errors import InvalidModelNameError, InvalidParameterError, MissingAPIKeyError

__all__ = [
    'LIBRARY_NAME', 'DEFAULT_MODEL_NAME', 'DEFAULT_TEMPERATURE', 'DEFAULT_REQUEST_TIMEOUT',
    'THINKING_LEVELS', 'load_api_key', 'SafetySetting', 'ResolverConfig', 'ClientConfig',
    'validate_sampling', 'validate_safety_settings',
]

LIBRARY_NAME = "gemini-grounded-search"

DEFAULT_MODEL_NAME = "gemini-2.5-flash"
# 0.0 keeps grounded answers as factual as the model allows.
DEFAULT_TEMPERATURE = 0.0
DEFAULT_REQUEST_TIMEOUT = 60.0

THINKING_LEVELS = ('MINIMAL', 'LOW', 'MEDIUM', 'HIGH')

# -----------------------------------------------------------------------------
# API KEY LOADING
# -----------------------------------------------------------------------------

def load_api_key(path: str = "api.json") -> Optional[str]:
    """Return API key string or None.

    Order of precedence:
      1. Environment variable 'GEMINI_API_KEY'
      2. JSON file at `path` containing {"gemini_key": "..."}
    """
    env_key = os.getenv("GEMINI_API_KEY")
    if env_key:
        return env_key.strip()
    p = Path(path)
    if p.exists():
        try:
            with p.open('r') as f:
                return json.load(f).get("gemini_key")
        except (OSError, ValueError, AttributeError):
            return None
    return None

# -----------------------------------------------------------------------------
# CONFIG OBJECTS
# -----------------------------------------------------------------------------

@dataclass
class SafetySetting:
    category: str   # e.g. HARM_CATEGORY_HARASSMENT
    threshold: str  # e.g. BLOCK_MEDIUM_AND_ABOVE


@dataclass(frozen=True)
class ResolverConfig:
    """Tunables for redirect resolution; tests inject compressed timings."""
    max_workers: int = 8
    probe_timeout: float = 3.0
    batch_deadline_cap: float = 20.0
    default_batch_budget: float = 15.0

    def __post_init__(self):
        if self.max_workers <= 0:
            raise InvalidParameterError(f"max_workers must be positive, got {self.max_workers}")
        for name in ('probe_timeout', 'batch_deadline_cap', 'default_batch_budget'):
            if getattr(self, name) <= 0:
                raise InvalidParameterError(f"{name} must be positive, got {getattr(self, name)}")


@dataclass
class ClientConfig:
    api_key: str
    model_name: str = DEFAULT_MODEL_NAME
    temperature: Optional[float] = DEFAULT_TEMPERATURE
    max_output_tokens: Optional[int] = None
    top_k: Optional[int] = None
    top_p: Optional[float] = None
    safety_settings: Optional[List[SafetySetting]] = None
    thinking_level: Optional[str] = None
    # Only used to probe citation redirects; the genai SDK manages its own transport.
    http_session: Optional[requests.Session] = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    disable_google_search_tool: bool = False
    no_redirection: bool = False
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    # tqdm bar while citation redirects resolve
    show_progress: bool = False

    def validate(self) -> None:
        """Raise on the first invalid field."""
        if not self.api_key:
            raise MissingAPIKeyError()
        if not self.model_name:
            raise InvalidModelNameError()
        validate_sampling(self.temperature, self.max_output_tokens, self.top_k, self.top_p)
        if self.safety_settings is not None:
            validate_safety_settings(self.safety_settings)
        if self.thinking_level is not None and self.thinking_level.upper() not in THINKING_LEVELS:
            raise InvalidParameterError(
                f"invalid thinking level {self.thinking_level!r}: must be one of minimal, low, medium, high"
            )
        if self.request_timeout < 0:
            raise InvalidParameterError(f"request timeout cannot be negative, got {self.request_timeout}")


def validate_sampling(
    temperature: Optional[float] = None,
    max_output_tokens: Optional[int] = None,
    top_k: Optional[int] = None,
    top_p: Optional[float] = None,
) -> None:
    if temperature is not None and not 0.0 <= temperature <= 2.0:
        raise InvalidParameterError(f"temperature must be between 0.0 and 2.0, got {temperature}")
    if max_output_tokens is not None and max_output_tokens <= 0:
        raise InvalidParameterError(f"max output tokens must be positive, got {max_output_tokens}")
    if top_k is not None and top_k <= 0:
        raise InvalidParameterError(f"top_k must be positive if set, got {top_k}")
    if top_p is not None and not 0.0 < top_p <= 1.0:
        raise InvalidParameterError(
            f"top_p must be between 0.0 (exclusive) and 1.0 (inclusive), got {top_p}"
        )


def validate_safety_settings(settings: List[SafetySetting]) -> None:
    for s in settings:
        if s is None:
            raise InvalidParameterError("safety setting cannot be None")
        if not s.category or not s.threshold:
            raise InvalidParameterError("safety setting category and threshold cannot be empty")
