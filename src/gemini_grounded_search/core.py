"""
gemini_grounded_search.core
Grounded Gemini queries: builds the request around the Google Search tool,
turns the SDK response into text plus cited sources, and resolves the
sources' redirect URLs before handing the response back.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

import requests

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from .config import (
    DEFAULT_MODEL_NAME, DEFAULT_REQUEST_TIMEOUT, DEFAULT_TEMPERATURE,
    ClientConfig, ResolverConfig, SafetySetting, load_api_key,
    validate_safety_settings, validate_sampling,
)
from .context import Context, background
from .errors import (
    APIError, ContentBlockedError, InvalidParameterError,
    NoContentGeneratedError,
)
from .grounding import GroundingAttribution, extract_grounding_attributions, new_google_search_tool
from .redirects import resolve_all_redirects

__all__ = ['GenerationParams', 'Response', 'ModelInfo', 'GroundedSearchClient', 'process_response']

logger = logging.getLogger(__name__)


@dataclass
class GenerationParams:
    """Per-request overrides; None leaves the client default in place."""
    prompt: str
    model_name: Optional[str] = None
    temperature: Optional[float] = None
    top_k: Optional[int] = None
    top_p: Optional[float] = None
    max_output_tokens: Optional[int] = None
    candidate_count: Optional[int] = None
    stop_sequences: Optional[List[str]] = None
    safety_settings: Optional[List[SafetySetting]] = None


@dataclass
class Response:
    generated_text: str
    grounding_attributions: List[GroundingAttribution] = field(default_factory=list)
    search_suggestions: List[str] = field(default_factory=list)
    prompt_feedback: Any = None
    candidates: List[Any] = field(default_factory=list)
    raw_response: Any = None

    def to_dict(self) -> dict:
        return {
            "generated_text": self.generated_text,
            "grounding_attributions": [dataclasses.asdict(a) for a in self.grounding_attributions],
            "search_suggestions": list(self.search_suggestions),
        }


@dataclass
class ModelInfo:
    name: str
    display_name: str = ""
    description: str = ""
    supported_actions: List[str] = field(default_factory=list)


def _sdk_safety_settings(settings: List[SafetySetting]) -> List[types.SafetySetting]:
    return [types.SafetySetting(category=s.category, threshold=s.threshold) for s in settings]


class GroundedSearchClient:
    """Gemini client configured for Google Search grounded generation.

    The API key falls back to ``load_api_key()`` when omitted. Every keyword
    maps onto a ``ClientConfig`` field and is validated on construction.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        model_name: str = DEFAULT_MODEL_NAME,
        temperature: Optional[float] = DEFAULT_TEMPERATURE,
        max_output_tokens: Optional[int] = None,
        top_k: Optional[int] = None,
        top_p: Optional[float] = None,
        safety_settings: Optional[List[SafetySetting]] = None,
        thinking_level: Optional[str] = None,
        http_session: Optional[requests.Session] = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        disable_google_search_tool: bool = False,
        no_redirection: bool = False,
        resolver_config: Optional[ResolverConfig] = None,
        show_progress: bool = False,
    ):
        self.config = ClientConfig(
            api_key=api_key or load_api_key() or "",
            model_name=model_name,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
            top_k=top_k,
            top_p=top_p,
            safety_settings=safety_settings,
            thinking_level=thinking_level,
            http_session=http_session,
            request_timeout=request_timeout,
            disable_google_search_tool=disable_google_search_tool,
            no_redirection=no_redirection,
            resolver=resolver_config or ResolverConfig(),
            show_progress=show_progress,
        )
        self.config.validate()

        self._genai = genai.Client(api_key=self.config.api_key)
        self._default_config = self._build_default_config()

    def _build_default_config(self) -> types.GenerateContentConfig:
        cfg = self.config
        kwargs: dict = {}
        if cfg.temperature is not None:
            kwargs['temperature'] = cfg.temperature
        if cfg.top_k is not None:
            kwargs['top_k'] = float(cfg.top_k)
        if cfg.top_p is not None:
            kwargs['top_p'] = cfg.top_p
        if cfg.max_output_tokens is not None:
            kwargs['max_output_tokens'] = cfg.max_output_tokens
        if cfg.safety_settings:
            kwargs['safety_settings'] = _sdk_safety_settings(cfg.safety_settings)
        if cfg.thinking_level:
            kwargs['thinking_config'] = types.ThinkingConfig(thinking_level=cfg.thinking_level.upper())
        if not cfg.disable_google_search_tool:
            kwargs['tools'] = [new_google_search_tool()]
        return types.GenerateContentConfig(**kwargs)

    def close(self) -> None:
        close = getattr(self._genai, 'close', None)
        if close is not None:
            close()

    def __enter__(self) -> 'GroundedSearchClient':
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def list_models(self) -> List[ModelInfo]:
        """Return every model visible to this API key, across all pages."""
        try:
            return [
                ModelInfo(
                    name=m.name or "",
                    display_name=getattr(m, 'display_name', None) or "",
                    description=getattr(m, 'description', None) or "",
                    supported_actions=list(getattr(m, 'supported_actions', None) or []),
                )
                for m in self._genai.models.list()
            ]
        except genai_errors.APIError as e:
            raise _wrap_sdk_error(e) from e
        except Exception as e:
            raise APIError(0, f"listing models failed: {e}", status='UNKNOWN') from e

    # -------------------------------------------------------------------------
    # GENERATION
    # -------------------------------------------------------------------------

    def generate_grounded_content(self, query: str, ctx: Optional[Context] = None) -> Response:
        """Answer ``query`` with the client's default settings."""
        if not query:
            raise InvalidParameterError("query cannot be empty")
        return self.generate_grounded_content_with_params(GenerationParams(prompt=query), ctx)

    def generate_grounded_content_with_params(
        self, params: GenerationParams, ctx: Optional[Context] = None
    ) -> Response:
        if params is None:
            raise InvalidParameterError("generation parameters cannot be None")
        if not params.prompt:
            raise InvalidParameterError("prompt within generation parameters cannot be empty")
        validate_sampling(params.temperature, params.max_output_tokens, params.top_k, params.top_p)
        if params.safety_settings:
            validate_safety_settings(params.safety_settings)

        model = params.model_name or self.config.model_name

        ctx = ctx or background()
        cancel = None
        if self.config.request_timeout > 0 and ctx.deadline() is None:
            ctx, cancel = ctx.with_timeout(self.config.request_timeout)
        try:
            config = self._request_config(params, ctx)
            contents = [types.Content(role='user', parts=[types.Part(text=params.prompt)])]
            logger.debug("Generating grounded content with %s", model)
            try:
                raw = self._genai.models.generate_content(model=model, contents=contents, config=config)
            except genai_errors.APIError as e:
                raise _wrap_sdk_error(e) from e
            except Exception as e:
                raise APIError(0, f"genai API call failed: {e}", status='UNKNOWN') from e

            response = process_response(raw)
            if not self.config.no_redirection:
                resolve_all_redirects(
                    ctx,
                    response.grounding_attributions,
                    session=self.config.http_session,
                    config=self.config.resolver,
                    show_progress=self.config.show_progress,
                )
            return response
        finally:
            if cancel is not None:
                cancel()

    def _request_config(self, params: GenerationParams, ctx: Context) -> types.GenerateContentConfig:
        # copy so per-request overrides never leak into the client defaults
        config = self._default_config.model_copy(deep=True)
        if params.temperature is not None:
            config.temperature = params.temperature
        if params.top_k is not None:
            config.top_k = float(params.top_k)
        if params.top_p is not None:
            config.top_p = params.top_p
        if params.max_output_tokens is not None:
            config.max_output_tokens = params.max_output_tokens
        if params.candidate_count is not None:
            config.candidate_count = params.candidate_count
        if params.stop_sequences:
            config.stop_sequences = list(params.stop_sequences)
        if params.safety_settings:
            config.safety_settings = _sdk_safety_settings(params.safety_settings)
        remaining = ctx.remaining()
        if remaining is not None:
            # HttpOptions.timeout is in milliseconds
            config.http_options = types.HttpOptions(timeout=max(1, int(remaining * 1000)))
        return config

# -----------------------------------------------------------------------------
# RESPONSE PROCESSING
# -----------------------------------------------------------------------------

def _wrap_sdk_error(e: genai_errors.APIError) -> APIError:
    code = getattr(e, 'code', 0) or 0
    status = getattr(e, 'status', None)
    message = getattr(e, 'message', None) or str(e)
    details = getattr(e, 'details', None)
    details = [details] if details else []
    reason = None
    if status == 'INVALID_ARGUMENT' and 'SAFETY' in f"{message} {details}".upper():
        reason = ContentBlockedError()
    return APIError(code, message, status=status, details=details, reason=reason)


def _enum_name(value: Any) -> str:
    return getattr(value, 'name', None) or str(value or '')


def process_response(raw: Any) -> Response:
    """Convert a ``GenerateContentResponse`` into a ``Response``.

    Raises ContentBlockedError for blocked prompts or safety stops and
    NoContentGeneratedError when there is nothing usable in the reply.
    """
    if raw is None:
        raise NoContentGeneratedError("received no response from API without explicit error")

    feedback = getattr(raw, 'prompt_feedback', None)
    block_reason = _enum_name(getattr(feedback, 'block_reason', None))
    if block_reason and block_reason != 'BLOCKED_REASON_UNSPECIFIED':
        message = f"prompt blocked due to {block_reason}"
        if getattr(feedback, 'block_reason_message', None):
            message += f": {feedback.block_reason_message}"
        raise ContentBlockedError(message)

    candidates = getattr(raw, 'candidates', None) or []
    if not candidates:
        raise NoContentGeneratedError()

    candidate = candidates[0]
    if _enum_name(getattr(candidate, 'finish_reason', None)) == 'SAFETY':
        ratings = getattr(candidate, 'safety_ratings', None)
        details = f" (ratings: {ratings})" if ratings else ""
        raise ContentBlockedError(f"content generation stopped due to safety filters{details}")

    content = getattr(candidate, 'content', None)
    parts = getattr(content, 'parts', None) or []
    if not parts:
        raise NoContentGeneratedError()
    text = "".join(p.text for p in parts if getattr(p, 'text', None))

    metadata = getattr(candidate, 'grounding_metadata', None)
    attributions = extract_grounding_attributions(metadata)
    suggestions = list(getattr(metadata, 'web_search_queries', None) or [])

    if not text and not attributions:
        raise NoContentGeneratedError()

    return Response(
        generated_text=text,
        grounding_attributions=attributions,
        search_suggestions=suggestions,
        prompt_feedback=feedback,
        candidates=list(candidates),
        raw_response=raw,
    )
