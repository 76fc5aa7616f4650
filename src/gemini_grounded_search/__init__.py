from .config import (
    load_api_key, ClientConfig, ResolverConfig, SafetySetting, DEFAULT_MODEL_NAME,
)
from .context import Context, background
from .core import GroundedSearchClient, GenerationParams, ModelInfo, Response, process_response
from .errors import (
    GeminiSearchError, MissingAPIKeyError, InvalidModelNameError, InvalidParameterError,
    NoContentGeneratedError, ContentBlockedError, APIError,
    is_api_error, is_authentication_error, is_quota_error, is_invalid_request_error,
    is_content_blocked_error, is_server_error,
)
from .grounding import (
    GroundingAttribution, GroundingAttributionSegment, add_citations,
    extract_grounding_attributions, new_google_search_tool,
)
from .redirects import (
    ResolvedRedirect, resolve_redirect, allocate_batch_deadline, resolve_all_redirects,
)

__all__ = [
    'load_api_key', 'ClientConfig', 'ResolverConfig', 'SafetySetting', 'DEFAULT_MODEL_NAME',
    'Context', 'background',
    'GroundedSearchClient', 'GenerationParams', 'ModelInfo', 'Response', 'process_response',
    'GeminiSearchError', 'MissingAPIKeyError', 'InvalidModelNameError', 'InvalidParameterError',
    'NoContentGeneratedError', 'ContentBlockedError', 'APIError',
    'is_api_error', 'is_authentication_error', 'is_quota_error', 'is_invalid_request_error',
    'is_content_blocked_error', 'is_server_error',
    'GroundingAttribution', 'GroundingAttributionSegment', 'add_citations',
    'extract_grounding_attributions', 'new_google_search_tool',
    'ResolvedRedirect', 'resolve_redirect', 'allocate_batch_deadline', 'resolve_all_redirects',
]

__version__ = "0.1.0"
