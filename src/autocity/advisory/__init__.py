"""External advisory boundary and its local fallback."""

from .client import AdvisoryClient, ChatCompletionsAdvisoryClient, OfflineAdvisoryClient
from .parsing import (
    AdvisoryResponseError,
    build_analysis_prompt,
    extract_priorities,
    fallback_analysis,
    parse_advisory_content,
)

__all__ = [
    "AdvisoryClient",
    "AdvisoryResponseError",
    "ChatCompletionsAdvisoryClient",
    "OfflineAdvisoryClient",
    "build_analysis_prompt",
    "extract_priorities",
    "fallback_analysis",
    "parse_advisory_content",
]
