"""Security policies (CORS)."""

from matchpod.security.cors import (
    CorsOptions,
    apply_cors,
    cors_for_route,
    get_allowed_origins,
    get_cors_options,
    is_origin_allowed,
    origin_matches,
    validate_origin_for_route,
)

__all__ = [
    "CorsOptions",
    "apply_cors",
    "cors_for_route",
    "get_allowed_origins",
    "get_cors_options",
    "is_origin_allowed",
    "origin_matches",
    "validate_origin_for_route",
]
