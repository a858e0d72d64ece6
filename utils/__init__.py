# Utils package - Helpers shared across the service
from .urls import (
    origin_of,
    is_same_origin,
    with_query_param,
    build_page_url,
    strip_tracking_params,
)

__all__ = [
    "origin_of",
    "is_same_origin",
    "with_query_param",
    "build_page_url",
    "strip_tracking_params",
]
