# API package - FastAPI components
from .models import (
    Submitter,
    Post,
    PostSubmission,
    CacheClearResponse,
    RebuildResponse,
)
from .routes import router

__all__ = [
    # Models
    "Submitter",
    "Post",
    "PostSubmission",
    "CacheClearResponse",
    "RebuildResponse",
    # Router
    "router",
]
