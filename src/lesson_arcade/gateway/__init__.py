from .backends import GeminiBackend, OpenAIBackend, create_backend
from .base import ContentBackend, GenerateRequest, classify_error
from .invoker import ModelGateway

__all__ = [
    "ContentBackend",
    "GeminiBackend",
    "GenerateRequest",
    "ModelGateway",
    "OpenAIBackend",
    "classify_error",
    "create_backend",
]
