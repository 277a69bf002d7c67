from .client import AiCheckClient, AiCheckError, interpret_ai_response

__all__ = ["AiCheckClient", "AiCheckError", "interpret_ai_response"]
