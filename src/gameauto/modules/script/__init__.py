from .linear import LinearScriptRunner

__all__ = ["LinearScriptRunner"]
