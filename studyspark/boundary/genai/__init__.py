"""
Generative model boundary.

Exports: GeminiClient
"""

from .gemini_client import GeminiClient

__all__ = ["GeminiClient"]
