"""
Gemini integration for the Yurie API.

Client construction, retry policy, streaming chat (standard and deep
research), image generation and Veo video generation on top of the
google-genai SDK.
"""

__all__ = []
