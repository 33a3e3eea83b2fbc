"""Blueprints package."""

from .chat import chat_bp
from .skills import skills_bp

__all__ = [
    "chat_bp",
    "skills_bp",
]
