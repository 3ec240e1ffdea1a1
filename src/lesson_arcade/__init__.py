"""
Lesson Arcade.

Turns a video reference into a quiz-based lesson: a Gemini (or OpenAI) model
plans levels and questions, grades answers, and a local leaderboard keeps the
best five attempts per lesson.
"""

from .config.loader import load_settings

__all__ = ["load_settings"]
