"""Spoken-answer judging service for voice quizzes."""

__version__ = "0.1.0"
