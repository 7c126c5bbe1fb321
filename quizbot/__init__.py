"""
Song Quiz Bot

A FastAPI application that plays song-quiz rounds unattended, answering
from a local answer cache and title heuristics, and deferring to a human
operator when no answer can be decided.
"""

__version__ = "1.0.0"
