"""
Cricket trivia quiz generation.
"""
__version__ = "0.1.0"
