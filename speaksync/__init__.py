"""SpeakSync content cache and learner sync service."""

__version__ = "0.1.0"
