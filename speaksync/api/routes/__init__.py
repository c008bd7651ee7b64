from . import civic, learner, lessons, news

__all__ = ["civic", "learner", "lessons", "news"]
