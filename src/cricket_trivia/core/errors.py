"""
Exception hierarchy. Only the fatal branch is allowed to abort a run.
"""


class TriviaError(Exception):
    """Base error for the trivia pipeline."""


class ConfigurationError(TriviaError):
    """Missing or invalid configuration (e.g. absent credentials). Fatal."""


class CollaboratorUnavailableError(TriviaError):
    """An external service cannot be reached or refuses our credentials. Fatal."""


class SearchAuthError(CollaboratorUnavailableError):
    """The search API rejected the configured key or engine id."""


class MalformedReplyError(TriviaError):
    """A generative reply could not be parsed, even after recovery."""
