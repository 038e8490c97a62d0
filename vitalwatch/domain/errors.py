"""Exceptions raised by the detection engine and its orchestrators."""


class VitalWatchError(Exception):
    """Base class for errors raised deliberately by vitalwatch."""


class ConfigurationError(VitalWatchError, RuntimeError):
    """A required collaborator was not wired. Not recoverable by the engine."""
