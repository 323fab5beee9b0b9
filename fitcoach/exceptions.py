"""Exception hierarchy for FitCoach."""


class FitCoachError(Exception):
    """Base exception for all FitCoach errors."""


class Unauthenticated(FitCoachError):
    """Raised when a request carries no valid session."""


class Forbidden(FitCoachError):
    """Raised when an authenticated principal lacks the required role."""


class NotFound(FitCoachError):
    """Raised when a referenced profile or organization does not exist."""


class UpstreamUnavailable(FitCoachError):
    """Raised when the database or session provider cannot be reached."""


class ConfigError(FitCoachError, ValueError):
    """Raised when configuration is invalid."""
