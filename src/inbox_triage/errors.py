"""Exception types shared across the triage pipeline."""


class TriageError(Exception):
    """Base class for triage errors."""


class ConfigurationError(TriageError):
    """Raised when a required setting is absent or invalid."""


class RegistrationError(TriageError):
    """Raised when an agent registration is rejected."""
