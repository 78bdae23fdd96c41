"""Custom exception classes."""


class BirthdayReminderError(Exception):
    """Base class for errors raised by the birthday reminder."""
    pass


class StoreQueryError(BirthdayReminderError):
    """Raised when the celebrant query against the database fails."""
    pass


class DeliveryError(BirthdayReminderError):
    """Raised when one email could not be handed to the mail backend."""

    def __init__(self, message, recipient=None):
        super().__init__(message)
        self.recipient = recipient


class ConfigurationError(DeliveryError):
    """Raised when a credential or sender address is missing at send time."""
    pass
