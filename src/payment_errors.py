class PaymentsError(Exception):
    """Base class for errors raised while processing a transaction log."""


class MalformedRecord(PaymentsError, ValueError):
    """A record is missing required fields or carries values that cannot be parsed. Skipped, run continues."""


class SourceExhaustedOrFailed(PaymentsError, IOError):
    """The record source could not be opened or read. Fatal to the run."""
