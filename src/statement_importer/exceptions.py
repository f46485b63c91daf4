class StatementImporterError(Exception):
    """Base class for every error raised by the importer."""


class NumberParseException(StatementImporterError):
    def __init__(self, text: str, reason: str):
        super().__init__(f"Cannot parse amount '{text}': {reason}")
        self.text = text
        self.reason = reason


class DateParseException(StatementImporterError):
    def __init__(self, text: str, reason: str = "unrecognized date format"):
        super().__init__(f"Cannot parse date '{text}': {reason}")
        self.text = text
        self.reason = reason


class InvalidDateException(DateParseException):
    """The text matched a date format but names a day that does not exist."""

    def __init__(self, text: str, day: int, month: int, year: int):
        super().__init__(text, f"invalid date {day:02d}.{month:02d}.{year}")
        self.day = day
        self.month = month
        self.year = year


class ProviderException(StatementImporterError):
    def __init__(self, provider: str, message: str):
        super().__init__(f"[{provider}] {message}")
        self.provider = provider


class ProviderUnavailableException(ProviderException):
    def __init__(self, provider: str, message: str = "provider is not available"):
        super().__init__(provider, message)


class ProviderRateLimitException(ProviderException):
    def __init__(self, provider: str, retry_after_ms: int | None = None):
        super().__init__(provider, "rate limit exceeded")
        self.retry_after_ms = retry_after_ms


class ProviderQuotaExceededException(ProviderException):
    def __init__(self, provider: str, message: str = "quota exceeded"):
        super().__init__(provider, message)
