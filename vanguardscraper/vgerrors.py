"""
vanguardscraper.vgerrors
========================

Exception hierarchy shared by the scraper runtime.

Every failure raised by the pipeline derives from :class:`ScraperError` so
callers can catch the whole family in one place. Failures are local to one
scheduled job; the scheduler logs them and moves on to the next trigger.
"""


class ScraperError(Exception):
    """Base class for every error raised by :mod:`vanguardscraper`."""


class ConfigError(ScraperError):
    """Configuration or credentials are missing or malformed."""


class ParseError(ScraperError, ValueError):
    """A table cell could not be converted into an exact decimal."""

    def __init__(self, text: object) -> None:
        self.text = text
        super().__init__(f"not a decimal value: {text!r}")


class ExtractionError(ScraperError):
    """One extraction attempt failed; the job retry policy may try again."""


class PortalError(ExtractionError):
    """The browser raised while talking to the portal."""


class ElementNotFoundError(ExtractionError):
    """A selector did not resolve within the bounded polling window."""

    def __init__(self, selector: str, attempts: int) -> None:
        self.selector = selector
        self.attempts = attempts
        super().__init__(
            f"failed to find element on page: {selector!r} after {attempts} attempts",
        )


class MaxRetriesError(ScraperError):
    """Every extraction attempt of a job failed."""

    def __init__(self, attempts: int, last_error: BaseException | None = None) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"max retries attempted ({attempts})")


class StorageError(ScraperError):
    """A snapshot batch could not be written to or read from storage."""
