"""Exception types shared by the crawler, storage and grading layers."""


class IeltsBankError(Exception):
    """Base class for all application errors."""


class FetchError(IeltsBankError):
    """A page could not be fetched."""

    def __init__(self, message: str, url: str = ""):
        super().__init__(message)
        self.url = url


class FetchRetryExhaustedError(FetchError):
    """Transient failures persisted past the retry ceiling."""

    def __init__(self, url: str, attempts: int, last_error: str = ""):
        super().__init__(
            f"Failed to fetch {url} after {attempts} attempts: {last_error}", url
        )
        self.attempts = attempts
        self.last_error = last_error


class FetchFatalError(FetchError):
    """Non-retryable response, e.g. a 4xx other than 429."""

    def __init__(self, message: str, url: str = "", status_code: int | None = None):
        super().__init__(message, url)
        self.status_code = status_code


class AuthenticationExpiredError(FetchFatalError):
    """The site redirected to its login page; the session cookie is stale."""


class ParseError(IeltsBankError):
    """Markup did not have the expected structure."""


class ListingParseError(ParseError):
    """A listing page could not be fetched or parsed."""

    def __init__(self, url: str, cause: BaseException):
        super().__init__(f"Failed to parse listing page {url}: {cause}")
        self.url = url
        self.cause = cause


class PersistenceError(IeltsBankError):
    """A storage transaction failed and was rolled back."""


class NotFoundError(IeltsBankError):
    """The requested test, question set or answer set does not exist."""


class BadRequestError(IeltsBankError):
    """A query or submission is missing required identifiers."""
