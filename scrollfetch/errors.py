"""Exception hierarchy for scrape jobs."""


class ScrapeError(Exception):
    """Base class for errors that end a scrape job."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class JobValidationError(ScrapeError):
    """The job request is missing or malformed. Not retried."""


class BrowserConnectionError(ScrapeError):
    """No live session could be obtained from the remote browser host."""


class NavigationError(ScrapeError):
    """The target URL could not be loaded within the navigation timeout."""


class DetachedSessionError(ScrapeError):
    """The page or its session became unusable mid-job.

    Raised by the browser layer only. Scroll, detection and extraction steps
    catch it and degrade instead of failing the job.
    """


class JobTimeoutError(ScrapeError):
    """The overall job deadline elapsed before detection finished."""


class JobError(ScrapeError):
    """Unexpected failure inside a job, carrying the underlying message."""
