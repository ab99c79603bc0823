"""Exception hierarchy shared by the pipeline stages."""


class BlogEngineError(Exception):
    """Base class for all blog engine errors."""
    pass


class SourceUnavailable(BlogEngineError):
    """A trend source is disabled or failed to fetch."""

    def __init__(self, platform: str, reason: str):
        self.platform = platform
        self.reason = reason
        super().__init__(f"{platform}: {reason}")


class GenerationFailure(BlogEngineError):
    """The LLM raised or returned output that could not be used."""

    def __init__(self, message: str, raw_text: str = ""):
        self.raw_text = raw_text
        super().__init__(message)


class PersistenceFailure(BlogEngineError):
    """A CMS read or write failed."""
    pass


class ConcurrencyConflict(BlogEngineError):
    """A job was triggered while another job holds the run slot."""

    def __init__(self, running_job: str = ""):
        self.running_job = running_job
        super().__init__(f"Job already running: {running_job or 'unknown'}")
