"""Exception types shared by services and API routes."""


class FundWatchError(Exception):
    """Base class for application errors."""


class UpstreamUnavailable(FundWatchError):
    """An upstream endpoint was unreachable or answered with a non-2xx status."""


class ParseError(FundWatchError):
    """An upstream payload did not match the expected JS literal / JSONP wrapper."""


class DirectoryVersionChanged(FundWatchError):
    """The fund directory was refreshed between two page requests."""

    def __init__(self, expected: str, current: str):
        super().__init__(f"Directory version changed from {expected} to {current}")
        self.expected = expected
        self.current = current


class RuleEvaluationError(FundWatchError):
    """The live fund snapshot needed to evaluate a rule could not be fetched."""


class NotificationError(FundWatchError):
    """The notification gateway rejected or failed to deliver a push."""
