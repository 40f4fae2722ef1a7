from __future__ import annotations


class ScrapeError(Exception):
    """Base class for failures while driving the source site."""


class SessionError(ScrapeError):
    """A browsing session could not be acquired."""


class NavigationTimeout(ScrapeError):
    """A page did not finish loading within the navigation bound."""


class PageError(ScrapeError):
    """The page substrate failed for a reason other than a timeout."""


class ProbeFailure(ScrapeError):
    """A single server option could not be resolved to a media URL."""
