"""
Purpose:
- Errors the search layer lets escape to the API routers.
- Provider outages and telemetry failures are NOT errors here; they degrade silently.
"""

class SearchError(Exception):
    """Base class for errors surfaced by the search orchestrator."""

class EmptyQueryError(SearchError):
    """The request carried no usable query text (maps to HTTP 400)."""

    def __init__(self, message: str = "Query parameter 'q' is required"):
        super().__init__(message)
        self.message = message

class SearchFailed(SearchError):
    """Unexpected failure while resolving a search (maps to HTTP 500)."""
