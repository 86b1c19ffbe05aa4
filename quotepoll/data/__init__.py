"""Quote fetching and the scheduled polling loop."""

from .polling import PollState, QuotePoller, QuoteSource
from .quotes_client import FatalResponseError, QuoteClient, QuoteParseError, QuoteRecord, parse_quotes

__all__ = [
    "FatalResponseError",
    "PollState",
    "QuoteClient",
    "QuoteParseError",
    "QuotePoller",
    "QuoteRecord",
    "QuoteSource",
    "parse_quotes",
]
