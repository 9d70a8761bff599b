"""Naver stock API client"""

from .client import NaverQuoteClient
from .protocols import QuoteProvider

__all__ = ["NaverQuoteClient", "QuoteProvider"]
