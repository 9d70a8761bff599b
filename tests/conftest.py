"""Pytest fixtures for JugaBar tests"""

import sys
from pathlib import Path

import pytest

# Add src to Python path for all tests
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from jugabar.infrastructure.database import PortfolioStore  # noqa: E402
from tests.factories import FakeQuoteProvider, QuoteFactory  # noqa: E402


@pytest.fixture
def store():
    """In-memory SQLite portfolio store"""
    db = PortfolioStore(":memory:")
    yield db
    db.close()


@pytest.fixture
def provider() -> FakeQuoteProvider:
    """Fake provider serving two instruments and both indices"""
    fake = FakeQuoteProvider()
    fake.quotes["005930"] = QuoteFactory.quote()
    fake.quotes["000660"] = QuoteFactory.quote(
        code="000660",
        name="SK hynix",
        price=180000.0,
        change_amount=2000.0,
        change_rate=-1.1,
        is_rising=False,
        is_falling=True,
    )
    fake.quotes["035720"] = QuoteFactory.quote(
        code="035720", name="Kakao", price=40000.0, segment="KS"
    )
    fake.indices["KOSPI"] = QuoteFactory.index("KOSPI", change_rate=0.5)
    fake.indices["KOSDAQ"] = QuoteFactory.index("KOSDAQ", change_rate=-0.3)
    return fake
