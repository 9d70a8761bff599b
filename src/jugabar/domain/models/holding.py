"""Holding and portfolio state domain models"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Holding:
    """User-declared position in an instrument"""

    code: str
    quantity: int
    average_price: float | None = None

    def __post_init__(self):
        if not self.code:
            raise ValueError("Holding code cannot be empty")
        if self.quantity < 0:
            raise ValueError(f"{self.code}: quantity cannot be negative")
        if self.average_price is not None and self.average_price <= 0:
            raise ValueError(f"{self.code}: average price must be positive")


@dataclass
class PortfolioState:
    """Order list and holdings, always loaded and saved together

    Attributes:
        codes: Instrument codes in display order
        holdings: Holdings keyed by instrument code
    """

    codes: list[str] = field(default_factory=list)
    holdings: dict[str, Holding] = field(default_factory=dict)

    def copy(self) -> "PortfolioState":
        return PortfolioState(codes=list(self.codes), holdings=dict(self.holdings))
