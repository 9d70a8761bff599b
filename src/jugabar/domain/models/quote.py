"""Instrument quote domain model"""

from dataclasses import dataclass, replace

from .holding import Holding


@dataclass(frozen=True)
class Quote:
    """Normalized quote for an instrument or market index (domain model)

    Prices are stored as parsed floats. Change amounts are read as
    magnitudes; the direction lives in the rising/falling flags. The ``nxt_*`` fields carry
    the extended (Nextrade) session feed and are ``None`` when the provider
    sends no extended-session data.
    """

    code: str
    name: str
    price: float
    change_amount: float
    change_rate: float
    is_rising: bool = False
    is_falling: bool = False
    segment: str | None = None
    nxt_price: float | None = None
    nxt_change_amount: float | None = None
    nxt_change_rate: float | None = None
    is_nxt_rising: bool = False
    is_nxt_falling: bool = False
    is_nxt_open: bool = False
    is_main_open: bool = False

    # Portfolio data
    quantity: int | None = None
    average_price: float | None = None

    def __post_init__(self):
        if not self.code:
            raise ValueError("Quote code cannot be empty")
        if self.is_rising and self.is_falling:
            raise ValueError(f"{self.code}: quote cannot be rising and falling")
        if self.is_nxt_rising and self.is_nxt_falling:
            raise ValueError(
                f"{self.code}: extended session cannot be rising and falling"
            )

    @property
    def has_extended_quote(self) -> bool:
        return self.nxt_price is not None

    @property
    def current_price(self) -> float:
        """Extended-session price while that session is open, else primary"""
        if self.is_nxt_open and self.nxt_price is not None:
            return max(self.nxt_price, 0.0)
        return max(self.price, 0.0)

    @property
    def current_change_rate(self) -> float:
        if self.is_nxt_open and self.nxt_change_rate is not None:
            return self.nxt_change_rate
        return self.change_rate

    @property
    def is_held(self) -> bool:
        return (self.quantity or 0) > 0

    @property
    def total_value(self) -> float:
        if self.quantity is None:
            return 0.0
        return self.current_price * self.quantity

    @property
    def daily_gain(self) -> float:
        if self.quantity is None:
            return 0.0
        return _signed(self.change_amount, self.is_falling) * self.quantity

    @property
    def nxt_daily_gain(self) -> float:
        if self.quantity is None or self.nxt_change_amount is None:
            return 0.0
        return (
            _signed(self.nxt_change_amount, self.is_nxt_falling)
            * self.quantity
        )

    @property
    def total_gain(self) -> float | None:
        """Lifetime gain at the current price, None without a cost basis"""
        if self.quantity is None or self.average_price is None:
            return None
        return (self.current_price - self.average_price) * self.quantity

    @property
    def primary_total_gain(self) -> float | None:
        """Lifetime gain at the primary (KRX) price"""
        if self.quantity is None or self.average_price is None:
            return None
        return (max(self.price, 0.0) - self.average_price) * self.quantity

    def with_holding(self, holding: Holding | None) -> "Quote":
        if holding is None:
            return replace(self, quantity=None, average_price=None)
        return replace(
            self,
            quantity=holding.quantity,
            average_price=holding.average_price,
        )


def _signed(amount: float, is_falling: bool) -> float:
    amount = abs(amount)
    return -amount if is_falling else amount
