"""Portfolio persistence models (SQLModel tables)"""

from sqlmodel import Field, SQLModel


class PortfolioCodeTable(SQLModel, table=True):
    """Order list entry"""

    __tablename__ = "portfolio_codes"

    position: int = Field(primary_key=True)
    code: str = Field(unique=True)


class HoldingTable(SQLModel, table=True):
    """Holding database table"""

    __tablename__ = "holdings"

    code: str = Field(primary_key=True)
    quantity: int
    average_price: float | None = None


class SettingTable(SQLModel, table=True):
    """Key-value settings (refresh interval, legacy records)"""

    __tablename__ = "settings"

    key: str = Field(primary_key=True)
    value: str
