"""Mappers for converting between domain and persistence models"""

from jugabar.domain.models import Holding
from jugabar.infrastructure.database.models import HoldingTable


def map_table_to_holding(table: HoldingTable) -> Holding:
    return Holding(
        code=table.code,
        quantity=table.quantity,
        average_price=table.average_price,
    )


def map_holding_to_table(holding: Holding) -> HoldingTable:
    return HoldingTable(
        code=holding.code,
        quantity=holding.quantity,
        average_price=holding.average_price,
    )
