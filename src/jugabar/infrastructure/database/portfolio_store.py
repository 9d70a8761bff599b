"""Portfolio store - durable order list, holdings and settings.

Every read and write of the order list and holdings happens in a single
session so the two records can never disagree on disk.
"""

import json
import math
from collections.abc import Iterator
from contextlib import contextmanager

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, delete, select

from jugabar.domain.models import PortfolioState
from jugabar.infrastructure.database.base import BaseDatabase
from jugabar.infrastructure.database.mappers import (
    map_holding_to_table,
    map_table_to_holding,
)
from jugabar.infrastructure.database.models import (
    HoldingTable,
    PortfolioCodeTable,
    SettingTable,
)
from jugabar.shared.constants import LEGACY_CODES_KEY, REFRESH_INTERVAL_KEY
from jugabar.shared.exceptions import PersistenceFailed


class PortfolioStore(BaseDatabase):
    """SQLite store for the portfolio order list, holdings and settings."""

    @contextmanager
    def _transaction(self, action: str) -> Iterator[Session]:
        """Session that commits on success and maps storage errors

        Raises:
            PersistenceFailed: If the database operation fails
        """
        session = self.get_session()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceFailed(f"Failed to {action}: {e}") from e
        finally:
            session.close()

    def load(self) -> PortfolioState:
        """Load the order list and holdings

        Returns:
            PortfolioState with codes ordered by position
        """
        with self._transaction("load portfolio") as session:
            codes = session.exec(
                select(PortfolioCodeTable).order_by(PortfolioCodeTable.position)
            ).all()
            state = PortfolioState(codes=[row.code for row in codes])
            for row in session.exec(select(HoldingTable)).all():
                try:
                    state.holdings[row.code] = map_table_to_holding(row)
                except ValueError as e:
                    logger.warning(f"Skipping invalid holding row: {e}")

        logger.debug(
            f"Loaded portfolio: {len(state.codes)} codes, "
            f"{len(state.holdings)} holdings"
        )
        return state

    def save(self, state: PortfolioState) -> None:
        """Overwrite the order list and holdings with the given state"""
        with self._transaction("save portfolio") as session:
            self._write_state(session, state)

        logger.debug(
            f"Saved portfolio: {len(state.codes)} codes, "
            f"{len(state.holdings)} holdings"
        )

    def _write_state(self, session: Session, state: PortfolioState) -> None:
        session.exec(delete(PortfolioCodeTable))
        session.exec(delete(HoldingTable))
        for position, code in enumerate(state.codes):
            session.add(PortfolioCodeTable(position=position, code=code))
        for holding in state.holdings.values():
            session.add(map_holding_to_table(holding))

    def migrate_legacy(self) -> bool:
        """Turn the legacy watched-codes record into the order list

        The legacy record is deleted in the same transaction, so running
        this again does nothing.

        Returns:
            True if a legacy record was migrated
        """
        with self._transaction("migrate legacy codes") as session:
            legacy = session.get(SettingTable, LEGACY_CODES_KEY)
            if legacy is None:
                return False

            try:
                codes = json.loads(legacy.value)
            except ValueError as e:
                raise PersistenceFailed(
                    f"Legacy codes record is not valid JSON: {e}"
                ) from e
            if not isinstance(codes, list):
                raise PersistenceFailed("Legacy codes record is not a list")

            deduped = list(dict.fromkeys(str(code) for code in codes if code))
            self._write_state(session, PortfolioState(codes=deduped))
            session.delete(legacy)

        logger.info(f"Migrated {len(deduped)} legacy watched codes")
        return True

    def write_legacy_codes(self, codes: list[str]) -> None:
        """Store codes under the legacy key (imports from the old format)"""
        self._set_setting(LEGACY_CODES_KEY, json.dumps(codes))

    def has_legacy_codes(self) -> bool:
        return self._get_setting(LEGACY_CODES_KEY) is not None

    def load_refresh_interval(self, default: float) -> float:
        """Read the persisted refresh interval, falling back to default"""
        raw = self._get_setting(REFRESH_INTERVAL_KEY)
        if raw is None:
            return default
        try:
            value = float(raw)
        except ValueError:
            value = math.nan
        if not math.isfinite(value) or value < 0:
            logger.warning(f"Ignoring invalid stored refresh interval: {raw!r}")
            return default
        return value

    def save_refresh_interval(self, seconds: float) -> None:
        self._set_setting(REFRESH_INTERVAL_KEY, repr(float(seconds)))

    def _get_setting(self, key: str) -> str | None:
        with self._transaction(f"read setting {key}") as session:
            row = session.get(SettingTable, key)
            return row.value if row else None

    def _set_setting(self, key: str, value: str) -> None:
        with self._transaction(f"write setting {key}") as session:
            row = session.get(SettingTable, key)
            if row is None:
                session.add(SettingTable(key=key, value=value))
            else:
                row.value = value
                session.add(row)
