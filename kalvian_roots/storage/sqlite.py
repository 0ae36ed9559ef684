"""SQLite persistence for the family network cache.

Each completed network is stored as one JSON payload keyed by its normalized
family id. Learned name equivalences live in a second table so they survive
between sessions.
"""

from datetime import datetime
from logging import Logger
from pathlib import Path

from pydantic import ValidationError
from sqlalchemy import Column, Float, Integer, String, Text, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from kalvian_roots.config import settings
from kalvian_roots.errors import PersistenceError
from kalvian_roots.log import get_logger
from kalvian_roots.schemas import CachedNetworkEntry, FamilyNetwork, normalize_family_id

Base = declarative_base()


class CachedNetworkRow(Base):
    """Cached family network record."""

    __tablename__ = "cached_networks"

    family_id = Column(String, primary_key=True)
    payload = Column(Text, nullable=False)  # FamilyNetwork JSON
    cached_at = Column(String, nullable=False)
    extraction_time = Column(Float, default=0.0)
    schema_version = Column(Integer, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<CachedNetworkRow(family_id='{self.family_id}', "
            f"schema_version={self.schema_version})>"
        )


class NameEquivalenceRow(Base):
    """Member of a learned given-name equivalence class."""

    __tablename__ = "name_equivalences"

    id = Column(Integer, primary_key=True)
    class_id = Column(Integer, nullable=False)
    name = Column(String, nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<NameEquivalenceRow(class_id={self.class_id}, name='{self.name}')>"


class SQLiteNetworkStore:
    """Network cache backend on a SQLite database."""

    def __init__(
        self,
        db_path: Path | None = None,
        schema_version: int | None = None,
        logger: Logger | None = None,
    ):
        """Initialize the database.

        Args:
            db_path: Path to SQLite database file (default: settings.cache_db_path)
            schema_version: Payload schema version; rows with another version are ignored
            logger: Logger for storage diagnostics
        """
        self.db_path = db_path or settings.cache_db_path
        self.schema_version = (
            schema_version if schema_version is not None else settings.cache_schema_version
        )
        self.logger = logger or get_logger(__name__)
        try:
            self.engine = create_engine(f"sqlite:///{self.db_path}")
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Cannot open network cache at {self.db_path}: {e}") from e
        self.Session = sessionmaker(bind=self.engine)

    def get_session(self):
        """Get a new database session."""
        return self.Session()

    def _to_entry(self, row: CachedNetworkRow) -> CachedNetworkEntry | None:
        if row.schema_version != self.schema_version:
            self.logger.debug(
                "Ignoring cached %s with schema version %s", row.family_id, row.schema_version
            )
            return None
        try:
            network = FamilyNetwork.model_validate_json(row.payload)
        except ValidationError as e:
            self.logger.warning("Ignoring unreadable cached network %s: %s", row.family_id, e)
            return None
        return CachedNetworkEntry(
            network=network,
            cached_at=datetime.fromisoformat(row.cached_at),
            extraction_time=row.extraction_time or 0.0,
        )

    def load(self, family_id: str) -> CachedNetworkEntry | None:
        """Load one cached network.

        Args:
            family_id: Family id of the main family

        Returns:
            The cached entry, or None if absent or stale
        """
        session = self.get_session()
        try:
            row = session.get(CachedNetworkRow, normalize_family_id(family_id))
            return self._to_entry(row) if row is not None else None
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load cached network {family_id}: {e}") from e
        finally:
            session.close()

    def load_all(self) -> dict[str, CachedNetworkEntry]:
        """Load every readable cached network.

        Returns:
            Entries keyed by normalized family id
        """
        session = self.get_session()
        try:
            entries = {}
            for row in session.query(CachedNetworkRow).all():
                entry = self._to_entry(row)
                if entry is not None:
                    entries[row.family_id] = entry
            return entries
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load network cache: {e}") from e
        finally:
            session.close()

    def save_all(self, entries: dict[str, CachedNetworkEntry]) -> None:
        """Replace the persisted cache with ``entries``.

        Args:
            entries: Entries keyed by normalized family id
        """
        session = self.get_session()
        try:
            session.query(CachedNetworkRow).delete()
            for family_id, entry in entries.items():
                session.add(
                    CachedNetworkRow(
                        family_id=normalize_family_id(family_id),
                        payload=entry.network.model_dump_json(),
                        cached_at=entry.cached_at.isoformat(),
                        extraction_time=entry.extraction_time,
                        schema_version=self.schema_version,
                    )
                )
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(f"Failed to save network cache: {e}") from e
        finally:
            session.close()

    def clear(self) -> None:
        """Delete every cached network."""
        session = self.get_session()
        try:
            deleted = session.query(CachedNetworkRow).delete()
            session.commit()
            self.logger.info("Cleared %d cached networks", deleted)
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(f"Failed to clear network cache: {e}") from e
        finally:
            session.close()

    def save_equivalences(self, classes: list[set[str]]) -> None:
        """Persist name equivalence classes, replacing the stored ones.

        Args:
            classes: Classes as returned by ``NameEquivalenceStore.classes()``
        """
        session = self.get_session()
        try:
            session.query(NameEquivalenceRow).delete()
            for class_id, members in enumerate(classes, 1):
                for name in sorted(members):
                    session.add(NameEquivalenceRow(class_id=class_id, name=name))
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(f"Failed to save name equivalences: {e}") from e
        finally:
            session.close()

    def load_equivalences(self) -> list[set[str]]:
        """Load persisted name equivalence classes."""
        session = self.get_session()
        try:
            groups: dict[int, set[str]] = {}
            for row in session.query(NameEquivalenceRow).all():
                groups.setdefault(row.class_id, set()).add(row.name)
            return list(groups.values())
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load name equivalences: {e}") from e
        finally:
            session.close()

    def get_stats(self) -> dict[str, int]:
        """Get database statistics.

        Returns:
            Dictionary with row counts
        """
        session = self.get_session()
        try:
            current = (
                session.query(CachedNetworkRow)
                .filter(CachedNetworkRow.schema_version == self.schema_version)
                .count()
            )
            return {
                "cached_networks": current,
                "stale_networks": session.query(CachedNetworkRow).count() - current,
                "name_equivalences": session.query(NameEquivalenceRow).count(),
            }
        finally:
            session.close()
