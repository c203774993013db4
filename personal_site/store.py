from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    create_engine,
    func,
    true,
)
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

metadata = MetaData()

experience = Table(
    "experience",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("company_en", String(255), nullable=False),
    Column("company_es", String(255), nullable=False),
    Column("company_it", String(255), nullable=False),
    Column("role_en", String(255), nullable=False),
    Column("role_es", String(255), nullable=False),
    Column("role_it", String(255), nullable=False),
    Column("duration_en", String(100), nullable=False),
    Column("duration_es", String(100), nullable=False),
    Column("duration_it", String(100), nullable=False),
    Column("description_en", Text, nullable=False),
    Column("description_es", Text, nullable=False),
    Column("description_it", Text, nullable=False),
)

education = Table(
    "education",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("institution_en", String(255), nullable=False),
    Column("institution_es", String(255), nullable=False),
    Column("institution_it", String(255), nullable=False),
    Column("degree_en", String(255), nullable=False),
    Column("degree_es", String(255), nullable=False),
    Column("degree_it", String(255), nullable=False),
    Column("duration", String(100), nullable=False),
)

projects = Table(
    "projects",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name_en", String(255), nullable=False),
    Column("name_es", String(255), nullable=False),
    Column("name_it", String(255), nullable=False),
    Column("description_en", Text, nullable=False),
    Column("description_es", Text, nullable=False),
    Column("description_it", Text, nullable=False),
    Column("technologies", String(500), nullable=False),
    Column("link", String(500)),
)

skills = Table(
    "skills",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("category_en", String(255), nullable=False),
    Column("category_es", String(255), nullable=False),
    Column("category_it", String(255), nullable=False),
    Column("skills", Text, nullable=False),
)

languages = Table(
    "languages",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("language_en", String(100), nullable=False),
    Column("language_es", String(100), nullable=False),
    Column("language_it", String(100), nullable=False),
    Column("level_en", String(100), nullable=False),
    Column("level_es", String(100), nullable=False),
    Column("level_it", String(100), nullable=False),
)

dictionary = Table(
    "dictionary",
    metadata,
    Column("key", String(100), primary_key=True),
    Column("en", Text),
    Column("es", Text),
    Column("it", Text),
)

income = Table(
    "income",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("month_year", String(7), unique=True, nullable=False),
    Column("amount", Numeric(12, 2), nullable=False),
    Column("currency", String(3), nullable=False, server_default="EUR"),
)

expenses = Table(
    "expenses",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("month_year", String(7), nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("category", String(255), nullable=False),
    Column("amount", Numeric(12, 2), nullable=False),
    Column("currency", String(3)),
    Column("status", String(50), nullable=False, server_default="pending"),
    Column("date_added", Date, nullable=False),
)

recurring_expenses = Table(
    "recurring_expenses",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255)),
    Column("amount", Numeric(12, 2)),
    Column("category", String(255)),
    Column("currency", String(3)),
    Column("due_day", Integer),
    Column("active", Boolean, nullable=False, server_default=true()),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
)

visitors = Table(
    "visitors",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("ip", String(64)),
    Column("city", String(255)),
    Column("region", String(255)),
    Column("country", String(255)),
    Column("org", String(255)),
    Column("timestamp", String(64)),
    Column("loc", String(64)),
    Column("date", Date, nullable=False),
)

exchange_rates = Table(
    "exchange_rates",
    metadata,
    Column("currency", String(10), primary_key=True),
    Column("rate", Numeric(18, 6), nullable=False),
    Column("last_updated", Date, nullable=False),
)


@dataclass
class RecordStore:
    """Single handle on the relational backend.

    Created once per process by ``create_app``; tables are created on
    startup and the connection pool is released on shutdown.
    """

    engine: Engine

    @classmethod
    def from_url(cls, database_url: str) -> "RecordStore":
        connect_args = {}
        engine_kwargs = {}
        if database_url.startswith("sqlite"):
            connect_args = {"check_same_thread": False}
            if database_url in {"sqlite://", "sqlite:///:memory:"}:
                engine_kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, connect_args=connect_args, **engine_kwargs)
        return cls(engine=engine)

    def begin(self):
        return self.engine.begin()

    def create_all(self) -> None:
        metadata.create_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()
