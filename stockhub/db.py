"""Database connections: a master engine and optional read replicas."""

import itertools
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, Sequence, Union
from urllib.parse import quote_plus

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import URL
from sqlalchemy.orm import Session

from .models import Base


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection settings for the master and replica databases."""

    master_host: str
    master_port: str
    master_user: str
    master_password: str
    slave_host: str
    slave_port: str
    slave_user: str
    slave_password: str
    dbname: str
    debug: bool = False
    max_open_connections: int = 0
    max_idle_connections: int = 0
    conn_max_lifetime: float = 0.0


def build_database_url(
    username: str, password: str, host: str, port: Union[str, int], dbname: str
) -> str:
    """Return an SQLAlchemy URL for a PostgreSQL database."""
    url = URL.create(
        "postgresql",
        username=username,
        password=password,
        host=host,
        port=int(port),
        database=dbname,
    )
    return url.render_as_string(hide_password=False)


def build_migration_url(
    username: str, password: str, host: str, port: Union[str, int], dbname: str
) -> str:
    """Return the postgres:// URL used for schema migrations."""
    escaped = quote_plus(password)
    return f"postgres://{username}:{escaped}@{host}:{port}/{dbname}?sslmode=disable"


def _pool_options(
    max_open_connections: int, max_idle_connections: int, conn_max_lifetime: float
) -> dict[str, Any]:
    options: dict[str, Any] = {}
    if max_idle_connections > 0:
        options["pool_size"] = max_idle_connections
    if max_open_connections > 0:
        idle = max_idle_connections if max_idle_connections > 0 else 5
        options["max_overflow"] = max(max_open_connections - idle, 0)
    if conn_max_lifetime > 0:
        options["pool_recycle"] = conn_max_lifetime
    return options


@contextmanager
def _open_session(engine: Engine) -> Iterator[Session]:
    session = Session(engine, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except BaseException:
        session.rollback()
        raise
    finally:
        session.close()


class Database:
    """A master engine for writes and replica engines for reads."""

    def __init__(
        self,
        master_url: str,
        slave_urls: Sequence[str] = (),
        *,
        echo: bool = False,
        max_open_connections: int = 0,
        max_idle_connections: int = 0,
        conn_max_lifetime: float = 0.0,
    ) -> None:
        options = _pool_options(
            max_open_connections, max_idle_connections, conn_max_lifetime
        )
        self.master_engine = create_engine(master_url, echo=echo, **options)
        self.slave_engines = tuple(create_engine(url) for url in slave_urls)
        self._replicas = itertools.cycle(self.slave_engines) if self.slave_engines else None

    @contextmanager
    def master_session(self) -> Iterator[Session]:
        """Open a session on the master; commits on success, rolls back on error."""
        with _open_session(self.master_engine) as session:
            yield session

    @contextmanager
    def slave_session(self) -> Iterator[Session]:
        """Open a session on the next replica, or the master if there is none."""
        engine = next(self._replicas) if self._replicas is not None else self.master_engine
        with _open_session(engine) as session:
            yield session

    def create_schema(self) -> None:
        """Create any missing tables on the master."""
        Base.metadata.create_all(self.master_engine)