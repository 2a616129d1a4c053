"""
Data source model and enums shared by the connection layer and the engine.

DataSource carries everything connect() needs; from_url() accepts the opaque
connection strings callers hand to SqlDataAccess.
"""

from enum import Enum

from pydantic import Field
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError
from sqlmodel import SQLModel

from sqldataaccess.core.errors import DataSourceError

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ProductTypeEnum(str, Enum):
    """Supported database product types (postgres, mysql, trino)."""

    POSTGRES = "postgres"
    MYSQL = "mysql"
    TRINO = "trino"


class IsolationLevelEnum(str, Enum):
    """Transaction isolation levels understood by every supported product."""

    READ_UNCOMMITTED = "READ UNCOMMITTED"
    READ_COMMITTED = "READ COMMITTED"
    REPEATABLE_READ = "REPEATABLE READ"
    SERIALIZABLE = "SERIALIZABLE"


DEFAULT_PORTS = {
    ProductTypeEnum.POSTGRES: 5432,
    ProductTypeEnum.MYSQL: 3306,
    ProductTypeEnum.TRINO: 8080,
}

# URL drivername prefix (before "+driver") -> product type
_URL_SCHEMES = {
    "postgres": ProductTypeEnum.POSTGRES,
    "postgresql": ProductTypeEnum.POSTGRES,
    "mysql": ProductTypeEnum.MYSQL,
    "mariadb": ProductTypeEnum.MYSQL,
    "trino": ProductTypeEnum.TRINO,
}


# ---------------------------------------------------------------------------
# DataSource
# ---------------------------------------------------------------------------


class DataSource(SQLModel):
    """Connection settings for one external database."""

    name: str = Field(default="default", max_length=255)
    product_type: ProductTypeEnum
    host: str = Field(..., min_length=1, max_length=255)
    port: int | None = Field(default=None, ge=1, le=65535)
    database: str = Field(..., min_length=1, max_length=255)
    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(default="", max_length=512)
    use_ssl: bool = Field(
        default=False,
        description="For Trino: use HTTPS (http_scheme='https'). When True, password is required.",
    )

    @classmethod
    def from_url(cls, url: str, *, name: str = "default") -> "DataSource":
        """
        Parse a connection URL such as ``postgresql://u:p@host:5432/db``.

        The driver suffix (``postgresql+psycopg``) is ignored. ``?ssl=true``
        sets use_ssl.
        """
        try:
            u = make_url(url)
        except ArgumentError as e:
            raise DataSourceError(f"Invalid connection string: {e}") from e

        scheme = u.drivername.split("+", 1)[0].lower()
        pt = _URL_SCHEMES.get(scheme)
        if pt is None:
            raise DataSourceError(f"Unsupported product_type: {scheme}")
        if not u.host or not u.database or not u.username:
            raise DataSourceError("Connection string must provide host, database and username")

        ssl = str(u.query.get("ssl", "")).lower() in ("true", "1")
        return cls(
            name=name,
            product_type=pt,
            host=u.host,
            port=u.port,
            database=u.database,
            username=u.username,
            password=u.password or "",
            use_ssl=ssl,
        )
