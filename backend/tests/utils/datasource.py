"""Test helpers for DataSource."""

import os

from sqldataaccess.models import DataSource, ProductTypeEnum


def make_datasource(
    product_type: ProductTypeEnum = ProductTypeEnum.POSTGRES,
    **overrides: object,
) -> DataSource:
    fields: dict = {
        "name": "test",
        "product_type": product_type,
        "host": "localhost",
        "database": "db",
        "username": "u",
        "password": "p",
    }
    fields.update(overrides)
    return DataSource(**fields)


def pg_datasource_from_env() -> DataSource:
    return DataSource(
        name="itest-pg",
        product_type=ProductTypeEnum.POSTGRES,
        host=os.environ.get("POSTGRES_SERVER", "localhost"),
        port=int(os.environ.get("POSTGRES_PORT", "5432")),
        database=os.environ.get("POSTGRES_DB", "app"),
        username=os.environ.get("POSTGRES_USER", "postgres"),
        password=os.environ.get("POSTGRES_PASSWORD", "postgres"),
    )


def mysql_datasource_from_env() -> DataSource:
    return DataSource(
        name="itest-mysql",
        product_type=ProductTypeEnum.MYSQL,
        host=os.environ.get("MYSQL_HOST", "localhost"),
        port=int(os.environ.get("MYSQL_PORT", "3306")),
        database=os.environ.get("MYSQL_DATABASE", "app"),
        username=os.environ.get("MYSQL_USER", "app"),
        password=os.environ.get("MYSQL_PASSWORD", "app"),
    )
