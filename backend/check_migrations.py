#!/usr/bin/env python3
"""
Compare the live database with the SQLModel metadata.

Reports every table the models declare that the database lacks, and every
declared column missing from an existing table. Exit status 1 means
`alembic upgrade head` has not been run (or a revision is missing).
"""

import logging
import sys
from typing import Dict, List

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel

import schedule_guard.models  # noqa: F401

logger = logging.getLogger(__name__)


def missing_schema(engine: Engine) -> Dict[str, List[str]]:
    """
    Map of table name -> missing column names.

    A table absent from the database maps to all of its declared columns.
    """
    inspector = inspect(engine)
    existing_tables = set(inspector.get_table_names())

    missing: Dict[str, List[str]] = {}
    for table in SQLModel.metadata.sorted_tables:
        declared = [column.name for column in table.columns]
        if table.name not in existing_tables:
            missing[table.name] = declared
            continue
        present = {column["name"] for column in inspector.get_columns(table.name)}
        absent = [name for name in declared if name not in present]
        if absent:
            missing[table.name] = absent
    return missing


def main() -> int:
    from schedule_guard.database import engine

    logging.basicConfig(level=logging.INFO, format="%(message)s")
    logger.info(f"Database: {engine.url}")

    missing = missing_schema(engine)
    if not missing:
        logger.info(f"All {len(SQLModel.metadata.tables)} tables match the models")
        return 0

    for table, columns in missing.items():
        logger.error(f"{table}: missing {', '.join(columns)}")
    logger.error("Run migrations with: alembic upgrade head")
    return 1


if __name__ == "__main__":
    sys.exit(main())
