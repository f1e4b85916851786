"""
Database initialization script
Creates, drops or resets all tables, loads the sample catalog and prints
the DDL for a given SQL dialect
"""
import argparse

from loguru import logger
from sqlalchemy import create_mock_engine

from .. import models  # noqa: F401  registers every table on Base.metadata
from .database import Base, SessionLocal, create_tables, drop_tables
from .logger import configure_logging

SUPPORTED_DIALECTS = ("sqlite", "postgresql", "mysql")


def init_database(bind=None):
    """Initialize the database by creating all tables"""
    logger.info("Creating database tables...")
    create_tables(bind)
    logger.info("Database tables created successfully!")


def drop_database(bind=None):
    logger.info("Dropping existing tables...")
    drop_tables(bind)
    logger.info("Database tables dropped")


def reset_database(bind=None):
    """Reset the database by dropping and recreating all tables"""
    drop_database(bind)
    init_database(bind)
    logger.info("Database reset successfully!")


def seed_database(session_factory=None):
    """Load the sample categories, products and inventory"""
    from ..generate_data import DataGenerator

    db = (session_factory or SessionLocal)()
    try:
        return DataGenerator(db=db).seed_sample_data()
    finally:
        db.close()


def dump_schema(dialect_name: str) -> str:
    """Render the CREATE statements for every table in the given dialect"""
    if dialect_name not in SUPPORTED_DIALECTS:
        raise ValueError(f"Unsupported dialect {dialect_name!r}, expected one of {', '.join(SUPPORTED_DIALECTS)}")

    statements = []

    def collect(sql, *multiparams, **params):
        statements.append(str(sql.compile(dialect=mock_engine.dialect)).strip() + ";")

    mock_engine = create_mock_engine(f"{dialect_name}://", collect)
    Base.metadata.create_all(mock_engine, checkfirst=False)
    return "\n\n".join(statements) + "\n"


def main(argv=None):
    parser = argparse.ArgumentParser(description="Database management script")
    parser.add_argument("--init", action="store_true", help="Initialize database")
    parser.add_argument("--reset", action="store_true", help="Reset database")
    parser.add_argument("--drop", action="store_true", help="Drop all tables")
    parser.add_argument("--seed", action="store_true", help="Load the sample catalog")
    parser.add_argument("--sql", choices=SUPPORTED_DIALECTS, help="Print the schema DDL for a dialect and exit")

    args = parser.parse_args(argv)
    if args.drop and args.seed:
        parser.error("--seed cannot be combined with --drop")
    configure_logging(name="init_db")

    if args.sql:
        print(dump_schema(args.sql), end="")
        return 0
    if not (args.init or args.reset or args.drop or args.seed):
        parser.print_help()
        return 1

    if args.reset:
        reset_database()
    elif args.drop:
        drop_database()
    elif args.init:
        init_database()
    if args.seed:
        if not args.reset:
            init_database()
        seed_database()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
