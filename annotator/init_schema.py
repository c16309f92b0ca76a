#!/usr/bin/env python3
"""
Initialize the annotator metadata schema.

Creates the documents and highlights tables in the database named by
DATABASE_URL. Existing tables are preserved unless --reset is given.

Usage:
    python -m annotator.init_schema
    python -m annotator.init_schema --reset
"""

import argparse
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy import inspect

from annotator.db import create_db_engine, drop_schema, init_schema

# Load .env from project root
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create the annotator tables")
    parser.add_argument("--reset", action="store_true", help="Drop all tables before creating them")
    args = parser.parse_args(argv)

    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        print("ERROR: DATABASE_URL not found in environment or .env file")
        return 1

    print("Connecting to database...")
    engine = create_db_engine(database_url)
    try:
        if args.reset:
            print("Dropping existing tables...")
            drop_schema(engine)

        init_schema(engine)

        tables = inspect(engine).get_table_names()
        print("\n" + "=" * 60)
        print("Database schema initialization complete!")
        print("=" * 60)
        for table in tables:
            print(f"  - {table}")
    except Exception as e:
        print(f"\nERROR: Failed to initialize schema: {e}")
        return 1
    finally:
        engine.dispose()

    return 0


if __name__ == "__main__":
    sys.exit(main())
