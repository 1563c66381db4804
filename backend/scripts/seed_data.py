import os
import sys
import argparse
import logging

from dotenv import load_dotenv

load_dotenv()

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from lexcanada.core.database import create_tables, get_db_transaction
from lexcanada.core.logging_config import setup_logging
from lexcanada.data.seed import SEEDERS, seed_all

logger = logging.getLogger("seed")


def main():
    parser = argparse.ArgumentParser(description="Load LexCanada reference data (plans, templates, court procedures)")
    parser.add_argument(
        "--only",
        nargs="+",
        choices=sorted(SEEDERS),
        help="Seed only these data sets",
    )
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables before seeding")
    args = parser.parse_args()

    setup_logging()

    if args.create_tables:
        create_tables()

    with get_db_transaction() as db:
        results = seed_all(db, only=args.only)

    for name, created in results.items():
        logger.info(f"{name}: {created} new rows")


if __name__ == "__main__":
    main()
