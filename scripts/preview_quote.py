# scripts/preview_quote.py
"""
Print the delivery quote a customer would get, using the configured
location data and fee table.

    python scripts/preview_quote.py Temeke Keko --street Magurumbasi
    python scripts/preview_quote.py --pin -6.8087 39.2724
"""

import argparse
import json
import os
import sys

# ensure dukabot is importable
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from loguru import logger

from dukabot.core.logging_config import setup_logging
from dukabot.domain.models.location import GpsPin, StreetName
from dukabot.domain.services.delivery_quote import fee_table_from_settings, get_quote_resolver


def main() -> int:
    parser = argparse.ArgumentParser(description="Preview a delivery quote")
    parser.add_argument("district", nargs="?")
    parser.add_argument("ward", nargs="?")
    parser.add_argument("--street")
    parser.add_argument("--pin", nargs=2, type=float, metavar=("LAT", "LON"))
    args = parser.parse_args()

    setup_logging()
    resolver = get_quote_resolver()
    fee_table = fee_table_from_settings()
    if resolver.index.is_empty:
        logger.warning("Location index is empty; only GPS pins can be priced")

    pin = GpsPin(*args.pin) if args.pin else None
    if args.district and args.ward:
        refinement = pin or (StreetName(args.street) if args.street else None)
        quote = resolver.resolve(args.district, args.ward, refinement, fee_table)
    elif pin is not None:
        quote = resolver.resolve_pin(pin, fee_table)
    else:
        parser.error("give DISTRICT WARD, or --pin LAT LON")

    print(json.dumps(quote.to_dict(), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
