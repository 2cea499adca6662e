"""Manual smoke test for DividendDataService (needs GEMINI_API_KEY).

Usage:
  python scripts/fetch_smoke.py KO
"""
import sys

from divitrack.utils.dividend_data import DividendDataService
from divitrack.utils.logging import setup_logging

def main():
    setup_logging("DEBUG")
    symbol = sys.argv[1] if len(sys.argv) > 1 else "KO"
    data = DividendDataService().fetch(symbol)
    print(data.model_dump_json(indent=2, by_alias=True))

if __name__ == "__main__":
    main()
