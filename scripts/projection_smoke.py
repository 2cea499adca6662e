from __future__ import annotations

from divitrack.tools.quant_tools import tool_compute_portfolio_summary, tool_compute_projection

def main():
    holdings = [
        {"ticker": "SCHD", "quantity": 200, "purchaseDate": "2023-05-01"},
        {"ticker": "O", "quantity": 50, "purchaseDate": "2024-01-15"},
        {"ticker": "VOO", "quantity": 5, "purchaseDate": "2024-03-01"},
    ]
    metadata = {
        "SCHD": {"ticker": "SCHD", "name": "Schwab US Dividend Equity ETF", "currentPrice": 27.5, "yield": 3.7,
                 "annualDividend": 1.0, "growthRate": 11.0, "payoutFrequency": "Quarterly"},
        "O": {"ticker": "O", "name": "Realty Income", "currentPrice": 56.0, "yield": 5.6,
              "annualDividend": 3.16, "growthRate": 3.9, "payoutFrequency": "Monthly"},
    }
    s = tool_compute_portfolio_summary(holdings, metadata)
    print("Portfolio value:", round(s["total_value"], 2))
    print("Annual income:", round(s["annual_income"], 2))
    print("Average yield %:", round(s["average_yield_pct"], 2))
    print("Total shares (VOO has no data):", s["total_shares"])

    for p in tool_compute_projection(holdings, metadata)[::5]:
        print("Year", p["year"], "bear/base/bull:", p["bear_balance"], p["base_balance"], p["bull_balance"],
              "income:", p["annual_income"], "yoc:", round(p["yield_on_cost_pct"], 2))

if __name__ == "__main__":
    main()
