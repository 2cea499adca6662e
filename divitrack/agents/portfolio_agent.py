from __future__ import annotations

from typing import Iterable, List, Mapping, Optional

from divitrack.core.llm_client import LLMClient
from divitrack.core.schemas import AgentResponse, DividendMetadata, ErrorEnvelope, Holding
from divitrack.utils.logging import get_logger

logger = get_logger("portfolio_agent")

NO_ANALYSIS = "Could not generate analysis."


def describe_holdings(holdings: Iterable[Holding], metadata: Mapping[str, DividendMetadata]) -> List[str]:
    lines: List[str] = []
    for h in holdings:
        info = metadata.get(h.ticker)
        if info is None:
            lines.append(f"- {h.ticker}: Data missing")
            continue
        income = h.quantity * info.annual_dividend_per_share
        lines.append(
            f"- {h.ticker} ({info.name}): Qty {h.quantity:g}, Yield {info.yield_pct:g}%, "
            f"Growth {info.growth_rate_pct:g}%, Annual Income ${income:.2f}"
        )
    return lines


def build_analysis_prompt(holdings: Iterable[Holding], metadata: Mapping[str, DividendMetadata]) -> str:
    portfolio_lines = "\n".join(describe_holdings(holdings, metadata))
    return (
        "Act as a world-class dividend growth investor. Analyze the following portfolio:\n\n"
        f"{portfolio_lines}\n\n"
        "Provide a concise but deep analysis covering:\n"
        "1. Sector Diversification: Based on these tickers, what sectors am I heavy/light on?\n"
        "2. Income Quality: Are there any potential \"yield traps\" or high-risk payout ratios?\n"
        "3. Growth Potential: How does the dividend growth rate look for the long term?\n"
        "4. Strategic Recommendation: What 1-2 types of assets should I consider adding to balance this?\n"
    )


class PortfolioAnalysisAgent:
    name = "portfolio_analysis_agent"

    def __init__(self, llm: Optional[LLMClient] = None) -> None:
        self._llm = llm

    def run(self, holdings: Iterable[Holding], metadata: Mapping[str, DividendMetadata]) -> AgentResponse:
        holdings = list(holdings)
        if not holdings:
            return AgentResponse(
                agent_name=self.name,
                answer_md="Add a holding before running an analysis.",
                warnings=["EMPTY_PORTFOLIO"],
                confidence="low",
            )

        missing = [h.ticker for h in holdings if h.ticker not in metadata]
        try:
            llm = self._llm or LLMClient()
            text = llm.generate(build_analysis_prompt(holdings, metadata)).text
        except Exception as e:
            logger.exception("analysis_failed")
            return AgentResponse(
                agent_name=self.name,
                answer_md="Portfolio analysis failed.",
                warnings=["AGENT_FAILED"],
                confidence="low",
                error=ErrorEnvelope(code="AGENT_FAILED", message=str(e), retriable=True),
            )

        warnings = [f"MISSING_METADATA:{t}" for t in dict.fromkeys(missing)]
        return AgentResponse(
            agent_name=self.name,
            answer_md=text or NO_ANALYSIS,
            data={"holdings": len(holdings), "missing_metadata": list(dict.fromkeys(missing))},
            warnings=warnings,
            confidence="medium" if missing else "high",
        )
