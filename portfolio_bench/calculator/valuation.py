"""Valuation aggregator shared by both strategies.

All calculations use explicit formulas:
- Token amount = balance / 10^decimals
- USD value = token amount × price(symbol)
- Total value = Σ USD value over tokens

Anything not yet available (loading, error, missing price) counts as 0.
"""

import logging
from collections.abc import Iterable
from decimal import Context, Decimal

from ..core.models import PortfolioValuation, PriceTable, TokenBalanceState, ValuationLine
from ..core.types import FetchStatus

logger = logging.getLogger(__name__)


class ValuationAggregator:
    """Combines balances, decimals and prices into display values."""

    def line_for(self, state: TokenBalanceState, prices: PriceTable) -> ValuationLine:
        """
        Value a single token.

        Args:
            state: Per-token balance state
            prices: Current price table

        Returns:
            ValuationLine; zero-valued unless the balance loaded
        """
        if state.status is not FetchStatus.OK or state.balance is None:
            return ValuationLine(token=state.token, status=state.status, error=state.error)

        formatted = format_units(state.balance.amount, state.balance.decimals)
        return ValuationLine(
            token=state.token,
            formatted_balance=formatted,
            usd_value=calc_usd_value(formatted, prices.get(state.token.symbol)),
            status=state.status,
        )

    def aggregate(
        self,
        states: Iterable[TokenBalanceState],
        prices: PriceTable,
    ) -> PortfolioValuation:
        """
        Value every token and sum the total.

        Args:
            states: Per-token balance states, in token order
            prices: Current price table

        Returns:
            PortfolioValuation with lines in input order
        """
        lines = tuple(self.line_for(state, prices) for state in states)
        total = sum((line.usd_value for line in lines), 0.0)
        return PortfolioValuation(lines=lines, total_usd=total)


def format_units(amount: int, decimals: int) -> Decimal:
    """
    Scale a base-unit amount to whole tokens.

    Formula: amount / 10^decimals (exact, no float rounding)

    Args:
        amount: Balance in base units
        decimals: Token decimals

    Returns:
        Token amount as Decimal
    """
    if amount < 0:
        raise ValueError("amount must be non-negative")
    # uint256 amounts exceed the default 28-digit context
    return Decimal(amount).scaleb(-decimals, context=Context(prec=max(len(str(amount)), 28)))


def calc_usd_value(token_amount: Decimal, price: float) -> float:
    """
    Calculate USD value of a token amount.

    Formula: value = token_amount × price
    """
    return float(token_amount) * price


def calc_total_value(states: Iterable[TokenBalanceState], prices: PriceTable) -> float:
    """Σ (balance / 10^decimals) × price over loaded tokens."""
    return ValuationAggregator().aggregate(states, prices).total_usd
