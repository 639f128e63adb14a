"""Valuation calculation module."""

from .valuation import ValuationAggregator, calc_total_value, calc_usd_value, format_units

__all__ = ["ValuationAggregator", "calc_total_value", "calc_usd_value", "format_units"]
