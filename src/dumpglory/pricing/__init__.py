"""Pricing module — pure fee, cooldown, theft-cost and decay curves."""

from dumpglory.pricing.engine import PricingEngine, SCALE, SECONDS_PER_DAY

__all__ = ["PricingEngine", "SCALE", "SECONDS_PER_DAY"]
