"""Pricing error taxonomy.

Selector and evaluators raise these; the contract calculator stores their
message per dress, and the API maps ``code`` to an HTTP status.
"""

from __future__ import annotations

from typing import Optional


class PricingError(Exception):
    """Base class for every failure of a price computation."""

    code = "pricing_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidDateRange(PricingError):
    code = "invalid_date_range"

    def __init__(self, message: str = "Start date must be before end date"):
        super().__init__(message)


class RuleNotFound(PricingError):
    code = "rule_not_found"

    def __init__(self, rule_id: str, reason: str = "not found"):
        super().__init__(f"Pricing rule {rule_id} {reason}")
        self.rule_id = rule_id


class NoApplicableRule(PricingError):
    code = "no_applicable_rule"

    def __init__(self, message: str = "No active pricing rule matches this booking"):
        super().__init__(message)


class NoMatchingTier(PricingError):
    code = "no_matching_tier"

    def __init__(self, duration_days: int, rule_id: Optional[str] = None):
        super().__init__(f"No tier covers a duration of {duration_days} day(s)")
        self.duration_days = duration_days
        self.rule_id = rule_id


class InvalidRuleConfig(PricingError):
    code = "invalid_rule_config"

    def __init__(self, field: str, strategy: Optional[str] = None, detail: str = "is missing"):
        where = f" for strategy {strategy}" if strategy else ""
        super().__init__(f"Pricing rule config field '{field}' {detail}{where}")
        self.field = field
        self.strategy = strategy


class DressNotFound(PricingError):
    code = "dress_not_found"

    def __init__(self, dress_id: str):
        super().__init__(f"Dress {dress_id} not found")
        self.dress_id = dress_id


class UpstreamUnavailable(PricingError):
    code = "upstream_unavailable"
