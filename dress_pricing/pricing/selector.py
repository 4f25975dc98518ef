"""Pick the single pricing rule that applies to a booking."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

import structlog

from dress_pricing.errors import NoApplicableRule, RuleNotFound
from dress_pricing.schemas.calculation import BookingContext
from dress_pricing.schemas.rule import AppliesTo, PricingRule

logger = structlog.get_logger()

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _in_list(allowed: Optional[list[str]], value: Optional[str]) -> bool:
    if not allowed:
        return True  # wildcard
    if value is None:
        return False  # rule requires a value we don't have
    return value.lower() in {item.lower() for item in allowed}


def _updated_key(rule: PricingRule) -> datetime:
    stamp = rule.updated_at or rule.created_at
    if stamp is None:
        return _EPOCH
    if stamp.tzinfo is None:
        return stamp.replace(tzinfo=timezone.utc)
    return stamp


def _sort_key(rule: PricingRule) -> tuple:
    # Highest priority, then most recently updated, then lowest id
    return (-rule.priority, -_updated_key(rule).timestamp(), rule.id)


class RuleSelector:
    """Filters the rule catalog and orders matches by priority."""

    def select(
        self,
        rules: Sequence[PricingRule],
        context: BookingContext,
        pricing_rule_id: Optional[str] = None,
    ) -> PricingRule:
        """Return the rule to apply to ``context``.

        An explicit ``pricing_rule_id`` bypasses matching entirely, but the
        rule must still exist and be active.

        Raises:
            RuleNotFound: explicit rule absent or inactive
            NoApplicableRule: nothing matches the context
        """
        if pricing_rule_id:
            return self._explicit(rules, pricing_rule_id)

        matched = self._match_rules(rules, context)
        if not matched:
            logger.info(
                "no_applicable_pricing_rule",
                dress_id=context.dress_id,
                duration_days=context.duration_days,
                candidates=len(rules),
            )
            raise NoApplicableRule()

        rule = matched[0]
        if len(matched) > 1 and matched[1].priority == rule.priority:
            logger.warning(
                "pricing_rule_priority_tie",
                selected=rule.id,
                tied=[r.id for r in matched if r.priority == rule.priority],
                priority=rule.priority,
            )
        logger.debug(
            "pricing_rule_selected",
            rule_id=rule.id,
            strategy=rule.strategy.value,
            priority=rule.priority,
            matched=len(matched),
        )
        return rule

    def _explicit(self, rules: Iterable[PricingRule], rule_id: str) -> PricingRule:
        for rule in rules:
            if rule.id == rule_id:
                if not rule.is_active:
                    raise RuleNotFound(rule_id, reason="is inactive")
                return rule
        raise RuleNotFound(rule_id)

    def _match_rules(
        self,
        rules: Iterable[PricingRule],
        context: BookingContext,
    ) -> list[PricingRule]:
        """Active rules matching the context, best first."""
        matched = [
            rule for rule in rules
            if rule.is_active and self._matches(rule, context)
        ]
        matched.sort(key=_sort_key)
        return matched

    def _matches(self, rule: PricingRule, context: BookingContext) -> bool:
        if rule.service_type_id and rule.service_type_id != context.service_type_id:
            return False
        return self._applies(rule.applies_to, context)

    @staticmethod
    def _applies(applies_to: AppliesTo, context: BookingContext) -> bool:
        if not _in_list(applies_to.dress_types, context.dress_type):
            return False
        if not _in_list(applies_to.customer_types, context.customer_type):
            return False
        if not _in_list(applies_to.seasons, context.season):
            return False
        if not _in_list(applies_to.weekdays, context.weekday):
            return False
        if not _in_list(applies_to.service_types, context.service_type):
            return False

        # Inclusive duration bounds
        if applies_to.min_duration_days is not None and context.duration_days < applies_to.min_duration_days:
            return False
        if applies_to.max_duration_days is not None and context.duration_days > applies_to.max_duration_days:
            return False
        if applies_to.max_duration_hours is not None and context.duration_hours > applies_to.max_duration_hours:
            return False
        return True
