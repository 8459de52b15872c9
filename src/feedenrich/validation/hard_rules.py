"""Deterministic, explainable rule validator. No model calls."""

from __future__ import annotations

import json
import re
from typing import Any, Iterable, Mapping

from feedenrich.fields.aliases import lookup
from feedenrich.models.domain import Record, RuleViolation, ValidationResult
from feedenrich.models.values import to_display_string
from feedenrich.observability.logger import get_logger
from feedenrich.validation.rules import ValidationRule, default_gmc_rules

logger = get_logger("hard_rules")


class HardRuleValidator:
    def __init__(self, rules: Iterable[ValidationRule] | None = None) -> None:
        self._rules: list[ValidationRule] = (
            list(rules) if rules is not None else default_gmc_rules()
        )

    @property
    def rules(self) -> list[ValidationRule]:
        return list(self._rules)

    def load_rules(self, rules: Iterable[ValidationRule]) -> None:
        self._rules.extend(rules)

    def validate(self, data: Record | Mapping[str, Any] | str | bytes) -> ValidationResult:
        result = ValidationResult()

        fields = self._parse(data)
        if fields is None:
            result.violations.append(
                RuleViolation(
                    rule_id="parse_error",
                    field="_json",
                    message="Failed to parse product data",
                    expected="JSON object of product fields",
                    actual=type(data).__name__,
                )
            )
            return result

        for rule in self._rules:
            if not rule.active:
                continue
            result.rules_checked += 1
            value = to_display_string(lookup(fields, rule.field))
            violation = self._check_rule(rule, value)
            if violation is None:
                continue
            if rule.severity == "error":
                result.violations.append(violation)
            else:
                result.warnings.append(violation)

        logger.debug(
            "hard_rules_checked",
            rules_checked=result.rules_checked,
            violations=len(result.violations),
            warnings=len(result.warnings),
        )
        return result

    @staticmethod
    def _parse(data: Any) -> Mapping[str, Any] | None:
        if isinstance(data, Record):
            return data.current
        if isinstance(data, Mapping):
            return data
        if isinstance(data, (str, bytes)):
            try:
                parsed = json.loads(data)
            except ValueError:
                return None
            return parsed if isinstance(parsed, dict) else None
        return None

    def _check_rule(self, rule: ValidationRule, value: str) -> RuleViolation | None:
        def violation(expected: str, actual: str) -> RuleViolation:
            return RuleViolation(
                rule_id=rule.id,
                field=rule.field,
                message=rule.message,
                expected=expected,
                actual=actual,
            )

        if rule.type == "required":
            if not value.strip():
                return violation("non-empty value", "(empty)")

        elif rule.type in ("min_length", "max_length"):
            bound = self._as_int(rule)
            if bound is None:
                return None
            length = len(value)
            if rule.type == "min_length" and length < bound:
                return violation(f"{bound}+ characters", f"{length} characters")
            if rule.type == "max_length" and length > bound:
                return violation(f"max {bound} characters", f"{length} characters")

        elif rule.type == "pattern":
            if not isinstance(rule.value, str):
                return None
            try:
                matched = re.search(rule.value, value) is not None
            except re.error:
                logger.warning("invalid_rule_pattern", rule_id=rule.id, pattern=rule.value)
                return violation(f"match pattern: {rule.value}", "(invalid pattern)")
            if not matched:
                return violation(f"match pattern: {rule.value}", value)

        elif rule.type == "forbidden_words":
            words = rule.value if isinstance(rule.value, (list, tuple)) else []
            lower_value = value.lower()
            for word in words:
                if isinstance(word, str) and word and word.lower() in lower_value:
                    return violation("no forbidden words", f"contains '{word}'")

        elif rule.type == "url":
            if value and not (value.startswith("http://") or value.startswith("https://")):
                return violation("valid URL starting with http:// or https://", value)

        return None

    @staticmethod
    def _as_int(rule: ValidationRule) -> int | None:
        if isinstance(rule.value, bool):
            return None
        if isinstance(rule.value, (int, float)):
            return int(rule.value)
        if isinstance(rule.value, str) and rule.value.strip().isdigit():
            return int(rule.value)
        logger.warning("invalid_rule_bound", rule_id=rule.id, value=rule.value)
        return None
