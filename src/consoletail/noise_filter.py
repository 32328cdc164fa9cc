"""Noise filter applied to classified records at view time."""

from typing import Iterable, Iterator

from .classifier import classify
from .models import (
    ClassifiedRecord,
    FilterLevel,
    FilterResult,
    KeepConfig,
    NoiseConfig,
    NoiseRule,
    Severity,
)


class NoiseFilter:
    """Decides which classified records a view shows.

    The filter is a pure function of its configuration: it never stores
    or drops records itself, so callers can toggle it on a retention
    buffer and derive both the filtered and unfiltered counts at any time.

    Attributes:
        noise_config: Rules marking lines as noise.
        keep_config: Error/important patterns that override noise.
    """

    def __init__(
        self,
        noise_config: NoiseConfig | None = None,
        keep_config: KeepConfig | None = None,
    ) -> None:
        self.noise_config = noise_config or NoiseConfig()
        self.keep_config = keep_config or KeepConfig()

    def matching_rule(self, record: ClassifiedRecord) -> NoiseRule | None:
        """Return the first noise rule matching the record, if any."""
        for rule in self.noise_config.rules:
            if rule.matches(record):
                return rule
        return None

    def is_record_noisy(self, record: ClassifiedRecord) -> bool:
        return self.matching_rule(record) is not None

    def is_noisy(self, raw: str) -> bool:
        """Check whether a raw line is noise."""
        return self.is_record_noisy(classify(raw))

    def is_error(self, record: ClassifiedRecord) -> bool:
        return record.severity == Severity.ERROR or self.keep_config.is_error(record.raw)

    def evaluate(
        self, record: ClassifiedRecord, level: FilterLevel = FilterLevel.FILTERED
    ) -> FilterResult:
        """Evaluate a single record at the given filter level.

        Levels:
        - ALL: everything is visible
        - ERRORS: only errors (ERROR severity or an error pattern)
        - IMPORTANT: errors plus important lines
        - FILTERED: everything that is not noise; error and important
          patterns override noise rules
        """
        matched_rule = self.matching_rule(record)
        noisy = matched_rule is not None

        if level == FilterLevel.ALL:
            visible = True
        elif level == FilterLevel.ERRORS:
            visible = self.is_error(record)
        elif level == FilterLevel.IMPORTANT:
            visible = self.is_error(record) or self.keep_config.is_important(record.raw)
        else:
            visible = (
                not noisy
                or self.keep_config.is_error(record.raw)
                or self.keep_config.is_important(record.raw)
            )

        return FilterResult(
            record=record,
            visible=visible,
            noisy=noisy,
            matched_rule=matched_rule,
        )

    def evaluate_all(
        self, records: Iterable[ClassifiedRecord], level: FilterLevel = FilterLevel.FILTERED
    ) -> Iterator[FilterResult]:
        for record in records:
            yield self.evaluate(record, level)

    def view(
        self, records: Iterable[ClassifiedRecord], level: FilterLevel = FilterLevel.FILTERED
    ) -> list[ClassifiedRecord]:
        """Return the visible records, preserving order."""
        return [r.record for r in self.evaluate_all(records, level) if r.visible]

    def counts(
        self, records: Iterable[ClassifiedRecord], level: FilterLevel = FilterLevel.FILTERED
    ) -> tuple[int, int]:
        """Return ``(total, visible)`` for the records at the given level."""
        total = 0
        visible = 0
        for result in self.evaluate_all(records, level):
            total += 1
            if result.visible:
                visible += 1
        return total, visible


def create_default_filter(
    noise_config: NoiseConfig | None = None,
    keep_config: KeepConfig | None = None,
) -> NoiseFilter:
    """Create a NoiseFilter with the built-in rules plus any configured ones.

    Args:
        noise_config: Extra noise rules (e.g. from .consolenoise).
        keep_config: Keep patterns; the built-in ones when None.
    """
    rules = NoiseConfig.defaults()
    if noise_config is not None:
        rules.extend(noise_config)
    return NoiseFilter(
        noise_config=rules,
        keep_config=keep_config if keep_config is not None else KeepConfig.defaults(),
    )


class FilterStats:
    """Statistics tracker for filter operations.

    Useful for reporting filter effectiveness and debugging rules.
    """

    def __init__(self) -> None:
        self.total_records: int = 0
        self.displayed_records: int = 0
        self.hidden_records: int = 0
        self.rule_match_counts: dict[str, int] = {}
        self.severity_counts: dict[Severity, int] = {}

    def record(self, result: FilterResult) -> None:
        """Record a filter result in the stats."""
        self.total_records += 1
        severity = result.record.severity
        self.severity_counts[severity] = self.severity_counts.get(severity, 0) + 1

        if result.visible:
            self.displayed_records += 1
        else:
            self.hidden_records += 1

        if result.matched_rule is not None:
            rule_key = self._rule_key(result.matched_rule)
            self.rule_match_counts[rule_key] = (
                self.rule_match_counts.get(rule_key, 0) + 1
            )

    @staticmethod
    def _rule_key(rule: NoiseRule) -> str:
        return f"{type(rule).__name__}:{rule!r}"

    @property
    def filter_rate(self) -> float:
        """Percentage of records that were hidden."""
        if self.total_records == 0:
            return 0.0
        return (self.hidden_records / self.total_records) * 100

    def summary(self) -> str:
        """Generate a summary string of filter stats."""
        lines = [
            f"Total records: {self.total_records}",
            f"Displayed: {self.displayed_records}",
            f"Hidden: {self.hidden_records} ({self.filter_rate:.1f}%)",
        ]

        if self.severity_counts:
            lines.append("\nBy severity:")
            for severity in Severity:
                count = self.severity_counts.get(severity)
                if count:
                    lines.append(f"  {severity.value}: {count}")

        if self.rule_match_counts:
            lines.append("\nRule match counts:")
            for rule_key, count in sorted(
                self.rule_match_counts.items(),
                key=lambda x: x[1],
                reverse=True,
            ):
                lines.append(f"  {rule_key}: {count}")

        return "\n".join(lines)
