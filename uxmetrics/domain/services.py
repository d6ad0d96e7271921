from __future__ import annotations

import logging
from typing import Protocol

from .calculations import format_duration
from .filters import (
    AnalyticsFilters,
    DateRangeFilter,
    MetricSet,
    filter_responses_by_task,
    filter_sessions,
)
from .metrics import extract_metric_values, mean, median
from .models import (
    AggregatedMetrics,
    AssessmentKind,
    AssessmentResponse,
    AssessmentType,
    DateRange,
    EvaluationSession,
    MetricAggregate,
    MetricsComparison,
    MetricsSummary,
    TimeMetricAggregate,
)


class MetricsDataSource(Protocol):
    """Read-only access the analytics core needs from storage."""

    def get_sessions_for_study(self, study_id: str) -> list[EvaluationSession]: ...

    def get_responses_for_session(self, session_id: str) -> list[AssessmentResponse]: ...

    def get_assessment_type_by_kind(self, kind: AssessmentKind) -> AssessmentType | None: ...

    def get_all_responses(self) -> list[AssessmentResponse]: ...


def calculate_difference(baseline: float | None, comparison: float | None) -> float | None:
    if baseline is None or comparison is None:
        return None
    return comparison - baseline


def calculate_percentage_change(baseline: float | None, comparison: float | None) -> float | None:
    """
    Relative change from ``baseline`` to ``comparison`` in percent.

    A zero baseline yields 0 when the comparison is also zero and ``None``
    otherwise.
    """
    if baseline is None or comparison is None:
        return None
    if baseline == 0:
        return 0.0 if comparison == 0 else None
    return (comparison - baseline) / baseline * 100


class AnalyticsService:
    """
    Study-level aggregation, filtering and comparison over a ``MetricsDataSource``.

    Read-only: calling any method twice with the same store contents returns
    equal results.
    """

    def __init__(self, source: MetricsDataSource, logger: logging.Logger | None = None):
        self.source = source
        self.logger = logger or logging.getLogger(__name__)

    def _responses_of_kind(
        self, responses: list[AssessmentResponse], kind: AssessmentKind
    ) -> list[AssessmentResponse]:
        assessment_type = self.source.get_assessment_type_by_kind(kind)
        if assessment_type is None:
            return []
        return [r for r in responses if r.assessment_type_id == assessment_type.id]

    def _values(self, responses: list[AssessmentResponse], kind: AssessmentKind) -> list[float]:
        return extract_metric_values(self._responses_of_kind(responses, kind), kind)

    def get_study_metrics(
        self, study_id: str, filters: AnalyticsFilters | None = None
    ) -> AggregatedMetrics:
        """
        Aggregate one study's responses, narrowed by ``filters``.

        - sessions are pruned by participant and date range first;
        - responses of the surviving sessions are narrowed by task;
        - time on task reports median and mean, the other kinds their mean.

        Unknown studies produce zero counts and ``None`` statistics.
        """
        sessions = filter_sessions(self.source.get_sessions_for_study(study_id), filters)

        responses: list[AssessmentResponse] = []
        for session in sessions:
            responses.extend(self.source.get_responses_for_session(session.id))
        responses = filter_responses_by_task(responses, filters)

        date_range = DateRange()
        if sessions:
            created = [s.created_at for s in sessions]
            date_range = DateRange(start=min(created), end=max(created))

        success = self._values(responses, AssessmentKind.TASK_SUCCESS_RATE)
        durations = self._values(responses, AssessmentKind.TIME_ON_TASK)
        efficiency = self._values(responses, AssessmentKind.TASK_EFFICIENCY)
        error_rates = self._values(responses, AssessmentKind.ERROR_RATE)
        seq = self._values(responses, AssessmentKind.SEQ)

        summary = MetricsSummary(
            task_success_rate=MetricAggregate(mean=mean(success), count=len(success)),
            time_on_task=TimeMetricAggregate(
                median=median(durations), mean=mean(durations), count=len(durations)
            ),
            task_efficiency=MetricAggregate(mean=mean(efficiency), count=len(efficiency)),
            error_rate=MetricAggregate(mean=mean(error_rates), count=len(error_rates)),
            seq=MetricAggregate(mean=mean(seq), count=len(seq)),
        )

        self.logger.debug(
            f"Aggregated study {study_id}: {len(sessions)} sessions, {len(responses)} responses"
        )
        return AggregatedMetrics(
            study_id=study_id,
            session_count=len(sessions),
            participant_count=len({s.participant_id for s in sessions}),
            date_range=date_range,
            metrics=summary,
        )

    def compare(self, baseline: MetricSet, comparison: MetricSet) -> MetricsComparison:
        """Aggregate both metric sets and diff them kind by kind."""
        base = self.get_study_metrics(baseline.study_id, baseline.filters)
        other = self.get_study_metrics(comparison.study_id, comparison.filters)

        differences: dict[AssessmentKind, float | None] = {}
        percentage_changes: dict[AssessmentKind, float | None] = {}
        for kind in AssessmentKind:
            b, c = base.metrics.headline(kind), other.metrics.headline(kind)
            differences[kind] = calculate_difference(b, c)
            percentage_changes[kind] = calculate_percentage_change(b, c)

        return MetricsComparison(
            baseline=base,
            comparison=other,
            differences=differences,
            percentage_changes=percentage_changes,
        )

    def compare_study_metrics(
        self,
        baseline_study_id: str,
        comparison_study_id: str,
        baseline_filters: AnalyticsFilters | None = None,
        comparison_filters: AnalyticsFilters | None = None,
    ) -> MetricsComparison:
        return self.compare(
            MetricSet(baseline_study_id, baseline_filters),
            MetricSet(comparison_study_id, comparison_filters),
        )

    def compare_time_periods(
        self,
        study_id: str,
        baseline_period: DateRangeFilter,
        comparison_period: DateRangeFilter,
    ) -> MetricsComparison:
        """Compare two date windows of the same study."""
        return self.compare(
            MetricSet(study_id, AnalyticsFilters(date_range=baseline_period)),
            MetricSet(study_id, AnalyticsFilters(date_range=comparison_period)),
        )

    def get_unique_task_descriptions(self, study_id: str | None = None) -> list[str]:
        """Sorted distinct task descriptions, for one study or across all responses."""
        if study_id is None:
            responses = self.source.get_all_responses()
        else:
            responses = []
            for session in self.source.get_sessions_for_study(study_id):
                responses.extend(self.source.get_responses_for_session(session.id))
        return sorted({r.task_description for r in responses})


def format_metrics_for_display(
    metrics: AggregatedMetrics, decimals: int = 1
) -> dict[str, str]:
    """
    Human-readable strings per metric.

    Example:
        >>> format_metrics_for_display(result)["timeOnTask"]
        '2m 5s'
    """

    def fmt(value: float | None, suffix: str = "") -> str:
        return "N/A" if value is None else f"{value:.{decimals}f}{suffix}"

    summary = metrics.metrics
    median_time = summary.time_on_task.median
    return {
        "taskSuccessRate": fmt(summary.task_success_rate.mean, "%"),
        "timeOnTask": "N/A" if median_time is None else format_duration(median_time),
        "taskEfficiency": fmt(summary.task_efficiency.mean, "%"),
        "errorRate": fmt(summary.error_rate.mean, "%"),
        "seq": fmt(summary.seq.mean, "/7"),
    }
