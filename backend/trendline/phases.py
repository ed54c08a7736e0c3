from __future__ import annotations

import calendar
import math
import re
from dataclasses import dataclass, field
from typing import Literal

from trendline.trend_models import AxisDescriptor, GeneratedPayload, Phase, TimeLabel

SECONDS_PER_DAY = 24 * 60 * 60

# Synthetic label bands. These are opaque sort keys kept disjoint from each other
# and from real calendar years; they are not meant to be read as dates.
CN_ORDINAL_BASE_YEAR = 3000
EN_ORDINAL_BASE_YEAR = 4000
NUMERIC_BASE_YEAR = 5000
MAX_ORDINAL = 999
MAX_NUMERIC = 4999

SUBJECTIVE_RANGE = (0.0, 100.0)
SPAN_PADDING_RATIO = 0.08
FLAT_PADDING_RATIO = 0.05

_PLAIN_YEAR_PATTERN = re.compile(r"[1-9]\d{3}")
_QUARTER_PATTERN = re.compile(r"((?:19|20)\d{2})\s*[Qq]([1-4])")
_EMBEDDED_YEAR_PATTERN = re.compile(r"((?:19|20)\d{2})")
_CN_ORDINAL_PATTERN = re.compile(r"第?\s*(\d+)\s*(?:季|赛季|期|集|回|话|章|幕|阶段|局|场|篇)")
_EN_ORDINAL_PATTERN = re.compile(
    r"(?:season|episode|ep|stage|phase|round|match|chapter|part)\s*0*(\d+)",
    flags=re.IGNORECASE,
)
_NUMBER_PATTERN = re.compile(r"(\d+)")


@dataclass(frozen=True)
class AxisRange:
    min: float
    max: float


@dataclass(frozen=True)
class ChartPoint:
    time: int
    value: float
    label: str
    phase_index: int
    # lookup only, for hover details
    phase: Phase = field(compare=False, repr=False)


@dataclass(frozen=True)
class ChartSeries:
    subject: str
    metric: str
    axis: AxisDescriptor | None
    phases: list[Phase]
    points: list[ChartPoint]
    range: AxisRange | None


@dataclass(frozen=True)
class ChartData:
    mode: Literal["single_axis", "dual_axis"]
    primary: ChartSeries
    secondary: ChartSeries | None = None


def _year_start(year: int, month: int = 1) -> int:
    return calendar.timegm((year, month, 1, 0, 0, 0, 0, 0, 0))


def label_to_timestamp(label: TimeLabel, index: int = 0) -> int:
    """Map a free-form phase boundary label to a UTC timestamp in seconds."""
    if isinstance(label, (int, float)) and not isinstance(label, bool):
        if float(label).is_integer() and 1000 <= label <= 9999:
            return _year_start(int(label))
        raw = str(int(label)) if float(label).is_integer() else str(label)
    else:
        raw = str(label).strip()

    if _PLAIN_YEAR_PATTERN.fullmatch(raw):
        return _year_start(int(raw))

    quarter = _QUARTER_PATTERN.search(raw)
    if quarter:
        return _year_start(int(quarter.group(1)), (int(quarter.group(2)) - 1) * 3 + 1)

    year = _EMBEDDED_YEAR_PATTERN.search(raw)
    if year:
        return _year_start(int(year.group(1)))

    cn_ordinal = _CN_ORDINAL_PATTERN.search(raw)
    if cn_ordinal:
        return _year_start(CN_ORDINAL_BASE_YEAR + min(int(cn_ordinal.group(1)), MAX_ORDINAL))

    en_ordinal = _EN_ORDINAL_PATTERN.search(raw)
    if en_ordinal:
        return _year_start(EN_ORDINAL_BASE_YEAR + min(int(en_ordinal.group(1)), MAX_ORDINAL))

    number = _NUMBER_PATTERN.search(raw)
    if number:
        return _year_start(NUMERIC_BASE_YEAR + min(int(number.group(1)), MAX_NUMERIC))

    return index * SECONDS_PER_DAY


def format_time_label(label: TimeLabel) -> str:
    return str(label).strip()


def clamp_score(value: float) -> float:
    return min(max(value, 0.0), 100.0)


def is_subjective_axis(axis: AxisDescriptor | None) -> bool:
    # Values are clamped unless the axis is declared objective.
    return axis is None or axis.kind != "objective"


def has_fixed_score_range(axis: AxisDescriptor | None) -> bool:
    # Only an explicitly subjective axis pins the range to 0-100.
    return axis is not None and axis.kind == "subjective"


def normalize_phases(phases: list[Phase], clamp_to_hundred: bool) -> list[Phase]:
    if not clamp_to_hundred:
        return list(phases)
    return [
        phase.model_copy(
            update={
                "open": clamp_score(phase.open),
                "high": clamp_score(phase.high),
                "low": clamp_score(phase.low),
                "close": clamp_score(phase.close),
            }
        )
        for phase in phases
    ]


def _is_discontinuous(previous: Phase, current: Phase) -> bool:
    if format_time_label(previous.end_label) != format_time_label(current.start_label):
        return True
    return previous.close != current.open


def build_area_data(phases: list[Phase]) -> list[ChartPoint]:
    """Turn phases into a strictly increasing series of chart points.

    The first phase contributes its opening point; later phases only add an
    opening point when they do not continue the previous close. Every phase adds
    its closing point. Colliding timestamps are pushed one day forward.
    """
    points: list[ChartPoint] = []
    last_time: int | None = None

    def push_point(time: int, value: float, phase_index: int, label: TimeLabel) -> None:
        nonlocal last_time
        if last_time is not None and time <= last_time:
            time = last_time + SECONDS_PER_DAY
        last_time = time
        points.append(
            ChartPoint(
                time=time,
                value=value,
                label=format_time_label(label),
                phase_index=phase_index,
                phase=phases[phase_index],
            )
        )

    for index, phase in enumerate(phases):
        start_time = label_to_timestamp(phase.start_label, index)
        end_time = label_to_timestamp(phase.end_label, index + 1)
        if index == 0 or _is_discontinuous(phases[index - 1], phase):
            push_point(start_time, phase.open, index, phase.start_label)
        push_point(end_time, phase.close, index, phase.end_label)

    return points


def compute_phase_range(phases: list[Phase], axis: AxisDescriptor | None = None) -> AxisRange | None:
    if not phases:
        return None
    if has_fixed_score_range(axis):
        return AxisRange(*SUBJECTIVE_RANGE)

    values = [value for phase in phases for value in (phase.open, phase.close, phase.low, phase.high)]
    low = min(values)
    high = max(values)
    if not math.isfinite(low) or not math.isfinite(high):
        return None
    if low == high:
        padding = abs(low) * FLAT_PADDING_RATIO or 1.0
        return AxisRange(min=low - padding, max=high + padding)
    gap = (high - low) * SPAN_PADDING_RATIO
    return AxisRange(min=low - gap, max=high + gap)


def describe_axis(axis: AxisDescriptor | None) -> str:
    if axis is None:
        return ""
    return f"{axis.label} ({axis.unit})" if axis.unit else axis.label


def build_series(
    *,
    subject: str,
    metric: str,
    phases: list[Phase],
    axis: AxisDescriptor | None,
) -> ChartSeries:
    display_phases = normalize_phases(phases, is_subjective_axis(axis))
    return ChartSeries(
        subject=subject,
        metric=metric,
        axis=axis,
        phases=display_phases,
        points=build_area_data(display_phases),
        range=compute_phase_range(display_phases, axis),
    )


def build_chart(payload: GeneratedPayload) -> ChartData:
    primary = build_series(
        subject=payload.subject,
        metric=payload.metric,
        phases=payload.phases,
        axis=payload.primary_axis,
    )
    secondary = None
    if payload.secondary is not None and payload.secondary.phases:
        secondary = build_series(
            subject=payload.secondary.subject,
            metric=payload.secondary.metric,
            phases=payload.secondary.phases,
            axis=payload.secondary_axis,
        )

    declared_mode = payload.chart_notes.mode if payload.chart_notes else None
    if declared_mode is not None:
        mode = declared_mode
    elif secondary is not None and payload.secondary_axis is not None:
        mode = "dual_axis"
    else:
        mode = "single_axis"
    return ChartData(mode=mode, primary=primary, secondary=secondary)


def _series_to_wire(series: ChartSeries) -> dict[str, object]:
    return {
        "subject": series.subject,
        "metric": series.metric,
        "axis_caption": describe_axis(series.axis) or series.metric,
        "range": {"min": series.range.min, "max": series.range.max} if series.range else None,
        "points": [
            {
                "time": point.time,
                "value": point.value,
                "label": point.label,
                "phase_index": point.phase_index,
                "zone": point.phase.zone,
            }
            for point in series.points
        ],
    }


def chart_to_wire(chart: ChartData) -> dict[str, object]:
    return {
        "mode": chart.mode,
        "primary": _series_to_wire(chart.primary),
        "secondary": _series_to_wire(chart.secondary) if chart.secondary else None,
    }
