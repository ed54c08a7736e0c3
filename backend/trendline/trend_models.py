from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Zone = Literal["realized", "projected"]
AxisKind = Literal["subjective", "objective"]
TimeLabel = int | float | str

_PROJECTED_MARKERS = ("project", "predict", "forecast", "推演", "预测")


def _blank_if_none(value: object) -> object:
    return "" if value is None else value


def _empty_if_none(value: object) -> object:
    return [] if value is None else value


class KeyEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    time: str = ""
    description: str = ""
    impact: str = ""

    @field_validator("time", "description", "impact", mode="before")
    @classmethod
    def coerce_text(cls, value: object) -> object:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return _blank_if_none(value)


class Phase(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    start_label: TimeLabel = Field(..., alias="start_year")
    end_label: TimeLabel = Field(..., alias="end_year")
    open: float
    high: float
    low: float
    close: float
    label: str = ""
    zone: Zone = "realized"
    key_events: list[KeyEvent] = Field(default_factory=list)
    relation_note: str | None = None

    @field_validator("label", mode="before")
    @classmethod
    def blank_label(cls, value: object) -> object:
        return _blank_if_none(value)

    @field_validator("key_events", mode="before")
    @classmethod
    def empty_events(cls, value: object) -> object:
        return _empty_if_none(value)

    @field_validator("zone", mode="before")
    @classmethod
    def normalize_zone(cls, value: object) -> object:
        lowered = str(value or "").strip().lower()
        if any(marker in lowered for marker in _PROJECTED_MARKERS):
            return "projected"
        return "realized"


class AxisDescriptor(BaseModel):
    model_config = ConfigDict(extra="allow")

    label: str = ""
    unit: str | None = None
    kind: AxisKind | None = None
    description: str | None = None
    range_hint: str | None = None

    @field_validator("label", mode="before")
    @classmethod
    def blank_label(cls, value: object) -> object:
        return _blank_if_none(value)

    @field_validator("kind", mode="before")
    @classmethod
    def normalize_kind(cls, value: object) -> object:
        lowered = str(value or "").strip().lower()
        return lowered if lowered in {"subjective", "objective"} else None


class ChartNotes(BaseModel):
    model_config = ConfigDict(extra="allow")

    mode: Literal["single_axis", "dual_axis"] | None = None
    rationale: str | None = None
    primary_axis: AxisDescriptor | None = None
    secondary_axis: AxisDescriptor | None = None

    @field_validator("mode", mode="before")
    @classmethod
    def normalize_mode(cls, value: object) -> object:
        lowered = str(value or "").strip().lower().replace("-", "_").replace(" ", "_")
        return lowered if lowered in {"single_axis", "dual_axis"} else None


class AnalysisModules(BaseModel):
    model_config = ConfigDict(extra="allow")

    chart_explanation: str | None = None
    trend_observation: str | None = None
    relationship_judgment: str | None = None


class TrendSeries(BaseModel):
    model_config = ConfigDict(extra="allow")

    subject: str = ""
    metric: str = ""
    phases: list[Phase] = Field(default_factory=list)
    axis: AxisDescriptor | None = None

    @field_validator("subject", "metric", mode="before")
    @classmethod
    def blank_text(cls, value: object) -> object:
        return _blank_if_none(value)

    @field_validator("phases", mode="before")
    @classmethod
    def empty_phases(cls, value: object) -> object:
        return _empty_if_none(value)


class GeneratedPayload(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    subject: str = ""
    metric: str = ""
    timeframe: str = ""
    data_cutoff: str | None = None
    source_digest: str | None = None
    phases: list[Phase]
    secondary: TrendSeries | None = None
    relation_summary: str | None = None
    overall_analysis: str | None = None
    prediction_commentary: str | None = None
    chart_notes: ChartNotes | None = None
    analysis_modules: AnalysisModules | None = None

    @field_validator("subject", "metric", "timeframe", mode="before")
    @classmethod
    def blank_text(cls, value: object) -> object:
        return _blank_if_none(value)

    @property
    def primary_axis(self) -> AxisDescriptor | None:
        return self.chart_notes.primary_axis if self.chart_notes else None

    @property
    def secondary_axis(self) -> AxisDescriptor | None:
        if self.chart_notes and self.chart_notes.secondary_axis:
            return self.chart_notes.secondary_axis
        return self.secondary.axis if self.secondary else None

    def to_wire(self) -> dict[str, object]:
        return self.model_dump(by_alias=True, exclude_none=True)
