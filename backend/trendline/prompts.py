from __future__ import annotations

from trendline.references import IngestionResult, ReferenceEntry

SYSTEM_PROMPT = (
    "You are the narrative engine of a trend charting service. Translate the user's question and any "
    "evidence they provide into a credible narrative trend, and state clearly how far the real data goes, "
    "which parts are fact and which parts are projection.\n\n"
    "Evidence priority: uploaded or pasted material > linked pages > your own search > prior knowledge. "
    "User material is the factual anchor; never ignore or contradict it. If it conflicts with consensus, "
    "say so and follow the user material.\n\n"
    "Time handling: decide whether the subject is still evolving. Always output data_cutoff in the form "
    "'Real data up to: YYYY-MM'. Mark verified phases with zone 'realized' and extrapolated phases with "
    "zone 'projected'.\n\n"
    "Single vs dual series: only output a secondary series when the question naturally involves two "
    "subjects on the same timeline. The primary series must be the side that closes higher in the final "
    "phase. Both series must share phase count and time labels.\n\n"
    "Axes: narrative scores (sentiment, attention, policy strength) are subjective and use 0-100. "
    "Real-world metrics (price, users, index) are objective and keep their real scale. When the two series "
    "use different kinds of metric, use chart_notes.mode 'dual_axis' and describe each axis.\n\n"
    "Phases: split the arc into 5-10 phases covering start, growth, peak and pullback or maturity. Each "
    "phase has open/high/low/close, a label explaining the move, a zone, and 1-3 key_events with time, "
    "description and impact. Time labels may be years, quarters, seasons or episodes as the context needs.\n\n"
    "Analysis: overall_analysis is 2-4 short story-like paragraphs consistent with the chart; mention where "
    "real data ends. analysis_modules use observational language and flag uncertain relationships.\n\n"
    "Output JSON only."
)

USER_PROMPT_TEMPLATE = """Run the flow: time check -> evidence review -> phase modelling -> trend output -> reading. Output JSON only.

[User question]
{query}

[User-provided references]
{reference_block}

Summarise the people, events, periods and stances in the references first, then build the trend using the priority order references > links > your own search > prior knowledge. If the references are opinion or fiction, say how certain the result is.

[JSON structure (follow strictly)]
{{
  "subject": "subject name",
  "metric": "fame / influence / condition / ...",
  "timeframe": "span matching the question, e.g. 2010-2025 or Season 1-Season 10",
  "data_cutoff": "Real data up to: YYYY-MM",
  "source_digest": "one paragraph on the key facts from the user references and how they shaped the trend",
  "phases": [
    {{
      "start_year": "year or label such as Season 1 / Episode 3 / 2020Q1",
      "end_year": "same as above",
      "open": 0,
      "high": 0,
      "low": 0,
      "close": 0,
      "label": "what drove this phase",
      "zone": "realized or projected",
      "relation_note": "dual series only: how the two sides pulled on each other",
      "key_events": [{{"time": "point in time", "description": "what happened", "impact": "push / pullback / swing"}}]
    }}
  ],
  "secondary": {{"subject": "second subject (dual series only)", "metric": "metric", "phases": []}},
  "relation_summary": "dual series only",
  "overall_analysis": "2-4 paragraphs",
  "chart_notes": {{
    "mode": "single_axis or dual_axis",
    "rationale": "why this axis mode",
    "primary_axis": {{"label": "", "unit": "", "kind": "subjective or objective", "description": ""}},
    "secondary_axis": {{"label": "", "unit": "", "kind": "subjective or objective", "description": ""}}
  }},
  "analysis_modules": {{"chart_explanation": "", "trend_observation": "", "relationship_judgment": ""}},
  "prediction_commentary": "basis for any projection"
}}

Requirements:
- 5 to 10 phases; at least one key_event per phase
- subjective values stay within 0-100
- only output secondary when the question is about two subjects; the primary series must finish stronger
- nothing outside the JSON object"""

STRICT_JSON_REMINDER = (
    "Follow the JSON structure above exactly. Do not use Markdown code fences or add any explanatory text."
)

REFERENCE_INSTRUCTION_TEMPLATE = """The user supplied reference material and it has the highest priority. Read it and respect it in the analysis and modelling.

Reference material:
----------------
{reference_block}
----------------
Rules:
1. Actually read and understand this material.
2. Phase timing, key events and trend direction must come at least partly from it.
3. You may add background, but never ignore or override the material.
4. If the material cannot support a trend, explain why instead of inventing one."""


def format_reference_entry(entry: ReferenceEntry, index: int) -> str:
    label = "User notes" if entry.kind == "text" else entry.source
    return f"[Reference {index + 1} - {label}]\n{entry.content}"


def build_reference_block(ingestion: IngestionResult) -> str | None:
    if not ingestion.entries:
        return None
    return "\n\n".join(format_reference_entry(entry, index) for index, entry in enumerate(ingestion.entries))


def build_user_prompt(query: str, reference_block: str | None, *, enforce_strict_json: bool = False) -> str:
    prompt = USER_PROMPT_TEMPLATE.format(query=query, reference_block=reference_block or "None")
    if enforce_strict_json:
        return f"{prompt}\n\n{STRICT_JSON_REMINDER}"
    return prompt


def build_reference_instruction(reference_block: str | None) -> str | None:
    if not reference_block:
        return None
    return REFERENCE_INSTRUCTION_TEMPLATE.format(reference_block=reference_block)
