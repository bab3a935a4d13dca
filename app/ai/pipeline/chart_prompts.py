"""Chart rendering prompts for the image model and structural checks for chart data."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from app.ai.pipeline.contracts import ChartData, DataType

BASE_STYLING = """
Style requirements:
- Clean, professional appearance like a standardized test
- White background with subtle gray gridlines
- Black text and axes, dark gray bars/lines
- Clear, readable labels with appropriate font size
- No 3D effects, shadows, or decorative elements
- Include the title at the top
- If there's a source, show it in small text at bottom"""


@dataclass(frozen=True)
class ChartPrompt:
  prompt: str
  alt_text: str


def _fmt(value: Any) -> str:
  """Render numbers the way they were written in the data (``45`` not ``45.0``)."""
  if isinstance(value, float) and value.is_integer():
    return str(int(value))
  return str(value)


def _with_unit(value: Any, unit: Any) -> str:
  return f"{_fmt(value)}%" if unit == "%" else _fmt(value)


def _numbers(values: Any) -> list[float]:
  return [float(value) for value in values or [] if isinstance(value, (int, float)) and not isinstance(value, bool)]


def _rounded_max(values: list[float]) -> int:
  return math.ceil(max(values, default=0) / 10) * 10 + 10


def _rounded_min(values: list[float]) -> int:
  return max(0, math.floor(min(values, default=0) / 10) * 10 - 10)


def _source_line(data: ChartData, label: str = "Source attribution at bottom") -> str:
  source = data.get("source")
  return f'\n{label}: "{source}"' if source else ""


def _quoted(items: Any) -> str:
  return ", ".join(f'"{item}"' for item in items)


def _series_value(series: dict[str, Any], index: int) -> Any:
  values = series.get("values") or []
  return values[index] if index < len(values) else "?"


def build_bar_chart_prompt(data: ChartData) -> str:
  categories = data["categories"]
  values = data.get("values") or []
  unit = data.get("unit")
  values_list = ", ".join(f'"{category}": {_with_unit(values[index], unit) if index < len(values) else "?"}' for index, category in enumerate(categories))
  return f"""Create an SAT-style vertical bar chart.

Title: "{data['title']}"

X-axis categories (left to right): {_quoted(categories)}
Y-axis: "{data['yAxisLabel']}" ranging from 0 to {_rounded_max(_numbers(values))}

EXACT bar heights (these must be precise and readable):
{values_list}

The values must be clearly distinguishable from the gridlines. Each bar should be solid dark gray.
{_source_line(data)}
{BASE_STYLING}"""


def build_multi_series_bar_chart_prompt(data: ChartData) -> str:
  categories = data["categories"]
  series_list = data["series"]
  unit = data.get("unit")
  all_values = [value for series in series_list for value in _numbers(series.get("values"))]
  descriptions = "\n".join(
    f"{series.get('name', '')}: " + ", ".join(f'"{category}": {_with_unit(_series_value(series, index), unit)}' for index, category in enumerate(categories)) for series in series_list
  )
  return f"""Create an SAT-style grouped bar chart with {len(series_list)} series.

Title: "{data['title']}"

X-axis categories: {_quoted(categories)}
Y-axis: "{data['yAxisLabel']}" ranging from 0 to {_rounded_max(all_values)}

EXACT values for each series (bars grouped by category):
{descriptions}

Legend: Show a legend identifying each series with different gray tones (light gray, medium gray, dark gray).
Each group of bars should be clearly distinguishable.
{_source_line(data)}
{BASE_STYLING}"""


def build_line_graph_prompt(data: ChartData) -> str:
  time_points = data["timePoints"]
  series_list = data["series"]
  unit = data.get("unit")
  all_values = [value for series in series_list for value in _numbers(series.get("values"))]
  descriptions = "\n".join(
    f"{series.get('name', '')}: " + " → ".join(f"({_fmt(point)}, {_with_unit(_series_value(series, index), unit)})" for index, point in enumerate(time_points)) for series in series_list
  )
  points = ", ".join(_fmt(point) for point in time_points)
  plural = "s" if len(series_list) > 1 else ""
  legend = "Use different line styles (solid, dashed) or markers to distinguish series. Include a legend." if len(series_list) > 1 else ""
  return f"""Create an SAT-style line graph with {len(series_list)} line{plural}.

Title: "{data['title']}"

X-axis: "{data['xAxisLabel']}" with points at {points}
Y-axis: "{data['yAxisLabel']}" ranging from {_rounded_min(all_values)} to {_rounded_max(all_values)}

EXACT data points to plot (connect with straight lines):
{descriptions}

Mark each data point with a small dot/circle.
{legend}
{_source_line(data)}
{BASE_STYLING}"""


def build_data_table_prompt(data: ChartData) -> str:
  headers = " | ".join(str(header) for header in data["headers"])
  rows = "\n".join(f"{row.get('label', '')}: " + " | ".join(_fmt(value) for value in row.get("values") or []) for row in data["rows"])
  return f"""Create an SAT-style data table.

Title: "{data['title']}"

Column headers: {headers}

Row data:
{rows}

Table requirements:
- Clean black borders around all cells
- Header row should be slightly shaded or bold
- All numbers should be clearly legible
- Professional, standardized test appearance
- White background
- Proper alignment (text left, numbers right)
{_source_line(data, "Source attribution below table")}"""


def build_chart_prompt(data_type: DataType, chart_data: ChartData) -> ChartPrompt:
  """Pick the rendering prompt and alt text for a validated chart."""
  title = chart_data.get("title", "")
  if data_type == "bar_chart":
    if isinstance(chart_data.get("series"), list):
      return ChartPrompt(
        prompt=build_multi_series_bar_chart_prompt(chart_data),
        alt_text=f"Grouped bar chart showing {title} with {len(chart_data['series'])} series across {len(chart_data['categories'])} categories",
      )
    return ChartPrompt(prompt=build_bar_chart_prompt(chart_data), alt_text=f"Bar chart showing {title} for {len(chart_data['categories'])} categories")
  if data_type == "line_graph":
    return ChartPrompt(
      prompt=build_line_graph_prompt(chart_data),
      alt_text=f"Line graph showing {title} with {len(chart_data['series'])} series over {len(chart_data['timePoints'])} time points",
    )
  if data_type == "data_table":
    return ChartPrompt(
      prompt=build_data_table_prompt(chart_data),
      alt_text=f"Data table showing {title} with {len(chart_data['rows'])} rows and {len(chart_data['headers'])} columns",
    )
  raise ValueError(f"Unknown data type: {data_type}")


def chart_data_problems(data_type: str, data: Any) -> list[str]:
  """List the missing or malformed keys for ``data_type``; empty means valid."""
  if not isinstance(data, dict):
    return ["chart data must be a JSON object"]

  problems: list[str] = []
  if not isinstance(data.get("title"), str):
    problems.append("title")

  if data_type == "bar_chart":
    if not isinstance(data.get("categories"), list):
      problems.append("categories")
    if not isinstance(data.get("values"), list) and not isinstance(data.get("series"), list):
      problems.append("values or series")
    if not isinstance(data.get("yAxisLabel"), str):
      problems.append("yAxisLabel")
  elif data_type == "line_graph":
    if not isinstance(data.get("timePoints"), list):
      problems.append("timePoints")
    if not isinstance(data.get("series"), list):
      problems.append("series")
    if not isinstance(data.get("xAxisLabel"), str):
      problems.append("xAxisLabel")
    if not isinstance(data.get("yAxisLabel"), str):
      problems.append("yAxisLabel")
  elif data_type == "data_table":
    if not isinstance(data.get("headers"), list):
      problems.append("headers")
    if not isinstance(data.get("rows"), list):
      problems.append("rows")
  else:
    problems.append(f"unknown data type '{data_type}'")

  return problems


def validate_chart_data(data_type: str, data: Any) -> bool:
  return not chart_data_problems(data_type, data)
