"""
Renderers for classification results.
Turns entries and rejects into a text table, JSON, YAML or ECS documents.
"""

import json
import traceback
from typing import Callable, Dict, List, Sequence

import yaml

from ..schemas.ecs import ECSMapper
from ..schemas.entry import ClassificationResult, ParsedEntry

# (title, entry attribute) pairs shown in the table view
TABLE_COLUMNS = [
    ('IP', 'ip'),
    ('Date', 'date'),
    ('Method', 'method'),
    ('Resource', 'resource'),
    ('Status', 'status'),
    ('Referer', 'referer'),
    ('Agent', 'agent')
]

NO_ENTRIES_MESSAGE = "No log entries matched the access log format."


def _cell(value, max_width: int) -> str:
    text = '-' if value is None else str(value)
    if max_width and len(text) > max_width:
        return text[:max_width - 3] + '...'
    return text


def render_table(result: ClassificationResult, max_width: int = 40) -> str:
    """
    Render entries as a fixed-width text table.

    Args:
        result: Classification result
        max_width: Longest cell before truncation, 0 to disable

    Returns:
        Table text with a summary footer
    """
    if not result.has_entries:
        return f"{NO_ENTRIES_MESSAGE}\n{_summary(result)}"

    rows = [[_cell(getattr(entry, attr), max_width) for _, attr in TABLE_COLUMNS]
            for entry in result.entries]
    widths = [len(title) for title, _ in TABLE_COLUMNS]
    for row in rows:
        widths = [max(width, len(cell)) for width, cell in zip(widths, row)]

    def format_row(cells: Sequence[str]) -> str:
        return '  '.join(cell.ljust(width) for cell, width in zip(cells, widths)).rstrip()

    lines = [
        format_row([title for title, _ in TABLE_COLUMNS]),
        format_row(['-' * width for width in widths])
    ]
    lines.extend(format_row(row) for row in rows)
    lines.append('')
    lines.append(_summary(result))
    return '\n'.join(lines)


def _summary(result: ClassificationResult) -> str:
    return f"{len(result.entries)} entries, {len(result.rejects)} rejects"


def _entry_dicts(entries: Sequence[ParsedEntry]) -> List[Dict]:
    return [entry.to_dict() for entry in entries]


def render_json(result: ClassificationResult) -> str:
    """Render entries as a JSON array."""
    return json.dumps(_entry_dicts(result.entries), indent=2, ensure_ascii=False)


def render_yaml(result: ClassificationResult) -> str:
    """Render entries as a YAML list."""
    return yaml.safe_dump(
        _entry_dicts(result.entries),
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True
    )


def render_ecs(result: ClassificationResult, dataset: str = 'apache.access') -> str:
    """Render entries as a JSON array of ECS documents."""
    mapper = ECSMapper(dataset)
    return json.dumps([mapper.map_to_ecs(entry) for entry in result.entries], indent=2, ensure_ascii=False)


RENDERERS: Dict[str, Callable[[ClassificationResult], str]] = {
    'table': render_table,
    'json': render_json,
    'yaml': render_yaml,
    'ecs': render_ecs
}


def render(result: ClassificationResult, output_format: str = 'table') -> str:
    """
    Render a result in the requested format.

    Raises:
        ValueError: Unknown format
    """
    try:
        renderer = RENDERERS[output_format]
    except KeyError:
        raise ValueError(f"Unknown output format '{output_format}', expected one of {', '.join(RENDERERS)}")
    return renderer(result)


def render_rejects(rejects: Sequence[str]) -> str:
    """List rejected lines verbatim, numbered in input order."""
    if not rejects:
        return "No rejected lines."
    lines = [f"Rejected lines ({len(rejects)}):"]
    lines.extend(f"  [{index}] {line}" for index, line in enumerate(rejects, start=1))
    return '\n'.join(lines)


def render_error(error: BaseException) -> str:
    """
    Build the diagnostic summary shown when a run aborts.

    Includes the exception type, where it was raised, its message and the traceback.
    """
    lines = [f"Error: {type(error).__name__}"]

    frames = traceback.extract_tb(error.__traceback__) if error.__traceback__ else []
    if frames:
        origin = frames[-1]
        lines.append(f"Raised in {origin.filename} at line {origin.lineno}")

    lines.append(str(error))

    if frames:
        lines.append('')
        lines.append(''.join(traceback.format_exception(type(error), error, error.__traceback__)).rstrip())

    return '\n'.join(lines)
