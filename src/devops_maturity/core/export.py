"""CSV export of an assessment's answers and scores.

The CSV layout is a public contract consumed by spreadsheets and downstream
tooling; the header, column order and one-decimal number format must not
change.
"""

from collections.abc import Sequence
from typing import TextIO

from devops_maturity.core.catalog import CHECKBOX, OPTION, Catalog, Question
from devops_maturity.core.scoring import Selections, question_max_score, question_score

CSV_HEADER: tuple[str, ...] = (
    "Section",
    "Sub Category",
    "Question",
    "Possible Answers",
    "Max Score",
    "Answer(s)",
    "Score",
)

_ANSWER_PROMPTS = {
    OPTION: "Choose one of:\n",
    CHECKBOX: "Choose all that apply:\n",
}


def format_score(value: float) -> str:
    return f"{value:.1f}"


def _needs_quotes(field: str) -> bool:
    if field == "":
        return False
    if field == "\\." or any(c in field for c in ',"\r\n'):
        return True
    return field[0].isspace()


def format_row(fields: Sequence[str]) -> str:
    """Render one CSV record terminated by ``\\n``.

    A field is quoted when it contains a comma, a double quote, CR or LF,
    when it starts with whitespace, or when it is exactly ``\\.``. Embedded
    quotes are doubled.
    """
    cells = []
    for field in fields:
        if _needs_quotes(field):
            field = '"' + field.replace('"', '""') + '"'
        cells.append(field)
    return ",".join(cells) + "\n"


def _possible_answers(question: Question) -> str:
    lines = [_ANSWER_PROMPTS.get(question.type, "")]
    lines.extend(f"{answer.text} ({format_score(answer.score)})\n" for answer in question.answers)
    return "".join(lines).strip()


def _selected_answers(question: Question, selections: Selections) -> str:
    if question.id is None:
        return ""
    selected = selections.get(question.id, frozenset())
    return "".join(f"{a.text}\n" for a in question.answers if a.id in selected).strip()


def export_rows(catalog: Catalog, selections: Selections) -> list[list[str]]:
    """Build the data rows: one per question with at least one answer.

    Rows follow catalog order. Selected answers are listed in catalog order,
    one per line.
    """
    rows = []
    for section, question in catalog.iter_questions():
        if not question.answers:
            continue
        rows.append(
            [
                section.name,
                question.sub_category,
                question.text,
                _possible_answers(question),
                format_score(question_max_score(question)),
                _selected_answers(question, selections),
                format_score(question_score(question, selections)),
            ]
        )
    return rows


def write_csv(sink: TextIO, catalog: Catalog, selections: Selections) -> int:
    """Write the header and data rows to ``sink``.

    Args:
        sink: A text stream opened with ``newline=""``.
        catalog: The built catalog.
        selections: The assessment's selection overlay.

    Returns:
        Number of data rows written.
    """
    sink.write(format_row(CSV_HEADER))
    rows = export_rows(catalog, selections)
    for row in rows:
        sink.write(format_row(row))
    return len(rows)
