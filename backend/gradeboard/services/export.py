"""Aggregate the vote log into the per-subject CSV export.

Rows are grouped by main subject (first-seen order). Each group gets a
"Group Score" row averaged over all of its votes, then one row per display
subject, then a blank separator row.
"""
import csv
import io
import math
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Any, Dict, List, Sequence

from gradeboard.models import Category, Vote

HEADER = ['Group/Subject', 'Participant/Detail', 'Vote Count']
GROUP_SCORE_LABEL = 'Group Score'
GROUP_EVALUATION_LABEL = 'Group Evaluation'
_CENTS = Decimal('0.01')
# Wide enough to hold any finite float to the cent
_WIDE = Context(prec=400)
_LEADING_NUMBER_RE = re.compile(r'\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?')


@dataclass(frozen=True)
class ExportRow:
    subject: str
    detail: str
    count: int
    averages: List[Decimal]


def score_value(raw: Any) -> float:
    """Numeric value of a submitted score; anything unusable counts as 0.

    Strings are read up to the end of their leading number, so ``'4 pts'``
    is 4.
    """
    if raw is None or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, str):
        match = _LEADING_NUMBER_RE.match(raw)
        if not match:
            return 0.0
        raw = match.group(0)
    try:
        value = float(raw)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    return value if math.isfinite(value) else 0.0


def category_averages(categories: Sequence[Category], votes: Sequence[Vote]) -> List[Decimal]:
    count = len(votes)
    averages = []
    for cat in categories:
        total = sum(score_value(v.scores.get(cat.id)) for v in votes)
        average = total / count
        if not math.isfinite(average):
            # Only reachable when finite scores overflow on summing
            average = 0.0
        averages.append(Decimal(average).quantize(_CENTS, rounding=ROUND_HALF_UP, context=_WIDE))
    return averages


def detail_label(main_subject: str, subject: str) -> str:
    prefix = f"{main_subject} - "
    if subject.startswith(prefix):
        return subject[len(prefix):]
    if subject == main_subject or subject == f"{main_subject} (Group)":
        return GROUP_EVALUATION_LABEL
    return subject


def _partition(votes: Sequence[Vote], key) -> Dict[str, List[Vote]]:
    groups: Dict[str, List[Vote]] = {}
    for vote in votes:
        groups.setdefault(key(vote), []).append(vote)
    return groups


def build_export_rows(categories: Sequence[Category], votes: Sequence[Vote]) -> List[List[ExportRow]]:
    """Return one list of rows per main subject, group row first."""
    sections = []
    for main_subject, main_votes in _partition(votes, lambda v: v.main_subject).items():
        rows = [ExportRow(main_subject, GROUP_SCORE_LABEL, len(main_votes),
                          category_averages(categories, main_votes))]
        for subject, sub_votes in _partition(main_votes, lambda v: v.subject).items():
            rows.append(ExportRow('', detail_label(main_subject, subject), len(sub_votes),
                                  category_averages(categories, sub_votes)))
        sections.append(rows)
    return sections


def render_csv(categories: Sequence[Category], sections: Sequence[Sequence[ExportRow]]) -> str:
    header = HEADER + [c.name for c in categories]
    buf = io.StringIO()
    plain = csv.writer(buf, lineterminator='\n')
    # Decimal and int count as numeric, so only text cells are quoted
    quoted = csv.writer(buf, lineterminator='\n', quoting=csv.QUOTE_NONNUMERIC)
    plain.writerow(header)
    for rows in sections:
        for row in rows:
            quoted.writerow([row.subject, row.detail, row.count, *row.averages])
        plain.writerow([''] * len(header))
    return buf.getvalue()


def export_csv(categories: Sequence[Category], votes: Sequence[Vote]) -> str:
    return render_csv(categories, build_export_rows(categories, votes))
