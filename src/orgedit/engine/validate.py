# src/orgedit/engine/validate.py

"""
Document checks.

This module validates a parsed Document against outline conventions:
- heading levels (no skipped levels),
- timestamp tokens (canonical form, weekday names),
- ordered list numbering,
- checkbox parents agreeing with their children.

It does NOT parse or edit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .lists import aggregate_checkbox
from .model import Document, ListItem, NodeKind, TimestampNode
from .timestamp import dayname_for


# ---------------------------------------------------------------------
# Result objects
# ---------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """
    A single validation problem.

    `code` is a stable identifier suitable for tests and filtering;
    `line` is 0-based.
    """

    code: str
    message: str
    line: int = 0


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """
    Aggregated validation result for a single document.
    """

    path: str
    issues: Sequence[ValidationIssue]

    @property
    def ok(self) -> bool:
        return not self.issues


# ---------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------

def validate_document(doc: Document) -> ValidationResult:
    issues: list[ValidationIssue] = []

    _check_levels(doc, issues)
    _check_timestamps(doc, issues)
    _check_numbering(doc, issues)
    _check_checkboxes(doc, issues)

    issues.sort(key=lambda i: i.line)
    return ValidationResult(path=doc.filename, issues=tuple(issues))


def _check_levels(doc: Document, issues: list[ValidationIssue]) -> None:
    for h in doc.headlines():
        parent = doc.parent_headline(h)
        expected = parent.level + 1 if parent is not None else 1
        if h.level > expected:
            issues.append(
                ValidationIssue(
                    code="level_jump",
                    message=f"Heading level {h.level} follows level {expected - 1}",
                    line=h.line,
                )
            )


def _check_timestamps(doc: Document, issues: list[ValidationIssue]) -> None:
    for node in doc.nodes:
        if not isinstance(node, TimestampNode) or node.timestamp is None:
            continue

        ts = node.timestamp
        r = node.range
        text = doc.lines[r.start_line][r.start_col: r.end_col]
        if text != ts.to_wrapped_string():
            issues.append(
                ValidationIssue(
                    code="timestamp_format",
                    message=f"Timestamp {text!r} is not in canonical form",
                    line=r.start_line,
                )
            )

        for part in (ts, ts.related_date_range):
            if part is not None and part.dayname and part.dayname != dayname_for(part.date):
                issues.append(
                    ValidationIssue(
                        code="timestamp_dayname",
                        message=(
                            f"{part.date.isoformat()} is a {dayname_for(part.date)}, "
                            f"not {part.dayname}"
                        ),
                        line=r.start_line,
                    )
                )


def _check_numbering(doc: Document, issues: list[ValidationIssue]) -> None:
    for lst in doc.nodes:
        if lst.kind is not NodeKind.LIST:
            continue

        expected = None
        for item in doc.children_of(lst, NodeKind.LIST_ITEM):
            if not isinstance(item, ListItem) or not item.is_ordered:
                expected = None
                continue
            if expected is not None and item.number != expected:
                issues.append(
                    ValidationIssue(
                        code="list_numbering",
                        message=f"List item numbered {item.number}, expected {expected}",
                        line=item.line,
                    )
                )
            expected = (item.number or 0) + 1


def _check_checkboxes(doc: Document, issues: list[ValidationIssue]) -> None:
    for node in doc.nodes:
        if not isinstance(node, ListItem) or node.checkbox is None:
            continue
        implied = aggregate_checkbox(doc, node)
        if implied is not None and implied != node.checkbox:
            issues.append(
                ValidationIssue(
                    code="checkbox_out_of_sync",
                    message=f"Checkbox [{node.checkbox}] disagrees with its items ([{implied}])",
                    line=node.line,
                )
            )
