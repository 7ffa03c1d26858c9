"""Diagnostic tree comparing a model with its sub-models on test data."""

from __future__ import annotations

import logging

from ffensemble.core.exceptions import StateError, ValidationError
from ffensemble.stats.errstat import ErrorStatistic

logger = logging.getLogger(__name__)


class DiagnosticRecord:
    """
    Test-time error statistic of a model and of its sub-models.

    Records are built in two phases: children are collected with
    :meth:`add_child`, then :meth:`finalize` finalizes every child (depth
    first) and determines which children are strictly better than this
    record. Only finalized records can be rendered.

    Args:
        model_name: Name (context path) of the tested model.
        error_stat: Test-time error statistic of the model. A copy is stored.

    Example:
        >>> record = DiagnosticRecord("CVM", stat)
        >>> record.add_child(DiagnosticRecord("CVM.F01-MLP", member_stat))
        >>> record.finalize()
        >>> print(record.get_info_text())
    """

    def __init__(self, model_name: str, error_stat: ErrorStatistic):
        self.model_name = model_name
        self.error_stat = error_stat.copy()
        self.children: list[DiagnosticRecord] = []
        self.better_children: tuple[int, ...] = ()
        self.finalized = False

    def add_child(self, child: DiagnosticRecord) -> None:
        """Append a sub-model record.

        Raises:
            ValidationError: If the child is this record itself.
            StateError: If the record is already finalized.
        """
        if child is self:
            raise ValidationError("A diagnostic record can't be its own child")
        if self.finalized:
            raise StateError(f"Diagnostic record '{self.model_name}' is already finalized")
        self.children.append(child)

    def finalize(self) -> None:
        """Finalize children first, then determine the better children. Idempotent."""
        if self.finalized:
            return
        for child in self.children:
            child.finalize()
        self.better_children = tuple(
            i
            for i, child in enumerate(self.children)
            if child.error_stat.is_better_than(self.error_stat)
        )
        self.finalized = True
        logger.debug(
            f"Finalized diagnostics of {self.model_name}: "
            f"{len(self.better_children)}/{len(self.children)} better sub-models"
        )

    def get_info_text(self, margin: int = 0) -> str:
        """Render the record and its sub-records as indented text.

        Raises:
            StateError: If the record is not finalized.
        """
        if not self.finalized:
            raise StateError(
                f"Diagnostic record '{self.model_name}' must be finalized before reading"
            )
        pad = " " * margin
        lines = [f"{pad}Model {self.model_name}", self.error_stat.get_report_text(margin + 4)]
        if self.children:
            lines.append(f"{pad}    Better sub-models {len(self.better_children)}")
            for i in self.better_children:
                lines.append(f"{pad}        {self.children[i].model_name}")
            lines.append(f"{pad}    All sub-models {len(self.children)}")
            for child in self.children:
                lines.append(child.get_info_text(margin + 8))
        return "\n".join(lines)
