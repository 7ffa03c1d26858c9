"""Tests for the diagnostic record tree."""

import pytest

from ffensemble.core.exceptions import StateError, ValidationError
from ffensemble.models import DiagnosticRecord
from ffensemble.stats import PrecisionErrStat


def _stat(error: float) -> PrecisionErrStat:
    stat = PrecisionErrStat(["y"])
    stat.update_value(0.0, error)
    return stat


@pytest.fixture
def tree() -> DiagnosticRecord:
    root = DiagnosticRecord("CVM", _stat(1.0))
    root.add_child(DiagnosticRecord("CVM.F01-MLP", _stat(0.5)))
    root.add_child(DiagnosticRecord("CVM.F02-MLP", _stat(2.0)))
    return root


class TestDiagnosticRecord:
    """Tests for DiagnosticRecord."""

    def test_read_before_finalize(self, tree):
        with pytest.raises(StateError):
            tree.get_info_text()

    def test_finalize_computes_better_children(self, tree):
        tree.finalize()
        assert tree.finalized
        assert tree.better_children == (0,)
        assert all(child.finalized for child in tree.children)

    def test_finalize_is_idempotent(self, tree):
        tree.finalize()
        first = tree.better_children
        text = tree.get_info_text()
        tree.finalize()
        assert tree.better_children == first
        assert tree.get_info_text() == text

    def test_children_finalized_depth_first(self):
        grandchild = DiagnosticRecord("A.B.C", _stat(0.25))
        child = DiagnosticRecord("A.B", _stat(0.5))
        child.add_child(grandchild)
        root = DiagnosticRecord("A", _stat(1.0))
        root.add_child(child)
        root.finalize()
        assert grandchild.finalized
        assert child.better_children == (0,)
        assert root.better_children == (0,)

    def test_add_child_errors(self, tree):
        with pytest.raises(ValidationError):
            tree.add_child(tree)
        tree.finalize()
        with pytest.raises(StateError):
            tree.add_child(DiagnosticRecord("late", _stat(0.1)))

    def test_equal_statistic_is_not_better(self):
        root = DiagnosticRecord("root", _stat(1.0))
        root.add_child(DiagnosticRecord("twin", _stat(1.0)))
        root.finalize()
        assert root.better_children == ()

    def test_statistic_is_copied(self):
        stat = _stat(1.0)
        record = DiagnosticRecord("root", stat)
        stat.update_value(0.0, 5.0)
        assert record.error_stat.num_of_samples == 1

    def test_info_text(self, tree):
        tree.finalize()
        text = tree.get_info_text()
        assert text.startswith("Model CVM")
        assert "Better sub-models 1" in text
        assert "All sub-models 2" in text
        assert "CVM.F02-MLP" in text

    def test_leaf_info_text(self):
        leaf = DiagnosticRecord("MLP", _stat(1.0))
        leaf.finalize()
        text = leaf.get_info_text(margin=4)
        assert text.startswith("    Model MLP")
        assert "sub-models" not in text
