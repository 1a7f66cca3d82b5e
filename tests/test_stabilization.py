"""Unit tests for the stabilization window."""

from hpa_behavior.core.models import DesiredHistoryEntry, ScalingDirection
from hpa_behavior.scaling.stabilization import HISTORY_SLACK_SECONDS, prune_history, stabilize


def history(*pairs):
    return [DesiredHistoryEntry(t=t, desired=d) for t, d in pairs]


class TestStabilize:
    """Test the rolling extremum over the window."""

    def test_scale_down_takes_window_max(self):
        entries = history((45, 10), (60, 7), (75, 9), (90, 5))
        assert stabilize(ScalingDirection.DOWN, 4, entries, 60, 100) == 10

    def test_scale_up_takes_window_min(self):
        entries = history((45, 10), (60, 7), (75, 9), (90, 12))
        assert stabilize(ScalingDirection.UP, 14, entries, 60, 100) == 7

    def test_entries_outside_window_are_ignored(self):
        entries = history((10, 20), (95, 6))
        assert stabilize(ScalingDirection.DOWN, 4, entries, 60, 100) == 6

    def test_window_boundary_is_inclusive(self):
        entries = history((40, 20), (95, 6))
        assert stabilize(ScalingDirection.DOWN, 4, entries, 60, 100) == 20

    def test_zero_window_returns_raw(self):
        entries = history((90, 10))
        assert stabilize(ScalingDirection.DOWN, 4, entries, 0, 100) == 4

    def test_empty_history_returns_raw(self):
        assert stabilize(ScalingDirection.DOWN, 4, [], 300, 100) == 4

    def test_hold_returns_raw(self):
        entries = history((90, 10))
        assert stabilize(ScalingDirection.HOLD, 4, entries, 300, 100) == 4


class TestPruneHistory:
    """Test history retention."""

    def test_keeps_widest_window_plus_slack(self):
        entries = history((0, 1), (30, 2), (100, 3))
        pruned = prune_history(entries, 100, 60)
        cutoff = 100 - 60 - HISTORY_SLACK_SECONDS
        assert [e.t for e in pruned] == [e.t for e in entries if e.t >= cutoff]
        assert [e.desired for e in pruned] == [3]

    def test_entry_on_slack_edge_survives(self):
        entries = history((35, 2), (100, 3))
        assert len(prune_history(entries, 100, 60)) == 2
