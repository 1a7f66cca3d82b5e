"""Stabilization window over the desired-replica history."""

from typing import List, Sequence

from ..core.models import DesiredHistoryEntry, ScalingDirection

# Extra seconds kept past the widest window so entries sitting exactly on
# the window boundary survive pruning.
HISTORY_SLACK_SECONDS = 5.0


def stabilize(
    direction: ScalingDirection,
    raw_desired: int,
    history: Sequence[DesiredHistoryEntry],
    window_seconds: float,
    current_t: float,
) -> int:
    """
    Fold the desired history inside the window into a rolling extremum.

    Scale-down uses the window maximum (only shrink once the metric has stayed
    low for the whole window); scale-up uses the window minimum. Entries with
    ``t >= current_t - window_seconds`` are inside the window.

    Args:
        direction: Direction implied by the raw desired value
        raw_desired: Desired replicas computed this tick
        history: Desired history, possibly already containing this tick
        window_seconds: Stabilization window configured for ``direction``
        current_t: Current simulated time in seconds

    Returns:
        The stabilized desired replica count
    """
    if window_seconds <= 0 or direction == ScalingDirection.HOLD or not history:
        return raw_desired

    cutoff = current_t - window_seconds
    in_window = [entry.desired for entry in history if entry.t >= cutoff]
    in_window.append(raw_desired)

    if direction == ScalingDirection.DOWN:
        return max(in_window)
    if direction == ScalingDirection.UP:
        return min(in_window)
    return raw_desired


def prune_history(
    history: List[DesiredHistoryEntry],
    current_t: float,
    max_window_seconds: float,
) -> List[DesiredHistoryEntry]:
    """Drop entries older than the widest window plus slack."""
    cutoff = current_t - max_window_seconds - HISTORY_SLACK_SECONDS
    return [entry for entry in history if entry.t >= cutoff]
