"""Summary metrics for simulation results."""

from typing import Any, Dict

import numpy as np


def calculate_metrics(results: Dict[str, Any]) -> Dict[str, Any]:
    """
    Calculate summary metrics from simulation results.

    Args:
        results: Simulation results dictionary with ``timeline`` and
            ``decisions`` DataFrames, ``initial_replicas`` and ``target``

    Returns:
        Dictionary with calculated metrics
    """
    timeline = results['timeline']
    decisions = results['decisions']
    target = results['target']
    initial_replicas = int(results['initial_replicas'])

    ticks = len(timeline)
    if ticks == 0:
        replicas = np.array([initial_replicas])
        metric = np.array([0.0])
        duration = 0.0
    else:
        replicas = timeline['replicas'].to_numpy()
        metric = timeline['metric'].to_numpy(dtype=float)
        duration = float(timeline['t'].iloc[-1])

    # Replica changes actually committed at each sync boundary
    if len(decisions) > 0:
        after = decisions['replicas'].to_numpy()
        changes = np.diff(np.concatenate([[initial_replicas], after]))
        final_replicas = int(after[-1])
    else:
        changes = np.array([0])
        final_replicas = int(replicas[-1])

    scale_up_events = int(np.sum(changes > 0))
    scale_down_events = int(np.sum(changes < 0))

    direction_counts = decisions['direction'].value_counts() if len(decisions) > 0 else {}

    if ticks > 0 and target > 0:
        tracking_error = float(np.mean(np.abs(metric / target - 1.0)))
    else:
        tracking_error = 0.0

    metrics = {
        'run': {
            'ticks': int(ticks),
            'duration_seconds': duration,
            'sync_decisions': int(len(decisions)),
        },
        'decisions': {
            direction: int(direction_counts.get(direction, 0))
            for direction in ('up', 'down', 'hold', 'gated')
        },
        'replicas': {
            'average': float(np.mean(replicas)),
            'min': int(np.min(replicas)),
            'max': int(np.max(replicas)),
            'final': final_replicas,
        },
        'scaling': {
            'scale_up_events': scale_up_events,
            'scale_down_events': scale_down_events,
            'total_events': scale_up_events + scale_down_events,
            'largest_step': int(np.max(np.abs(changes))),
        },
        'metric': {
            'average': float(np.mean(metric)),
            'peak': float(np.max(metric)),
            'avg_tracking_error': tracking_error,
            'fallback_ticks': int(results.get('metric_fallbacks', 0)),
        },
    }

    return metrics


def format_metrics_table(metrics: Dict[str, Any]) -> str:
    """
    Format metrics as a readable table.

    Args:
        metrics: Metrics dictionary

    Returns:
        Formatted string table
    """
    lines = []
    lines.append("=" * 60)
    lines.append("SIMULATION METRICS")
    lines.append("=" * 60)

    lines.append("\nRun:")
    lines.append(f"  Ticks:               {metrics['run']['ticks']}")
    lines.append(f"  Duration:            {metrics['run']['duration_seconds']:.1f}s")
    lines.append(f"  Sync Decisions:      {metrics['run']['sync_decisions']}")

    lines.append("\nDecisions:")
    lines.append(f"  Up:                  {metrics['decisions']['up']}")
    lines.append(f"  Down:                {metrics['decisions']['down']}")
    lines.append(f"  Hold:                {metrics['decisions']['hold']}")
    lines.append(f"  Gated:               {metrics['decisions']['gated']}")

    lines.append("\nReplicas:")
    lines.append(f"  Average:             {metrics['replicas']['average']:.1f}")
    lines.append(f"  Min:                 {metrics['replicas']['min']}")
    lines.append(f"  Max:                 {metrics['replicas']['max']}")
    lines.append(f"  Final:               {metrics['replicas']['final']}")

    lines.append("\nScaling Events:")
    lines.append(f"  Scale Up:            {metrics['scaling']['scale_up_events']}")
    lines.append(f"  Scale Down:          {metrics['scaling']['scale_down_events']}")
    lines.append(f"  Total Events:        {metrics['scaling']['total_events']}")
    lines.append(f"  Largest Step:        {metrics['scaling']['largest_step']}")

    lines.append("\nMetric:")
    lines.append(f"  Average:             {metrics['metric']['average']:.2f}")
    lines.append(f"  Peak:                {metrics['metric']['peak']:.2f}")
    lines.append(f"  Avg Tracking Error:  {metrics['metric']['avg_tracking_error']:.2%}")
    lines.append(f"  Fallback Ticks:      {metrics['metric']['fallback_ticks']}")

    lines.append("=" * 60)

    return "\n".join(lines)
