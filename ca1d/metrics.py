"""Measurements of a 1D cellular automaton run."""

import numpy as np
import zlib
from typing import Dict, List, Optional
from dataclasses import dataclass
from scipy import ndimage

from .automaton import CellularAutomaton, Rule


@dataclass
class MetricsResult:
    """Container for all computed metrics."""
    lambda_param: float  # Langton's lambda parameter
    spatial_entropy: float  # Normalised Shannon entropy of final state
    temporal_entropy: float  # Average change rate over time
    compression_ratio: float  # Complexity measure
    cluster_count: float  # Runs of non-quiescent cells in final state
    activity_persistence: float  # How long activity persists
    final_density: float  # Fraction of non-zero cells at end

    def to_dict(self) -> Dict:
        return {
            "lambda_param": self.lambda_param,
            "spatial_entropy": self.spatial_entropy,
            "temporal_entropy": self.temporal_entropy,
            "compression_ratio": self.compression_ratio,
            "cluster_count": self.cluster_count,
            "activity_persistence": self.activity_persistence,
            "final_density": self.final_density,
        }


def shannon_entropy(state: np.ndarray, num_states: int = 2) -> float:
    """Shannon entropy of the state distribution, scaled to [0, 1] by log2(num_states)."""
    state = np.asarray(state)
    if state.size == 0:
        return 0.0

    counts = np.bincount(state.astype(np.int64), minlength=num_states)
    p = counts[counts > 0] / state.size
    entropy = -np.sum(p * np.log2(p))
    return float(entropy / np.log2(num_states))


def compression_complexity(state: np.ndarray) -> float:
    """Measure complexity via compression ratio. Higher = more complex."""
    data = np.asarray(state).tobytes()
    if len(data) == 0:
        return 0.0
    compressed = zlib.compress(data, level=9)
    return float(len(compressed) / len(data))


def temporal_change_rate(history: List[np.ndarray]) -> float:
    """Calculate average rate of change between consecutive generations."""
    if len(history) < 2:
        return 0.0

    changes = []
    for i in range(1, len(history)):
        diff = np.sum(history[i] != history[i-1])
        changes.append(diff / history[i].size)

    return float(np.mean(changes))


def activity_lifespan(history: List[np.ndarray], threshold: float = 0.0) -> float:
    """Fraction of steps in which more than `threshold` of the cells changed."""
    if len(history) < 2:
        return 0.0

    active_steps = 0
    for i in range(1, len(history)):
        change_rate = np.sum(history[i] != history[i-1]) / history[i].size
        if change_rate > threshold:
            active_steps += 1

    return active_steps / (len(history) - 1)


def cluster_count(state: np.ndarray) -> int:
    """Count runs of non-zero cells on the ring."""
    occupied = np.asarray(state) != 0
    _, num_clusters = ndimage.label(occupied)

    # A run crossing the end of the array continues at the start
    if num_clusters > 1 and occupied[0] and occupied[-1]:
        num_clusters -= 1
    return int(num_clusters)


def evaluate_rule(
    rule: Rule,
    width: int = 145,
    steps: int = 100,
    num_trials: int = 3,
    rng: Optional[np.random.Generator] = None,
    verbose: bool = False,
) -> MetricsResult:
    """
    Evaluate a rule by running multiple trials from random rings and averaging metrics.
    """
    if num_trials < 1:
        raise ValueError(f"num_trials must be at least 1, got {num_trials}")
    if rng is None:
        rng = np.random.default_rng()

    all_metrics = []

    for i in range(num_trials):
        ca = CellularAutomaton(rule, width=width)
        ca.randomize(rng)
        history = ca.run(steps)

        all_metrics.append({
            "lambda_param": rule.lambda_parameter(),
            "spatial_entropy": shannon_entropy(history[-1], rule.num_states),
            "temporal_entropy": temporal_change_rate(history),
            "compression_ratio": compression_complexity(history[-1]),
            "cluster_count": cluster_count(history[-1]),
            "activity_persistence": activity_lifespan(history),
            "final_density": ca.density(),
        })

        if verbose:
            m = all_metrics[-1]
            print(f"Trial {i+1}/{num_trials}: Entropy={m['spatial_entropy']:.4f} "
                  f"Activity={m['activity_persistence']:.4f} Density={m['final_density']:.4f}")

    # Average across trials
    avg_metrics = {
        key: float(np.mean([m[key] for m in all_metrics]))
        for key in all_metrics[0].keys()
    }

    return MetricsResult(**avg_metrics)
