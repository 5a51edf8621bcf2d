from __future__ import annotations

import random
from typing import Dict, Mapping, Optional

from ..types import CPU_USAGE_METRIC, SituationalContext


DEFAULT_RULE = (
    "Rule: if CPU usage stays above 85%, raise the alert threshold appropriately "
    "(for example to 90) to avoid frequent alerts.\n"
    "Decide whether the configuration needs adjusting. If it does, call the "
    "adjust_threshold tool with the new threshold (a number between 0 and 100)."
)


class MetricsSource:
    def sample(self) -> Dict[str, float]:
        raise NotImplementedError


class SimulatedCpuMetrics(MetricsSource):
    """Stand-in collector reporting CPU usage uniformly in [low, high)."""

    def __init__(self, low: float = 80.0, high: float = 95.0, seed: Optional[int] = None) -> None:
        self.low = low
        self.high = high
        self.rng = random.Random(seed)

    def sample(self) -> Dict[str, float]:
        return {CPU_USAGE_METRIC: self.low + self.rng.random() * (self.high - self.low)}


class StaticMetrics(MetricsSource):
    def __init__(self, values: Mapping[str, float]) -> None:
        self.values = dict(values)

    def sample(self) -> Dict[str, float]:
        return dict(self.values)


def build_context(metrics: Mapping[str, float], rule: str = DEFAULT_RULE) -> SituationalContext:
    return SituationalContext(metrics={name: float(value) for name, value in metrics.items()}, rule=rule)
