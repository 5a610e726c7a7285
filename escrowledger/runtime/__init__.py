"""
escrowledger Runtime - component wiring and scenario execution.
"""

from escrowledger.runtime.context import EscrowRuntime
from escrowledger.runtime.scenario import Scenario, ScenarioRunner, StepOutcome

__all__ = [
    "EscrowRuntime",
    "Scenario",
    "ScenarioRunner",
    "StepOutcome",
]
