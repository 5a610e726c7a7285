"""
Scenario execution: replay an ordered list of ledger operations from a
YAML document against a fresh runtime.

    policy:
      owner: ST1ADMIN
    caller: ST1ADMIN
    orders:
      o1: {buyer: ST1BUYER, supplier: ST1SUPPLIER, amount: 1000, token: TOKEN}
    steps:
      - op: process_payment
        order_id: 1
        order: o1
      - op: advance_clock
        blocks: 10
      - op: toggle_enabled
      - op: process_refund
        order_id: 1
        order: o1
        dispute_active: true

`order` may be the name of an entry under `orders` or an inline mapping.
`escrow` defaults to {amount: order.amount, locked: true}. `caller`
defaults to the scenario-level caller, then to the policy owner.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml

from escrowledger.core.exceptions import ConfigError
from escrowledger.core.models import Escrow, Order, Result
from escrowledger.policy.config import PolicyConfig
from escrowledger.runtime.context import EscrowRuntime


ADVANCE_CLOCK = "advance_clock"


@dataclass
class StepOutcome:
    """Result of executing one scenario step."""
    index:  int
    op:     str
    height: int
    result: Result

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index":  self.index,
            "op":     self.op,
            "height": self.height,
            **self.result.to_dict(),
        }


class Scenario:
    """A parsed scenario document."""

    def __init__(
        self,
        policy: PolicyConfig,
        steps:  List[Dict[str, Any]],
        orders: Optional[Dict[str, Dict[str, Any]]] = None,
        caller: Optional[str] = None,
    ):
        self.policy = policy
        self.steps  = steps
        self.orders = orders or {}
        self.caller = caller

    @staticmethod
    def from_dict(data: dict) -> "Scenario":
        if not isinstance(data, dict):
            raise ConfigError("scenario must be a mapping")

        steps = data.get("steps")
        if not isinstance(steps, list):
            raise ConfigError("scenario requires a 'steps' list")
        for i, step in enumerate(steps):
            if not isinstance(step, dict) or "op" not in step:
                raise ConfigError(f"step {i} must be a mapping with an 'op' key")

        orders = data.get("orders") or {}
        if not isinstance(orders, dict):
            raise ConfigError("'orders' must be a mapping of name -> order")

        return Scenario(
            policy=PolicyConfig.from_dict(data.get("policy")),
            steps=steps,
            orders=orders,
            caller=data.get("caller"),
        )

    @staticmethod
    def from_yaml(path: Path) -> "Scenario":
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Scenario not found: {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Malformed YAML in {path}: {e}") from e
        return Scenario.from_dict(data)


class ScenarioRunner:
    """Executes a Scenario step by step against an EscrowRuntime."""

    def __init__(self, scenario: Scenario, runtime: Optional[EscrowRuntime] = None):
        self.scenario = scenario
        self.runtime  = runtime or EscrowRuntime.create(config=scenario.policy)
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Result]] = {
            "process_payment":         self._process_payment,
            "process_refund":          self._process_refund,
            "process_partial_payment": self._process_partial_payment,
            "set_contract_owner":      self._set_contract_owner,
            "toggle_enabled":          self._toggle_enabled,
            "set_max_payments":        self._set_max_payments,
            "set_grace_period":        self._set_grace_period,
            "set_supported_currency":  self._set_supported_currency,
            ADVANCE_CLOCK:             self._advance_clock,
        }

    def run(self) -> List[StepOutcome]:
        outcomes = []
        for index, step in enumerate(self.scenario.steps):
            op = step["op"]
            handler = self._handlers.get(op)
            if handler is None:
                raise ConfigError(f"step {index}: unknown op '{op}'")
            try:
                result = handler(step)
            except KeyError as e:
                raise ConfigError(f"step {index} ({op}): missing field {e}") from e
            except (ValueError, TypeError) as e:
                raise ConfigError(f"step {index} ({op}): {e}") from e
            outcomes.append(StepOutcome(
                index=index,
                op=op,
                height=self.runtime.clock.height,
                result=result,
            ))
        return outcomes

    # ── Step arguments ────────────────────────────────────────

    def _order(self, step: Dict[str, Any]) -> Order:
        ref = step["order"]
        if isinstance(ref, str):
            if ref not in self.scenario.orders:
                raise ConfigError(f"unknown order reference '{ref}'")
            ref = self.scenario.orders[ref]
        return Order.from_dict(ref)

    def _escrow(self, step: Dict[str, Any], order: Order) -> Escrow:
        data = step.get("escrow")
        if data is None:
            return Escrow(amount=order.amount, locked=True, token=order.token)
        return Escrow.from_dict(data)

    @staticmethod
    def _flag(step: Dict[str, Any], key: str, default: bool) -> bool:
        value = step.get(key, default)
        if not isinstance(value, bool):
            raise ConfigError(f"{key} must be a boolean", {key: value})
        return value

    def _caller(self, step: Dict[str, Any]) -> str:
        return (
            step.get("caller")
            or self.scenario.caller
            or self.runtime.policy.get_contract_owner()
        )

    # ── Handlers ──────────────────────────────────────────────

    def _process_payment(self, step: Dict[str, Any]) -> Result:
        order = self._order(step)
        return self.runtime.processor.process_payment(
            int(step["order_id"]),
            order,
            self._escrow(step, order),
            verified=self._flag(step, "verified", True),
            dispute_active=self._flag(step, "dispute_active", False),
        )

    def _process_refund(self, step: Dict[str, Any]) -> Result:
        order = self._order(step)
        return self.runtime.processor.process_refund(
            int(step["order_id"]),
            order,
            self._escrow(step, order),
            dispute_active=self._flag(step, "dispute_active", False),
        )

    def _process_partial_payment(self, step: Dict[str, Any]) -> Result:
        order = self._order(step)
        return self.runtime.processor.process_partial_payment(
            int(step["order_id"]),
            int(step["part_id"]),
            int(step["percentage"]),
            order,
            self._escrow(step, order),
            verified=self._flag(step, "verified", True),
        )

    def _set_contract_owner(self, step: Dict[str, Any]) -> Result:
        return self.runtime.processor.set_contract_owner(self._caller(step), step["new_owner"])

    def _toggle_enabled(self, step: Dict[str, Any]) -> Result:
        return self.runtime.processor.toggle_enabled(self._caller(step))

    def _set_max_payments(self, step: Dict[str, Any]) -> Result:
        return self.runtime.processor.set_max_payments(self._caller(step), int(step["value"]))

    def _set_grace_period(self, step: Dict[str, Any]) -> Result:
        return self.runtime.processor.set_grace_period(self._caller(step), int(step["value"]))

    def _set_supported_currency(self, step: Dict[str, Any]) -> Result:
        return self.runtime.processor.set_supported_currency(self._caller(step), step["value"])

    def _advance_clock(self, step: Dict[str, Any]) -> Result:
        blocks = int(step.get("blocks", 1))
        if blocks < 0:
            raise ConfigError(f"advance_clock blocks must be >= 0, got {blocks}")
        return Result.success(self.runtime.clock.advance(blocks), ADVANCE_CLOCK)
