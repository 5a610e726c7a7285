"""
tests/test_scenario.py

Runtime wiring and YAML scenario execution.
"""

from pathlib import Path

import pytest

from escrowledger import ConfigError, ErrorCode, EscrowRuntime, PolicyConfig
from escrowledger.runtime.scenario import Scenario, ScenarioRunner

EXAMPLE = Path(__file__).resolve().parent.parent / "examples" / "scenario.yaml"


def _run(data: dict):
    scenario = Scenario.from_dict(data)
    runner   = ScenarioRunner(scenario)
    return runner, runner.run()


class TestEscrowRuntime:

    def test_components_shared(self):
        runtime = EscrowRuntime.create(height=7)
        assert runtime.processor.policy is runtime.policy
        assert runtime.processor.ledger is runtime.ledger
        assert runtime.processor.emitter is runtime.emitter
        assert runtime.processor.clock is runtime.clock
        assert runtime.clock.height == 7

    def test_from_config(self, tmp_path):
        path = tmp_path / "policy.yaml"
        path.write_text("owner: ST1ADMIN\nenabled: false\n", encoding="utf-8")

        runtime = EscrowRuntime.from_config(path)

        assert runtime.policy.get_contract_owner() == "ST1ADMIN"
        assert not runtime.policy.is_contract_enabled()
        assert "ST1ADMIN" in repr(runtime)

    def test_from_config_defaults(self):
        runtime = EscrowRuntime.from_config()
        assert runtime.policy.policy.to_dict()["owner"] == PolicyConfig().owner


class TestExampleScenario:

    def test_example_outcomes(self):
        runner = ScenarioRunner(Scenario.from_yaml(EXAMPLE))
        outcomes = runner.run()

        errors = [o.result.error for o in outcomes]
        assert errors == [
            None,
            ErrorCode.ALREADY_PAID,
            None,
            None,
            ErrorCode.INVALID_AMOUNT,
            ErrorCode.NO_DISPUTE,
            None,
            ErrorCode.INVALID_GRACE_PERIOD,
            ErrorCode.NOT_AUTHORIZED,
            None,
            ErrorCode.CONTRACT_DISABLED,
        ]
        assert outcomes[9].result.value is False

        ledger = runner.runtime.ledger
        assert ledger.get_partial_payment(2, 1).amount == 1000
        assert ledger.get_refund(2).recipient == "ST1BUYER"
        assert ledger.get_payment_status(1).timestamp == 0
        assert [t.token for t in runner.runtime.emitter.transfers] == [None, "USDA", "USDA"]


class TestSteps:

    def test_inline_order_and_explicit_escrow(self):
        runner, outcomes = _run({
            "steps": [{
                "op":       "process_payment",
                "order_id": 1,
                "order":    {"buyer": "B", "supplier": "S", "amount": 5},
                "escrow":   {"amount": 5, "locked": False},
            }],
        })
        assert outcomes[0].result.error == ErrorCode.NO_ESCROW

    def test_unverified_payment(self):
        _, outcomes = _run({
            "orders": {"o": {"buyer": "B", "supplier": "S", "amount": 5}},
            "steps":  [{"op": "process_payment", "order_id": 1, "order": "o", "verified": False}],
        })
        assert outcomes[0].result.error == ErrorCode.INVALID_STATUS

    def test_scenario_caller_used_for_setters(self):
        runner, outcomes = _run({
            "caller": "ST1OTHER",
            "steps": [
                {"op": "set_max_payments", "value": 1},
                {"op": "set_contract_owner", "new_owner": "ST1OTHER", "caller": "ST1TEST"},
                {"op": "set_supported_currency", "value": "USDA"},
            ],
        })
        assert [bool(o.result) for o in outcomes] == [False, True, True]
        assert runner.runtime.policy.get_supported_currency() == "USDA"

    def test_clock_heights_recorded(self):
        _, outcomes = _run({
            "steps": [{"op": "advance_clock"}, {"op": "advance_clock", "blocks": 4}],
        })
        assert [o.height for o in outcomes] == [1, 5]
        assert outcomes[1].to_dict()["value"] == 5

    @pytest.mark.parametrize("data", [
        {"steps": [{"op": "nope"}]},
        {"steps": [{"op": "process_payment", "order_id": 1, "order": "missing"}]},
        {"steps": [{"op": "set_max_payments"}]},
        {"steps": [{"op": "set_max_payments", "value": "many"}]},
        {"steps": [{"op": "advance_clock", "blocks": -2}]},
        {"steps": [{"op": "process_partial_payment", "order_id": 1,
                    "order": {"buyer": "B", "supplier": "S", "amount": 5}}]},
    ])
    def test_bad_steps_raise_config_error(self, data):
        with pytest.raises(ConfigError):
            _run(data)

    @pytest.mark.parametrize("op, flag", [
        ("process_payment", "dispute_active"),
        ("process_payment", "verified"),
        ("process_refund", "dispute_active"),
        ("process_partial_payment", "verified"),
    ])
    @pytest.mark.parametrize("value", ["false", "true", 0, 1, None])
    def test_non_boolean_flags_rejected(self, op, flag, value):
        step = {
            "op":         op,
            "order_id":   1,
            "part_id":    1,
            "percentage": 50,
            "order":      {"buyer": "B", "supplier": "S", "amount": 100},
            flag:         value,
        }
        with pytest.raises(ConfigError, match=flag):
            _run({"steps": [step]})

    def test_quoted_false_in_yaml_is_rejected(self, tmp_path):
        path = tmp_path / "scenario.yaml"
        path.write_text(
            "steps:\n"
            "  - op: process_refund\n"
            "    order_id: 1\n"
            "    order: {buyer: B, supplier: S, amount: 100}\n"
            "    dispute_active: \"false\"\n",
            encoding="utf-8",
        )
        runner = ScenarioRunner(Scenario.from_yaml(path))

        with pytest.raises(ConfigError):
            runner.run()
        assert runner.runtime.ledger.get_refund(1) is None

    @pytest.mark.parametrize("data", [
        None,
        {},
        {"steps": [1]},
        {"steps": [], "orders": ["o1"]},
    ])
    def test_bad_documents(self, data):
        with pytest.raises(ConfigError):
            Scenario.from_dict(data)
