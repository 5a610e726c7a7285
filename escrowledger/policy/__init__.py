"""
escrowledger Policy Store

Administrator-controlled policy: owner, enabled flag, payment cap,
grace period and supported currency.

Components:
- PolicyConfig: YAML-loadable initial policy
- Policy: the mutable policy record
- PolicyStore: owner-guarded getters and setters
"""

from escrowledger.policy.config import PolicyConfig
from escrowledger.policy.policy import Policy, PolicyStore

__all__ = [
    "Policy",
    "PolicyConfig",
    "PolicyStore",
]
