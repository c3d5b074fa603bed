"""Model step-down ladder used under capacity errors."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from rulebook_agent.config import ModelTierConfig


@dataclass(frozen=True, slots=True)
class StepDownRule:
    """If `applies(primary_model)` holds, `next_model` is the next fallback to try."""

    name: str
    applies: Callable[[str], bool]
    next_model: str


class ModelLadder:
    """Ordered fallback rules, evaluated top to bottom against the primary model."""

    def __init__(self, rules: list[StepDownRule]) -> None:
        self.rules = list(rules)

    @classmethod
    def from_config(cls, config: ModelTierConfig) -> "ModelLadder":
        high = config.high_capability_marker.lower()
        economy = config.economy_marker.lower()
        return cls(
            [
                StepDownRule(
                    name="high_capability_to_standard",
                    applies=lambda model: high in model.lower(),
                    next_model=config.standard,
                ),
                StepDownRule(
                    name="any_to_economy",
                    applies=lambda model: economy not in model.lower(),
                    next_model=config.economy,
                ),
            ]
        )

    def plan(self, primary_model: str) -> list[str]:
        """Return the fallback models to try after `primary_model`, in order.

        Models equal to the primary or already planned are skipped.
        """

        seen = {primary_model}
        plan: list[str] = []
        for rule in self.rules:
            if rule.applies(primary_model) and rule.next_model not in seen:
                seen.add(rule.next_model)
                plan.append(rule.next_model)
        return plan
