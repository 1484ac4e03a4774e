"""
Reasoning records.

Every rule application is written down as a ReasoningStep. Steps are
collected in a ReasoningChain that stages return and the orchestrator
threads forward; a chain is never modified, appending gives a new chain.
Step facts are frozen on construction (read-only mappings, tuples).
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Optional


class Evidence(Enum):
    STRONG = "strong"
    MEDIUM = "medium"
    WEAK = "weak"


@dataclass(frozen=True)
class ReasoningStep:
    rule: str
    description: str
    facts: Mapping
    conclusion: str
    strength: Evidence = Evidence.MEDIUM
    source: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "facts", frozen(self.facts))

    def to_dict(self):
        return {
            "rule": self.rule,
            "description": self.description,
            "facts": _plain(self.facts),
            "conclusion": self.conclusion,
            "strength": self.strength.value,
            "source": self.source,
        }


@dataclass(frozen=True)
class ReasoningChain:
    steps: tuple = ()
    conclusion: Optional[str] = None
    confidence: Optional[Evidence] = None

    def append(self, step: ReasoningStep) -> "ReasoningChain":
        return ReasoningChain(self.steps + (step,), self.conclusion, self.confidence)

    def extend(self, steps: Iterable[ReasoningStep]) -> "ReasoningChain":
        return ReasoningChain(self.steps + tuple(steps), self.conclusion, self.confidence)

    def concluded(self, conclusion: str, confidence: Evidence) -> "ReasoningChain":
        return ReasoningChain(self.steps, conclusion, confidence)

    def rules(self) -> list[str]:
        return [s.rule for s in self.steps]

    def __len__(self):
        return len(self.steps)

    def to_dict(self):
        return {
            "steps": [s.to_dict() for s in self.steps],
            "conclusion": self.conclusion,
            "confidence": self.confidence.value if self.confidence else None,
        }


def _plain(value: Any) -> Any:
    """Make fact payloads JSON friendly (enums, branches, tuples)."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_plain(v) for v in value]
    if hasattr(value, "chinese"):
        return value.chinese
    return value


def frozen(value: Any) -> Any:
    """Read-only copy of a fact payload: mappings become proxies, lists tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: frozen(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(frozen(v) for v in value)
    if isinstance(value, set):
        return frozenset(value)
    return value


def chain_of(*steps: ReasoningStep, conclusion: Optional[str] = None,
             confidence: Optional[Evidence] = None) -> ReasoningChain:
    return ReasoningChain(tuple(steps), conclusion, confidence)
