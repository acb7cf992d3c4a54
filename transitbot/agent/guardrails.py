"""Query guardrails: off-topic and unsafe denylist."""

from collections.abc import Iterable
from dataclasses import dataclass

from loguru import logger

from transitbot.config.schema import DEFAULT_RESTRICTED_TERMS

REFUSAL_MESSAGE = "I'm sorry, I can only help with transportation and bus-related queries."


@dataclass(frozen=True)
class GuardrailRule:
    """A denylisted term; matched case-insensitively as a substring."""

    term: str
    description: str = ""

    def matches(self, lowered_query: str) -> bool:
        return self.term.lower() in lowered_query


def rules_from_terms(terms: Iterable[str]) -> tuple[GuardrailRule, ...]:
    return tuple(GuardrailRule(term=t, description="Restricted term") for t in terms if t)


DEFAULT_RULES: tuple[GuardrailRule, ...] = rules_from_terms(DEFAULT_RESTRICTED_TERMS)


class QueryGuardrail:
    """Rejects queries containing any denylisted term before a model call."""

    def __init__(
        self,
        rules: Iterable[GuardrailRule] = DEFAULT_RULES,
        refusal: str = REFUSAL_MESSAGE,
    ):
        self.rules = tuple(rules)
        self.refusal = refusal

    @classmethod
    def from_terms(cls, terms: Iterable[str]) -> "QueryGuardrail":
        return cls(rules=rules_from_terms(terms))

    def check(self, query: str) -> GuardrailRule | None:
        """Return the first matching rule, or None if the query is allowed."""
        lowered = query.lower()
        for rule in self.rules:
            if rule.matches(lowered):
                logger.info(f"Guardrail rejected query matching '{rule.term}'")
                return rule
        return None

    def is_restricted(self, query: str) -> bool:
        return self.check(query) is not None
