"""
Success classification for a single page visit.

Status codes are unreliable on client-rendered storefronts: the browser may
hand back no response object at all (status 0), or the response it reports is
not the one the user ends up on after client-side routing. The classifier
therefore combines independent signals as named rules:

- ``status``: 200 <= status < 400
- ``content``: rendered text longer than the minimum and a non-empty title
- ``body``: rendered text longer than the minimum
- ``host``: the final hostname is the target hostname or one of its subdomains
- ``host_suffix``: the final hostname ends with the target hostname as plain
  text, so ``badexample.com`` also matches ``example.com``

A policy is a set of clauses; a visit succeeds when every rule of at least one
clause holds. The default ``permissive`` policy is::

    status  OR  (content AND host)  OR  host

Stricter policies are kept for sites where reaching the host alone is not
enough evidence of health. ``permissive_suffix`` repeats the default with the
plain-text host match.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional, Tuple

from .models import Observation, Target, Verdict

logger = logging.getLogger(__name__)

DEFAULT_MIN_BODY_LENGTH = 1200
DIAGNOSTIC_TITLE_CHARS = 60

RuleCheck = Callable[[Observation, Target, int], bool]


def status_ok(observation: Observation, target: Target, min_body_length: int) -> bool:
    return 200 <= observation.status < 400


def body_ok(observation: Observation, target: Target, min_body_length: int) -> bool:
    return observation.body_length > min_body_length


def content_ok(observation: Observation, target: Target, min_body_length: int) -> bool:
    title = (observation.title or "").strip()
    return body_ok(observation, target, min_body_length) and bool(title)


def host_ok(observation: Observation, target: Target, min_body_length: int) -> bool:
    # An unparsable target has no hostname, so host evidence never applies.
    if not observation.final_host or not target.hostname:
        return False
    final_host = observation.final_host
    return final_host == target.hostname or final_host.endswith("." + target.hostname)


def host_suffix_ok(observation: Observation, target: Target, min_body_length: int) -> bool:
    if not observation.final_host or not target.hostname:
        return False
    return observation.final_host.endswith(target.hostname)


RULES: Dict[str, RuleCheck] = {
    "status": status_ok,
    "body": body_ok,
    "content": content_ok,
    "host": host_ok,
    "host_suffix": host_suffix_ok,
}


@dataclass(frozen=True)
class SuccessPolicy:
    """OR of AND-clauses over rule names."""

    name: str
    clauses: Tuple[Tuple[str, ...], ...]

    def __post_init__(self):
        if not self.clauses:
            raise ValueError(f"Policy {self.name!r} needs at least one clause")
        for clause in self.clauses:
            if not clause:
                raise ValueError(f"Policy {self.name!r} has an empty clause")
            unknown = [rule for rule in clause if rule not in RULES]
            if unknown:
                raise ValueError(f"Policy {self.name!r} uses unknown rules: {unknown}")

    @property
    def rule_names(self) -> Tuple[str, ...]:
        seen = []
        for clause in self.clauses:
            for rule in clause:
                if rule not in seen:
                    seen.append(rule)
        return tuple(seen)

    def describe(self) -> str:
        return " OR ".join(
            clause[0] if len(clause) == 1 else "(" + " AND ".join(clause) + ")"
            for clause in self.clauses
        )


PERMISSIVE = SuccessPolicy("permissive", (("status",), ("content", "host"), ("host",)))
STATUS_AND_BODY = SuccessPolicy("status_and_body", (("status", "body"),))
STATUS_ONLY = SuccessPolicy("status_only", (("status",),))
PERMISSIVE_SUFFIX = SuccessPolicy(
    "permissive_suffix", (("status",), ("content", "host_suffix"), ("host_suffix",))
)

POLICIES: Dict[str, SuccessPolicy] = {
    PERMISSIVE.name: PERMISSIVE,
    STATUS_AND_BODY.name: STATUS_AND_BODY,
    STATUS_ONLY.name: STATUS_ONLY,
    PERMISSIVE_SUFFIX.name: PERMISSIVE_SUFFIX,
}


def register_policy(name: str, clauses: Iterable[Iterable[str]]) -> SuccessPolicy:
    """Register a named policy built from rule-name clauses."""
    policy = SuccessPolicy(name, tuple(tuple(clause) for clause in clauses))
    POLICIES[name] = policy
    return policy


def get_policy(name: str) -> SuccessPolicy:
    try:
        return POLICIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown success policy {name!r}; available: {', '.join(sorted(POLICIES))}"
        ) from None


def describe_unhealthy(observation: Observation) -> str:
    """Snapshot of the signals behind a negative verdict."""
    title = (observation.title or "")[:DIAGNOSTIC_TITLE_CHARS]
    return (
        f"Unhealthy: status={observation.status}, host={observation.final_host}, "
        f'body={observation.body_length}, title="{title}"'
    )


class SuccessClassifier:
    """Maps an Observation to a Verdict. Holds no per-call state."""

    def __init__(
        self,
        policy: str = PERMISSIVE.name,
        min_body_length: int = DEFAULT_MIN_BODY_LENGTH,
    ):
        self.policy = policy if isinstance(policy, SuccessPolicy) else get_policy(policy)
        self.min_body_length = min_body_length

    def evaluate_rules(self, observation: Observation, target: Target) -> Dict[str, bool]:
        return {
            name: RULES[name](observation, target, self.min_body_length)
            for name in self.policy.rule_names
        }

    def classify(self, observation: Observation, target: Target) -> Verdict:
        results = self.evaluate_rules(observation, target)
        matched = tuple(name for name, passed in results.items() if passed)

        for clause in self.policy.clauses:
            if all(results[rule] for rule in clause):
                return Verdict(success=True, matched_rules=matched)

        return Verdict(
            success=False,
            diagnostic=describe_unhealthy(observation),
            matched_rules=matched,
        )

    def __repr__(self) -> str:
        return (
            f"SuccessClassifier(policy={self.policy.name!r}, "
            f"min_body_length={self.min_body_length})"
        )


_default_classifier = SuccessClassifier()


def classify(
    observation: Observation,
    target: Target,
    classifier: Optional[SuccessClassifier] = None,
) -> Verdict:
    """Classify with the default permissive rule unless a classifier is given."""
    return (classifier or _default_classifier).classify(observation, target)
