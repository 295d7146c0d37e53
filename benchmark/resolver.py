"""Model name to inference endpoint resolution."""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from core.config import EndpointsConfig


@dataclass(frozen=True)
class EndpointRule:
    """Routes models whose name contains any of ``patterns`` to ``url``."""
    name: str
    url: str
    patterns: Tuple[str, ...] = field(default_factory=tuple)

    def matches(self, model_id: str) -> bool:
        return any(pattern and pattern in model_id for pattern in self.patterns)


class EndpointResolver:
    """Ordered rule table with a default endpoint and per-model overrides."""

    def __init__(
        self,
        rules: Iterable[EndpointRule],
        default_url: str,
        overrides: Optional[Mapping[str, str]] = None,
    ):
        self.rules: List[EndpointRule] = list(rules)
        self.default_url = default_url
        self.overrides: Dict[str, str] = dict(overrides or {})

    @classmethod
    def from_config(cls, config: EndpointsConfig) -> "EndpointResolver":
        rules = [
            EndpointRule(name=rule.name, url=rule.url, patterns=tuple(rule.patterns))
            for rule in config.rules
        ]
        return cls(rules, config.default, config.overrides)

    def resolve(self, model_id: str, overrides: Optional[Mapping[str, str]] = None) -> str:
        """Return the base URL serving ``model_id``. Unknown models get the default."""
        if overrides and overrides.get(model_id):
            return overrides[model_id]
        if self.overrides.get(model_id):
            return self.overrides[model_id]
        for rule in self.rules:
            if rule.matches(model_id):
                return rule.url
        return self.default_url

    def endpoints(self) -> Dict[str, str]:
        """Every distinct configured endpoint, keyed by bucket name."""
        named = {"default": self.default_url}
        for rule in self.rules:
            named.setdefault(rule.name, rule.url)
        return named
