"""Route classification for the access gate."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from fitcoach.config.settings import Settings


@dataclass(frozen=True, slots=True)
class PrefixRule:
    prefix: str
    gated: bool = True


def parse_rules(entries: Iterable[str]) -> tuple[PrefixRule, ...]:
    """Build ordered rules from config strings.

    A leading ``!`` marks an exemption, e.g. ``["!/programs/shared", "/programs"]``
    leaves shared programs public while gating everything else under /programs.
    """
    rules = []
    for raw in entries:
        entry = raw.strip()
        if not entry:
            continue
        if entry.startswith("!"):
            rules.append(PrefixRule(prefix=entry[1:], gated=False))
        else:
            rules.append(PrefixRule(prefix=entry))
    return tuple(rules)


def _first_match(rules: tuple[PrefixRule, ...], path: str) -> bool:
    for rule in rules:
        if path.startswith(rule.prefix):
            return rule.gated
    return False


def _normalize(path: str) -> str:
    return path.rstrip("/") or "/"


@dataclass(frozen=True, slots=True)
class RoutePolicy:
    """Two independent ordered prefix lists plus the gate's redirect targets."""

    protected: tuple[PrefixRule, ...]
    billable: tuple[PrefixRule, ...]
    login_path: str = "/login"
    dashboard_path: str = "/dashboard"
    billing_path: str = "/billing"

    @classmethod
    def from_settings(cls, settings: Settings) -> RoutePolicy:
        return cls(
            protected=parse_rules(settings.protected_prefixes),
            billable=parse_rules(settings.billable_prefixes),
            login_path=settings.login_path,
            dashboard_path=settings.dashboard_path,
            billing_path=settings.billing_path,
        )

    def is_login(self, path: str) -> bool:
        return _normalize(path) == self.login_path

    def is_billing(self, path: str) -> bool:
        normalized = _normalize(path)
        return normalized == self.billing_path or normalized.startswith(self.billing_path + "/")

    def is_protected(self, path: str) -> bool:
        if self.is_login(path):
            return False
        return _first_match(self.protected, path)

    def is_billable(self, path: str) -> bool:
        if self.is_billing(path) or self.is_login(path):
            return False
        return _first_match(self.billable, path)

    @property
    def expired_billing_location(self) -> str:
        return f"{self.billing_path}?expired=true"
