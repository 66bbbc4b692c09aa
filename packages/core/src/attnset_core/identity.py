"""Service account classification.

Robots (CI bots, linters, automated reviewers) are exempt from most
attention set rules. Who counts as a robot is decided outside the engine;
the engine only asks ``is_service_account``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable


class IdentityClassifier(ABC):
    @abstractmethod
    def is_service_account(self, account: str) -> bool:
        """Return True if ``account`` is an automated identity."""


class ConfiguredServiceAccounts(IdentityClassifier):
    """Classifies accounts listed in .attnset.yml as service accounts.

    ``accounts`` are matched exactly (case-insensitive). ``domains`` match
    the part after "@" of e-mail style account ids, e.g. "ci.example.com".
    """

    def __init__(self, accounts: Iterable[str] = (), domains: Iterable[str] = ()):
        self._accounts = {a.lower() for a in accounts}
        self._domains = {d.lower().lstrip("@") for d in domains}

    def is_service_account(self, account: str) -> bool:
        account = account.lower()
        if account in self._accounts:
            return True
        _, sep, domain = account.rpartition("@")
        return bool(sep) and domain in self._domains
