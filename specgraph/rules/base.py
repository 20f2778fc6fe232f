"""Base class for per-document rules."""

from abc import ABC, abstractmethod
from typing import Iterable

from ..findings import Finding
from ..models import Specification


class Rule(ABC):
    """Contract for rules run against every parsed schema document.

    Rules see only the specification and its document. They never inspect
    traversal state and have no side effects beyond returning findings.
    """

    name: str = ""

    @abstractmethod
    def check(self, spec: Specification, document: object) -> Iterable[Finding]:
        """Return findings for ``document`` located at ``spec.path``."""
