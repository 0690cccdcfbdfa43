# models.py
"""
Data models used by the auditor.

- Keep simple, serializable dataclasses for records and audit results.
- Records are snapshots: no reference to the parsed tree survives extraction.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Tuple

from config import LEVELS


@dataclass(frozen=True)
class ResourceRecord:
    """
    One JDBC pool declaration found in the document.

    Fields:
    - id: 0-based position among the kept DataSource resources
    - name: declared name (e.g., "jdbc/Foo"), also the patch anchor
    - type: declared datasource type (e.g., "javax.sql.DataSource")
    - attributes: literal attribute values as written in the source
    """
    id: int
    name: str
    type: str
    attributes: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Issue:
    """A single deviation from the baseline."""
    level: str
    param: str
    message: str
    original: str


@dataclass(frozen=True)
class AuditResult:
    """
    Issues and suggested values for one resource.

    Every issue's param has exactly one entry in suggestions, and an
    attribute missing from suggestions is left untouched.
    """
    issues: Tuple[Issue, ...] = ()
    suggestions: Dict[str, str] = field(default_factory=dict)

    @property
    def is_compliant(self) -> bool:
        return not self.issues

    def counts(self) -> Dict[str, int]:
        totals = {level: 0 for level in LEVELS}
        for issue in self.issues:
            totals[issue.level] = totals.get(issue.level, 0) + 1
        return totals

    def to_dict(self) -> Dict[str, Any]:
        return {
            "issues": [asdict(i) for i in self.issues],
            "suggestions": dict(self.suggestions),
        }
