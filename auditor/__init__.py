"""
JDBC pool auditing: extraction, rule evaluation and in-place patching.
"""

from typing import Dict, List, Tuple

from config import DEFAULT_BASELINE, Baseline
from models import AuditResult, ResourceRecord

from auditor.extractor import ParseError, extract_resources, find_duplicate_names
from auditor.patcher import generate_patched_xml
from auditor.rules import audit_resource, audit_resources


def audit_document(text: str, baseline: Baseline = DEFAULT_BASELINE
                   ) -> Tuple[List[ResourceRecord], Dict[int, AuditResult]]:
    """
    Extract the DataSource resources of `text` and audit each of them.

    Raises ParseError before any record is produced if `text` is malformed.
    """
    records = extract_resources(text)
    return records, audit_resources(records, baseline)


def suggestions_by_id(results: Dict[int, AuditResult]) -> Dict[int, Dict[str, str]]:
    return {rid: dict(result.suggestions) for rid, result in results.items()}


__all__ = [
    "ParseError",
    "audit_document",
    "audit_resource",
    "audit_resources",
    "extract_resources",
    "find_duplicate_names",
    "generate_patched_xml",
    "suggestions_by_id",
]
