# auditor/extractor.py
"""
Extraction of JDBC pool declarations from a configuration document.

- The document is parsed with defusedxml (it is untrusted input).
- Every <Resource> element whose type contains "DataSource" becomes a
  ResourceRecord; other Resource elements are not pool declarations.
- Records carry plain attribute snapshots; the tree is dropped afterwards.
"""

import logging
from collections import defaultdict
from typing import Dict, List
from xml.etree.ElementTree import Element

from defusedxml import ElementTree
from defusedxml.common import DefusedXmlException

from models import ResourceRecord

logger = logging.getLogger(__name__)

RESOURCE_TAG = "Resource"
DATASOURCE_MARKER = "DataSource"


class ParseError(ValueError):
    """
    Raised when the document is not well-formed XML.

    The parser's own diagnostic is kept verbatim in `diagnostic`.
    """

    def __init__(self, diagnostic: str):
        self.diagnostic = diagnostic
        super().__init__(f"Malformed XML: {diagnostic}")


def parse_document(text: str) -> Element:
    """
    Parse raw document text and return the root element.
    """
    try:
        return ElementTree.fromstring(text)
    except ElementTree.ParseError as e:
        raise ParseError(str(e)) from e
    except DefusedXmlException as e:
        raise ParseError(str(e)) from e


def is_datasource(attrs: Dict[str, str]) -> bool:
    return DATASOURCE_MARKER in attrs.get("type", "")


def extract_resources(text: str) -> List[ResourceRecord]:
    """
    Return the DataSource resources declared in `text`, in document order.

    An empty list means there is nothing to audit; it is not an error.
    """
    root = parse_document(text)
    records: List[ResourceRecord] = []
    for node in root.iter(RESOURCE_TAG):
        attrs = dict(node.attrib)
        if not is_datasource(attrs):
            logger.debug("Skipping Resource %r of type %r", attrs.get("name"), attrs.get("type"))
            continue
        rid = len(records)
        records.append(ResourceRecord(
            id=rid,
            name=attrs.get("name") or f"Resource_{rid}",
            type=attrs.get("type", ""),
            attributes=attrs,
        ))
    logger.info("Found %d DataSource resource(s)", len(records))
    return records


def find_duplicate_names(records: List[ResourceRecord]) -> Dict[str, List[int]]:
    """
    Map each declared name used by more than one record to the ids using it.

    Only the first record of such a group can be patched unambiguously.
    """
    by_name: Dict[str, List[int]] = defaultdict(list)
    for r in records:
        name = r.attributes.get("name")
        if name:
            by_name[name].append(r.id)
    return {name: ids for name, ids in by_name.items() if len(ids) > 1}
