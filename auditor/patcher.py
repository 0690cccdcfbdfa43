# auditor/patcher.py
"""
Surgical patching of Resource opening tags.

- The document is never re-serialized: each flagged Resource tag is located
  with a regex anchored on its literal name="..." attribute, and only that
  span of text is rewritten.
- Existing assignments get a new double-quoted value; missing attributes are
  appended on their own line, aligned with the tag's other attributes.
- Records whose tag cannot be found, or whose name anchors more than one
  Resource tag, are left unpatched (logged, not raised).
"""

import logging
import re
from typing import Dict, List, Mapping, Optional
from xml.sax.saxutils import escape

from models import ResourceRecord

logger = logging.getLogger(__name__)

# One unit of an attribute list: a plain character or a whole quoted value.
# Quoted values may contain "/" or ">" without ending the tag.
_ATTR_CHUNK = r"""(?:[^"'<>/]|"[^"]*"|'[^']*')"""

_TAG_HEAD = re.compile(r"<Resource\s+")


def build_tag_pattern(name: str) -> re.Pattern:
    """
    Pattern for the opening tag of the Resource named `name`.

    Group "tag" spans from "<Resource" to the end of the last attribute;
    group "close" holds the trailing whitespace and "/>" or ">".
    """
    return re.compile(
        r"(?P<tag><Resource(?=\s)" + _ATTR_CHUNK + r"*?"
        r"\sname\s*=\s*(?P<q>[\"'])" + re.escape(name) + r"(?P=q)"
        + _ATTR_CHUNK + r"*?)"
        r"(?P<close>\s*/?>)"
    )


def _assignment_pattern(param: str) -> re.Pattern:
    return re.compile(r"(?<=\s)" + re.escape(param) + r"""\s*=\s*(?:"[^"]*"|'[^']*')""")


def _quote(value: str) -> str:
    return '"' + escape(value, {'"': "&quot;"}) + '"'


def attribute_indent(document: str, start: int, span: str) -> str:
    """
    Indentation for an appended attribute line.

    Multi-line tags reuse the indentation of their last line; single-line tags
    align with the first attribute.
    """
    lines = span.splitlines()
    if len(lines) > 1:
        last = lines[-1]
        return last[: len(last) - len(last.lstrip())]
    line_start = document.rfind("\n", 0, start) + 1
    prefix = document[line_start:start]
    lead = prefix if not prefix.strip() else " " * len(prefix)
    head = _TAG_HEAD.match(span)
    return lead + " " * (len(head.group(0)) if head else len("<Resource "))


def patch_tag(span: str, suggestions: Mapping[str, str], indent: str, newline: str = "\n") -> str:
    """
    Rewrite the attributes of one opening tag (without its closing delimiter).
    """
    modified = span
    for param, value in suggestions.items():
        assignment = _assignment_pattern(param)
        replacement = f"{param}={_quote(value)}"
        if assignment.search(modified):
            modified = assignment.sub(lambda _m: replacement, modified)
        else:
            modified = f"{modified}{newline}{indent}{replacement}"
    return modified


def _newline_of(document: str) -> str:
    return "\r\n" if "\r\n" in document else "\n"


def count_tags(document: str, name: str) -> int:
    """Number of Resource opening tags anchored on `name` in `document`."""
    return sum(1 for _ in build_tag_pattern(name).finditer(document))


def generate_patched_xml(original: str, records: List[ResourceRecord],
                         suggestions_by_id: Mapping[int, Optional[Mapping[str, str]]]) -> str:
    """
    Apply each record's suggestions to the document, in record order.

    A name that anchors more than one Resource tag in the original text
    (another DataSource, or a Resource of any other type) is ambiguous: no
    record carrying it is patched, and every such tag is left as written.
    """
    document = original
    newline = _newline_of(original)
    seen: Dict[str, int] = {}

    for r in records:
        name = r.attributes.get("name")
        first_id = seen.setdefault(name, r.id) if name else None

        suggestions = suggestions_by_id.get(r.id) or {}
        if not suggestions:
            continue

        if not name:
            logger.warning("Resource #%d has no name attribute; left unpatched", r.id)
            continue
        if first_id != r.id:
            logger.warning(
                "Resource #%d shares name %r with resource #%d; left unpatched",
                r.id, name, first_id,
            )
            continue

        tags = count_tags(original, name)
        if tags > 1:
            logger.warning("Name %r anchors %d Resource tags; resource #%d left unpatched", name, tags, r.id)
            continue

        m = build_tag_pattern(name).search(document)
        if not m:
            logger.warning("Could not locate the tag of resource %r; left unpatched", name)
            continue

        span = m.group("tag")
        indent = attribute_indent(document, m.start(), span)
        new_span = patch_tag(span, suggestions, indent, newline)
        document = document[:m.start("tag")] + new_span + document[m.end("tag"):]
        logger.debug("Patched %d attribute(s) of %s", len(suggestions), name)

    return document
