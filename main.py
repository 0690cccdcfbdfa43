# main.py
"""
CLI entrypoint for the auditor.

- Supports two modes:
  * audit: report deviations of every DataSource Resource from the baseline
  * patch: same, then write <name>.NEW.xml with only the flagged attributes rewritten
- Produces JSON, CSV, and HTML reports and prints a colorful summary table.
"""

import argparse
import logging
from typing import Optional

from auditor import (
    ParseError,
    audit_document,
    find_duplicate_names,
    generate_patched_xml,
    suggestions_by_id,
)
from config import DEFAULT_BASELINE, DEFAULT_ENCODING, DEFAULT_REPORT_DIR
from utils import derive_output_path, print_summary_and_report_path, read_document, save_report, write_document

logger = logging.getLogger("jdbc_pool_auditor")


def run(file_path: str, mode: str = "audit", out_path: Optional[str] = None,
        encoding: str = DEFAULT_ENCODING, report_dir: Optional[str] = DEFAULT_REPORT_DIR,
        print_table: bool = False) -> Optional[str]:
    """
    Audit `file_path` and, in patch mode, write the patched document.

    Returns the path of the patched document, or None if nothing was written.
    Raises ParseError if the document is malformed.
    """
    logger.info("Auditing %s (mode=%s, encoding=%s)", file_path, mode, encoding)
    text = read_document(file_path, encoding)
    records, results = audit_document(text, DEFAULT_BASELINE)

    if not records:
        print("No DataSource Resource elements found")
        return None

    for name, ids in find_duplicate_names(records).items():
        logger.warning("Name %r is declared by resources %s; they will not be patched", name, ids)

    written = None
    if mode == "patch":
        if any(r.suggestions for r in results.values()):
            patched = generate_patched_xml(text, records, suggestions_by_id(results))
            written = write_document(out_path or derive_output_path(file_path), patched, encoding)
            logger.info("Patched document written to %s", written)
        else:
            logger.info("All resources are compliant; no patched document written")

    report_paths = None
    if report_dir:
        report_paths = save_report(
            records,
            results,
            mode=mode,
            extra={"source_file": file_path, "encoding": encoding},
            out_dir=report_dir,
        )
    print_summary_and_report_path(
        records, results, report_paths, print_full_table=print_table, output_path=written
    )
    return written


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="JDBC pool auditor: checks Resource declarations against the EncryptedDataSourceFactoryPlus baseline."
    )
    p.add_argument(
        "--mode",
        choices=["audit", "patch"],
        default="audit",
        help="Run mode: audit (report only) or patch (also write the .NEW.xml document)",
    )
    p.add_argument(
        "--file",
        required=True,
        help="Path to the XML document to audit (e.g., context.xml)",
    )
    p.add_argument(
        "--out",
        help="Path of the patched document (default: <name>.NEW.xml next to the input)",
    )
    p.add_argument(
        "--encoding",
        default=DEFAULT_ENCODING,
        help=f"Character encoding of the document (default: {DEFAULT_ENCODING})",
    )
    p.add_argument(
        "--report-dir",
        default=DEFAULT_REPORT_DIR,
        help=f"Directory to save reports (default: {DEFAULT_REPORT_DIR})",
    )
    p.add_argument(
        "--no-report",
        action="store_true",
        help="Do not write JSON/CSV/HTML reports",
    )
    p.add_argument(
        "--print-table",
        action="store_true",
        help="Print the full issues table to stdout",
    )
    p.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    try:
        run(
            args.file,
            mode=args.mode,
            out_path=args.out,
            encoding=args.encoding,
            report_dir=None if args.no_report else args.report_dir,
            print_table=args.print_table,
        )
    except (ParseError, FileNotFoundError) as e:
        raise SystemExit(str(e))


if __name__ == "__main__":
    main()
