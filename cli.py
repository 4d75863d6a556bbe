#!/usr/bin/env python3
import argparse
import sys

from releasenotes.orchestrator import run_once


def main():
    parser = argparse.ArgumentParser(description="Release notes CLI")
    parser.add_argument("--config", help="Path to YAML/JSON configuration (defaults apply when omitted)")
    parser.add_argument("--input", required=True, help="Path to YAML/JSON export of pull requests, diff and tags")
    parser.add_argument("--output-dir", dest="output_dir", help="Write changelog files here instead of stdout")
    parser.add_argument("--format", dest="formats", action="append", choices=["md", "json"], help="Output format (repeatable)")
    # config overrides
    parser.add_argument("--trim-values", dest="trim_values", action="store_true", help="Trim whitespace around substituted values")
    parser.add_argument("--no-trim-values", dest="trim_values", action="store_false", help="Keep substituted values verbatim")
    parser.add_argument("--sort-order", dest="sort_order", choices=["ASC", "DESC", "asc", "desc"], help="Sort direction")
    parser.add_argument("--sort-on", dest="sort_on", help="Sort field (mergedAt, createdAt, title, number, ...)")
    parser.set_defaults(trim_values=None)
    args = parser.parse_args()

    overrides = {
        "trim_values": args.trim_values,
        "sort_order": args.sort_order,
        "sort_on": args.sort_on,
    }

    result = run_once(
        args.config,
        args.input,
        output_dir=args.output_dir,
        formats=args.formats,
        overrides=overrides,
    )
    if not args.output_dir:
        sys.stdout.write(result.document)
        if not result.document.endswith("\n"):
            sys.stdout.write("\n")


if __name__ == "__main__":
    main()
