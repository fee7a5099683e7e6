#!/usr/bin/env python3
"""PII gate for source files.

Citizen phone numbers, names and message bodies must never reach the logs.
Fails if:
- print( is found in runtime code (src/**)
- a logger call mentions a citizen field without going through redaction

Usage:
    python scripts/gate_security_pii.py
"""

import re
import sys
from pathlib import Path

# Citizen data that must not appear in logger calls without redaction
SENSITIVE_KEYWORDS = (
    "phone",
    "citizen_name",
    "event.text",
    "description",
    "body",
    "payload",
    "collected",
)

PRINT_PATTERN = re.compile(r"\bprint\s*\(")

LOGGER_CALL_PATTERN = re.compile(r"\b(logger|log)\.?(debug|info|warning|error|critical|exception)?\s*\(")

# A logger call that passes its fields through one of these is safe
REDACTION_PATTERNS = (
    "safe_log_context",
    "hash_identifier",
    "redact_value",
    "redact_string",
)


def _logger_calls(lines: list[str]) -> list[tuple[int, str]]:
    """(first line number, joined text) for every logger call, across lines."""
    calls = []
    lineno = 0
    while lineno < len(lines):
        line = lines[lineno]
        if LOGGER_CALL_PATTERN.search(line) and not line.lstrip().startswith("#"):
            start = lineno
            depth = line.count("(") - line.count(")")
            chunk = [line]
            while depth > 0 and lineno + 1 < len(lines):
                lineno += 1
                chunk.append(lines[lineno])
                depth += lines[lineno].count("(") - lines[lineno].count(")")
            calls.append((start + 1, "\n".join(chunk)))
        lineno += 1
    return calls


def check_file(filepath: Path) -> list[str]:
    """Check a single file for violations. Returns list of error messages."""
    try:
        content = filepath.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        return []

    errors = []
    lines = content.splitlines()

    for lineno, line in enumerate(lines, start=1):
        code_part = line.split("#")[0]
        if PRINT_PATTERN.search(code_part):
            errors.append(f"{filepath}:{lineno}: print() not allowed in runtime code")

    for lineno, call in _logger_calls(lines):
        if any(rp in call for rp in REDACTION_PATTERNS):
            continue
        call_lower = call.lower()
        for keyword in SENSITIVE_KEYWORDS:
            if keyword in call_lower:
                errors.append(
                    f"{filepath}:{lineno}: logger call with '{keyword}' "
                    "must use redaction (safe_log_context/hash_identifier)"
                )

    return errors


def check_tree(src_dir: Path) -> list[str]:
    all_errors: list[str] = []
    for pyfile in sorted(src_dir.rglob("*.py")):
        all_errors.extend(check_file(pyfile))
    return all_errors


def main() -> int:
    """Run the gate on the src directory."""
    src_dir = Path("src")
    if not src_dir.exists():
        src_dir = Path(__file__).parent.parent / "src"
    if not src_dir.exists():
        sys.stderr.write("Error: src directory not found\n")
        return 1

    all_errors = check_tree(src_dir)
    if all_errors:
        sys.stderr.write("PII gate FAILED - violations found:\n")
        for err in all_errors:
            sys.stderr.write(f"  {err}\n")
        return 1

    sys.stdout.write("PII gate PASSED - no violations found\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
