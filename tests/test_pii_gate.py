"""Tests for the PII logging gate script."""

from pathlib import Path

from scripts.gate_security_pii import check_file, check_tree

SRC = Path(__file__).resolve().parents[1] / "src"


class TestCheckFile:
    def test_unredacted_phone_is_flagged(self, tmp_path):
        source = tmp_path / "bad.py"
        source.write_text('logger.info("sending", extra={"phone": event.phone})\n', encoding="utf-8")
        (error,) = check_file(source)
        assert "'phone'" in error

    def test_multiline_call_with_redaction_passes(self, tmp_path):
        source = tmp_path / "good.py"
        source.write_text(
            "logger.warning(\n"
            '    "lookup failed",\n'
            '    extra={"extra_fields": safe_log_context(to_hash=hash_identifier(event.phone))},\n'
            ")\n",
            encoding="utf-8",
        )
        assert check_file(source) == []

    def test_print_is_flagged(self, tmp_path):
        source = tmp_path / "noisy.py"
        source.write_text('print("debug")\n# print("commented out")\n', encoding="utf-8")
        assert len(check_file(source)) == 1


class TestSourceTree:
    def test_runtime_code_passes(self):
        assert check_tree(SRC) == []
