"""Smoke tests for the flashparse command line."""
import json
import logging
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory

from typer.testing import CliRunner

from cli.commands import app

logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)


class CliSmokeTest(unittest.TestCase):
    """Run each command once with Phase B switched off."""

    def setUp(self):
        self.runner = CliRunner()
        self.env = {"FLASHPARSE_DYNAMIC_REGEX_CHECK": "false"}

    def invoke(self, *args, **kwargs):
        result = self.runner.invoke(app, list(args), env=self.env, **kwargs)
        logger.debug("flashparse %s -> %s\n%s", " ".join(args), result.exit_code, result.output)
        return result

    def test_parse_stdin_as_json(self):
        """Test that a heading card read from stdin comes back as JSON."""
        result = self.invoke("parse", "-", "--json", input="## What is X?\n\nX is Y.")
        self.assertEqual(result.exit_code, 0, result.output)
        draft = json.loads(result.output)
        self.assertEqual(draft["templateId"], "heading_qa")
        self.assertEqual(draft["fields"]["answer"], "X is Y.")
        self.assertEqual(draft["notes"], "## What is X?\n\nX is Y.")

    def test_parse_file_rendered(self):
        """Test that a file is parsed and rendered as a panel."""
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "card.md"
            path.write_text("Q: What is 2+2?\nA: 4", encoding="utf-8")
            result = self.invoke("parse", str(path))
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("qa_pair", result.output)
        self.assertIn("What is 2+2?", result.output)

    def test_parse_empty_input_fails(self):
        """Test that empty input is reported and exits non-zero."""
        result = self.invoke("parse", "-", input="   ")
        self.assertEqual(result.exit_code, 1)

    def test_check_regex_rejects_nested_quantifiers(self):
        """Test that a catastrophic pattern fails with advice."""
        result = self.invoke("check-regex", "(a+)+", "--static")
        self.assertEqual(result.exit_code, 1)
        self.assertIn("nested quantifiers", result.output)

    def test_check_regex_accepts_simple_pattern_json(self):
        """Test that a simple pattern passes and serializes its verdict."""
        result = self.invoke("check-regex", "^[a-zA-Z0-9]+$", "--static", "--json")
        self.assertEqual(result.exit_code, 0, result.output)
        verdict = json.loads(result.output)
        self.assertTrue(verdict["passed"])
        self.assertIn(verdict["riskLevel"], ("low", "medium"))

    def test_templates_lists_catalog(self):
        """Test that the catalog listing shows every built-in template."""
        result = self.invoke("templates")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("10 templates", result.output)


if __name__ == "__main__":
    unittest.main()
