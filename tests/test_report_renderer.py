import unittest
from datetime import datetime, timezone

from codeql_fly.models import Severity
from codeql_fly.services.report_renderer import (
    alert_severity,
    render_vulnerability_report,
    to_alert,
)


def make_alert(number, level=None, rule_severity=None, **extra):
    rule = {"id": f"js/rule-{number}", "description": f"Problem {number}"}
    if level is not None:
        rule["security_severity_level"] = level
    if rule_severity is not None:
        rule["severity"] = rule_severity
    alert = {
        "number": number,
        "state": "open",
        "html_url": f"https://github.com/octo/demo/security/code-scanning/{number}",
        "rule": rule,
        "most_recent_instance": {"location": {"path": "src/app.js", "start_line": number}},
    }
    alert.update(extra)
    return alert


class TestAlertSeverity(unittest.TestCase):
    def test_security_severity_level_wins(self):
        self.assertEqual(alert_severity(make_alert(1, "critical", "note")), Severity.CRITICAL)

    def test_rule_severity_fallback(self):
        self.assertEqual(alert_severity(make_alert(1, rule_severity="error")), Severity.HIGH)
        self.assertEqual(alert_severity(make_alert(1, rule_severity="warning")), Severity.MEDIUM)
        self.assertEqual(alert_severity(make_alert(1, rule_severity="note")), Severity.LOW)
        self.assertEqual(alert_severity(make_alert(1)), Severity.LOW)
        self.assertEqual(alert_severity({}), Severity.LOW)


class TestRenderVulnerabilityReport(unittest.TestCase):
    def setUp(self):
        self.alerts = [
            make_alert(1, "critical"),
            make_alert(2, "critical"),
            make_alert(3, "high"),
            make_alert(4, "low"),
            make_alert(5, "low"),
            make_alert(6, rule_severity="note"),
        ]
        self.generated_at = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    def test_summary_counts_and_sections(self):
        report = render_vulnerability_report(
            self.alerts, "main", "v1.2.3", generated_at=self.generated_at
        )
        self.assertIn("**Source Branch:** main", report)
        self.assertIn("**Release Tag:** v1.2.3", report)
        self.assertIn("**Total Alerts:** 6", report)
        self.assertIn("| Critical | 2 |", report)
        self.assertIn("| High | 1 |", report)
        self.assertIn("| Medium | 0 |", report)
        self.assertIn("| Low | 3 |", report)
        self.assertIn("### Critical Severity (2)", report)
        self.assertIn("### Low Severity (3)", report)
        self.assertNotIn("### Medium Severity", report)
        self.assertEqual(report.count("\n- **"), 6)

    def test_sections_in_severity_order(self):
        report = render_vulnerability_report(self.alerts, "main")
        self.assertLess(report.index("### Critical"), report.index("### High"))
        self.assertLess(report.index("### High"), report.index("### Low"))

    def test_entry_details(self):
        alert = make_alert(9, "medium")
        alert["rule"]["tags"] = ["security", "external/cwe/cwe-079"]
        report = render_vulnerability_report([alert], "main")
        self.assertIn("- **js/rule-9** - Problem 9", report)
        self.assertIn("**File:** src/app.js", report)
        self.assertIn("**Line:** 9", report)
        self.assertIn("**State:** open", report)
        self.assertIn("[View Alert](https://github.com/octo/demo/security/code-scanning/9)", report)
        self.assertIn("**Tags:** security, external/cwe/cwe-079", report)

    def test_no_tag_and_no_alerts(self):
        report = render_vulnerability_report([], "develop")
        self.assertIn("**Release Tag:** N/A", report)
        self.assertIn("**Total Alerts:** 0", report)
        self.assertNotIn("Severity (", report)


class TestToAlert(unittest.TestCase):
    def test_maps_fields(self):
        alert = to_alert(make_alert(3, rule_severity="warning"), "octo/demo")
        self.assertEqual(alert.alert_id, 3)
        self.assertEqual(alert.repo, "octo/demo")
        self.assertEqual(alert.severity, "medium")
        self.assertEqual(alert.file, "src/app.js")
        self.assertEqual(alert.rule_id, "js/rule-3")
        self.assertIsNone(alert.deleted_at)


if __name__ == "__main__":
    unittest.main()
