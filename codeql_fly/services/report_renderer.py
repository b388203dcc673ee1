"""Markdown vulnerability report built from code-scanning alerts."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from codeql_fly.models import Alert, Severity

SEVERITY_ORDER = [Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW]

# rule.severity is only consulted when security_severity_level is absent
RULE_SEVERITY_FALLBACK = {
    "error": Severity.HIGH,
    "warning": Severity.MEDIUM,
    "note": Severity.LOW,
}


def alert_severity(alert: Dict[str, Any]) -> Severity:
    """Canonical severity of a GitHub code-scanning alert."""
    rule = alert.get("rule") or {}
    level = (rule.get("security_severity_level") or "").lower()
    if level in {s.value for s in Severity}:
        return Severity(level)
    return RULE_SEVERITY_FALLBACK.get((rule.get("severity") or "").lower(), Severity.LOW)


def _location(alert: Dict[str, Any]) -> Dict[str, Any]:
    instance = alert.get("most_recent_instance") or {}
    return instance.get("location") or {}


def to_alert(alert: Dict[str, Any], repo_full_name: str) -> Alert:
    rule = alert.get("rule") or {}
    return Alert(
        alert_id=alert["number"],
        repo=repo_full_name,
        severity=alert_severity(alert),
        file=_location(alert).get("path") or "",
        message=rule.get("description") or rule.get("name") or "",
        rule_id=rule.get("id") or "",
        state=alert.get("state") or "",
        html_url=alert.get("html_url") or "",
    )


def render_vulnerability_report(
    alerts: List[Dict[str, Any]],
    source_branch: str,
    tag: Optional[str] = None,
    generated_at: Optional[datetime] = None,
) -> str:
    generated_at = generated_at or datetime.now(timezone.utc)
    groups: Dict[Severity, List[Dict[str, Any]]] = {s: [] for s in SEVERITY_ORDER}
    for alert in alerts:
        groups[alert_severity(alert)].append(alert)

    lines = [
        "# Security Vulnerability Report",
        "",
        f"**Generated:** {generated_at.isoformat()}",
        f"**Source Branch:** {source_branch}",
        f"**Release Tag:** {tag or 'N/A'}",
        f"**Total Alerts:** {len(alerts)}",
        "",
        "## Summary by Severity",
        "",
        "| Severity | Count |",
        "|----------|-------|",
    ]
    for severity in SEVERITY_ORDER:
        lines.append(f"| {severity.value.capitalize()} | {len(groups[severity])} |")
    lines += ["", "## Detailed Alerts", ""]

    for severity in SEVERITY_ORDER:
        items = groups[severity]
        if not items:
            continue
        lines.append(f"### {severity.value.capitalize()} Severity ({len(items)})")
        lines.append("")
        for alert in items:
            lines.extend(_render_alert(alert))
            lines.append("")

    return "\n".join(lines) + "\n"


def _render_alert(alert: Dict[str, Any]) -> List[str]:
    rule = alert.get("rule") or {}
    location = _location(alert)
    entry = [
        f"- **{rule.get('id') or 'rule'}** - {rule.get('description') or rule.get('name') or ''}",
        f"  - **File:** {location.get('path') or 'N/A'}",
        f"  - **Line:** {location.get('start_line') or 'N/A'}",
        f"  - **State:** {alert.get('state') or 'unknown'}",
    ]
    if alert.get("html_url"):
        entry.append(f"  - **URL:** [View Alert]({alert['html_url']})")
    tags = rule.get("tags")
    if isinstance(tags, list) and tags:
        entry.append(f"  - **Tags:** {', '.join(tags)}")
    return entry
