"""Tests for report rendering."""

import json

from peer_dependency_checker.models import (
    ClassifiedEntry,
    OutdatedEntry,
    PackageSpec,
    PeerAnalysis,
    PeerCheckResult,
    RiskBucket,
    ScanReport,
    UnsatisfiedPeer,
    VersionDelta,
)
from peer_dependency_checker.report import (
    recommendations,
    render,
    render_analysis,
    render_no_manifest,
    render_peer_checks,
    render_peer_status,
    render_quick_scan,
    render_scan,
)


def classified(name, bucket, current="1.0.0", latest="1.1.0"):
    delta = VersionDelta.MAJOR if bucket is RiskBucket.BREAKING else VersionDelta.MINOR_OR_PATCH
    return ClassifiedEntry(
        entry=OutdatedEntry(name, current, latest, latest, "dependencies"),
        bucket=bucket,
        delta=delta,
        reason="test",
    )


SAMPLE = [
    classified("lodash", RiskBucket.COMPATIBLE),
    classified("react-dom", RiskBucket.CONFLICT, "18.3.1", "19.0.0"),
    classified("eslint", RiskBucket.BREAKING, "8.57.0", "9.15.0"),
]


def test_json_report_always_has_every_bucket():
    document = json.loads(render([], "json"))

    assert document["compatible"] == []
    assert document["conflict"] == []
    assert document["breaking"] == []
    assert document["summary"] == {"compatible": 0, "conflict": 0, "breaking": 0, "total": 0}
    assert document["recommendations"] == ["All dependencies are up to date."]


def test_json_report_groups_entries():
    document = json.loads(render(SAMPLE, "json", risk_tolerance="high"))

    assert [item["name"] for item in document["compatible"]] == ["lodash"]
    assert [item["name"] for item in document["conflict"]] == ["react-dom"]
    assert [item["name"] for item in document["breaking"]] == ["eslint"]
    assert document["summary"]["total"] == 3


def test_recommendations_follow_bucket_sizes():
    safe_only = recommendations({RiskBucket.COMPATIBLE: 2, RiskBucket.CONFLICT: 0, RiskBucket.BREAKING: 0}, "pnpm")
    mixed = recommendations({RiskBucket.COMPATIBLE: 1, RiskBucket.CONFLICT: 1, RiskBucket.BREAKING: 1})

    assert safe_only == ["All 2 update(s) look safe to apply. Run: pnpm update"]
    assert len(mixed) == 3
    assert mixed[0].startswith("Phase 1:")
    assert "git checkout -b" in mixed[2]


def test_minimal_output_has_no_icons_or_escape_codes():
    text = render(SAMPLE, "minimal", risk_tolerance="low")

    assert "\x1b[" not in text
    assert "🟢" not in text
    assert "COMPATIBLE (1)" in text
    assert "react-dom 18.3.1 → 19.0.0" in text


def test_colored_output_has_icons():
    text = render(SAMPLE, "colored")

    assert "🔴" in text
    assert "BREAKING" in text


def test_risk_tolerance_controls_compatible_visibility():
    low = render(SAMPLE, "minimal", risk_tolerance="low")
    medium = render(SAMPLE, "minimal", risk_tolerance="medium")
    high = render(SAMPLE, "minimal", risk_tolerance="high")

    assert "lodash 1.0.0 → 1.1.0" in low
    assert "lodash" not in medium
    assert "1 safe minor/patch update(s) available" in medium
    assert "COMPATIBLE" not in high
    for text in (low, medium, high):
        assert "react-dom" in text
        assert "eslint" in text


def test_no_peer_dependencies_differs_from_fetch_error():
    results = [
        PeerCheckResult(PackageSpec("lodash"), {}),
        PeerCheckResult(PackageSpec("no-such-pkg", "1"), None),
    ]

    text = render_peer_checks(results, "minimal")

    assert "Testing 2 package(s)..." in text
    assert "No peer dependencies required" in text
    assert "Error: Could not fetch info for no-such-pkg@1" in text


def test_peer_checks_against_project_flag_conflicts():
    result = PeerCheckResult(
        PackageSpec("react-dom", "19"),
        {"react": "^19.0.0"},
        (UnsatisfiedPeer("react", "^19.0.0", "^18.3.1"),),
    )

    text = render_peer_checks([result], "minimal", against_project=True)

    assert "react: ^19.0.0 (declared ^18.3.1, not satisfied)" in text
    assert "Conflicts with your declared dependencies detected" in text


def test_peer_checks_json():
    document = json.loads(render_peer_checks([PeerCheckResult(PackageSpec("lodash"), {})], "json"))

    assert document == {"packages": [{
        "name": "lodash",
        "requestedVersion": "latest",
        "status": "none",
        "peerDependencies": {},
        "unsatisfiedPeers": [],
    }]}


def test_scan_report_sections():
    report = ScanReport("npm", SAMPLE, outdated_available=True, peer_issues=None, simulation=None, simulated=True)

    text = render_scan(report, "minimal")

    assert "OUTDATED PACKAGES" in text
    assert "No data available (could not run npm ls)" in text
    assert "Upgrade simulation is not available for npm" in text
    assert "RECOMMENDATIONS" in text


def test_scan_report_json_includes_context():
    report = ScanReport("yarn", [], outdated_available=False, peer_issues=[])

    document = json.loads(render_scan(report, "json"))

    assert document["packageManager"] == "yarn"
    assert document["outdatedAvailable"] is False
    assert document["peerIssues"] == []
    assert document["breaking"] == []
    assert document["compatible"] == []
    assert document["conflict"] == []
    assert document["recommendations"] != ["All dependencies are up to date."]
    assert "No outdated data available" in document["recommendations"][0]


def test_scan_without_outdated_data_never_reports_up_to_date():
    report = ScanReport("npm", [], outdated_available=False, peer_issues=None)

    for fmt in ("colored", "minimal"):
        text = render_scan(report, fmt)
        assert "All dependencies are up to date" not in text
        assert "No outdated data available" in text
        assert "re-run the scan" in text


def test_scan_report_audit_and_tree_sections():
    audit = {"critical": 0, "high": 2, "moderate": 1, "low": 0, "info": 0}
    report = ScanReport("pnpm", SAMPLE, outdated_available=True, peer_issues=[], audit=audit, dependency_tree_size=42)

    text = render_scan(report, "minimal")
    document = json.loads(render_scan(report, "json"))

    assert "SECURITY AUDIT" in text
    assert "3 vulnerabilities (2 high, 1 moderate)" in text
    assert "Run pnpm audit for details" in text
    assert "42 package(s) within two levels of the project" in text
    assert document["audit"] == audit
    assert document["dependencyTreeSize"] == 42


def test_scan_report_without_audit_data():
    clean = {"critical": 0, "high": 0, "moderate": 0, "low": 0, "info": 0}

    missing = render_scan(ScanReport("bun", [], outdated_available=True), "minimal")
    safe = render_scan(ScanReport("npm", [], outdated_available=True, audit=clean), "minimal")

    assert "No audit data available for bun" in missing
    assert "No data available (could not list the bun dependency tree)" in missing
    assert "No known vulnerabilities" in safe
    assert "All dependencies are up to date" in safe


def test_quick_scan_summary_line():
    report = ScanReport("npm", SAMPLE, outdated_available=True)

    text = render_quick_scan(report, "minimal")

    assert "Quick scan: 3 outdated (1 breaking, 1 conflict)" in text
    assert 'Run "pdc scan" for the full report' in text


def test_peer_status_verdicts():
    assert "No peer dependency conflicts found" in render_peer_status("npm", [], "minimal")
    assert "Peer dependency issues detected" in render_peer_status("npm", ["npm ERR! missing"], "minimal")
    assert "No peer dependency data available" in render_peer_status("npm", None, "minimal")
    assert json.loads(render_peer_status("npm", [], "json"))["ok"] is True


def test_analysis_without_data_does_not_claim_success():
    text = render_analysis(PeerAnalysis("pnpm", None), "minimal")

    assert "Could not determine the current peer dependency status" in text
    assert "look good" not in text


def test_no_manifest_notice():
    assert "No package.json found" in render_no_manifest("/tmp/x", "minimal")
    assert json.loads(render_no_manifest("/tmp/x", "json"))["available"] is False


def test_check_lodash_5_without_peers():
    text = render_peer_checks([PeerCheckResult(PackageSpec.parse("lodash@5"), {})], "colored")

    assert "lodash@5" in text
    assert "No peer dependencies required" in text
    assert "Could not fetch info" not in text
