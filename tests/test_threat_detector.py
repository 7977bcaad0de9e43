"""Tests for rule matching and threat construction."""

from models import AuthContext, RequestDescriptor
from shield_modules.context_extractor import ContextExtractor
from shield_modules.rule import SecurityRule
from shield_modules.threat_detector import ThreatDetector


class TestSecurityRule:
    def test_compile_is_case_insensitive(self) -> None:
        rule = SecurityRule(name="SQLi", pattern="union select", severity="critical")
        assert rule.compile()
        assert rule.match("1 UNION SELECT * FROM users")

    def test_invalid_pattern_does_not_compile(self) -> None:
        rule = SecurityRule(name="Broken", pattern="([", severity="high")
        assert not rule.compile()
        assert not rule.match("anything")


class TestContextExtractor:
    def test_signature_joins_request_parts(self) -> None:
        descriptor = RequestDescriptor(
            url="/search",
            method="GET",
            body="q=1",
            queryParams={"page": "2"},
            authContext=AuthContext(event="login", status="failure"),
        )
        data = ContextExtractor().build_test_data(descriptor)
        assert data == '/search q=1 {"page":"2"} {"event":"login","status":"failure"}'

    def test_signature_with_missing_parts(self) -> None:
        descriptor = RequestDescriptor(url="/", method="GET")
        assert ContextExtractor().build_test_data(descriptor) == "/  {} "


class TestEvaluateRules:
    def test_matches_in_rule_order(self) -> None:
        rules = [
            SecurityRule(name="Low first", pattern="select", severity="low"),
            SecurityRule(name="Critical second", pattern="union", severity="critical"),
        ]
        threats = ThreatDetector().evaluate_rules(rules, "union select", "")
        assert [t.type for t in threats] == ["Low first", "Critical second"]
        assert threats[0].reason == "Matched pattern: select"

    def test_matches_user_agent_independently(self) -> None:
        rules = [SecurityRule(name="SQLMap Scanner", pattern="^sqlmap", severity="high")]
        threats = ThreatDetector().evaluate_rules(rules, "/ index", "sqlmap/1.7")
        assert len(threats) == 1

    def test_invalid_pattern_is_skipped(self) -> None:
        rules = [
            SecurityRule(name="Broken", pattern="([", severity="critical"),
            SecurityRule(name="XSS", pattern="<script", severity="high"),
        ]
        threats = ThreatDetector().evaluate_rules(rules, "<script>alert(1)</script>", "")
        assert [t.type for t in threats] == ["XSS"]

    def test_unknown_rule_type_is_ignored(self) -> None:
        rules = [SecurityRule(name="Geo", pattern=".*", severity="high", rule_type="geo_block")]
        assert ThreatDetector().evaluate_rules(rules, "anything", "") == []


class TestBehavioralThreats:
    def test_failed_login_below_threshold_is_medium(self) -> None:
        threat = ThreatDetector().failed_login_threat(4, threshold=5, window="15 minutes")
        assert threat.severity == "medium"
        assert threat.reason == "4 failed login attempts within 15 minutes"

    def test_failed_login_at_threshold_is_high(self) -> None:
        threat = ThreatDetector().failed_login_threat(5, threshold=5, window="15 minutes")
        assert threat.type == "Failed Login Attempt"
        assert threat.severity == "high"

    def test_rate_limit_threat(self) -> None:
        threat = ThreatDetector().rate_limit_threat(51)
        assert threat.type == "Rate Limit Violation"
        assert threat.severity == "high"
        assert threat.reason == "51 requests in last minute"
