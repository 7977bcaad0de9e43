"""
Rule loading: default rule set and JSON rule files
"""

import json
import logging
from typing import List

from exceptions import ConfigError
from .rule import PATTERN_MATCH, SecurityRule, Severity
from .threat_store import ThreatStore


logger = logging.getLogger(__name__)

SEVERITIES = {s.value for s in Severity}


class RuleLoader:
    """Load security rules into the rule store"""

    def load_default_rules(self) -> List[SecurityRule]:
        """Load default security rules"""
        return [
            SecurityRule("XSS Attack", r"<script", "high"),
            SecurityRule("SQL Injection - UNION", r"union.*select", "critical"),
            SecurityRule("SQL Injection - OR", r"'\s*or\s*'[^']*'\s*=\s*'", "critical"),
            SecurityRule("SQL Injection - DROP", r";\s*drop\s+table", "critical"),
            SecurityRule("Path Traversal", r"\.\./|\.\.\\", "high"),
            SecurityRule("System File Access", r"/etc/passwd|/etc/shadow", "critical"),
            SecurityRule("SQLMap Scanner", r"sqlmap", "high"),
            SecurityRule("Nikto Scanner", r"nikto", "high"),
            SecurityRule("Nessus Scanner", r"nessus", "medium"),
            SecurityRule("Command Injection", r";\s*(cat|ls|pwd|wget|curl)\s", "critical"),
            SecurityRule("Suspicious Admin Path Scan", r"/wp-admin|/phpmyadmin|/\.env", "medium"),
        ]

    def load_rules_file(self, filename: str) -> List[SecurityRule]:
        """Load rules from a JSON file, skipping entries that do not compile"""
        try:
            with open(filename, "r") as f:
                rules_data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigError(f"Cannot read rules file {filename}: {exc}") from exc

        if not isinstance(rules_data, list):
            raise ConfigError(f"Rules file {filename} must contain a JSON list")

        rules = []
        for index, rule_data in enumerate(rules_data):
            try:
                rule = SecurityRule(
                    name=rule_data["name"],
                    pattern=rule_data["pattern"],
                    severity=rule_data["severity"],
                    rule_type=rule_data.get("rule_type", PATTERN_MATCH),
                    enabled=bool(rule_data.get("enabled", True)),
                )
            except (KeyError, TypeError, AttributeError):
                logger.warning(f"Skipping malformed rule #{index} in {filename}")
                continue

            if rule.severity not in SEVERITIES:
                logger.warning(f"Skipping rule {rule.name!r}: unknown severity {rule.severity!r}")
                continue
            if not rule.compile():
                logger.warning(f"Skipping rule {rule.name!r}: invalid pattern {rule.pattern!r}")
                continue

            rules.append(rule)

        return rules

    async def populate(self, store: ThreatStore, seed_defaults: bool = True,
                       rules_file: str = None) -> int:
        """Seed an empty store with defaults and import a rules file"""
        added = 0
        existing = await store.list_rules()
        known = {rule.name for rule in existing}

        if seed_defaults and not existing:
            for rule in self.load_default_rules():
                await store.add_rule(rule)
                known.add(rule.name)
                added += 1

        if rules_file:
            # Imported by name so restarts and seeded defaults are not duplicated
            for rule in self.load_rules_file(rules_file):
                if rule.name in known:
                    continue
                await store.add_rule(rule)
                known.add(rule.name)
                added += 1

        if added:
            logger.info(f"Loaded {added} security rules")
        return added
