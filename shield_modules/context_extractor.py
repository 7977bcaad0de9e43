"""
Request context extractor
"""

import json

from models import RequestDescriptor


class ContextExtractor:
    """Build the strings rules are evaluated against"""

    def build_test_data(self, descriptor: RequestDescriptor) -> str:
        """Space-joined url, body, query parameters and auth context"""
        query = json.dumps(descriptor.query_params or {}, separators=(",", ":"), ensure_ascii=False)
        auth = descriptor.auth_context.to_json() if descriptor.auth_context else ""
        return f"{descriptor.url} {descriptor.body or ''} {query} {auth}"

    def build_user_agent(self, user_agent: str) -> str:
        return user_agent.lower()
