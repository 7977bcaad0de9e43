"""
Response Builder module - Build monitor responses
"""

from sanic import response

from models import ThreatResult


CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-Client-Info, Apikey",
}

INTERNAL_ERROR = {"error": "Internal server error"}


class ResponseBuilder:
    """Build JSON responses carrying CORS headers"""

    def send_result(self, result: ThreatResult, status: int):
        """Send a verdict"""
        return response.json(result.to_response(), status=status, headers=dict(CORS_HEADERS))

    def send_options(self):
        """Empty preflight response"""
        return response.text("", status=200, headers=dict(CORS_HEADERS))

    def send_error(self, status: int = 500, error: str = None):
        body = {"error": error} if error else INTERNAL_ERROR
        return response.json(body, status=status, headers=dict(CORS_HEADERS))

    def send_json(self, data, status: int = 200):
        """Send JSON response"""
        return response.json(data, status=status, headers=dict(CORS_HEADERS))
