import logging
import time

logger = logging.getLogger(__name__)

MAX_LOGGED_BODY = 2000


def _truncate(text):
    if len(text) > MAX_LOGGED_BODY:
        return f"{text[:MAX_LOGGED_BODY]}... <{len(text) - MAX_LOGGED_BODY} more chars>"
    return text


class RequestResponseLoggingMiddleware:
    """
    Logs every API call: method, path, body of writes, status, duration and
    the JSON response.

    Admin pages are skipped. Bodies are truncated to MAX_LOGGED_BODY chars.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if request.path.startswith("/admin/"):
            return self.get_response(request)

        request_body = ""
        if request.method in ("POST", "PUT", "PATCH") and request.body:
            request_body = _truncate(request.body.decode("utf-8", errors="replace"))

        logger.info(
            "API request: %s %s idempotency_key=%s body=%s",
            request.method,
            request.get_full_path(),
            request.META.get("HTTP_IDEMPOTENCY_KEY", "-"),
            request_body,
        )

        started = time.monotonic()
        response = self.get_response(request)
        elapsed_ms = (time.monotonic() - started) * 1000

        if response.get("Content-Type", "").startswith("application/json") and hasattr(
            response, "content"
        ):
            response_content = _truncate(response.content.decode("utf-8", errors="replace"))
        else:
            response_content = f"<Content-Type: {response.get('Content-Type', '')}>"

        log = logger.warning if response.status_code >= 400 else logger.info
        log(
            "API response: %s %s status=%d duration_ms=%.1f content=%s",
            request.method,
            request.get_full_path(),
            response.status_code,
            elapsed_ms,
            response_content,
        )

        return response
