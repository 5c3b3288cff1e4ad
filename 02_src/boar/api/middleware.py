"""Starlette/FastAPI middleware recording one Record per request."""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from ..agent import IAgent
from ..headers import canonical_header_key
from ..logging_config import get_logger
from ..models import Span

logger = get_logger(__name__)

REQUEST_ID_HEADER = "x-request-id"
HOP_COUNT_HEADER = "x-hop-count"
SPAN_STATE_KEY = "boar_span"


def raw_uri(request: Request) -> str:
    """Request target as sent by the client: undecoded path plus query string."""
    raw_path = request.scope.get("raw_path")
    path = raw_path.decode("latin-1") if raw_path else request.url.path
    query = request.scope.get("query_string", b"")
    if query:
        return f"{path}?{query.decode('latin-1')}"
    return path


def get_span(request: Request) -> Span | None:
    """Root span of the current request, if the middleware is installed."""
    return getattr(request.state, SPAN_STATE_KEY, None)


class BoarMiddleware(BaseHTTPMiddleware):
    """
    Opens a Record when a request arrives and stops it after the response.

    Handlers reach the root span through ``get_span(request)`` and add child
    spans with ``span.instrument(...)``.
    """

    def __init__(self, app: ASGIApp, agent: IAgent):
        super().__init__(app)
        self._agent = agent

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        params: dict[str, list[str]] = {}
        for key, value in request.query_params.multi_items():
            params.setdefault(key, []).append(value)

        try:
            record = self._agent.start_record(
                hostname=request.url.hostname or "",
                uri=raw_uri(request),
                endpoint=request.url.path,
                method=request.method,
                params=params,
            )
        except RuntimeError as e:
            logger.debug(f"Request not recorded: {e}")
            return await call_next(request)

        root = Span.create(None, request.method, request.url.path)
        setattr(request.state, SPAN_STATE_KEY, root)

        request_id = request.headers.get(REQUEST_ID_HEADER, "")
        hop_count = request.headers.get(HOP_COUNT_HEADER, "0")

        try:
            response = await call_next(request)
        except Exception:
            record.endpoint = self._route_template(request)
            record.stop(root, request_id, hop_count, 500, {})
            raise

        headers: dict[str, list[str]] = {}
        for key, value in response.headers.items():
            headers.setdefault(canonical_header_key(key), []).append(value)

        record.endpoint = self._route_template(request)
        record.stop(root, request_id, hop_count, response.status_code, headers)
        return response

    @staticmethod
    def _route_template(request: Request) -> str:
        route = request.scope.get("route")
        return getattr(route, "path", None) or request.url.path
