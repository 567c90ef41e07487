from __future__ import annotations

import logging
import time

from fastapi.routing import APIRoute
from starlette.requests import Request

from libdesk.request_context import endpoint_scope


logger = logging.getLogger('libdesk.request')


class EndpointNameRoute(APIRoute):
    """Labels each request with ``METHOD /path/template`` for slow-query and error logs."""

    def get_route_handler(self):
        handler = super().get_route_handler()
        route_path = self.path

        async def labelled_handler(request: Request):
            with endpoint_scope(f'{request.method} {route_path}') as label:
                started = time.perf_counter()
                response = await handler(request)
                logger.debug('endpoint_done endpoint=%s duration_ms=%.2f', label, (time.perf_counter() - started) * 1000.0)
                return response

        return labelled_handler
