from __future__ import annotations

from contextvars import ContextVar

from fastapi.routing import APIRoute
from starlette.requests import Request


# Label of the route being served, read by the slow query logger.
current_endpoint: ContextVar[str] = ContextVar('current_endpoint', default='background')


class EndpointLabelRoute(APIRoute):
    def get_route_handler(self):
        handler = super().get_route_handler()
        label = f"{','.join(sorted(self.methods or []))} {self.path}"

        async def labelled_handler(request: Request):
            token = current_endpoint.set(label)
            try:
                return await handler(request)
            finally:
                current_endpoint.reset(token)

        return labelled_handler
