from typing import Awaitable, Callable, Dict, List

from sharehome import logger
from sharehome.errors import ShareError, InternalError, NotFound
from sharehome.protocol.http.messages import HTTPRequest, HTTPResponse
from sharehome.protocol.http.outcome import Outcome, Failed


class Route:
    def __init__(self, method:str, handler:Callable[[HTTPRequest], Awaitable[Outcome]], rank:int = 0, name:str = None):
        self.method = method.upper()
        self.handler = handler
        self.rank = rank
        self.name = name if name is not None else getattr(handler, '__qualname__', repr(handler))

    async def run(self, request:HTTPRequest) -> Outcome:
        try:
            return await self.handler(request)
        except ShareError as e:
            return Failed(e)

    def __repr__(self):
        return 'Route(%s, %s, rank=%s)' % (self.method, self.name, self.rank)


class Router:
    """
    Holds ranked routes per method. Routes of the same method are tried in
    ascending rank order until one of them does not decline.
    HEAD requests are answered by the GET routes.
    """
    def __init__(self):
        self.routes:Dict[str, List[Route]] = {}

    def add(self, method:str, handler, rank:int = 0, name:str = None):
        route = Route(method, handler, rank, name)
        routes = self.routes.setdefault(route.method, [])
        routes.append(route)
        routes.sort(key=lambda r: r.rank)
        return route

    def get_routes(self, method:str) -> List[Route]:
        method = method.upper()
        if method == 'HEAD' and method not in self.routes:
            method = 'GET'
        return self.routes.get(method, [])

    async def dispatch(self, request:HTTPRequest) -> HTTPResponse:
        for route in self.get_routes(request.method):
            try:
                outcome = await route.run(request)
            except Exception:
                logger.exception('Route %s failed on %s' % (route.name, request))
                outcome = Failed(InternalError('Internal Server Error'))

            if outcome.declined is True:
                logger.debug('%s declined %s' % (route.name, request))
                continue
            if outcome.failed is True:
                logger.debug('%s failed %s with %r' % (route.name, request, outcome))
                return outcome.to_response()
            return outcome.response

        return Failed(NotFound()).to_response()
