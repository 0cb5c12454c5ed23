import asyncio

from sharehome import logger
from sharehome.common.target import UniTarget
from sharehome.protocol.http.routing import Router
from sharehome.protocol.http.httpserver import HTTPServer, HTTPServerHandler
from sharehome.share.resolver import PathResolver
from sharehome.share.multipart import UploadLimits
from sharehome.share.handlers import ListingHandler, StaticFileHandler, UploadHandler


def build_router(resolver:PathResolver, limits:UploadLimits = None, print_cb = None) -> Router:
    """
    GET: directory listing first, static files as the fallback.
    POST: multipart upload.
    """
    router = Router()
    router.add('GET', ListingHandler(resolver).handle, rank = 1, name = 'listing')
    router.add('GET', StaticFileHandler(resolver).handle, rank = 10, name = 'static')
    router.add('POST', UploadHandler(resolver, limits, print_cb = print_cb).handle, rank = 0, name = 'upload')
    return router


def build_server(target:UniTarget, root:str, limits:UploadLimits = None, log_callback = None) -> HTTPServer:
    resolver = PathResolver(root)
    router = build_router(resolver, limits, print_cb = log_callback)
    handler_factory = lambda: HTTPServerHandler(router, log_callback = log_callback)
    return HTTPServer(handler_factory, target, log_callback = log_callback)


async def run_share_server_from_target(target:UniTarget, root:str, limits:UploadLimits = None, log_callback = None):
    """
    Starts serving root on target.
    Returns (server_task, err), the task is already listening when it is returned.
    """
    try:
        server = build_server(target, root, limits, log_callback)
        server_task = asyncio.create_task(server.serve())
        started = asyncio.create_task(server.started_evt.wait())
        await asyncio.wait([server_task, started], return_when = asyncio.FIRST_COMPLETED)
        if not started.done():
            started.cancel()
            # serve() ended before binding, this re-raises its error
            server_task.result()
            raise Exception('Server stopped before listening')
        logger.info('Serving %s on %s' % (root, server.sockname))
        return server_task, None
    except Exception as e:
        return None, e
