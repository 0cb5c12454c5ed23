import asyncio
import datetime
import email.utils
import h11

from sharehome import logger
from sharehome._version import __version__
from sharehome.common.target import UniTarget
from sharehome.common.connection import UniConnection
from sharehome.common.packetizers import Packetizer
from sharehome.server import UniServer
from sharehome.protocol.http.messages import HTTPRequest, HTTPResponse
from sharehome.protocol.http.routing import Router

SERVER_IDENT = " ".join(
    [f"sharehome/{__version__}", h11.PRODUCT_ID]
).encode("ascii")


def format_date_time(dt=None):
    """Generate a RFC 7231 / RFC 9110 IMF-fixdate string"""
    if dt is None:
        dt = datetime.datetime.now(datetime.timezone.utc)
    return email.utils.format_datetime(dt, usegmt=True)


def basic_headers():
    # HTTP requires these headers in all responses
    return [
        ("Date", format_date_time().encode("ascii")),
        ("Server", SERVER_IDENT),
    ]


class HTTPWrapper:
    def __init__(self, client_id, stream:UniConnection, log_callback=None):
        self.log_callback = log_callback
        self.client_id = client_id
        self.stream = stream
        self.conn = h11.Connection(h11.SERVER)

    async def debug(self, *args):
        if self.log_callback is not None:
            msg = [str(x) for x in args]
            await self.log_callback(' '.join(msg))

    async def send(self, event):
        # ConnectionClosed is never sent, closing happens in shutdown_and_clean_up
        assert type(event) is not h11.ConnectionClosed
        data = self.conn.send(event)
        try:
            await self.stream.write(data)
        except BaseException:
            # the peer is gone, h11 must not expect anything more from us
            self.conn.send_failed()
            raise

    async def _read_from_peer(self):
        if self.conn.they_are_waiting_for_100_continue:
            await self.debug("Sending 100 Continue")
            go_ahead = h11.InformationalResponse(
                status_code=100, headers=basic_headers()
            )
            await self.send(go_ahead)
        try:
            data = await self.stream.read_one()
            await self.debug('[%s] Read %s bytes' % (self.client_id, len(data)))
        except Exception as exc:
            await self.debug('Error reading from peer:', exc)
            # They've stopped listening. Not much we can do about it here.
            data = b""
        self.conn.receive_data(data)

    async def next_event(self):
        while True:
            event = self.conn.next_event()
            if event is h11.NEED_DATA:
                await self._read_from_peer()
                continue
            await self.debug('[%s] Event: %s' % (self.client_id, type(event).__name__))
            return event

    async def send_response(self, response:HTTPResponse, with_body:bool = True):
        headers = basic_headers()
        headers.extend(response.headers)
        headers.append(("Content-Length", str(response.content_length).encode("ascii")))
        await self.send(h11.Response(status_code=response.status_code, headers=headers))
        if with_body is True:
            async for chunk in response.iter_body():
                await self.send(h11.Data(data=chunk))
        await self.send(h11.EndOfMessage())

    async def shutdown_and_clean_up(self):
        try:
            await self.stream.close()
        except Exception as exc:
            await self.debug('Error closing connection:', exc)


class HTTPServerHandler:
    def __init__(self, router:Router, log_callback=None):
        self.router = router
        self.log_callback = log_callback
        self._wrapper:HTTPWrapper = None

    async def print(self, msg=''):
        if self.log_callback is None:
            return
        await self.log_callback(msg)

    async def _process_request(self, wrapper:HTTPWrapper, request:h11.Request):
        self._wrapper = wrapper
        req = HTTPRequest.from_h11_request(request, self.__data_iter)
        req.peer = wrapper.stream.get_peer_str()
        response = await self.router.dispatch(req)
        await self.print('[%s] %s -> %s' % (req.peer, req, response.status_code))
        logger.info('%s "%s" %s %s' % (req.peer, req, response.status_code, response.content_length))
        await wrapper.send_response(response, with_body=req.method != 'HEAD')

    async def __data_iter(self):
        while True:
            event = await self._wrapper.next_event()
            yield event
            if type(event) in (h11.EndOfMessage, h11.ConnectionClosed):
                break


class HTTPServer:
    def __init__(self, client_handler, target:UniTarget, log_callback=None):
        self.log_callback = log_callback
        self.target = target
        self.client_handler = client_handler

        self.clients = set()
        self.id_counter = 0
        self.server = UniServer(self.target, Packetizer())

    async def debug(self, *args):
        if self.log_callback is not None:
            msg = [str(x) for x in args]
            await self.log_callback(' '.join(msg))

    @property
    def started_evt(self) -> asyncio.Event:
        return self.server.bind_evt

    @property
    def sockname(self):
        return self.server.sockname

    async def terminate(self):
        for client in list(self.clients):
            client.cancel()
        self.clients.clear()

    async def __send_bad_request(self, wrapper:HTTPWrapper, exc:Exception):
        if wrapper.conn.our_state not in (h11.IDLE, h11.SEND_RESPONSE):
            return
        try:
            await wrapper.send_response(HTTPResponse.text(400, 'Bad Request: %s' % exc))
        except Exception as e:
            await self.debug('Could not send 400 response: %s' % e)

    async def __handle_connection(self, connection:UniConnection):
        client_id = self.id_counter
        self.id_counter += 1
        wrapper = HTTPWrapper(client_id, connection, log_callback=self.log_callback)
        handler = self.client_handler()
        await self.debug('Server: New client connected with id %s from %s' % (client_id, connection.get_peer_str()))
        try:
            while True:
                if wrapper.conn.states[h11.CLIENT] in (h11.CLOSED, h11.MUST_CLOSE):
                    break

                if wrapper.conn.states[h11.SERVER] in (h11.CLOSED, h11.MUST_CLOSE):
                    break

                if wrapper.conn.states == {h11.CLIENT: h11.DONE, h11.SERVER: h11.DONE}:
                    wrapper.conn.start_next_cycle()
                    continue

                if not (wrapper.conn.states == {h11.CLIENT: h11.IDLE, h11.SERVER: h11.IDLE}):
                    # the handler answered without reading the whole request body
                    if not (wrapper.conn.states == {h11.CLIENT: h11.SEND_BODY, h11.SERVER: h11.DONE}):
                        await self.debug('[%s] Server: Connection state not idle %s' % (client_id, wrapper.conn.states))
                        break

                try:
                    event = await wrapper.next_event()
                except h11.RemoteProtocolError as exc:
                    await self.debug('[%s] Protocol error: %s' % (client_id, exc))
                    await self.__send_bad_request(wrapper, exc)
                    break

                if type(event) is h11.Request:
                    await handler._process_request(wrapper, event)
                    continue
                if type(event) is h11.ConnectionClosed:
                    break
                # leftover request body events
                if type(event) in (h11.Data, h11.EndOfMessage):
                    continue
                await self.debug('[%s] Server: unknown event type %s' % (client_id, type(event)))

        except Exception:
            logger.exception('[%s] Error during response handler' % client_id)
        finally:
            await wrapper.shutdown_and_clean_up()
            await self.debug('[%s] Connection closed' % client_id)

    async def serve(self):
        try:
            async for connection in self.server.serve():
                client = asyncio.create_task(self.__handle_connection(connection))
                self.clients.add(client)
                client.add_done_callback(self.clients.discard)
        except Exception:
            logger.exception('HTTP server failed')
            raise
        finally:
            await self.terminate()
