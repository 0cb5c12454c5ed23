import asyncio
import h11

from sharehome.protocol.http.messages import HTTPRequest, HTTPResponse

BOUNDARY = '----sharehomeboundary7MA4YWxk'


def make_multipart(parts, boundary = BOUNDARY, preamble = b'', epilogue = b'', close = True) -> bytes:
    """parts is a list of (header lines, data) tuples"""
    delimiter = b'--' + boundary.encode()
    body = preamble
    for headers, data in parts:
        body += delimiter + b'\r\n'
        for header in headers:
            body += header.encode() + b'\r\n'
        body += b'\r\n' + data + b'\r\n'
    if close is True:
        body += delimiter + b'--\r\n' + epilogue
    return body


def file_part(filename, data, name = 'file', content_type = 'application/octet-stream'):
    headers = ['Content-Disposition: form-data; name="%s"; filename="%s"' % (name, filename)]
    if content_type is not None:
        headers.append('Content-Type: %s' % content_type)
    return headers, data


def multipart_content_type(boundary = BOUNDARY):
    return 'multipart/form-data; boundary=%s' % boundary


async def chunked(data:bytes, chunk_size:int = 65535):
    for i in range(0, len(data), chunk_size):
        yield data[i:i+chunk_size]


def make_request(method, target, headers = None, body = b'', chunk_size = 65535):
    async def data_iter():
        for i in range(0, len(body), chunk_size):
            yield h11.Data(data=body[i:i+chunk_size])
        yield h11.EndOfMessage()

    if isinstance(target, str):
        target = target.encode()
    raw_headers = []
    for name, value in (headers or []):
        raw_headers.append((name.lower().encode(), value.encode()))
    return HTTPRequest(method, target, raw_headers, data_iter)


async def read_response(response:HTTPResponse) -> bytes:
    data = b''
    async for chunk in response.iter_body():
        data += chunk
    return data


async def http_request(port, method, target, headers = None, body = b'', ssl_ctx = None):
    """Sends one request over a fresh connection, returns (h11.Response, body)"""
    reader, writer = await asyncio.open_connection('127.0.0.1', port, ssl = ssl_ctx)
    try:
        conn = h11.Connection(h11.CLIENT)
        req_headers = [('Host', '127.0.0.1:%s' % port), ('Connection', 'close')]
        req_headers.extend(headers or [])
        if method in ('POST', 'PUT'):
            req_headers.append(('Content-Length', str(len(body))))
        data = conn.send(h11.Request(method=method, target=target, headers=req_headers))
        if body:
            data += conn.send(h11.Data(data=body))
        data += conn.send(h11.EndOfMessage())
        writer.write(data)
        await writer.drain()

        response = None
        response_body = b''
        while True:
            event = conn.next_event()
            if event is h11.NEED_DATA:
                conn.receive_data(await reader.read(65535))
                continue
            if type(event) is h11.Response:
                response = event
            elif type(event) is h11.Data:
                response_body += event.data
            elif type(event) in (h11.EndOfMessage, h11.ConnectionClosed):
                break
        return response, response_body
    finally:
        writer.close()


def get_header(response:h11.Response, name:str):
    name_b = name.lower().encode()
    for hname, hvalue in response.headers:
        if hname == name_b:
            return hvalue.decode()
    return None
