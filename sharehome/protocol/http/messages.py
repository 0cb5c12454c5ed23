import re
import h11
from typing import AsyncIterator, Callable, Dict, List, Tuple, Optional


# name=value pairs, quoted values may contain ';' and backslash escapes
HEADER_PARAM_RE = re.compile(r';\s*([^=;\s]+)\s*=\s*("(?:[^"\\]|\\.)*"|[^;]*)')


def parse_content_type(value:str) -> Tuple[str, Dict[str, str]]:
    """
    Splits a Content-Type (or Content-Disposition) header value into the lowercased
    media type and its parameters.
    Parameter names are lowercased, quoted values are unquoted.
    """
    if value is None:
        return '', {}
    pos = value.find(';')
    if pos == -1:
        return value.strip().lower(), {}
    media_type = value[:pos].strip().lower()
    params = {}
    for m in HEADER_PARAM_RE.finditer(value, pos):
        key = m.group(1).lower()
        val = m.group(2).strip()
        if len(val) >= 2 and val[0] == '"' and val[-1] == '"':
            val = val[1:-1].replace('\\"', '"').replace('\\\\', '\\')
        params[key] = val
    return media_type, params


class HTTPRequest:
    def __init__(self, method:str, target:bytes, headers:List[Tuple[bytes, bytes]], data_iter:Callable = None):
        self.method = method
        self.target = target
        self.headers = headers
        self.data_iter = data_iter
        self.peer = None
        self.__all_data_consumed = data_iter is None

    @staticmethod
    def from_h11_request(request:h11.Request, data_iter:Callable = None):
        return HTTPRequest(
            request.method.decode('ascii').upper(),
            request.target,
            list(request.headers),
            data_iter
        )

    def get_header(self, name:str, default:str = None) -> Optional[str]:
        name_b = name.lower().encode('ascii')
        for hname, hvalue in self.headers:
            if hname.lower() == name_b:
                return hvalue.decode('latin-1')
        return default

    @property
    def content_type(self) -> Optional[str]:
        return self.get_header('content-type')

    async def stream_data(self) -> AsyncIterator[bytes]:
        if self.__all_data_consumed is True:
            return
        try:
            async for event in self.data_iter():
                if type(event) is h11.Data:
                    yield event.data
                elif type(event) is h11.EndOfMessage:
                    self.__all_data_consumed = True
                    break
                else:
                    raise ConnectionError('Connection closed while reading request body')
        except h11.RemoteProtocolError as e:
            # truncated body
            raise ConnectionError(str(e))

    def __str__(self):
        return '%s %s' % (self.method, self.target.decode('latin-1'))


class HTTPResponse:
    def __init__(self, status_code:int, body:bytes = b'', content_type:str = None, headers:List[Tuple[str, bytes]] = None):
        self.status_code = status_code
        self.body = body
        self.headers = headers if headers is not None else []
        # async generator factory, used instead of body when set
        self.stream = None
        self.content_length = len(body)
        if content_type is not None:
            self.headers.append(('Content-Type', content_type.encode('ascii')))

    @staticmethod
    def text(status_code:int, message:str):
        return HTTPResponse(status_code, message.encode('utf-8'), 'text/plain; charset=utf-8')

    @staticmethod
    def html(html_content:str, status_code:int = 200):
        return HTTPResponse(status_code, html_content.encode('utf-8'), 'text/html; charset=utf-8')

    @staticmethod
    def streamed(status_code:int, stream:Callable, content_length:int, content_type:str):
        resp = HTTPResponse(status_code, b'', content_type)
        resp.stream = stream
        resp.content_length = content_length
        return resp

    async def iter_body(self) -> AsyncIterator[bytes]:
        if self.stream is not None:
            async for chunk in self.stream():
                yield chunk
        elif self.body:
            yield self.body

    def __str__(self):
        return 'HTTPResponse(%s, %s bytes)' % (self.status_code, self.content_length)
