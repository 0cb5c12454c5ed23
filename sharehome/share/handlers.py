import os
import mimetypes
from typing import AsyncIterator

from sharehome import logger
from sharehome.errors import BadRequest, InternalError
from sharehome.protocol.http.messages import HTTPRequest, HTTPResponse, parse_content_type
from sharehome.protocol.http.outcome import Outcome, Handled, Declined, Failed
from sharehome.share.resolver import PathResolver, RequestPath
from sharehome.share.lister import DirectoryLister
from sharehome.share.template import PageTemplate
from sharehome.share.multipart import MultipartError, MultipartReader, MultipartSaver, UploadLimits, PartialReason


MSG_NO_BOUNDARY = 'Content-Type: form-data without boundary'
MSG_NO_ENTRY = 'Request body doesn\'t include any entry'
MSG_NO_FILENAME = 'Request body doesn\'t include filename'
MSG_SAVED = 'File saved'
MSG_COUNT_LIMIT = 'The count limit for files in the request was hit.'
MSG_SIZE_LIMIT = 'The size limit for an individual file was hit.'
MSG_UTF8_ERROR = 'UTF-8 conversion error'
MSG_OUTSIDE_ROOT = 'Upload path is outside the shared directory'


class ListingHandler:
    """GET handler for directories. Everything that is not a directory is declined."""
    def __init__(self, resolver:PathResolver, lister:DirectoryLister = None, template:PageTemplate = None):
        self.resolver = resolver
        self.lister = lister if lister is not None else DirectoryLister(resolver)
        self.template = template if template is not None else PageTemplate(resolver)

    async def handle(self, request:HTTPRequest) -> Outcome:
        request_path = RequestPath.from_target(request.target)
        target = self.resolver.resolve(request_path)
        if not self.resolver.contains(target) or not os.path.isdir(target):
            return Declined()

        try:
            listing = self.lister.list(target)
        except OSError as e:
            logger.warning('Listing %s failed: %s' % (target, e))
            return Failed(InternalError('Could not list directory: %s' % (e.strerror or e)))
        return Handled(HTTPResponse.html(self.template.make_html(listing, target)))


class StaticFileHandler:
    """GET handler serving regular files. Dotfiles are served as well."""
    def __init__(self, resolver:PathResolver, chunk_size:int = 512*1024):
        self.resolver = resolver
        self.chunk_size = chunk_size

    @staticmethod
    def get_mime_type(filepath:str) -> str:
        mime_type, _ = mimetypes.guess_type(filepath)
        return mime_type or 'application/octet-stream'

    def _file_reader(self, filepath:str, file_size:int):
        async def reader() -> AsyncIterator[bytes]:
            bytes_remaining = file_size
            with open(filepath, 'rb') as f:
                while bytes_remaining > 0:
                    chunk = f.read(min(self.chunk_size, bytes_remaining))
                    if not chunk:
                        break
                    bytes_remaining -= len(chunk)
                    yield chunk
            if bytes_remaining > 0:
                # the file shrank, the declared Content-Length can not be honored
                raise ConnectionError('File %s changed while being served' % filepath)
        return reader

    async def handle(self, request:HTTPRequest) -> Outcome:
        request_path = RequestPath.from_target(request.target)
        target = self.resolver.resolve(request_path)
        if not self.resolver.contains(target) or not os.path.isfile(target):
            return Declined()
        try:
            file_size = os.path.getsize(target)
            # opening once up front, so unreadable files fail before the headers are sent
            with open(target, 'rb'):
                pass
        except OSError as e:
            logger.warning('Serving %s failed: %s' % (target, e))
            return Failed(InternalError('Error serving file: %s' % (e.strerror or e)))

        return Handled(HTTPResponse.streamed(
            200,
            self._file_reader(target, file_size),
            file_size,
            self.get_mime_type(target)
        ))


class UploadHandler:
    """POST handler saving the first entry of a multipart/form-data body into the requested directory."""
    def __init__(self, resolver:PathResolver, limits:UploadLimits = None, print_cb = None):
        self.resolver = resolver
        self.limits = limits if limits is not None else UploadLimits()
        self.print_cb = print_cb

    async def upload(self, content_type:str, request_path:RequestPath, body:AsyncIterator[bytes]) -> str:
        """
        Saves the first entry of the body under request_path.
        Returns the success message, raises BadRequest or InternalError otherwise.
        """
        _, params = parse_content_type(content_type)
        boundary = params.get('boundary')
        if not boundary:
            raise BadRequest(MSG_NO_BOUNDARY)

        reader = MultipartReader(body, boundary)
        try:
            entry = await reader.next_entry()
        except (MultipartError, ConnectionError) as e:
            raise InternalError(str(e))
        if entry is None:
            raise BadRequest(MSG_NO_ENTRY)

        filename = entry.filename
        if filename is not None:
            # only the last path component is used, on every platform
            filename = filename.replace('\x00', '').replace('\\', '/').split('/')[-1]
            if filename in ('.', '..'):
                filename = ''
        if not filename:
            raise BadRequest(MSG_NO_FILENAME)

        path = self.resolver.resolve(request_path.join(filename))
        if not self.resolver.contains(path):
            raise BadRequest(MSG_OUTSIDE_ROOT)
        saver = MultipartSaver(reader, self.limits, print_cb=self.print_cb)
        result = await saver.save(entry, path)
        logger.debug('Upload to %s: %r' % (path, result))

        if result.full is True:
            return MSG_SAVED
        if result.partial is True:
            if result.reason == PartialReason.COUNT_LIMIT:
                raise InternalError(MSG_COUNT_LIMIT)
            if result.reason == PartialReason.SIZE_LIMIT:
                raise InternalError(MSG_SIZE_LIMIT)
            if result.reason == PartialReason.UTF8_ERROR:
                raise InternalError(MSG_UTF8_ERROR)
            raise InternalError(str(result.detail))
        raise InternalError(str(result.error))

    async def handle(self, request:HTTPRequest) -> Outcome:
        media_type, _ = parse_content_type(request.content_type)
        if media_type != 'multipart/form-data':
            return Declined()

        request_path = RequestPath.from_target(request.target)
        message = await self.upload(request.content_type, request_path, request.stream_data())
        return Handled(HTTPResponse.text(200, message))
