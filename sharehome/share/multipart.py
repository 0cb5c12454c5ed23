"""
Streaming multipart/form-data reader and the saver that writes the first
entry of a request body to disk.

The body is consumed chunk by chunk, boundary detection works across chunk
borders and file data is never buffered beyond one chunk plus the length of
the delimiter.
"""

import os
import enum
import codecs
import urllib.parse
from typing import AsyncIterator, Dict, Optional

from sharehome import logger
from sharehome.protocol.http.messages import parse_content_type


class MultipartError(Exception):
    """The body is not a well formed multipart stream."""


class PartialReason(enum.Enum):
    COUNT_LIMIT = 'count_limit'
    SIZE_LIMIT = 'size_limit'
    IO_ERROR = 'io_error'
    UTF8_ERROR = 'utf8_error'


class SaveResult:
    full = False
    partial = False
    failed = False


class Full(SaveResult):
    full = True

    def __init__(self, path:str, size:int):
        self.path = path
        self.size = size

    def __repr__(self):
        return 'Full(%r, %s)' % (self.path, self.size)


class Partial(SaveResult):
    partial = True

    def __init__(self, reason:PartialReason, path:str, size:int, detail:Exception = None):
        self.reason = reason
        self.path = path
        self.size = size
        self.detail = detail

    def __repr__(self):
        return 'Partial(%s, %r, %s, %r)' % (self.reason.name, self.path, self.size, self.detail)


class Error(SaveResult):
    failed = True

    def __init__(self, error:Exception):
        self.error = error

    def __repr__(self):
        return 'Error(%r)' % self.error


class UploadLimits:
    """None means unlimited."""
    def __init__(self, max_file_size:Optional[int] = None, max_entries:Optional[int] = None):
        self.max_file_size = max_file_size
        self.max_entries = max_entries

    def __repr__(self):
        return 'UploadLimits(max_file_size=%s, max_entries=%s)' % (self.max_file_size, self.max_entries)


class MultipartEntry:
    def __init__(self, headers:Dict[str, str]):
        self.headers = headers
        _, self.disposition = parse_content_type(headers.get('content-disposition'))
        self.content_type, self.content_type_params = parse_content_type(headers.get('content-type'))

    @property
    def name(self) -> Optional[str]:
        return self.disposition.get('name')

    @property
    def filename(self) -> Optional[str]:
        ext_filename = self.disposition.get('filename*')
        if ext_filename is not None and "'" in ext_filename:
            # RFC 5987: charset'language'percent-encoded
            charset, _, value = ext_filename.split("'", 2)
            try:
                return urllib.parse.unquote(value, encoding=charset or 'utf-8', errors='strict')
            except (LookupError, UnicodeDecodeError):
                pass
        return self.disposition.get('filename')

    @property
    def charset(self) -> Optional[str]:
        """Charset of text parts that explicitly declare one, None otherwise."""
        if not self.content_type.startswith('text/'):
            return None
        return self.content_type_params.get('charset')

    def __repr__(self):
        return 'MultipartEntry(name=%r, filename=%r, content_type=%r)' % (self.name, self.filename, self.content_type)


class MultipartReader:
    """
    Pull based multipart parser over an async iterator of body chunks.

    next_entry() returns the next entry (headers parsed) or None when the
    stream has no more entries, read_data() yields the data of the current entry.
    """
    def __init__(self, body:AsyncIterator[bytes], boundary:str, max_header_size:int = 8192):
        self.body = body.__aiter__()
        self.max_header_size = max_header_size
        self.delimiter = b'\r\n--' + boundary.encode('latin-1')
        # the first delimiter may start the body without a preceding CRLF
        self.buffer = b'\r\n'
        self.eof = False
        self.state = 'boundary' # 'boundary', 'data', 'done'

    async def _fill(self) -> bool:
        if self.eof is True:
            return False
        try:
            chunk = await self.body.__anext__()
        except StopAsyncIteration:
            self.eof = True
            return False
        self.buffer += chunk
        return True

    async def _find(self, marker:bytes, limit:int = None) -> int:
        """Position of marker in the buffer, -1 if the stream ended without it."""
        start = 0
        while True:
            pos = self.buffer.find(marker, start)
            if pos != -1:
                return pos
            if limit is not None and len(self.buffer) > limit:
                raise MultipartError('Multipart headers too long or malformed (missing header terminator)')
            start = max(0, len(self.buffer) - len(marker) + 1)
            if not await self._fill():
                return -1

    async def _skip_delimiter(self) -> bool:
        """Consumes everything up to and including the next delimiter line. False when there are no more entries."""
        pos = await self._find(self.delimiter)
        if pos == -1:
            self.buffer = b''
            return False
        self.buffer = self.buffer[pos + len(self.delimiter):]
        while len(self.buffer) < 2:
            if not await self._fill():
                raise MultipartError('Unexpected end of stream after boundary')
        if self.buffer.startswith(b'--'):
            # closing delimiter, the epilogue is ignored
            self.buffer = b''
            return False
        line_end = await self._find(b'\r\n', self.max_header_size)
        if line_end == -1:
            raise MultipartError('Unexpected end of stream after boundary')
        if self.buffer[:line_end].strip(b' \t') != b'':
            raise MultipartError('Garbage after multipart boundary')
        self.buffer = self.buffer[line_end + 2:]
        return True

    async def _read_headers(self) -> Dict[str, str]:
        while len(self.buffer) < 2:
            if not await self._fill():
                raise MultipartError('Multipart headers are not terminated')
        if self.buffer.startswith(b'\r\n'):
            header_section = b''
            self.buffer = self.buffer[2:]
        else:
            header_end = await self._find(b'\r\n\r\n', self.max_header_size)
            if header_end == -1:
                raise MultipartError('Multipart headers are not terminated')
            header_section = self.buffer[:header_end]
            self.buffer = self.buffer[header_end + 4:]

        try:
            headers_text = header_section.decode('utf-8', errors='strict')
        except UnicodeDecodeError as e:
            raise MultipartError('Invalid header encoding: %s' % e)

        headers = {}
        for line in headers_text.split('\r\n'):
            if line == '':
                continue
            if ':' not in line:
                raise MultipartError('Malformed part header: %r' % line)
            name, value = line.split(':', 1)
            headers[name.strip().lower()] = value.strip()
        if 'content-disposition' not in headers:
            raise MultipartError('Part is missing the Content-Disposition header')
        return headers

    async def next_entry(self) -> Optional[MultipartEntry]:
        if self.state == 'done':
            return None
        if self.state == 'data':
            async for _ in self.read_data():
                pass
        if not await self._skip_delimiter():
            self.state = 'done'
            return None
        headers = await self._read_headers()
        self.state = 'data'
        return MultipartEntry(headers)

    async def read_data(self) -> AsyncIterator[bytes]:
        if self.state != 'data':
            return
        keep = len(self.delimiter) - 1
        while True:
            pos = self.buffer.find(self.delimiter)
            if pos != -1:
                data = self.buffer[:pos]
                # the delimiter stays in the buffer for the next entry
                self.buffer = self.buffer[pos:]
                self.state = 'boundary'
                if data:
                    yield data
                return
            if len(self.buffer) > keep:
                data = self.buffer[:-keep]
                self.buffer = self.buffer[-keep:]
                yield data
            if not await self._fill():
                raise MultipartError('Unexpected end of stream inside a multipart entry')


class MultipartSaver:
    """
    Writes the data of one entry to disk and consumes the rest of the body.

    Data goes to a temporary sibling of the destination which replaces the
    destination only after the whole body was read without problems, the
    temporary file is removed on every other outcome.
    """
    def __init__(self, reader:MultipartReader, limits:UploadLimits = None, print_cb = None):
        self.reader = reader
        self.limits = limits if limits is not None else UploadLimits()
        self.print_cb = print_cb
        self.entry_count = 1

    async def print(self, msg=''):
        if self.print_cb is None:
            return
        await self.print_cb(msg)

    def _over_count(self) -> bool:
        return self.limits.max_entries is not None and self.entry_count > self.limits.max_entries

    def _over_size(self, size:int) -> bool:
        return self.limits.max_file_size is not None and size > self.limits.max_file_size

    @staticmethod
    def _io_error(e:OSError, path:str) -> OSError:
        # reporting the destination, not the temporary file
        if e.errno is None:
            return e
        return OSError(e.errno, e.strerror, path)

    @staticmethod
    def _get_decoder(entry:MultipartEntry):
        charset = entry.charset
        if charset is None:
            return None
        try:
            return codecs.getincrementaldecoder(charset)(errors='strict')
        except LookupError:
            return None

    async def save(self, entry:MultipartEntry, path:str) -> SaveResult:
        size = 0
        committed = False
        temp_path = '%s.%s.uploading' % (path, os.urandom(4).hex())
        fh = None
        try:
            if self._over_count():
                return Partial(PartialReason.COUNT_LIMIT, path, size)

            try:
                fh = open(temp_path, 'wb')
            except OSError as e:
                return Partial(PartialReason.IO_ERROR, path, size, self._io_error(e, path))

            decoder = self._get_decoder(entry)
            async for data in self.reader.read_data():
                size += len(data)
                if self._over_size(size):
                    return Partial(PartialReason.SIZE_LIMIT, path, size)
                if decoder is not None:
                    try:
                        decoder.decode(data)
                    except UnicodeDecodeError as e:
                        return Partial(PartialReason.UTF8_ERROR, path, size, e)
                try:
                    fh.write(data)
                except OSError as e:
                    return Partial(PartialReason.IO_ERROR, path, size, self._io_error(e, path))

            if decoder is not None:
                try:
                    decoder.decode(b'', final=True)
                except UnicodeDecodeError as e:
                    return Partial(PartialReason.UTF8_ERROR, path, size, e)

            while True:
                extra = await self.reader.next_entry()
                if extra is None:
                    break
                self.entry_count += 1
                if self._over_count():
                    return Partial(PartialReason.COUNT_LIMIT, path, size)
                await self.print('[UPLOAD] Ignoring extra entry %r' % extra)

            try:
                fh.close()
                fh = None
                os.replace(temp_path, path)
            except OSError as e:
                return Partial(PartialReason.IO_ERROR, path, size, self._io_error(e, path))
            committed = True
            await self.print('[UPLOAD-SUCCESS] Uploaded: %s (%s bytes)' % (path, size))
            return Full(path, size)

        except (MultipartError, ConnectionError) as e:
            return Error(e)

        finally:
            if fh is not None:
                fh.close()
            if committed is False and os.path.exists(temp_path):
                try:
                    os.unlink(temp_path)
                except OSError as e:
                    logger.warning('Could not remove temporary upload file %s: %s' % (temp_path, e))
