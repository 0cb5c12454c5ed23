import os
import urllib.parse
from typing import Tuple, Union


class RequestPath:
    """
    Normalized, root relative path taken from an URL target.
    Segments are percent-decoded; empty and '.' segments are dropped and
    '..' removes the previous segment without ever climbing above the root.
    """
    def __init__(self, segments:Tuple[str, ...] = ()):
        self.segments = tuple(segments)

    @staticmethod
    def parse(path:str):
        # decoding first, so %2F and %2E%2E are treated like their literal forms
        decoded = urllib.parse.unquote(path, errors='surrogateescape')
        segments = []
        if os.sep != '/':
            decoded = decoded.replace(os.sep, '/')
        for segment in decoded.replace('\x00', '').split('/'):
            if segment == '' or segment == '.':
                continue
            if segment == '..':
                if segments:
                    segments.pop()
                continue
            segments.append(segment)
        return RequestPath(segments)

    @staticmethod
    def from_target(target:Union[bytes, str]):
        if isinstance(target, bytes):
            target = target.decode('latin-1')
        for sep in ('?', '#'):
            pos = target.find(sep)
            if pos != -1:
                target = target[:pos]
        return RequestPath.parse(target)

    def join(self, name:str):
        return RequestPath(self.segments + (name,))

    @property
    def is_root(self) -> bool:
        return len(self.segments) == 0

    def __eq__(self, other):
        if not isinstance(other, RequestPath):
            return NotImplemented
        return self.segments == other.segments

    def __hash__(self):
        return hash(self.segments)

    def __str__(self):
        return '/' + '/'.join(self.segments)

    def __repr__(self):
        return 'RequestPath(%r)' % (str(self),)


class PathResolver:
    """Maps root relative paths onto the filesystem. The root is fixed at construction."""
    def __init__(self, root:str):
        self.__root = os.path.abspath(root)

    @property
    def root(self) -> str:
        return self.__root

    def resolve(self, relative:Union[RequestPath, str, None] = None) -> str:
        if relative is None:
            return self.__root
        if isinstance(relative, RequestPath):
            return os.path.join(self.__root, *relative.segments)
        return os.path.join(self.__root, relative)

    def is_root(self, path:str) -> bool:
        return os.path.abspath(path) == self.__root

    def contains(self, path:str) -> bool:
        """Lexical check, symlinks are not followed."""
        path = os.path.abspath(path)
        try:
            return os.path.commonpath([path, self.__root]) == self.__root
        except ValueError:
            # Paths are on different drives (Windows)
            return False

    def relative(self, path:str) -> str:
        rel_path = os.path.relpath(os.path.abspath(path), self.__root)
        if rel_path == '.':
            return '/'
        return '/' + rel_path.replace(os.sep, '/')
