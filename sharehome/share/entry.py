import os
import html
import enum
import datetime
import urllib.parse
from typing import Optional

from sharehome.share.resolver import PathResolver

DATE_FORMAT = '%Y-%m-%d %H:%M:%S %z'

ENTRY_TEMPLATE = '<li><a href="{href}" class="icon icon-{type}" title="{name}"><span class="name">{name}</span><span class="size">{size}</span><span class="date">{date}</span></a></li>'


class EntryType(enum.Enum):
    FILE = 'file'
    DIRECTORY = 'directory'


class EntryDetail:
    """
    One child of a listed directory.
    Only FILE entries carry size and date; symbolic links are always DIRECTORY.
    """
    def __init__(self, name:str, path:str, entry_type:EntryType, size:Optional[int] = None, date:Optional[datetime.datetime] = None):
        self.name = name
        self.path = path
        self.entry_type = entry_type
        self.size = size
        self.date = date

    @staticmethod
    def from_direntry(entry:os.DirEntry):
        # raises OSError when the type can not be determined
        if entry.is_symlink() or entry.is_dir(follow_symlinks=False):
            return EntryDetail(entry.name, entry.path, EntryType.DIRECTORY)

        size = None
        date = None
        try:
            st = entry.stat(follow_symlinks=False)
        except OSError:
            st = None
        if st is not None:
            size = st.st_size
            try:
                date = datetime.datetime.fromtimestamp(st.st_mtime).astimezone()
            except (OverflowError, ValueError, OSError):
                date = None
        return EntryDetail(entry.name, entry.path, EntryType.FILE, size, date)

    @staticmethod
    def parent(directory:str):
        return EntryDetail('..', os.path.dirname(os.path.abspath(directory)), EntryType.DIRECTORY)

    def to_html(self, resolver:PathResolver) -> str:
        href = urllib.parse.quote(resolver.relative(self.path), safe='/', errors='surrogateescape')
        size = ''
        date = ''
        if self.entry_type is EntryType.FILE:
            if self.size is not None:
                size = str(self.size)
            if self.date is not None:
                date = self.date.strftime(DATE_FORMAT)
        return ENTRY_TEMPLATE.format(
            href = href,
            type = self.entry_type.value,
            name = display_text(self.name),
            size = size,
            date = date,
        )

    def __repr__(self):
        return 'EntryDetail(%r, %s, size=%s)' % (self.name, self.entry_type.name, self.size)


def display_text(text:str) -> str:
    """HTML-escapes a filesystem name. Undecodable bytes are shown as U+FFFD."""
    return html.escape(text.encode('utf-8', 'surrogateescape').decode('utf-8', 'replace'))
