import os

from sharehome import logger
from sharehome.share.resolver import PathResolver
from sharehome.share.entry import EntryDetail, EntryType


class DirectoryLister:
    """
    Renders the listing body of one directory.
    Order: the '..' entry (unless listing the root), subdirectories, files.
    Both groups are sorted by name. Nothing is cached, every call reads the filesystem.
    """
    def __init__(self, resolver:PathResolver):
        self.resolver = resolver

    def entries(self, directory:str):
        directories = []
        files = []
        # scandir failing on the directory itself propagates
        with os.scandir(directory) as it:
            for direntry in it:
                try:
                    entry = EntryDetail.from_direntry(direntry)
                except OSError as e:
                    logger.debug('Skipping unreadable entry %r: %s' % (direntry.path, e))
                    continue
                if entry.entry_type is EntryType.DIRECTORY:
                    directories.append(entry)
                else:
                    files.append(entry)

        directories.sort(key=lambda x: x.name)
        files.sort(key=lambda x: x.name)

        result = []
        if not self.resolver.is_root(directory):
            result.append(EntryDetail.parent(directory))
        result.extend(directories)
        result.extend(files)
        return result

    def list(self, directory:str) -> str:
        return ''.join(entry.to_html(self.resolver) for entry in self.entries(directory))
