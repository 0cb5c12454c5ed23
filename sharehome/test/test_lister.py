import re

import pytest

from sharehome.share.resolver import PathResolver
from sharehome.share.entry import EntryDetail
from sharehome.share.lister import DirectoryLister


def titles(listing):
    return re.findall(r'title="([^"]*)"', listing)


def icons(listing):
    return re.findall(r'class="icon icon-(\w+)"', listing)


def test_root_listing_order(tmp_path):
    for name in ('b', 'A', 'a'):
        (tmp_path / name).mkdir()
    for name in ('z.txt', 'B.txt', 'a.txt'):
        (tmp_path / name).write_bytes(b'x')

    listing = DirectoryLister(PathResolver(str(tmp_path))).list(str(tmp_path))
    assert titles(listing) == ['A', 'a', 'b', 'B.txt', 'a.txt', 'z.txt']
    assert icons(listing) == ['directory'] * 3 + ['file'] * 3


def test_subdirectory_listing_starts_with_parent(tmp_path):
    docs = tmp_path / 'docs'
    (docs / 'x').mkdir(parents=True)
    (docs / 'y.txt').write_bytes(b'')
    (docs / '.hidden').write_bytes(b'')

    listing = DirectoryLister(PathResolver(str(tmp_path))).list(str(docs))
    assert titles(listing) == ['..', 'x', '.hidden', 'y.txt']
    assert listing.startswith('<li><a href="/" class="icon icon-directory" title="..">')


def test_empty_directory_lists_only_parent(tmp_path):
    (tmp_path / 'empty').mkdir()
    resolver = PathResolver(str(tmp_path))

    listing = DirectoryLister(resolver).list(str(tmp_path / 'empty'))
    assert listing == EntryDetail.parent(str(tmp_path / 'empty')).to_html(resolver)
    assert listing.count('<li>') == 1


def test_empty_root_lists_nothing(tmp_path):
    assert DirectoryLister(PathResolver(str(tmp_path))).list(str(tmp_path)) == ''


def test_fragments_are_joined_without_separator(tmp_path):
    (tmp_path / 'a').mkdir()
    (tmp_path / 'b.txt').write_bytes(b'')
    listing = DirectoryLister(PathResolver(str(tmp_path))).list(str(tmp_path))
    assert '</li><li>' in listing
    assert '\n' not in listing


def test_unreadable_entries_are_skipped(tmp_path, monkeypatch):
    for name in ('good.txt', 'bad.txt'):
        (tmp_path / name).write_bytes(b'')

    original = EntryDetail.from_direntry

    def from_direntry(entry):
        if entry.name == 'bad.txt':
            raise PermissionError(13, 'Permission denied', entry.path)
        return original(entry)

    monkeypatch.setattr(EntryDetail, 'from_direntry', staticmethod(from_direntry))
    listing = DirectoryLister(PathResolver(str(tmp_path))).list(str(tmp_path))
    assert titles(listing) == ['good.txt']


def test_missing_directory_raises(tmp_path):
    with pytest.raises(OSError):
        DirectoryLister(PathResolver(str(tmp_path))).list(str(tmp_path / 'missing'))


def test_listing_reads_filesystem_every_time(tmp_path):
    lister = DirectoryLister(PathResolver(str(tmp_path)))
    assert lister.list(str(tmp_path)) == ''
    (tmp_path / 'new.txt').write_bytes(b'')
    assert titles(lister.list(str(tmp_path))) == ['new.txt']
