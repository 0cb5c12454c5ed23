import os
import re
import datetime

import pytest

from sharehome.share.resolver import PathResolver
from sharehome.share.entry import EntryDetail, EntryType

DATE_RE = r'\d{4}-\d\d-\d\d \d\d:\d\d:\d\d [+-]\d{4}'


def direntry(directory, name):
    with os.scandir(directory) as it:
        for entry in it:
            if entry.name == name:
                return entry
    raise KeyError(name)


def test_file_entry(tmp_path):
    (tmp_path / 'a.txt').write_bytes(b'hello')
    resolver = PathResolver(str(tmp_path))

    entry = EntryDetail.from_direntry(direntry(str(tmp_path), 'a.txt'))
    assert entry.entry_type is EntryType.FILE
    assert entry.size == 5
    assert entry.date is not None
    assert entry.date.tzinfo is not None

    html = entry.to_html(resolver)
    prefix = '<li><a href="/a.txt" class="icon icon-file" title="a.txt"><span class="name">a.txt</span><span class="size">5</span><span class="date">'
    assert html.startswith(prefix)
    assert re.fullmatch(re.escape(prefix) + DATE_RE + re.escape('</span></a></li>'), html)


def test_directory_entry(tmp_path):
    (tmp_path / 'docs').mkdir()
    resolver = PathResolver(str(tmp_path))

    entry = EntryDetail.from_direntry(direntry(str(tmp_path), 'docs'))
    assert entry.entry_type is EntryType.DIRECTORY
    assert entry.size is None
    assert entry.date is None
    assert entry.to_html(resolver) == '<li><a href="/docs" class="icon icon-directory" title="docs"><span class="name">docs</span><span class="size"></span><span class="date"></span></a></li>'


@pytest.mark.skipif(not hasattr(os, 'symlink'), reason='no symlink support')
def test_symlink_is_directory(tmp_path):
    (tmp_path / 'target.txt').write_bytes(b'data')
    os.symlink(str(tmp_path / 'target.txt'), str(tmp_path / 'link'))
    os.symlink(str(tmp_path / 'nowhere'), str(tmp_path / 'dangling'))
    resolver = PathResolver(str(tmp_path))

    for name in ('link', 'dangling'):
        entry = EntryDetail.from_direntry(direntry(str(tmp_path), name))
        assert entry.entry_type is EntryType.DIRECTORY
        assert entry.size is None
        assert 'class="icon icon-directory"' in entry.to_html(resolver)
        assert '<span class="size"></span><span class="date"></span>' in entry.to_html(resolver)


def test_name_is_escaped_and_href_quoted(tmp_path):
    name = 'a&b <c>.txt'
    (tmp_path / name).write_bytes(b'')
    resolver = PathResolver(str(tmp_path))

    html = EntryDetail.from_direntry(direntry(str(tmp_path), name)).to_html(resolver)
    assert 'href="/a%26b%20%3Cc%3E.txt"' in html
    assert 'title="a&amp;b &lt;c&gt;.txt"' in html
    assert '<span class="name">a&amp;b &lt;c&gt;.txt</span>' in html
    assert '<span class="size">0</span>' in html


def test_nested_href(tmp_path):
    (tmp_path / 'docs' / 'sub dir').mkdir(parents=True)
    resolver = PathResolver(str(tmp_path))
    entry = EntryDetail.from_direntry(direntry(str(tmp_path / 'docs'), 'sub dir'))
    assert 'href="/docs/sub%20dir"' in entry.to_html(resolver)


def test_parent_entry(tmp_path):
    resolver = PathResolver(str(tmp_path))
    parent = EntryDetail.parent(str(tmp_path / 'docs'))
    assert parent.entry_type is EntryType.DIRECTORY
    assert parent.to_html(resolver) == '<li><a href="/" class="icon icon-directory" title=".."><span class="name">..</span><span class="size"></span><span class="date"></span></a></li>'

    parent = EntryDetail.parent(str(tmp_path / 'docs' / 'sub'))
    assert 'href="/docs"' in parent.to_html(resolver)


def test_optional_fields_render_empty(tmp_path):
    resolver = PathResolver(str(tmp_path))
    entry = EntryDetail('f.bin', str(tmp_path / 'f.bin'), EntryType.FILE)
    assert '<span class="size"></span><span class="date"></span>' in entry.to_html(resolver)


def test_date_format(tmp_path):
    resolver = PathResolver(str(tmp_path))
    tz = datetime.timezone(datetime.timedelta(hours=1))
    date = datetime.datetime(2024, 1, 2, 3, 4, 5, tzinfo=tz)
    entry = EntryDetail('f.bin', str(tmp_path / 'f.bin'), EntryType.FILE, 10, date)
    assert '<span class="size">10</span><span class="date">2024-01-02 03:04:05 +0100</span>' in entry.to_html(resolver)


def test_directories_never_show_size_or_date(tmp_path):
    resolver = PathResolver(str(tmp_path))
    date = datetime.datetime(2024, 1, 2, 3, 4, 5).astimezone()
    entry = EntryDetail('d', str(tmp_path / 'd'), EntryType.DIRECTORY, 4096, date)
    assert '<span class="size"></span><span class="date"></span>' in entry.to_html(resolver)
