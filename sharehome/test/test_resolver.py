import os

from sharehome.share.resolver import RequestPath, PathResolver


def test_parse_normalizes_segments():
    assert RequestPath.parse('/a/b/../c').segments == ('a', 'c')
    assert RequestPath.parse('//a/./b/').segments == ('a', 'b')
    assert RequestPath.parse('/').segments == ()
    assert RequestPath.parse('').is_root is True


def test_parse_never_climbs_above_root():
    assert RequestPath.parse('/../../etc/passwd').segments == ('etc', 'passwd')
    assert RequestPath.parse('/a/../../..').is_root is True


def test_parse_percent_decoding():
    assert RequestPath.parse('/docs/my%20file.txt').segments == ('docs', 'my file.txt')
    # encoded separators and dots are normalized like literal ones
    assert RequestPath.parse('/a%2F..%2F..%2Fx').segments == ('x',)
    assert RequestPath.parse('/%2e%2e/secret').segments == ('secret',)
    assert RequestPath.parse('/caf%C3%A9').segments == ('café',)


def test_from_target_strips_query_and_fragment():
    assert RequestPath.from_target(b'/docs/?sort=name#top').segments == ('docs',)
    assert RequestPath.from_target('/a?x=/../b').segments == ('a',)


def test_join_and_str():
    path = RequestPath.parse('/docs').join('report.txt')
    assert path.segments == ('docs', 'report.txt')
    assert str(path) == '/docs/report.txt'
    assert str(RequestPath()) == '/'
    assert path == RequestPath(('docs', 'report.txt'))


def test_resolve(tmp_path):
    root = str(tmp_path)
    resolver = PathResolver(root)
    assert resolver.resolve() == root
    assert resolver.resolve(RequestPath()) == os.path.join(root)
    assert resolver.resolve(RequestPath.parse('/docs/a.txt')) == os.path.join(root, 'docs', 'a.txt')
    # no existence check
    assert resolver.resolve('missing') == os.path.join(root, 'missing')


def test_resolved_request_paths_stay_in_root(tmp_path):
    resolver = PathResolver(str(tmp_path))
    for target in ['/../../etc/passwd', '/a/%2e%2e/%2e%2e/b', '/..%2f..%2f', '/x/../../../y']:
        resolved = resolver.resolve(RequestPath.parse(target))
        assert os.path.commonpath([resolved, resolver.root]) == resolver.root


def test_relative_and_is_root(tmp_path):
    root = str(tmp_path)
    resolver = PathResolver(root)
    assert resolver.relative(root) == '/'
    assert resolver.relative(os.path.join(root, 'a', 'b')) == '/a/b'
    assert resolver.is_root(root) is True
    assert resolver.is_root(os.path.join(root, 'a', '..')) is True
    assert resolver.is_root(os.path.join(root, 'a')) is False


def test_root_is_absolute(tmp_path, monkeypatch):
    monkeypatch.chdir(str(tmp_path))
    resolver = PathResolver('.')
    assert resolver.root == str(tmp_path)
