import urllib.parse

from sharehome.share.resolver import PathResolver
from sharehome.share.entry import display_text


PAGE_STYLE = '''
        :root {
            --primary: #2563eb;
            --background: #f8fafc;
            --surface: #ffffff;
            --surface-2: #f1f5f9;
            --text: #1e293b;
            --text-muted: #64748b;
            --border: #e2e8f0;
            --shadow: 0 4px 6px -1px rgba(0, 0, 0, 0.1);
        }
        * { margin: 0; padding: 0; box-sizing: border-box; }
        body {
            font-family: 'Inter', 'Segoe UI', system-ui, sans-serif;
            background: var(--background);
            color: var(--text);
            padding: 20px;
            line-height: 1.6;
        }
        .container {
            max-width: 1200px;
            margin: 0 auto;
            background: var(--surface);
            border-radius: 12px;
            box-shadow: var(--shadow);
            overflow: hidden;
        }
        .header {
            background: var(--primary);
            color: white;
            padding: 24px 32px;
        }
        .breadcrumb {
            background: var(--surface-2);
            padding: 16px 32px;
            border-bottom: 1px solid var(--border);
        }
        .breadcrumb a { text-decoration: none; color: var(--primary); }
        .upload { padding: 16px 32px; border-bottom: 1px solid var(--border); }
        ul.listing { list-style: none; padding: 16px 32px; }
        ul.listing li a {
            display: flex;
            padding: 8px 12px;
            border-radius: 6px;
            text-decoration: none;
            color: var(--text);
        }
        ul.listing li a:hover { background: var(--surface-2); }
        .icon::before { width: 1.5em; display: inline-block; }
        .icon-directory::before { content: "\\1F4C1"; }
        .icon-file::before { content: "\\1F4C4"; }
        .name { flex: 1; }
        .size { width: 120px; text-align: right; color: var(--text-muted); }
        .date { width: 240px; text-align: right; color: var(--text-muted); }
'''


class PageTemplate:
    """Wraps a listing body into a complete HTML page."""
    def __init__(self, resolver:PathResolver, title:str = 'sharehome'):
        self.resolver = resolver
        self.title = title

    def breadcrumbs(self, relative_path:str) -> str:
        crumbs = ['<a href="/">Home</a>']
        parts = [x for x in relative_path.split('/') if x]
        current_path = ''
        for i, part in enumerate(parts):
            current_path += '/' + part
            escaped_part = display_text(part)
            if i == len(parts) - 1:
                crumbs.append('<span>%s</span>' % escaped_part)
            else:
                encoded_path = urllib.parse.quote(current_path, safe='/', errors='surrogateescape')
                crumbs.append('<a href="%s/">%s</a>' % (encoded_path, escaped_part))
        return ' / '.join(crumbs)

    def make_html(self, listing:str, directory:str) -> str:
        relative_path = self.resolver.relative(directory)
        display_path = display_text(relative_path)
        upload_url = urllib.parse.quote(relative_path, safe='/', errors='surrogateescape')
        return '''<!DOCTYPE html>
<html>
<head>
    <title>%s - %s</title>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <style>%s    </style>
</head>
<body>
    <div class="container">
        <div class="header"><h1>%s</h1></div>
        <div class="breadcrumb">%s</div>
        <div class="upload">
            <form method="post" enctype="multipart/form-data" action="%s">
                <input type="file" name="file">
                <button type="submit">Upload</button>
            </form>
        </div>
        <ul class="listing">%s</ul>
    </div>
</body>
</html>
''' % (
            display_text(self.title),
            display_path,
            PAGE_STYLE,
            display_path,
            self.breadcrumbs(relative_path),
            upload_url,
            listing,
        )
