"""Markdown rendering and HTML sanitization for translated posts.

render() turns translated markdown into HTML; sanitize() prunes anything
that could run script in a reader's browser. Both are safe to apply to
their own output again.
"""

import re
from bs4 import BeautifulSoup, Comment
from markdown_it import MarkdownIt

_markdown = MarkdownIt('commonmark', {'html': True}).enable(['table', 'strikethrough'])

ALLOWED_TAGS = {
    'a', 'abbr', 'b', 'blockquote', 'br', 'code', 'del', 'details', 'div', 'em',
    'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'hr', 'i', 'img', 'ins', 'kbd', 'li',
    'ol', 'p', 'pre', 's', 'span', 'strong', 'sub', 'summary', 'sup', 'table',
    'tbody', 'td', 'th', 'thead', 'tr', 'u', 'ul',
}

ALLOWED_ATTRIBUTES = {
    'a': {'href', 'title', 'rel'},
    'img': {'src', 'alt', 'title', 'width', 'height'},
    'code': {'class'},
    'div': {'class'},
    'span': {'class'},
    'ol': {'start'},
    'td': {'align', 'colspan', 'rowspan', 'style'},
    'th': {'align', 'colspan', 'rowspan', 'style'},
    'abbr': {'title'},
}

URL_ATTRIBUTES = {'href', 'src'}
SAFE_URL_SCHEMES = ('http', 'https', 'mailto')

# markdown-it only ever emits text-align styles on table cells
SAFE_STYLE = re.compile(r'^text-align:\s*(left|right|center)$')

_SCHEME = re.compile(r'^([a-z][a-z0-9+.\-]*):')
_IGNORED_URL_CHARS = re.compile(r'[\x00-\x20\x7f]+')


def render(raw: str) -> str:
    """Render markdown to HTML.
    
    Output goes through the same serializer as sanitize(), so sanitizing
    clean rendered HTML returns it unchanged.
    """
    if not raw:
        return ''
    return str(BeautifulSoup(_markdown.render(raw), 'html.parser'))


def _is_safe_url(url: str) -> bool:
    # Browsers ignore whitespace and control characters inside the scheme
    normalized = _IGNORED_URL_CHARS.sub('', url).lower()
    match = _SCHEME.match(normalized)
    if not match:
        return True  # relative URL or fragment
    return match.group(1) in SAFE_URL_SCHEMES


def _scrub_attributes(tag):
    allowed = ALLOWED_ATTRIBUTES.get(tag.name, set())
    for name in list(tag.attrs):
        value = tag.attrs[name]
        if name not in allowed:
            del tag.attrs[name]
        elif name in URL_ATTRIBUTES and not _is_safe_url(str(value)):
            del tag.attrs[name]
        elif name == 'style' and not SAFE_STYLE.match(str(value).strip()):
            del tag.attrs[name]


def sanitize(html: str) -> str:
    """Remove dangerous markup, keeping benign structure.
    
    Disallowed elements are removed together with their contents; event
    handlers, unknown attributes and script-capable URLs are dropped.
    """
    if not html:
        return html
    
    soup = BeautifulSoup(html, 'html.parser')
    
    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()
    
    for tag in soup.find_all(True):
        if tag.decomposed:
            continue
        if tag.name not in ALLOWED_TAGS:
            tag.decompose()
            continue
        _scrub_attributes(tag)
    
    return str(soup)


def plain_text(html: str) -> str:
    """Strip all markup, leaving only text."""
    if not html:
        return html
    return BeautifulSoup(html, 'html.parser').get_text()
