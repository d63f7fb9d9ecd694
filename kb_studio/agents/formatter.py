"""Content Formatter - normalize generated text into editor-ready HTML.

Model output arrives either as HTML or as loosely structured markdown.
Content that already contains block-level HTML is passed through untouched,
which makes formatting idempotent. Everything else is converted with
Python-Markdown and then reduced to the editor's tag whitelist with
BeautifulSoup.

Public API:
    contains_block_html: Whether text already carries block-level HTML
    strip_code_fences: Remove ``` / ```html wrappers a model may add
    format_content_as_html: Markdown-like text to sanitized HTML
    sanitize_html: Reduce HTML to an allowed tag set
    EDITOR_TAGS / PUBLICATION_TAGS: Tag whitelists
"""

import re
from typing import Final, Iterable

import markdown
from bs4 import BeautifulSoup

# Tags the polished article may contain
PUBLICATION_TAGS: Final[frozenset[str]] = frozenset(
    {"h1", "h2", "h3", "p", "ul", "ol", "li", "strong", "em", "blockquote", "br"}
)

# Draft and outline content may also keep links and inline code
EDITOR_TAGS: Final[frozenset[str]] = PUBLICATION_TAGS | {"h4", "a", "code", "pre"}

_BLOCK_TAG_PATTERN: Final = re.compile(
    r"<(?:p|h[1-6]|ul|ol|li|blockquote|div|table)\b[^>]*>", re.IGNORECASE
)
_CODE_FENCE_PATTERN: Final = re.compile(r"```[A-Za-z0-9_-]*[ \t]*\n?")
_LIST_ITEM_PATTERN: Final = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+\S")
_DROP_WITH_CONTENT: Final = ("script", "style", "iframe", "object")
_SAFE_HREF: Final = re.compile(r"^(?:https?:|mailto:|/|#)", re.IGNORECASE)
_SCRIPT_BLOCK: Final = re.compile(
    rf"<({'|'.join(_DROP_WITH_CONTENT)})\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL
)


def contains_block_html(content: str) -> bool:
    """Return True when content already has block-level HTML tags.

    Examples:
        >>> contains_block_html("<p>Hello</p>")
        True
        >>> contains_block_html("**bold** text")
        False
    """
    return bool(_BLOCK_TAG_PATTERN.search(content or ""))


def strip_code_fences(content: str) -> str:
    """Remove code-fence markers wrapped around model output.

    Examples:
        >>> strip_code_fences("```html\\n<p>Done</p>\\n```")
        '<p>Done</p>'
    """
    return _CODE_FENCE_PATTERN.sub("", content or "").strip()


def _separate_lists(text: str) -> str:
    """Insert a blank line before a list that directly follows a paragraph line.

    Python-Markdown treats such lines as paragraph continuation; models
    routinely write "Intro:\\n- item" and expect a list.
    """
    lines = text.split("\n")
    result: list[str] = []
    for line in lines:
        if (
            result
            and _LIST_ITEM_PATTERN.match(line)
            and result[-1].strip()
            and not _LIST_ITEM_PATTERN.match(result[-1])
            and not result[-1].lstrip().startswith("#")
        ):
            result.append("")
        result.append(line)
    return "\n".join(result)


def _markdown_converter() -> markdown.Markdown:
    """Markdown converter that renders raw HTML in the source as literal text."""
    converter = markdown.Markdown(extensions=["extra", "nl2br", "sane_lists"], output_format="html")
    converter.preprocessors.deregister("html_block")
    converter.inlinePatterns.deregister("html")
    return converter


def sanitize_html(html: str, allowed_tags: Iterable[str] = PUBLICATION_TAGS) -> str:
    """Keep only whitelisted tags.

    Disallowed tags are unwrapped (their text is kept); script-like tags are
    dropped together with their content. Attributes are removed except a
    safe ``href`` on links.
    """
    allowed = frozenset(allowed_tags)
    soup = BeautifulSoup(html or "", "html.parser")

    for tag in soup(list(_DROP_WITH_CONTENT)):
        tag.decompose()

    for tag in soup.find_all(True):
        if tag.name not in allowed:
            tag.unwrap()
            continue
        href = tag.get("href") if tag.name == "a" else None
        tag.attrs = {}
        if href and _SAFE_HREF.match(href):
            tag["href"] = href

    return str(soup).strip()


def format_content_as_html(content: str) -> str:
    """Convert markdown-like generated text into sanitized HTML.

    Content that already contains block-level HTML is returned unchanged,
    so ``format_content_as_html(format_content_as_html(x))`` equals
    ``format_content_as_html(x)``.

    Handles headings, bold/italic, bullet and numbered lists (adjacent items
    share one list container), blockquotes, and paragraph breaks (single
    newlines inside a paragraph become ``<br>``).

    Examples:
        >>> format_content_as_html("# Title\\n\\n- one\\n- two")
        '<h1>Title</h1>\\n<ul>\\n<li>one</li>\\n<li>two</li>\\n</ul>'
        >>> format_content_as_html("<p>kept</p>")
        '<p>kept</p>'
    """
    if not content or not content.strip():
        return ""

    if contains_block_html(content):
        return content

    text = _SCRIPT_BLOCK.sub("", content.strip().replace("\r\n", "\n"))
    html = _markdown_converter().convert(_separate_lists(text))
    return sanitize_html(html, EDITOR_TAGS)
