"""Search-oriented content extraction from a document's block tree"""

from dataclasses import dataclass, field
from urllib.parse import urlparse

from docvault.core.models import Block, DocumentFile, InlineRun
from docvault.core.utils.links import Asset, Link


TEXT_BLOCKS = {"paragraph", "bulletListItem", "numberedListItem", "checkListItem", "quote"}


@dataclass
class ExtractedContent:
    """Flattened text, links and assets pulled from one document."""
    title: str = ""
    headings: list[str] = field(default_factory=list)
    body: list[str] = field(default_factory=list)
    code: list[str] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)
    assets: list[Asset] = field(default_factory=list)
    has_code: bool = False
    has_images: bool = False
    has_links: bool = False

    @property
    def fts_title(self) -> str:
        return self.title

    @property
    def fts_headings(self) -> str:
        return " ".join(self.headings)

    @property
    def fts_body(self) -> str:
        return " ".join(self.body)

    @property
    def fts_code(self) -> str:
        return "\n\n".join(self.code)


def plain_text(runs: list[InlineRun]) -> str:
    """Concatenate run text, descending into link content. Styles are ignored."""
    parts = []
    for run in runs:
        if run.type == "text" and run.text:
            parts.append(run.text)
        elif run.type == "link" and run.content:
            parts.append(plain_text(run.content))
    return "".join(parts)


def extract_host(url: str) -> str:
    try:
        return urlparse(url).netloc
    except ValueError:
        return ""


def _links(runs: list[InlineRun]) -> list[Link]:
    return [Link(url=r.href, host=extract_host(r.href)) for r in runs if r.type == "link" and r.href]


class Parser:
    """Walks the block tree depth-first, pre-order, and dispatches on block type."""

    def parse(self, doc: DocumentFile) -> ExtractedContent:
        content = ExtractedContent(title=doc.meta.title)

        stack = list(reversed(doc.blocks or []))
        while stack:
            block = stack.pop()
            self._parse_block(block, content)
            stack.extend(reversed(block.children))

        if not content.title and content.headings:
            content.title = content.headings[0]

        content.has_code = bool(content.code)
        content.has_images = bool(content.assets)
        content.has_links = bool(content.links)
        return content

    def _parse_block(self, block: Block, content: ExtractedContent) -> None:
        if block.type == "heading":
            self._text_block(block, content.headings, content)
        elif block.type in TEXT_BLOCKS:
            self._text_block(block, content.body, content)
        elif block.type == "codeBlock":
            if text := plain_text(block.inline_content()):
                content.code.append(text)
        elif block.type in ("image", "file"):
            self._asset_block(block, content)
        elif block.type == "table":
            self._table_block(block, content)
        elif text := plain_text(block.inline_content()):
            content.body.append(text)

    @staticmethod
    def _text_block(block: Block, target: list[str], content: ExtractedContent) -> None:
        runs = block.inline_content()
        text = plain_text(runs)
        if not text:
            return
        target.append(text)
        content.links.extend(_links(runs))

    @staticmethod
    def _asset_block(block: Block, content: ExtractedContent) -> None:
        url = block.prop_str("url")
        if not url:
            return
        caption = block.prop_str("caption" if block.type == "image" else "name")
        if caption:
            content.body.append(caption)
        content.assets.append(Asset(path=url, caption=caption))

    @staticmethod
    def _table_block(block: Block, content: ExtractedContent) -> None:
        table = block.table_content()
        if table is None:
            return
        cells = [plain_text(cell.content) for row in table.rows for cell in row.cells]
        if text := " ".join(t for t in cells if t):
            content.body.append(text)


def parse_document(doc: DocumentFile) -> ExtractedContent:
    return Parser().parse(doc)
