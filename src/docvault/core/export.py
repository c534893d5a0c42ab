"""Export pipeline: convert vault documents to markdown, copy referenced assets, write output files"""

import logging
import posixpath
import re
from pathlib import Path
from typing import Optional

from docvault.core.markdown import MarkdownConverter
from docvault.core.ports import AssetStore
from docvault.core.utils.links import AssetReference, parse_asset_url
from docvault.crud.vault import FileManager
from docvault.exceptions import DocVaultError, DocumentValidationError, ExportError

logger = logging.getLogger(__name__)

ASSETS_SUBDIR = "assets"

# matched on raw text, including lines CommonMark would read as indented code
IMAGE_ASSET_RE = re.compile(r'!\[[^\]]*\]\((/api/assets/[^)]+)\)')
LINK_ASSET_RE = re.compile(r'\[[^\]]+\]\((/api/assets/[^)]+)\)')


def extract_asset_references(markdown: str) -> list[AssetReference]:
    """Asset API URLs referenced by image or link syntax, de-duplicated in first-seen order."""
    refs: dict[str, AssetReference] = {}
    for pattern in (IMAGE_ASSET_RE, LINK_ASSET_RE):
        for url in pattern.findall(markdown):
            if url not in refs and (ref := parse_asset_url(url)):
                refs[url] = ref
    return list(refs.values())


def rewrite_asset_links(markdown: str, refs: list[AssetReference]) -> str:
    for ref in refs:
        markdown = markdown.replace(ref.original_url, ref.local_path)
    return markdown


class Exporter:

    def __init__(self, file_manager: FileManager, asset_store: AssetStore, converter: Optional[MarkdownConverter] = None):
        self.file_manager = file_manager
        self.asset_store = asset_store
        self.converter = converter or MarkdownConverter()

    def export_document(self, doc_path: str, output_path: Path | str) -> Path:
        """Write doc_path as markdown to output_path with its assets under <output dir>/assets/."""
        if not doc_path:
            raise DocumentValidationError("document path is required", field="doc_path")
        if not output_path:
            raise DocumentValidationError("output path is required", field="output_path")
        output_path = Path(output_path)

        doc = self.file_manager.read_file(doc_path)
        markdown = self.converter.to_markdown(doc)
        refs = extract_asset_references(markdown)
        logger.debug("%s references %d assets", doc_path, len(refs))

        output_dir = output_path.parent
        output_dir.mkdir(parents=True, exist_ok=True)

        if refs:
            assets_dir = output_dir / ASSETS_SUBDIR
            assets_dir.mkdir(parents=True, exist_ok=True)
            for ref in refs:
                self._copy_asset(ref, assets_dir)
            markdown = rewrite_asset_links(markdown, refs)

        output_path.write_text(markdown, encoding="utf-8")
        logger.info("exported %s -> %s", doc_path, output_path)
        return output_path

    def _copy_asset(self, ref: AssetReference, assets_dir: Path) -> None:
        try:
            data = self.asset_store.read_asset(ref.project_alias, ref.hash, ref.ext)
        except DocVaultError as e:
            logger.error("failed to read asset %s: %s", ref.original_url, e)
            raise ExportError(f"copying asset {ref.original_url}: {e}", path=ref.original_url) from e
        (assets_dir / ref.filename).write_bytes(data)

    def export_project(self, project_alias: str, output_dir: Path | str) -> list[Path]:
        """Export every document of a project as <output_dir>/<name>.md."""
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        written = []
        for doc_path in self.file_manager.list_files(project_alias):
            name = posixpath.basename(doc_path).removesuffix(".json") + ".md"
            written.append(self.export_document(doc_path, output_dir / name))
        logger.info("exported %d documents from %s", len(written), project_alias)
        return written
