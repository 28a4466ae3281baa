"""
Markdown answer -> styled HTML.

Flow:
1. Convert the provider's Markdown answer to HTML (Python-Markdown)
2. Parse it into a BeautifulSoup tree
3. Walk the tree once, depth-first, rebuilding it into a fresh container:
   - text nodes are copied verbatim
   - <pre> blocks holding <code> become styled code blocks (text untouched)
   - tables are rebuilt with styling classes on the table and every cell
   - images are rebuilt with a styling class and a default alt text
   - a paragraph holding a [CHART:<type>] marker is replaced by a chart canvas
   - every other element is copied shallowly and its children processed the same way
4. Return the HTML plus the Chart.js configurations for the emitted canvases
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import markdown
from bs4 import BeautifulSoup, CData, Comment, Declaration, Doctype, NavigableString, ProcessingInstruction, Tag

from .charts import chart_key, find_placeholder, resolve_chart

logger = logging.getLogger(__name__)

MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "sane_lists"]

CODE_BLOCK_CLASS = "bg-gray-900 text-gray-100 p-4 rounded-lg overflow-x-auto mb-4"
TABLE_CLASS = "w-full border-collapse mb-4"
HEADER_CELL_CLASS = "bg-gray-100 border border-gray-300 px-4 py-2 text-left font-semibold"
BODY_CELL_CLASS = "border border-gray-300 px-4 py-2"
IMAGE_CLASS = "rounded-lg shadow-md my-4 max-w-full"
DEFAULT_IMAGE_ALT = "Excel example"
CHART_CONTAINER_CLASS = "chart-container"

# Markup that is neither text nor an element; dropped from the output.
_NON_TEXT_STRINGS = (Comment, CData, Declaration, Doctype, ProcessingInstruction)


@dataclass
class RenderResult:
    html: str
    charts: List[Dict[str, Any]] = field(default_factory=list)


def markdown_to_html(content: str) -> str:
    return markdown.markdown(content or "", extensions=MARKDOWN_EXTENSIONS)


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


class ContentProcessor:
    """
    Rebuilds a parsed answer into styled output.

    A processor collects the chart configurations it emits in `charts`; use a
    fresh one per rendered answer.
    """

    def __init__(self, soup: Optional[BeautifulSoup] = None):
        # Factory for every new node
        self.soup = soup if soup is not None else BeautifulSoup("", "html.parser")
        self.charts: List[Dict[str, Any]] = []

    def process(self, source: Tag, target: Tag) -> Tag:
        """Append the rewritten children of `source` to `target`, in order."""
        for node in list(source.children):
            rewritten = self._rewrite(node)
            if rewritten is not None:
                target.append(rewritten)
        return target

    def _rewrite(self, node):
        if isinstance(node, NavigableString):
            if isinstance(node, _NON_TEXT_STRINGS):
                return None
            return NavigableString(str(node))

        if not isinstance(node, Tag):
            return None

        if node.name == "pre" and node.find("code") is not None:
            return self._code_block(node)
        if node.name == "table":
            return self._table(node)
        if node.name == "img":
            return self._image(node)
        if node.name == "p":
            keyword = find_placeholder(node.get_text())
            if keyword is not None:
                return self._chart(keyword)

        clone = self.soup.new_tag(node.name)
        return self.process(node, clone)

    def _code_block(self, node: Tag) -> Tag:
        pre = self.soup.new_tag("pre", attrs={"class": CODE_BLOCK_CLASS})
        code = self.soup.new_tag("code")
        code.string = node.find("code").get_text()
        pre.append(code)
        return pre

    def _table(self, node: Tag) -> Tag:
        table = self.soup.new_tag("table", attrs={"class": TABLE_CLASS})
        for child in node.children:
            if isinstance(child, Tag) and child.name == "thead":
                table.append(self._table_section(child, HEADER_CELL_CLASS))
            elif isinstance(child, Tag) and child.name in ("tbody", "tfoot"):
                table.append(self._table_section(child, BODY_CELL_CLASS))
            elif isinstance(child, Tag) and child.name == "tr":
                # Row without a section (raw HTML): style by cell kind
                table.append(self._table_row(child, None))
            else:
                table.append(copy.copy(child))
        return table

    def _table_section(self, section: Tag, cell_class: str) -> Tag:
        rebuilt = self.soup.new_tag(section.name)
        for row in section.children:
            if isinstance(row, Tag) and row.name == "tr":
                rebuilt.append(self._table_row(row, cell_class))
            else:
                rebuilt.append(copy.copy(row))
        return rebuilt

    def _table_row(self, row: Tag, cell_class: Optional[str]) -> Tag:
        rebuilt = self.soup.new_tag("tr")
        for cell in row.children:
            if isinstance(cell, Tag) and cell.name in ("th", "td"):
                styled = copy.copy(cell)
                if cell_class is not None:
                    styled["class"] = cell_class
                else:
                    styled["class"] = HEADER_CELL_CLASS if cell.name == "th" else BODY_CELL_CLASS
                rebuilt.append(styled)
            else:
                rebuilt.append(copy.copy(cell))
        return rebuilt

    def _image(self, node: Tag) -> Tag:
        return self.soup.new_tag(
            "img",
            attrs={
                "src": node.get("src", ""),
                "alt": node.get("alt") or DEFAULT_IMAGE_ALT,
                "class": IMAGE_CLASS,
            },
        )

    def _chart(self, keyword: str) -> Tag:
        canvas_id = f"chart-{len(self.charts)}"
        key = chart_key(keyword)
        logger.info(f"Creating chart of type: {key} (placeholder {keyword!r})")

        container = self.soup.new_tag("div", attrs={"class": CHART_CONTAINER_CLASS})
        container.append(self.soup.new_tag("canvas", attrs={"id": canvas_id, "data-chart": key}))
        self.charts.append({"canvasId": canvas_id, "chart": key, "config": resolve_chart(keyword)})
        return container


def render_html(html: str) -> RenderResult:
    """Run already-converted HTML through the ContentProcessor."""
    source = parse_html(html)
    processor = ContentProcessor()
    target = processor.process(source, processor.soup.new_tag("div"))
    return RenderResult(html=target.decode_contents(), charts=processor.charts)


def render_markdown(content: str) -> RenderResult:
    """Convert a Markdown answer and rewrite it into styled, chart-expanded HTML."""
    return render_html(markdown_to_html(content))
