"""Extraction engine: evaluates a parsing model against a fetched document.

Three front-ends are provided, one per :class:`ParsingModelType`:

- :class:`HtmlParser`: BeautifulSoup + CSS selectors.
- :class:`MarkdownParser`: renders markdown to HTML, then behaves like
  :class:`HtmlParser`.
- :class:`JsonParser`: ``json.loads`` + JMESPath queries.

The markup front-ends expose :meth:`HtmlParser.extract_first`, which resolves
the top-level fields against the document and recurses into ``nested``
models.  The JSON front-end exposes :meth:`JsonParser.parse_model`, which
evaluates the whole model against the decoded document.

:func:`run_parser` selects the front-end and entry point from the model's
declared type.  A nested model whose type differs from the enclosing one is
evaluated by handing the matched node's text to :func:`run_parser` (for
example a JSON-LD ``<script>`` inside an HTML page).

All extraction failures raise :class:`ExtractionError`.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import jmespath
import markdown as markdown_lib
from bs4 import BeautifulSoup, Tag
from jmespath.exceptions import JMESPathError
from soupsieve import SelectorSyntaxError

from scrapehouse.core.schemas.parsing_model import (
    ParsingModel,
    ParsingModelField,
    ParsingModelType,
)
from scrapehouse.scraper.config import (
    ATTRIBUTE_EXTRACTOR_PREFIX,
    DEFAULT_EXTRACTOR,
    MARKDOWN_EXTENSIONS,
)


class ExtractionError(Exception):
    """Raised when a document cannot be evaluated against a parsing model."""


def _missing(field: ParsingModelField) -> Any:
    """Value for a field with no match: its default, or ``[]`` in multiple mode."""
    if field.default is not None:
        return field.default
    return [] if field.multiple else None


# ---------------------------------------------------------------------------
# HTML
# ---------------------------------------------------------------------------


class HtmlParser:
    """CSS-selector front-end over an HTML document."""

    native_types: frozenset[ParsingModelType] = frozenset({ParsingModelType.HTML})

    def __init__(self, content: str) -> None:
        self.content = content
        self._soup = BeautifulSoup(content, "html.parser")

    def extract_first(self, model: ParsingModel) -> dict[str, Any]:
        """Evaluate ``model`` against the whole document."""
        return self._evaluate(self._soup, model)

    # -- internals ---------------------------------------------------------

    def _evaluate(self, scope: Tag, model: ParsingModel) -> dict[str, Any]:
        return {name: self._extract_field(scope, field) for name, field in model.model.items()}

    def _extract_field(self, scope: Tag, field: ParsingModelField) -> Any:
        if field.query is None:
            value = self._extract_value(scope, field.extractor)
            if field.multiple:
                return [value] if value is not None else _missing(field)
            return value if value is not None else field.default

        if field.multiple:
            nodes = self._select(scope, field.query)
            if not nodes:
                return _missing(field)
            if field.nested is not None:
                return [self._evaluate_nested(node, field.nested) for node in nodes]
            return [self._extract_value(node, field.extractor) for node in nodes]

        node = self._select_one(scope, field.query)
        if node is None:
            return field.default
        if field.nested is not None:
            return self._evaluate_nested(node, field.nested)
        value = self._extract_value(node, field.extractor)
        return value if value is not None else field.default

    def _evaluate_nested(self, node: Tag, model: ParsingModel) -> Any:
        if model.type in self.native_types:
            return self._evaluate(node, model)
        return run_parser(node.get_text(), model)

    @staticmethod
    def _select(scope: Tag, query: str) -> list[Tag]:
        try:
            return scope.select(query)
        except SelectorSyntaxError as exc:
            raise ExtractionError(f"Invalid selector {query!r}: {exc}") from exc

    @staticmethod
    def _select_one(scope: Tag, query: str) -> Optional[Tag]:
        try:
            return scope.select_one(query)
        except SelectorSyntaxError as exc:
            raise ExtractionError(f"Invalid selector {query!r}: {exc}") from exc

    @staticmethod
    def _extract_value(node: Tag, extractor: Optional[str]) -> Optional[str]:
        """Pull a value out of ``node``.

        Supported extractors: ``text`` / ``innerText`` (whitespace-normalised
        text), ``textContent`` (raw text), ``html`` / ``innerHTML``,
        ``outerHTML`` and ``attribute:<name>``.
        """
        extractor = extractor or DEFAULT_EXTRACTOR

        if extractor.startswith(ATTRIBUTE_EXTRACTOR_PREFIX):
            attribute = extractor[len(ATTRIBUTE_EXTRACTOR_PREFIX):]
            value = node.get(attribute)
            if isinstance(value, list):
                # multi-valued attributes such as class
                return " ".join(value)
            return value
        if extractor in ("text", "innerText"):
            return " ".join(node.get_text().split())
        if extractor == "textContent":
            return node.get_text()
        if extractor in ("html", "innerHTML"):
            return node.decode_contents()
        if extractor == "outerHTML":
            return str(node)
        raise ExtractionError(f"Unknown extractor: {extractor}")


class MarkdownParser(HtmlParser):
    """Markdown front-end: renders to HTML and evaluates CSS selectors on the result."""

    native_types = frozenset({ParsingModelType.HTML, ParsingModelType.MARKDOWN})

    def __init__(self, content: str) -> None:
        self.markdown = content
        super().__init__(markdown_lib.markdown(content, extensions=list(MARKDOWN_EXTENSIONS)))


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------


class JsonParser:
    """JMESPath front-end over a JSON document.

    ``extractor`` has no meaning for JSON values and is ignored.
    """

    def __init__(self, content: str) -> None:
        self.content = content
        try:
            self._data = json.loads(content)
        except ValueError as exc:
            raise ExtractionError(f"Response body is not valid JSON: {exc}") from exc

    def parse_model(self, model: ParsingModel) -> dict[str, Any]:
        """Evaluate the whole ``model`` against the decoded document."""
        return self._evaluate(self._data, model)

    # -- internals ---------------------------------------------------------

    def _evaluate(self, scope: Any, model: ParsingModel) -> dict[str, Any]:
        return {name: self._extract_field(scope, field) for name, field in model.model.items()}

    def _extract_field(self, scope: Any, field: ParsingModelField) -> Any:
        value = scope if field.query is None else self._search(field.query, scope)
        if value is None:
            return _missing(field)

        if field.multiple:
            items = value if isinstance(value, list) else [value]
            if not items:
                return _missing(field)
            if field.nested is not None:
                return [self._evaluate_nested(item, field.nested) for item in items]
            return items

        if field.nested is not None:
            return self._evaluate_nested(value, field.nested)
        return value

    def _evaluate_nested(self, value: Any, model: ParsingModel) -> Any:
        if model.type is ParsingModelType.JSON:
            return self._evaluate(value, model)
        if not isinstance(value, str):
            raise ExtractionError(
                f"Nested {model.type.value} model requires a string value, got {type(value).__name__}"
            )
        return run_parser(value, model)

    @staticmethod
    def _search(query: str, scope: Any) -> Any:
        try:
            return jmespath.search(query, scope)
        except JMESPathError as exc:
            raise ExtractionError(f"Invalid JMESPath expression {query!r}: {exc}") from exc


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def run_parser(content: str, model: ParsingModel) -> Any:
    """Evaluate ``model`` against ``content`` with the front-end its type selects.

    ``json`` models go through the whole-model evaluator; ``html`` and
    ``markdown`` models go through the first-match entry point.

    Raises:
        ExtractionError: If the document cannot be evaluated.
        ValueError: If ``model.type`` has no front-end.
    """
    if model.type is ParsingModelType.JSON:
        return JsonParser(content).parse_model(model)
    if model.type is ParsingModelType.HTML:
        return HtmlParser(content).extract_first(model)
    if model.type is ParsingModelType.MARKDOWN:
        return MarkdownParser(content).extract_first(model)
    raise ValueError(f"No parser found for type: {model.type}")
