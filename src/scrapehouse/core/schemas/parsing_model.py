"""Pydantic schemas for parsing models.

A parsing model is a recursively nested, declarative description of which
fields to extract from a fetched document::

    {
        "type": "html",
        "model": {
            "title": {"query": "title"},
            "links": {"query": "a", "extractor": "attribute:href", "multiple": true},
            "meta": {
                "query": "head",
                "nested": {"type": "html", "model": {"charset": {...}}}
            }
        }
    }

Field order in ``model`` is preserved and determines the key order of the
extracted result.

:func:`compile_parsing_model` validates a stored (raw JSON) parsing model
and raises the domain exceptions used by the execution pipeline.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from scrapehouse.core.exceptions import NoParserRegisteredError, ValidationFailedError


class ParsingModelType(str, Enum):
    """Document formats with a registered extraction front-end."""

    HTML = "html"
    JSON = "json"
    MARKDOWN = "markdown"


_REGISTERED_TYPES = frozenset(t.value for t in ParsingModelType)


class ParsingModelField(BaseModel):
    """A single named extraction rule.

    Attributes:
        query: CSS selector (html, markdown) or JMESPath expression (json).
            When omitted the field reads the current scope itself.
        extractor: Which part of a matched node to pull (``"text"``,
            ``"html"``, ``"outerHTML"``, ``"attribute:<name>"``).
        multiple: Collect every match instead of the first one.
        default: Value returned when nothing matches.
        nested: Child parsing model evaluated inside each matched node.
    """

    model_config = ConfigDict(extra="forbid")

    query: Optional[str] = None
    extractor: Optional[str] = None
    multiple: bool = False
    default: Any = None
    nested: Optional[ParsingModel] = None

    @model_validator(mode="after")
    def _nested_requires_query(self) -> ParsingModelField:
        if self.nested is not None and not self.query:
            raise ValueError("`query` is required when `nested` is present.")
        return self


class ParsingModel(BaseModel):
    """A typed mapping of field names to extraction rules."""

    model_config = ConfigDict(extra="forbid")

    type: ParsingModelType
    model: dict[str, ParsingModelField]

    @field_validator("type", mode="before")
    @classmethod
    def _registered_type(cls, value: Any) -> Any:
        raw = value.value if isinstance(value, ParsingModelType) else value
        if not isinstance(raw, str) or raw not in _REGISTERED_TYPES:
            raise ValueError(f"No parser found for type: {raw}")
        return raw

    def to_document(self) -> dict[str, Any]:
        """Serialise to the JSON document stored on a scraper row."""
        return self.model_dump(mode="json", exclude_unset=True)


ParsingModelField.model_rebuild()


def compile_parsing_model(raw: Union[ParsingModel, Mapping[str, Any]]) -> ParsingModel:
    """Validate a parsing model and return its typed form.

    The declared ``type`` is checked first so that an unregistered format is
    reported as such rather than buried in a generic validation message.

    Args:
        raw: An already validated :class:`ParsingModel` (returned as-is) or
            a raw mapping, typically the JSON stored on a scraper row.

    Returns:
        The validated :class:`ParsingModel`.

    Raises:
        NoParserRegisteredError: If ``type`` has no extraction front-end.
        ValidationFailedError: If the document is otherwise malformed.
    """
    if isinstance(raw, ParsingModel):
        return raw
    if not isinstance(raw, Mapping):
        raise ValidationFailedError("Parsing model must be an object", field="parsing_model")

    declared_type = raw.get("type")
    if not isinstance(declared_type, str) or declared_type not in _REGISTERED_TYPES:
        raise NoParserRegisteredError(str(declared_type))

    try:
        return ParsingModel.model_validate(raw)
    except ValidationError as exc:
        raise ValidationFailedError(
            f"Invalid parsing model: {exc.errors()[0]['msg']}",
            field="parsing_model",
        ) from exc
