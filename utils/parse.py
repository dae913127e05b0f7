"""Configuration document parser.

The configuration boundary is untyped: bundles arrive as JSON files or API
bodies, and individual documents may be stale, mistyped or half-migrated.
This module turns them into validated pydantic models. It handles the
common failure modes:
- A whole bundle that isn't valid JSON or isn't a JSON object
- A single document that fails schema validation (skipped, not fatal)
- Mongo-style "_id" keys left over from exports
"""

import json
import logging
import pathlib
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from schemas.config import ConfigBundle

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class ConfigParseError(Exception):
    """Raised when configuration input cannot be parsed into the expected schema.

    Includes the raw input so callers can log it for debugging without
    having to catch and re-wrap the original exception themselves.
    """

    def __init__(self, message: str, raw: object):
        super().__init__(message)
        self.raw = raw


def parse_document(document: object, schema: type[ModelT]) -> ModelT:
    """Validate one raw configuration document against a schema.

    Args:
        document: A decoded JSON object.
        schema: Pydantic model class to validate against.

    Returns:
        A validated instance of schema.

    Raises:
        ConfigParseError: If the document is not a mapping or does not match
            the schema. The .raw attribute contains the original document.
    """
    if not isinstance(document, dict):
        raise ConfigParseError(
            f"Expected a JSON object for {schema.__name__}, got {type(document).__name__}",
            raw=document,
        )

    cleaned = _strip_store_keys(document)

    try:
        return schema.model_validate(cleaned)
    except ValidationError as exc:
        raise ConfigParseError(
            f"Document does not match schema {schema.__name__}: {exc}",
            raw=document,
        ) from exc


def parse_documents(documents: list, schema: type[ModelT]) -> list[ModelT]:
    """Validate a list of documents, skipping the ones that fail.

    One bad document must not take the rest of the configuration down with
    it, so failures are logged and dropped.

    Args:
        documents: Decoded JSON objects.
        schema: Pydantic model class to validate each document against.

    Returns:
        The valid documents as model instances, in input order.
    """
    parsed: list[ModelT] = []
    for index, document in enumerate(documents):
        try:
            parsed.append(parse_document(document, schema))
        except ConfigParseError as exc:
            logger.warning("Skipping %s document #%d: %s", schema.__name__, index, exc)
    return parsed


def load_config_bundle(source: str | pathlib.Path | dict) -> ConfigBundle:
    """Load a configuration bundle from a path, a JSON string or a dict.

    Args:
        source: A filesystem path to a JSON file, a JSON text, or an
            already-decoded dict.

    Returns:
        The ConfigBundle with its four document lists. Individual documents
        are validated later by the store.

    Raises:
        ConfigParseError: If the input is not a JSON object, or the top-level
            lists are malformed.
    """
    if isinstance(source, dict):
        data = source
    else:
        text = _read_source(source)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigParseError(f"Configuration is not valid JSON: {exc}", raw=text) from exc

    return parse_document(data, ConfigBundle)


# ── Private helpers ────────────────────────────────────────────────────────────

def _read_source(source: str | pathlib.Path) -> str:
    """Return file contents for a path, or the string itself for JSON text."""
    if isinstance(source, pathlib.Path):
        return source.read_text(encoding="utf-8")
    if source.lstrip().startswith("{"):
        return source
    return pathlib.Path(source).read_text(encoding="utf-8")


def _strip_store_keys(document: dict) -> dict:
    """Map a Mongo-style "_id" onto "id" and drop other underscore keys."""
    cleaned = {k: v for k, v in document.items() if not k.startswith("_")}
    if "_id" in document and "id" not in cleaned:
        cleaned["id"] = str(document["_id"])
    return cleaned
