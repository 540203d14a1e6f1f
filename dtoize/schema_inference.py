"""Schema inference for sampled semi-structured documents.

This module provides the core inference logic used by:
- json2dart: Infer a schema from JSON documents and emit Dart models
- json2py: Infer a schema from JSON documents and emit Python dataclasses
- batch: Run either conversion for every collection of a YAML configuration

A sample of documents is scanned once per record level. Each field gets a
set of detected type tags, an occurrence count and its raw values; the tags
are reconciled into one resolved type, and embedded objects and arrays of
objects are analyzed recursively into nested schema nodes.

Mixed typing is treated as uncertainty, not as an error: a field that shows
more than one detected tag (a null value included) is nullable, and a field
whose tags cannot be reconciled falls back to 'untyped' with a warning.
"""

import datetime
import decimal
import logging
import numbers
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from dtoize import naming

logger = logging.getLogger(__name__)

STRING = 'string'
INTEGER = 'integer'
FLOAT = 'float'
BOOLEAN = 'boolean'
DATETIME = 'datetime'
LIST = 'list'
MAP = 'map'
UNTYPED = 'untyped'

# Serialized timestamp shapes: Firestore JSON exports and extended JSON
_TIMESTAMP_KEY_SETS = (
    frozenset(['_seconds', '_nanoseconds']),
    frozenset(['seconds', 'nanoseconds']),
)


class InputError(ValueError):
    """Raised when an analysis call is given no payloads."""


def is_timestamp_mapping(value: Any) -> bool:
    """Checks whether a mapping is a serialized timestamp rather than an object."""
    if not isinstance(value, Mapping):
        return False
    keys = frozenset(value.keys())
    if keys == frozenset(['$date']):
        return True
    if keys in _TIMESTAMP_KEY_SETS:
        return all(isinstance(value[k], int) and not isinstance(value[k], bool) for k in keys)
    return False


def is_object(value: Any) -> bool:
    """True for non-null keyed mappings that are not timestamps."""
    return isinstance(value, Mapping) and not is_timestamp_mapping(value)


def detect_type(value: Any) -> str:
    """Maps a single raw value to one type tag.

    Unrecognized values degrade to 'untyped'; this function never raises.
    """
    if value is None:
        return UNTYPED
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)) or is_timestamp_mapping(value):
        return DATETIME
    if isinstance(value, (list, tuple)):
        return LIST
    if isinstance(value, Mapping):
        return MAP
    # bool is an int subclass, so it has to be checked before numbers
    if isinstance(value, bool):
        return BOOLEAN
    if isinstance(value, numbers.Integral):
        return INTEGER
    if isinstance(value, decimal.Decimal):
        return INTEGER if value.is_finite() and value == value.to_integral_value() else FLOAT
    if isinstance(value, numbers.Real):
        return INTEGER if float(value).is_integer() else FLOAT
    if isinstance(value, str):
        return STRING
    return UNTYPED


def resolve_type(types: Iterable[str], field_name: str = '') -> str:
    """Reconciles the tags observed for one field into a single tag.

    Args:
        types: Detected tags of all values seen for the field
        field_name: Field name, used for the degradation warning

    Returns:
        The single remaining tag; 'float' for integer/float mixes;
        'untyped' when nothing but nulls was seen or the tags conflict.
    """
    filtered = {t for t in types if t != UNTYPED}
    if not filtered:
        return UNTYPED
    if len(filtered) == 1:
        return next(iter(filtered))
    if filtered == {INTEGER, FLOAT}:
        return FLOAT
    logger.warning("Multiple types detected for field '%s': %s. Using '%s'",
                   field_name, ', '.join(sorted(filtered)), UNTYPED)
    return UNTYPED


@dataclass
class FieldObservation:
    """What one aggregation pass saw for a single field name."""
    types: Set[str] = field(default_factory=set)
    count: int = 0
    values: List[Any] = field(default_factory=list)

    def observe(self, value: Any) -> None:
        self.count += 1
        self.types.add(detect_type(value))
        self.values.append(value)


def aggregate_fields(payloads: Iterable[Any], context: str = '') -> Tuple[Dict[str, FieldObservation], int]:
    """Scans payloads once and collects per-field observations.

    Fields are kept in order of first appearance. Entries that are not
    mappings count towards the total but contribute no fields.

    Args:
        payloads: Documents or nested objects to scan
        context: Collection or class name, used in the error message

    Returns:
        Tuple of (observations by field name, number of payloads).

    Raises:
        InputError: If there are no payloads.
    """
    observations: Dict[str, FieldObservation] = {}
    total = 0
    for payload in payloads:
        total += 1
        if not isinstance(payload, Mapping):
            continue
        for field_name, value in payload.items():
            observation = observations.get(field_name)
            if observation is None:
                observation = observations[field_name] = FieldObservation()
            observation.observe(value)
    if total == 0:
        if context:
            raise InputError(f"No payloads to analyze for {context}")
        raise InputError("No payloads to analyze")
    return observations, total


@dataclass(frozen=True)
class FieldSchema:
    """A typed field of a schema node.

    `type` is always the resolved tag. Object fields carry the nested class
    in `class_name`/`nested_schema`; typed lists carry their element tag in
    `item_type` ('map' for lists of objects, with `class_name` and
    `item_schema` naming the element class).
    """
    name: str
    type: str
    is_optional: bool
    is_nullable: bool
    item_type: Optional[str] = None
    class_name: Optional[str] = None
    nested_schema: Optional['SchemaNode'] = None
    item_schema: Optional['SchemaNode'] = None

    @property
    def is_object(self) -> bool:
        return self.nested_schema is not None

    @property
    def is_object_list(self) -> bool:
        return self.item_schema is not None

    @property
    def type_name(self) -> str:
        """Abstract type notation: 'string', 'list<string>', 'list<OrderItem>', 'UserAddress'."""
        if self.nested_schema is not None:
            return self.class_name
        if self.type == LIST and self.item_type:
            return f'list<{self.class_name if self.item_schema is not None else self.item_type}>'
        return self.type

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            'name': self.name,
            'type': self.type_name,
            'optional': self.is_optional,
            'nullable': self.is_nullable,
        }
        if self.nested_schema is not None:
            result['nested_schema'] = self.nested_schema.to_dict()
        if self.item_schema is not None:
            result['item_schema'] = self.item_schema.to_dict()
        return result


@dataclass(frozen=True)
class SchemaNode:
    """A named record: ordered fields plus every nested record found below it."""
    collection_name: str
    class_name: str
    fields: Tuple[FieldSchema, ...]
    nested_classes: Tuple['SchemaNode', ...] = ()

    def get_field(self, name: str) -> Optional[FieldSchema]:
        return next((f for f in self.fields if f.name == name), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'collection_name': self.collection_name,
            'class_name': self.class_name,
            'fields': [f.to_dict() for f in self.fields],
            'nested_classes': [n.class_name for n in self.nested_classes],
        }


def field_sort_key(field_schema: FieldSchema) -> Tuple[bool, str]:
    """Required fields first, then optional ones, each by code point order."""
    return field_schema.is_optional, field_schema.name


class SchemaBuilder:
    """Builds schema node trees from sampled payloads.

    The builder keeps no state between calls. Nested class names are derived
    from the owning class name and the field name, and passed down the
    recursion, so one instance can serve concurrent analyses.
    """

    def analyze(self, collection_name: str, documents: Iterable[Any]) -> SchemaNode:
        """Infers the schema of a collection from its sampled documents.

        Args:
            collection_name: Name of the collection the documents came from
            documents: Sampled documents

        Returns:
            The root schema node, with nested nodes in `nested_classes`.

        Raises:
            InputError: If `documents` is empty.
        """
        logger.info("Analyzing schema for %s...", collection_name)
        node = self.build_node(collection_name, naming.class_name(collection_name), documents)
        logger.info("Detected %d fields", len(node.fields))
        for field_schema in node.fields:
            optional = '?' if field_schema.is_optional else ''
            nullable = '?' if field_schema.is_nullable and not field_schema.is_optional else ''
            logger.debug("  - %s: %s%s%s", field_schema.name, field_schema.type_name, nullable, optional)
        if node.nested_classes:
            logger.info("Detected %d nested classes", len(node.nested_classes))
        return node

    def build_node(self, collection_name: str, class_name: str, payloads: Iterable[Any]) -> SchemaNode:
        """Builds one schema node and, recursively, its nested nodes."""
        observations, total = aggregate_fields(payloads, collection_name)
        nested_classes: List[SchemaNode] = []
        fields = [self.build_field(class_name, field_name, observation, total, nested_classes)
                  for field_name, observation in observations.items()]
        fields.sort(key=field_sort_key)
        return SchemaNode(collection_name, class_name, tuple(fields), tuple(nested_classes))

    def build_field(self, class_name: str, field_name: str, observation: FieldObservation,
                    total: int, nested_classes: List[SchemaNode]) -> FieldSchema:
        """Turns the observation of one field into a field schema.

        Nested nodes discovered for the field are appended to
        `nested_classes`, each followed by its own descendants.
        """
        is_optional = observation.count < total
        is_nullable = is_optional or len(observation.types) > 1
        resolved = resolve_type(observation.types, field_name)

        if resolved == MAP:
            objects = [v for v in observation.values if is_object(v)]
            if objects:
                nested_name = naming.nested_class_name(class_name, field_name)
                nested = self._build_nested(nested_name, objects, nested_classes)
                return FieldSchema(field_name, MAP, is_optional, is_nullable,
                                   class_name=nested_name, nested_schema=nested)
        elif resolved == LIST:
            items = [item for v in observation.values if isinstance(v, (list, tuple)) for item in v]
            if items:
                if all(is_object(item) for item in items):
                    item_name = naming.nested_class_name(class_name, field_name, singular=True)
                    item_schema = self._build_nested(item_name, items, nested_classes)
                    return FieldSchema(field_name, LIST, is_optional, is_nullable, item_type=MAP,
                                       class_name=item_name, item_schema=item_schema)
                item_types = {detect_type(item) for item in items}
                if len(item_types) == 1 and UNTYPED not in item_types:
                    return FieldSchema(field_name, LIST, is_optional, is_nullable, item_type=item_types.pop())
                if len(item_types) > 1:
                    logger.warning("Mixed element types in list field '%s': %s. Using a generic list",
                                   field_name, ', '.join(sorted(item_types)))

        return FieldSchema(field_name, resolved, is_optional, is_nullable)

    def _build_nested(self, nested_name: str, payloads: List[Any], nested_classes: List[SchemaNode]) -> SchemaNode:
        nested = self.build_node(nested_name.lower(), nested_name, payloads)
        nested_classes.append(nested)
        nested_classes.extend(nested.nested_classes)
        return nested


def analyze(collection_name: str, documents: Iterable[Any]) -> SchemaNode:
    """Infers the schema node tree of a collection from sampled documents.

    Raises:
        InputError: If `documents` is empty.
    """
    return SchemaBuilder().analyze(collection_name, documents)


def field_summary(documents: Iterable[Any]) -> List[str]:
    """Returns the sorted distinct top-level field names of the documents."""
    names: Set[str] = set()
    for document in documents:
        if isinstance(document, Mapping):
            names.update(document.keys())
    return sorted(names)
