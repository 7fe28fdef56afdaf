"""
Store Schema Module

Typed view over Notion page properties. Each store declares which property
holds the business key, quantity, request date and sync flag, and what Notion
property type each one has. Pages are decoded into StoreRecord at the client
boundary so matching and transforms work on named fields, not raw maps.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from notion_relay.constants import (
    DEFAULT_KEY_PROPERTY,
    DEFAULT_QUANTITY_PROPERTY,
    DEFAULT_REQUEST_DATE_PROPERTY,
    DEFAULT_SYNC_FLAG_PROPERTY,
)
from notion_relay.core.exceptions import SchemaError


class PropertyKind(str, Enum):
    """Notion property types understood by the relay."""
    TITLE = "title"
    RICH_TEXT = "rich_text"
    NUMBER = "number"
    DATE = "date"
    CHECKBOX = "checkbox"


TEXT_KINDS = (PropertyKind.TITLE, PropertyKind.RICH_TEXT)


@dataclass(frozen=True)
class FieldSpec:
    """A named, typed page property."""
    name: str
    kind: PropertyKind


@dataclass(frozen=True)
class DateRange:
    """Value of a date property: start plus optional end."""
    start: str
    end: Optional[str] = None
    time_zone: Optional[str] = None

    @classmethod
    def from_notion(cls, value: Optional[Dict[str, Any]]) -> Optional["DateRange"]:
        if not value or not value.get("start"):
            return None
        return cls(start=value["start"], end=value.get("end"), time_zone=value.get("time_zone"))

    def to_notion(self) -> Dict[str, Any]:
        return {"start": self.start, "end": self.end, "time_zone": self.time_zone}


@dataclass(frozen=True)
class StoreSchema:
    """Property layout of one store."""
    key: FieldSpec
    quantity: FieldSpec = FieldSpec(DEFAULT_QUANTITY_PROPERTY, PropertyKind.NUMBER)
    request_date: FieldSpec = FieldSpec(DEFAULT_REQUEST_DATE_PROPERTY, PropertyKind.DATE)
    sync_flag: FieldSpec = FieldSpec(DEFAULT_SYNC_FLAG_PROPERTY, PropertyKind.CHECKBOX)

    def __post_init__(self):
        if self.key.kind not in TEXT_KINDS:
            raise SchemaError(f"Key property must be title or rich_text, got {self.key.kind.value}",
                              property_name=self.key.name)
        expected = (
            (self.quantity, PropertyKind.NUMBER),
            (self.request_date, PropertyKind.DATE),
            (self.sync_flag, PropertyKind.CHECKBOX),
        )
        for spec, kind in expected:
            if spec.kind is not kind:
                raise SchemaError(f"Property '{spec.name}' must be {kind.value}, got {spec.kind.value}",
                                  property_name=spec.name)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_key_kind: PropertyKind) -> "StoreSchema":
        """Build a schema from the JSON config section, e.g.

            {"key": "Part Number", "key_type": "rich_text", "quantity": "Qty"}
        """
        if not isinstance(data, dict):
            raise SchemaError(f"Schema section must be an object, got {type(data).__name__}")
        for option in ("key", "quantity", "request_date", "sync_flag"):
            if option in data and not isinstance(data[option], str):
                raise SchemaError(f"Schema option '{option}' must be a property name string")
        key_kind = PropertyKind(data.get("key_type", default_key_kind.value))
        return cls(
            key=FieldSpec(data.get("key", DEFAULT_KEY_PROPERTY), key_kind),
            quantity=FieldSpec(data.get("quantity", DEFAULT_QUANTITY_PROPERTY), PropertyKind.NUMBER),
            request_date=FieldSpec(data.get("request_date", DEFAULT_REQUEST_DATE_PROPERTY), PropertyKind.DATE),
            sync_flag=FieldSpec(data.get("sync_flag", DEFAULT_SYNC_FLAG_PROPERTY), PropertyKind.CHECKBOX),
        )


# Store A (requests) is keyed by the page title, store B (stock) by a text column
DEFAULT_REQUEST_SCHEMA = StoreSchema(key=FieldSpec(DEFAULT_KEY_PROPERTY, PropertyKind.TITLE))
DEFAULT_STOCK_SCHEMA = StoreSchema(key=FieldSpec(DEFAULT_KEY_PROPERTY, PropertyKind.RICH_TEXT))


@dataclass
class StoreRecord:
    """A page decoded against a StoreSchema."""
    id: str
    key: str = ""
    sync_flag: bool = False
    quantity: Optional[float] = None
    request_date: Optional[DateRange] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)


# =============================================================================
# Decoding
# =============================================================================

def decode_property(prop: Optional[Dict[str, Any]], spec: FieldSpec) -> Any:
    """Decode a raw Notion property value.

    A missing property decodes to the empty value of its kind. A property
    whose type tag differs from the field kind raises SchemaError.
    """
    if not prop:
        return _empty_value(spec.kind)

    prop_type = prop.get("type")
    if prop_type != spec.kind.value:
        raise SchemaError(f"Property '{spec.name}' has type '{prop_type}', expected '{spec.kind.value}'",
                          property_name=spec.name)

    value = prop.get(prop_type)
    if spec.kind in TEXT_KINDS:
        return "".join(segment.get("plain_text", "") for segment in value or [])
    if spec.kind is PropertyKind.DATE:
        return DateRange.from_notion(value)
    if spec.kind is PropertyKind.CHECKBOX:
        return bool(value)
    return value


def _empty_value(kind: PropertyKind) -> Any:
    if kind in TEXT_KINDS:
        return ""
    if kind is PropertyKind.CHECKBOX:
        return False
    return None


def decode_record(page: Dict[str, Any], schema: StoreSchema) -> StoreRecord:
    """Decode a page from a query result into a StoreRecord."""
    if "id" not in page:
        raise SchemaError("Page has no id")

    props = page.get("properties") or {}
    return StoreRecord(
        id=page["id"],
        key=decode_property(props.get(schema.key.name), schema.key),
        sync_flag=decode_property(props.get(schema.sync_flag.name), schema.sync_flag),
        quantity=decode_property(props.get(schema.quantity.name), schema.quantity),
        request_date=decode_property(props.get(schema.request_date.name), schema.request_date),
        raw=page,
    )


# =============================================================================
# Encoding
# =============================================================================

def encode_property(spec: FieldSpec, value: Any) -> Dict[str, Any]:
    """Encode a typed value for a PATCH. None encodes an explicit clear."""
    if spec.kind in TEXT_KINDS:
        segments = [] if value is None else [{"type": "text", "text": {"content": str(value)}}]
        return {spec.kind.value: segments}
    if spec.kind is PropertyKind.DATE:
        if value is not None and not isinstance(value, DateRange):
            raise SchemaError(f"Property '{spec.name}' expects a DateRange", property_name=spec.name)
        return {"date": value.to_notion() if value else None}
    if spec.kind is PropertyKind.CHECKBOX:
        return {"checkbox": bool(value)}
    return {"number": value}


def encode_properties(values: Dict[FieldSpec, Any]) -> Dict[str, Any]:
    """Encode several typed values into a Notion properties map."""
    return {spec.name: encode_property(spec, value) for spec, value in values.items()}


def equals_filter(spec: FieldSpec, value: Any) -> Dict[str, Any]:
    """Build a database query equality filter for a property."""
    return {"property": spec.name, spec.kind.value: {"equals": value}}


@dataclass(frozen=True)
class StoreRef:
    """A database together with the schema its pages follow."""
    label: str
    database_id: str
    schema: StoreSchema
