"""
Mapping between entity dataclasses and Firestore records.

Attribute names are snake_case in memory and camelCase on the wire, enums are
stored by value and datetimes are written as-is so the client library stores
them as native Firestore timestamps. Decoding is strict: a record that does not
fit the entity raises DecodeError instead of producing a partial entity.
"""

import dataclasses
import typing
from datetime import datetime, timezone
from enum import Enum

from pydantic.alias_generators import to_camel

from constants import PROPERTIES_PATH, TENANTS_PATH, TRANSACTIONS_PATH, USERS_PATH
from models.entities import Property, Tenant, Transaction, UserProfile
from services.errors import DecodeError


def _unwrap_optional(hint):
    if typing.get_origin(hint) is typing.Union:
        args = [arg for arg in typing.get_args(hint) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return hint


def to_datetime(value) -> datetime:
    """Turns a Firestore timestamp (or a legacy ISO string) into a plain aware datetime."""
    if isinstance(value, datetime):
        # DatetimeWithNanoseconds is a datetime subclass; copy to the base type.
        result = datetime(
            value.year, value.month, value.day,
            value.hour, value.minute, value.second, value.microsecond,
            tzinfo=value.tzinfo,
        )
    elif isinstance(value, str):
        result = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"expected a timestamp, got {type(value).__name__}")
    if result.tzinfo is None:
        result = result.replace(tzinfo=timezone.utc)
    return result


class EntityConverter:
    def __init__(self, entity_cls, path: str, renames: dict = None):
        self.entity_cls = entity_cls
        self.path = path
        renames = renames or {}
        hints = typing.get_type_hints(entity_cls)
        self._fields = [f for f in dataclasses.fields(entity_cls) if f.name != "id"]
        self._wire_names = {f.name: renames.get(f.name, to_camel(f.name)) for f in self._fields}
        self._types = {f.name: _unwrap_optional(hints[f.name]) for f in self._fields}
        self._required = {
            f.name for f in self._fields
            if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING
        }

    def wire_name(self, attribute: str) -> str:
        try:
            return self._wire_names[attribute]
        except KeyError:
            raise ValueError(f"{self.entity_cls.__name__} has no field '{attribute}'") from None

    def to_wire(self, entity) -> dict:
        record = {}
        for f in self._fields:
            value = getattr(entity, f.name)
            if value is not None:
                record[self._wire_names[f.name]] = self._encode(value)
        return record

    def to_wire_fields(self, changes: dict) -> dict:
        """Encodes a partial change set for a merge write. None clears a field."""
        return {
            self.wire_name(attribute): None if value is None else self._encode(value)
            for attribute, value in changes.items()
        }

    def from_wire(self, key: str, record: dict):
        if record is None:
            raise DecodeError(self.path, key, "document has no data")
        values = {"id": key}
        for f in self._fields:
            wire_name = self._wire_names[f.name]
            raw = record.get(wire_name)
            if raw is None:
                if f.name in self._required:
                    raise DecodeError(self.path, key, f"'{wire_name}' is missing")
                continue
            try:
                values[f.name] = self._decode(self._types[f.name], raw)
            except (TypeError, ValueError) as e:
                raise DecodeError(self.path, key, f"'{wire_name}': {e}") from e
        return self.entity_cls(**values)

    @staticmethod
    def _encode(value):
        if isinstance(value, Enum):
            return value.value
        return value

    @staticmethod
    def _decode(target, raw):
        if target is datetime:
            return to_datetime(raw)
        if isinstance(target, type) and issubclass(target, Enum):
            return target(raw)
        if target is float:
            if isinstance(raw, bool) or not isinstance(raw, (int, float)):
                raise TypeError(f"expected a number, got {type(raw).__name__}")
            return raw
        if target is int:
            if isinstance(raw, bool) or not isinstance(raw, int):
                raise TypeError(f"expected an integer, got {type(raw).__name__}")
            return raw
        if target is str:
            if not isinstance(raw, str):
                raise TypeError(f"expected a string, got {type(raw).__name__}")
            return raw
        return raw


tenant_converter = EntityConverter(Tenant, TENANTS_PATH)
property_converter = EntityConverter(Property, PROPERTIES_PATH)
transaction_converter = EntityConverter(Transaction, TRANSACTIONS_PATH, renames={"direction": "type"})
user_profile_converter = EntityConverter(UserProfile, USERS_PATH)
