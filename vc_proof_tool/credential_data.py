# vc_proof_tool/credential_data.py
"""Conversion between raw credential JSON objects and `CredentialContents`."""

import datetime
import logging
from typing import Any, Callable, Dict, List, Optional, Union

from .errors import InvalidInputError, ParseError
from .schemas import CredentialContents, Schema, Status, Subject

logger = logging.getLogger(__name__)

JsonValue = Union[None, bool, int, float, str, List["JsonValue"], Dict[str, "JsonValue"]]
CredentialData = Dict[str, JsonValue]

_STATUS_FIELDS = ("id", "type", "statusPurpose", "statusListIndex", "statusListCredential")


def serialize_contexts(contexts: List[Any]) -> List[Union[str, Dict[str, Any]]]:
    """
    Validates `@context` entries: non-empty strings, or objects with non-empty
    keys and values and no nested `@context`.

    Raises:
        InvalidInputError: On the first invalid entry.
    """
    validated = []
    for i, ctx in enumerate(contexts):
        if ctx is None:
            raise InvalidInputError(f"Context entry at index {i} is null.")
        if isinstance(ctx, str):
            if not ctx:
                raise InvalidInputError(f"Context string at index {i} is empty.")
        elif isinstance(ctx, dict):
            if "@context" in ctx:
                raise InvalidInputError(f"Context object at index {i} must not contain a nested @context.")
            for key, value in ctx.items():
                if not key:
                    raise InvalidInputError(f"Context object at index {i} has an empty key.")
                if value == "":
                    raise InvalidInputError(f"Context object at index {i} has an empty value for key '{key}'.")
        else:
            raise InvalidInputError(
                f"Context entry at index {i} must be a string or an object, got {type(ctx).__name__}."
            )
        validated.append(ctx)
    return validated


def _single_or_list(items: List[Any], serialize: Callable[[Any], Any]) -> Any:
    if len(items) == 1:
        return serialize(items[0])
    return [serialize(item) for item in items]


def _serialize_subject(subject: Subject) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    if subject.id:
        result["id"] = subject.id
    for key, value in subject.custom_fields.items():
        if key != "id":
            result[key] = value
    return result


def _serialize_schema(schema: Schema) -> Dict[str, Any]:
    return {"id": schema.id, "type": schema.type}


def _serialize_status(status: Status) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for field in _STATUS_FIELDS:
        value = getattr(status, field)
        if value not in (None, ""):
            result[field] = value
    return result


def serialize_credential_contents(contents: CredentialContents) -> CredentialData:
    """
    Builds the credential JSON object from structured contents.

    Members are emitted in a fixed order and only when populated. Single-item
    `type`, `credentialSubject`, `credentialSchema` and `credentialStatus` are
    written as a bare value rather than a one-element list.

    Raises:
        InvalidInputError: If none of context, id or issuer is set, or a context
                           entry is invalid.
    """
    if not contents.context and not contents.id and not contents.issuer:
        raise InvalidInputError("Credential contents must have at least one of: context, id, or issuer.")

    data: CredentialData = {}
    if contents.context:
        data["@context"] = serialize_contexts(contents.context)
    if contents.id:
        data["id"] = contents.id
    if contents.types:
        data["type"] = _single_or_list(contents.types, str)
    if contents.subject:
        data["credentialSubject"] = _single_or_list(contents.subject, _serialize_subject)
    if contents.issuer:
        data["issuer"] = contents.issuer
    if contents.schemas:
        data["credentialSchema"] = _single_or_list(contents.schemas, _serialize_schema)
    if contents.credential_status:
        data["credentialStatus"] = _single_or_list(contents.credential_status, _serialize_status)
    if contents.valid_from is not None:
        data["validFrom"] = format_millis(contents.valid_from)
    if contents.valid_until is not None:
        data["validUntil"] = format_millis(contents.valid_until)
    return data


def format_millis(value: datetime.datetime) -> str:
    """`YYYY-MM-DDTHH:MM:SS.fffZ` in UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=datetime.timezone.utc)
    value = value.astimezone(datetime.timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_datetime(value: str) -> Optional[datetime.datetime]:
    """Parses an RFC3339 timestamp into an aware UTC datetime; None if unparseable."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"Ignoring unparseable timestamp: {value}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed.astimezone(datetime.timezone.utc)


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, list):
        return value
    return [value]


def _parse_subject(raw: Any) -> Subject:
    if isinstance(raw, str):
        return Subject(id=raw)
    if isinstance(raw, dict):
        subject_id = raw.get("id")
        custom_fields = {k: v for k, v in raw.items() if k != "id"}
        return Subject(id=subject_id if isinstance(subject_id, str) else None, custom_fields=custom_fields)
    raise ParseError(f"Unsupported credentialSubject format: {type(raw).__name__}")


def _parse_schema(raw: Any) -> Schema:
    if isinstance(raw, str):
        return Schema(id=raw)
    if isinstance(raw, dict):
        schema_id = raw.get("id")
        schema_type = raw.get("type")
        return Schema(
            id=schema_id if isinstance(schema_id, str) else "",
            type=schema_type if isinstance(schema_type, str) else ""
        )
    raise ParseError(f"Unsupported credentialSchema format: {type(raw).__name__}")


def _parse_status(raw: Any) -> Status:
    if not isinstance(raw, dict):
        raise ParseError(f"Unsupported credentialStatus format: {type(raw).__name__}")
    values = {}
    for field in _STATUS_FIELDS:
        value = raw.get(field)
        if isinstance(value, str) or (field == "statusListIndex" and isinstance(value, int)):
            values[field] = value
    return Status(**values)


def issuer_id(data: CredentialData) -> Optional[str]:
    """The issuer DID, whether `issuer` is a string or an object with an `id`."""
    issuer = data.get("issuer")
    if isinstance(issuer, dict):
        issuer = issuer.get("id")
    if isinstance(issuer, str) and issuer:
        return issuer
    return None


def parse_credential_contents(data: CredentialData) -> CredentialContents:
    """
    Structured view of a credential JSON object. Unknown members are ignored.

    Raises:
        ParseError: If a known member has an unsupported shape.
    """
    contents = CredentialContents()

    context = data.get("@context")
    if context is not None:
        for ctx in _as_list(context):
            if not isinstance(ctx, (str, dict)):
                raise ParseError(f"Unsupported @context entry: {type(ctx).__name__}")
            contents.context.append(ctx)

    if isinstance(data.get("id"), str):
        contents.id = data["id"]

    types = data.get("type")
    if types is not None:
        if not isinstance(types, (str, list)):
            raise ParseError(f"Unsupported type field: {type(types).__name__}")
        contents.types = [t for t in _as_list(types) if isinstance(t, str)]

    contents.issuer = issuer_id(data)

    for field, attr in (("validFrom", "valid_from"), ("validUntil", "valid_until")):
        value = data.get(field)
        if isinstance(value, str):
            setattr(contents, attr, parse_datetime(value))

    if data.get("credentialSubject") is not None:
        contents.subject = [_parse_subject(s) for s in _as_list(data["credentialSubject"])]
    if data.get("credentialSchema") is not None:
        contents.schemas = [_parse_schema(s) for s in _as_list(data["credentialSchema"])]
    if data.get("credentialStatus") is not None:
        contents.credential_status = [_parse_status(s) for s in _as_list(data["credentialStatus"])]

    return contents
