"""
Strict JSON request decoding and JSON response helpers.

Decoding enforces what ordinary parsers let slide: a size ceiling, exactly
one document per body, and (by default) no keys the target model does not
declare.
"""

import json
import logging
import typing
from collections import abc
from typing import Annotated, Any, Dict, Mapping, Optional, Type, TypeVar

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, AliasPath, BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from core.config import UploadConfig
from models.response import ResponseEnvelope
from utils.error_handlers import (
    AppError,
    InvalidJSONError,
    ResponseEncodingError,
    TrailingDataError,
    UnknownFieldError,
)
from utils.streams import read_limited

logger = logging.getLogger(__name__)

T = TypeVar("T")

_JSON_WHITESPACE = " \t\n\r"


def _reject_constant(name: str):
    raise ValueError(f"{name} is not valid JSON")


_decoder = json.JSONDecoder(parse_constant=_reject_constant)


def _alias_keys(alias: Any) -> Dict[str, bool]:
    """Top-level keys a validation alias reads, and whether each holds the whole value"""
    if isinstance(alias, str):
        return {alias: True}
    if isinstance(alias, AliasPath):
        first = alias.path[0] if alias.path else None
        return {first: len(alias.path) == 1} if isinstance(first, str) else {}
    if isinstance(alias, AliasChoices):
        keys: Dict[str, bool] = {}
        for choice in alias.choices:
            for key, whole in _alias_keys(choice).items():
                keys[key] = keys.get(key, False) or whole
        return keys
    return {}


def _field_keys(model: Type[BaseModel]) -> Dict[str, Any]:
    """
    Map every JSON key the model accepts to the annotation its value is
    checked against. Keys only reached through an AliasPath map to None:
    their value is a container around the field, not the field itself.
    """
    config = model.model_config
    by_name = config.get("populate_by_name") or config.get("validate_by_name")
    keys: Dict[str, Any] = {}
    for name, info in model.model_fields.items():
        alias = info.validation_alias if info.validation_alias is not None else info.alias
        if alias is None or by_name:
            keys[name] = info.annotation
        for key, whole in _alias_keys(alias).items():
            keys[key] = info.annotation if whole else None
    return keys


def _involves_model(annotation: Any) -> bool:
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return True
    return any(_involves_model(arg) for arg in typing.get_args(annotation))


def _walk(annotation: Any, value: Any, path: str) -> Optional[str]:
    """Find an unknown key in `value` as seen through a field annotation"""
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return find_unknown_field(annotation, value, path)

    origin = typing.get_origin(annotation)
    args = typing.get_args(annotation)
    if origin is Annotated:
        return _walk(args[0], value, path)
    if origin in (list, tuple, set, frozenset, abc.Sequence) and isinstance(value, list):
        for index, item in enumerate(value):
            for arg in args:
                unknown = _walk(arg, item, f"{path}[{index}]")
                if unknown:
                    return unknown
        return None
    if origin in (dict, abc.Mapping) and isinstance(value, dict) and len(args) == 2:
        for key, item in value.items():
            unknown = _walk(args[1], item, f"{path}.{key}")
            if unknown:
                return unknown
        return None

    # Union: only unknown if no model-bearing member accepts it
    members = [arg for arg in args if _involves_model(arg)]
    if not members:
        return None
    results = [_walk(arg, value, path) for arg in members]
    if all(results):
        return results[0]
    return None


def find_unknown_field(model: Type[BaseModel], value: Any, path: str = "") -> Optional[str]:
    """
    Return the dotted path of the first key in `value` that `model` does not
    declare, or None. Nested models are checked too, also inside lists and
    dict values.
    """
    if not isinstance(value, dict):
        return None

    keys = _field_keys(model)
    for key, item in value.items():
        field_path = f"{path}.{key}" if path else key
        if key not in keys:
            return field_path
        if keys[key] is None:
            continue
        unknown = _walk(keys[key], item, field_path)
        if unknown:
            return unknown
    return None


def _describe_validation_error(exc: PydanticValidationError) -> AppError:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    if first.get("type") == "extra_forbidden":
        return UnknownFieldError(location)
    if first.get("type") == "missing":
        return InvalidJSONError(
            f"body is missing required field {location!r}",
            details={"field": location}
        )
    if location:
        return InvalidJSONError(
            f"body contains incorrect JSON type for field {location!r}",
            details={"field": location, "reason": first.get("msg")}
        )
    return InvalidJSONError(
        "body contains incorrect JSON type",
        details={"reason": first.get("msg")}
    )


async def read_json(request: Request, target: Type[T], config: Optional[UploadConfig] = None) -> T:
    """
    Decode a request body holding exactly one JSON document into `target`.

    Args:
        request: Incoming request
        target: Pydantic model class (or any type a TypeAdapter accepts)
        config: Size limit and unknown-field policy; defaults apply when omitted

    Returns:
        A validated instance of `target`

    Raises:
        BodyTooLargeError: Body exceeded max_json_size
        InvalidJSONError: Empty body, bad syntax, bad encoding or wrong types
        UnknownFieldError: Undeclared key while unknown fields are rejected
        TrailingDataError: Anything but whitespace after the first value
    """
    config = config or UploadConfig()
    body = await read_limited(request, config.max_json_size)

    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidJSONError(f"body is not valid UTF-8 (at byte {exc.start})") from exc

    start = len(text) - len(text.lstrip(_JSON_WHITESPACE))
    if start == len(text):
        raise InvalidJSONError("body must not be empty")

    try:
        value, end = _decoder.raw_decode(text, start)
    except json.JSONDecodeError as exc:
        raise InvalidJSONError(
            f"body contains badly-formed JSON (at character {exc.pos})",
            details={"position": exc.pos}
        ) from exc
    except ValueError as exc:
        raise InvalidJSONError(f"body contains badly-formed JSON: {exc}") from exc
    except RecursionError as exc:
        raise InvalidJSONError("body is nested too deeply") from exc

    if text[end:].strip(_JSON_WHITESPACE):
        raise TrailingDataError()

    is_model = isinstance(target, type) and issubclass(target, BaseModel)
    if is_model and not config.allow_unknown_json_fields:
        try:
            unknown = find_unknown_field(target, value)
        except RecursionError as exc:
            raise InvalidJSONError("body is nested too deeply") from exc
        if unknown:
            raise UnknownFieldError(unknown)

    document = text[start:end]
    try:
        if is_model:
            result = target.model_validate_json(document, strict=True)
        else:
            result = TypeAdapter(target).validate_json(document, strict=True)
    except PydanticValidationError as exc:
        raise _describe_validation_error(exc) from exc

    logger.debug(f"Decoded {len(body)} byte JSON body into {getattr(target, '__name__', target)}")
    return result


def write_json(
    status_code: int,
    payload: Any,
    headers: Optional[Mapping[str, str]] = None
) -> JSONResponse:
    """
    Build a JSON response.

    Caller headers are applied first; Content-Type is always
    application/json.

    Raises:
        ResponseEncodingError: Payload cannot be serialised
    """
    extra_headers = {
        name: value for name, value in (headers or {}).items()
        if name.lower() != "content-type"
    }
    try:
        return JSONResponse(
            content=jsonable_encoder(payload),
            status_code=status_code,
            headers=extra_headers,
        )
    except (TypeError, ValueError) as exc:
        raise ResponseEncodingError(f"could not encode response payload: {exc}") from exc


def error_json(err: Exception, status_code: Optional[int] = None) -> JSONResponse:
    """
    Build an error envelope response for `err`.

    Status is `status_code` when given, else the AppError's own status,
    else 400.
    """
    if isinstance(err, AppError):
        message = err.user_message
        status_code = status_code or err.status_code
    else:
        message = str(err)
    envelope = ResponseEnvelope(error=True, message=message)
    return write_json(status_code or 400, envelope)
