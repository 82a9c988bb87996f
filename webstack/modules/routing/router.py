"""
Validated route registration.

A route pairs a handler with optional pydantic models for its path
params, query string, headers and body. Input failing validation never
reaches the handler.

Header names reach the headers model both as sent (``x-token``) and with
underscores (``x_token``), so plain field names and hyphenated aliases
both match. Repeated query keys and headers are passed as a list only to
fields typed as a sequence; other fields get the last value.
"""

import inspect
import json
import logging
import re
import types
from dataclasses import dataclass
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Set,
    Type,
    Union,
    get_args,
    get_origin,
)

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

logger = logging.getLogger(__name__)

VALIDATION_TARGETS = ("params", "query", "headers", "body")
FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

Handler = Callable[[Request], Union[Awaitable[Any], Any]]

_COLON_PARAM = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")
_SEQUENCE_TYPES = (list, tuple, set, frozenset)
_UNION_TYPES = (Union, getattr(types, "UnionType", Union))


@dataclass
class Validated:
    """Validated request input, one model instance per declared target."""
    params: Optional[BaseModel] = None
    query: Optional[BaseModel] = None
    headers: Optional[BaseModel] = None
    body: Optional[BaseModel] = None


class InvalidBody(ValueError):
    """Request body could not be decoded."""


class RequestValidationFailed(Exception):
    def __init__(self, errors: List[Dict[str, Any]]):
        self.errors = errors
        super().__init__("Request validation failed")


def to_route_path(path: str) -> str:
    """Accept ``/users/:id`` style paths alongside ``/users/{id}``."""
    return _COLON_PARAM.sub(r"{\1}", path)


def _is_sequence(annotation: Any) -> bool:
    if get_origin(annotation) in _UNION_TYPES:
        members = [arg for arg in get_args(annotation) if arg is not type(None)]
        return any(_is_sequence(member) for member in members)
    return annotation in _SEQUENCE_TYPES or get_origin(annotation) in _SEQUENCE_TYPES


def _sequence_keys(model: Type[BaseModel]) -> Set[str]:
    keys = set()
    for name, field in model.model_fields.items():
        if _is_sequence(field.annotation):
            keys.add(name)
            if field.alias:
                keys.add(field.alias)
    return keys


def _collect(model: Type[BaseModel], multi) -> Dict[str, Any]:
    sequences = _sequence_keys(model)
    data: Dict[str, Any] = {}
    for key in dict.fromkeys(multi.keys()):
        values = multi.getlist(key)
        data[key] = values if key in sequences else values[-1]
    return data


def _header_input(model: Type[BaseModel], headers) -> Dict[str, Any]:
    data = _collect(model, headers)
    sequences = _sequence_keys(model)
    for key in list(data):
        name = key.replace("-", "_")
        if name != key and name not in data:
            values = headers.getlist(key)
            data[name] = values if name in sequences else values[-1]
    return data


async def _raw_input(request: Request, target: str, model: Type[BaseModel]) -> Any:
    if target == "params":
        return dict(request.path_params)
    if target == "query":
        return _collect(model, request.query_params)
    if target == "headers":
        return _header_input(model, request.headers)

    content_type = request.headers.get("content-type", "").split(";")[0].strip()
    if content_type in FORM_TYPES:
        return dict(await request.form())

    body = await request.body()
    if not body:
        return None
    try:
        return json.loads(body)
    except ValueError as e:
        raise InvalidBody(f"Invalid JSON body: {e}") from e


class ValidatedEndpoint:
    """Request endpoint running validation before the handler."""

    def __init__(self, handler: Handler, validate: Optional[Mapping[str, Type[BaseModel]]] = None):
        validate = dict(validate or {})
        unknown = set(validate) - set(VALIDATION_TARGETS)
        if unknown:
            raise ValueError(
                f"Unknown validation targets: {', '.join(sorted(unknown))}. "
                f"Expected any of: {', '.join(VALIDATION_TARGETS)}"
            )
        self.handler = handler
        self.validate = validate

    async def validate_request(self, request: Request) -> Validated:
        validated: Dict[str, BaseModel] = {}
        errors: List[Dict[str, Any]] = []

        for target in VALIDATION_TARGETS:
            model = self.validate.get(target)
            if model is None:
                continue
            raw = await _raw_input(request, target, model)
            try:
                validated[target] = model.model_validate(raw)
            except ValidationError as e:
                errors.append({"in": target, "errors": e.errors(include_url=False)})

        if errors:
            raise RequestValidationFailed(errors)
        return Validated(**validated)

    async def handle(self, request: Request) -> Response:
        try:
            request.state.validated = await self.validate_request(request)
        except RequestValidationFailed as e:
            return JSONResponse(
                status_code=400,
                content=jsonable_encoder({"error": "Validation failed", "details": e.errors}),
            )
        except InvalidBody as e:
            return JSONResponse(status_code=400, content={"error": str(e)})

        if inspect.iscoroutinefunction(self.handler):
            result = await self.handler(request)
        else:
            # Plain functions may block, keep them off the event loop
            result = await run_in_threadpool(self.handler, request)
            if inspect.isawaitable(result):
                result = await result

        if isinstance(result, Response):
            return result
        if result is None:
            return Response(status_code=204)
        return JSONResponse(content=jsonable_encoder(result))


class RouteTable:
    """Collects validated routes for the dispatch stage."""

    def __init__(self):
        self.routes: List[Route] = []

    def __len__(self) -> int:
        return len(self.routes)

    def add(
        self,
        method: Union[str, List[str]],
        path: str,
        validate: Optional[Mapping[str, Type[BaseModel]]],
        handler: Handler,
    ) -> Route:
        methods = [method] if isinstance(method, str) else list(method)
        route = Route(
            to_route_path(path),
            endpoint=ValidatedEndpoint(handler, validate).handle,
            methods=[m.upper() for m in methods],
            name=getattr(handler, "__name__", None),
        )
        self.routes.append(route)
        return route
