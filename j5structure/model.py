"""Descriptor inputs and API structure outputs used by the structure builder."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any


class HttpMethod(enum.Enum):
    """HTTP verb bound to an API method."""

    GET = "HTTP_METHOD_GET"
    POST = "HTTP_METHOD_POST"
    PUT = "HTTP_METHOD_PUT"
    DELETE = "HTTP_METHOD_DELETE"
    PATCH = "HTTP_METHOD_PATCH"


class StateQueryPart(enum.Enum):
    """Which part of a state query a method implements."""

    GET = "STATE_QUERY_PART_GET"
    LIST = "STATE_QUERY_PART_LIST"
    LIST_EVENTS = "STATE_QUERY_PART_LIST_EVENTS"


# ---------------------------------------------------------------------------
# Descriptor side: what a source image holds.
# ---------------------------------------------------------------------------


@dataclass
class HttpRule:
    """HTTP binding of a method; ``method`` is None for unsupported patterns."""

    method: HttpMethod | None
    path: str = ""


@dataclass
class FieldDescriptor:
    """A field of a message."""

    name: str
    number: int
    type: str = "string"
    type_name: str | None = None
    explicit_json_name: str | None = None

    def json_name(self) -> str:
        """The field's JSON name: explicit if set, otherwise lower camel case."""
        if self.explicit_json_name is not None:
            return self.explicit_json_name
        out: list[str] = []
        after_underscore = False
        for char in self.name:
            if char != "_":
                if after_underscore and "a" <= char <= "z":
                    char = char.upper()
                out.append(char)
            after_underscore = char == "_"
        return "".join(out)


@dataclass
class MessageDescriptor:
    """A message type declared in a file."""

    name: str
    fields: list[FieldDescriptor] = field(default_factory=list)

    def field_by_name(self, name: str) -> FieldDescriptor | None:
        """The field with the given proto name, or None."""
        return next((f for f in self.fields if f.name == name), None)


@dataclass
class StateQueryOptions:
    """State query annotation on a method."""

    get: bool = False
    list: bool = False
    list_events: bool = False


@dataclass
class MethodOptions:
    """Method-level annotations."""

    auth: Any = None
    state_query: StateQueryOptions | None = None


@dataclass
class ServiceOptions:
    """Service-level annotations; at most one of the state entities is set."""

    state_query: str | None = None
    state_command: str | None = None
    default_auth: Any = None
    audience: list[str] = field(default_factory=list)


@dataclass
class MethodDescriptor:
    """An RPC method; input and output are fully qualified message names."""

    name: str
    input_type: str
    output_type: str
    http: HttpRule | None = None
    options: MethodOptions | None = None


@dataclass
class ServiceDescriptor:
    """A service declared in a file."""

    name: str
    methods: list[MethodDescriptor] = field(default_factory=list)
    options: ServiceOptions | None = None


@dataclass
class FileDescriptor:
    """A proto file with its package, messages and services."""

    name: str
    package: str
    dependencies: list[str] = field(default_factory=list)
    messages: list[MessageDescriptor] = field(default_factory=list)
    services: list[ServiceDescriptor] = field(default_factory=list)


@dataclass
class PackageInfo:
    """A package requested by the source image."""

    name: str
    label: str = ""
    prose: str = ""


@dataclass
class ProseFile:
    """A prose document shipped with the image."""

    path: str
    content: bytes | str = b""


@dataclass
class SourceImage:
    """Files, requested packages and prose of a source bundle."""

    files: list[FileDescriptor] = field(default_factory=list)
    packages: list[PackageInfo] = field(default_factory=list)
    prose: list[ProseFile] = field(default_factory=list)

    def package_info(self, name: str) -> PackageInfo | None:
        """The requested package with this name, or None."""
        return next((p for p in self.packages if p.name == name), None)


# ---------------------------------------------------------------------------
# API side: what the builder produces.
# ---------------------------------------------------------------------------


@dataclass
class StateQuery:
    """Method type of a state query method."""

    entity_name: str
    query_part: StateQueryPart


@dataclass
class ServiceType:
    """State entity kind of a service; exactly one entity name is set."""

    state_entity_query: str | None = None
    state_entity_command: str | None = None

    def __post_init__(self) -> None:
        if (self.state_entity_query is None) == (self.state_entity_command is None):
            raise ValueError("service type needs exactly one of query or command entity")


@dataclass
class Method:
    """A built API method."""

    name: str
    full_grpc_name: str
    request_schema: str
    response_schema: str
    http_method: HttpMethod
    http_path: str
    auth: Any = None
    method_type: StateQuery | None = None


@dataclass
class Service:
    """A built API service."""

    name: str
    methods: list[Method] = field(default_factory=list)
    type: ServiceType | None = None
    default_auth: Any = None
    audience: list[str] = field(default_factory=list)


@dataclass
class TopicMessage:
    """A message published on a topic."""

    name: str
    schema: str
    full_grpc_name: str


@dataclass
class Topic:
    """A built topic."""

    name: str
    messages: list[TopicMessage] = field(default_factory=list)


@dataclass
class SubPackage:
    """A sub-package below a versioned package."""

    name: str
    services: list[Service] = field(default_factory=list)
    topics: list[Topic] = field(default_factory=list)
    schemas: dict[str, Any] = field(default_factory=dict)


@dataclass
class Package:
    """A versioned API package."""

    name: str
    label: str = ""
    prose: str = ""
    indirect: bool = False
    sub_packages: list[SubPackage] = field(default_factory=list)
    schemas: dict[str, Any] = field(default_factory=dict)


@dataclass
class API:
    """The whole built API."""

    packages: list[Package] = field(default_factory=list)