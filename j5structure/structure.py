"""Building the API structure (packages, services, topics) from a source image."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from .model import (
    API,
    FileDescriptor,
    HttpMethod,
    MessageDescriptor,
    Method,
    MethodDescriptor,
    Package,
    Service,
    ServiceDescriptor,
    ServiceType,
    SourceImage,
    StateQuery,
    StateQueryPart,
    SubPackage,
    Topic,
    TopicMessage,
)
from .naming import PackageID, split_package_parts

_HTTP_BODY = "google.api.HttpBody"
_EMPTY = "google.protobuf.Empty"


class StructureError(ValueError):
    """The descriptors do not describe a valid API structure."""


def _wrap(err: Exception, *path: str) -> StructureError:
    return StructureError(f"{'.'.join(path)}: {err}")


class DescriptorSet:
    """A linked set of files with resolvable message types."""

    def __init__(self, files: Iterable[FileDescriptor]) -> None:
        self._files: list[FileDescriptor] = []
        self._messages: dict[str, tuple[str, MessageDescriptor]] = {}
        names: set[str] = set()

        for file in files:
            if file.name in names:
                raise StructureError(f"file {file.name!r} already registered")
            names.add(file.name)
            self._files.append(file)
            for message in file.messages:
                full_name = _join(file.package, message.name)
                if full_name in self._messages:
                    raise StructureError(f"message {full_name!r} already registered")
                self._messages[full_name] = (file.package, message)

        for file in self._files:
            for dependency in file.dependencies:
                if dependency not in names:
                    raise StructureError(
                        f"file {file.name!r}: dependency {dependency!r} not found"
                    )
            for service in file.services:
                for method in service.methods:
                    for type_name in (method.input_type, method.output_type):
                        if self._resolve(type_name, file.package) is None:
                            raise StructureError(
                                f"method {_join(file.package, service.name)}.{method.name}: "
                                f"message {type_name!r} not found"
                            )

    def find_message(self, full_name: str) -> MessageDescriptor | None:
        """The message with this fully qualified name, or None."""
        entry = self._messages.get(full_name.lstrip("."))
        return entry[1] if entry else None

    def services(self) -> Iterator[ServiceDescriptor]:
        """Every service of every file, in file order."""
        for file in self._files:
            yield from file.services

    def file_of(self, service: ServiceDescriptor) -> FileDescriptor:
        """The file that declares the service."""
        for file in self._files:
            if any(candidate is service for candidate in file.services):
                return file
        raise StructureError(f"service {service.name!r} is not in this set")

    def _resolve(self, type_name: str, scope: str) -> str | None:
        """Resolve a possibly relative type name as protobuf scoping does."""
        if type_name.startswith("."):
            name = type_name[1:]
            return name if name in self._messages else None
        parts = scope.split(".") if scope else []
        while True:
            candidate = _join(".".join(parts), type_name)
            if candidate in self._messages:
                return candidate
            if not parts:
                return None
            parts.pop()

    def _message(self, type_name: str, scope: str) -> tuple[str, str, MessageDescriptor]:
        full_name = self._resolve(type_name, scope)
        if full_name is None:
            raise StructureError(f"message {type_name!r} not found")
        package, message = self._messages[full_name]
        return full_name, package, message


def _join(prefix: str, name: str) -> str:
    return f"{prefix}.{name}" if prefix else name


class _PackageSet:
    def __init__(self, image: SourceImage) -> None:
        self.packages = [
            Package(name=pkg.name, label=pkg.label) for pkg in image.packages
        ]
        self.wanted = {pkg.name for pkg in image.packages}

    def get_package(self, name: str) -> Package:
        for pkg in self.packages:
            if pkg.name == name:
                return pkg
        pkg = Package(name=name, indirect=True)
        self.packages.append(pkg)
        return pkg

    def get_sub_package(self, package_id: PackageID) -> SubPackage:
        if package_id.sub_package is None:
            raise StructureError("missing sub-package name")
        parent = self.get_package(package_id.package_name)
        for sub in parent.sub_packages:
            if sub.name == package_id.sub_package:
                return sub
        sub = SubPackage(name=package_id.sub_package)
        parent.sub_packages.append(sub)
        return sub

    def add_structure(self, files: DescriptorSet) -> None:
        for service in list(files.services()):
            file = files.file_of(service)
            package_id = split_package_parts(file.package)
            if package_id.package_name not in self.wanted:
                continue

            try:
                pkg = self.get_sub_package(package_id)
            except StructureError as err:
                raise _wrap(err, "service", service.name) from err

            name = service.name
            if name.endswith(("Service", "Sandbox")):
                try:
                    built = build_service(service, files)
                except StructureError as err:
                    raise _wrap(err, "service", name) from err
                pkg.services.append(built)
            elif name.endswith("Events"):
                continue
            elif name.endswith("Topic"):
                try:
                    topic = build_topic(service, files)
                except StructureError as err:
                    raise _wrap(err, _join(file.package, name)) from err
                pkg.topics.append(topic)
            else:
                raise StructureError(f"unsupported service name {name!r}")


def api_from_image(image: SourceImage) -> API:
    """Build the package, service and topic structure of an image's packages."""
    package_set = _PackageSet(image)
    try:
        files = DescriptorSet(image.files)
    except StructureError as err:
        raise StructureError(f"new files: {err}") from err
    package_set.add_structure(files)
    return API(packages=package_set.packages)


def build_service(src: ServiceDescriptor, files: DescriptorSet) -> Service:
    """Build an API service from a service descriptor."""
    package = files.file_of(src).package
    service = Service(name=src.name)

    options = src.options
    if options is not None:
        if options.state_query is not None and options.state_command is not None:
            raise StructureError("unsupported state service type: both query and command")
        if options.state_query is not None:
            service.type = ServiceType(state_entity_query=options.state_query)
        elif options.state_command is not None:
            service.type = ServiceType(state_entity_command=options.state_command)
        service.default_auth = options.default_auth
        service.audience = list(options.audience)

    for method in src.methods:
        try:
            built = build_method(service, method, package, files)
        except StructureError as err:
            raise StructureError(
                f"build method {package}.{src.name}.{method.name}: {err}"
            ) from err
        service.methods.append(built)
    return service


def build_method(
    service: Service, method: MethodDescriptor, package: str, files: DescriptorSet
) -> Method:
    """Build an API method of ``service``; ``package`` is the method's package."""
    _, input_package, input_msg = files._message(method.input_type, package)
    expected_input = method.name + "Request"
    if input_package != package or input_msg.name != expected_input:
        raise StructureError(
            f"j5 service input message must be {expected_input!r}, got {input_msg.name!r}"
        )

    output_full, _, output_msg = files._message(method.output_type, package)
    expected_output = method.name + "Response"
    if output_msg.name != expected_output and output_full != _HTTP_BODY:
        raise StructureError(
            f"j5 service output message must be {expected_output!r}, got {output_full!r}"
        )

    rule = method.http
    if rule is None:
        raise StructureError("missing http rule")
    if rule.method is None:
        raise StructureError("unsupported http method")

    path_parts = []
    for part in rule.path.split("/"):
        if part and part[0] == "{" and part[-1] == "}":
            field_name = part[1:-1]
            input_field = input_msg.field_by_name(field_name)
            if input_field is None:
                raise StructureError(f"path field {field_name!r} not found in input")
            part = ":" + input_field.json_name()
        elif any(char in part for char in "{}*:"):
            raise StructureError(f"invalid path part {part!r}")
        path_parts.append(part)

    built = Method(
        name=method.name,
        full_grpc_name=f"/{_join(package, service.name)}/{method.name}",
        request_schema=input_msg.name,
        response_schema=output_msg.name,
        http_method=rule.method,
        http_path="/".join(path_parts),
    )

    options = method.options
    if options is not None:
        built.auth = options.auth
        query_opts = options.state_query
        if query_opts is not None:
            entity = service.type.state_entity_query if service.type else None
            if entity is None:
                raise StructureError(
                    f"service {service.name!r} is not a state query service, "
                    "but has state query annotations."
                )
            if query_opts.get:
                part_kind = StateQueryPart.GET
            elif query_opts.list:
                part_kind = StateQueryPart.LIST
            elif query_opts.list_events:
                part_kind = StateQueryPart.LIST_EVENTS
            else:
                raise StructureError(f"invalid state query part {query_opts}")
            built.method_type = StateQuery(entity_name=entity, query_part=part_kind)

    return built


def build_topic(src: ServiceDescriptor, files: DescriptorSet) -> Topic:
    """Build a topic from a service descriptor whose name ends in Topic."""
    package = files.file_of(src).package
    topic = Topic(name=src.name)
    for method in src.methods:
        try:
            message = build_topic_method(method, package, files)
        except StructureError as err:
            raise _wrap(err, "method", method.name) from err
        topic.messages.append(message)
    return topic


def build_topic_method(
    method: MethodDescriptor, package: str, files: DescriptorSet
) -> TopicMessage:
    """Build a topic message; ``package`` is the method's package."""
    _, input_package, input_msg = files._message(method.input_type, package)
    expected = method.name + "Message"
    if input_package != package or input_msg.name != expected:
        raise StructureError(
            f"j5 topic input message must be {expected} in the same package"
        )
    output_full, _, _ = files._message(method.output_type, package)
    if output_full != _EMPTY:
        raise StructureError(
            f"j5 topic output message must be google.protobuf.Empty, got {output_full!r}"
        )
    service_name = next(
        (svc.name for svc in files.services() if any(m is method for m in svc.methods)),
        None,
    )
    if service_name is None:
        raise StructureError(f"method {method.name!r} is not in this set")
    return TopicMessage(
        name=method.name,
        schema=input_msg.name,
        full_grpc_name=f"{_join(package, service_name)}.{method.name}",
    )


__all__ = [
    "DescriptorSet",
    "HttpMethod",
    "StructureError",
    "api_from_image",
    "build_method",
    "build_service",
    "build_topic",
    "build_topic_method",
]