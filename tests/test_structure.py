import pytest

from j5structure.model import (
    FieldDescriptor,
    FileDescriptor,
    HttpMethod,
    HttpRule,
    MessageDescriptor,
    MethodDescriptor,
    MethodOptions,
    PackageInfo,
    ServiceDescriptor,
    ServiceOptions,
    SourceImage,
    StateQueryOptions,
    StateQueryPart,
)
from j5structure.naming import PackageNameError
from j5structure.structure import (
    DescriptorSet,
    StructureError,
    api_from_image,
    build_service,
    build_topic,
)


def http_method(name, rule, options=None):
    return MethodDescriptor(
        name=name,
        input_type=f"{name}Request",
        output_type=f"{name}Response",
        http=rule,
        options=options,
    )


def referenced_file():
    return FileDescriptor(
        name="test/v1/test.proto",
        package="test.v1",
        messages=[
            MessageDescriptor(
                name="Referenced",
                fields=[
                    FieldDescriptor(name="field_1", number=1),
                    FieldDescriptor(
                        name="enum", number=3, type="enum", type_name=".test.v1.TestEnum"
                    ),
                ],
            )
        ],
    )


def service_file(service, messages=None, package="test.v1.service", deps=None):
    if messages is None:
        messages = [
            MessageDescriptor(
                name="TestRequest",
                fields=[
                    FieldDescriptor(name="path_field", number=1),
                    FieldDescriptor(name="query_field", number=2),
                ],
            ),
            MessageDescriptor(
                name="TestResponse",
                fields=[
                    FieldDescriptor(name="test_field", number=1),
                    FieldDescriptor(
                        name="msg", number=2, type="message", type_name=".test.v1.Referenced"
                    ),
                ],
            ),
        ]
    return FileDescriptor(
        name="test/v1/service/service.proto",
        package=package,
        dependencies=["test/v1/test.proto"] if deps is None else deps,
        messages=messages,
        services=[service],
    )


def image_with(service, **kwargs):
    return SourceImage(
        packages=[PackageInfo(name="test.v1", label="Test")],
        files=[service_file(service, **kwargs), referenced_file()],
    )


def sample_image():
    service = ServiceDescriptor(
        name="TestService",
        methods=[http_method("Test", HttpRule(HttpMethod.GET, "/test/{path_field}"))],
    )
    return image_with(service)


def test_build_path_reflect_direct():
    api = api_from_image(sample_image())
    assert len(api.packages) == 1
    pkg = api.packages[0]
    assert pkg.name == "test.v1"
    assert pkg.label == "Test"
    assert pkg.indirect is False
    assert len(pkg.sub_packages) == 1
    sub = pkg.sub_packages[0]
    assert sub.name == "service"
    assert len(sub.services) == 1
    service = sub.services[0]
    assert service.name == "TestService"
    assert len(service.methods) == 1
    method = service.methods[0]
    assert method.name == "Test"
    assert method.http_path == "/test/:pathField"
    assert method.full_grpc_name == "/test.v1.service.TestService/Test"
    assert method.http_method is HttpMethod.GET
    assert method.request_schema == "TestRequest"
    assert method.response_schema == "TestResponse"
    assert method.method_type is None


def test_events_services_are_ignored():
    service = ServiceDescriptor(name="TestEvents", methods=[])
    api = api_from_image(image_with(service))
    assert api.packages[0].sub_packages[0].services == []
    assert api.packages[0].sub_packages[0].topics == []


def test_unwanted_package_is_skipped():
    image = sample_image()
    image.packages = [PackageInfo(name="other.v1")]
    api = api_from_image(image)
    assert [p.name for p in api.packages] == ["other.v1"]
    assert api.packages[0].sub_packages == []


def test_unsupported_service_name():
    service = ServiceDescriptor(name="TestThing", methods=[])
    with pytest.raises(StructureError, match="unsupported service name"):
        api_from_image(image_with(service))


def test_service_in_root_package_needs_sub_package():
    service = ServiceDescriptor(name="TestService", methods=[])
    with pytest.raises(StructureError, match="missing sub-package name"):
        api_from_image(image_with(service, package="test.v1"))


def test_service_package_without_version():
    service = ServiceDescriptor(name="TestService", methods=[])
    with pytest.raises(PackageNameError):
        api_from_image(image_with(service, package="test.service"))


def test_missing_dependency():
    service = ServiceDescriptor(name="TestService", methods=[])
    image = image_with(service, deps=["missing.proto"])
    with pytest.raises(StructureError, match="new files"):
        api_from_image(image)


def test_unknown_input_type():
    service = ServiceDescriptor(
        name="TestService",
        methods=[http_method("Other", HttpRule(HttpMethod.GET, "/x"))],
    )
    with pytest.raises(StructureError, match="not found"):
        api_from_image(image_with(service))


def test_missing_path_field():
    service = ServiceDescriptor(
        name="TestService",
        methods=[http_method("Test", HttpRule(HttpMethod.GET, "/test/{nope}"))],
    )
    with pytest.raises(StructureError, match="path field 'nope' not found"):
        api_from_image(image_with(service))


def test_invalid_path_part():
    service = ServiceDescriptor(
        name="TestService",
        methods=[http_method("Test", HttpRule(HttpMethod.POST, "/test/a*b"))],
    )
    with pytest.raises(StructureError, match="invalid path part"):
        api_from_image(image_with(service))


def test_missing_http_rule():
    service = ServiceDescriptor(name="TestService", methods=[http_method("Test", None)])
    with pytest.raises(StructureError, match="missing http rule"):
        api_from_image(image_with(service))


def test_unsupported_http_method():
    service = ServiceDescriptor(
        name="TestService", methods=[http_method("Test", HttpRule(None, "/x"))]
    )
    with pytest.raises(StructureError, match="unsupported http method"):
        api_from_image(image_with(service))


def test_wrong_input_name():
    method = MethodDescriptor(
        name="Test", input_type="TestResponse", output_type="TestResponse",
        http=HttpRule(HttpMethod.GET, "/x"),
    )
    service = ServiceDescriptor(name="TestService", methods=[method])
    with pytest.raises(StructureError, match="input message must be 'TestRequest'"):
        api_from_image(image_with(service))


def test_input_from_other_package_rejected():
    method = MethodDescriptor(
        name="Referenced", input_type=".test.v1.Referenced", output_type="TestResponse",
        http=HttpRule(HttpMethod.GET, "/x"),
    )
    service = ServiceDescriptor(name="TestService", methods=[method])
    with pytest.raises(StructureError, match="input message"):
        api_from_image(image_with(service))


def test_http_body_output_allowed():
    body_file = FileDescriptor(
        name="google/api/httpbody.proto",
        package="google.api",
        messages=[MessageDescriptor(name="HttpBody")],
    )
    method = MethodDescriptor(
        name="Test", input_type="TestRequest", output_type=".google.api.HttpBody",
        http=HttpRule(HttpMethod.GET, "/download"),
    )
    image = image_with(ServiceDescriptor(name="TestSandbox", methods=[method]))
    image.files.append(body_file)
    api = api_from_image(image)
    built = api.packages[0].sub_packages[0].services[0].methods[0]
    assert built.response_schema == "HttpBody"
    assert built.http_path == "/download"


def test_state_query_service():
    options = MethodOptions(auth="none", state_query=StateQueryOptions(list=True))
    method = http_method("Test", HttpRule(HttpMethod.POST, "/q"), options)
    service = ServiceDescriptor(
        name="TestService",
        methods=[method],
        options=ServiceOptions(state_query="foo", audience=["public"]),
    )
    image = image_with(service)
    files = DescriptorSet(image.files)
    built = build_service(service, files)
    assert built.type.state_entity_query == "foo"
    assert built.audience == ["public"]
    assert built.methods[0].auth == "none"
    assert built.methods[0].method_type.entity_name == "foo"
    assert built.methods[0].method_type.query_part is StateQueryPart.LIST


def test_state_query_on_command_service_rejected():
    options = MethodOptions(state_query=StateQueryOptions(get=True))
    method = http_method("Test", HttpRule(HttpMethod.POST, "/q"), options)
    service = ServiceDescriptor(
        name="TestService", methods=[method], options=ServiceOptions(state_command="foo")
    )
    files = DescriptorSet(image_with(service).files)
    with pytest.raises(StructureError, match="not a state query service"):
        build_service(service, files)


def test_state_query_without_part_rejected():
    options = MethodOptions(state_query=StateQueryOptions())
    method = http_method("Test", HttpRule(HttpMethod.POST, "/q"), options)
    service = ServiceDescriptor(
        name="TestService", methods=[method], options=ServiceOptions(state_query="foo")
    )
    files = DescriptorSet(image_with(service).files)
    with pytest.raises(StructureError, match="invalid state query part"):
        build_service(service, files)


def empty_file():
    return FileDescriptor(
        name="google/protobuf/empty.proto",
        package="google.protobuf",
        messages=[MessageDescriptor(name="Empty")],
    )


def test_topic_built():
    method = MethodDescriptor(
        name="Foo", input_type="FooMessage", output_type=".google.protobuf.Empty"
    )
    topic_service = ServiceDescriptor(name="FooTopic", methods=[method])
    image = image_with(
        topic_service,
        messages=[MessageDescriptor(name="FooMessage")],
        package="test.v1.topic",
        deps=[],
    )
    image.files.append(empty_file())
    api = api_from_image(image)
    sub = api.packages[0].sub_packages[0]
    assert sub.name == "topic"
    assert len(sub.topics) == 1
    topic = sub.topics[0]
    assert topic.name == "FooTopic"
    assert [(m.name, m.schema, m.full_grpc_name) for m in topic.messages] == [
        ("Foo", "FooMessage", "test.v1.topic.FooTopic.Foo")
    ]


def test_topic_output_must_be_empty():
    method = MethodDescriptor(name="Foo", input_type="FooMessage", output_type="FooMessage")
    topic_service = ServiceDescriptor(name="FooTopic", methods=[method])
    files = DescriptorSet(
        [service_file(topic_service, messages=[MessageDescriptor(name="FooMessage")], deps=[])]
    )
    with pytest.raises(StructureError, match="google.protobuf.Empty"):
        build_topic(topic_service, files)


def test_topic_input_name_checked():
    method = MethodDescriptor(
        name="Foo", input_type="BarMessage", output_type=".google.protobuf.Empty"
    )
    topic_service = ServiceDescriptor(name="FooTopic", methods=[method])
    files = DescriptorSet(
        [
            service_file(
                topic_service, messages=[MessageDescriptor(name="BarMessage")], deps=[]
            ),
            empty_file(),
        ]
    )
    with pytest.raises(StructureError, match="FooMessage"):
        build_topic(topic_service, files)


def test_descriptor_set_lookup():
    image = sample_image()
    files = DescriptorSet(image.files)
    found = files.find_message("test.v1.Referenced")
    assert found is not None
    assert found.name == "Referenced"
    assert files.find_message(".test.v1.service.TestRequest").name == "TestRequest"
    assert files.find_message("test.v1.Missing") is None
    services = list(files.services())
    assert [s.name for s in services] == ["TestService"]
    assert files.file_of(services[0]).package == "test.v1.service"


def test_descriptor_set_duplicate_file():
    with pytest.raises(StructureError, match="already registered"):
        DescriptorSet([referenced_file(), referenced_file()])


def test_descriptor_set_file_of_unknown_service():
    files = DescriptorSet([referenced_file()])
    with pytest.raises(StructureError):
        files.file_of(ServiceDescriptor(name="Stray"))