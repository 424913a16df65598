# j5structure

`j5structure` turns a source image into a structured API description. A
source image (`j5structure.model.SourceImage`) holds file descriptors
(messages, fields, services and methods, written as plain dataclasses), the
packages that are wanted, and prose files. The result (`j5structure.model.API`)
groups the services and topics of those packages into packages and
sub-packages.

## Installation

    pip install j5structure

The package has no dependencies outside the standard library.

## Package naming

A package name must contain exactly one version part (`v` followed by digits).
At most one part may follow it, and that part names a sub-package:

```python
from j5structure.naming import split_package_parts

pid = split_package_parts("foo.bar.v1.service")
pid.package_name   # "foo.bar.v1"
pid.sub_package    # "service"

split_package_parts("test.v1").sub_package   # None
split_package_parts("test.v1.v2")            # raises PackageNameError
split_package_parts("bad.package.service")   # raises PackageNameError
```

`PackageNameError` is a subclass of `ValueError`.

## Building an API

```python
from j5structure.model import (
    FieldDescriptor, FileDescriptor, HttpMethod, HttpRule, MessageDescriptor,
    MethodDescriptor, PackageInfo, ServiceDescriptor, SourceImage,
)
from j5structure.structure import api_from_image

image = SourceImage(
    packages=[PackageInfo(name="test.v1", label="Test")],
    files=[
        FileDescriptor(
            name="test/v1/service/service.proto",
            package="test.v1.service",
            messages=[
                MessageDescriptor("TestRequest", [FieldDescriptor("path_field", 1)]),
                MessageDescriptor("TestResponse"),
            ],
            services=[
                ServiceDescriptor("TestService", [
                    MethodDescriptor(
                        "Test", "TestRequest", "TestResponse",
                        http=HttpRule(HttpMethod.GET, "/test/{path_field}"),
                    ),
                ]),
            ],
        ),
    ],
)

api = api_from_image(image)
pkg = api.packages[0]                  # "test.v1"
sub = pkg.sub_packages[0]              # "service"
method = sub.services[0].methods[0]
method.http_path                       # "/test/:pathField"
method.full_grpc_name                  # "/test.v1.service.TestService/Test"
```

Message type names on methods may be fully qualified with a leading dot
(`.test.v1.Referenced`) or relative, resolved from the file's package outwards.
`DescriptorSet` checks that file names and message names are unique, that every
listed dependency is one of the files, and that every method's input and output
types can be found; otherwise `api_from_image` raises `StructureError`.

Only services in a sub-package of a wanted package are built; services of
other packages are skipped, though every service file's package must still
follow the naming rules above. A service directly in a versioned package (with
no sub-package) is an error. Services are handled by the suffix of their name:

- `...Service` or `...Sandbox`: built with `build_service`. Each method needs
  an `HttpRule`, a `<Name>Request` input in the same package, and a
  `<Name>Response` output (or `google.api.HttpBody`). In the HTTP path,
  parameters such as `{path_field}` must name a field of the input and become
  `:` plus its JSON name (`:pathField`); any other part holding `{`, `}`, `*` or
  `:` is rejected.
- `...Topic`: built with `build_topic`. Each method takes a `<Name>Message`
  input in the same package and returns `google.protobuf.Empty`; the message's
  `full_grpc_name` is `<package>.<Topic>.<Method>`.
- `...Events`: skipped.
- Any other suffix raises `StructureError`.

`ServiceOptions` on a service set its `type` (a `ServiceType` with a state
query or state command entity), `default_auth` and `audience`. `MethodOptions`
on a method set its `auth`; a `StateQueryOptions` there makes the method a
`StateQuery` with part `GET`, `LIST` or `LIST_EVENTS`, and is only allowed on
a state query service.

Packages named by a sub-package but not listed in the image are added with
`indirect=True`.

## Package prose

```python
from j5structure.prose import remove_markdown_header, resolve_prose

resolve_prose(image, api)   # sets each package's prose from image.prose
remove_markdown_header("# Title\n\nsome content")        # "some content"
remove_markdown_header("Title\n=====\n\nsome content")   # "some content"
```

`resolve_prose` looks up each API package's `PackageInfo.prose` path among
the image's `ProseFile`s (bytes are read as UTF-8), removes a leading markdown
title and blank lines, and stores the result in `Package.prose`. A path that is
not in the image raises `ProseError`. `image_resolver` and `MapResolver` give
direct access to the prose files by path.

## What it does not do

- It does not read `.proto` files or compiled descriptor sets; descriptors are
  built from the dataclasses in `j5structure.model`.
- It does not generate schemas for messages or enums: the `schemas` mappings
  of `Package` and `SubPackage` are left empty.
- It has no command-line interface.