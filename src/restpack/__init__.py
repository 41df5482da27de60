from importlib import import_module
from typing import TYPE_CHECKING

__version__ = "0.1.0"

if TYPE_CHECKING:
    from restpack.body import (
        FORM_URLENCODED,
        MULTIPART_FORM_DATA,
        CompiledBody,
        compile_body,
    )
    from restpack.client import CompiledRequest, RestClient, compile_request
    from restpack.config import ClientSettings
    from restpack.errors import (
        BodySerializationError,
        FileAccessError,
        InvalidURLError,
        MultipartWriteError,
        RestPackError,
    )
    from restpack.extract import (
        Cookie,
        Embedded,
        FieldLocation,
        Header,
        Path,
        Query,
        RecordSchema,
        Tag,
        params_from_object,
    )
    from restpack.params import (
        BodyParam,
        CookieParam,
        FileParam,
        FormFieldParam,
        HeaderParam,
        InMemoryContent,
        OnDiskContent,
        Param,
        ParamKind,
        PathSegmentParam,
        QueryParam,
        classify,
        open_content,
    )
    from restpack.request import Request
    from restpack.url import compile_url

__all__ = [
    # Parameters
    "Param",
    "ParamKind",
    "QueryParam",
    "PathSegmentParam",
    "HeaderParam",
    "CookieParam",
    "FormFieldParam",
    "FileParam",
    "BodyParam",
    "InMemoryContent",
    "OnDiskContent",
    "classify",
    "open_content",
    # Record annotations
    "FieldLocation",
    "Query",
    "Path",
    "Header",
    "Cookie",
    "Tag",
    "Embedded",
    "RecordSchema",
    "params_from_object",
    # Building and compiling
    "Request",
    "compile_url",
    "compile_body",
    "CompiledBody",
    "FORM_URLENCODED",
    "MULTIPART_FORM_DATA",
    "compile_request",
    "CompiledRequest",
    # Client
    "RestClient",
    "ClientSettings",
    # Exceptions
    "RestPackError",
    "InvalidURLError",
    "BodySerializationError",
    "FileAccessError",
    "MultipartWriteError",
]

__SPEC_PARENT__: str = __spec__.parent  # type: ignore
# A mapping of {<member name>: (package, <module name>)} defining dynamic imports
_dynamic_imports: "dict[str, tuple[str, str]]" = {
    "Param": (__SPEC_PARENT__, "params"),
    "ParamKind": (__SPEC_PARENT__, "params"),
    "QueryParam": (__SPEC_PARENT__, "params"),
    "PathSegmentParam": (__SPEC_PARENT__, "params"),
    "HeaderParam": (__SPEC_PARENT__, "params"),
    "CookieParam": (__SPEC_PARENT__, "params"),
    "FormFieldParam": (__SPEC_PARENT__, "params"),
    "FileParam": (__SPEC_PARENT__, "params"),
    "BodyParam": (__SPEC_PARENT__, "params"),
    "InMemoryContent": (__SPEC_PARENT__, "params"),
    "OnDiskContent": (__SPEC_PARENT__, "params"),
    "classify": (__SPEC_PARENT__, "params"),
    "open_content": (__SPEC_PARENT__, "params"),
    "FieldLocation": (__SPEC_PARENT__, "extract"),
    "Query": (__SPEC_PARENT__, "extract"),
    "Path": (__SPEC_PARENT__, "extract"),
    "Header": (__SPEC_PARENT__, "extract"),
    "Cookie": (__SPEC_PARENT__, "extract"),
    "Tag": (__SPEC_PARENT__, "extract"),
    "Embedded": (__SPEC_PARENT__, "extract"),
    "RecordSchema": (__SPEC_PARENT__, "extract"),
    "params_from_object": (__SPEC_PARENT__, "extract"),
    "Request": (__SPEC_PARENT__, "request"),
    "compile_url": (__SPEC_PARENT__, "url"),
    "compile_body": (__SPEC_PARENT__, "body"),
    "CompiledBody": (__SPEC_PARENT__, "body"),
    "FORM_URLENCODED": (__SPEC_PARENT__, "body"),
    "MULTIPART_FORM_DATA": (__SPEC_PARENT__, "body"),
    "compile_request": (__SPEC_PARENT__, "client"),
    "CompiledRequest": (__SPEC_PARENT__, "client"),
    "RestClient": (__SPEC_PARENT__, "client"),
    "ClientSettings": (__SPEC_PARENT__, "config"),
    "RestPackError": (__SPEC_PARENT__, "errors"),
    "InvalidURLError": (__SPEC_PARENT__, "errors"),
    "BodySerializationError": (__SPEC_PARENT__, "errors"),
    "FileAccessError": (__SPEC_PARENT__, "errors"),
    "MultipartWriteError": (__SPEC_PARENT__, "errors"),
}


def __getattr__(attr_name: str) -> object:

    dynamic_attr = _dynamic_imports.get(attr_name)
    if dynamic_attr is None:
        raise AttributeError(f"module {__name__!r} has no attribute {attr_name!r}")

    package, module_name = dynamic_attr

    module = import_module(f"{package}.{module_name}", package=package)
    result = getattr(module, attr_name)
    g = globals()
    for k, (_, k_module_name) in _dynamic_imports.items():
        if k_module_name == module_name:
            g[k] = getattr(module, k)
    return result


def __dir__() -> "list[str]":
    return list(__all__)
