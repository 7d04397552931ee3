"""Protobuf declarations for the CT log front-end (ctfe) configuration.

The CT log server reads a ``configpb.LogMultiConfig`` in protobuf text format,
with its private key reference packed as a ``keyspb.PEMKeyFile`` inside a
``google.protobuf.Any``. No Python package ships generated code for these
protos, so the descriptors are declared here and registered in the default
descriptor pool. Field names and numbers mirror the upstream
certificate-transparency-go and trillian ``.proto`` files.
"""

from __future__ import annotations

from google.protobuf import any_pb2, descriptor_pb2, descriptor_pool, message_factory, text_format
from google.protobuf.message import Message

from ..common.errors import MalformedConfigError


_FIELD = descriptor_pb2.FieldDescriptorProto
_POOL = descriptor_pool.Default()

KEYSPB_FILE = "crypto/keyspb/keyspb.proto"
CONFIGPB_FILE = "trillian/ctfe/configpb/config.proto"


def _field(
    name: str,
    number: int,
    field_type: int,
    *,
    repeated: bool = False,
    type_name: str | None = None,
) -> descriptor_pb2.FieldDescriptorProto:
    proto = _FIELD(
        name=name,
        number=number,
        type=field_type,
        label=_FIELD.LABEL_REPEATED if repeated else _FIELD.LABEL_OPTIONAL,
    )
    if type_name:
        proto.type_name = type_name
    return proto


def _keyspb() -> descriptor_pb2.FileDescriptorProto:
    proto = descriptor_pb2.FileDescriptorProto(name=KEYSPB_FILE, package="keyspb", syntax="proto3")
    proto.message_type.add(
        name="PEMKeyFile",
        field=[
            _field("path", 1, _FIELD.TYPE_STRING),
            _field("password", 2, _FIELD.TYPE_STRING),
        ],
    )
    proto.message_type.add(name="PublicKey", field=[_field("der", 1, _FIELD.TYPE_BYTES)])
    return proto


def _configpb() -> descriptor_pb2.FileDescriptorProto:
    proto = descriptor_pb2.FileDescriptorProto(
        name=CONFIGPB_FILE,
        package="configpb",
        syntax="proto3",
        dependency=[any_pb2.DESCRIPTOR.name, KEYSPB_FILE],
    )
    proto.message_type.add(
        name="LogBackend",
        field=[
            _field("name", 1, _FIELD.TYPE_STRING),
            _field("backend_spec", 2, _FIELD.TYPE_STRING),
        ],
    )
    proto.message_type.add(
        name="LogBackendSet",
        field=[_field("backend", 1, _FIELD.TYPE_MESSAGE, repeated=True, type_name=".configpb.LogBackend")],
    )
    proto.message_type.add(
        name="LogConfig",
        field=[
            _field("log_id", 1, _FIELD.TYPE_INT64),
            _field("prefix", 2, _FIELD.TYPE_STRING),
            _field("roots_pem_file", 3, _FIELD.TYPE_STRING, repeated=True),
            _field("private_key", 4, _FIELD.TYPE_MESSAGE, type_name=".google.protobuf.Any"),
            _field("public_key", 5, _FIELD.TYPE_MESSAGE, type_name=".keyspb.PublicKey"),
            _field("reject_expired", 6, _FIELD.TYPE_BOOL),
            _field("ext_key_usages", 7, _FIELD.TYPE_STRING, repeated=True),
            _field("accept_only_ca", 10, _FIELD.TYPE_BOOL),
            _field("log_backend_name", 11, _FIELD.TYPE_STRING),
            _field("is_mirror", 12, _FIELD.TYPE_BOOL),
            _field("max_merge_delay_sec", 13, _FIELD.TYPE_INT32),
            _field("expected_merge_delay_sec", 14, _FIELD.TYPE_INT32),
            _field("reject_extensions", 16, _FIELD.TYPE_STRING, repeated=True),
            _field("reject_unexpired", 17, _FIELD.TYPE_BOOL),
        ],
    )
    proto.message_type.add(
        name="LogConfigSet",
        field=[_field("config", 1, _FIELD.TYPE_MESSAGE, repeated=True, type_name=".configpb.LogConfig")],
    )
    proto.message_type.add(
        name="LogMultiConfig",
        field=[
            _field("backends", 1, _FIELD.TYPE_MESSAGE, type_name=".configpb.LogBackendSet"),
            _field("log_configs", 2, _FIELD.TYPE_MESSAGE, type_name=".configpb.LogConfigSet"),
        ],
    )
    return proto


def _register(proto: descriptor_pb2.FileDescriptorProto) -> None:
    try:
        _POOL.FindFileByName(proto.name)
    except KeyError:
        _POOL.AddSerializedFile(proto.SerializeToString())


_register(_keyspb())
_register(_configpb())


def _message_class(full_name: str) -> type[Message]:
    return message_factory.GetMessageClass(_POOL.FindMessageTypeByName(full_name))


PEMKeyFile = _message_class("keyspb.PEMKeyFile")
PublicKey = _message_class("keyspb.PublicKey")
LogBackend = _message_class("configpb.LogBackend")
LogBackendSet = _message_class("configpb.LogBackendSet")
LogConfig = _message_class("configpb.LogConfig")
LogConfigSet = _message_class("configpb.LogConfigSet")
LogMultiConfig = _message_class("configpb.LogMultiConfig")


def parse_multi_config(data: bytes) -> Message:
    """Parse a text-format ``LogMultiConfig``."""

    message = LogMultiConfig()
    try:
        text_format.Parse(data.decode("utf-8"), message, descriptor_pool=_POOL)
    except (UnicodeDecodeError, text_format.ParseError) as exc:
        raise MalformedConfigError(f"failed to unmarshal config: {exc}") from exc
    return message


def render_multi_config(message: Message) -> bytes:
    return text_format.MessageToString(message, descriptor_pool=_POOL).encode("utf-8")
