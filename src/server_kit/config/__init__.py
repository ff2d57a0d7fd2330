"""Configuration resolution: sources, merge, binding and capability projection."""

from server_kit.config.binder import bind, to_document
from server_kit.config.builder import ConfigBuilder
from server_kit.config.capability import project, provided_capabilities, provides, register_capability
from server_kit.config.environment import (
    ENVIRONMENT_VARIABLES,
    Environment,
    EnvironmentSnapshot,
    ProcessEnvironment,
    ScopedEnvironment,
)
from server_kit.config.errors import (
    BuilderAlreadyBuilt,
    CapabilityNotProvided,
    ConfigError,
    InvalidValue,
    MissingRequiredField,
    ParseError,
    SourceNotFound,
    TypeMismatch,
    UnsupportedFormat,
)
from server_kit.config.interfaces import EnvironmentProvider
from server_kit.config.loader import ConfigFormat, Document, dump_document, load_document
from server_kit.config.merger import MergedResult, merge_sources
from server_kit.config.models import ChannelConfig, GrpcServerConfig, ServerConfig
from server_kit.config.schema import Env, Flatten
from server_kit.config.sources import ConfigSource, EnvironmentFile, StructuredFile

__all__ = [
    "BuilderAlreadyBuilt",
    "CapabilityNotProvided",
    "ChannelConfig",
    "ConfigBuilder",
    "ConfigError",
    "ConfigFormat",
    "ConfigSource",
    "Document",
    "ENVIRONMENT_VARIABLES",
    "Env",
    "Environment",
    "EnvironmentFile",
    "EnvironmentProvider",
    "EnvironmentSnapshot",
    "Flatten",
    "GrpcServerConfig",
    "InvalidValue",
    "MergedResult",
    "MissingRequiredField",
    "ParseError",
    "ProcessEnvironment",
    "ScopedEnvironment",
    "ServerConfig",
    "SourceNotFound",
    "StructuredFile",
    "TypeMismatch",
    "UnsupportedFormat",
    "bind",
    "dump_document",
    "load_document",
    "merge_sources",
    "project",
    "provided_capabilities",
    "provides",
    "register_capability",
    "to_document",
]
