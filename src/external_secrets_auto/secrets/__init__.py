"""Secret declarations subpackage.

This package contains the declaration schema and parser, value sources,
manifest generation, provisioning and interactive prompts.
"""

from external_secrets_auto.secrets.parsing import (
    DeclarationFile,
    check_remote_key_uniqueness,
    find_declaration_files,
    infer_deployment,
    parse_declaration_file,
    parse_declaration_files,
    resolve_target_namespace,
)
from external_secrets_auto.secrets.schema import SecretDeclaration, SecretKeyDeclaration, SecretsConfig
from external_secrets_auto.secrets.values import (
    DeclaredValueSource,
    StaticValueSource,
    ValueSource,
    generate_password,
)

__all__ = [
    # schema
    "SecretDeclaration",
    "SecretKeyDeclaration",
    "SecretsConfig",
    # parsing
    "DeclarationFile",
    "parse_declaration_file",
    "parse_declaration_files",
    "find_declaration_files",
    "infer_deployment",
    "resolve_target_namespace",
    "check_remote_key_uniqueness",
    # values
    "ValueSource",
    "DeclaredValueSource",
    "StaticValueSource",
    "generate_password",
]
