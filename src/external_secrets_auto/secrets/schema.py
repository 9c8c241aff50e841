"""Schema for ``secrets.yaml`` declaration files.

A declaration file lists the Kubernetes Secrets a deployment needs and, for
every key in them, the backend entry the value lives in::

    secrets:
      - name: api-credentials
        targetNamespace: api          # optional
        keys:
          - key: DATABASE_PASSWORD
            remoteKey: api-database-password
            generate: true
          - key: STRIPE_KEY
            remoteKey: api-stripe-key
            prompt: "Stripe secret key"

Models are frozen; a parsed declaration never changes for the rest of the run.
"""

import re

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, field_validator, model_validator

# Kubernetes object names (RFC 1123 subdomain) and namespaces (RFC 1123 label)
_DNS_SUBDOMAIN_MAX_LENGTH = 253
_DNS_SUBDOMAIN_PATTERN = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$")
_DNS_LABEL_MAX_LENGTH = 63
_DNS_LABEL_PATTERN = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")


class _Declaration(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class SecretKeyDeclaration(_Declaration):
    """One key inside a Kubernetes Secret."""

    key: StrictStr = Field(min_length=1, description="Key name in the Kubernetes Secret")
    remote_key: StrictStr = Field(alias="remoteKey", min_length=1, description="Entry name in the backend")
    generate: StrictBool | None = Field(default=None, description="Synthesize the value locally")
    prompt: StrictStr | None = Field(default=None, description="Prompt text for manual input")

    @property
    def generated(self) -> bool:
        return self.generate is True


class SecretDeclaration(_Declaration):
    """One logical Kubernetes Secret and the backend keys that populate it."""

    name: StrictStr = Field(min_length=1)
    target_namespace: StrictStr | None = Field(default=None, alias="targetNamespace")
    keys: tuple[SecretKeyDeclaration, ...] = Field(min_length=1)

    @field_validator("name")
    @classmethod
    def _valid_name(cls, value: str) -> str:
        if len(value) > _DNS_SUBDOMAIN_MAX_LENGTH or not _DNS_SUBDOMAIN_PATTERN.fullmatch(value):
            raise ValueError(
                f"'{value}' is not a valid Kubernetes name (lowercase alphanumerics, '-' and '.', "
                f"at most {_DNS_SUBDOMAIN_MAX_LENGTH} characters)"
            )
        return value

    @field_validator("target_namespace")
    @classmethod
    def _valid_namespace(cls, value: str | None) -> str | None:
        if value is not None and (len(value) > _DNS_LABEL_MAX_LENGTH or not _DNS_LABEL_PATTERN.fullmatch(value)):
            raise ValueError(
                f"'{value}' is not a valid namespace (lowercase alphanumerics and '-', "
                f"at most {_DNS_LABEL_MAX_LENGTH} characters)"
            )
        return value

    @model_validator(mode="after")
    def _unique_key_names(self) -> "SecretDeclaration":
        seen: set[str] = set()
        for entry in self.keys:
            if entry.key in seen:
                raise ValueError(f"key '{entry.key}' is declared more than once in secret '{self.name}'")
            seen.add(entry.key)
        return self


class SecretsConfig(_Declaration):
    """Top-level document of a declaration file."""

    secrets: tuple[SecretDeclaration, ...]
