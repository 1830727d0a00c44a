"""
config/settings.py — Canonical configuration contract for cluster-snapshot.

Uses pydantic-settings to load, validate, and type-check all environment
variables that tune a snapshot run (client selection, transport timeout,
namespaces consulted by the gated checks, row caps, stale-snapshot age).

Two usage modes:
  Production / CLI:
      cfg = load_settings()                   # reads from .env + os.environ
      cfg = load_settings("env/prod.env")     # override env file path

  Tests (isolated: no env file, no os.environ bleed):
      cfg = Settings(KUBE_CLIENT="kubectl", SNAPSHOT_MAX_AGE_DAYS=3)
      # All values come exclusively from kwargs → clean, reproducible.
"""
from __future__ import annotations

import os
import re
from datetime import timedelta
from typing import Literal, Optional

from pydantic import ValidationInfo, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

_POSITIVE_INT_FIELDS = (
    "CLIENT_TIMEOUT_SECONDS",
    "SNAPSHOT_MAX_AGE_DAYS",
    "UNHEALTHY_PODS_LIMIT",
    "CRD_LIMIT",
    "EVENTS_LIMIT",
)


class Settings(BaseSettings):
    # Settings() reads purely from kwargs. load_settings() is the explicit
    # production entry point that merges the env file and os.environ.
    model_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings,)

    # -------------------------------------------------------------------------
    # Client
    # -------------------------------------------------------------------------
    KUBE_CLIENT: Literal["auto", "oc", "kubectl"] = "auto"
    KUBECONFIG: Optional[str] = None
    CLIENT_TIMEOUT_SECONDS: int = 60

    # -------------------------------------------------------------------------
    # VolumeSnapshot age scan
    # -------------------------------------------------------------------------
    SNAPSHOT_MAX_AGE_DAYS: int = 7
    STRUCTURED_QUERY: bool = True

    # -------------------------------------------------------------------------
    # Row caps
    # -------------------------------------------------------------------------
    UNHEALTHY_PODS_LIMIT: int = 30
    CRD_LIMIT: int = 20
    EVENTS_LIMIT: int = 50

    # -------------------------------------------------------------------------
    # Optional platform namespaces (gate the OpenShift-specific checks)
    # -------------------------------------------------------------------------
    ETCD_NAMESPACE: str = "openshift-etcd"
    STORAGE_NAMESPACE: str = "openshift-storage"
    LOGGING_NAMESPACE: str = "openshift-logging"

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------
    REPORT_DIR: str = "."
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"

    # -------------------------------------------------------------------------
    # Convenience properties
    # -------------------------------------------------------------------------

    @property
    def snapshot_max_age(self) -> timedelta:
        return timedelta(days=self.SNAPSHOT_MAX_AGE_DAYS)

    @property
    def client_env(self) -> dict[str, str]:
        """Environment handed to every client subprocess."""
        env = dict(os.environ)
        if self.KUBECONFIG:
            env["KUBECONFIG"] = self.KUBECONFIG
        return env

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------

    @field_validator("KUBE_CLIENT", mode="before")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        """Strip trailing whitespace left behind by shell-sourced env files."""
        return v.strip() if isinstance(v, str) else v

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator(*_POSITIVE_INT_FIELDS)
    @classmethod
    def positive(cls, v: int, info: ValidationInfo) -> int:
        if v < 1:
            raise ValueError(f"{info.field_name} must be >= 1")
        return v

    @field_validator("ETCD_NAMESPACE", "STORAGE_NAMESPACE", "LOGGING_NAMESPACE")
    @classmethod
    def non_empty_namespace(cls, v: str, info: ValidationInfo) -> str:
        v = v.strip()
        if not v:
            raise ValueError(f"{info.field_name} cannot be blank")
        return v


def load_settings(env_file: str = ".env") -> Settings:
    """Load and validate settings from an env file + os.environ.

    Manually parses the env file and merges with os.environ (os.environ wins),
    then passes only known Settings fields as explicit kwargs. A missing env
    file is not an error: every field has a default.

    Raises:
        ValidationError: if any value is invalid (unknown KUBE_CLIENT, zero limits, ...).
    """
    file_vals: dict[str, str] = {}
    try:
        with open(env_file, encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                k, _, v = line.partition("=")
                k = k.strip()
                # Strip inline comments: "oc   # oc | kubectl" → "oc"
                v = re.sub(r"\s+#.*$", "", v.strip())
                if k:
                    file_vals[k] = v
    except FileNotFoundError:
        pass
    merged = {**file_vals, **os.environ}  # os.environ wins
    known = {k: v for k, v in merged.items() if k in Settings.model_fields}
    return Settings(**known)
