"""Configuration settings for the audit service.

A small Settings container shared by the API, the repositories and the
audit runner. Every field can be overridden with an environment variable
named ``SHEETAUDIT_<FIELD>``.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field, fields


ENV_PREFIX = "SHEETAUDIT_"
_TRUE_ENV_VALUES = {"1", "true", "yes", "on"}


def _env(name: str, default: str) -> str:
    return os.getenv(f"{ENV_PREFIX}{name}", default)


@dataclass
class Settings:
    DB_PATH: str = field(default_factory=lambda: _env("DB_PATH", "data/app.db"))
    STORAGE_PATH: str = field(default_factory=lambda: _env("STORAGE_PATH", "storage"))
    # missing-vs-present policy used when an audit request does not choose one
    TREAT_MISSING_AS_MISMATCH: bool = field(
        default_factory=lambda: _env("TREAT_MISSING_AS_MISMATCH", "false").strip().lower() in _TRUE_ENV_VALUES
    )
    INFER_SAMPLE_SIZE: int = field(default_factory=lambda: int(_env("INFER_SAMPLE_SIZE", "100")))
    LOG_LEVEL: str = field(default_factory=lambda: _env("LOG_LEVEL", "INFO").upper())

    def as_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


settings = Settings()
