from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Union

import yaml
from pydantic import BaseModel, Field, field_validator

from .console.authenticator import SessionAssembler
from .console.diagnostics import (
    DIAGNOSTIC_FILENAME,
    BrowserRecoveryListener,
    DiagnosticReporter,
    DirectoryDiagnosticSink,
)
from .console.startup_data import DEFAULT_MAX_RESPONSE_CHARS


_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z0-9_]+)\}")


def _expand_env_vars(value: object) -> object:
    if isinstance(value, str):
        def repl(match: re.Match[str]) -> str:
            var = match.group(1)
            return os.getenv(var, "")

        return _ENV_VAR_PATTERN.sub(repl, value)
    if isinstance(value, list):
        return [_expand_env_vars(v) for v in value]
    if isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    return value


def _env_bool(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name, "") or "").strip().lower()
    if not raw:
        return bool(default)
    return raw in {"1", "true", "t", "yes", "y", "on"}


def _deep_merge(base: object, override: object) -> object:
    if isinstance(base, dict) and isinstance(override, dict):
        out = dict(base)
        for k, v in override.items():
            if k in out:
                out[k] = _deep_merge(out[k], v)
            else:
                out[k] = v
        return out
    return override


def _default_config_from_env() -> dict:
    return {
        "diagnostics": {
            "directory": os.getenv("DEVCONSOLE_DIAGNOSTICS_DIR", "data/diagnostics"),
            "filename": os.getenv("DEVCONSOLE_DIAGNOSTIC_FILENAME", DIAGNOSTIC_FILENAME),
            "open_browser": _env_bool("DEVCONSOLE_OPEN_BROWSER", default=False),
        },
        "extraction": {
            "max_response_chars": os.getenv("DEVCONSOLE_MAX_RESPONSE_CHARS", str(DEFAULT_MAX_RESPONSE_CHARS)),
        },
        "logging": {
            "level": os.getenv("LOG_LEVEL", "INFO"),
            "file_path": os.getenv("LOG_FILE", "data/devconsole.log"),
        },
    }


class DiagnosticsConfig(BaseModel):
    directory: str = "data/diagnostics"
    filename: str = DIAGNOSTIC_FILENAME
    # Off by default so unattended runs never pop a browser.
    open_browser: bool = False

    @field_validator("filename")
    @classmethod
    def _bare_filename(cls, v: str) -> str:
        name = (v or "").strip()
        if not name or Path(name).name != name:
            raise ValueError("diagnostics.filename must be a plain file name like 'console-response.html'")
        return name


class ExtractionConfig(BaseModel):
    max_response_chars: int = Field(default=DEFAULT_MAX_RESPONSE_CHARS, gt=0)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file_path: str = "data/devconsole.log"


class AppConfig(BaseModel):
    diagnostics: DiagnosticsConfig = DiagnosticsConfig()
    extraction: ExtractionConfig = ExtractionConfig()
    logging: LoggingConfig = LoggingConfig()


def load_config(path: Union[str, Path, None] = None) -> AppConfig:
    raw: dict = {}
    if path:
        p = Path(path)
        if p.exists():
            raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
            raw = _expand_env_vars(raw)  # supports ${ENV_VAR} in YAML

    merged = _deep_merge(_default_config_from_env(), raw)
    return AppConfig.model_validate(merged)


def build_assembler(cfg: AppConfig) -> SessionAssembler:
    listeners = [BrowserRecoveryListener(open_browser=cfg.diagnostics.open_browser)]
    reporter = DiagnosticReporter(
        sink=DirectoryDiagnosticSink(cfg.diagnostics.directory),
        listeners=listeners,
        filename=cfg.diagnostics.filename,
    )
    return SessionAssembler(reporter=reporter, max_response_chars=cfg.extraction.max_response_chars)
