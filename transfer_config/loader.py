"""
Configuration Loader (``transfer_config.loader``).

Responsibility
--------------
Loads YAML files, overlays them, and parses the result into the frozen
``transfer_config.schema`` dataclasses.  The single public entry point for
runtime config is ``transfer_config.get_active_config()``.

Invariants enforced
-------------------
* Malformed values raise ``ConfigurationError`` with the offending path;
  no silent defaults for values that are present but wrong.
* Amounts are parsed as ``Decimal`` from their string form.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the merged
  document for configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values  -> ``ConfigurationError``.
"""

from __future__ import annotations

import copy
import hashlib
import json
import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from transfer_config.schema import (
    ConfigurationError,
    DatabaseDef,
    EngineConfig,
    LoggingDef,
    OnboardingDef,
    RoleDef,
    RuleDef,
    SchedulerDef,
    WorkflowDef,
)

_VALID_LOG_LEVELS = frozenset(logging.getLevelNamesMapping())


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dict."""
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: top-level YAML must be a mapping")
    return data


def merge_documents(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge ``overlay`` into a copy of ``base``.  Lists are replaced."""
    merged = copy.deepcopy(base)
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_documents(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def compute_checksum(data: dict[str, Any]) -> str:
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# Field parsers
# ---------------------------------------------------------------------------


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"'{key}' must be a mapping")
    return value


def _number(path: str, value: Any, minimum: float = 0.0) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{path} must be a number, got {value!r}")
    if value < minimum:
        raise ConfigurationError(f"{path} must be >= {minimum}, got {value!r}")
    return float(value)


def _integer(path: str, value: Any, minimum: int = 0) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{path} must be an integer, got {value!r}")
    if value < minimum:
        raise ConfigurationError(f"{path} must be >= {minimum}, got {value!r}")
    return value


def _decimal(path: str, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ConfigurationError(f"{path} must be a number, got {value!r}")
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        raise ConfigurationError(f"{path} must be a number, got {value!r}") from None
    if not result.is_finite() or result < 0:
        raise ConfigurationError(f"{path} must be a finite number >= 0, got {value!r}")
    return result


def _bool(path: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ConfigurationError(f"{path} must be true or false, got {value!r}")
    return value


def _required(path: str, data: dict[str, Any], key: str) -> Any:
    if key not in data:
        raise ConfigurationError(f"{path}.{key} is required")
    return data[key]


# ---------------------------------------------------------------------------
# Section parsers
# ---------------------------------------------------------------------------


def parse_workflow(data: dict[str, Any]) -> WorkflowDef:
    defaults = WorkflowDef()
    return WorkflowDef(
        approval_window_hours=_number(
            "workflow.approval_window_hours",
            data.get("approval_window_hours", defaults.approval_window_hours),
        ),
        settlement_delay_seconds=_number(
            "workflow.settlement_delay_seconds",
            data.get("settlement_delay_seconds", defaults.settlement_delay_seconds),
        ),
    )


def parse_role(index: int, data: dict[str, Any]) -> RoleDef:
    path = f"onboarding.roles[{index}]"
    max_amount = data.get("max_transfer_amount")
    capabilities = data.get("capabilities") or []
    if not isinstance(capabilities, list):
        raise ConfigurationError(f"{path}.capabilities must be a list")
    return RoleDef(
        name=str(_required(path, data, "name")),
        level=_integer(f"{path}.level", _required(path, data, "level"), minimum=1),
        capabilities=tuple(str(c) for c in capabilities),
        max_transfer_amount=(
            _decimal(f"{path}.max_transfer_amount", max_amount)
            if max_amount is not None else None
        ),
        description=data.get("description"),
    )


def parse_rule(index: int, data: dict[str, Any]) -> RuleDef:
    path = f"onboarding.rules[{index}]"
    max_amount = data.get("max_amount")
    return RuleDef(
        rule_name=str(_required(path, data, "rule_name")),
        min_amount=_decimal(f"{path}.min_amount", _required(path, data, "min_amount")),
        max_amount=_decimal(f"{path}.max_amount", max_amount) if max_amount is not None else None,
        required_approvals=_integer(
            f"{path}.required_approvals", data.get("required_approvals", 0),
        ),
        required_role_level=_integer(
            f"{path}.required_role_level", _required(path, data, "required_role_level"),
            minimum=1,
        ),
        auto_approve=_bool(f"{path}.auto_approve", data.get("auto_approve", False)),
    )


def parse_onboarding(data: dict[str, Any]) -> OnboardingDef:
    roles_data = data.get("roles") or []
    rules_data = data.get("rules") or []
    if not isinstance(roles_data, list) or not isinstance(rules_data, list):
        raise ConfigurationError("onboarding.roles and onboarding.rules must be lists")

    roles = tuple(parse_role(i, r) for i, r in enumerate(roles_data))
    rules = tuple(parse_rule(i, r) for i, r in enumerate(rules_data))

    names = [r.name for r in roles]
    if len(names) != len(set(names)):
        raise ConfigurationError("onboarding.roles contains duplicate names")
    levels = {r.level for r in roles}
    for rule in rules:
        if rule.required_role_level not in levels:
            raise ConfigurationError(
                f"onboarding rule '{rule.rule_name}' requires level "
                f"{rule.required_role_level}, which no onboarding role has"
            )
        if rule.max_amount is not None and rule.max_amount < rule.min_amount:
            raise ConfigurationError(
                f"onboarding rule '{rule.rule_name}' has max_amount < min_amount"
            )
        if rule.auto_approve != (rule.required_approvals == 0):
            raise ConfigurationError(
                f"onboarding rule '{rule.rule_name}': auto_approve rules need 0 "
                "approvals and all other rules need at least 1"
            )
    return OnboardingDef(roles=roles, rules=rules)


def parse_database(data: dict[str, Any]) -> DatabaseDef:
    defaults = DatabaseDef()
    url = data.get("url", defaults.url)
    if not isinstance(url, str) or not url:
        raise ConfigurationError("database.url must be a non-empty string")
    return DatabaseDef(
        url=url,
        echo=_bool("database.echo", data.get("echo", defaults.echo)),
        pool_size=_integer("database.pool_size", data.get("pool_size", defaults.pool_size), 1),
        max_overflow=_integer(
            "database.max_overflow", data.get("max_overflow", defaults.max_overflow),
        ),
    )


def parse_scheduler(data: dict[str, Any]) -> SchedulerDef:
    defaults = SchedulerDef()
    interval = _number(
        "scheduler.tick_interval_seconds",
        data.get("tick_interval_seconds", defaults.tick_interval_seconds),
    )
    if interval <= 0:
        raise ConfigurationError("scheduler.tick_interval_seconds must be > 0")
    return SchedulerDef(
        enabled=_bool("scheduler.enabled", data.get("enabled", defaults.enabled)),
        tick_interval_seconds=interval,
    )


def parse_logging(data: dict[str, Any]) -> LoggingDef:
    level = str(data.get("level", LoggingDef().level)).upper()
    if level not in _VALID_LOG_LEVELS:
        raise ConfigurationError(f"logging.level must be a logging level name, got {level!r}")
    return LoggingDef(level=level)


def parse_engine_config(data: dict[str, Any]) -> EngineConfig:
    return EngineConfig(
        workflow=parse_workflow(_section(data, "workflow")),
        onboarding=parse_onboarding(_section(data, "onboarding")),
        database=parse_database(_section(data, "database")),
        scheduler=parse_scheduler(_section(data, "scheduler")),
        logging=parse_logging(_section(data, "logging")),
        checksum=compute_checksum(data),
    )
