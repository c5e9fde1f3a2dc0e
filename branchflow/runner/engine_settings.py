"""
Engine settings: tuning knobs for respondent traversal.

Host applications may send these explicitly (settings_from_dict) or point
BRANCHFLOW_SETTINGS at a YAML file (load_settings). Python defines the
defaults here; supplied values are authoritative at runtime.
"""

import hashlib
import json
import logging
import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml


logger = logging.getLogger(__name__)

SETTINGS_ENV_VAR = "BRANCHFLOW_SETTINGS"
CYCLE_GUARD_SCOPES = ("burst", "session")


@dataclass(frozen=True)
class EngineSettings:
    """
    All tuning constants used by the walker and the session.

    Field names match the keys accepted in settings dicts and YAML files.
    """

    max_auto_advance_hops: int = 100
    """Upper bound on automatic hops through logic nodes in one next() call."""

    cycle_guard_scope: str = "burst"
    """'burst': revisits are checked within one auto-advance run.
    'session': every node already on the session path also counts."""

    reuse_recorded_answers: bool = True
    """When next() is called without an answer, reuse the one recorded for the node."""


def settings_from_dict(d: Optional[Dict[str, Any]]) -> EngineSettings:
    """
    Construct EngineSettings from a dict (e.g. from a request body or YAML).

    Missing fields use Python defaults. Extra fields and values of the wrong
    type are ignored.
    """
    if not d:
        return EngineSettings()

    kwargs: Dict[str, Any] = {}

    hops = d.get('max_auto_advance_hops')
    if isinstance(hops, int) and not isinstance(hops, bool) and hops > 0:
        kwargs['max_auto_advance_hops'] = hops

    scope = d.get('cycle_guard_scope')
    if scope in CYCLE_GUARD_SCOPES:
        kwargs['cycle_guard_scope'] = scope

    reuse = d.get('reuse_recorded_answers')
    if isinstance(reuse, bool):
        kwargs['reuse_recorded_answers'] = reuse

    ignored = sorted(set(d) - set(kwargs))
    if ignored:
        logger.debug("[settings] Ignored settings keys/values: %s", ", ".join(map(str, ignored)))

    return EngineSettings(**kwargs)


def load_settings(path: Optional[Union[str, Path]] = None) -> EngineSettings:
    """
    Load EngineSettings from a YAML file.

    The file may hold the settings at top level or under an `engine:` key.

    Args:
        path: YAML file path; defaults to $BRANCHFLOW_SETTINGS

    Returns:
        EngineSettings (defaults when no path is configured or the file is missing)
    """
    if path is None:
        path = os.environ.get(SETTINGS_ENV_VAR)
    if not path:
        return EngineSettings()

    settings_path = Path(path)
    if not settings_path.exists():
        logger.warning("[settings] Settings file not found at %s; using defaults", settings_path)
        return EngineSettings()

    with open(settings_path, 'r') as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Settings file {settings_path} must contain a mapping")

    section = data.get('engine', data)
    if not isinstance(section, dict):
        raise ValueError(f"'engine' section in {settings_path} must be a mapping")

    return settings_from_dict(section)


def compute_settings_signature(settings: EngineSettings) -> str:
    """
    Short fingerprint of the settings a traversal ran with.

    handle_step returns it next to each result so hosts can tell which
    settings produced a recorded hop. Equal settings give equal signatures.
    """
    payload = json.dumps(asdict(settings), sort_keys=True)
    return hashlib.sha256(payload.encode()).hexdigest()[:16]
