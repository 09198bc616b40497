"""
Decide which bones carry hitbox data and which animations are never checked.

The rules live in config/wifi_safe_rules.json so they can be tuned (or swapped
for synthetic ones in tests) without touching code:

    {
      "default_hitbox_relevant": true,
      "hitbox_bone_patterns": ["^Arm[LR]"],
      "free_bone_patterns": ["^H_", "^S_"],
      "exemptions": [
        {"pattern": "^j02", "reason": "it's name starts with `j02` and is a victory screen animation."}
      ],
      "transform_tolerance": 0.0,
      "warn_on_hitbox_extra_changes": false
    }

Bone patterns are regexes searched in the bone name; hitbox patterns win over
free ones, anything unlisted falls back to ``default_hitbox_relevant``.
Exemptions are evaluated in order against the animation file name and the
first match gives the reason.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

SCRIPT_DIR = Path(__file__).resolve().parent
REPO_ROOT = SCRIPT_DIR.parent
DEFAULT_RULES_PATH = REPO_ROOT / "config" / "wifi_safe_rules.json"


class RulesError(Exception):
    pass


@dataclass(frozen=True)
class Exemption:
    pattern: re.Pattern
    reason: str

    def matches(self, file_name: str) -> bool:
        return self.pattern.search(file_name) is not None


@dataclass(frozen=True)
class HitboxRules:
    # Unknown bones count as hitbox bones: vanilla transforms are kept for all of them.
    default_hitbox_relevant: bool = True
    hitbox_bone_patterns: tuple[re.Pattern, ...] = ()
    free_bone_patterns: tuple[re.Pattern, ...] = ()
    exemptions: tuple[Exemption, ...] = field(
        default_factory=lambda: (
            Exemption(re.compile(r"^j02"), "it's name starts with `j02` and is a victory screen animation."),
        )
    )
    transform_tolerance: float = 0.0
    warn_on_hitbox_extra_changes: bool = False

    def is_hitbox_relevant(self, bone_name: str) -> bool:
        if any(p.search(bone_name) for p in self.hitbox_bone_patterns):
            return True
        if any(p.search(bone_name) for p in self.free_bone_patterns):
            return False
        return self.default_hitbox_relevant

    def exemption_reason(self, file_name: str) -> str | None:
        for exemption in self.exemptions:
            if exemption.matches(file_name):
                return exemption.reason
        return None

    def is_exempt_animation(self, file_name: str) -> bool:
        return self.exemption_reason(file_name) is not None


def _compile_all(patterns: Any, key: str) -> tuple[re.Pattern, ...]:
    if not isinstance(patterns, list) or not all(isinstance(p, str) for p in patterns):
        raise RulesError(f"`{key}` must be a list of regex strings")
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as exc:
            raise RulesError(f"bad regex `{pattern}` in `{key}`: {exc}") from exc
    return tuple(compiled)


def _parse_exemptions(entries: Any) -> tuple[Exemption, ...]:
    if not isinstance(entries, list):
        raise RulesError("`exemptions` must be a list of {pattern, reason} objects")
    exemptions = []
    for entry in entries:
        if not isinstance(entry, dict) or "pattern" not in entry or "reason" not in entry:
            raise RulesError(f"bad exemption entry {entry!r}, expected {{pattern, reason}}")
        (pattern,) = _compile_all([entry["pattern"]], "exemptions")
        exemptions.append(Exemption(pattern, str(entry["reason"])))
    return tuple(exemptions)


def rules_from_dict(data: dict[str, Any]) -> HitboxRules:
    if not isinstance(data, dict):
        raise RulesError("rules must be a JSON object")
    defaults = HitboxRules()
    default_relevant = data.get("default_hitbox_relevant", defaults.default_hitbox_relevant)
    if not isinstance(default_relevant, bool):
        raise RulesError("`default_hitbox_relevant` must be true or false")
    tolerance = data.get("transform_tolerance", defaults.transform_tolerance)
    if isinstance(tolerance, bool) or not isinstance(tolerance, (int, float)) or tolerance < 0:
        raise RulesError("`transform_tolerance` must be a number >= 0")

    return HitboxRules(
        default_hitbox_relevant=default_relevant,
        hitbox_bone_patterns=_compile_all(data.get("hitbox_bone_patterns", []), "hitbox_bone_patterns"),
        free_bone_patterns=_compile_all(data.get("free_bone_patterns", []), "free_bone_patterns"),
        exemptions=(
            _parse_exemptions(data["exemptions"]) if "exemptions" in data else defaults.exemptions
        ),
        transform_tolerance=float(tolerance),
        warn_on_hitbox_extra_changes=bool(data.get("warn_on_hitbox_extra_changes", False)),
    )


def load_rules(path: Path | None = None) -> HitboxRules:
    """Load rules from ``path`` (default: config/wifi_safe_rules.json)."""
    rules_path = Path(path) if path is not None else DEFAULT_RULES_PATH
    if not rules_path.exists():
        if path is not None:
            raise RulesError(f"rules file {rules_path} not found")
        print(f"[WARN] {rules_path} not found, using built-in hitbox rules.")
        return HitboxRules()
    try:
        data = json.loads(rules_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise RulesError(f"{rules_path} is not valid JSON: {exc}") from exc
    return rules_from_dict(data)
