"""YAML-driven rule table for the debugging challenges."""
from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from config.settings import settings


class RuleTableError(ValueError):
    """Raised when the grading catalog cannot be loaded or validated."""


def _compiles(pattern: Optional[str]) -> Optional[str]:
    if pattern is None:
        return None
    try:
        re.compile(pattern)
    except re.error as exc:
        raise ValueError(f"invalid pattern {pattern!r}: {exc}") from exc
    return pattern


class Check(BaseModel):
    """Boolean predicate over a source region; exactly one operator is set."""

    contains: Optional[str] = None
    lacks: Optional[str] = None
    matches: Optional[str] = None
    lacks_match: Optional[str] = None
    all_of: Optional[List["Check"]] = None
    any_of: Optional[List["Check"]] = None

    model_config = {"extra": "forbid"}

    @field_validator("matches", "lacks_match")
    @classmethod
    def _valid_patterns(cls, value: Optional[str]) -> Optional[str]:
        return _compiles(value)

    @model_validator(mode="after")
    def _one_operator(self) -> "Check":
        ops = [name for name in self.__class__.model_fields if getattr(self, name) is not None]
        if len(ops) != 1:
            raise ValueError(f"a check needs exactly one operator, got {ops or 'none'}")
        if self.all_of is not None and not self.all_of:
            raise ValueError("all_of must not be empty")
        if self.any_of is not None and not self.any_of:
            raise ValueError("any_of must not be empty")
        return self

    def evaluate(self, region: str) -> bool:
        if self.contains is not None:
            return self.contains in region
        if self.lacks is not None:
            return self.lacks not in region
        if self.matches is not None:
            return re.search(self.matches, region) is not None
        if self.lacks_match is not None:
            return re.search(self.lacks_match, region) is None
        if self.all_of is not None:
            return all(check.evaluate(region) for check in self.all_of)
        return any(check.evaluate(region) for check in self.any_of or [])


class Region(BaseModel):
    """Scopes a rule to the part of the source matched by ``pattern``."""

    pattern: str
    group: int = Field(default=0, ge=0)
    fallback: Literal["empty", "whole"] = "empty"

    model_config = {"extra": "forbid"}

    @field_validator("pattern")
    @classmethod
    def _valid_pattern(cls, value: str) -> str:
        return _compiles(value)

    def extract(self, source: str) -> str:
        """Return the scoped region; a miss degrades to the configured fallback."""

        match = re.search(self.pattern, source)
        if match is not None:
            try:
                region = match.group(self.group)
            except IndexError:
                region = None
            if region is not None:
                return region
        return source if self.fallback == "whole" else ""


class BugRule(BaseModel):
    name: str
    region: Optional[Region] = None
    check: Check
    pass_message: str
    fail_message: str

    model_config = {"extra": "forbid"}

    def scope(self, source: str) -> str:
        if self.region is None:
            return source
        return self.region.extract(source)


class Variant(BaseModel):  # One gradable version of a challenge
    id: str = ""
    title: str
    starter: str = ""
    rules: List[BugRule] = Field(default_factory=list)

    def point_value(self, max_score: float) -> float:
        if not self.rules:
            return 0.0
        return max_score / len(self.rules)


class Challenge(BaseModel):  # Titled group of variants shown to the observer
    title: str = ""
    description: str = ""
    default_variant: str
    variants: List[str] = Field(default_factory=list)


class RuleTable(BaseModel):
    """Versioned catalog of challenges and per-variant bug rules."""

    version: int = 1
    default_challenge: str
    challenges: Dict[str, Challenge]
    variants: Dict[str, Variant]

    @model_validator(mode="after")
    def _link(self) -> "RuleTable":
        for key, variant in self.variants.items():
            variant.id = key
        for title, challenge in self.challenges.items():
            challenge.title = title
            if not challenge.variants:
                challenge.variants = [challenge.default_variant]
            missing = [vid for vid in challenge.variants if vid not in self.variants]
            if challenge.default_variant not in self.variants:
                missing.append(challenge.default_variant)
            if missing:
                raise ValueError(f"challenge {title!r} references unknown variants {sorted(set(missing))}")
        if self.default_challenge not in self.challenges:
            raise ValueError(f"default challenge {self.default_challenge!r} is not defined")
        return self

    def variant(self, variant_id: Optional[str]) -> Optional[Variant]:
        if not variant_id:
            return None
        return self.variants.get(variant_id)

    def challenge(self, title: Optional[str]) -> Challenge:
        """Return the named challenge, falling back to the default one."""

        if title and title in self.challenges:
            return self.challenges[title]
        return self.challenges[self.default_challenge]

    def starter_code(self, variant_id: str) -> str:
        variant = self.variant(variant_id)
        return variant.starter if variant else ""


def load_rule_table(path: Optional[str | Path] = None) -> RuleTable:
    """Parse and validate the YAML catalog at ``path``."""

    target = Path(path or settings.RULES_PATH)
    try:
        with open(target, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except FileNotFoundError as exc:
        raise RuleTableError(f"rule table not found: {target}") from exc
    except yaml.YAMLError as exc:
        raise RuleTableError(f"rule table {target} is not valid YAML: {exc}") from exc

    if not isinstance(data, dict):
        raise RuleTableError(f"rule table {target} must be a mapping")
    try:
        return RuleTable.model_validate(data)
    except ValidationError as exc:
        raise RuleTableError(f"rule table {target} is invalid: {exc}") from exc


_table: Optional[RuleTable] = None


def rule_table() -> RuleTable:
    global _table
    if _table is None:
        _table = load_rule_table()
    return _table


def reset_rule_table() -> None:
    """Drop the cached catalog so the next access reloads it."""

    global _table
    _table = None


__all__ = [
    "BugRule",
    "Challenge",
    "Check",
    "Region",
    "RuleTable",
    "RuleTableError",
    "Variant",
    "load_rule_table",
    "reset_rule_table",
    "rule_table",
]
