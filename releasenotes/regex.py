"""Regex extractors compiled from configuration.

A single extraction mechanism serves reference linking, duplicate filtering,
label extraction, custom placeholders and text transformers. The ``usage`` tag
passed around is only used in diagnostics.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from releasenotes.models import PullRequestRecord, Rule, Transformer
from releasenotes.utils import get_logger

logger = get_logger(__name__)

_FLAG_MAP = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
}
_IGNORED_FLAGS = {"g", "u", "y"}

_TARGET_TOKEN_RE = re.compile(r"\$(\$|&|<([A-Za-z_][A-Za-z0-9_]*)>|(\d{1,2}))")


PROPERTY_GETTERS: Dict[str, Callable[[PullRequestRecord], str]] = {
    "title": lambda pr: pr.title,
    "author": lambda pr: pr.author,
    "milestone": lambda pr: pr.milestone or "",
    "body": lambda pr: pr.body,
    "branch": lambda pr: pr.branch,
    "base_branch": lambda pr: pr.base_branch,
    "labels": lambda pr: ",".join(pr.labels),
    "status": lambda pr: pr.status,
    "number": lambda pr: str(pr.number),
    "url": lambda pr: pr.html_url,
}
PROPERTY_GETTERS["baseBranch"] = PROPERTY_GETTERS["base_branch"]


@dataclass(frozen=True)
class RegexExtractor:
    pattern: re.Pattern
    target: str
    method: str = "replace"
    is_global: bool = True
    on_property: Optional[Tuple[str, ...]] = None
    on_empty: Optional[str] = None

    def substitute(self, value: str) -> str:
        return self.pattern.sub(self.target, value, count=0 if self.is_global else 1)

    def matches(self, value: str) -> bool:
        return self.pattern.search(value) is not None


@dataclass(frozen=True)
class CompiledRule:
    pattern: re.Pattern
    on_property: Tuple[str, ...]


def _parse_flags(flags: str) -> Tuple[int, bool]:
    compiled = 0
    for ch in flags or "":
        if ch in _FLAG_MAP:
            compiled |= _FLAG_MAP[ch]
        elif ch not in _IGNORED_FLAGS:
            raise ValueError(f"unsupported regex flag '{ch}'")
    return compiled, "g" in (flags or "")


def _as_properties(on_property) -> Optional[Tuple[str, ...]]:
    if on_property is None:
        return None
    props = (on_property,) if isinstance(on_property, str) else tuple(on_property)
    unknown = [p for p in props if p not in PROPERTY_GETTERS]
    if unknown:
        raise ValueError(f"unknown properties {unknown}")
    return props


def convert_target(target: str, pattern: re.Pattern) -> str:
    """Translate ``$1``/``$&``/``$<name>``/``$$`` replacement syntax into a ``re.sub`` template."""
    group_count = pattern.groups
    out: List[str] = []
    pos = 0
    for m in _TARGET_TOKEN_RE.finditer(target):
        out.append(target[pos:m.start()].replace("\\", "\\\\"))
        token, name, digits = m.group(1), m.group(2), m.group(3)
        if token == "$":
            out.append("$")
        elif token == "&":
            out.append(r"\g<0>")
        elif name is not None:
            if name not in pattern.groupindex:
                raise ValueError(f"unknown group name '{name}' in target")
            out.append(rf"\g<{name}>")
        else:
            num = int(digits)
            if len(digits) == 2 and num > group_count and 0 < int(digits[0]) <= group_count:
                out.append(rf"\g<{digits[0]}>" + digits[1])
            elif 0 < num <= group_count:
                out.append(rf"\g<{num}>")
            else:
                out.append(m.group(0))
        pos = m.end()
    out.append(target[pos:].replace("\\", "\\\\"))
    return "".join(out)


def compile_transformer(transformer: Optional[Transformer], usage: str) -> Optional[RegexExtractor]:
    """Compile a configured transformer; invalid ones log a warning and yield ``None``."""
    if transformer is None:
        return None
    try:
        flags, is_global = _parse_flags(transformer.flags)
        pattern = re.compile(transformer.pattern, flags)
        props = _as_properties(transformer.on_property)
        target = convert_target(transformer.target, pattern)
    except (re.error, ValueError) as e:
        logger.warning("regex.%s: invalid transformer pattern=%r (%s)", usage, transformer.pattern, e)
        return None
    return RegexExtractor(
        pattern=pattern,
        target=target,
        method=transformer.method,
        is_global=is_global,
        on_property=props,
        on_empty=transformer.on_empty,
    )


def compile_transformers(transformers: Iterable[Transformer], usage: str) -> List[RegexExtractor]:
    compiled = (compile_transformer(t, usage) for t in transformers or [])
    return [c for c in compiled if c is not None]


def compile_rules(rules: Iterable[Rule]) -> List[CompiledRule]:
    out: List[CompiledRule] = []
    for rule in rules or []:
        try:
            flags, _ = _parse_flags(rule.flags)
            out.append(CompiledRule(pattern=re.compile(rule.pattern, flags), on_property=_as_properties(rule.on_property)))
        except (re.error, ValueError) as e:
            logger.warning("regex.rule: invalid rule pattern=%r (%s)", rule.pattern, e)
    return out


def retrieve_property(pr: PullRequestRecord, prop: str) -> str:
    return PROPERTY_GETTERS[prop](pr)


def _extract_from_string(value: str, extractor: RegexExtractor) -> Optional[List[str]]:
    if extractor.method == "match":
        if extractor.is_global:
            found = [m.group(0) for m in extractor.pattern.finditer(value)]
        else:
            m = extractor.pattern.search(value)
            found = [m.group(0), *(g or "" for g in m.groups())] if m else []
        if found:
            return [x.lower() for x in found]
    else:
        label = extractor.substitute(value)
        if label != "":
            return [label.lower()]
    if extractor.on_empty is not None:
        return [extractor.on_empty.lower()]
    return None


def extract_values(pr: PullRequestRecord, extractor: RegexExtractor, usage: str) -> Optional[List[str]]:
    """Run ``extractor`` against the record body, or against each of its ``on_property`` sources.

    Returns ``None`` when nothing was extracted and no ``on_empty`` fallback exists.
    """
    if extractor.on_property is None:
        values = _extract_from_string(pr.body, extractor)
    else:
        values = []
        for prop in extractor.on_property:
            extracted = _extract_from_string(retrieve_property(pr, prop), extractor)
            if extracted is not None:
                values.extend(extracted)
    logger.debug("regex.%s: pr=%d extracted=%s", usage, pr.number, values)
    return values


def apply_transformers(text: str, transformers: Sequence[RegexExtractor]) -> str:
    for extractor in transformers:
        text = extractor.substitute(text)
    return text


def _rule_holds(rule: CompiledRule, pr: PullRequestRecord) -> bool:
    return any(rule.pattern.search(retrieve_property(pr, prop)) for prop in rule.on_property)


def matches_rules(rules: Sequence[CompiledRule], pr: PullRequestRecord, exhaustive: bool) -> bool:
    """``exhaustive`` requires every rule to hold, otherwise any single rule suffices."""
    if not rules:
        return False
    if exhaustive:
        return all(_rule_holds(r, pr) for r in rules)
    return any(_rule_holds(r, pr) for r in rules)
