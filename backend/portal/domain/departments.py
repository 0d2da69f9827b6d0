"""Department Normalizer - canonical keys and alias classes for organizational units

Department labels are free text everywhere they are stored (workflow task teams,
employee departments, managers' approves_departments). Every authorization
comparison in the lifecycle engine goes through this module and nothing else.

    normalize("Quality Assurance")      -> "testing"
    expand_aliases("QA")                -> {"testing", "qa", "qualityassurance", ...}
    matches("QA/Testing", "testing")    -> True
    matches("Finance", "finance ")      -> True   (unknown labels match literally)
"""
import re
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

_NON_ALNUM = re.compile(r"[^a-z0-9]")

# Display label -> historically used spellings. The first spelling is the
# canonical key. Spellings are normalized when the lookup is built, so
# "R & D" and "r&d" collapse to the same key.
ALIAS_CLASSES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("Testing", (
        "testing", "qa", "quality assurance", "qa/testing", "qa testing",
        "qa test", "q.a.",
    )),
    ("Development", (
        "development", "dev", "engineering", "software development",
        "software engineering",
    )),
    ("Research", (
        "research", "r&d", "r & d", "rnd", "r and d", "research and development",
        "research & development", "ux / research",
    )),
    ("Design", (
        "design", "ui/ux", "ui", "ux", "ui and ux", "ui / visual design",
        "visual design", "graphic design",
    )),
)


def strip_label(label: Optional[str]) -> str:
    """Lowercase and drop every non-alphanumeric character"""
    return _NON_ALNUM.sub("", (label or "").lower())


def _build_lookup() -> Tuple[Dict[str, int], List[FrozenSet[str]], List[str]]:
    class_by_key: Dict[str, int] = {}
    members: List[FrozenSet[str]] = []
    canonical: List[str] = []
    for index, (_, spellings) in enumerate(ALIAS_CLASSES):
        keys = [strip_label(s) for s in spellings]
        for key in keys:
            if key in class_by_key and class_by_key[key] != index:
                raise ValueError(f"Department alias '{key}' belongs to two classes")
            class_by_key[key] = index
        members.append(frozenset(keys))
        canonical.append(keys[0])
    return class_by_key, members, canonical


_CLASS_BY_KEY, _CLASS_MEMBERS, _CANONICAL_KEYS = _build_lookup()


def normalize(label: Optional[str]) -> str:
    """
    Canonicalize a department label.

    Known spellings map to their class's canonical key; unknown labels
    normalize to their stripped form.
    """
    key = strip_label(label)
    index = _CLASS_BY_KEY.get(key)
    if index is None:
        return key
    return _CANONICAL_KEYS[index]


def expand_aliases(label: Optional[str]) -> FrozenSet[str]:
    """Every normalized spelling equivalent to the label (empty for blank labels)"""
    key = strip_label(label)
    if not key:
        return frozenset()
    index = _CLASS_BY_KEY.get(key)
    if index is None:
        return frozenset((key,))
    return _CLASS_MEMBERS[index]


def expand_all(labels: Optional[Iterable[str]]) -> FrozenSet[str]:
    """Union of the alias expansions of several labels"""
    keys: set = set()
    for label in labels or ():
        keys |= expand_aliases(label)
    return frozenset(keys)


def matches(label_a: Optional[str], label_b: Optional[str]) -> bool:
    """True when the two labels belong to the same alias class"""
    return bool(expand_aliases(label_a) & expand_aliases(label_b))


def matches_any(label: Optional[str], candidates: Optional[Iterable[str]]) -> bool:
    """True when the label matches at least one of the candidate labels"""
    return bool(expand_aliases(label) & expand_all(candidates))


def display_label(label: Optional[str]) -> str:
    """Standard display name for known departments, trimmed input otherwise"""
    index = _CLASS_BY_KEY.get(strip_label(label))
    if index is None:
        return (label or "").strip()
    return ALIAS_CLASSES[index][0]
