from __future__ import annotations

import json
import logging
import math
import re
import unicodedata
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple

from palette_errors import IntegrityError, IoError, ParseError

logger = logging.getLogger(__name__)

# ASCII digits only; the title stays on one line
INTENT_LABEL_RE = re.compile(r"^\s*([0-9]+)\.\s*([^\n\r\u2028\u2029]+)\Z")
_LONE_SURROGATE_RE = re.compile("[\ud800-\udfff]")


@dataclass
class Topic:
    id: int
    title: str
    raw_title: str
    examples: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Artifact shape; key order is part of the consumer contract."""
        return {
            "id": self.id,
            "title": self.title,
            "rawTitle": self.raw_title,
            "examples": list(self.examples),
        }


@dataclass
class Category:
    category: str
    topics: List[Topic] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"category": self.category, "topics": [t.to_dict() for t in self.topics]}


# ---------------------
# Intent label handling
# ---------------------

def parse_intent_label(raw: str) -> Dict[str, Any]:
    """
    "12. Passive voice" -> {"id": 12, "title": "Passive voice", "raw_title": "12. Passive voice"}
    Labels without a leading "N." keep the whole label as title and get id NaN.
    """
    m = INTENT_LABEL_RE.match(raw)
    if not m:
        return {"id": math.nan, "title": raw, "raw_title": raw}
    return {"id": int(m.group(1)), "title": m.group(2), "raw_title": raw}


def _single_entry(entry: Any, kind: str) -> Tuple[str, Any]:
    if not isinstance(entry, Mapping) or not entry:
        raise ParseError(f"{kind} entry must be a non-empty mapping, got {type(entry).__name__}")
    # Upstream entries carry exactly one key; extra keys are ignored.
    key = next(iter(entry))
    return key, entry[key]


def category_sort_key(name: str) -> Tuple[str, str]:
    """
    Locale-style ordering: accents and case are ignored first, then lowercase
    sorts before uppercase for otherwise equal names. Comparison is by code
    point after folding, so ASCII punctuation such as "{", "|" and "~" sorts
    after letters (ICU collation would put it first).
    """
    decomposed = unicodedata.normalize("NFKD", name)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return (base.casefold(), name.swapcase())


# --------------
# Palette builder
# --------------

def build_palette(structure: Any) -> List[Category]:
    """
    Turn the parsed literal ({"sections": [...], "intents": [...]}) into the
    sorted palette: categories by name, topics by id inside each category.
    """
    if not isinstance(structure, Mapping):
        raise ParseError("palette literal is not an object")
    raw_intents = structure.get("intents")
    raw_sections = structure.get("sections")
    if not isinstance(raw_intents, list) or not isinstance(raw_sections, list):
        raise ParseError("palette literal lacks 'sections'/'intents' arrays")

    intents: Dict[Any, Topic] = {}
    for entry in raw_intents:
        label, examples = _single_entry(entry, "intent")
        meta = parse_intent_label(label)
        if math.isnan(meta["id"]):
            # Stored but unreachable: section ids are always numeric.
            logger.debug("intent label without numeric id: %r", label)
        intents[meta["id"]] = Topic(
            id=meta["id"],
            title=meta["title"],
            raw_title=meta["raw_title"],
            examples=examples,
        )

    categories: List[Category] = []
    for entry in raw_sections:
        name, ids = _single_entry(entry, "section")
        if not isinstance(ids, list):
            raise ParseError(f"section {name!r} does not hold a list of intent ids")
        topics: List[Topic] = []
        for intent_id in ids:
            # only numbers can match; True must not alias 1
            if isinstance(intent_id, bool) or not isinstance(intent_id, (int, float)):
                raise IntegrityError(intent_id)
            intent = intents.get(intent_id)
            if intent is None:
                raise IntegrityError(intent_id)
            topics.append(Topic(
                id=intent_id,
                title=intent.title,
                raw_title=intent.raw_title,
                examples=intent.examples,
            ))
        topics.sort(key=lambda t: t.id)
        categories.append(Category(category=name, topics=topics))

    categories.sort(key=lambda c: category_sort_key(c.category))
    logger.info(
        "built palette: %d categories, %d topics from %d intents",
        len(categories), sum(len(c.topics) for c in categories), len(raw_intents),
    )
    return categories


# -----------------------
# Artifact read and write
# -----------------------

def palette_to_json(palette: List[Category]) -> str:
    payload = [c.to_dict() for c in palette]
    text = json.dumps(payload, ensure_ascii=False, indent=2) + "\n"
    # lone surrogates cannot be UTF-8 encoded; write them as \uXXXX escapes
    return _LONE_SURROGATE_RE.sub(lambda m: "\\u%04x" % ord(m.group(0)), text)


def write_palette(palette: List[Category], path: str) -> None:
    text = palette_to_json(palette)
    try:
        data = text.encode("utf-8")
        with open(path, "wb") as f:
            f.write(data)
    except OSError as e:
        raise IoError(path, str(e)) from e


def normalize_palette(raw: List[Dict[str, Any]]) -> List[Category]:
    """Convert artifact dicts back into Category/Topic dataclasses."""
    palette: List[Category] = []
    for c in raw:
        topics = [
            Topic(
                id=t["id"],
                title=t["title"],
                raw_title=t["rawTitle"],
                examples=list(t.get("examples") or []),
            )
            for t in c.get("topics") or []
        ]
        palette.append(Category(category=c["category"], topics=topics))
    return palette


def load_palette(path: str) -> List[Category]:
    with open(path, "r", encoding="utf-8") as f:
        return normalize_palette(json.load(f))
