"""JSDoc block parsing, normalisation and the merge decision table."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum


_FENCE = re.compile(r"^```[\w-]*\s*$")
_TAG_LINE = re.compile(r"^@(\w+)\s*(.*)$")
_TAG_ANYWHERE = re.compile(r"(^|\s)@[a-zA-Z]+\b")
_NAMED_PARAM = re.compile(r"^(?:\{[^}]*\}\s*)?\[?([\w$.]+)")

# Tags whose identity is their name argument
_NAMED_TAGS = {"param", "arg", "argument", "property", "prop", "template", "typedef", "callback"}
# Tags that may repeat with different text
_REPEATABLE_TAGS = {"example", "see", "throws", "exception", "link", "route", "middleware"}

DESCRIPTION_OVERLAP_CHARS = 50


class MergeAction(str, Enum):
    INSERT = "insert"
    REPLACE = "replace"
    MERGE = "merge"
    SKIP = "skip"


def decide_action(existing_doc: str | None, overwrite: bool, merge: bool) -> MergeAction:
    """Choose what to do with a node given its current doc and the flags.

    | existing | overwrite | merge | action  |
    | none     | any       | any   | insert  |
    | present  | true      | any   | replace |
    | present  | false     | true  | merge   |
    | present  | false     | false | skip    |
    """
    if not existing_doc or not existing_doc.strip():
        return MergeAction.INSERT
    if overwrite:
        return MergeAction.REPLACE
    if merge:
        return MergeAction.MERGE
    return MergeAction.SKIP


@dataclass
class JSDocTag:
    tag: str
    text: str = ""

    @property
    def name(self) -> str:
        if self.tag in _NAMED_TAGS:
            match = _NAMED_PARAM.match(self.text.strip())
            return match.group(1) if match else ""
        return ""

    @property
    def key(self) -> tuple[str, str]:
        if self.tag in _NAMED_TAGS:
            return (self.tag, self.name)
        if self.tag in _REPEATABLE_TAGS:
            return (self.tag, " ".join(self.text.split()))
        return (self.tag, "")


@dataclass
class JSDocBlock:
    description: str = ""
    tags: list[JSDocTag] = field(default_factory=list)

    @classmethod
    def parse(cls, text: str) -> "JSDocBlock":
        body = text.strip()
        if body.startswith("/**"):
            body = body[3:]
        if body.endswith("*/"):
            body = body[:-2]

        description_lines: list[str] = []
        tags: list[JSDocTag] = []
        for raw in body.splitlines():
            line = raw.strip()
            if line.startswith("*"):
                line = line[1:]
                if line.startswith(" "):
                    line = line[1:]
            line = line.rstrip()

            match = _TAG_LINE.match(line.strip())
            if match:
                tags.append(JSDocTag(tag=match.group(1), text=match.group(2)))
            elif tags:
                tags[-1].text = f"{tags[-1].text}\n{line}" if tags[-1].text else line
            else:
                description_lines.append(line)

        for tag in tags:
            tag.text = tag.text.rstrip()
        return cls(description="\n".join(description_lines).strip(), tags=tags)

    def render(self, indent: str = "") -> str:
        lines = [f"{indent}/**"]
        if self.description:
            for line in self.description.splitlines():
                lines.append(f"{indent} * {line}".rstrip())
        if self.description and self.tags:
            lines.append(f"{indent} *")
        for tag in self.tags:
            first, *rest = (tag.text or "").splitlines() or [""]
            lines.append(f"{indent} * @{tag.tag} {first}".rstrip())
            for line in rest:
                lines.append(f"{indent} * {line}".rstrip())
        lines.append(f"{indent} */")
        return "\n".join(lines)

    def normalized(self) -> str:
        parts = [" ".join(self.description.split())]
        parts.extend(f"@{t.tag} {' '.join(t.text.split())}".strip() for t in self.tags)
        return "\n".join(parts)


def strip_fences(text: str) -> str:
    """Drop markdown code fences a model may wrap its answer in."""
    lines = [line for line in text.strip().splitlines() if not _FENCE.match(line.strip())]
    return "\n".join(lines).strip()


def has_doc_marker(text: str) -> bool:
    """Whether text looks like a doc comment at all."""
    if "/**" in text:
        return True
    if any(line.strip().startswith("* ") or line.strip() == "*" for line in text.splitlines()):
        return True
    return bool(_TAG_ANYWHERE.search(text))


def extract_block(text: str) -> str:
    """Return the first /** ... */ block in text, or text wrapped as one."""
    start = text.find("/**")
    if start != -1:
        end = text.find("*/", start + 3)
        if end != -1:
            return text[start:end + 2]
        return text[start:] + "\n */"
    return JSDocBlock.parse(text).render()


def is_equivalent(a: str, b: str) -> bool:
    return JSDocBlock.parse(a).normalized() == JSDocBlock.parse(b).normalized()


def merge_docs(existing: str, new: str) -> str:
    """Supplement an existing doc with generated content.

    The existing description and tags win. The new description is appended
    only when its opening isn't already present, and new tags are added only
    when no tag with the same identity exists.
    """
    old_block = JSDocBlock.parse(existing)
    new_block = JSDocBlock.parse(new)

    description = old_block.description
    if new_block.description:
        opening = " ".join(new_block.description.split())[:DESCRIPTION_OVERLAP_CHARS]
        if not description:
            description = new_block.description
        elif opening.lower() not in " ".join(description.split()).lower():
            description = f"{description}\n\n{new_block.description}"

    tags = list(old_block.tags)
    seen = {t.key for t in tags}
    for tag in new_block.tags:
        if tag.key not in seen:
            tags.append(tag)
            seen.add(tag.key)

    return JSDocBlock(description=description, tags=tags).render()
