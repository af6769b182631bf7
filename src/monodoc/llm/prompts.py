"""Prompt templates for documentation generation."""

from ..models import NodeContext


# Part of the generation cache key. Bump whenever the templates below change.
PROMPT_TEMPLATE_VERSION = "1"


DOC_SYSTEM_PROMPT = """You are an expert TypeScript developer writing JSDoc comments for a monorepo.

Rules:
1. Write a complete JSDoc block: a summary line, then details where useful
2. Document every parameter with @param and the result with @returns
3. Use standard JSDoc tags (@param, @returns, @throws, @example, @see)
4. Be concise but informative
5. Do not restate the code line by line
{example_rule}
Return only the JSDoc comment block starting with /** and ending with */, no other text.
"""

EXAMPLE_RULE = "6. Add an @example when it clarifies usage"
NO_EXAMPLE_RULE = "6. Do not include @example tags"


DOC_USER_PROMPT = """Generate a JSDoc comment for this {node_kind}.

- Name: {node_name}
- Signature: {signature}
- File: {file_context}
- Package: {package_context}
- Exported: {exported}
{imports_section}{surrounding_section}{usages_section}{related_section}{custom_section}
CODE:
```typescript
{code_snippet}
```
"""


def build_doc_messages(context: NodeContext, generate_examples: bool = True) -> list[dict]:
    """Build chat messages for one node."""
    system = DOC_SYSTEM_PROMPT.format(
        example_rule=EXAMPLE_RULE if generate_examples else NO_EXAMPLE_RULE
    )

    imports_section = ""
    if context.imports:
        imports_section = "\nIMPORTS:\n" + "\n".join(f"- {i}" for i in context.imports[:20]) + "\n"

    surrounding_section = ""
    if context.surrounding_context:
        surrounding_section = (
            "\nSURROUNDING CONTEXT (enclosing class):\n```typescript\n"
            f"{context.surrounding_context}\n```\n"
        )

    usages_section = ""
    if context.symbol_usages:
        lines = [
            f"- {u.file_path}:{u.line} `{u.snippet or context.node_name}`"
            for u in context.symbol_usages
        ]
        usages_section = "\nUSAGES (where this symbol is referenced):\n" + "\n".join(lines) + "\n"

    related_section = ""
    if context.related_symbols:
        lines = [
            f"- {{@link {s.name}}} ({s.kind}) in {s.file_path}, score {s.relationship_score:.2f}"
            for s in context.related_symbols
        ]
        related_section = (
            "\nRELATED SYMBOLS (semantically similar, consider @see):\n" + "\n".join(lines) + "\n"
        )

    custom_section = ""
    hints = context.custom_data.get("prompt_hints")
    if hints:
        custom_section = "\nADDITIONAL GUIDANCE:\n" + "\n".join(f"- {h}" for h in hints) + "\n"

    user = DOC_USER_PROMPT.format(
        node_kind=context.node_kind,
        node_name=context.node_name,
        signature=context.signature or context.node_name,
        file_context=context.file_context,
        package_context=context.package_context or "(root)",
        exported="yes" if context.is_exported else "no",
        imports_section=imports_section,
        surrounding_section=surrounding_section,
        usages_section=usages_section,
        related_section=related_section,
        custom_section=custom_section,
        code_snippet=context.code_snippet,
    )

    return [
        {"role": "system", "content": system},
        {"role": "user", "content": user},
    ]


def build_embedding_text(kind: str, name: str, signature: str, snippet: str, limit: int = 1000) -> str:
    """Text sent to the embedding model for one node."""
    return f"{kind} {name}\n{signature}\n{snippet[:limit]}"
