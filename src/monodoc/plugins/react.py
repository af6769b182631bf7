"""Props and hooks annotations for React components."""

import re

from ..generator.doc_comment import JSDocBlock, JSDocTag
from ..models import NodeContext
from .base import BasePlugin


REACT_HOOKS = (
    "useState",
    "useEffect",
    "useContext",
    "useReducer",
    "useCallback",
    "useMemo",
    "useRef",
    "useImperativeHandle",
    "useLayoutEffect",
    "useDebugValue",
    "useDeferredValue",
    "useTransition",
    "useId",
    "useSyncExternalStore",
    "useInsertionEffect",
    "useFormStatus",
    "useActionState",
)

_RETURNS_JSX = re.compile(r"return\s*\(?\s*<[A-Za-z>]")
_PROPS_TYPE = re.compile(r"(?:interface|type)\s+\w+Props\s*=?\s*\{([^}]+)\}", re.DOTALL)
_PROP_NAME = re.compile(r"(\w+)\s*\??\s*:")
_DESTRUCTURED = re.compile(r"\(\s*\{([^}]+)\}")


class ReactComponentPlugin(BasePlugin):
    name = "ReactComponentPlugin"
    version = "1.0.0"
    description = "Enhances documentation for React components"

    def is_component(self, context: NodeContext) -> bool:
        code = context.code_snippet
        capitalized = bool(context.node_name[:1].isupper())
        if "JSX.Element" in code or "React.FC" in code or _RETURNS_JSX.search(code):
            return True
        if context.node_kind == "function" and capitalized and context.file_context.endswith((".jsx", ".tsx")):
            return True
        return (
            context.node_kind == "variable"
            and capitalized
            and ("React.memo" in code or "forwardRef" in code)
        )

    async def before_processing(self, context: NodeContext) -> NodeContext:
        if not self.is_component(context):
            return context

        code = context.code_snippet
        context.custom_data.update(
            {
                "is_react_component": True,
                "react_props": self.extract_props(code),
                "hooks_used": [h for h in REACT_HOOKS if re.search(rf"\b(?:React\.)?{h}\s*\(", code)],
                "component_type": self.component_type(code),
            }
        )
        context.custom_data.setdefault("prompt_hints", []).append(
            "This is a React component: document its props and rendered output"
        )
        return context

    async def after_processing(self, context: NodeContext, text: str) -> str:
        if not context.custom_data.get("is_react_component"):
            return text

        block = JSDocBlock.parse(text)
        existing = {t.key for t in block.tags}
        for prop in context.custom_data.get("react_props") or []:
            key_variants = {("param", f"props.{prop}"), ("param", prop), ("property", prop)}
            if existing & key_variants:
                continue
            tag = JSDocTag("param", f"props.{prop}")
            block.tags.append(tag)
            existing.add(tag.key)

        hooks = context.custom_data.get("hooks_used") or []
        summary = f"{context.custom_data.get('component_type', 'functional')} component"
        if hooks:
            summary += f" using {', '.join(hooks)}"
        component_tag = JSDocTag("component", summary)
        if ("component", "") not in existing:
            block.tags.append(component_tag)

        return block.render()

    def extract_props(self, code: str) -> list[str]:
        names: list[str] = []
        props_match = _PROPS_TYPE.search(code)
        if props_match:
            names.extend(_PROP_NAME.findall(props_match.group(1)))
        destructured = _DESTRUCTURED.search(code)
        if destructured:
            for part in destructured.group(1).split(","):
                name = part.strip().split(":")[0].split("=")[0].strip()
                if name and name.isidentifier():
                    names.append(name)
        return list(dict.fromkeys(names))

    def component_type(self, code: str) -> str:
        if "React.memo" in code or "memo(" in code:
            return "memoized functional"
        if "forwardRef" in code:
            return "forwarded-ref functional"
        if "class " in code and "extends" in code:
            return "class"
        return "functional"
