"""Adds route and middleware tags to HTTP handler documentation."""

import re

from ..generator.doc_comment import JSDocBlock, JSDocTag
from ..models import NodeContext
from .base import BasePlugin


_ROUTE_DIRS = ("/api/", "/routes/", "/controllers/")
_NAME_HINTS = ("handler", "controller", "route")
_CODE_HINTS = ("express.", "router.", "app.get", "app.post", "app.put", "app.delete")
_HTTP_METHOD = re.compile(r"\.(get|post|put|delete|patch|options|head)\s*\(", re.IGNORECASE)
_ENDPOINT = re.compile(r"\.(get|post|put|delete|patch)\s*\(\s*['\"`]([^'\"`]+)['\"`]")
_PATH_PARAM = re.compile(r":(\w+)")

_MIDDLEWARE_HINTS = [
    (("authenticate", "authMiddleware"), "authentication"),
    (("authorize", "permissionMiddleware"), "authorization"),
    (("validate", "schemaValidation", "joi"), "validation"),
    (("rateLimit",), "rate-limiting"),
    (("cors",), "CORS"),
]


class ApiDocumentationPlugin(BasePlugin):
    name = "ApiDocumentationPlugin"
    version = "1.0.0"
    description = "Enhances documentation for API routes and endpoints"

    def is_api_route(self, context: NodeContext) -> bool:
        path = "/" + context.file_context.lstrip("/")
        name = context.node_name.lower()
        return (
            any(d in path for d in _ROUTE_DIRS)
            or any(h in name for h in _NAME_HINTS)
            or any(h in context.code_snippet for h in _CODE_HINTS)
        )

    async def before_processing(self, context: NodeContext) -> NodeContext:
        if not self.is_api_route(context):
            return context

        code = context.code_snippet
        method_match = _HTTP_METHOD.search(code)
        endpoints = [
            {
                "method": m.group(1).upper(),
                "path": m.group(2),
                "params": _PATH_PARAM.findall(m.group(2)),
            }
            for m in _ENDPOINT.finditer(code)
        ]
        context.custom_data.update(
            {
                "is_api_route": True,
                "http_method": method_match.group(1).upper() if method_match else "GET",
                "route_path": self.route_path(context.file_context),
                "middleware": self.extract_middleware(code),
                "api_endpoints": endpoints,
            }
        )
        context.custom_data.setdefault("prompt_hints", []).append(
            "This is an HTTP handler: describe the request, the response and error statuses"
        )
        return context

    async def after_processing(self, context: NodeContext, text: str) -> str:
        if not context.custom_data.get("is_api_route"):
            return text

        block = JSDocBlock.parse(text)
        existing = {t.key for t in block.tags}
        endpoints = context.custom_data.get("api_endpoints") or []
        if not endpoints:
            endpoints = [
                {
                    "method": context.custom_data.get("http_method", "GET"),
                    "path": context.custom_data.get("route_path", "/"),
                    "params": [],
                }
            ]
        for endpoint in endpoints:
            tag = JSDocTag("route", f"{endpoint['method']} {endpoint['path']}")
            if tag.key not in existing:
                block.tags.append(tag)
                existing.add(tag.key)

        middleware = context.custom_data.get("middleware") or []
        if middleware:
            tag = JSDocTag("middleware", ", ".join(middleware))
            if tag.key not in existing:
                block.tags.append(tag)

        return block.render()

    def route_path(self, file_path: str) -> str:
        path = "/" + file_path.lstrip("/")
        route = "/"
        for marker in ("/api/", "/routes/"):
            index = path.find(marker)
            if index != -1:
                route = path[index + len(marker) - 1:]
                break
        route = re.sub(r"\.(ts|js|tsx|jsx)$", "", route)
        route = re.sub(r"/index$", "", route)
        return route if route.startswith("/") else "/" + route

    def extract_middleware(self, code: str) -> list[str]:
        return [label for hints, label in _MIDDLEWARE_HINTS if any(h in code for h in hints)]
