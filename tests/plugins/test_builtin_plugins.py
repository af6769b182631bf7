"""Tests for the API route and React component plugins."""

import pytest

from monodoc.generator.doc_comment import JSDocBlock
from monodoc.models import NodeContext
from monodoc.plugins import ApiDocumentationPlugin, ReactComponentPlugin


ROUTE_CODE = """export const getUser = router.get('/users/:id', authenticate, async (req, res) => {
  res.json(await users.find(req.params.id));
});"""

COMPONENT_CODE = """export const Counter = React.memo(({ initial, label }: CounterProps) => {
  const [count, setCount] = useState(initial);
  useEffect(() => {}, [count]);
  return <button onClick={() => setCount(count + 1)}>{label}</button>;
});"""

DOC = "/**\n * Does the thing.\n */"


def context(code: str, name: str, file_path: str, kind: str = "variable") -> NodeContext:
    return NodeContext(id=f"{file_path}:{name}:1", code_snippet=code, node_kind=kind, node_name=name, file_context=file_path)


class TestApiDocumentationPlugin:
    @pytest.fixture
    def plugin(self):
        return ApiDocumentationPlugin()

    @pytest.mark.asyncio
    async def test_enriches_route_context(self, plugin):
        ctx = await plugin.before_processing(context(ROUTE_CODE, "getUser", "services/users/src/routes/users.ts"))

        data = ctx.custom_data
        assert data["is_api_route"] is True
        assert data["http_method"] == "GET"
        assert data["route_path"] == "/users"
        assert data["middleware"] == ["authentication"]
        assert data["api_endpoints"] == [{"method": "GET", "path": "/users/:id", "params": ["id"]}]
        assert data["prompt_hints"]

    @pytest.mark.asyncio
    async def test_ignores_other_code(self, plugin):
        ctx = context("export function add(a, b) { return a + b; }", "add", "packages/math/src/add.ts", "function")
        result = await plugin.before_processing(ctx)
        assert result.custom_data == {}
        assert await plugin.after_processing(result, DOC) == DOC

    @pytest.mark.asyncio
    async def test_adds_route_and_middleware_tags_once(self, plugin):
        ctx = await plugin.before_processing(context(ROUTE_CODE, "getUser", "src/routes/users.ts"))

        once = await plugin.after_processing(ctx, DOC)
        twice = await plugin.after_processing(ctx, once)

        tags = [(t.tag, t.text) for t in JSDocBlock.parse(twice).tags]
        assert tags == [("route", "GET /users/:id"), ("middleware", "authentication")]

    def test_route_path_from_file(self, plugin):
        assert plugin.route_path("apps/server/src/api/orders/index.ts") == "/orders"
        assert plugin.route_path("src/handlers/thing.ts") == "/"


class TestReactComponentPlugin:
    @pytest.fixture
    def plugin(self):
        return ReactComponentPlugin()

    @pytest.mark.asyncio
    async def test_enriches_component_context(self, plugin):
        ctx = await plugin.before_processing(context(COMPONENT_CODE, "Counter", "apps/web/src/Counter.tsx"))

        data = ctx.custom_data
        assert data["is_react_component"] is True
        assert data["react_props"] == ["initial", "label"]
        assert data["hooks_used"] == ["useState", "useEffect"]
        assert data["component_type"] == "memoized functional"

    def test_capitalised_tsx_function_is_component(self, plugin):
        ctx = context("export function Header() { return null; }", "Header", "src/Header.tsx", "function")
        assert plugin.is_component(ctx)

    def test_plain_function_is_not_component(self, plugin):
        ctx = context("export function format(v) { return `${v}`; }", "format", "src/format.ts", "function")
        assert not plugin.is_component(ctx)

    @pytest.mark.asyncio
    async def test_adds_prop_and_component_tags(self, plugin):
        ctx = await plugin.before_processing(context(COMPONENT_CODE, "Counter", "src/Counter.tsx"))
        existing = "/**\n * Counter button.\n * @param props.label Text shown on the button\n */"

        result = JSDocBlock.parse(await plugin.after_processing(ctx, existing))

        params = [t.text for t in result.tags if t.tag == "param"]
        assert params == ["props.label Text shown on the button", "props.initial"]
        component = [t.text for t in result.tags if t.tag == "component"]
        assert component == ["memoized functional component using useState, useEffect"]

    def test_extract_props_from_interface(self, plugin):
        code = "interface CardProps {\n  title: string;\n  footer?: string;\n}\nfunction Card(p: CardProps) {}"
        assert plugin.extract_props(code) == ["title", "footer"]
