"""Pytest configuration and shared fixtures."""

import json
import re
from pathlib import Path
from typing import Optional

import pytest

from monodoc.config import (
    AIClientConfig,
    Config,
    DocConfig,
    EmbeddingConfig,
    ModelConfig,
    PerformanceConfig,
)
from monodoc.errors import GenerationError
from monodoc.llm.provider import LLMProvider, LLMResponse


MATH_TS = """import { round } from './round';

export function add(a: number, b: number): number {
  return a + b;
}

/**
 * Multiplies two numbers.
 */
export function multiply(a: number, b: number): number {
  return a * b;
}

export class Calculator {
  total(values: number[]): number {
    return values.reduce((sum, v) => add(sum, v), 0);
  }
}
"""

ROUND_TS = """export const round = (value: number): number => Math.round(value);
"""

BUTTON_TSX = """import React from 'react';

interface ButtonProps {
  label: string;
  onClick?: () => void;
}

export function Button({ label, onClick }: ButtonProps) {
  return <button onClick={onClick}>{label}</button>;
}
"""

_NAME_LINE = re.compile(r"^- Name: (.+)$", re.MULTILINE)


def write_manifest(directory: Path, name: str, **extra) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "package.json").write_text(json.dumps({"name": name, **extra}))


@pytest.fixture
def sample_monorepo(tmp_path: Path) -> Path:
    """A small monorepo: a root manifest, a core library and a web app."""
    repo = tmp_path / "monorepo"
    write_manifest(repo, "sample-monorepo", private=True)

    core = repo / "packages" / "core"
    write_manifest(core, "@sample/core", devDependencies={"typescript": "^5.0.0"})
    (core / "tsconfig.json").write_text("{}")
    (core / "src").mkdir()
    (core / "src" / "math.ts").write_text(MATH_TS)
    (core / "src" / "round.ts").write_text(ROUND_TS)
    (core / "src" / "math.test.ts").write_text("test('adds', () => {});\n")

    web = repo / "apps" / "web"
    write_manifest(web, "@sample/web", dependencies={"react": "^18.0.0"})
    (web / "src").mkdir()
    (web / "src" / "Button.tsx").write_text(BUTTON_TSX)

    modules = repo / "node_modules" / "left-pad"
    modules.mkdir(parents=True)
    (modules / "index.js").write_text("module.exports = function leftPad() {};\n")

    return repo


@pytest.fixture
def config(sample_monorepo: Path, tmp_path: Path) -> Config:
    """Provide a test configuration: no pacing, no retries, no embeddings."""
    return Config(
        base_dir=sample_monorepo,
        ai=AIClientConfig(request_delay_ms=0, max_retries=0, retry_delay_ms=0),
        docs=DocConfig(min_doc_length=10),
        embedding=EmbeddingConfig(enabled=False),
        performance=PerformanceConfig(cache_dir=tmp_path / "cache"),
    )


class FakeProvider(LLMProvider):
    """Deterministic provider that counts calls.

    Generated docs mention the node name so outputs are distinguishable.
    Nodes listed in ``fail_on`` raise a non-transient GenerationError.
    """

    def __init__(
        self,
        fail_on: Optional[set[str]] = None,
        content: Optional[str] = None,
        vectors: Optional[dict[str, list[float]]] = None,
    ):
        self.fail_on = fail_on or set()
        self.content = content
        self.vectors = vectors or {}
        self.generate_calls = 0
        self.embed_calls = 0
        self.messages: list[list[dict]] = []

    async def generate(self, messages: list[dict], model: ModelConfig) -> LLMResponse:
        self.generate_calls += 1
        self.messages.append(messages)
        match = _NAME_LINE.search(messages[-1]["content"])
        name = match.group(1) if match else "node"
        if name in self.fail_on:
            raise GenerationError(f"provider rejected {name}")
        if self.content is not None:
            return LLMResponse(content=self.content, model=model.id)
        return LLMResponse(
            content=(
                "/**\n"
                f" * Documentation for {name}.\n"
                " *\n"
                " * @returns The result of the operation\n"
                " */"
            ),
            model=model.id,
        )

    async def embed(self, texts: list[str], model: ModelConfig) -> list[list[float]]:
        self.embed_calls += 1
        result = []
        for text in texts:
            name = text.split("\n", 1)[0].split(" ", 1)[-1]
            result.append(self.vectors.get(name, [1.0, 0.0, 0.0]))
        return result


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def make_provider():
    """Factory for FakeProvider with custom failures, content or vectors."""
    return FakeProvider
