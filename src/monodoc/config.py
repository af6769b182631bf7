"""Configuration management for monodoc."""

import os
from pathlib import Path
from typing import Any, Literal, Optional
import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigurationError


load_dotenv()


DEFAULT_WORKSPACE_DIRS = ["apps", "tools", "packages", "libs", "services"]

DEFAULT_INCLUDE_PATTERNS = ["**/*.ts", "**/*.tsx", "**/*.js", "**/*.jsx"]

DEFAULT_IGNORE_PATTERNS = [
    "**/*.d.ts",
    "**/*.spec.*",
    "**/*.test.*",
    "**/__tests__/**",
    "**/node_modules/**",
    "**/dist/**",
    "**/build/**",
    "**/coverage/**",
    "**/.next/**",
    "**/.turbo/**",
    "**/.git/**",
]

DEFAULT_DOCUMENTED_KINDS = [
    "function",
    "class",
    "method",
    "interface",
    "type",
    "enum",
    "variable",
]

# Bump when the cached payload shape changes.
CACHE_SCHEMA_VERSION = "1"


class ModelConfig(BaseModel):
    """One model descriptor. Resolved to a provider adapter at call time."""

    id: str
    provider: str
    model: str
    kind: Literal["generation", "embedding"] = "generation"
    api_key_env_var: Optional[str] = None
    base_url: Optional[str] = None
    temperature: Optional[float] = None
    max_output_tokens: Optional[int] = None
    top_p: Optional[float] = None
    seed: Optional[int] = None
    stop_sequences: Optional[list[str]] = None
    dimensions: Optional[int] = None

    @property
    def litellm_model(self) -> str:
        """Model string in litellm's ``provider/model`` form."""
        if "/" in self.model:
            return self.model
        return f"{self.provider}/{self.model}"

    @property
    def api_key(self) -> Optional[str]:
        if self.api_key_env_var:
            return os.getenv(self.api_key_env_var)
        return None


DEFAULT_MODELS = [
    ModelConfig(
        id="anthropic-sonnet",
        provider="anthropic",
        model="claude-3-5-sonnet-20241022",
        kind="generation",
        api_key_env_var="ANTHROPIC_API_KEY",
        temperature=0.2,
        max_output_tokens=1024,
    ),
    ModelConfig(
        id="openai-embedding",
        provider="openai",
        model="text-embedding-3-small",
        kind="embedding",
        api_key_env_var="OPENAI_API_KEY",
        dimensions=1536,
    ),
]


class AIClientConfig(BaseModel):
    """Request pacing and retry settings."""

    default_generation_model_id: str = Field(default="anthropic-sonnet")
    default_embedding_model_id: str = Field(default="openai-embedding")
    max_concurrent_requests: int = Field(default=3)
    request_delay_ms: int = Field(default=500)
    max_retries: int = Field(default=5)
    retry_delay_ms: int = Field(default=1000)
    max_tokens_per_batch: int = Field(default=8000)
    timeout: int = Field(default=60)
    prompt_version: str = Field(default="1")


class EmbeddingConfig(BaseModel):
    enabled: bool = Field(default=True)
    model_id: Optional[str] = Field(default=None)
    min_relationship_score: float = Field(default=0.75)
    max_related_symbols: int = Field(default=5)
    embedding_batch_size: int = Field(default=10)


class DocConfig(BaseModel):
    """What to document and how to treat existing comments."""

    prioritize_exports: bool = Field(default=True)
    include_private: bool = Field(default=False)
    include_node_kinds: list[str] = Field(
        default_factory=lambda: DEFAULT_DOCUMENTED_KINDS.copy()
    )
    exclude_node_kinds: list[str] = Field(default_factory=list)
    max_snippet_length: int = Field(default=3500)
    min_doc_length: int = Field(default=100)
    overwrite_existing: bool = Field(default=False)
    merge_existing: bool = Field(default=True)
    generate_examples: bool = Field(default=True)
    include_symbol_references: bool = Field(default=True)
    include_related_symbols: bool = Field(default=True)
    max_symbol_usages: int = Field(default=10)


class PerformanceConfig(BaseModel):
    max_concurrent_files: int = Field(default=4)
    enable_caching: bool = Field(default=True)
    cache_dir: Path = Field(default=Path(".monodoc-cache"))
    cache_max_age_hours: float = Field(default=24.0)


class OutputConfig(BaseModel):
    report_dir: Path = Field(default=Path("reports"))
    report_file_name: str = Field(default="monodoc-report.json")
    log_level: str = Field(default="INFO")


class Config(BaseModel):
    """Application configuration."""

    base_dir: Path = Field(default_factory=Path.cwd)
    workspace_dirs: list[str] = Field(
        default_factory=lambda: DEFAULT_WORKSPACE_DIRS.copy()
    )
    include_patterns: list[str] = Field(
        default_factory=lambda: DEFAULT_INCLUDE_PATTERNS.copy()
    )
    ignore_patterns: list[str] = Field(
        default_factory=lambda: DEFAULT_IGNORE_PATTERNS.copy()
    )
    target_paths: list[str] = Field(default_factory=list)

    models: list[ModelConfig] = Field(default_factory=lambda: list(DEFAULT_MODELS))
    ai: AIClientConfig = Field(default_factory=AIClientConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    docs: DocConfig = Field(default_factory=DocConfig)
    performance: PerformanceConfig = Field(default_factory=PerformanceConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    # Plugins as "package.module:ClassName"
    plugins: list[str] = Field(default_factory=list)

    # Run flags
    dry_run: bool = Field(default=False)
    force_overwrite: bool = Field(default=False)
    no_merge_existing: bool = Field(default=False)
    disable_embeddings: bool = Field(default=False)

    @property
    def overwrite(self) -> bool:
        """Effective overwrite flag for the merge decision."""
        return self.force_overwrite or self.no_merge_existing or self.docs.overwrite_existing

    @property
    def merge(self) -> bool:
        return self.docs.merge_existing and not self.no_merge_existing

    @property
    def embeddings_active(self) -> bool:
        return self.embedding.enabled and not self.disable_embeddings and not self.dry_run

    def get_model(self, model_id: str) -> ModelConfig:
        for model in self.models:
            if model.id == model_id:
                return model
        raise ConfigurationError(f"Unknown model id: {model_id}", {"model_id": model_id})

    def cache_version(self, package_version: str) -> str:
        return f"{package_version}:{CACHE_SCHEMA_VERSION}"

    def validate_for_run(self) -> None:
        """Fatal checks performed before any processing begins.

        Raises:
            ConfigurationError: If the run cannot produce valid output
        """
        if not self.base_dir.is_dir():
            raise ConfigurationError(f"Base directory does not exist: {self.base_dir}")

        generation = self.get_model(self.ai.default_generation_model_id)
        if generation.kind != "generation":
            raise ConfigurationError(
                f"Model {generation.id} is not a generation model"
            )

        if self.embeddings_active:
            embedding_id = self.embedding.model_id or self.ai.default_embedding_model_id
            embedding = self.get_model(embedding_id)
            if embedding.kind != "embedding":
                raise ConfigurationError(f"Model {embedding.id} is not an embedding model")
            if self.embedding.embedding_batch_size <= 0:
                raise ConfigurationError("embedding_batch_size must be positive")

        if self.ai.max_concurrent_requests <= 0:
            raise ConfigurationError("max_concurrent_requests must be positive")
        if self.performance.max_concurrent_files <= 0:
            raise ConfigurationError("max_concurrent_files must be positive")
        if self.ai.max_tokens_per_batch <= 0:
            raise ConfigurationError("max_tokens_per_batch must be positive")

    def sanitized(self) -> dict[str, Any]:
        """Configuration snapshot safe to write into a report."""
        data = self.model_dump(mode="json")
        for model in data.get("models", []):
            model.pop("api_key_env_var", None)
        return data

    @classmethod
    def from_env(cls, base_dir: Optional[Path] = None) -> "Config":
        """Load configuration from environment variables."""
        def _parse_int(value: Optional[str], fallback: int) -> int:
            try:
                return int(value) if value is not None else fallback
            except ValueError:
                return fallback

        def _parse_bool(value: Optional[str], fallback: bool) -> bool:
            if value is None:
                return fallback
            return value.strip().lower() in ("1", "true", "yes", "on")

        ai = AIClientConfig(
            max_concurrent_requests=_parse_int(os.getenv("MONODOC_MAX_CONCURRENT_REQUESTS"), 3),
            request_delay_ms=_parse_int(os.getenv("MONODOC_REQUEST_DELAY_MS"), 500),
            max_retries=_parse_int(os.getenv("MONODOC_MAX_RETRIES"), 5),
            retry_delay_ms=_parse_int(os.getenv("MONODOC_RETRY_DELAY_MS"), 1000),
            max_tokens_per_batch=_parse_int(os.getenv("MONODOC_MAX_TOKENS_PER_BATCH"), 8000),
        )
        generation_model = os.getenv("MONODOC_GENERATION_MODEL")
        if generation_model:
            ai.default_generation_model_id = generation_model

        cache_dir = os.getenv("MONODOC_CACHE_DIR")
        performance = PerformanceConfig(
            max_concurrent_files=_parse_int(os.getenv("MONODOC_MAX_CONCURRENT_FILES"), 4),
            enable_caching=_parse_bool(os.getenv("MONODOC_ENABLE_CACHING"), True),
        )
        if cache_dir:
            performance.cache_dir = Path(cache_dir)

        workspace_dirs = DEFAULT_WORKSPACE_DIRS.copy()
        extra_dirs = os.getenv("MONODOC_WORKSPACE_DIRS")
        if extra_dirs:
            workspace_dirs = [entry.strip() for entry in extra_dirs.split(",") if entry.strip()]

        return cls(
            base_dir=base_dir or Path.cwd(),
            workspace_dirs=workspace_dirs,
            ai=ai,
            performance=performance,
            embedding=EmbeddingConfig(
                enabled=_parse_bool(os.getenv("MONODOC_EMBEDDINGS"), True),
            ),
            dry_run=_parse_bool(os.getenv("MONODOC_DRY_RUN"), False),
        )

    @classmethod
    def from_file(cls, path: Path, base_dir: Optional[Path] = None) -> "Config":
        """Load configuration from a YAML file.

        Raises:
            ConfigurationError: If the file can't be read or fails validation
        """
        try:
            raw = yaml.safe_load(Path(path).read_text()) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to read config file {path}: {e}") from e

        if not isinstance(raw, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")

        if base_dir is not None:
            raw["base_dir"] = base_dir
        elif "base_dir" in raw:
            raw["base_dir"] = (Path(path).parent / raw["base_dir"]).resolve()
        else:
            raw["base_dir"] = Path(path).parent.resolve()

        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid config file {path}: {e}") from e
