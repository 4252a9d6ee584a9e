"""
Loads and handles config from config.yml
Search credentials (GOOGLE_SEARCH_API_KEY, GOOGLE_SEARCH_CX) are loaded from .env for security
"""
import os
from typing import Dict, Any, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from cricket_trivia.core.errors import ConfigurationError
from cricket_trivia.processing.batch_sizer import BatchBudget


class OllamaConfig(BaseModel):
    base_url: str = "http://localhost:11434"
    model: str = "llama3.1:8b"
    num_ctx: int = 8192
    timeout: float = 300.0
    max_retries: int = 3


class SearchConfig(BaseModel):
    """Configuration for the web search backend."""
    provider: str = "google"
    api_key: Optional[str] = None
    engine_id: Optional[str] = None
    timeout: float = 15.0
    safe: str = "active"


class FetchConfig(BaseModel):
    """Adaptive fetch loop settings."""
    initial_request_size: int = Field(10, ge=1)
    request_growth: int = Field(5, ge=1)
    max_request_size: int = Field(25, ge=1)
    min_relevance: float = 0.3
    max_articles_per_prompt: int = Field(6, ge=1)
    max_sentences: int = 2
    fallback_snippet_chars: int = 200
    validate_questions: bool = True


class GenerationConfig(BaseModel):
    """Token budget for one generation request."""
    difficulty: str = "medium"
    response_token_budget: int = 4096
    chars_per_token: int = Field(4, ge=1)
    prompt_overhead_tokens: int = 900
    tokens_per_question: int = Field(180, ge=1)
    safety_margin: float = Field(0.8, gt=0.0, le=1.0)
    max_questions_per_request: int = Field(10, ge=1)

    def budget(self) -> BatchBudget:
        return BatchBudget(
            response_token_budget=self.response_token_budget,
            chars_per_token=self.chars_per_token,
            prompt_overhead_tokens=self.prompt_overhead_tokens,
            tokens_per_item=self.tokens_per_question,
            safety_margin=self.safety_margin,
            hard_cap=self.max_questions_per_request,
        )


class TwoPhaseConfig(BaseModel):
    """Anecdote-first pipeline settings."""
    anecdote_min: int = Field(5, ge=1)
    anecdote_default: int = Field(10, ge=1)
    anecdote_max: int = Field(20, ge=1)
    questions_per_anecdote: float = Field(1.5, gt=0.0)
    anecdote_batch_min: int = 2
    anecdote_batch_max: int = 4
    question_batch_min: int = 2
    question_batch_max: int = 3
    parallel_threshold: int = 3


class Config(BaseModel):
    ollama: OllamaConfig = OllamaConfig()
    search: SearchConfig = SearchConfig()
    fetch: FetchConfig = FetchConfig()
    generation: GenerationConfig = GenerationConfig()
    two_phase: TwoPhaseConfig = TwoPhaseConfig()

    default_target_count: int = 10
    default_max_articles: int = 50
    output_dir: str = "output"


def _bool(value: str | bool) -> bool:
    """Convert string or bool to boolean."""
    if isinstance(value, bool):
        return value
    return str(value).lower() in ("1", "true", "yes", "on")


def _get_config_path(explicit: Optional[str] = None) -> Optional[str]:
    """Get the path to config.yml, handling different working directories."""
    if explicit:
        if not os.path.exists(explicit):
            raise ConfigurationError(f"Config file not found: {explicit}")
        return explicit

    env_path = os.getenv("CRICKET_TRIVIA_CONFIG")
    if env_path:
        if not os.path.exists(env_path):
            raise ConfigurationError(f"CRICKET_TRIVIA_CONFIG points to a missing file: {env_path}")
        return env_path

    # Try relative path first
    if os.path.exists('resources/config.yml'):
        return 'resources/config.yml'

    # Try from project root
    project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))
    config_path = os.path.join(project_root, 'resources', 'config.yml')
    if os.path.exists(config_path):
        return config_path

    return None


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"Config section '{name}' must be a mapping")
    return value


def parse_config(data: Dict[str, Any]) -> Config:
    """Build a Config from already-loaded YAML data plus environment secrets."""
    search = dict(_section(data, "search"))
    search["api_key"] = os.getenv("GOOGLE_SEARCH_API_KEY") or search.get("api_key")
    search["engine_id"] = (
        os.getenv("GOOGLE_SEARCH_CX")
        or os.getenv("GOOGLE_SEARCH_ENGINE_ID")
        or search.get("engine_id")
    )

    ollama = dict(_section(data, "ollama"))
    if os.getenv("OLLAMA_BASE_URL"):
        ollama["base_url"] = os.environ["OLLAMA_BASE_URL"]
    if os.getenv("OLLAMA_MODEL"):
        ollama["model"] = os.environ["OLLAMA_MODEL"]

    fetch = dict(_section(data, "fetch"))
    if "validate_questions" in fetch:
        fetch["validate_questions"] = _bool(fetch["validate_questions"])

    try:
        return Config(
            ollama=OllamaConfig(**ollama),
            search=SearchConfig(**search),
            fetch=FetchConfig(**fetch),
            generation=GenerationConfig(**_section(data, "generation")),
            two_phase=TwoPhaseConfig(**_section(data, "two_phase")),
            default_target_count=int(data.get("default_target_count", 10)),
            default_max_articles=int(data.get("default_max_articles", 50)),
            output_dir=data.get("output_dir", "output"),
        )
    except (ValueError, TypeError) as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def load_config(path: Optional[str] = None) -> Config:
    """Load configuration from config.yml and search credentials from .env."""
    # Load .env for sensitive credentials
    load_dotenv()

    config_path = _get_config_path(path)
    if config_path is None:
        return parse_config({})

    with open(config_path, 'r') as file:
        data = yaml.safe_load(file) or {}

    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping at the top level")

    return parse_config(data)
