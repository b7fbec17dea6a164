import os
import sys
from dataclasses import dataclass
from pathlib import Path

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"
DEFAULT_DATA_DIR = Path.home() / ".cache" / "fitcue" / "videos"
DEFAULT_ANALYSIS_TIMEOUT = 60.0
DEFAULT_PROMPT_BUDGET = 3000


@dataclass(frozen=True)
class Settings:
    anthropic_api_key: str | None = None
    model: str = DEFAULT_MODEL
    data_dir: Path = DEFAULT_DATA_DIR
    analysis_timeout: float = DEFAULT_ANALYSIS_TIMEOUT
    prompt_budget: int = DEFAULT_PROMPT_BUDGET

    @classmethod
    def from_env(cls, environ=None) -> 'Settings':
        env = os.environ if environ is None else environ
        return cls(
            anthropic_api_key=env.get("ANTHROPIC_API_KEY") or None,
            model=env.get("FITCUE_MODEL") or DEFAULT_MODEL,
            data_dir=Path(env.get("FITCUE_DATA_DIR") or DEFAULT_DATA_DIR).expanduser(),
            analysis_timeout=float(env.get("FITCUE_ANALYSIS_TIMEOUT") or DEFAULT_ANALYSIS_TIMEOUT),
            prompt_budget=int(env.get("FITCUE_PROMPT_BUDGET") or DEFAULT_PROMPT_BUDGET),
        )

    @property
    def inference_available(self) -> bool:
        return bool(self.anthropic_api_key)


def data_dir(settings: Settings) -> Path:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    return settings.data_dir


def check(settings: Settings, needs_anthropic: bool = False) -> list[str]:
    errors = []

    if needs_anthropic and not settings.inference_available:
        errors.append("ANTHROPIC_API_KEY not set, add it to .env or export it")

    if settings.analysis_timeout <= 0:
        errors.append(f"FITCUE_ANALYSIS_TIMEOUT must be positive, got {settings.analysis_timeout}")

    if settings.prompt_budget <= 0:
        errors.append(f"FITCUE_PROMPT_BUDGET must be positive, got {settings.prompt_budget}")

    return errors


def require(settings: Settings, needs_anthropic: bool = False):
    errors = check(settings, needs_anthropic=needs_anthropic)
    if errors:
        print("Missing requirements:", file=sys.stderr)
        for e in errors:
            print(f"  - {e}", file=sys.stderr)
        sys.exit(1)
