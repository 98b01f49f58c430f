import os
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    entity_scores_dir: str = Field("./entity-scores", alias="SCORECARD_ENTITY_SCORES_DIR")
    output_file: str = Field("./all.json", alias="SCORECARD_OUTPUT_FILE")
    log_level: str = Field("INFO", alias="SCORECARD_LOG_LEVEL")
    debug_http: bool = Field(False, alias="SCORECARD_DEBUG_HTTP")
    verbose: bool = Field(False, alias="SCORECARD_VERBOSE")
    placeholder_marker: str = Field("TODO:", alias="SCORECARD_PLACEHOLDER_MARKER")
    drift_tolerance: float = Field(1.0, ge=0.0, alias="SCORECARD_DRIFT_TOLERANCE")
    include_unscored_areas: bool = Field(False, alias="SCORECARD_INCLUDE_UNSCORED_AREAS")
    git_remote: str = Field("origin", alias="SCORECARD_GIT_REMOTE")
    publish_branch: str = Field("main", alias="SCORECARD_PUBLISH_BRANCH")
    git_author_name: str = Field("Scorecard Bot", alias="SCORECARD_GIT_AUTHOR_NAME")
    git_author_email: str = Field("scorecard-bot@users.noreply.github.com", alias="SCORECARD_GIT_AUTHOR_EMAIL")
    commit_message: str = Field(
        "Update aggregated scores from entity assessments [skip ci]",
        alias="SCORECARD_COMMIT_MESSAGE",
    )

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True


class BatchConfig(BaseModel):
    """Explicit paths and switches handed to one batch run."""

    entity_scores_dir: Path = Path("./entity-scores")
    output_file: Path = Path("./all.json")
    verbose: bool = False
    placeholder_marker: str = "TODO:"
    drift_tolerance: float = Field(default=1.0, ge=0.0)
    include_unscored_areas: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "BatchConfig":
        return cls(
            entity_scores_dir=Path(settings.entity_scores_dir),
            output_file=Path(settings.output_file),
            verbose=settings.verbose,
            placeholder_marker=settings.placeholder_marker,
            drift_tolerance=settings.drift_tolerance,
            include_unscored_areas=settings.include_unscored_areas,
        )


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()  # type: ignore[arg-type]
    except ValidationError as exc:
        raise RuntimeError(f"Invalid scorecard configuration: {exc}") from exc
