import logging
from typing import Any, Dict, List

from fastapi import Body, Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, get_settings
from .exceptions import ContentError, InputError
from .logging_config import configure_logging
from .record_store import RecordStore
from .score_aggregation import aggregate
from .score_batch import aggregate_records
from .score_validation import RecordValidator


settings_snapshot = get_settings()
configure_logging(settings_snapshot)
logger = logging.getLogger(__name__)
app = FastAPI(title="Scorecard Service", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

logger.info("Scorecard service reading aggregated scores from %s", settings_snapshot.output_file)


def get_validator(settings: Settings = Depends(get_settings)) -> RecordValidator:
    return RecordValidator(
        placeholder_marker=settings.placeholder_marker,
        drift_tolerance=settings.drift_tolerance,
    )


def get_record_store(settings: Settings = Depends(get_settings)) -> RecordStore:
    return RecordStore(settings.entity_scores_dir, settings.output_file)


@app.get("/healthz")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/scores")
def list_scores(store: RecordStore = Depends(get_record_store)) -> List[Any]:
    try:
        return store.read_output()
    except InputError as exc:
        logger.error("Aggregated scores unavailable: %s", exc)
        raise HTTPException(status_code=503, detail=str(exc)) from exc


@app.post("/api/scores/validate")
def validate_scores(
    record: Any = Body(...),
    validator: RecordValidator = Depends(get_validator),
) -> Dict[str, Any]:
    return validator.validate(record).to_payload()


@app.post("/api/scores/aggregate")
def aggregate_scores(
    record: Any = Body(...),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    try:
        normalized = aggregate(record, include_unscored_areas=settings.include_unscored_areas)
    except ContentError as exc:
        raise HTTPException(status_code=422, detail={"message": str(exc), "errors": exc.errors}) from exc
    return normalized.to_payload()


@app.post("/api/scores/aggregate/batch")
def aggregate_score_batch(
    records: List[Any] = Body(...),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    scores, failures = aggregate_records(
        ((f"records[{index}]", record) for index, record in enumerate(records)),
        include_unscored_areas=settings.include_unscored_areas,
    )
    return {
        "scores": [score.to_payload() for score in scores],
        "errors": [failure.model_dump(mode="json") for failure in failures],
    }
