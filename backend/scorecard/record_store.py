"""JSON file persistence for assessment records and the aggregated output."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Sequence, Union

from .assessment_record import NormalizedRecord
from .exceptions import InputError


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class RecordStore:
    """Directory of ``*.json`` assessment records plus one output file."""

    def __init__(self, records_dir: PathLike, output_file: PathLike) -> None:
        self.records_dir = Path(records_dir)
        self.output_file = Path(output_file)

    def list_record_files(self) -> List[Path]:
        if not self.records_dir.is_dir():
            raise InputError(
                f"Entity scores directory not found: {self.records_dir}",
                source=str(self.records_dir),
            )
        return sorted(path for path in self.records_dir.iterdir() if path.suffix == ".json" and path.is_file())

    def load(self, path: PathLike) -> Any:
        return load_record_file(path)

    def write_output(self, records: Sequence[NormalizedRecord]) -> Path:
        payload = [record.to_payload() for record in records]
        self.output_file.parent.mkdir(parents=True, exist_ok=True)
        with self.output_file.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2, ensure_ascii=False)
            handle.write("\n")
        logger.info("Written %d entity scores to %s", len(payload), self.output_file)
        return self.output_file

    def read_output(self) -> List[Any]:
        if not self.output_file.exists():
            return []
        payload = load_record_file(self.output_file)
        if not isinstance(payload, list):
            raise InputError("Aggregated output must be a JSON array", source=str(self.output_file))
        return payload


def load_record_file(path: PathLike) -> Any:
    """Read one JSON document, mapping transport failures to :class:`InputError`."""
    file_path = Path(path)
    if not file_path.exists():
        raise InputError(f"File not found: {file_path}", source=str(file_path))
    try:
        with file_path.open(encoding="utf-8") as handle:
            return json.load(handle)
    except json.JSONDecodeError as exc:
        raise InputError(f"Invalid JSON: {exc}", source=str(file_path)) from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise InputError(f"Unreadable file: {exc}", source=str(file_path)) from exc


__all__ = ["RecordStore", "load_record_file"]
