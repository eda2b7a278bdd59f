"""
Scoring side of a deployed unit.

The scoring engine itself is a black box behind :class:`ScoringEngine`. What
lives here is the part a deployed procedure needs around it: a model handle
that is built once, on first use, from an artifact reassembled out of its
fragments, and the fixed record layout the flight delay model expects.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Generic, Mapping, Optional, Protocol, Tuple, TypeVar

from .reassembly import ArtifactReassembler

logger = logging.getLogger(__name__)

__all__ = ["ScoringEngine", "LazyModel", "FlightQuery", "FlightDelayScorer"]

H = TypeVar("H")


class ScoringEngine(Protocol[H]):
    """Protocol for the external model runtime."""

    def load_model(self, artifact: Mapping[str, bytes]) -> H:
        """Build a model handle from artifact entries."""
        ...

    def predict(self, handle: H, record: Mapping[str, str]) -> str:
        """Score one record and return its label."""
        ...


class LazyModel(Generic[H]):
    """
    Model handle constructed on first use, exactly once.

    Concurrent first calls block on a lock while one of them loads; a load
    that raises is not remembered, so the next call tries again.
    """

    def __init__(self, reassembler: ArtifactReassembler, engine: ScoringEngine[H], artifact_name: str):
        self.reassembler = reassembler
        self.engine = engine
        self.artifact_name = artifact_name
        self._handle: Optional[H] = None
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._handle is not None

    def get(self) -> H:
        handle = self._handle
        if handle is not None:
            return handle

        with self._lock:
            if self._handle is None:
                artifact = self.reassembler.reassemble(self.artifact_name)
                self._handle = self.engine.load_model(artifact)
                logger.info(
                    f"Loaded model {self.artifact_name} "
                    f"({len(artifact)} entries, {artifact.fragment_count} fragment(s))"
                )
            return self._handle


@dataclass(frozen=True)
class FlightQuery:
    """One flight delay question. All fields are strings, as the model was trained on them."""
    origin: str
    dest: str
    crs_dep_time: str
    year: str
    month: str
    day_of_month: str
    day_of_week: str
    unique_carrier: str

    def to_record(self) -> Dict[str, str]:
        """Field names agreed with the trained model."""
        return {
            "Year": self.year,
            "Month": self.month,
            "DayofMonth": self.day_of_month,
            "DayOfWeek": self.day_of_week,
            "CRSDepTime": self.crs_dep_time,
            "UniqueCarrier": self.unique_carrier,
            "Origin": self.origin,
            "Dest": self.dest,
        }

    def procedure_params(self, do_stats: bool = False) -> Tuple[Any, ...]:
        """Parameters for the ``IsFlightLate`` procedure, in its declared order."""
        return (
            self.origin,
            self.crs_dep_time,
            self.year,
            self.month,
            self.day_of_month,
            self.day_of_week,
            self.unique_carrier,
            self.dest,
            1 if do_stats else 0,
        )


class FlightDelayScorer:
    """Predicts whether a flight will be late using a lazily loaded model."""

    def __init__(self, model: LazyModel):
        self.model = model

    def predict(self, query: FlightQuery) -> str:
        return self.model.engine.predict(self.model.get(), query.to_record())
