"""Evidence registry: where every fact about a record came from.

One registry is scoped to one record's enrichment session. Visual and web
collectors may register concurrently, so every read and write holds the
instance lock.
"""

from __future__ import annotations

import threading
from typing import Any, Mapping
from uuid import uuid4

from feedenrich.exceptions import EvidenceNotFoundError
from feedenrich.models.domain import Evidence, EvidenceOrigin, EvidenceSource
from feedenrich.models.values import to_display_string
from feedenrich.observability.logger import get_logger

logger = get_logger("evidence_registry")

VISUAL_AUTO_VERIFY_THRESHOLD = 0.85


def _clamp(confidence: float) -> float:
    return max(0.0, min(1.0, float(confidence)))


class EvidenceRegistry:
    def __init__(
        self,
        record_id: str | None = None,
        visual_verify_threshold: float = VISUAL_AUTO_VERIFY_THRESHOLD,
    ) -> None:
        self.record_id = record_id
        self._visual_threshold = visual_verify_threshold
        self._lock = threading.RLock()
        self._evidence: dict[str, Evidence] = {}
        self._by_field: dict[str, list[str]] = {}

    def _add(
        self,
        record_id: str,
        field: str,
        value: str,
        origin: EvidenceOrigin,
        source: EvidenceSource,
        confidence: float,
        verified: bool,
        verified_by: str | None = None,
    ) -> Evidence:
        ev = Evidence(
            evidence_id=str(uuid4()),
            record_id=record_id,
            field=field,
            value=value,
            origin=origin,
            source=source,
            confidence=confidence,
            verified=verified,
            verified_by=verified_by,
        )
        with self._lock:
            self._evidence[ev.evidence_id] = ev
            self._by_field.setdefault(field, []).append(ev.evidence_id)
        return ev

    def register_from_feed(self, record_id: str, field: str, value: str) -> Evidence:
        # Feed data is ground truth
        return self._add(
            record_id,
            field,
            value,
            EvidenceOrigin.FEED,
            EvidenceSource(kind="feed_field", reference=field, snippet=value),
            confidence=1.0,
            verified=True,
            verified_by="system",
        )

    def register_from_visual(
        self,
        record_id: str,
        field: str,
        value: str,
        image_url: str,
        reasoning: str,
        confidence: float,
    ) -> Evidence:
        confidence = _clamp(confidence)
        verified = confidence >= self._visual_threshold
        return self._add(
            record_id,
            field,
            value,
            EvidenceOrigin.VISUAL,
            EvidenceSource(
                kind="image_observation",
                reference="visual_analysis",
                snippet=reasoning,
                image_url=image_url,
            ),
            confidence=confidence,
            verified=verified,
            verified_by="auto" if verified else None,
        )

    def register_from_external_page(
        self,
        record_id: str,
        field: str,
        value: str,
        page_url: str,
        snippet: str,
        confidence: float,
    ) -> Evidence:
        # Web facts stay unverified until confirmed by another source
        return self._add(
            record_id,
            field,
            value,
            EvidenceOrigin.EXTERNAL_PAGE,
            EvidenceSource(kind="web_page", reference=page_url, snippet=snippet, url=page_url),
            confidence=_clamp(confidence),
            verified=False,
        )

    def register_from_human(
        self, record_id: str, field: str, value: str, actor_id: str
    ) -> Evidence:
        return self._add(
            record_id,
            field,
            value,
            EvidenceOrigin.HUMAN,
            EvidenceSource(kind="user_input", reference=actor_id, snippet="User provided value"),
            confidence=1.0,
            verified=True,
            verified_by=actor_id,
        )

    def load_from_feed(self, record_id: str, field_map: Mapping[str, Any]) -> list[Evidence]:
        """Seed the registry with every non-empty feed field."""
        registered = []
        for field, raw in field_map.items():
            value = to_display_string(raw)
            if not value.strip():
                continue
            registered.append(self.register_from_feed(record_id, field, value))
        logger.debug("feed_evidence_loaded", record_id=record_id, facts=len(registered))
        return registered

    def get(self, evidence_id: str) -> Evidence | None:
        with self._lock:
            return self._evidence.get(evidence_id)

    def for_field(self, field: str) -> list[Evidence]:
        with self._lock:
            return [self._evidence[i] for i in self._by_field.get(field, [])]

    def best_evidence(self, field: str) -> Evidence | None:
        """Highest-confidence verified evidence; unverified entries never win."""
        with self._lock:
            best: Evidence | None = None
            for ev in self.for_field(field):
                if not ev.verified:
                    continue
                if best is None or ev.confidence > best.confidence:
                    best = ev
            return best

    def allowed_facts(self) -> dict[str, str]:
        with self._lock:
            facts: dict[str, str] = {}
            for field in self._by_field:
                best = self.best_evidence(field)
                if best is not None:
                    facts[field] = best.value
            return facts

    def verify(self, evidence_id: str, actor_id: str) -> Evidence:
        with self._lock:
            ev = self._evidence.get(evidence_id)
            if ev is None:
                raise EvidenceNotFoundError(f"Unknown evidence id: {evidence_id}")
            if not ev.verified:
                ev.verified = True
                ev.verified_by = actor_id
                logger.info(
                    "evidence_verified",
                    evidence_id=evidence_id,
                    field=ev.field,
                    origin=ev.origin.value,
                    actor=actor_id,
                )
            return ev

    def count_by_origin(self) -> dict[str, int]:
        with self._lock:
            counts = {origin.value: 0 for origin in EvidenceOrigin}
            for ev in self._evidence.values():
                counts[ev.origin.value] += 1
            return counts

    def to_audit_trail(self) -> list[dict]:
        with self._lock:
            ordered = sorted(self._evidence.values(), key=lambda ev: ev.created_at)
            return [ev.to_dict() for ev in ordered]

    def __len__(self) -> int:
        with self._lock:
            return len(self._evidence)
