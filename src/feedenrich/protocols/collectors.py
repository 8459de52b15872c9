"""Protocols for evidence collectors."""

from __future__ import annotations

from typing import Mapping, Protocol, Sequence

from feedenrich.models.schemas import VisualObservation, WebFact


class VisualCollector(Protocol):
    async def collect(
        self, image_url: str, attributes: Sequence[str]
    ) -> list[VisualObservation]: ...


class WebCollector(Protocol):
    async def collect(
        self, fields: Mapping[str, str], fields_needed: Sequence[str]
    ) -> list[WebFact]: ...
