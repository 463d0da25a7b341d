# FrameStag Pipeline - Model
"""
Ordered, editable list of pipeline stages.

The pipeline is pure data. An external editor mutates it between ticks;
the engine only ever reads a :meth:`Pipeline.snapshot`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator
import json
import re

from framestag.errors import InvalidParameterError
from .stages import FilterStage


@dataclass
class Pipeline:
    """Ordered sequence of filter stages with unique ids.

    Example:
        pipeline = Pipeline.parse('kernel gaussian_blur_3|erode 1|motion 0.1')
        pipeline.toggle(pipeline[1].id)
    """
    stages: list[FilterStage] = field(default_factory=list)

    def __post_init__(self):
        self.stages = list(self.stages)
        seen: set[str] = set()
        for stage in self.stages:
            if stage.id in seen:
                raise ValueError(f"Duplicate stage id: {stage.id}")
            seen.add(stage.id)

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def append(self, stage: FilterStage) -> 'Pipeline':
        """Add stage at the end (chainable)."""
        return self.insert(len(self.stages), stage)

    def extend(self, stages: Iterable[FilterStage]) -> 'Pipeline':
        """Add multiple stages (chainable)."""
        for stage in stages:
            self.append(stage)
        return self

    def insert(self, index: int, stage: FilterStage) -> 'Pipeline':
        """Insert stage before ``index`` (chainable)."""
        if not isinstance(stage, FilterStage):
            raise TypeError(f"Expected FilterStage, got {type(stage).__name__}")
        if stage.id in self:
            raise ValueError(f"Duplicate stage id: {stage.id}")
        self.stages.insert(index, stage)
        return self

    def remove(self, stage_id: str) -> FilterStage:
        """Remove and return the stage with the given id."""
        index = self.index_of(stage_id)
        return self.stages.pop(index)

    def move(self, stage_id: str, index: int) -> None:
        """Move a stage to a new position."""
        stage = self.remove(stage_id)
        index = max(0, min(index, len(self.stages)))
        self.stages.insert(index, stage)

    def replace(self, stage_id: str, stage: FilterStage) -> None:
        """Replace a stage, keeping its position.

        The new stage may carry a different id as long as it stays unique.
        """
        index = self.index_of(stage_id)
        if stage.id != stage_id and stage.id in self:
            raise ValueError(f"Duplicate stage id: {stage.id}")
        self.stages[index] = stage

    def set_active(self, stage_id: str, active: bool) -> None:
        index = self.index_of(stage_id)
        self.stages[index] = self.stages[index].with_active(active)

    def toggle(self, stage_id: str) -> bool:
        """Flip the active flag of a stage and return the new state."""
        stage = self.get(stage_id)
        self.set_active(stage_id, not stage.active)
        return not stage.active

    def clear(self) -> None:
        self.stages.clear()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, stage_id: str) -> FilterStage:
        return self.stages[self.index_of(stage_id)]

    def index_of(self, stage_id: str) -> int:
        for index, stage in enumerate(self.stages):
            if stage.id == stage_id:
                return index
        raise KeyError(f"No stage with id {stage_id!r}")

    def snapshot(self) -> tuple[FilterStage, ...]:
        """Immutable view of the current stage order.

        Stages are frozen, so the tuple cannot change while a tick runs.
        """
        return tuple(self.stages)

    def active_stages(self) -> list[FilterStage]:
        return [stage for stage in self.stages if stage.active]

    def validate(self) -> dict[str, InvalidParameterError]:
        """Validate every stage.

        :returns: Mapping of stage id to the error of each invalid stage
        """
        problems: dict[str, InvalidParameterError] = {}
        for stage in self.stages:
            try:
                stage.validate()
            except InvalidParameterError as e:
                problems[stage.id] = e
        return problems

    def __contains__(self, stage_id: object) -> bool:
        return any(stage.id == stage_id for stage in self.stages)

    def __len__(self) -> int:
        return len(self.stages)

    def __iter__(self) -> Iterator[FilterStage]:
        return iter(self.stages)

    def __getitem__(self, index: int) -> FilterStage:
        return self.stages[index]

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize pipeline to dictionary."""
        return {
            'type': 'Pipeline',
            'stages': [stage.to_dict() for stage in self.stages],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'Pipeline':
        """Deserialize pipeline from dictionary."""
        return cls(stages=[FilterStage.from_dict(s) for s in data.get('stages', [])])

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, json_str: str) -> 'Pipeline':
        return cls.from_dict(json.loads(json_str))

    @classmethod
    def parse(cls, text: str) -> 'Pipeline':
        """Parse stage string into pipeline.

        Examples:
            'kernel sharpen|erode 2|bitplane 8'
            'kernel(gaussian_blur_5);motion(0.1)'
        """
        if not text:
            return cls()

        stages = []
        for part in re.split(r'[|;]', text):
            part = part.strip()
            if not part:
                continue
            stages.append(FilterStage.parse(part))
        return cls(stages=stages)

    def to_string(self) -> str:
        """Convert pipeline to compact string format."""
        return '|'.join(stage.to_string() for stage in self.stages)
