from collections import deque
from enum import Enum
from typing import Awaitable, Callable, Dict, List, NamedTuple, Optional


class StageOutcome(Enum):
    FAILED = 0
    REQUEUED = 1
    PROGRESSING = 2
    SUCCEEDED = 3
    # Desired state can not be realised until it is edited.
    TERMINAL = -1

    def satisfies(self, minimum: "StageOutcome") -> bool:
        """True if this outcome meets a dependency on `minimum`."""
        if self is StageOutcome.TERMINAL:
            return False
        return self.value >= minimum.value


class StageResult(NamedTuple):
    outcome: StageOutcome
    detail: Optional[str] = None


class Stage(NamedTuple):
    """A unit of reconciliation work and the outcomes it depends on."""

    name: str
    run: Callable[[], Awaitable[StageResult]]
    requires: Dict[str, StageOutcome] = {}
    condition: Optional[str] = None


class StageGraphError(ValueError):
    """The stage dependencies are not a DAG over known stages."""


def topological_order(stages: List[Stage]) -> List[Stage]:
    """Order stages so every stage comes after its dependencies.

    Stages with no ordering constraint between them keep their declared
    order.

    Raises:
        StageGraphError: on duplicate names, unknown dependencies or cycles.
    """
    by_name = {}
    for stage in stages:
        if stage.name in by_name:
            raise StageGraphError(f"Duplicate stage: {stage.name}")
        by_name[stage.name] = stage

    in_degree = {stage.name: 0 for stage in stages}
    dependents = {stage.name: [] for stage in stages}
    for stage in stages:
        for dep in stage.requires:
            if dep not in by_name:
                raise StageGraphError(
                    f"Stage {stage.name} depends on unknown stage {dep}"
                )
            in_degree[stage.name] += 1
            dependents[dep].append(stage.name)

    queue = deque([name for name, degree in in_degree.items() if degree == 0])
    ordered = []
    while queue:
        name = queue.popleft()
        ordered.append(by_name[name])
        for dependent in dependents[name]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)

    if len(ordered) != len(stages):
        cyclic = sorted(name for name, degree in in_degree.items() if degree > 0)
        raise StageGraphError(f"Stage dependencies contain a cycle: {cyclic}")
    return ordered


def unmet_dependencies(
    stage: Stage, outcomes: Dict[str, StageOutcome]
) -> List[str]:
    """Names of dependencies that did not reach the required outcome."""
    return [
        dep
        for dep, minimum in stage.requires.items()
        if dep not in outcomes or not outcomes[dep].satisfies(minimum)
    ]
