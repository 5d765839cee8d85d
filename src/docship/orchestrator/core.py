from __future__ import annotations

import inspect
import json
import time
from collections import deque
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from . import cache as cache_mod
from .errors import (
    CyclicDependencyError,
    DuplicateTaskError,
    InvalidTaskError,
    TaskNotFoundError,
)
from .logging import get_logger
from .paths import expand_globs
from .utils import slugify, state_dir


# Allow static lists or callables that build paths from params
PathSpec = Union[Tuple[str, ...], Callable[[dict], List[str]]]

# Keys injected at runtime that must not influence the content hash
_VOLATILE_KEYS = ("runtime", "publishers")


@dataclass(frozen=True)
class TaskSpec:
    name: str
    deps: Tuple[str, ...] = ()
    fn: Optional[Callable[..., None]] = None
    inputs: PathSpec = ()
    description: str = ""

    @property
    def is_aggregate(self) -> bool:
        return self.fn is None


def _normalize_inputs(inputs) -> PathSpec:
    if callable(inputs):
        return inputs
    return tuple(str(p) for p in (inputs or ()))


def task(
    name: str,
    deps: Iterable[str] = (),
    inputs=(),
    description: str = "",
):
    """Decorator to declare a task on a function.

    The wrapped function should accept a single dict `params` (parsed config).
    Nothing is registered here; pass the function to `TaskRegistry.add_function`.
    """

    def deco(fn: Callable[..., None]):
        doc = (inspect.getdoc(fn) or "").strip().splitlines()
        spec = TaskSpec(
            name=name,
            deps=tuple(deps),
            fn=fn,
            inputs=_normalize_inputs(inputs),
            description=description or (doc[0] if doc else ""),
        )
        setattr(fn, "_task_spec", spec)
        return fn

    return deco


class TaskRegistry:
    """Explicitly constructed name -> TaskSpec mapping.

    Prerequisites may be registered in any order; references are checked when a
    target is resolved.
    """

    def __init__(self) -> None:
        self._tasks: Dict[str, TaskSpec] = {}

    def register(
        self,
        name: str,
        deps: Iterable[str] = (),
        fn: Optional[Callable[..., None]] = None,
        inputs=(),
        description: str = "",
    ) -> TaskSpec:
        spec = TaskSpec(
            name=name,
            deps=tuple(deps),
            fn=fn,
            inputs=_normalize_inputs(inputs),
            description=description,
        )
        return self.add(spec)

    def add(self, spec: TaskSpec) -> TaskSpec:
        if not isinstance(spec.name, str) or not spec.name.strip():
            raise InvalidTaskError("Task name must be a non-empty string")
        if spec.fn is not None and not callable(spec.fn):
            raise InvalidTaskError(f"Task action is not callable: {spec.name}")
        for dep in spec.deps:
            if not isinstance(dep, str) or not dep.strip():
                raise InvalidTaskError(f"Invalid prerequisite name on {spec.name}: {dep!r}")
        if spec.name in spec.deps:
            raise CyclicDependencyError([spec.name, spec.name])
        existing = self._tasks.get(spec.name)
        if existing is not None:
            if existing == spec:
                return existing
            raise DuplicateTaskError(spec.name)
        self._tasks[spec.name] = spec
        return spec

    def add_function(self, fn: Callable[..., None]) -> TaskSpec:
        spec = getattr(fn, "_task_spec", None)
        if not isinstance(spec, TaskSpec):
            raise InvalidTaskError(f"{fn!r} is not decorated with @task()")
        return self.add(spec)

    def get(self, name: str) -> TaskSpec:
        try:
            return self._tasks[name]
        except KeyError:
            raise TaskNotFoundError(name) from None

    def names(self) -> List[str]:
        return sorted(self._tasks)

    def validate(self) -> None:
        """Resolve every registered task; raises on dangling references or cycles."""
        for name in self._tasks:
            resolve(self, name)

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    def __iter__(self) -> Iterator[TaskSpec]:
        return iter(self._tasks.values())


def _closure(registry: TaskRegistry, target: str) -> List[str]:
    """Breadth-first collection of `target` and everything it depends on."""
    if target not in registry:
        raise TaskNotFoundError(target)
    seen = {target}
    ordered = [target]
    queue = deque([target])
    while queue:
        name = queue.popleft()
        for dep in registry.get(name).deps:
            if dep not in registry:
                raise TaskNotFoundError(dep, required_by=name)
            if dep not in seen:
                seen.add(dep)
                ordered.append(dep)
                queue.append(dep)
    return ordered


def _find_cycle(remaining: Dict[str, List[str]]) -> List[str]:
    # Every node left over by Kahn's algorithm still has an unresolved
    # prerequisite, so walking prerequisites must revisit a node.
    node = next(iter(remaining))
    path: List[str] = []
    index: Dict[str, int] = {}
    while node not in index:
        index[node] = len(path)
        path.append(node)
        node = remaining[node][0]
    cycle = path[index[node]:] + [node]
    cycle.reverse()
    return cycle


def topo_sort(nodes: Iterable[str], edges: Iterable[tuple[str, str]]) -> list[str]:
    """Order `nodes` so that for every edge (u, v), u comes before v.

    Ties keep the order in which nodes were given.
    """
    nodes = list(nodes)
    incoming: Dict[str, List[str]] = {n: [] for n in nodes}
    outgoing: Dict[str, List[str]] = {n: [] for n in nodes}
    for u, v in edges:
        if u not in incoming:
            raise TaskNotFoundError(u, required_by=v)
        if v not in incoming:
            raise TaskNotFoundError(v)
        if u not in incoming[v]:
            outgoing[u].append(v)
            incoming[v].append(u)
    ordered: list[str] = []
    roots = deque(n for n in nodes if not incoming[n])
    while roots:
        n = roots.popleft()
        ordered.append(n)
        for m in outgoing[n]:
            incoming[m].remove(n)
            if not incoming[m]:
                roots.append(m)
    remaining = {n: incoming[n] for n in nodes if incoming[n]}
    if remaining:
        raise CyclicDependencyError(_find_cycle(remaining))
    return ordered


def resolve(registry: TaskRegistry, target: str) -> List[str]:
    """Return `target` and its transitive prerequisites in execution order.

    Each task appears exactly once, even when reachable through several paths.
    """
    nodes = _closure(registry, target)
    edges = [(dep, name) for name in nodes for dep in registry.get(name).deps]
    return topo_sort(nodes, edges)


def execution_levels(registry: TaskRegistry, order: List[str]) -> List[List[str]]:
    """Group a resolved order into waves that only depend on earlier waves."""
    level: Dict[str, int] = {}
    for name in order:
        deps = registry.get(name).deps
        level[name] = 1 + max((level[d] for d in deps), default=-1)
    waves: List[List[str]] = [[] for _ in range(max(level.values(), default=-1) + 1)]
    for name in order:
        waves[level[name]].append(name)
    return waves


@dataclass
class StepResult:
    name: str
    status: str
    hash: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        out = {"name": self.name, "status": self.status}
        if self.hash is not None:
            out["hash"] = self.hash
        if self.error is not None:
            out["error"] = self.error
        return out


@dataclass
class RunResult:
    target: str
    run_id: str
    steps: List[StepResult] = field(default_factory=list)

    @property
    def executed(self) -> List[str]:
        return [s.name for s in self.steps if s.status == "ok"]

    @property
    def ok(self) -> bool:
        return all(s.status != "error" for s in self.steps)

    def status_of(self, name: str) -> Optional[str]:
        for s in self.steps:
            if s.name == name:
                return s.status
        return None


class Runner:
    def __init__(self, registry: TaskRegistry, name: str = "runner"):
        self.name = name
        self.registry = registry
        self.logger = get_logger(f"docship.{self.name}")

    def run(
        self,
        target: str,
        params: Optional[dict] = None,
        force: Optional[set[str]] = None,
        jobs: int = 1,
        use_cache: bool = False,
    ) -> RunResult:
        # Resolution raises before any action is touched
        order = resolve(self.registry, target)
        force = force or set()
        jobs = max(1, int(jobs))

        run_id = time.strftime("%Y%m%d-%H%M%S")
        run_dir = state_dir(params or {}) / "runs" / slugify(target) / run_id
        run_dir.mkdir(parents=True, exist_ok=True)

        # Expose runtime metadata to tasks
        params = dict(params or {})
        params["runtime"] = dict(params.get("runtime") or {}, run_id=run_id, target=target)

        self.logger.info("Selected steps: %s", " → ".join(order))
        result = RunResult(target=target, run_id=run_id)

        if jobs > 1:
            waves = execution_levels(self.registry, order)
        else:
            waves = [[name] for name in order]

        for wave in waves:
            if len(wave) == 1:
                name = wave[0]
                try:
                    result.steps.append(self._run_step(name, params, force, use_cache))
                except Exception as e:  # noqa: BLE001
                    result.steps.append(StepResult(name=name, status="error", error=str(e)))
                    _write_state(run_dir, self._state(result))
                    raise
            else:
                self._run_wave(wave, params, force, use_cache, jobs, result, run_dir)
            _write_state(run_dir, self._state(result))
        return result

    def _run_wave(self, wave, params, force, use_cache, jobs, result, run_dir) -> None:
        failures: list[tuple[str, BaseException]] = []
        with ThreadPoolExecutor(max_workers=min(jobs, len(wave))) as executor:
            futures = {
                executor.submit(self._run_step, name, params, force, use_cache): name
                for name in wave
            }
            # In-flight siblings finish; completed ones are kept
            for fut in as_completed(futures):
                name = futures[fut]
                try:
                    result.steps.append(fut.result())
                except Exception as e:  # noqa: BLE001
                    failures.append((name, e))
                    result.steps.append(StepResult(name=name, status="error", error=str(e)))
        if failures:
            _write_state(run_dir, self._state(result))
            raise failures[0][1]

    def _run_step(self, name: str, params: dict, force: set[str], use_cache: bool) -> StepResult:
        spec = self.registry.get(name)
        step_logger = get_logger(f"docship.{self.name}.{name}")
        if spec.is_aggregate:
            step_logger.info("Done (aggregate): %s", name)
            return StepResult(name=name, status="skipped")

        task_hash = None
        marker = None
        if use_cache and spec.inputs:
            expanded = expand_globs(_resolve_paths(spec.inputs, params))
            code_path = Path(inspect.getsourcefile(spec.fn) or "")
            task_hash = cache_mod.compute_task_hash(
                name=spec.name,
                input_paths=expanded,
                code_paths=[code_path] if code_path.is_file() else [],
                config={k: v for k, v in params.items() if k not in _VOLATILE_KEYS},
            )
            marker = cache_mod.marker_path(state_dir(params), spec.name)
            if name not in force and cache_mod.is_cached(task_hash, marker):
                step_logger.info("Skip (cached): %s", name)
                return StepResult(name=name, status="cached", hash=task_hash)

        step_logger.info("Run: %s", name)
        try:
            spec.fn(params=params)
        except Exception:
            step_logger.exception("Step failed (%s)", name)
            raise
        if marker is not None:
            cache_mod.write_marker(task_hash, marker)
        return StepResult(name=name, status="ok", hash=task_hash)

    def _state(self, result: RunResult) -> dict:
        return {
            "pipeline": self.name,
            "target": result.target,
            "run_id": result.run_id,
            "steps": [s.to_dict() for s in result.steps],
        }


def run(registry: TaskRegistry, target: str, params: Optional[dict] = None, **kwargs) -> RunResult:
    return Runner(registry).run(target, params=params, **kwargs)


def _write_state(run_dir: Path, state: dict) -> None:
    with open(run_dir / "state.json", "w", encoding="utf-8") as f:
        json.dump(state, f, indent=2)


def _resolve_paths(paths_spec: PathSpec, params: dict) -> list[str]:
    """Resolve a static list of paths or a callable(params) into a list[str]."""
    if callable(paths_spec):
        paths = paths_spec(params)
    else:
        paths = paths_spec
    if paths is None:
        return []
    return [str(p) for p in paths]
