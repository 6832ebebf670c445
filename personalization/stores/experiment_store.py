"""
Experiment Store abstraction.

Holds experiments, variants, write-once assignments, and the last statistical
test per experiment. Assignment check-then-set happens under lock_for().
"""

import threading
from typing import Dict, List, Optional, Protocol

from ..models.experiment import Experiment, StatisticalTest, Variant


class ExperimentStore(Protocol):
    def save_experiment(self, experiment: Experiment) -> None:
        ...

    def get_experiment(self, experiment_id: str) -> Optional[Experiment]:
        ...

    def list_experiments(self) -> List[Experiment]:
        ...

    def save_variant(self, variant: Variant) -> None:
        ...

    def get_variant(self, variant_id: str) -> Optional[Variant]:
        ...

    def get_assignment(self, experiment_id: str, user_id: str) -> Optional[str]:
        ...

    def set_assignment(self, experiment_id: str, user_id: str, variant_id: str) -> None:
        ...

    def save_test(self, test: StatisticalTest) -> None:
        ...

    def get_test(self, experiment_id: str) -> Optional[StatisticalTest]:
        ...

    def variant_count(self) -> int:
        ...

    def lock_for(self, experiment_id: str):
        ...


class InMemoryExperimentStore:
    def __init__(self):
        self._experiments: Dict[str, Experiment] = {}
        self._variants: Dict[str, Variant] = {}
        # experiment_id -> user_id -> variant_id
        self._assignments: Dict[str, Dict[str, str]] = {}
        self._tests: Dict[str, StatisticalTest] = {}
        self._locks: Dict[str, threading.RLock] = {}
        self._lock = threading.RLock()

    def lock_for(self, experiment_id: str) -> threading.RLock:
        with self._lock:
            lock = self._locks.get(experiment_id)
            if lock is None:
                lock = self._locks[experiment_id] = threading.RLock()
            return lock

    def save_experiment(self, experiment: Experiment) -> None:
        with self._lock:
            self._experiments[experiment.id] = experiment

    def get_experiment(self, experiment_id: str) -> Optional[Experiment]:
        with self._lock:
            return self._experiments.get(experiment_id)

    def list_experiments(self) -> List[Experiment]:
        with self._lock:
            return list(self._experiments.values())

    def save_variant(self, variant: Variant) -> None:
        with self._lock:
            self._variants[variant.id] = variant

    def get_variant(self, variant_id: str) -> Optional[Variant]:
        with self._lock:
            return self._variants.get(variant_id)

    def get_assignment(self, experiment_id: str, user_id: str) -> Optional[str]:
        with self._lock:
            return self._assignments.get(experiment_id, {}).get(user_id)

    def set_assignment(self, experiment_id: str, user_id: str, variant_id: str) -> None:
        with self._lock:
            self._assignments.setdefault(experiment_id, {})[user_id] = variant_id

    def save_test(self, test: StatisticalTest) -> None:
        with self._lock:
            self._tests[test.experiment_id] = test

    def get_test(self, experiment_id: str) -> Optional[StatisticalTest]:
        with self._lock:
            return self._tests.get(experiment_id)

    def variant_count(self) -> int:
        with self._lock:
            return len(self._variants)
