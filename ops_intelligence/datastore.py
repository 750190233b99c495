"""
Data store interface consumed by the engines, and an in-memory implementation.

The engines only read from the store. Whatever backs it (a database, an API
client, fixtures) must return the domain records defined in the maintenance
and workforce model modules.
"""

from abc import ABC, abstractmethod
from collections import defaultdict
from typing import List, Dict, Optional
from threading import Lock
import pandas as pd

from .maintenance.models import EquipmentSnapshot
from .workforce.models import (
    AssignmentOutcome,
    Contractor,
    Employee,
    SkillCatalogEntry,
    WorkerHistory,
    WorkSession,
)


class DataStore(ABC):
    """Read-only view of equipment and workforce records."""

    @abstractmethod
    def get_equipment(self, equipment_id: str) -> Optional[EquipmentSnapshot]:
        ...

    @abstractmethod
    def list_equipment(self) -> List[EquipmentSnapshot]:
        ...

    def list_active_equipment(self) -> List[EquipmentSnapshot]:
        return [e for e in self.list_equipment() if e.is_active]

    def list_equipment_by_type(self, equipment_type: str) -> List[EquipmentSnapshot]:
        return [e for e in self.list_equipment() if e.type == equipment_type]

    @abstractmethod
    def list_active_employees(self) -> List[Employee]:
        ...

    @abstractmethod
    def list_available_contractors(self) -> List[Contractor]:
        ...

    @abstractmethod
    def list_skill_catalog(self) -> List[SkillCatalogEntry]:
        ...

    @abstractmethod
    def get_worker_history(self, worker_id: str) -> WorkerHistory:
        ...

    @abstractmethod
    def list_assignment_outcomes(self) -> List[AssignmentOutcome]:
        ...

    @abstractmethod
    def workload_history(self) -> pd.DataFrame:
        """Daily load history with columns ['date', 'load_units']."""


class InMemoryDataStore(DataStore):
    """
    Thread-safe store holding records in memory.

    Used by tests, the example script and the API server when no other
    backend is wired in.
    """

    def __init__(self):
        self._lock = Lock()
        self._equipment: Dict[str, EquipmentSnapshot] = {}
        self._employees: Dict[str, Employee] = {}
        self._contractors: Dict[str, Contractor] = {}
        self._skill_categories: Dict[str, str] = {}
        self._sessions: Dict[str, List[WorkSession]] = defaultdict(list)
        self._outcomes: List[AssignmentOutcome] = []
        self._workload = pd.DataFrame(columns=['date', 'load_units'])

    def add_equipment(self, snapshot: EquipmentSnapshot) -> None:
        with self._lock:
            self._equipment[snapshot.id] = snapshot

    def add_employee(self, employee: Employee) -> None:
        with self._lock:
            self._employees[employee.id] = employee
            for skill in employee.skills:
                self._skill_categories.setdefault(skill.name, skill.category)

    def add_contractor(self, contractor: Contractor) -> None:
        with self._lock:
            self._contractors[contractor.id] = contractor

    def add_skill(self, name: str, category: str = 'GENERAL') -> None:
        """Register a skill so it appears in the catalog even with no holders."""
        with self._lock:
            self._skill_categories[name] = category

    def add_work_session(self, session: WorkSession) -> None:
        with self._lock:
            self._sessions[session.worker_id].append(session)

    def add_assignment_outcome(self, outcome: AssignmentOutcome) -> None:
        with self._lock:
            self._outcomes.append(outcome)

    def set_workload_history(self, data: pd.DataFrame) -> None:
        with self._lock:
            self._workload = data[['date', 'load_units']].copy()

    def get_equipment(self, equipment_id: str) -> Optional[EquipmentSnapshot]:
        with self._lock:
            return self._equipment.get(equipment_id)

    def list_equipment(self) -> List[EquipmentSnapshot]:
        with self._lock:
            return list(self._equipment.values())

    def list_active_employees(self) -> List[Employee]:
        with self._lock:
            return [e for e in self._employees.values() if e.status == 'ACTIVE']

    def list_available_contractors(self) -> List[Contractor]:
        with self._lock:
            return [c for c in self._contractors.values() if c.is_available()]

    def list_skill_catalog(self) -> List[SkillCatalogEntry]:
        """Every known skill with the number of employees holding it."""
        with self._lock:
            holders = defaultdict(int)
            for employee in self._employees.values():
                for name in {s.name for s in employee.skills}:
                    holders[name] += 1
            return [SkillCatalogEntry(name=name, category=category, holder_count=holders[name])
                    for name, category in sorted(self._skill_categories.items())]

    def get_worker_history(self, worker_id: str) -> WorkerHistory:
        with self._lock:
            sessions = list(self._sessions.get(worker_id, []))
        return WorkerHistory.from_sessions(sessions)

    def list_assignment_outcomes(self) -> List[AssignmentOutcome]:
        with self._lock:
            return list(self._outcomes)

    def workload_history(self) -> pd.DataFrame:
        with self._lock:
            return self._workload.copy()
