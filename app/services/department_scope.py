"""
Department scope resolver

Answers which departments an actor may see entries for. A manager's scope is
their home department plus the departments explicitly assigned to them in
``manager_departments``; nothing is inherited or transitive. Admins are
unrestricted and staff never get department-level access.

A ``DepartmentScope`` caches lookups for one request only. Build a new one
per request since roles and assignments change between requests.
"""
from typing import Callable, Dict, FrozenSet, Iterable, Mapping, Optional

from sqlalchemy.orm import Session

from app.models.manager_department import ManagerDepartment
from app.models.user import Role
from app.utils.roles import as_role, is_admin_role


def load_managed_department_ids(db: Session, manager_id: int) -> FrozenSet[int]:
    """Explicitly assigned department ids for a manager (home department not included)"""
    rows = db.query(ManagerDepartment.department_id).filter(
        ManagerDepartment.manager_id == manager_id
    ).all()
    return frozenset(row[0] for row in rows)


class DepartmentScope:
    """Request-scoped, caching department scope resolver"""

    def __init__(self, loader: Callable[[int], Iterable[int]]):
        self._loader = loader
        self._cache: Dict[int, FrozenSet[int]] = {}

    @classmethod
    def for_session(cls, db: Session) -> "DepartmentScope":
        return cls(lambda manager_id: load_managed_department_ids(db, manager_id))

    @classmethod
    def from_assignments(cls, assignments: Mapping[int, Iterable[int]]) -> "DepartmentScope":
        """Scope backed by an in-memory mapping of manager id -> department ids"""
        return cls(lambda manager_id: assignments.get(manager_id, ()))

    def managed_departments(self, manager_id: int) -> FrozenSet[int]:
        if manager_id not in self._cache:
            self._cache[manager_id] = frozenset(self._loader(manager_id))
        return self._cache[manager_id]

    def invalidate(self, manager_id: Optional[int] = None) -> None:
        """Drop cached assignments after they were changed within the request"""
        if manager_id is None:
            self._cache.clear()
        else:
            self._cache.pop(manager_id, None)

    def visible_departments(self, actor) -> Optional[FrozenSet[int]]:
        """
        Departments whose entries ``actor`` may view as a team.

        Returns None for unrestricted (admin/super_admin) and an empty set
        for staff.
        """
        role = as_role(actor.role)
        if is_admin_role(role):
            return None
        if role != Role.MANAGER:
            return frozenset()
        home = {actor.department_id} if actor.department_id is not None else set()
        return frozenset(home) | self.managed_departments(actor.id)

    def can_access_department(self, actor, department_id: Optional[int]) -> bool:
        visible = self.visible_departments(actor)
        if visible is None:
            return True
        return department_id is not None and department_id in visible
