# fundapp/engine/hierarchy.py
# ----------------------------------------------------------
# Parent / child lookups over the coordinator tree
# ----------------------------------------------------------

import logging

from fundapp import conf
from fundapp.engine.repositories import CoordinatorRepository
from fundapp.exceptions import HierarchyCycleDetected, HierarchyTooDeep

logger = logging.getLogger(__name__)


class HierarchyDirectory:
    """
    Read-only facade over coordinator parent links.

    No business rules live here. Walks are iterative and bounded; a loop in
    the data or a chain deeper than `max_depth` truncates the result and is
    logged, never raised.
    """

    def __init__(self, users=None):
        self.users = users if users is not None else CoordinatorRepository()

    def get_user(self, user_id):
        return self.users.get(user_id)

    def get_parent(self, user_id):
        return self.users.parent_id(user_id)

    def get_children(self, user_id):
        return self.users.child_ids(user_id)

    def get_ancestor_chain(self, user_id, max_depth=None, conditions=None):
        """
        Ancestors of `user_id`, immediate parent first, top-most last.

        `conditions`, when given, collects HierarchyCycleDetected /
        HierarchyTooDeep instances for the caller to inspect.
        """
        if max_depth is None:
            max_depth = conf.max_depth()

        chain = []
        visited = {user_id}
        current = self.get_parent(user_id)

        while current is not None:
            if current in visited:
                self._report(HierarchyCycleDetected(user_id, current), conditions)
                break
            if len(chain) >= max_depth:
                self._report(HierarchyTooDeep(user_id, max_depth), conditions)
                break
            visited.add(current)
            chain.append(current)
            current = self.get_parent(current)

        return chain

    def is_ancestor(self, ancestor_id, user_id, max_depth=None):
        return ancestor_id in self.get_ancestor_chain(user_id, max_depth=max_depth)

    def is_top(self, user_id):
        """True for a user with no parent of its own."""
        return self.get_parent(user_id) is None

    def _report(self, condition, conditions):
        logger.warning("Hierarchy walk truncated: %s", condition)
        if conditions is not None:
            conditions.append(condition)
