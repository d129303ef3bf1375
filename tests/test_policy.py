import unittest

import dbcase  # noqa: F401  (puts src/ on sys.path)

from db.errors import UnauthorizedError
from db.models import Role
from utils.policy import Operation, permits, require


class PolicyTestCase(unittest.TestCase):
    def test_everyone_views_and_updates_own(self):
        for role in Role:
            self.assertTrue(permits(role, Operation.VIEW_OWN))
            self.assertTrue(permits(role, Operation.UPDATE_OWN_PROFILE))

    def test_customer_limits(self):
        for op in (
            Operation.VIEW_OTHERS,
            Operation.UPDATE_ORDER_STATUS,
            Operation.UPDATE_MENU,
            Operation.UPDATE_USERS,
        ):
            self.assertFalse(permits(Role.CUSTOMER, op))

    def test_driver_and_manager(self):
        self.assertTrue(permits(Role.DRIVER, Operation.VIEW_OTHERS))
        self.assertTrue(permits(Role.DRIVER, Operation.UPDATE_ORDER_STATUS))
        self.assertFalse(permits(Role.DRIVER, Operation.UPDATE_MENU))
        self.assertFalse(permits(Role.DRIVER, Operation.UPDATE_USERS))
        for op in Operation:
            self.assertTrue(permits(Role.MANAGER, op))

    def test_require(self):
        require(Role.MANAGER, Operation.UPDATE_MENU)
        with self.assertRaises(UnauthorizedError):
            require(Role.CUSTOMER, Operation.UPDATE_ORDER_STATUS)
