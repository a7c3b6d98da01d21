from __future__ import annotations

import unittest

from app.auth import Role
from app.models import UserRole
from app.security.sessions import load_principal_from_header
from db_support import SqliteDatabase, add_user


class ActorIdentityTests(unittest.TestCase):
    def setUp(self) -> None:
        self.database = SqliteDatabase()
        self.db = self.database.session()
        self.manager = add_user(self.db, name='Manager', role=UserRole.MANAGER)
        self.retired = add_user(self.db, name='Retired', active=False)
        self.db.commit()

    def tearDown(self) -> None:
        self.db.close()
        self.database.close()

    def test_known_user_becomes_principal(self) -> None:
        principal = load_principal_from_header(self.db, f' {self.manager.id} ')
        self.assertEqual(principal.id, self.manager.id)
        self.assertEqual(principal.role, Role.MANAGER)
        self.assertTrue(principal.active)

    def test_inactive_user_is_loaded_as_inactive(self) -> None:
        principal = load_principal_from_header(self.db, str(self.retired.id))
        self.assertFalse(principal.active)

    def test_garbage_or_unknown_ids_give_no_principal(self) -> None:
        for raw in (None, '', 'abc', '-1', '9999'):
            with self.subTest(raw=raw):
                self.assertIsNone(load_principal_from_header(self.db, raw))


if __name__ == '__main__':
    unittest.main()
