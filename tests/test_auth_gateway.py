"""Tests for login, refresh rotation, logout, password changes and user management."""

import tempfile
import unittest
import uuid
from unittest.mock import patch

from app.core.errors import Conflict, Forbidden, NotFound, Unauthorized, ValidationError
from app.core.security import TokenType
from app.models import User, UserRole
from app.schemas.auth import ProfileUpdate, UserCreate, UserUpdate
from app.services.auth import INVALID_CREDENTIALS, AuthGateway
from support import (
    add_user,
    make_file_session_factory,
    make_infra,
    make_session_factory,
    make_token_issuer,
    test_hasher,
)


class GatewayTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()
        self.infra = make_infra(self.db)
        self.gateway = AuthGateway(self.infra)
        self.admin = add_user(self.db)
        self.secretary = add_user(
            self.db,
            email="sec@example.com",
            password="sec-pass",
            role=UserRole.SECRETARY,
            name="Office Secretary",
        )

    def tearDown(self) -> None:
        self.db.close()


class TestLogin(GatewayTestCase):
    def test_login_returns_user_and_tokens(self) -> None:
        user, tokens = self.gateway.login("Admin@Example.com", "admin-pass")
        self.assertEqual(user.id, self.admin.id)
        self.assertIsNotNone(user.last_login)
        self.assertEqual(user.refresh_token, tokens.refresh_token)
        claims = self.infra.tokens.decode(tokens.access_token, TokenType.ACCESS)
        self.assertEqual(claims.user_id, self.admin.id)
        self.assertEqual(claims.role, "admin")

    def test_failures_are_indistinguishable(self) -> None:
        add_user(self.db, email="gone@example.com", password="gone-pass", active=False)
        attempts = [
            ("nobody@example.com", "whatever"),
            ("admin@example.com", "wrong-pass"),
            ("gone@example.com", "gone-pass"),
        ]
        for email, password in attempts:
            with self.assertRaises(Unauthorized) as ctx:
                self.gateway.login(email, password)
            self.assertEqual(ctx.exception.message, INVALID_CREDENTIALS)
            self.assertEqual(ctx.exception.code, "INVALID_CREDENTIALS")

    def test_unknown_email_still_runs_password_check(self) -> None:
        with patch.object(self.infra.hasher, "verify", wraps=self.infra.hasher.verify) as verify:
            with self.assertRaises(Unauthorized):
                self.gateway.login("nobody@example.com", "whatever")
        verify.assert_called_once_with("whatever", self.infra.hasher.dummy_hash)

    def test_deleted_user_cannot_login(self) -> None:
        self.gateway.delete_user(self.secretary.id, self.admin)
        with self.assertRaises(Unauthorized):
            self.gateway.login("sec@example.com", "sec-pass")


class TestRefresh(GatewayTestCase):
    def test_refresh_rotates_token(self) -> None:
        _, tokens = self.gateway.login("admin@example.com", "admin-pass")
        rotated = self.gateway.refresh(tokens.refresh_token)
        self.assertNotEqual(rotated.refresh_token, tokens.refresh_token)
        self.db.expire_all()
        self.assertEqual(self.db.get(User, self.admin.id).refresh_token, rotated.refresh_token)

    def test_old_refresh_token_fails_after_rotation(self) -> None:
        _, tokens = self.gateway.login("admin@example.com", "admin-pass")
        self.gateway.refresh(tokens.refresh_token)
        with self.assertRaises(Unauthorized) as ctx:
            self.gateway.refresh(tokens.refresh_token)
        self.assertEqual(ctx.exception.code, "INVALID_REFRESH_TOKEN")

    def test_missing_refresh_token(self) -> None:
        for token in (None, ""):
            with self.assertRaises(Unauthorized) as ctx:
                self.gateway.refresh(token)
            self.assertEqual(ctx.exception.code, "MISSING_REFRESH_TOKEN")

    def test_access_token_is_not_accepted_for_refresh(self) -> None:
        _, tokens = self.gateway.login("admin@example.com", "admin-pass")
        with self.assertRaises(Unauthorized) as ctx:
            self.gateway.refresh(tokens.access_token)
        self.assertIn(ctx.exception.code, ("INVALID_TOKEN", "INVALID_TOKEN_TYPE"))

    def test_expired_refresh_token(self) -> None:
        self.infra.tokens = make_token_issuer(refresh_expire_minutes=-1)
        _, tokens = self.gateway.login("admin@example.com", "admin-pass")
        with self.assertRaises(Unauthorized) as ctx:
            self.gateway.refresh(tokens.refresh_token)
        self.assertEqual(ctx.exception.code, "TOKEN_EXPIRED")

    def test_refresh_for_deactivated_user(self) -> None:
        _, tokens = self.gateway.login("sec@example.com", "sec-pass")
        self.gateway.update_user(self.secretary.id, UserUpdate(active=False), self.admin)
        with self.assertRaises(Unauthorized) as ctx:
            self.gateway.refresh(tokens.refresh_token)
        self.assertEqual(ctx.exception.code, "USER_NOT_FOUND_OR_INACTIVE")

    def test_logout_revokes_refresh_token(self) -> None:
        _, tokens = self.gateway.login("admin@example.com", "admin-pass")
        self.gateway.logout(self.admin.id)
        with self.assertRaises(Unauthorized) as ctx:
            self.gateway.refresh(tokens.refresh_token)
        self.assertEqual(ctx.exception.code, "INVALID_REFRESH_TOKEN")


class TestConcurrentRefresh(unittest.TestCase):
    def setUp(self) -> None:
        directory = tempfile.TemporaryDirectory()
        self.addCleanup(directory.cleanup)
        factory = make_file_session_factory(directory.name)
        self.addCleanup(factory.kw["bind"].dispose)
        self.factory = factory
        self.db_a = factory()
        self.db_b = factory()
        self.addCleanup(self.db_b.close)
        self.addCleanup(self.db_a.close)
        self.first = AuthGateway(make_infra(self.db_a))
        self.second = AuthGateway(make_infra(self.db_b))
        self.admin = add_user(self.db_a)

    def test_token_reused_from_stale_session_is_refused(self) -> None:
        _, tokens = self.first.login("admin@example.com", "admin-pass")
        # The second session caches the user with the pre-rotation token.
        self.assertEqual(self.db_b.get(User, self.admin.id).refresh_token, tokens.refresh_token)

        rotated = self.first.refresh(tokens.refresh_token)
        with self.assertRaises(Unauthorized) as ctx:
            self.second.refresh(tokens.refresh_token)
        self.assertEqual(ctx.exception.code, "INVALID_REFRESH_TOKEN")

        with self.factory() as fresh:
            self.assertEqual(fresh.get(User, self.admin.id).refresh_token, rotated.refresh_token)
        self.first.refresh(rotated.refresh_token)


class TestChangePassword(GatewayTestCase):
    def test_own_change_requires_current_password(self) -> None:
        with self.assertRaises(ValidationError):
            self.gateway.change_password(self.secretary.id, None, "new-pass", self.secretary)

    def test_own_change_with_wrong_current_password(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            self.gateway.change_password(self.secretary.id, "wrong", "new-pass", self.secretary)
        self.assertEqual(ctx.exception.code, "INVALID_CURRENT_PASSWORD")

    def test_own_change(self) -> None:
        self.gateway.change_password(self.secretary.id, "sec-pass", "new-pass", self.secretary)
        user, _ = self.gateway.login("sec@example.com", "new-pass")
        self.assertEqual(user.id, self.secretary.id)
        with self.assertRaises(Unauthorized):
            self.gateway.login("sec@example.com", "sec-pass")

    def test_admin_resets_other_password_without_current(self) -> None:
        self.gateway.change_password(self.secretary.id, None, "reset-pass", self.admin)
        self.db.expire_all()
        stored = self.db.get(User, self.secretary.id)
        self.assertTrue(test_hasher.verify("reset-pass", stored.password_hash))

    def test_secretary_cannot_change_other_password(self) -> None:
        with self.assertRaises(Forbidden):
            self.gateway.change_password(self.admin.id, None, "hijack-pass", self.secretary)


class TestUserManagement(GatewayTestCase):
    def test_create_user_hashes_password(self) -> None:
        user = self.gateway.create_user(
            UserCreate(name="Bea", email="BEA@example.com", password="bea-pass"),
            self.admin,
        )
        self.assertEqual(user.email, "bea@example.com")
        self.assertEqual(user.role, UserRole.SECRETARY)
        self.assertTrue(test_hasher.verify("bea-pass", user.password_hash))

    def test_create_user_with_taken_email(self) -> None:
        with self.assertRaises(Conflict) as ctx:
            self.gateway.create_user(
                UserCreate(name="Dup", email="sec@example.com", password="dup-pass"),
                self.admin,
            )
        self.assertEqual(ctx.exception.code, "EMAIL_IN_USE")

    def test_email_is_reusable_after_soft_delete(self) -> None:
        self.gateway.delete_user(self.secretary.id, self.admin)
        self.assertTrue(self.gateway.is_email_available("sec@example.com"))
        user = self.gateway.create_user(
            UserCreate(name="New Sec", email="sec@example.com", password="sec-pass-2"),
            self.admin,
        )
        self.assertNotEqual(user.id, self.secretary.id)

    def test_get_unknown_user(self) -> None:
        with self.assertRaises(NotFound):
            self.gateway.get_user(uuid.uuid4())

    def test_cannot_deactivate_self(self) -> None:
        with self.assertRaises(ValidationError):
            self.gateway.update_user(self.admin.id, UserUpdate(active=False), self.admin)

    def test_cannot_delete_self(self) -> None:
        with self.assertRaises(ValidationError):
            self.gateway.delete_user(self.admin.id, self.admin)

    def test_deactivation_clears_refresh_token(self) -> None:
        self.gateway.login("sec@example.com", "sec-pass")
        user = self.gateway.update_user(self.secretary.id, UserUpdate(active=False), self.admin)
        self.assertFalse(user.active)
        self.assertIsNone(user.refresh_token)

    def test_update_email_collision(self) -> None:
        with self.assertRaises(Conflict):
            self.gateway.update_user(self.secretary.id, UserUpdate(email="admin@example.com"), self.admin)

    def test_profile_update_changes_only_own_fields(self) -> None:
        user = self.gateway.update_profile(
            self.secretary,
            ProfileUpdate(name="  Sec Renamed  ", email="Sec.New@example.com"),
        )
        self.assertEqual(user.name, "Sec Renamed")
        self.assertEqual(user.email, "sec.new@example.com")
        self.assertEqual(user.role, UserRole.SECRETARY)

    def test_list_users_ordered_by_name_and_filtered(self) -> None:
        users, pagination = self.gateway.list_users()
        self.assertEqual([u.name for u in users], ["Office Admin", "Office Secretary"])
        self.assertEqual(pagination.total_items, 2)

        users, _ = self.gateway.list_users(role=UserRole.SECRETARY)
        self.assertEqual([u.email for u in users], ["sec@example.com"])

        users, _ = self.gateway.list_users(search="admin")
        self.assertEqual([u.email for u in users], ["admin@example.com"])

    def test_user_statistics(self) -> None:
        self.gateway.update_user(self.secretary.id, UserUpdate(active=False), self.admin)
        stats = self.gateway.user_statistics()
        self.assertEqual(
            stats,
            {"total": 2, "active": 1, "admins": 1, "secretaries": 1, "last_month": 2},
        )


if __name__ == "__main__":
    unittest.main()
