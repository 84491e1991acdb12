"""Tests for accounts and token authentication."""

from __future__ import annotations

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.users.models import User


class UserAccountTests(APITestCase):
    def test_create_user_defaults_to_player(self) -> None:
        user = User.objects.create_user(email="Player@Example.com", password="PlayerPass123", phone="+63 917-000-0001")

        self.assertEqual(user.role, User.RoleChoices.PLAYER)
        self.assertEqual(user.email, "Player@example.com")
        self.assertEqual(user.phone, "+639170000001")
        self.assertFalse(user.is_court_owner())
        self.assertFalse(user.is_platform_admin())

    def test_superuser_is_platform_admin(self) -> None:
        admin = User.objects.create_superuser(email="admin@example.com", password="AdminPass123")

        self.assertEqual(admin.role, User.RoleChoices.ADMIN)
        self.assertTrue(admin.is_platform_admin())

    def test_email_is_required(self) -> None:
        with self.assertRaises(ValueError):
            User.objects.create_user(email="", password="PlayerPass123")

    def test_obtain_token_with_email(self) -> None:
        User.objects.create_user(email="owner@example.com", password="OwnerPass123", role=User.RoleChoices.COURT_OWNER)

        response = self.client.post(
            reverse("token_obtain_pair"),
            {"email": "owner@example.com", "password": "OwnerPass123"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertIn("access", response.data)
        self.assertIn("refresh", response.data)
