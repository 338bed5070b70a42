"""Tests for promptgallery.core.actions — request-level gallery operations.

Providers are replaced by the ``FakeProvider`` fixtures from conftest, so
every test runs against a temporary SQLite database without network access.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from promptgallery.core.actions import GalleryActions, ListingCache
from promptgallery.core.errors import PersistenceError, ProviderError


def generate(actions, identity, prompt="a lighthouse at dawn", **kwargs) -> dict:
    result = actions.generate_and_save(identity, prompt, **kwargs)
    assert result["success"] is True, result
    return result


class TestGenerateAndSave:
    def test_success(self, actions, identity, fake_providers):
        result = generate(actions, identity)

        assert len(result["images"]) == 1
        image = result["images"][0]
        assert image["user_id"] == identity.user_id
        assert image["username"] == identity.username
        assert image["api_provider"] == "gemini"
        assert image["model"] == "imagen-4.0-generate-001"
        assert image["prompt"] == "a lighthouse at dawn"
        assert image["is_private"] is False
        assert fake_providers[False].calls == [("a lighthouse at dawn", 1)]
        assert fake_providers[True].calls == []

    def test_alternate_provider(self, actions, identity, fake_providers):
        result = generate(actions, identity, use_alternate_provider=True)

        assert result["images"][0]["api_provider"] == "openai"
        assert fake_providers[True].calls and not fake_providers[False].calls

    def test_private_flag_persisted(self, actions, identity, image_store):
        result = generate(actions, identity, is_private=True)

        stored = image_store.get(result["images"][0]["id"])
        assert stored.is_private is True

    def test_prompt_is_stripped(self, actions, identity, fake_providers):
        generate(actions, identity, prompt="  a red fox  ")
        assert fake_providers[False].calls == [("a red fox", 1)]

    def test_requires_identity(self, actions, fake_providers):
        result = actions.generate_and_save(None, "a red fox")

        assert result == {"success": False, "error": "Authentication required"}
        assert fake_providers[False].calls == []

    @pytest.mark.parametrize("prompt", ["", "   ", None])
    def test_empty_prompt_never_calls_provider(self, actions, identity, fake_providers, prompt):
        result = actions.generate_and_save(identity, prompt)

        assert result == {"success": False, "error": "Prompt is required"}
        assert fake_providers[False].calls == []
        assert fake_providers[True].calls == []

    def test_blocked_prompt(self, actions, identity, fake_providers, image_store):
        result = actions.generate_and_save(identity, "a knight with a gun and a knife")

        assert result["success"] is False
        assert result["blocked_terms"] == ["gun", "knife"]
        assert "gun, knife" in result["error"]
        assert fake_providers[False].calls == []
        assert image_store.count() == 0

    def test_too_long_prompt(self, actions, identity):
        result = actions.generate_and_save(identity, "a" * 1001)
        assert result == {
            "success": False,
            "error": "Prompt is too long (maximum 1000 characters)",
        }

    def test_zero_images_is_failure(self, actions, identity, fake_providers, image_store):
        fake_providers[False].returned = 0

        result = actions.generate_and_save(identity, "a red fox")

        assert result == {"success": False, "error": "No images were generated"}
        assert image_store.count() == 0

    def test_partial_results_are_kept(self, actions, identity, fake_providers, image_store):
        fake_providers[False].returned = 2

        result = generate(actions, identity, count=3)

        assert len(result["images"]) == 2
        assert image_store.count() == 2

    def test_provider_error_message(self, actions, identity, fake_providers):
        fake_providers[False].error = ProviderError("All image models failed. Last error: boom")

        result = actions.generate_and_save(identity, "a red fox")

        assert result == {
            "success": False,
            "error": "All image models failed. Last error: boom",
        }

    def test_unexpected_error_is_generic(self, actions, identity, fake_providers):
        fake_providers[False].error = RuntimeError("socket exploded")

        result = actions.generate_and_save(identity, "a red fox")

        assert result == {"success": False, "error": "Failed to generate image"}

    def test_persistence_error_reported(self, actions, identity, monkeypatch):
        def fail(**fields):
            raise PersistenceError("Database operation failed: disk full")

        monkeypatch.setattr(actions.images, "create", fail)

        result = actions.generate_and_save(identity, "a red fox")

        assert result == {"success": False, "error": "Database operation failed: disk full"}

    def test_advisory_warnings_returned(self, actions, identity):
        result = generate(actions, identity, prompt="a celebrity portrait")
        assert result["warnings"]


class TestListings:
    def test_recent_excludes_private(self, actions, identity, other_identity):
        public = generate(actions, identity)["images"][0]
        generate(actions, identity, is_private=True)
        generate(actions, other_identity, is_private=True)

        recent = actions.get_recent_images()

        assert [image["id"] for image in recent] == [public["id"]]
        assert all(image["is_private"] is False for image in recent)

    def test_recent_newest_first_and_limited(self, actions, identity):
        ids = [
            generate(actions, identity, prompt=f"a fox number {i}")["images"][0]["id"]
            for i in range(4)
        ]

        recent = actions.get_recent_images(limit=2)

        assert [image["id"] for image in recent] == ids[::-1][:2]

    def test_recent_default_limit(self, actions, identity, test_config):
        for i in range(test_config.default_list_limit + 2):
            generate(actions, identity, prompt=f"a fox number {i}")

        assert len(actions.get_recent_images()) == test_config.default_list_limit

    def test_mine_includes_private(self, actions, identity, other_identity):
        generate(actions, identity)
        generate(actions, identity, is_private=True)
        generate(actions, other_identity)

        mine = actions.get_my_images(identity)

        assert len(mine) == 2
        assert {image["user_id"] for image in mine} == {identity.user_id}

    def test_mine_without_identity(self, actions):
        assert actions.get_my_images(None) == []

    def test_limit_clamped_to_maximum(self, actions, test_config, monkeypatch):
        seen = []
        read_public = actions.images.list_public

        def spy(limit):
            seen.append(limit)
            return read_public(limit)

        monkeypatch.setattr(actions.images, "list_public", spy)
        assert actions.get_recent_images(10**20) == []
        assert seen == [test_config.max_list_limit]

    def test_owner_limit_clamped(self, actions, identity):
        assert actions.get_my_images(identity, 10**20) == []

    def test_recent_returns_empty_on_store_failure(self, actions, monkeypatch):
        def fail(limit):
            raise PersistenceError("Database connection failed: locked")

        monkeypatch.setattr(actions.images, "list_public", fail)

        assert actions.get_recent_images() == []


class TestListingCache:
    def test_recent_served_from_cache(self, actions, identity, monkeypatch):
        generate(actions, identity)
        first = actions.get_recent_images()

        spy = MagicMock(side_effect=AssertionError("store should not be queried"))
        monkeypatch.setattr(actions.images, "list_public", spy)

        assert actions.get_recent_images() == first

    @pytest.mark.parametrize("mutation", ["generate", "delete", "toggle"])
    def test_mutations_invalidate(self, actions, identity, mutation):
        image = generate(actions, identity)["images"][0]
        assert len(actions.get_recent_images()) == 1

        if mutation == "generate":
            generate(actions, identity, prompt="a second fox")
            expected = 2
        elif mutation == "delete":
            actions.delete_image(identity, image["id"])
            expected = 0
        else:
            actions.toggle_image_privacy(identity, image["id"])
            expected = 0

        assert len(actions.get_recent_images()) == expected

    def test_cache_returns_copies(self):
        cache = ListingCache()
        cache.set("k", [{"id": "1"}], cache.generation)
        cache.get("k").clear()
        assert cache.get("k") == [{"id": "1"}]

    def test_invalidate(self):
        cache = ListingCache()
        cache.set("k", [], cache.generation)
        cache.invalidate()
        assert cache.get("k") is None

    def test_set_after_invalidate_is_dropped(self):
        cache = ListingCache()
        generation = cache.generation
        cache.invalidate()

        assert cache.set("k", [{"id": "stale"}], generation) is False
        assert cache.get("k") is None

    def test_mutation_during_read_is_not_cached(self, actions, identity, monkeypatch):
        """A generate that lands between the store read and the cache fill wins."""
        generate(actions, identity)
        read_public = actions.images.list_public

        def read_then_generate(limit):
            rows = read_public(limit)
            generate(actions, identity, prompt="a second fox")
            return rows

        monkeypatch.setattr(actions.images, "list_public", read_then_generate)
        assert len(actions.get_recent_images()) == 1

        monkeypatch.setattr(actions.images, "list_public", read_public)
        assert len(actions.get_recent_images()) == 2

    def test_cache_size_bounded_by_max_limit(self, actions, test_config):
        for limit in range(1, 500):
            actions.get_recent_images(limit)

        assert len(actions.cache) == test_config.max_list_limit


class TestGetImage:
    def test_public_image_visible_to_anyone(self, actions, identity):
        image = generate(actions, identity)["images"][0]

        result = actions.get_image(None, image["id"])

        assert result["success"] is True
        assert result["image"]["id"] == image["id"]

    def test_private_image_hidden_from_others(self, actions, identity, other_identity):
        image = generate(actions, identity, is_private=True)["images"][0]

        assert actions.get_image(other_identity, image["id"]) == {
            "success": False,
            "error": "Image not found",
        }
        assert actions.get_image(None, image["id"])["success"] is False
        assert actions.get_image(identity, image["id"])["success"] is True

    def test_unknown(self, actions, identity):
        assert actions.get_image(identity, "missing")["error"] == "Image not found"


class TestDelete:
    def test_owner_can_delete(self, actions, identity, image_store):
        image = generate(actions, identity)["images"][0]

        assert actions.delete_image(identity, image["id"]) == {"success": True}
        assert image_store.get(image["id"]) is None

    def test_forbidden_for_other_user(self, actions, identity, other_identity, image_store):
        image = generate(actions, identity)["images"][0]
        before = image_store.get(image["id"])

        result = actions.delete_image(other_identity, image["id"])

        assert result == {
            "success": False,
            "error": "You do not have permission to delete this image",
        }
        assert image_store.get(image["id"]) == before

    def test_not_found(self, actions, identity):
        assert actions.delete_image(identity, "missing") == {
            "success": False,
            "error": "Image not found",
        }

    def test_requires_identity(self, actions, identity):
        image = generate(actions, identity)["images"][0]
        assert actions.delete_image(None, image["id"])["error"] == "Authentication required"


class TestTogglePrivacy:
    def test_toggle_twice_restores(self, actions, identity, image_store):
        image = generate(actions, identity)["images"][0]

        first = actions.toggle_image_privacy(identity, image["id"])
        second = actions.toggle_image_privacy(identity, image["id"])

        assert first == {"success": True, "is_private": True}
        assert second == {"success": True, "is_private": False}
        assert image_store.get(image["id"]).is_private is False

    def test_forbidden_for_other_user(self, actions, identity, other_identity, image_store):
        image = generate(actions, identity)["images"][0]

        result = actions.toggle_image_privacy(other_identity, image["id"])

        assert result == {
            "success": False,
            "error": "You do not have permission to modify this image",
        }
        assert image_store.get(image["id"]).is_private is False

    def test_not_found(self, actions, identity):
        assert actions.toggle_image_privacy(identity, "missing")["error"] == "Image not found"


class TestCheckConnections:
    def test_all_healthy(self, actions, identity):
        generate(actions, identity)

        status = actions.check_connections()

        assert status["gemini_api"] is True
        assert status["openai_api"] is True
        assert status["database"] is True
        assert "1 images stored" in status["message"]

    def test_reports_failing_provider(self, actions, fake_providers):
        fake_providers[True].healthy = False

        status = actions.check_connections()

        assert status["openai_api"] is False
        assert status["message"] == "Unavailable: openai_api"


def test_default_provider_factory_selects_by_flag(image_store, test_config):
    actions = GalleryActions(image_store, test_config)

    assert actions.provider_factory(False).name == "gemini"
    assert actions.provider_factory(True).name == "openai"
