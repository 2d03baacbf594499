"""Tests for the signed media URL cache."""

import unittest
from unittest.mock import MagicMock, patch

from eco.errors import AuthRequired
from eco.media.cache import (
    MediaUrlResolver,
    SessionCaller,
    SignedUrlCache,
    cache_ttl_ms,
    clamp_expires_in,
)

MEDIA_ID = "6f1c1d3e-8a57-4c5e-9d0b-0f0a5e7a1c11"
OTHER_MEDIA_ID = "0b9e3e0c-2f43-4c27-a1b8-4b8f3d2e9a77"
RECEIPT_ID = "2c6a9f1e-5b7d-4e3a-8c2f-1d9e0a4b6c55"


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class ClampTestCase(unittest.TestCase):
    def test_expiry_is_clamped(self):
        self.assertEqual(clamp_expires_in(500), 300)
        self.assertEqual(clamp_expires_in(10), 60)
        self.assertEqual(clamp_expires_in(180), 180)
        self.assertEqual(clamp_expires_in("abc"), 120)
        self.assertEqual(clamp_expires_in(None), 120)

    def test_ttl_bounds_for_any_expiry(self):
        for requested in (-5, 0, 1, 59, 60, 61, 120, 140, 141, 299, 300, 500, 10_000):
            with self.subTest(requested=requested):
                ttl = cache_ttl_ms(requested)
                self.assertLessEqual(ttl, 280_000)
                self.assertGreaterEqual(ttl, 20_000)
                self.assertLess(ttl, clamp_expires_in(requested) * 1000)

    def test_ttl_values(self):
        self.assertEqual(cache_ttl_ms(60), 40_000)
        self.assertEqual(cache_ttl_ms(120), 100_000)
        self.assertEqual(cache_ttl_ms(500), 120_000)


class SignedUrlCacheTestCase(unittest.TestCase):
    def setUp(self):
        self.resolver = MagicMock()
        self.resolver.by_media_id.side_effect = lambda token, media_id, expires: {
            "media_id": media_id,
            "expires_in": expires,
            "signed_url": f"https://signed/{media_id}?n={self.resolver.by_media_id.call_count}",
        }
        self.resolver.by_entity.return_value = {
            "entity_type": "receipt",
            "entity_id": RECEIPT_ID,
            "expires_in": 120,
            "items": [
                {"media_id": MEDIA_ID, "signed_url": "https://signed/a"},
                {"media_id": OTHER_MEDIA_ID, "signed_url": "https://signed/b"},
            ],
        }
        self.clock = FakeClock()
        self.cache = SignedUrlCache(resolver=self.resolver, clock=self.clock)

    def test_second_lookup_is_a_hit(self):
        first = self.cache.get_by_media_id("tok", MEDIA_ID, 120)
        second = self.cache.get_by_media_id("tok", MEDIA_ID, 120)
        self.assertEqual(first, second)
        self.assertEqual(self.resolver.by_media_id.call_count, 1)

    def test_resolver_receives_clamped_expiry(self):
        self.cache.get_by_media_id("tok", MEDIA_ID, 500)
        self.resolver.by_media_id.assert_called_once_with("tok", MEDIA_ID, 300)

    def test_entry_expires_after_ttl(self):
        self.cache.get_by_media_id("tok", MEDIA_ID, 120)
        self.clock.now += 99
        self.cache.get_by_media_id("tok", MEDIA_ID, 120)
        self.assertEqual(self.resolver.by_media_id.call_count, 1)
        self.clock.now += 2
        self.cache.get_by_media_id("tok", MEDIA_ID, 120)
        self.assertEqual(self.resolver.by_media_id.call_count, 2)

    def test_force_refresh_bypasses_read_but_writes(self):
        self.cache.get_by_media_id("tok", MEDIA_ID, 120)
        refreshed = self.cache.get_by_media_id("tok", MEDIA_ID, 120, force_refresh=True)
        self.assertEqual(self.resolver.by_media_id.call_count, 2)
        again = self.cache.get_by_media_id("tok", MEDIA_ID, 120)
        self.assertEqual(self.resolver.by_media_id.call_count, 2)
        self.assertEqual(again, refreshed)

    def test_entity_lookup_warms_media_entries(self):
        self.cache.get_by_entity("tok", "receipt", RECEIPT_ID, 120)
        item = self.cache.get_by_media_id("tok", OTHER_MEDIA_ID, 120)
        self.resolver.by_media_id.assert_not_called()
        self.assertEqual(item["signed_url"], "https://signed/b")
        self.assertEqual(item["entity_id"], RECEIPT_ID)

    def test_tokens_do_not_share_entries(self):
        self.cache.get_by_media_id("tok-a", MEDIA_ID, 120)
        self.cache.get_by_media_id("tok-b", MEDIA_ID, 120)
        self.assertEqual(self.resolver.by_media_id.call_count, 2)

    def test_missing_token_is_a_hard_failure(self):
        with self.assertRaises(AuthRequired):
            self.cache.get_by_media_id(None, MEDIA_ID)
        with self.assertRaises(AuthRequired):
            self.cache.get_by_entity("", "receipt", RECEIPT_ID)
        self.resolver.by_media_id.assert_not_called()
        self.resolver.by_entity.assert_not_called()

    def test_bounded_size(self):
        cache = SignedUrlCache(resolver=self.resolver, max_entries=2, clock=self.clock)
        for media_id in ("m1", "m2", "m3"):
            cache.get_by_media_id("tok", media_id, 120)
        self.assertEqual(len(cache), 2)
        cache.get_by_media_id("tok", "m1", 120)
        self.assertEqual(self.resolver.by_media_id.call_count, 4)

    def test_resolver_errors_are_not_cached(self):
        self.resolver.by_media_id.side_effect = AuthRequired("Invalid auth token.")
        with self.assertRaises(AuthRequired):
            self.cache.get_by_media_id("tok", MEDIA_ID, 120)
        self.assertEqual(len(self.cache), 0)

    def test_session_callers_are_keyed_by_uid(self):
        self.cache.get_by_media_id(SessionCaller("u1"), MEDIA_ID, 120)
        self.cache.get_by_media_id(SessionCaller("u1"), MEDIA_ID, 120)
        self.cache.get_by_media_id(SessionCaller("u2"), MEDIA_ID, 120)
        self.assertEqual(self.resolver.by_media_id.call_count, 2)
        with self.assertRaises(AuthRequired):
            self.cache.get_by_media_id(SessionCaller(""), MEDIA_ID)


class MediaUrlResolverTestCase(unittest.TestCase):
    @patch("eco.media.cache.get_auth_provider")
    def test_session_caller_skips_token_verification(self, mock_provider):
        mock_provider.return_value.verify_token.side_effect = AuthRequired("expired")
        resolver = MediaUrlResolver()
        self.assertEqual(resolver._user_id(SessionCaller("u1")), "u1")
        with self.assertRaises(AuthRequired):
            resolver._user_id("stale-id-token")


if __name__ == "__main__":
    unittest.main()
