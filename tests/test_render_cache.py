import unittest

from core.render_cache import RenderCache


class TestRenderCache(unittest.TestCase):
    def setUp(self):
        self.cache = RenderCache()
        self.cache.set("https://example.com/", "<html>root</html>")
        self.cache.set("https://example.com/?year=2019", "<html>2019</html>")
        self.cache.set("https://other.dev/", "<html>other</html>")

    def test_get_returns_stored_html(self):
        self.assertEqual(self.cache.get("https://example.com/"), "<html>root</html>")
        self.assertIsNone(self.cache.get("https://example.com/?year=2000"))

    def test_delete_by_origin_removes_every_variant(self):
        removed = self.cache.delete_by_origin("https://example.com")

        self.assertEqual(removed, 2)
        self.assertEqual(self.cache.keys(), ["https://other.dev/"])

    def test_delete_single_entry(self):
        self.assertTrue(self.cache.delete("https://other.dev/"))
        self.assertFalse(self.cache.delete("https://other.dev/"))
        self.assertEqual(len(self.cache), 2)

    def test_clear(self):
        self.assertEqual(self.cache.clear(), 3)
        self.assertEqual(len(self.cache), 0)

    def test_stale_generation_is_refused(self):
        started_at = self.cache.generation
        self.cache.delete_by_origin("https://example.com")

        stored = self.cache.set("https://example.com/", "<html>stale</html>", started_at)

        self.assertFalse(stored)
        self.assertNotIn("https://example.com/", self.cache)

    def test_current_generation_is_stored(self):
        generation = self.cache.generation

        self.assertTrue(self.cache.set("https://example.com/", "<html>new</html>", generation))
        self.assertEqual(self.cache.get("https://example.com/"), "<html>new</html>")

    def test_every_invalidation_bumps_generation(self):
        start = self.cache.generation
        self.cache.delete("https://nothing.here/")
        self.cache.delete_by_origin("https://nothing.here")
        self.cache.clear()

        self.assertEqual(self.cache.generation, start + 3)
