import unittest

import redis

from core.posts import PostStore, in_period, parse_submitted, sort_posts
from tests.fakes import FakeRedisClient


def post(url, submitted, title="A post"):
    return {
        "url": url,
        "title": title,
        "submitted": submitted,
        "submitter": {"name": "Eric", "email": "eric@example.com", "picture": ""},
    }


class TestPostHelpers(unittest.TestCase):
    def test_parse_submitted_accepts_trailing_z(self):
        parsed = parse_submitted("2020-03-04T05:06:07.000Z")

        self.assertEqual((parsed.year, parsed.month, parsed.day, parsed.hour), (2020, 3, 4, 5))
        self.assertEqual(parsed.utcoffset().total_seconds(), 0)

    def test_parse_submitted_rejects_garbage(self):
        self.assertIsNone(parse_submitted("last tuesday"))

    def test_sort_posts_newest_first(self):
        posts = [
            post("https://a.dev/1", "2020-01-01T00:00:00Z"),
            post("https://a.dev/3", "2020-03-01T00:00:00Z"),
            post("https://a.dev/2", "2020-02-01T00:00:00Z"),
        ]

        ordered = [p["url"] for p in sort_posts(posts)]

        self.assertEqual(ordered, ["https://a.dev/3", "https://a.dev/2", "https://a.dev/1"])

    def test_sort_posts_compares_instants_across_offsets(self):
        posts = [
            post("https://a.dev/cest", "2020-05-01T11:00:00+02:00"),
            post("https://a.dev/unknown", "someday"),
            post("https://rss.dev/utc", "2020-05-01T10:00:00.000Z"),
        ]

        ordered = [p["url"] for p in sort_posts(posts)]

        self.assertEqual(ordered, ["https://rss.dev/utc", "https://a.dev/cest", "https://a.dev/unknown"])

    def test_in_period(self):
        p = post("https://a.dev/1", "2020-02-09T10:00:00Z")

        self.assertTrue(in_period(p, "2020"))
        self.assertTrue(in_period(p, "2020", "02"))
        self.assertTrue(in_period(p, "2020", "02", "09"))
        self.assertFalse(in_period(p, "2020", "02", "10"))
        self.assertFalse(in_period(p, "2019"))


class TestPostStore(unittest.TestCase):
    def setUp(self):
        self.redis = FakeRedisClient()
        self.store = PostStore(self.redis)

    def test_new_post_is_stored_under_submission_month(self):
        added = self.store.new_post(post("https://a.dev/x", "2020-02-09T10:00:00Z"))

        self.assertTrue(added)
        self.assertEqual(self.redis.get_json("posts:2020:02")[0]["url"], "https://a.dev/x")
        self.assertEqual(self.redis.members("posts:2020:months"), {"02"})

    def test_new_post_fills_domain(self):
        self.store.new_post(post("https://blog.example.com/x", "2020-02-09T10:00:00Z"))

        self.assertEqual(self.redis.get_json("posts:2020:02")[0]["domain"], "blog.example.com")

    def test_new_post_without_timestamp_uses_now(self):
        submission = post("https://a.dev/now", None)

        self.assertTrue(self.store.new_post(submission))

        stored = [p for key, p in self.redis.values.items() if key.startswith("posts:")]
        self.assertEqual(len(stored), 1)
        self.assertTrue(self.redis.published[0][1]["post"]["submitted"].endswith("Z"))

    def test_duplicate_url_is_rejected(self):
        self.store.new_post(post("https://a.dev/x", "2020-02-09T10:00:00Z"))
        again = self.store.new_post(post("https://a.dev/x", "2020-02-10T10:00:00Z", title="Again"))

        self.assertFalse(again)
        self.assertEqual(len(self.redis.get_json("posts:2020:02")), 1)
        self.assertEqual(len(self.redis.published), 1)

    def test_new_post_publishes_change(self):
        self.store.new_post(post("https://a.dev/x", "2020-02-09T10:00:00Z"))

        channel, message = self.redis.published[0]
        self.assertEqual(channel, "posts:2020:changes")
        self.assertEqual(message["type"], "added")
        self.assertEqual(message["post"]["url"], "https://a.dev/x")

    def test_get_posts_for_year_merges_months_and_extras(self):
        self.store.new_post(post("https://a.dev/jan", "2020-01-05T00:00:00Z"))
        self.store.new_post(post("https://a.dev/mar", "2020-03-05T00:00:00Z"))
        extras = [
            post("https://rss.dev/feb", "2020-02-05T00:00:00Z"),
            post("https://rss.dev/old", "2019-02-05T00:00:00Z"),
        ]

        posts = self.store.get_posts("2020", extra_posts=extras)

        self.assertEqual(
            [p["url"] for p in posts],
            ["https://a.dev/mar", "https://rss.dev/feb", "https://a.dev/jan"],
        )

    def test_get_posts_for_month_and_day(self):
        self.store.new_post(post("https://a.dev/a", "2020-03-05T00:00:00Z"))
        self.store.new_post(post("https://a.dev/b", "2020-03-06T00:00:00Z"))
        self.store.new_post(post("https://a.dev/c", "2020-04-06T00:00:00Z"))

        month = self.store.get_posts("2020", "03")
        day = self.store.get_posts("2020", "03", "06")

        self.assertEqual([p["url"] for p in month], ["https://a.dev/b", "https://a.dev/a"])
        self.assertEqual([p["url"] for p in day], ["https://a.dev/b"])

    def test_get_posts_max_results(self):
        for day in range(1, 6):
            self.store.new_post(post(f"https://a.dev/{day}", f"2020-03-0{day}T00:00:00Z"))

        posts = self.store.get_posts("2020", max_results=2)

        self.assertEqual([p["url"] for p in posts], ["https://a.dev/5", "https://a.dev/4"])

    def test_get_posts_orders_mixed_timestamp_formats(self):
        self.store.new_post(post("https://a.dev/cest", "2020-05-01T11:00:00+02:00"))
        extras = [post("https://rss.dev/utc", "2020-05-01T10:00:00.000Z")]

        posts = self.store.get_posts("2020", "05", extra_posts=extras)

        self.assertEqual([p["url"] for p in posts], ["https://rss.dev/utc", "https://a.dev/cest"])

    def test_publish_failure_is_raised(self):
        self.redis.publish_error = redis.ConnectionError("Connection refused")

        with self.assertRaises(redis.RedisError):
            self.store.new_post(post("https://a.dev/x", "2020-02-09T10:00:00Z"))

    def test_get_posts_empty_year(self):
        self.assertEqual(self.store.get_posts("1999"), [])

    def test_delete_post(self):
        self.store.new_post(post("https://a.dev/x", "2020-02-09T10:00:00Z"))

        self.assertTrue(self.store.delete_post("2020", "02", "https://a.dev/x"))

        self.assertEqual(self.redis.get_json("posts:2020:02"), [])
        self.assertEqual(self.redis.published[-1][1]["type"], "removed")

    def test_delete_missing_post(self):
        with self.assertLogs("core.posts", level="WARNING"):
            self.assertFalse(self.store.delete_post("2020", "02", "https://a.dev/missing"))
        self.assertEqual(self.redis.published, [])


class TestMonitorChanges(unittest.TestCase):
    def setUp(self):
        self.redis = FakeRedisClient()
        self.store = PostStore(self.redis)

    def test_callback_receives_change_batches(self):
        batches = []
        self.store.monitor_changes("2020", batches.append)

        self.store.new_post(post("https://a.dev/x", "2020-02-09T10:00:00Z"))

        self.assertEqual(len(batches), 1)
        self.assertEqual(batches[0][0]["type"], "added")

    def test_only_one_monitor_is_installed(self):
        batches = []

        self.assertTrue(self.store.monitor_changes("2020", batches.append))
        self.assertFalse(self.store.monitor_changes("2020", batches.append))

        self.store.new_post(post("https://a.dev/x", "2020-02-09T10:00:00Z"))
        self.assertEqual(len(batches), 1)

    def test_failing_callback_is_logged(self):
        def explode(changes):
            raise RuntimeError("boom")

        self.store.monitor_changes("2020", explode)

        with self.assertLogs("core.posts", level="ERROR"):
            self.assertTrue(self.store.new_post(post("https://a.dev/x", "2020-02-09T10:00:00Z")))

    def test_stop_monitoring(self):
        batches = []
        self.store.monitor_changes("2020", batches.append)
        self.store.stop_monitoring()

        self.store.new_post(post("https://a.dev/x", "2020-02-09T10:00:00Z"))

        self.assertEqual(batches, [])
        self.assertTrue(self.store.monitor_changes("2020", batches.append))
