import unittest

from core.inliner import ResourceInliner
from tests.fakes import FakePage, FakeResponse

PAGE = (
    '<head><link rel="stylesheet" href="https://example.com/styles.css">'
    '<link rel="stylesheet" href="https://cdn.example.net/lib.css"></head>'
    '<body><script src="https://example.com/app.js"></script></body>'
)


class TestResourceInliner(unittest.IsolatedAsyncioTestCase):
    async def load(self, inliner, responses, html=PAGE):
        page = FakePage(html, responses=responses)
        inliner.attach(page)
        await page.goto(inliner.target_url)
        return page

    async def test_inlines_same_origin_resources_only(self):
        inliner = ResourceInliner("https://example.com/?year=2020")
        page = await self.load(inliner, [
            FakeResponse("https://example.com/styles.css", "stylesheet", "a{}"),
            FakeResponse("https://cdn.example.net/lib.css", "stylesheet", "b{}"),
            FakeResponse("https://example.com/app.js", "script", "run()"),
        ])

        count = await inliner.inline(page)

        self.assertEqual(count, 2)
        self.assertIn("<style>a{}</style>", page.html)
        self.assertIn('<link rel="stylesheet" href="https://cdn.example.net/lib.css">', page.html)
        self.assertIn("<script>run()</script>", page.html)
        self.assertNotIn("https://cdn.example.net/lib.css", inliner.stylesheets)

    async def test_default_port_is_same_origin(self):
        inliner = ResourceInliner("https://example.com:443/")
        await self.load(inliner, [
            FakeResponse("https://example.com/styles.css", "stylesheet", "a{}"),
        ])

        await inliner.drain()

        self.assertIn("https://example.com/styles.css", inliner.stylesheets)

    async def test_unreadable_body_leaves_element_external(self):
        inliner = ResourceInliner("https://example.com/")
        page = await self.load(inliner, [
            FakeResponse("https://example.com/styles.css", "stylesheet", None),
        ])

        count = await inliner.inline(page)

        self.assertEqual(count, 0)
        self.assertEqual(page.evaluations, [])
        self.assertEqual(page.html, PAGE)

    async def test_disabled_kinds_are_not_captured(self):
        inliner = ResourceInliner("https://example.com/", inline_styles=False, inline_scripts=True)
        page = await self.load(inliner, [
            FakeResponse("https://example.com/styles.css", "stylesheet", "a{}"),
            FakeResponse("https://example.com/app.js", "script", "run()"),
        ])

        await inliner.inline(page)

        self.assertEqual(inliner.stylesheets, {})
        self.assertEqual([selector for selector, _ in page.evaluations], ["script[src]"])

    async def test_non_asset_responses_ignored(self):
        inliner = ResourceInliner("https://example.com/")
        page = await self.load(inliner, [
            FakeResponse("https://example.com/", "document", "<html></html>"),
            FakeResponse("https://example.com/posts.json", "fetch", "[]"),
        ])

        self.assertEqual(await inliner.inline(page), 0)
        self.assertEqual(page.evaluations, [])

    async def test_inline_twice_is_harmless(self):
        inliner = ResourceInliner("https://example.com/")
        page = await self.load(inliner, [
            FakeResponse("https://example.com/styles.css", "stylesheet", "a{}"),
        ])

        await inliner.inline(page)
        snapshot = page.html
        await inliner.inline(page)

        self.assertEqual(page.html, snapshot)
        self.assertEqual(snapshot.count("<style>a{}</style>"), 1)

    def test_enabled(self):
        self.assertTrue(ResourceInliner("https://example.com/").enabled)
        self.assertFalse(
            ResourceInliner("https://example.com/", inline_styles=False, inline_scripts=False).enabled
        )
