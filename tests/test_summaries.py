import asyncio, unittest
from gmail_tool.summaries import batched, summarize, summary_from_detail
from gmail_tool.types import MessageListSummary, MessageRef

def detail(mid: str, subject: str = "", sender: str = "", date: str = "") -> dict:
    return {
        "id": mid,
        "threadId": f"t-{mid}",
        "snippet": f"snippet {mid}",
        "payload": {
            "headers": [
                {"name": "From", "value": sender},
                {"name": "Subject", "value": subject},
                {"name": "Date", "value": date},
            ]
        },
    }

class RecordingFetcher:
    """Fake metadata fetch that logs start/end events and tracks concurrency."""
    def __init__(self, delays=None):
        self.delays = delays or {}
        self.events = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, mid):
        self.events.append(("start", mid))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(self.delays.get(mid, 0))
        self.in_flight -= 1
        self.events.append(("end", mid))
        return detail(mid, subject=f"subject {mid}", sender=f"{mid}@example.com", date="today")

class TestBatched(unittest.TestCase):
    def test_sizes(self):
        self.assertEqual([len(b) for b in batched(list(range(12)), 5)], [5, 5, 2])
        self.assertEqual(list(batched([], 5)), [])

    def test_invalid_size(self):
        with self.assertRaises(ValueError):
            list(batched([1], 0))

class TestSummarize(unittest.IsolatedAsyncioTestCase):
    async def test_twelve_refs_three_batches_in_order(self):
        refs = [MessageRef(id=f"m{i}", thread_id=f"t{i}") for i in range(12)]
        # middle batch (m5..m9) completes in reverse order
        fetcher = RecordingFetcher(delays={f"m{i}": 0.01 * (10 - i) for i in range(5, 10)})

        summaries = await summarize(refs, fetcher, batch_size=5)

        self.assertEqual([s.id for s in summaries], [r.id for r in refs])
        self.assertEqual(summaries[7].subject, "subject m7")
        self.assertEqual(fetcher.max_in_flight, 5)

        ends_in_middle = [mid for kind, mid in fetcher.events if kind == "end" and mid in {f"m{i}" for i in range(5, 10)}]
        self.assertEqual(ends_in_middle, ["m9", "m8", "m7", "m6", "m5"])

        # no fetch of a later batch starts before every fetch of the earlier batch has ended
        batches = [[f"m{i}" for i in range(0, 5)], [f"m{i}" for i in range(5, 10)], ["m10", "m11"]]
        position = {event: n for n, event in enumerate(fetcher.events)}
        for earlier, later in zip(batches, batches[1:]):
            last_end = max(position[("end", mid)] for mid in earlier)
            first_start = min(position[("start", mid)] for mid in later)
            self.assertLess(last_end, first_start)

    async def test_default_batch_size_is_five(self):
        refs = [MessageRef(id=f"m{i}", thread_id="t") for i in range(7)]
        fetcher = RecordingFetcher(delays={f"m{i}": 0.001 for i in range(7)})
        await summarize(refs, fetcher)
        self.assertEqual(fetcher.max_in_flight, 5)

    async def test_empty_refs(self):
        fetcher = RecordingFetcher()
        self.assertEqual(await summarize([], fetcher), [])
        self.assertEqual(fetcher.events, [])

    async def test_fallbacks_for_missing_and_failed_details(self):
        async def fetch(mid):
            if mid == "gone":
                return None
            if mid == "boom":
                raise RuntimeError("backend down")
            if mid == "bare":
                return {"id": "bare"}
            return detail(mid, subject="ok")

        refs = [
            MessageRef(id="gone", thread_id="t1", snippet="s1"),
            MessageRef(id="boom", thread_id="t2", snippet="s2"),
            MessageRef(id="bare", thread_id="t3", snippet="s3"),
            MessageRef(id="fine", thread_id="t4", snippet="s4"),
        ]
        with self.assertLogs("gmail_tool.summaries", level="WARNING"):
            summaries = await summarize(refs, fetch, batch_size=2)

        self.assertEqual(summaries[0], MessageListSummary("gone", "t1", "", "", "", "s1"))
        self.assertEqual(summaries[1], MessageListSummary("boom", "t2", "", "", "", "s2"))
        self.assertEqual(summaries[2], MessageListSummary("bare", "t3", "", "", "", "s3"))
        self.assertEqual(summaries[3].subject, "ok")
        self.assertEqual(summaries[3].thread_id, "t-fine")

    async def test_cancellation_is_not_swallowed(self):
        async def fetch(mid):
            raise asyncio.CancelledError()

        with self.assertRaises(asyncio.CancelledError):
            await summarize([MessageRef(id="m", thread_id="t")], fetch)

class TestSummaryFromDetail(unittest.TestCase):
    def test_detail_values_win_and_headers_are_case_insensitive(self):
        d = {
            "id": "m1",
            "threadId": "t9",
            "snippet": "",
            "payload": {"headers": [{"name": "SUBJECT", "value": "Hi"}, {"name": "from", "value": "a@x.com"}]},
        }
        s = summary_from_detail(MessageRef(id="m1", thread_id="t1", snippet="ref snippet"), d)
        self.assertEqual(s, MessageListSummary("m1", "t9", "a@x.com", "Hi", "", "ref snippet"))

    def test_encoded_words_are_decoded(self):
        d = {
            "id": "m2",
            "payload": {
                "headers": [
                    {"name": "From", "value": "=?utf-8?b?w4lsaXNl?= <e@example.com>"},
                    {"name": "Subject", "value": "=?utf-8?q?Caf=C3=A9?= menu"},
                    {"name": "Date", "value": "Mon, 1 Jan 2024 10:00:00 +0000"},
                ]
            },
        }
        s = summary_from_detail(MessageRef(id="m2", thread_id="t2"), d)
        self.assertEqual(s.from_, "\u00c9lise <e@example.com>")
        self.assertEqual(s.subject, "Caf\u00e9 menu")
        self.assertEqual(s.date, "Mon, 1 Jan 2024 10:00:00 +0000")

if __name__ == "__main__":
    unittest.main()
