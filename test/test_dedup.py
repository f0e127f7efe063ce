import io
import unittest
import os
import sys
import tempfile
from contextlib import redirect_stderr, redirect_stdout

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../src")))

from domain_dedup.dedup import Deduplicator, format_domains, main, split_candidates
from domain_dedup.errors import SourceError
from domain_dedup.trie import DomainTrie

FIRST_LIST = """
# first list
www.example.com
foo.bar.example.com
ads.tracker.net
"""

SECOND_LIST = """
example.com
tracker.net/
not a domain
example.org
"""


class DedupTestCase(unittest.TestCase):
    def make_file(self, text: str, suffix: str = ".txt") -> str:
        with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as f:
            f.write(text.encode("utf-8"))
        self.addCleanup(os.unlink, f.name)
        return f.name


class TestHelpers(unittest.TestCase):
    def test_split_candidates(self):
        text = "  example.com  \n\n# comment\r\nwww.example.org\n   \n"
        self.assertEqual(split_candidates(text), ["example.com", "www.example.org"])

    def test_split_empty(self):
        self.assertEqual(split_candidates(""), [])

    def test_format_domains(self):
        self.assertEqual(format_domains(["a.com", "b.org"]), "a.com\nb.org\n")
        self.assertEqual(format_domains([]), "")


class TestDeduplicator(DedupTestCase):
    def test_add_text_counts(self):
        dedup = Deduplicator()
        dedup.add_text(FIRST_LIST + SECOND_LIST)

        self.assertEqual(dedup.stats.candidates, 7)
        self.assertEqual(dedup.stats.accepted, 6)
        self.assertEqual(dedup.stats.rejected, 1)
        self.assertEqual(
            dedup.trie.enumerate(), ["example.com", "tracker.net", "example.org"]
        )

    def test_uses_given_trie(self):
        trie = DomainTrie()
        trie.insert("example.com")
        dedup = Deduplicator(trie)
        dedup.add_text("www.example.com\n")
        self.assertIs(dedup.trie, trie)
        self.assertEqual(trie.enumerate(), ["example.com"])


class TestDeduplicatorRun(DedupTestCase, unittest.IsolatedAsyncioTestCase):
    async def test_run_merges_sources(self):
        first = self.make_file(FIRST_LIST)
        second = self.make_file(SECOND_LIST)

        dedup = Deduplicator(timeout=5)
        domains = await dedup.run([first, "file://" + second])

        self.assertEqual(domains, ["example.com", "tracker.net", "example.org"])
        self.assertEqual(dedup.stats.failed_sources, [])

    async def test_failed_source_is_skipped(self):
        first = self.make_file(FIRST_LIST)
        missing = first + ".missing"

        dedup = Deduplicator()
        with self.assertLogs("domain_dedup.dedup", level="ERROR") as logs:
            domains = await dedup.run([missing, first])

        self.assertIn(missing, logs.output[0])
        self.assertEqual(dedup.stats.failed_sources, [missing])
        self.assertEqual(
            domains, ["www.example.com", "foo.bar.example.com", "ads.tracker.net"]
        )

    async def test_strict_inserts_nothing(self):
        first = self.make_file(FIRST_LIST)

        dedup = Deduplicator()
        with self.assertRaises(SourceError):
            await dedup.run([first, "ftp://example.com/list.txt"], strict=True)

        self.assertEqual(dedup.trie.enumerate(), [])
        self.assertEqual(dedup.stats.candidates, 0)


class TestMain(DedupTestCase):
    def test_writes_output_file(self):
        first = self.make_file(FIRST_LIST)
        second = self.make_file(SECOND_LIST)
        output = self.make_file("")

        code = main([first, second, "-o", output, "--log-level", "ERROR"])

        self.assertEqual(code, 0)
        with open(output, encoding="utf-8") as f:
            self.assertEqual(f.read(), "example.com\ntracker.net\nexample.org\n")

    def test_writes_stdout(self):
        second = self.make_file(SECOND_LIST)

        buf = io.StringIO()
        with redirect_stdout(buf):
            code = main([second, "--log-level", "ERROR"])

        self.assertEqual(code, 0)
        self.assertEqual(buf.getvalue(), "example.com\ntracker.net\nexample.org\n")

    def test_sources_from_config(self):
        first = self.make_file(FIRST_LIST)
        second = self.make_file(SECOND_LIST)
        output = self.make_file("")
        conf = self.make_file(
            f"source={first}\noutput={output}\nlog-level=ERROR\n", suffix=".conf"
        )

        code = main(["-c", conf, second])

        self.assertEqual(code, 0)
        with open(output, encoding="utf-8") as f:
            self.assertEqual(f.read(), "example.com\ntracker.net\nexample.org\n")

    def test_all_sources_failed(self):
        first = self.make_file(FIRST_LIST)
        self.assertEqual(main([first + ".missing", "--log-level", "ERROR"]), 1)

    def test_strict_failure(self):
        first = self.make_file(FIRST_LIST)
        output = self.make_file("untouched")

        code = main(
            [first, first + ".missing", "--strict", "-o", output, "--log-level", "ERROR"]
        )

        self.assertEqual(code, 1)
        with open(output, encoding="utf-8") as f:
            self.assertEqual(f.read(), "untouched")

    def test_no_sources(self):
        with redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit) as ctx:
                main(["--log-level", "ERROR"])
        self.assertEqual(ctx.exception.code, 2)

    def test_bad_config(self):
        conf = self.make_file("bogus\n", suffix=".conf")
        with redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit) as ctx:
                main(["-c", conf])
        self.assertEqual(ctx.exception.code, 2)


if __name__ == "__main__":
    unittest.main()
