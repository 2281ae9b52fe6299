"""
Tests for the URL frontier.
"""

from concurrent.futures import ThreadPoolExecutor

from brokenlinks.crawler.url_frontier import URLFrontier, URLTask


class TestURLFrontier:
    """Admission and finalization."""

    def setup_method(self):
        self.frontier = URLFrontier()

    def test_admit_once(self):
        assert self.frontier.try_admit("http://example.com/")
        assert not self.frontier.try_admit("http://example.com/")

    def test_finalized_url_is_not_readmitted(self):
        self.frontier.try_admit("http://example.com/")
        self.frontier.mark_finalized("http://example.com/")

        assert self.frontier.is_finalized("http://example.com/")
        assert not self.frontier.try_admit("http://example.com/")

    def test_released_url_can_be_admitted_again(self):
        self.frontier.try_admit("http://example.com/private")
        self.frontier.release("http://example.com/private")

        assert self.frontier.try_admit("http://example.com/private")

    def test_urls_compare_by_string(self):
        assert self.frontier.try_admit("http://example.com/a")
        assert self.frontier.try_admit("http://example.com/a/")
        assert self.frontier.try_admit("http://example.com/a#top")

    def test_concurrent_admission_admits_exactly_one(self):
        with ThreadPoolExecutor(max_workers=16) as executor:
            outcomes = list(executor.map(lambda _: self.frontier.try_admit("http://example.com/x"), range(200)))

        assert outcomes.count(True) == 1

    def test_stats(self):
        self.frontier.try_admit("a")
        self.frontier.try_admit("b")
        self.frontier.mark_finalized("a")

        assert self.frontier.get_stats() == {
            'total_admitted': 2,
            'total_finalized': 1,
            'in_flight': 1,
        }


class TestURLTask:
    """Derived tasks."""

    def test_child_goes_one_level_deeper(self):
        task = URLTask(url="http://example.com/", depth=1)
        child = task.child("http://example.com/about")

        assert child.depth == 2
        assert child.parent_url == "http://example.com/"

    def test_redirect_keeps_depth(self):
        task = URLTask(url="http://example.com/old", depth=3, parent_url="http://example.com/")
        target = task.redirect_to("http://example.com/new")

        assert target.depth == 3
        assert target.parent_url == "http://example.com/old"
