"""
Tests for link results and the result store.
"""

import json
import threading

from brokenlinks.storage.results import HttpStatus, LinkResult, ResultStore


class TestHttpStatus:
    """Status codes and reason phrases."""

    def test_standard_reason_phrase(self):
        assert str(HttpStatus.from_code(301)) == "301 Moved Permanently"
        assert str(HttpStatus.from_code(404, "Nope")) == "404 Not Found"
        assert str(HttpStatus.from_code(200)) == "200 OK"

    def test_unknown_code_uses_server_reason(self):
        assert str(HttpStatus.from_code(599, "Network Timeout")) == "599 Network Timeout"
        assert str(HttpStatus.from_code(599)) == "599 Unknown Status Code"

    def test_is_success(self):
        assert HttpStatus.from_code(204).is_success
        assert not HttpStatus.from_code(301).is_success
        assert not HttpStatus.from_code(500).is_success


class TestLinkResult:
    """Serialization and failure classification."""

    def test_to_dict(self):
        result = LinkResult(
            url="http://example.com/old",
            parent="http://example.com/",
            status=HttpStatus.from_code(301),
            redirect="http://example.com/new"
        )

        assert result.to_dict() == {
            'parent': "http://example.com/",
            'url': "http://example.com/old",
            'status': "301 Moved Permanently",
            'errorMsg': None,
            'redirect': "http://example.com/new",
        }

    def test_to_dict_for_error(self):
        result = LinkResult(url="http://example.com/", error_msg="[ClientConnectorError]: refused")

        data = result.to_dict()
        assert data['parent'] is None
        assert data['status'] is None
        assert data['errorMsg'] == "[ClientConnectorError]: refused"

    def test_is_failure(self):
        assert LinkResult(url="u", error_msg="boom").is_failure
        assert LinkResult(url="u", status=HttpStatus.from_code(404)).is_failure
        assert LinkResult(url="u", status=HttpStatus.from_code(302), redirect="v").is_failure
        assert not LinkResult(url="u", status=HttpStatus.from_code(200)).is_failure

    def test_with_parent(self):
        original = LinkResult(url="u", parent="a", status=HttpStatus.from_code(500))
        copy = original.with_parent("b")

        assert copy.parent == "b"
        assert copy.status == original.status
        assert original.parent == "a"


class TestResultStore:
    """Append-only storage."""

    def setup_method(self):
        self.store = ResultStore()

    def test_find_first_returns_earliest(self):
        first = LinkResult(url="http://example.com/x", parent="a", status=HttpStatus.from_code(404))
        second = LinkResult(url="http://example.com/x", parent="b", status=HttpStatus.from_code(404))
        self.store.append(first)
        self.store.append(second)

        assert self.store.find_first("http://example.com/x") is first
        assert self.store.find_first("http://example.com/y") is None
        assert len(self.store) == 2

    def test_concurrent_appends_are_all_kept(self):
        def worker(n):
            for i in range(100):
                self.store.append(LinkResult(url=f"http://example.com/{n}/{i}"))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(self.store) == 800

    def test_to_json(self):
        self.store.append(LinkResult(url="http://example.com/", status=HttpStatus.from_code(200)))

        compact = self.store.to_json()
        pretty = self.store.to_json(pretty=True)

        assert json.loads(compact) == json.loads(pretty)
        assert "\n" not in compact
        assert "\n    " in pretty
        assert json.loads(compact)[0]['status'] == "200 OK"

    def test_write_json_creates_directories(self, tmp_path):
        self.store.append(LinkResult(url="http://example.com/", error_msg="boom"))
        target = tmp_path / "nested" / "out.json"

        self.store.write_json(str(target))

        data = json.loads(target.read_text(encoding='utf-8'))
        assert data == [{'parent': None, 'url': "http://example.com/", 'status': None,
                         'errorMsg': "boom", 'redirect': None}]
